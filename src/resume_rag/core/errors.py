"""
Error taxonomy for the RAG subsystem.

Which errors escape to callers:
- DecryptionError / IndexLoadError: recovered by a full rebuild
- EmbeddingError / RagInitializationError: surfaced to every waiter
- RebuildTimeoutError: surfaced to the update_vector_store caller only
- CompletionError / ResponseFormatError: turned into a degraded response
"""


class RagError(Exception):
    """Base class for every error raised by resume_rag."""


class DecryptionError(RagError):
    """Encrypted payload is malformed or the secret is wrong."""


class EmbeddingError(RagError):
    """Embedding backend is unusable (no vector could be produced)."""


class IndexLoadError(RagError):
    """Persisted index is missing, incomplete, or corrupt."""


class RagInitializationError(RagError):
    """Index initialization failed; shared with every concurrent waiter."""


class RebuildTimeoutError(RagError):
    """Vector store update exceeded its timeout."""


class CompletionError(RagError):
    """Completion service is unavailable or returned no content."""


class ResponseFormatError(RagError):
    """Completion output is not the JSON object the prompt asked for."""
