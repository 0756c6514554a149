"""
Embeddings module - text embedding generation.

The pattern:
1. Protocol (EmbeddingProvider) defines the interface
2. Production implementations (OpenAIEmbeddings, LocalEmbeddings)
3. Test double (MockEmbeddings) for fast testing
4. Factory function (get_embedding_provider)

LocalEmbeddings is resolved on first attribute access, so processes on the
remote backend never import the local model stack.
"""

from resume_rag.core.protocols import EmbeddingProvider
from resume_rag.embeddings.openai_embeddings import (
    EmbeddingBackend,
    OpenAIEmbeddings,
    MockEmbeddings,
    select_backend,
    get_embedding_provider,
)


def __getattr__(name):
    if name == "LocalEmbeddings":
        from resume_rag.embeddings.local_embeddings import LocalEmbeddings
        return LocalEmbeddings
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "EmbeddingProvider",
    "EmbeddingBackend",
    "OpenAIEmbeddings",
    "LocalEmbeddings",
    "MockEmbeddings",
    "select_backend",
    "get_embedding_provider",
]
