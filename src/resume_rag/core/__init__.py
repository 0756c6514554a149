"""
Core module - shared protocols, types and errors for the entire system.

This module provides the foundational contracts that enable:
- Dependency injection throughout the codebase
- Easy testing with mock implementations
- Clear separation of concerns

USAGE:
------
from resume_rag.core import VectorIndex, EmbeddingProvider

class MyIndex:
    '''Implements VectorIndex protocol.'''
    ...
"""

from resume_rag.core.errors import (
    RagError,
    DecryptionError,
    EmbeddingError,
    IndexLoadError,
    RagInitializationError,
    RebuildTimeoutError,
    CompletionError,
    ResponseFormatError,
)
from resume_rag.core.protocols import (
    # Protocols
    EmbeddingProvider,
    CompletionService,
    RepoDataSource,
    JobStore,
    VectorIndex,
    RetrievalStrategy,
    # Data classes
    RepoData,
    JobRecord,
    ScoredDocument,
)

__all__ = [
    # Errors
    "RagError",
    "DecryptionError",
    "EmbeddingError",
    "IndexLoadError",
    "RagInitializationError",
    "RebuildTimeoutError",
    "CompletionError",
    "ResponseFormatError",
    # Protocols
    "EmbeddingProvider",
    "CompletionService",
    "RepoDataSource",
    "JobStore",
    "VectorIndex",
    "RetrievalStrategy",
    # Data classes
    "RepoData",
    "JobRecord",
    "ScoredDocument",
]
