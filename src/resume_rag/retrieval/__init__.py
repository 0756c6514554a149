"""
Retrieval module - vector index and its lifecycle.

This module provides:
- InMemoryVectorIndex: Testing/development index (LangChain FAISS in memory)
- PersistentVectorIndex: On-disk FAISS index + encrypted manifest
- get_vector_index(): Factory function
- FreshnessController: load-or-build, count-based rebuilds, timeout
"""

from resume_rag.retrieval.store import (
    InMemoryVectorIndex,
    PersistentVectorIndex,
    ProviderEmbeddings,
    read_manifest,
    get_vector_index,
)
from resume_rag.retrieval.freshness import (
    FreshnessController,
    IndexState,
    UpdateOutcome,
)

__all__ = [
    # Implementations
    "InMemoryVectorIndex",
    "PersistentVectorIndex",
    "ProviderEmbeddings",
    "read_manifest",
    # Factory
    "get_vector_index",
    # Lifecycle
    "FreshnessController",
    "IndexState",
    "UpdateOutcome",
]
