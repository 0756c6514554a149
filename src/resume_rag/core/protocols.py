"""
Core protocols defining contracts for the RAG subsystem.

All infrastructure components implement these protocols,
enabling dependency injection and easy testing.

PATTERN:
- Protocol defines the contract
- Multiple implementations possible (production + test double)
- Factory functions for instantiation

Every I/O-bound operation is a coroutine: embedding, completion calls,
repository reads and index load/save are awaited, never polled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from resume_rag.corpus.document import Document


# ---------------------------------------------------------------------------
# EMBEDDING PROVIDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - OpenAIEmbeddings (remote API)
    - LocalEmbeddings (sentence-transformers feature extraction)
    - MockEmbeddings (testing)
    """

    @property
    def model_name(self) -> str:
        """Identifier recorded next to the persisted index."""
        ...

    async def embed_query(self, text: str) -> np.ndarray:
        """Generate embedding for a single query text."""
        ...

    async def embed_documents(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts, order preserved."""
        ...


# ---------------------------------------------------------------------------
# COMPLETION SERVICE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class CompletionService(Protocol):
    """
    Contract for the chat-completion backend.

    Request: {model, messages, temperature}
    Response: the text of choices[0].message.content

    Implementations:
    - OpenAICompletionService (production)
    - MockCompletionService (testing)
    """

    async def complete(self, messages: list[dict[str, str]]) -> str:
        """Run one completion and return the raw assistant text."""
        ...


# ---------------------------------------------------------------------------
# REPOSITORY DATA SOURCE PROTOCOL (GitHub sync collaborator)
# ---------------------------------------------------------------------------


@dataclass
class RepoData:
    """Repository metadata persisted by the GitHub sync job."""
    name: str
    description: str = ""
    languages: dict[str, int] = field(default_factory=dict)
    readme: str = ""
    last_updated: str | None = None


@runtime_checkable
class RepoDataSource(Protocol):
    """
    Narrow read interface over the GitHub sync job's output.

    Implementations:
    - FileRepoDataSource (reads <github-data>/repos/*.json)
    - InMemoryRepoDataSource (testing)
    """

    async def list_synced_repositories(self) -> list[str]:
        """Names of every repository known to the sync job."""
        ...

    async def get_repo_data(self, name: str) -> RepoData | None:
        """Metadata for one repository, or None when nothing is stored."""
        ...

    def last_sync_time(self) -> str | None:
        """ISO timestamp of the last completed sync, or None."""
        ...


# ---------------------------------------------------------------------------
# JOB STORE PROTOCOL (local relational store)
# ---------------------------------------------------------------------------


@dataclass
class JobRecord:
    """The slice of a job posting the RAG core reads."""
    id: str
    title: str
    company: str
    description: str | None = None


@runtime_checkable
class JobStore(Protocol):
    """
    Read-only access to tracked jobs.

    Implementations:
    - SqliteJobStore (production)
    - InMemoryJobStore (testing)
    """

    def get_job(self, job_id: str) -> JobRecord | None:
        """Look up one job by id."""
        ...


# ---------------------------------------------------------------------------
# VECTOR INDEX PROTOCOL
# ---------------------------------------------------------------------------

RetrievalStrategy = Literal["similarity", "mmr"]


@dataclass
class ScoredDocument:
    """A retrieved document with its similarity to the query."""
    document: Document
    score: float


@runtime_checkable
class VectorIndex(Protocol):
    """
    Contract for the embedded-passage index.

    Implementations:
    - PersistentVectorIndex (production, on-disk artifact + manifest)
    - InMemoryVectorIndex (testing)
    """

    @property
    def is_ready(self) -> bool:
        """True once the index holds a built or loaded corpus."""
        ...

    @property
    def document_count(self) -> int:
        """Number of documents currently served."""
        ...

    async def build(self, documents: list[Document]) -> None:
        """Embed documents, replace the in-memory index, then persist."""
        ...

    async def load(self) -> None:
        """Re-open a persisted index. Raises IndexLoadError if unusable."""
        ...

    async def save(self) -> None:
        """Persist the current index."""
        ...

    def stored_document_count(self) -> int:
        """Document count recorded in the persisted manifest (0 if none)."""
        ...

    async def retrieve(
        self,
        query: str,
        k: int = 5,
        strategy: RetrievalStrategy = "similarity",
    ) -> list[ScoredDocument]:
        """Top-k documents for a query."""
        ...
