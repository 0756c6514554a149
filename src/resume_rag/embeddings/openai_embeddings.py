"""
Embeddings Module - Single Responsibility: Generate text embeddings.

It has ONE job: convert text to vector embeddings.

Backends (selected once, at construction):
- OpenAIEmbeddings: remote API, preferred when an API key is configured
- LocalEmbeddings: sentence-transformers model loaded once per process
- MockEmbeddings: deterministic hashed bag-of-words, for tests

Downstream code depends only on embed_query / embed_documents and never
on which backend is active.
"""

from __future__ import annotations

import hashlib
import logging
import re
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
from openai import AsyncOpenAI, OpenAIError

from resume_rag.core.errors import EmbeddingError
from resume_rag.core.protocols import EmbeddingProvider

if TYPE_CHECKING:
    from resume_rag.config import RagConfig

logger = logging.getLogger(__name__)

# OpenAI accepts up to 2048 inputs per request; stay well below
MAX_REMOTE_BATCH = 256


class EmbeddingBackend(str, Enum):
    """Which embedding implementation is active."""
    REMOTE = "remote"
    LOCAL = "local"
    MOCK = "mock"


class OpenAIEmbeddings:
    """
    OpenAI-based embedding provider.

    Uses text-embedding-3-small by default (1536 dimensions).
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key)

    @property
    def model_name(self) -> str:
        return self.model

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions for the model."""
        model_dims = {
            "text-embedding-3-small": 1536,
            "text-embedding-3-large": 3072,
            "text-embedding-ada-002": 1536,
        }
        return model_dims.get(self.model, 1536)

    async def embed_query(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        vectors = await self._create([text])
        return vectors[0]

    async def embed_documents(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts, in request-sized slices."""
        if not texts:
            return []

        vectors: list[np.ndarray] = []
        for i in range(0, len(texts), MAX_REMOTE_BATCH):
            vectors.extend(await self._create(texts[i:i + MAX_REMOTE_BATCH]))
        return vectors

    async def _create(self, texts: list[str]) -> list[np.ndarray]:
        try:
            response = await self._client.embeddings.create(input=texts, model=self.model)
        except OpenAIError as e:
            raise EmbeddingError(f"Remote embedding request failed: {e}") from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise EmbeddingError(
                f"Remote embedding returned {len(data)} vectors for {len(texts)} inputs"
            )
        return [np.array(item.embedding, dtype=np.float32) for item in data]


_TOKEN_RE = re.compile(r"[a-z0-9#+]+")


class MockEmbeddings:
    """
    Mock embedding provider for testing without API calls or model downloads.

    Hashes each lowercase token into a bucket and L2-normalizes the counts,
    so texts sharing words are close. Deterministic across runs.
    NOT for production use - only for testing/development.
    """

    def __init__(self, dimensions: int = 384):
        self._dimensions = dimensions
        self.query_calls = 0
        self.document_calls = 0
        self.texts_embedded = 0

    @property
    def model_name(self) -> str:
        return f"mock-{self._dimensions}"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _vector(self, text: str) -> np.ndarray:
        vec = np.zeros(self._dimensions, dtype=np.float32)
        for token in _TOKEN_RE.findall(text.lower()):
            bucket = int(hashlib.sha256(token.encode()).hexdigest()[:8], 16) % self._dimensions
            vec[bucket] += 1.0
        norm = np.linalg.norm(vec)
        return vec / norm if norm > 0 else vec

    async def embed_query(self, text: str) -> np.ndarray:
        self.query_calls += 1
        return self._vector(text)

    async def embed_documents(self, texts: list[str]) -> list[np.ndarray]:
        self.document_calls += 1
        self.texts_embedded += len(texts)
        return [self._vector(text) for text in texts]


def select_backend(config: RagConfig) -> EmbeddingBackend:
    """Resolve the configured backend; 'auto' prefers remote when a key exists."""
    choice = config.embedding_backend
    if choice == "auto":
        return EmbeddingBackend.REMOTE if config.has_openai() else EmbeddingBackend.LOCAL
    try:
        return EmbeddingBackend(choice)
    except ValueError:
        raise ValueError(
            f"Unknown embedding backend {choice!r} (expected auto, remote, local or mock)"
        ) from None


def get_embedding_provider(config: RagConfig | None = None) -> EmbeddingProvider:
    """
    Factory function to get the appropriate embedding provider.

    Args:
        config: RAG configuration (global config when omitted)
    """
    if config is None:
        from resume_rag.config import get_config
        config = get_config()

    backend = select_backend(config)
    logger.info(f"Using {backend.value} embeddings")

    if backend is EmbeddingBackend.MOCK:
        return MockEmbeddings()
    if backend is EmbeddingBackend.REMOTE:
        if not config.has_openai():
            raise EmbeddingError("Remote embeddings requested but OPENAI_API_KEY is not set")
        return OpenAIEmbeddings(model=config.remote_embedding_model, api_key=config.openai_api_key)

    from resume_rag.embeddings.local_embeddings import LocalEmbeddings
    return LocalEmbeddings(model_name=config.local_embedding_model)
