"""Local sentence-transformers embeddings.

The model is loaded lazily, at most once per process: concurrent callers
await the same in-flight load. Inference runs off the event loop.

Forces CPU device to avoid segfaults on Apple Silicon (M1/M2/M3)
when multiple threads access the model concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable

import numpy as np

from resume_rag.core.errors import EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_DIMENSIONS = 384
BATCH_SIZE = 5

ModelLoader = Callable[[str], Any]


def load_sentence_transformer(model_name: str):
    """Return a SentenceTransformer on CPU."""
    # Read by torch/tokenizers when they are first imported below
    os.environ.setdefault("TOKENIZERS_PARALLELISM", "false")
    os.environ.setdefault("KMP_DUPLICATE_LIB_OK", "TRUE")
    os.environ.setdefault("OMP_NUM_THREADS", "1")
    from sentence_transformers import SentenceTransformer
    return SentenceTransformer(model_name, device="cpu")


class LocalEmbeddings:
    """
    Feature-extraction embeddings computed on this machine.

    Batching: texts go in fixed-size batches; items inside a batch run
    concurrently, batch i+1 starts only after batch i settles. An item
    that fails becomes a zero vector. A run with no successes raises.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        *,
        dimensions: int = DEFAULT_DIMENSIONS,
        batch_size: int = BATCH_SIZE,
        loader: ModelLoader | None = None,
    ):
        self._model_name = model_name
        self._dimensions = dimensions
        self._batch_size = batch_size
        self._loader = loader or load_sentence_transformer
        self._model: Any = None
        self._load_task: asyncio.Future | None = None
        self._load_error: BaseException | None = None
        self.load_count = 0

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> int:
        return self._dimensions

    # -- model lifecycle --------------------------------------------------

    def _load_blocking(self) -> Any:
        self.load_count += 1
        logger.info(f"Loading local embedding model {self._model_name}")
        return self._loader(self._model_name)

    async def _get_model(self) -> Any:
        if self._model is not None:
            return self._model
        if self._load_error is not None:
            raise EmbeddingError(f"Local embedding model failed to load: {self._load_error}")

        if self._load_task is None:
            self._load_task = asyncio.ensure_future(asyncio.to_thread(self._load_blocking))

        task = self._load_task
        try:
            model = await task
        except Exception as e:
            self._load_error = e
            raise EmbeddingError(f"Local embedding model failed to load: {e}") from e
        finally:
            if task.done():
                self._load_task = None

        if self._model is None:
            self._model = model
            dim = getattr(model, "get_sentence_embedding_dimension", None)
            if callable(dim) and dim():
                self._dimensions = int(dim())
        return self._model

    # -- inference --------------------------------------------------------

    @staticmethod
    def _encode(model: Any, text: str) -> np.ndarray:
        vec = model.encode(text, normalize_embeddings=True, convert_to_numpy=True)
        return np.asarray(vec, dtype=np.float32).reshape(-1)

    async def _embed_one(self, model: Any, text: str) -> np.ndarray | None:
        try:
            return await asyncio.to_thread(self._encode, model, text)
        except Exception as e:
            logger.warning(f"Embedding failed for one item, using zero vector: {e}")
            return None

    async def embed_query(self, text: str) -> np.ndarray:
        model = await self._get_model()
        try:
            return await asyncio.to_thread(self._encode, model, text)
        except Exception as e:
            raise EmbeddingError(f"Query embedding failed: {e}") from e

    async def embed_documents(self, texts: list[str]) -> list[np.ndarray]:
        if not texts:
            return []

        model = await self._get_model()
        vectors: list[np.ndarray] = []
        successes = 0

        for i in range(0, len(texts), self._batch_size):
            batch = texts[i:i + self._batch_size]
            results = await asyncio.gather(*(self._embed_one(model, t) for t in batch))
            for vec in results:
                if vec is None:
                    vectors.append(np.zeros(self._dimensions, dtype=np.float32))
                else:
                    successes += 1
                    vectors.append(vec)

        if successes == 0:
            raise EmbeddingError("Failed to create any embeddings")
        if successes < len(texts):
            logger.warning(f"{len(texts) - successes}/{len(texts)} embeddings degraded to zero vectors")
        return vectors
