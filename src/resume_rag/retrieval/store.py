"""
Vector index implementations.

Pattern: Protocol → Production impl → Test double → Factory

This module contains:
1. InMemoryVectorIndex - LangChain FAISS store held in memory (testing/development)
2. PersistentVectorIndex - same, plus an on-disk FAISS index + manifest (production)
3. read_manifest() - manifest reader shared with the freshness check
4. get_vector_index() - Factory function

Vectors are L2-normalised and kept in a flat inner-product index, so FAISS
scores are cosine similarities. MMR re-ranking is LangChain's
max_marginal_relevance search over the same store.

ON-DISK LAYOUT (one directory):
-------------------------------
documents.json  manifest [{content, metadata}], encrypted when a secret is set
index.faiss     faiss.write_index() output, one vector per manifest entry
index.json      {count, dimension, embeddingModel}

The docstore is rebuilt from the manifest on load instead of pickled next
to the index, so document text is only ever on disk in the (optionally
encrypted) manifest. All three files are written by the same save(). A
load that finds any of them missing, unreadable, or disagreeing on the
count raises IndexLoadError and the caller rebuilds.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

import faiss
import numpy as np
from langchain_community.docstore.in_memory import InMemoryDocstore
from langchain_community.vectorstores import FAISS
from langchain_community.vectorstores.utils import DistanceStrategy
from langchain_core.documents import Document as LCDocument
from langchain_core.embeddings import Embeddings

from resume_rag.core.errors import DecryptionError, EmbeddingError, IndexLoadError
from resume_rag.core.protocols import EmbeddingProvider, RetrievalStrategy, ScoredDocument
from resume_rag.corpus.document import Document, DocumentMetadata
from resume_rag.observability import get_tracer
from resume_rag.observability.attributes import RAG_INDEX_DOC_COUNT
from resume_rag.security.encryption import read_text_maybe_encrypted, write_text_maybe_encrypted

if TYPE_CHECKING:
    from resume_rag.config import RagConfig

logger = logging.getLogger(__name__)

MANIFEST_FILE = "documents.json"
INDEX_FILE = "index.faiss"
META_FILE = "index.json"

DEFAULT_FETCH_K = 20
DEFAULT_LAMBDA = 0.5


# ---------------------------------------------------------------------------
# MANIFEST
# ---------------------------------------------------------------------------


def read_manifest(path: Path, secret: str | None = None) -> list[Document]:
    """
    Read and validate a document manifest.

    Raises:
        IndexLoadError: missing file, decryption failure, or malformed content
    """
    if not path.exists():
        raise IndexLoadError(f"Manifest missing: {path}")
    try:
        data = json.loads(read_text_maybe_encrypted(path, secret))
    except DecryptionError as e:
        raise IndexLoadError(f"Manifest could not be decrypted: {e}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise IndexLoadError(f"Manifest unreadable: {e}") from e

    if not isinstance(data, list):
        raise IndexLoadError("Manifest is not a list of documents")

    documents = []
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise IndexLoadError(f"Manifest entry {position} is {type(item).__name__}, expected an object")
        try:
            documents.append(Document.from_dict(item))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise IndexLoadError(f"Manifest entry {position} malformed: {e}") from e
    return documents


# ---------------------------------------------------------------------------
# LANGCHAIN ADAPTERS
# ---------------------------------------------------------------------------


def _unit_rows(matrix: np.ndarray) -> np.ndarray:
    """L2-normalise each row; zero rows stay zero."""
    matrix = np.atleast_2d(np.asarray(matrix, dtype=np.float32))
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    return np.divide(matrix, norms, out=np.zeros_like(matrix), where=norms > 0)


class ProviderEmbeddings(Embeddings):
    """
    LangChain view of an EmbeddingProvider.

    The index always searches by vector, so FAISS only holds this for its
    text-based entry points. The sync methods must not be called from a
    running event loop.
    """

    def __init__(self, provider: EmbeddingProvider):
        self.provider = provider

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
        vectors = await self.provider.embed_documents(texts)
        return _unit_rows(np.vstack(vectors)).tolist() if vectors else []

    async def aembed_query(self, text: str) -> list[float]:
        return _unit_rows(await self.provider.embed_query(text))[0].tolist()

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return asyncio.run(self.aembed_documents(texts))

    def embed_query(self, text: str) -> list[float]:
        return asyncio.run(self.aembed_query(text))


def _to_langchain(document: Document) -> LCDocument:
    return LCDocument(page_content=document.content, metadata=document.metadata.to_dict())


def _from_langchain(document: LCDocument) -> Document:
    return Document(content=document.page_content, metadata=DocumentMetadata.from_dict(document.metadata))


def _wrap(index: faiss.Index, documents: list[Document], embeddings: EmbeddingProvider) -> FAISS:
    """FAISS vector store over an existing index; docstore id i is row i."""
    ids = [str(i) for i in range(len(documents))]
    return FAISS(
        embedding_function=ProviderEmbeddings(embeddings),
        index=index,
        docstore=InMemoryDocstore({doc_id: _to_langchain(d) for doc_id, d in zip(ids, documents)}),
        index_to_docstore_id=dict(enumerate(ids)),
        distance_strategy=DistanceStrategy.MAX_INNER_PRODUCT,
    )


# ---------------------------------------------------------------------------
# IN-MEMORY INDEX (Testing/Development)
# ---------------------------------------------------------------------------


class InMemoryVectorIndex:
    """
    In-memory vector index.

    Dependencies are INJECTED, not created internally.
    Uses cosine similarity for searching. Nothing is persisted: load()
    always fails, so a controller falls back to build().
    """

    def __init__(self, embeddings: EmbeddingProvider):
        """
        Args:
            embeddings: Embedding provider for documents and queries
        """
        self._embeddings = embeddings
        self._documents: list[Document] = []
        self._store: FAISS | None = None
        self.build_count = 0

    @property
    def embeddings(self) -> EmbeddingProvider:
        return self._embeddings

    @property
    def is_ready(self) -> bool:
        return self._store is not None

    @property
    def document_count(self) -> int:
        return len(self._documents)

    @property
    def documents(self) -> list[Document]:
        return list(self._documents)

    async def build(self, documents: list[Document]) -> None:
        """Embed every document in order and swap in the new index."""
        if not documents:
            raise ValueError("No documents to index")

        self.build_count += 1
        tracer = get_tracer()
        with tracer.start_span("rag.build_index", {RAG_INDEX_DOC_COUNT: len(documents)}):
            logger.info(f"Embedding {len(documents)} documents...")
            vectors = await self._embeddings.embed_documents([d.content for d in documents])
            if len(vectors) != len(documents):
                raise EmbeddingError(
                    f"Embedding provider returned {len(vectors)} vectors for {len(documents)} documents"
                )

            matrix = _unit_rows(np.vstack(vectors))
            index = faiss.IndexFlatIP(matrix.shape[1])
            index.add(matrix)
            store = _wrap(index, documents, self._embeddings)
            # Single assignment: readers see either the old or the new index
            self._documents, self._store = list(documents), store
            logger.info(f"Index built. Documents: {len(documents)} | dim: {index.d}")

        await self._persist_after_build()

    async def _persist_after_build(self) -> None:
        await self.save()

    async def load(self) -> None:
        raise IndexLoadError("In-memory index has nothing persisted")

    async def save(self) -> None:
        """No-op for in-memory index."""

    def stored_document_count(self) -> int:
        return self.document_count

    async def retrieve(
        self,
        query: str,
        k: int = 5,
        strategy: RetrievalStrategy = "similarity",
        *,
        fetch_k: int = DEFAULT_FETCH_K,
        lambda_mult: float = DEFAULT_LAMBDA,
    ) -> list[ScoredDocument]:
        """
        Retrieve top-k documents.

        Args:
            query: Query text
            k: Number of results
            strategy: "similarity" (top-k cosine) or "mmr" (relevance + diversity)
            fetch_k: Candidate pool size for MMR
            lambda_mult: MMR relevance/diversity trade-off
        """
        store = self._store
        if store is None:
            raise IndexLoadError("Vector index has not been built or loaded")
        if strategy not in ("similarity", "mmr"):
            raise ValueError(f"Unknown retrieval strategy: {strategy}")
        if k <= 0 or not self._documents:
            return []

        query_vec = _unit_rows(await self._embeddings.embed_query(query))[0].tolist()
        if strategy == "mmr":
            hits = store.max_marginal_relevance_search_with_score_by_vector(
                query_vec, k=k, fetch_k=max(fetch_k, k), lambda_mult=lambda_mult
            )
        else:
            hits = store.similarity_search_with_score_by_vector(query_vec, k=k)

        return [ScoredDocument(document=_from_langchain(doc), score=float(score)) for doc, score in hits]


# ---------------------------------------------------------------------------
# PERSISTENT INDEX (Production)
# ---------------------------------------------------------------------------


class PersistentVectorIndex(InMemoryVectorIndex):
    """
    Vector index persisted to a fixed directory.

    The manifest is encrypted when a secret is configured. The FAISS
    index is re-opened with the active embedding provider, so an index
    written by a different embedding model is rejected.
    """

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        directory: Path,
        secret: str | None = None,
    ):
        super().__init__(embeddings)
        self._dir = Path(directory)
        self._secret = secret

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def manifest_path(self) -> Path:
        return self._dir / MANIFEST_FILE

    @property
    def index_path(self) -> Path:
        return self._dir / INDEX_FILE

    @property
    def meta_path(self) -> Path:
        return self._dir / META_FILE

    def has_artifacts(self) -> bool:
        return all(p.exists() for p in (self.manifest_path, self.index_path, self.meta_path))

    # -- persistence ------------------------------------------------------

    async def _persist_after_build(self) -> None:
        try:
            await self.save()
        except OSError as e:
            # In-memory index keeps serving; the next process rebuilds
            logger.error(f"Failed to persist vector index to {self._dir}: {e}")

    def _write_all(self, documents: list[Document], index: faiss.Index) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        manifest = json.dumps([d.to_dict() for d in documents], ensure_ascii=False)
        meta = json.dumps({
            "count": len(documents),
            "dimension": int(index.d),
            "embeddingModel": self._embeddings.model_name,
        })

        staged = {
            self.index_path: self.index_path.with_name(INDEX_FILE + ".tmp"),
            self.manifest_path: self.manifest_path.with_name(MANIFEST_FILE + ".tmp"),
            self.meta_path: self.meta_path.with_name(META_FILE + ".tmp"),
        }
        try:
            try:
                faiss.write_index(index, str(staged[self.index_path]))
            except RuntimeError as e:
                raise OSError(f"faiss could not write {staged[self.index_path]}: {e}") from e
            write_text_maybe_encrypted(staged[self.manifest_path], manifest, self._secret)
            staged[self.meta_path].write_text(meta, encoding="utf-8")
            for final, tmp in staged.items():
                os.replace(tmp, final)
        finally:
            for tmp in staged.values():
                if tmp.exists():
                    tmp.unlink()

    async def save(self) -> None:
        """Write index, manifest and metadata together."""
        documents, store = self._documents, self._store
        if store is None:
            raise IndexLoadError("Nothing to save: index has not been built")
        await asyncio.to_thread(self._write_all, documents, store.index)
        logger.info(f"Vector index saved to {self._dir} ({len(documents)} documents)")

    def _read_all(self) -> tuple[list[Document], faiss.Index]:
        if not self.has_artifacts():
            raise IndexLoadError(f"Index artifacts missing in {self._dir}")

        documents = read_manifest(self.manifest_path, self._secret)

        try:
            meta = json.loads(self.meta_path.read_text(encoding="utf-8"))
            index = faiss.read_index(str(self.index_path))
        except (OSError, ValueError, RuntimeError) as e:
            raise IndexLoadError(f"Index artifact unreadable: {e}") from e

        if not isinstance(meta, dict):
            raise IndexLoadError("Index metadata is not an object")
        if index.ntotal != len(documents):
            raise IndexLoadError(
                f"Index holds {index.ntotal} vectors for {len(documents)} documents"
            )
        if meta.get("count") != len(documents) or meta.get("dimension") != index.d:
            raise IndexLoadError("Index metadata disagrees with manifest or index")
        model = meta.get("embeddingModel")
        if model != self._embeddings.model_name:
            raise IndexLoadError(
                f"Index was built with {model!r}, active embeddings are {self._embeddings.model_name!r}"
            )
        return documents, index

    async def load(self) -> None:
        documents, index = await asyncio.to_thread(self._read_all)
        self._documents, self._store = documents, _wrap(index, documents, self._embeddings)
        logger.info(f"Vector index loaded from {self._dir} ({len(documents)} documents)")

    def stored_document_count(self) -> int:
        """Count recorded in the manifest; 0 when absent or unreadable."""
        try:
            return len(read_manifest(self.manifest_path, self._secret))
        except IndexLoadError as e:
            logger.debug(f"No usable manifest, treating stored count as 0: {e}")
            return 0


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_vector_index(
    embeddings: EmbeddingProvider,
    config: RagConfig | None = None,
    persistent: bool = True,
) -> InMemoryVectorIndex:
    """
    Factory function to get the appropriate vector index.

    Args:
        embeddings: Embedding provider (injected)
        config: RAG configuration (global config when omitted)
        persistent: Persist under config.vectors_dir (default: True)
    """
    if not persistent:
        return InMemoryVectorIndex(embeddings)

    if config is None:
        from resume_rag.config import get_config
        config = get_config()
    return PersistentVectorIndex(embeddings, config.vectors_dir, secret=config.encryption_secret)
