"""
Index freshness controller.

Owns the index lifecycle and its only lock-like discipline: at most one
initialization and at most one update in flight. Concurrent callers
attach to the pending task instead of starting their own build.

STATE MACHINE:
--------------
UNINITIALIZED -> INITIALIZING -> READY
UNINITIALIZED -> INITIALIZING -> FAILED

FAILED re-raises the stored error to every caller that was waiting on
that attempt. There is no automatic retry; the next explicit call to
ensure_fresh() starts a new attempt.

UPDATE:
-------
Recompute the corpus, compare its document count with the count in the
persisted manifest, rebuild only when they differ. A corpus edit that
keeps the count unchanged is not detected.

Rebuild listeners run as soon as a rebuild lands, even when the caller
that started it has already given up on the timeout.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from resume_rag.core.errors import RagInitializationError, RebuildTimeoutError
from resume_rag.core.protocols import VectorIndex
from resume_rag.corpus.chunker import prepare_documents
from resume_rag.corpus.document import CorpusRecord, Document
from resume_rag.observability import get_tracer
from resume_rag.observability.attributes import (
    RAG_INDEX_DOC_COUNT,
    RAG_INDEX_PREVIOUS_DOC_COUNT,
    RAG_INDEX_REBUILT,
)

logger = logging.getLogger(__name__)

DEFAULT_REBUILD_TIMEOUT_S = 300.0


class CorpusSource(Protocol):
    async def list_corpus_records(self) -> list[CorpusRecord]:
        ...


class IndexState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass
class UpdateOutcome:
    """What an update decided."""
    rebuilt: bool
    previous_count: int
    new_count: int


class FreshnessController:
    """Serializes index initialization and count-based rebuilds."""

    def __init__(
        self,
        index: VectorIndex,
        corpus: CorpusSource,
        *,
        rebuild_timeout_s: float = DEFAULT_REBUILD_TIMEOUT_S,
        prepare: Callable[[list[CorpusRecord]], list[Document]] = prepare_documents,
    ):
        """
        Args:
            index: Vector index to load/build (injected)
            corpus: Source of corpus records
            rebuild_timeout_s: Hard limit for update()
            prepare: Records -> documents (chunking policy)
        """
        self._index = index
        self._corpus = corpus
        self._timeout = rebuild_timeout_s
        self._prepare = prepare
        self._state = IndexState.UNINITIALIZED
        self._error: BaseException | None = None
        self._init_task: asyncio.Future | None = None
        self._update_task: asyncio.Future | None = None
        self._background: set[asyncio.Future] = set()
        self._rebuild_listeners: list[Callable[[], None]] = []

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def error(self) -> BaseException | None:
        """Error from the last failed initialization, if any."""
        return self._error

    @property
    def index(self) -> VectorIndex:
        return self._index

    def add_rebuild_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback run after every completed update rebuild."""
        self._rebuild_listeners.append(callback)

    async def compute_documents(self) -> list[Document]:
        """Fresh corpus pass: records -> chunked documents."""
        records = await self._corpus.list_corpus_records()
        return self._prepare(records)

    # -- initialization ---------------------------------------------------

    async def ensure_fresh(self) -> None:
        """Load or build the index once; safe to call concurrently."""
        if self._state is IndexState.READY:
            return

        if self._init_task is None:
            self._state = IndexState.INITIALIZING
            self._error = None
            self._init_task = asyncio.ensure_future(self._initialize())

        # Shielded: a cancelled waiter must not cancel the shared build
        await asyncio.shield(self._init_task)

    async def _initialize(self) -> None:
        tracer = get_tracer()
        try:
            with tracer.start_span("rag.ensure_fresh") as span:
                try:
                    await self._index.load()
                except Exception as e:
                    logger.warning(f"Vector index unavailable ({e}); building from scratch")
                    documents = await self.compute_documents()
                    await self._index.build(documents)
                span.set_attribute(RAG_INDEX_DOC_COUNT, self._index.document_count)
            self._state = IndexState.READY
        except Exception as e:
            self._state = IndexState.FAILED
            self._error = e
            logger.error(f"RAG index initialization failed: {e}")
            raise RagInitializationError(f"RAG service failed to initialize: {e}") from e
        finally:
            self._init_task = None

    # -- update -----------------------------------------------------------

    async def update(self) -> UpdateOutcome:
        """
        Rebuild the index if the corpus document count changed.

        Raises:
            RebuildTimeoutError: the update did not finish within the timeout.
                The update keeps running in the background; the previous
                on-disk index stays loadable.
        """
        if self._update_task is None or self._update_task.done():
            self._update_task = asyncio.ensure_future(self._update())
            self._background.add(self._update_task)
            self._update_task.add_done_callback(self._forget)

        try:
            return await asyncio.wait_for(asyncio.shield(self._update_task), timeout=self._timeout)
        except asyncio.TimeoutError:
            raise RebuildTimeoutError(
                f"Vector store update timed out after {self._timeout:g} seconds"
            ) from None

    def _forget(self, task: asyncio.Future) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Background update finished with error: {task.exception()}")

    async def _update(self) -> UpdateOutcome:
        tracer = get_tracer()
        with tracer.start_span("rag.update_vector_store") as span:
            await self.ensure_fresh()

            previous = self._index.stored_document_count()
            documents = await self.compute_documents()
            span.set_attribute(RAG_INDEX_PREVIOUS_DOC_COUNT, previous)
            span.set_attribute(RAG_INDEX_DOC_COUNT, len(documents))

            if previous == len(documents):
                logger.info("Vector store already up to date – skipping rebuild")
                span.set_attribute(RAG_INDEX_REBUILT, False)
                return UpdateOutcome(rebuilt=False, previous_count=previous, new_count=len(documents))

            logger.info(
                f"Vector store out of date (old={previous}, new={len(documents)}). Rebuilding…"
            )
            await self._index.build(documents)
            span.set_attribute(RAG_INDEX_REBUILT, True)
            for callback in self._rebuild_listeners:
                callback()
            return UpdateOutcome(rebuilt=True, previous_count=previous, new_count=len(documents))
