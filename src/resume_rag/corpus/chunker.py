"""
Document chunking for retrieval.

Greedy forward scan with soft sentence boundaries:
1. Take up to max_size characters
2. If more text follows, cut after the last newline or period that sits
   past 70% of max_size (no mid-sentence breaks when avoidable)
3. Step the cursor back by `overlap` characters so neighbouring chunks
   share context

Deterministic for a given (text, max_size, overlap), which the freshness
check depends on: it compares document counts between builds.
"""

from __future__ import annotations

import logging
from typing import Iterable

from resume_rag.corpus.document import CorpusRecord, Document

logger = logging.getLogger(__name__)

CHUNK_THRESHOLD = 900
CHUNK_SIZE = 800
CHUNK_OVERLAP = 100
BREAK_WINDOW = 0.7


def _find_break(window: str, max_size: int) -> int | None:
    """Offset just past the last newline/period beyond the break window."""
    cut = max(window.rfind("\n"), window.rfind("."))
    if cut > max_size * BREAK_WINDOW:
        return cut + 1
    return None


def chunk_text(text: str, max_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[str]:
    """
    Split text into bounded, overlapping passages.

    Args:
        text: Text to split
        max_size: Hard upper bound on chunk length
        overlap: Characters shared between consecutive chunks

    Returns:
        Chunks in document order; [] for empty text
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")

    chunks: list[str] = []
    length = len(text)
    start = 0

    while start < length:
        end = min(start + max_size, length)
        if end < length:
            brk = _find_break(text[start:end], max_size)
            if brk is not None:
                end = start + brk

        chunks.append(text[start:end])
        if end >= length:
            break

        next_start = max(end - overlap, 0)
        # Overlap must never stall the scan
        start = next_start if next_start > start else end

    return chunks


def prepare_documents(
    records: Iterable[CorpusRecord],
    *,
    threshold: int = CHUNK_THRESHOLD,
    max_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> list[Document]:
    """
    Turn corpus records into indexable documents.

    Records longer than `threshold` are chunked and each chunk carries its
    chunk index; shorter records pass through whole. Blank records and
    whitespace-only chunks are dropped.
    """
    documents: list[Document] = []

    for record in records:
        if not record.content.strip():
            logger.debug(f"Skipping empty record {record.source}")
            continue

        parent = Document(content=record.content, metadata=record.metadata)
        if len(record.content) <= threshold:
            documents.append(parent)
            continue

        pieces = chunk_text(record.content, max_size=max_size, overlap=overlap)
        for idx, piece in enumerate(pieces):
            if piece.strip():
                documents.append(parent.with_chunk_index(piece, idx))

    logger.debug(f"Prepared {len(documents)} documents")
    return documents
