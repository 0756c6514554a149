"""
Corpus module - raw background data to indexable documents.

This module provides:
- Document / CorpusRecord: the data model
- CorpusSourceAdapter: profile + repository records
- chunk_text / prepare_documents: bounded, overlapping passages
"""

from resume_rag.corpus.document import (
    Document,
    DocumentKind,
    DocumentMetadata,
    CorpusRecord,
)
from resume_rag.corpus.chunker import (
    CHUNK_THRESHOLD,
    CHUNK_SIZE,
    CHUNK_OVERLAP,
    chunk_text,
    prepare_documents,
)
from resume_rag.corpus.sources import (
    CorpusSourceAdapter,
    FileRepoDataSource,
    InMemoryRepoDataSource,
    load_user_profile,
    repository_summary,
)

__all__ = [
    # Model
    "Document",
    "DocumentKind",
    "DocumentMetadata",
    "CorpusRecord",
    # Chunking
    "CHUNK_THRESHOLD",
    "CHUNK_SIZE",
    "CHUNK_OVERLAP",
    "chunk_text",
    "prepare_documents",
    # Sources
    "CorpusSourceAdapter",
    "FileRepoDataSource",
    "InMemoryRepoDataSource",
    "load_user_profile",
    "repository_summary",
]
