"""
Document model for the retrieval system.

Single responsibility: Define the structure of raw corpus records and of
the chunked documents stored in vector indexes.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class DocumentKind(str, Enum):
    """Where a piece of retrievable knowledge came from."""
    PROFILE = "profile"
    README = "readme"
    REPOSITORY = "repository"


@dataclass(frozen=True)
class DocumentMetadata:
    """Provenance attached to every document."""
    source: str
    kind: DocumentKind
    title: str | None = None
    chunk_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Manifest form (camelCase keys, optional keys omitted)."""
        data: dict[str, Any] = {"source": self.source, "kind": self.kind.value}
        if self.title is not None:
            data["title"] = self.title
        if self.chunk_index is not None:
            data["chunkIndex"] = self.chunk_index
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentMetadata":
        # Older manifests used "type" and "chunk"
        kind = data.get("kind", data.get("type"))
        chunk_index = data.get("chunkIndex", data.get("chunk"))
        return cls(
            source=str(data["source"]),
            kind=DocumentKind(kind),
            title=data.get("title"),
            chunk_index=int(chunk_index) if chunk_index is not None else None,
        )


@dataclass(frozen=True)
class CorpusRecord:
    """
    Raw external knowledge before chunking.

    One record for the user profile; per repository a README record and a
    repository-summary record.
    """
    content: str
    source: str
    kind: DocumentKind
    title: str | None = None

    @property
    def metadata(self) -> DocumentMetadata:
        return DocumentMetadata(source=self.source, kind=self.kind, title=self.title)


@dataclass(frozen=True)
class Document:
    """
    A unit of retrievable knowledge.

    Created by the chunker, embedded once at build time, never mutated:
    a rebuild replaces the whole set.
    """
    content: str
    metadata: DocumentMetadata

    def __post_init__(self) -> None:
        if not self.content:
            raise ValueError("Document content must be non-empty")

    @property
    def source(self) -> str:
        return self.metadata.source

    @property
    def kind(self) -> DocumentKind:
        return self.metadata.kind

    def with_chunk_index(self, content: str, index: int) -> "Document":
        """Child document for one chunk of this document."""
        return Document(content=content, metadata=replace(self.metadata, chunk_index=index))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the manifest."""
        return {"content": self.content, "metadata": self.metadata.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        # Earlier manifests stored the text under pageContent
        content = data.get("content", data.get("pageContent"))
        if not isinstance(content, str):
            raise ValueError(f"Document content must be a string, got {type(content).__name__}")
        return cls(content=content, metadata=DocumentMetadata.from_dict(data["metadata"]))
