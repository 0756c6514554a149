"""
Shared fixtures.

Every test runs with tracing off, a fresh config, and no network or
model downloads: MockEmbeddings and MockCompletionService stand in for
the real backends.
"""

import json

import pytest

from resume_rag.config import reset_config
from resume_rag.core.protocols import RepoData
from resume_rag.corpus.document import CorpusRecord, DocumentKind
from resume_rag.corpus.sources import InMemoryRepoDataSource
from resume_rag.embeddings import MockEmbeddings
from resume_rag.observability import reset_config as reset_tracing_config
from resume_rag.observability import reset_tracer


SUGGESTION_JSON = json.dumps({
    "suggestions": ["Highlight Rust KV store project"],
    "relevantProjects": ["kv-store"],
    "skillsToHighlight": ["Rust"],
    "experienceToHighlight": [],
})


class StaticCorpus:
    """Corpus source with a fixed, mutable record list."""

    def __init__(self, records):
        self.records = list(records)
        self.calls = 0

    async def list_corpus_records(self):
        self.calls += 1
        return list(self.records)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Fresh config and no-op tracing for every test."""
    for name in (
        "OPENAI_API_KEY",
        "DATA_ENCRYPTION_KEY",
        "RAG_EMBEDDING_BACKEND",
        "RAG_TRACING_ENABLED",
        "RAG_TRACING_CAPTURE_CONTENT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RAG_DATA_DIR", str(tmp_path / "data"))
    reset_config()
    reset_tracing_config()
    reset_tracer()
    yield
    reset_config()
    reset_tracing_config()
    reset_tracer()


@pytest.fixture
def mock_embeddings():
    return MockEmbeddings()


@pytest.fixture
def rust_records():
    """Profile + README corpus used by the end-to-end scenario."""
    return [
        CorpusRecord(
            content="Skills: Go, Rust",
            source="user-profile",
            kind=DocumentKind.PROFILE,
        ),
        CorpusRecord(
            content="A distributed key-value store written in Rust",
            source="github-readme-kv-store",
            kind=DocumentKind.README,
            title="kv-store",
        ),
    ]


@pytest.fixture
def static_corpus(rust_records):
    return StaticCorpus(rust_records)


@pytest.fixture
def repo_source():
    return InMemoryRepoDataSource([
        RepoData(
            name="kv-store",
            description="Distributed key-value store",
            languages={"Rust": 52000, "Shell": 800},
            readme="A distributed key-value store written in Rust",
        ),
        RepoData(name="dotfiles", languages={"Shell": 1200}),
    ])
