"""
Unit Tests for the Corpus Source Adapter

Tests profile loading, the on-disk repository reader, and the record
list an index build starts from.
"""

import asyncio
import json

import pytest

from resume_rag.core.protocols import RepoData
from resume_rag.corpus import (
    CorpusSourceAdapter,
    Document,
    DocumentKind,
    FileRepoDataSource,
    InMemoryRepoDataSource,
    load_user_profile,
    repository_summary,
)
from resume_rag.corpus.document import DocumentMetadata
from resume_rag.security import encrypt_string

SECRET = "repo-secret"


def _write_repo(root, name, data, secret=None):
    repos = root / "repos"
    repos.mkdir(parents=True, exist_ok=True)
    text = json.dumps(data)
    (repos / f"{name}.json").write_text(encrypt_string(text, secret) if secret else text)


# ---------------------------------------------------------------------------
# PROFILE
# ---------------------------------------------------------------------------


class TestLoadUserProfile:

    def test_reads_profile(self, tmp_path):
        path = tmp_path / "user-profile.json"
        path.write_text(json.dumps({"name": "Sam", "skills": ["Go", "Rust"]}))
        assert load_user_profile(path) == {"name": "Sam", "skills": ["Go", "Rust"]}

    def test_missing_profile_is_empty(self, tmp_path):
        assert load_user_profile(tmp_path / "missing.json") == {}

    def test_invalid_json_is_empty(self, tmp_path):
        path = tmp_path / "user-profile.json"
        path.write_text("{not json")
        assert load_user_profile(path) == {}

    def test_non_object_is_empty(self, tmp_path):
        path = tmp_path / "user-profile.json"
        path.write_text("[1, 2, 3]")
        assert load_user_profile(path) == {}


# ---------------------------------------------------------------------------
# FILE REPO SOURCE
# ---------------------------------------------------------------------------


class TestFileRepoDataSource:

    def test_lists_repos_sorted(self, tmp_path):
        _write_repo(tmp_path, "zeta", {"name": "zeta"})
        _write_repo(tmp_path, "alpha", {"name": "alpha"})
        source = FileRepoDataSource(tmp_path)
        assert asyncio.run(source.list_synced_repositories()) == ["alpha", "zeta"]

    def test_no_repos_dir(self, tmp_path):
        source = FileRepoDataSource(tmp_path)
        assert asyncio.run(source.list_synced_repositories()) == []

    def test_reads_repo_data(self, tmp_path):
        _write_repo(tmp_path, "kv-store", {
            "name": "kv-store",
            "description": "KV store",
            "languages": {"Rust": 100, "Shell": 5},
            "readme": "# kv-store",
            "lastUpdated": "2024-05-01T00:00:00Z",
        })
        repo = asyncio.run(FileRepoDataSource(tmp_path).get_repo_data("kv-store"))
        assert repo.name == "kv-store"
        assert list(repo.languages) == ["Rust", "Shell"]
        assert repo.readme == "# kv-store"
        assert repo.last_updated == "2024-05-01T00:00:00Z"

    def test_reads_encrypted_repo_data(self, tmp_path):
        _write_repo(tmp_path, "kv-store", {"name": "kv-store", "readme": "secret readme"}, SECRET)
        repo = asyncio.run(FileRepoDataSource(tmp_path, secret=SECRET).get_repo_data("kv-store"))
        assert repo.readme == "secret readme"

    def test_unreadable_repo_is_none(self, tmp_path):
        (tmp_path / "repos").mkdir()
        (tmp_path / "repos" / "broken.json").write_text("{oops")
        assert asyncio.run(FileRepoDataSource(tmp_path).get_repo_data("broken")) is None

    def test_missing_repo_is_none(self, tmp_path):
        assert asyncio.run(FileRepoDataSource(tmp_path).get_repo_data("nope")) is None

    def test_last_sync_time(self, tmp_path):
        (tmp_path / "last-sync.json").write_text(json.dumps({"lastSync": "2024-05-01T12:00:00Z"}))
        assert FileRepoDataSource(tmp_path).last_sync_time() == "2024-05-01T12:00:00Z"

    def test_last_sync_time_absent(self, tmp_path):
        assert FileRepoDataSource(tmp_path).last_sync_time() is None


# ---------------------------------------------------------------------------
# ADAPTER
# ---------------------------------------------------------------------------


class TestCorpusSourceAdapter:

    def test_summary_format(self):
        repo = RepoData(name="kv-store", description="", languages={"Rust": 1, "Go": 2})
        assert repository_summary(repo) == (
            "Repository: kv-store\nLanguages: Rust, Go\nDescription: kv-store"
        )

    def test_profile_first_then_readme_and_summary(self, repo_source):
        adapter = CorpusSourceAdapter(repo_source, profile={"skills": ["Go", "Rust"]})
        records = asyncio.run(adapter.list_corpus_records())

        assert [r.source for r in records] == [
            "user-profile",
            "github-readme-kv-store",
            "github-repo-kv-store",
            "github-repo-dotfiles",
        ]
        assert records[0].content == json.dumps({"skills": ["Go", "Rust"]}, indent=2)
        assert records[0].kind is DocumentKind.PROFILE
        assert records[1].kind is DocumentKind.README
        assert records[1].title == "kv-store"
        assert records[3].content.startswith("Repository: dotfiles\nLanguages: Shell")

    def test_missing_profile_still_yields_record(self, tmp_path):
        adapter = CorpusSourceAdapter(InMemoryRepoDataSource(), profile_path=tmp_path / "none.json")
        records = asyncio.run(adapter.list_corpus_records())
        assert len(records) == 1
        assert records[0].content == "{}"

    def test_profile_path_is_reread(self, tmp_path):
        path = tmp_path / "user-profile.json"
        path.write_text(json.dumps({"v": 1}))
        adapter = CorpusSourceAdapter(InMemoryRepoDataSource(), profile_path=path)
        first = asyncio.run(adapter.list_corpus_records())
        path.write_text(json.dumps({"v": 2}))
        second = asyncio.run(adapter.list_corpus_records())
        assert '"v": 1' in first[0].content
        assert '"v": 2' in second[0].content

    def test_failing_repo_is_skipped(self, repo_source):
        class Flaky(InMemoryRepoDataSource):
            async def get_repo_data(self, name):
                if name == "kv-store":
                    raise OSError("disk gone")
                return await super().get_repo_data(name)

        flaky = Flaky([RepoData(name="kv-store"), RepoData(name="dotfiles")])
        records = asyncio.run(CorpusSourceAdapter(flaky, profile={}).list_corpus_records())
        assert [r.source for r in records] == ["user-profile", "github-repo-dotfiles"]

    def test_sync_hook_supplies_names(self, repo_source):
        async def sync():
            return ["dotfiles"]

        adapter = CorpusSourceAdapter(repo_source, profile={}, sync=sync)
        records = asyncio.run(adapter.list_corpus_records())
        assert [r.source for r in records] == ["user-profile", "github-repo-dotfiles"]

    def test_failing_sync_falls_back_to_stored_names(self, repo_source):
        async def sync():
            raise RuntimeError("rate limited")

        adapter = CorpusSourceAdapter(repo_source, profile={}, sync=sync)
        records = asyncio.run(adapter.list_corpus_records())
        assert "github-repo-kv-store" in [r.source for r in records]

    def test_listing_reports_last_sync(self, tmp_path, caplog):
        (tmp_path / "last-sync.json").write_text(json.dumps({"lastSync": "2024-05-01T12:00:00Z"}))
        adapter = CorpusSourceAdapter(FileRepoDataSource(tmp_path), profile={})

        with caplog.at_level("INFO", logger="resume_rag.corpus.sources"):
            asyncio.run(adapter.list_corpus_records())

        assert "last repository sync: 2024-05-01T12:00:00Z" in caplog.text

    def test_listing_without_sync_reports_never(self, repo_source, caplog):
        with caplog.at_level("INFO", logger="resume_rag.corpus.sources"):
            asyncio.run(CorpusSourceAdapter(repo_source, profile={}).list_corpus_records())

        assert "last repository sync: never" in caplog.text


# ---------------------------------------------------------------------------
# DOCUMENT MODEL
# ---------------------------------------------------------------------------


class TestDocument:

    def test_empty_content_rejected(self):
        with pytest.raises(ValueError):
            Document(content="", metadata=DocumentMetadata(source="s", kind=DocumentKind.README))

    def test_manifest_dict_uses_camel_case(self):
        doc = Document(
            content="chunk",
            metadata=DocumentMetadata(source="s", kind=DocumentKind.README, title="t", chunk_index=2),
        )
        assert doc.to_dict() == {
            "content": "chunk",
            "metadata": {"source": "s", "kind": "readme", "title": "t", "chunkIndex": 2},
        }
        assert Document.from_dict(doc.to_dict()) == doc

    def test_reads_legacy_keys(self):
        doc = Document.from_dict({
            "pageContent": "old",
            "metadata": {"source": "github-repo-x", "type": "repository", "chunk": 1},
        })
        assert doc.content == "old"
        assert doc.kind is DocumentKind.REPOSITORY
        assert doc.metadata.chunk_index == 1

    def test_missing_content_is_rejected(self):
        with pytest.raises(ValueError):
            Document.from_dict({"metadata": {"source": "s", "kind": "profile"}})
        with pytest.raises(ValueError):
            Document.from_dict({"content": 42, "metadata": {"source": "s", "kind": "profile"}})
