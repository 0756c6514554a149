"""
Corpus source adapter - the candidate's background as plain-text records.

Inputs:
- The user profile JSON (one record)
- Repository metadata persisted by the GitHub sync job; each repository
  yields up to two records: its README and a one-paragraph summary

Repositories whose data cannot be read are skipped. Writing repository
data belongs to the sync job; an optional `sync` callable lets callers
refresh it before the corpus is read.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

from resume_rag.core.errors import DecryptionError
from resume_rag.core.protocols import RepoData, RepoDataSource
from resume_rag.corpus.document import CorpusRecord, DocumentKind
from resume_rag.security.encryption import unseal

logger = logging.getLogger(__name__)

PROFILE_SOURCE = "user-profile"

SyncHook = Callable[[], Awaitable[list[str]]]


# ---------------------------------------------------------------------------
# PROFILE
# ---------------------------------------------------------------------------


def load_user_profile(path: Path) -> dict[str, Any]:
    """Read the profile JSON; a missing or invalid file yields {}."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning(f"User profile not found at {path}")
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load user profile from {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"User profile at {path} is not a JSON object")
        return {}
    return data


# ---------------------------------------------------------------------------
# REPOSITORY SOURCES
# ---------------------------------------------------------------------------


def _repo_from_dict(name: str, data: dict[str, Any]) -> RepoData:
    languages = data.get("languages") or {}
    if isinstance(languages, list):
        languages = {lang: 0 for lang in languages}
    return RepoData(
        name=data.get("name") or name,
        description=data.get("description") or "",
        languages=dict(languages),
        readme=data.get("readme") or "",
        last_updated=data.get("lastUpdated"),
    )


class FileRepoDataSource:
    """
    Reads the GitHub sync job's output.

    Layout:
        <root>/repos/<name>.json   {name, description, languages, readme, lastUpdated}
        <root>/last-sync.json      {lastSync}

    Files may be encrypted with the same secret as the index manifest.
    """

    def __init__(self, root: Path, secret: str | None = None):
        self._root = Path(root)
        self._secret = secret

    @property
    def repos_dir(self) -> Path:
        return self._root / "repos"

    def _read_json(self, path: Path) -> Any:
        return json.loads(unseal(path.read_text(encoding="utf-8"), self._secret))

    async def list_synced_repositories(self) -> list[str]:
        if not self.repos_dir.is_dir():
            return []
        return sorted(p.stem for p in self.repos_dir.glob("*.json"))

    async def get_repo_data(self, name: str) -> RepoData | None:
        path = self.repos_dir / f"{name}.json"
        if not path.exists():
            return None
        try:
            data = await asyncio.to_thread(self._read_json, path)
        except (OSError, json.JSONDecodeError, DecryptionError) as e:
            logger.warning(f"Failed to read data for repo {name}: {e}")
            return None
        if not isinstance(data, dict):
            return None
        return _repo_from_dict(name, data)

    def last_sync_time(self) -> str | None:
        """Timestamp of the last successful sync, if recorded."""
        path = self._root / "last-sync.json"
        if not path.exists():
            return None
        try:
            return self._read_json(path).get("lastSync")
        except (OSError, json.JSONDecodeError, DecryptionError, AttributeError) as e:
            logger.warning(f"Failed to read last sync time: {e}")
            return None


class InMemoryRepoDataSource:
    """Repository source for testing: no disk, no network."""

    def __init__(self, repos: list[RepoData] | None = None):
        self._repos: dict[str, RepoData] = {r.name: r for r in (repos or [])}
        self.last_sync: str | None = None

    def add(self, repo: RepoData) -> None:
        self._repos[repo.name] = repo

    async def list_synced_repositories(self) -> list[str]:
        return list(self._repos)

    async def get_repo_data(self, name: str) -> RepoData | None:
        return self._repos.get(name)

    def last_sync_time(self) -> str | None:
        return self.last_sync


# ---------------------------------------------------------------------------
# ADAPTER
# ---------------------------------------------------------------------------


def repository_summary(repo: RepoData) -> str:
    """One-paragraph description combining name, languages and description."""
    languages = ", ".join(repo.languages.keys())
    return (
        f"Repository: {repo.name}\n"
        f"Languages: {languages}\n"
        f"Description: {repo.description or repo.name}"
    )


class CorpusSourceAdapter:
    """Produces the full list of corpus records for an index build."""

    def __init__(
        self,
        repos: RepoDataSource,
        profile: dict[str, Any] | None = None,
        profile_path: Path | None = None,
        sync: SyncHook | None = None,
    ):
        """
        Args:
            repos: Repository metadata source
            profile: Profile dict (takes precedence over profile_path)
            profile_path: Profile JSON read on every listing
            sync: Optional hook that refreshes repository data and returns repo names
        """
        self._repos = repos
        self._profile = profile
        self._profile_path = profile_path
        self._sync = sync

    def _current_profile(self) -> dict[str, Any]:
        if self._profile is not None:
            return self._profile
        if self._profile_path is not None:
            return load_user_profile(self._profile_path)
        return {}

    async def _repo_names(self) -> list[str]:
        if self._sync is not None:
            try:
                return list(await self._sync())
            except Exception as e:
                logger.warning(f"Repository sync failed, using stored data: {e}")
        return await self._repos.list_synced_repositories()

    async def list_corpus_records(self) -> list[CorpusRecord]:
        records = [
            CorpusRecord(
                content=json.dumps(self._current_profile(), indent=2, ensure_ascii=False),
                source=PROFILE_SOURCE,
                kind=DocumentKind.PROFILE,
            )
        ]

        for name in await self._repo_names():
            try:
                repo = await self._repos.get_repo_data(name)
            except Exception as e:
                logger.warning(f"Skipping repository {name}: {e}")
                continue
            if repo is None:
                continue

            if repo.readme:
                records.append(CorpusRecord(
                    content=repo.readme,
                    source=f"github-readme-{name}",
                    kind=DocumentKind.README,
                    title=name,
                ))
            records.append(CorpusRecord(
                content=repository_summary(repo),
                source=f"github-repo-{name}",
                kind=DocumentKind.REPOSITORY,
                title=name,
            ))

        logger.info(
            f"Listed {len(records)} corpus records "
            f"(last repository sync: {self._repos.last_sync_time() or 'never'})"
        )
        return records
