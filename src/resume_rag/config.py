"""
RAG Configuration

Loads runtime settings from environment variables.
Every secret is OPTIONAL:
- No OPENAI_API_KEY: embeddings fall back to the local model and the
  completion service reports itself unavailable.
- No DATA_ENCRYPTION_KEY: manifests and eval logs are written as plain JSON.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


def _default_data_dir() -> Path:
    return Path.home() / ".resume-rag"


@dataclass
class RagConfig:
    """Configuration for the RAG subsystem.

    Environment Variables:
        OPENAI_API_KEY: Remote embeddings + completion service credential
        DATA_ENCRYPTION_KEY: Secret for encryption at rest (opt-in)
        RAG_DATA_DIR: App-private data directory (default: ~/.resume-rag)
        GITHUB_DATA_DIR: Where the GitHub sync job writes repo JSON
        USER_PROFILE_PATH: Candidate profile JSON
        JOBS_DB_PATH: SQLite database holding the jobs table
        RAG_COMPLETION_MODEL: Chat model (default: gpt-4)
        RAG_TEMPERATURE: Sampling temperature (default: 0.7)
        RAG_EMBEDDING_MODEL: Remote embedding model
        RAG_LOCAL_EMBEDDING_MODEL: Local sentence-transformers model
        RAG_EMBEDDING_BACKEND: auto | remote | local | mock (default: auto)
        RAG_REBUILD_TIMEOUT_SECONDS: Hard limit on update_vector_store (default: 300)
        RAG_EVAL_LOGGING: Append eval-log entries on success (default: true)
    """

    openai_api_key: str | None = None
    encryption_secret: str | None = None
    data_dir: Path = field(default_factory=_default_data_dir)
    github_data_dir: Path | None = None
    profile_path: Path = field(default_factory=lambda: Path("data") / "user-profile.json")
    jobs_db_path: Path | None = None
    completion_model: str = "gpt-4"
    temperature: float = 0.7
    remote_embedding_model: str = "text-embedding-3-small"
    local_embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_backend: str = "auto"
    rebuild_timeout_s: float = 300.0
    eval_logging: bool = True

    @classmethod
    def from_env(cls) -> "RagConfig":
        """Load config from environment variables."""
        data_dir = Path(os.environ.get("RAG_DATA_DIR") or _default_data_dir()).expanduser()
        github_dir = os.environ.get("GITHUB_DATA_DIR")
        jobs_db = os.environ.get("JOBS_DB_PATH")
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
            encryption_secret=os.environ.get("DATA_ENCRYPTION_KEY") or None,
            data_dir=data_dir,
            github_data_dir=Path(github_dir).expanduser() if github_dir else None,
            profile_path=Path(
                os.environ.get("USER_PROFILE_PATH", str(Path("data") / "user-profile.json"))
            ).expanduser(),
            jobs_db_path=Path(jobs_db).expanduser() if jobs_db else None,
            completion_model=os.environ.get("RAG_COMPLETION_MODEL", "gpt-4"),
            temperature=float(os.environ.get("RAG_TEMPERATURE", "0.7")),
            remote_embedding_model=os.environ.get("RAG_EMBEDDING_MODEL", "text-embedding-3-small"),
            local_embedding_model=os.environ.get(
                "RAG_LOCAL_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
            ),
            embedding_backend=os.environ.get("RAG_EMBEDDING_BACKEND", "auto").lower(),
            rebuild_timeout_s=float(os.environ.get("RAG_REBUILD_TIMEOUT_SECONDS", "300")),
            eval_logging=_env_flag("RAG_EVAL_LOGGING", "true"),
        )

    # Derived paths -------------------------------------------------------

    @property
    def rag_dir(self) -> Path:
        return self.data_dir / "rag-data"

    @property
    def vectors_dir(self) -> Path:
        return self.rag_dir / "vectors"

    @property
    def eval_log_path(self) -> Path:
        return self.rag_dir / "rag-eval-logs.jsonl"

    @property
    def repos_root(self) -> Path:
        return self.github_data_dir or (self.data_dir / "github-data")

    @property
    def jobs_db(self) -> Path:
        return self.jobs_db_path or (self.data_dir / "jobs.db")

    def has_openai(self) -> bool:
        """Check if an OpenAI API key is configured."""
        return bool(self.openai_api_key)

    def has_encryption(self) -> bool:
        """Check if encryption at rest is enabled."""
        return bool(self.encryption_secret)


# Global config singleton
_config: RagConfig | None = None


def get_config() -> RagConfig:
    """Get the global RAG config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = RagConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
