"""
Job store implementations.

Pattern: Protocol → Production impl → Test double → Factory

- SqliteJobStore: reads the application's `jobs` table, never writes
- InMemoryJobStore: dict-backed, for tests
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

from resume_rag.core.protocols import JobRecord, JobStore

if TYPE_CHECKING:
    from resume_rag.config import RagConfig

logger = logging.getLogger(__name__)

# Checked in order; the first non-empty column is the job text
DESCRIPTION_COLUMNS = ("description", "summary")


class SqliteJobStore:
    """
    Read-only view of the jobs table.

    The database is opened per lookup in read-only mode, so the store
    never holds a connection across awaits and cannot modify the file.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        return conn

    def get_job(self, job_id: str) -> JobRecord | None:
        if not self.db_path.exists():
            logger.warning(f"Jobs database not found: {self.db_path}")
            return None

        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None

        columns = row.keys()
        description = None
        for column in DESCRIPTION_COLUMNS:
            if column in columns and row[column]:
                description = row[column]
                break

        return JobRecord(
            id=str(row["id"]),
            title=row["title"],
            company=row["company"],
            description=description,
        )


class InMemoryJobStore:
    """Dict-backed job store for testing."""

    def __init__(self, jobs: list[JobRecord] | None = None):
        self._jobs = {job.id: job for job in jobs or []}

    def add(self, job: JobRecord) -> None:
        self._jobs[job.id] = job

    def get_job(self, job_id: str) -> JobRecord | None:
        return self._jobs.get(job_id)


def get_job_store(config: RagConfig | None = None) -> JobStore:
    """Factory function: the SQLite store at config.jobs_db."""
    if config is None:
        from resume_rag.config import get_config
        config = get_config()
    return SqliteJobStore(config.jobs_db)
