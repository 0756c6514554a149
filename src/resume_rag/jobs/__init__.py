"""
Jobs - read access to tracked job postings.
"""

from resume_rag.jobs.store import InMemoryJobStore, SqliteJobStore, get_job_store

__all__ = ["InMemoryJobStore", "SqliteJobStore", "get_job_store"]
