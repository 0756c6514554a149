"""
Evaluation log for generated suggestions.

Each successful generation appends one line to rag-eval-logs.jsonl:

    {"timestamp": ISO-8601, "input": {jobTitle, jobCompany, jobDescription}, "response": {...}}

A line is encrypted on its own when a secret is configured, so the file
stays append-only and line-oriented either way. The summary is the
offline quality report over that file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from resume_rag.core.errors import DecryptionError
from resume_rag.security.encryption import seal, unseal

logger = logging.getLogger(__name__)


class EvalLogWriter:
    """Append-only JSONL writer, optionally encrypted per line."""

    def __init__(self, path: Path, secret: str | None = None):
        self.path = Path(path)
        self._secret = secret

    def append(self, input_payload: dict[str, Any], response: dict[str, Any]) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "input": input_payload,
            "response": response,
        }
        line = seal(json.dumps(entry, ensure_ascii=False), self._secret)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")


def read_eval_log(path: Path, secret: str | None = None) -> list[dict[str, Any]]:
    """
    Read every readable entry of an eval log.

    Lines that cannot be decrypted or parsed are skipped with a warning.
    A missing file is an empty log.
    """
    path = Path(path)
    if not path.exists():
        return []

    entries: list[dict[str, Any]] = []
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(unseal(line, secret))
            except (DecryptionError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable eval log line {lineno}: {e}")
                continue
            if isinstance(entry, dict):
                entries.append(entry)
    return entries


@dataclass
class EvalLogSummary:
    """Aggregate over an eval log."""
    total_runs: int
    avg_suggestions: float
    failures: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRuns": self.total_runs,
            "avgSuggestions": self.avg_suggestions,
            "failures": self.failures,
        }


def summarize_eval_log(path: Path, secret: str | None = None) -> EvalLogSummary:
    """Total runs, average suggestions per run, and runs that carry an errorMessage."""
    entries = read_eval_log(path, secret)
    if not entries:
        return EvalLogSummary(total_runs=0, avg_suggestions=0.0, failures=0)

    suggestion_counts = []
    failures = 0
    for entry in entries:
        response = entry.get("response") or {}
        if response.get("errorMessage"):
            failures += 1
        suggestions = response.get("suggestions")
        suggestion_counts.append(len(suggestions) if isinstance(suggestions, list) else 0)

    return EvalLogSummary(
        total_runs=len(entries),
        avg_suggestions=sum(suggestion_counts) / len(entries),
        failures=failures,
    )
