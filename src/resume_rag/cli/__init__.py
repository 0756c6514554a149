"""
CLI module - command-line interface to the RAG service.

Provides entry points for:
- Manual index freshness checks
- Suggestion, rewrite and project-ranking runs
- The eval-log report
"""

from resume_rag.cli.commands import (
    main,
    run_update_cli,
    run_suggest_cli,
    run_rewrite_cli,
    run_projects_cli,
    run_eval_report_cli,
)

__all__ = [
    "main",
    "run_update_cli",
    "run_suggest_cli",
    "run_rewrite_cli",
    "run_projects_cli",
    "run_eval_report_cli",
]
