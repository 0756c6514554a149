"""
CLI commands - entry points for the RAG service.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment
3. Build the RAG context and run one operation
4. Print the result as camelCase JSON
5. Return exit code (1 when the response carries errorMessage)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from resume_rag.service import RagContext, build_context


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _job_parser(description: str) -> argparse.ArgumentParser:
    """Arguments shared by suggest / rewrite / projects."""
    parser = argparse.ArgumentParser(description=description)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--job-id", help="Read title/company/description from the jobs database")
    source.add_argument("--title", help="Job title")
    parser.add_argument("--company", default="", help="Hiring company (with --title)")
    parser.add_argument("--description", default=None, help="Job description text (with --title)")
    parser.add_argument("--description-file", type=Path, help="Read the job description from a file")
    parser.add_argument("--resume", type=Path, help="Current resume as a text file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def _read_optional(path: Path | None) -> str | None:
    return path.read_text(encoding="utf-8") if path else None


async def _run_job_operation(
    ctx: RagContext,
    operation: str,
    args: argparse.Namespace,
    resume_text: str,
    description: str | None,
):
    from resume_rag.generation.schemas import SuggestionRequest

    if args.job_id:
        method = getattr(ctx, f"{operation}_for_job")
        return await method(args.job_id, resume_text)

    request = SuggestionRequest(
        job_title=args.title,
        job_company=args.company,
        job_description=description or args.description,
        base_resume_text=resume_text,
    )
    return await getattr(ctx, operation)(request)


def _job_command(operation: str, description: str) -> int:
    parser = _job_parser(description)
    args = parser.parse_args()
    _setup_logging(args.verbose)

    try:
        resume_text = _read_optional(args.resume) or ""
        job_description = _read_optional(args.description_file)
    except OSError as e:
        print(f"Cannot read input file: {e}", file=sys.stderr)
        return 1

    ctx = build_context()
    response = asyncio.run(
        _run_job_operation(ctx, operation, args, resume_text, job_description)
    )
    _print_json(response.to_wire())
    return 1 if response.error_message else 0


def run_suggest_cli() -> int:
    """CLI entry point for resume suggestions."""
    return _job_command("generate_resume_suggestions", "Generate resume suggestions for a job")


def run_rewrite_cli() -> int:
    """CLI entry point for experience rewrites."""
    return _job_command("rewrite_experience_items", "Rewrite resume experience bullet points")


def run_projects_cli() -> int:
    """CLI entry point for project recommendations."""
    return _job_command("highlight_relevant_projects", "Rank portfolio projects for a job")


def run_update_cli() -> int:
    """CLI entry point for a manual freshness check."""
    parser = argparse.ArgumentParser(description="Rebuild the vector index if the corpus changed")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    _setup_logging(args.verbose)

    ctx = build_context()
    try:
        outcome = asyncio.run(ctx.update_vector_store())
    except Exception as e:
        print(f"Update failed: {e}", file=sys.stderr)
        return 1

    _print_json({
        "rebuilt": outcome.rebuilt,
        "previousCount": outcome.previous_count,
        "newCount": outcome.new_count,
    })
    return 0


def run_eval_report_cli() -> int:
    """CLI entry point for the eval-log summary."""
    from resume_rag.config import get_config
    from resume_rag.generation.eval_log import summarize_eval_log

    parser = argparse.ArgumentParser(description="Summarize the evaluation log")
    parser.add_argument("--log", type=Path, help="Eval log path (default: under RAG_DATA_DIR)")
    args = parser.parse_args()

    config = get_config()
    path = args.log or config.eval_log_path
    summary = summarize_eval_log(path, config.encryption_secret)

    print("=" * 60)
    print("RAG EVALUATION LOG")
    print("=" * 60)
    print(f"Log: {path}")
    print(f"Total runs: {summary.total_runs}")
    print(f"Average suggestions per run: {summary.avg_suggestions:.2f}")
    print(f"Failures: {summary.failures}")
    return 0


def main() -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        resume-rag update                              # Freshness check / rebuild
        resume-rag suggest --job-id 42 --resume cv.txt
        resume-rag rewrite --title "Engineer" --company Acme --resume cv.txt
        resume-rag projects --job-id 42
        resume-rag eval-report
    """
    _load_env()

    from resume_rag.observability import init_tracing, shutdown_tracing
    init_tracing()

    parser = argparse.ArgumentParser(
        description="Resume RAG service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  update       Rebuild the vector index if the corpus changed
  suggest      Resume suggestions for a job
  rewrite      Rewrite experience bullet points for a job
  projects     Rank portfolio projects for a job
  eval-report  Summarize the evaluation log

Examples:
  resume-rag suggest --title "Rust Engineer" --company Acme --description "..."
  resume-rag suggest --job-id 42 --resume resume.txt
        """,
    )

    parser.add_argument(
        "command",
        choices=["update", "suggest", "rewrite", "projects", "eval-report"],
        help="Operation to run",
    )

    # Parse just the command first
    args, remaining = parser.parse_known_args()

    commands = {
        "update": run_update_cli,
        "suggest": run_suggest_cli,
        "rewrite": run_rewrite_cli,
        "projects": run_projects_cli,
        "eval-report": run_eval_report_cli,
    }

    # Re-inject remaining args for the subcommand
    sys.argv = [sys.argv[0]] + remaining

    try:
        return commands[args.command]()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    sys.exit(main())
