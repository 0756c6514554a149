"""
Unit Tests for CLI Commands

Tests the CLI entry points without embedding or calling a model.
The RAG context is built from test doubles and patched in.
"""

import asyncio
import json
from dataclasses import replace
from unittest.mock import patch

import pytest

from resume_rag.cli import commands
from resume_rag.config import RagConfig
from resume_rag.core.errors import RebuildTimeoutError
from resume_rag.core.protocols import JobRecord
from resume_rag.generation import EvalLogWriter, MockCompletionService
from resume_rag.jobs import InMemoryJobStore
from resume_rag.service import build_context

from conftest import SUGGESTION_JSON


@pytest.fixture
def ctx(tmp_path, static_corpus):
    config = RagConfig(data_dir=tmp_path, embedding_backend="mock", eval_logging=False)
    return build_context(
        config,
        completion=MockCompletionService(SUGGESTION_JSON),
        corpus=static_corpus,
        jobs=InMemoryJobStore([JobRecord(id="42", title="Rust Engineer", company="Acme")]),
        persistent=False,
    )


# ---------------------------------------------------------------------------
# MAIN CLI DISPATCH TESTS
# ---------------------------------------------------------------------------


class TestMainCliDispatch:
    """Test main CLI dispatches to correct handlers."""

    @pytest.mark.parametrize("command,handler", [
        ("update", "run_update_cli"),
        ("suggest", "run_suggest_cli"),
        ("rewrite", "run_rewrite_cli"),
        ("projects", "run_projects_cli"),
        ("eval-report", "run_eval_report_cli"),
    ])
    def test_main_dispatches(self, command, handler):
        with patch.object(commands, "load_dotenv"), patch.object(commands, handler) as mock_handler:
            mock_handler.return_value = 0
            with patch("sys.argv", ["resume-rag", command]):
                result = commands.main()

        mock_handler.assert_called_once()
        assert result == 0

    def test_remaining_args_reach_subcommand(self):
        seen = {}

        def fake_suggest():
            import sys
            seen["argv"] = list(sys.argv)
            return 0

        with patch.object(commands, "load_dotenv"), patch.object(commands, "run_suggest_cli", fake_suggest):
            with patch("sys.argv", ["resume-rag", "suggest", "--job-id", "42"]):
                commands.main()

        assert seen["argv"] == ["resume-rag", "--job-id", "42"]

    def test_main_handles_keyboard_interrupt(self):
        with patch.object(commands, "load_dotenv"), patch.object(commands, "run_update_cli") as mock_update:
            mock_update.side_effect = KeyboardInterrupt()
            with patch("sys.argv", ["resume-rag", "update"]):
                result = commands.main()

        assert result == 130

    def test_unknown_command_exits(self):
        with patch.object(commands, "load_dotenv"), patch("sys.argv", ["resume-rag", "bogus"]):
            with pytest.raises(SystemExit):
                commands.main()


# ---------------------------------------------------------------------------
# JOB COMMANDS
# ---------------------------------------------------------------------------


class TestSuggestCli:

    def test_suggest_by_title(self, ctx, capsys):
        argv = ["suggest", "--title", "Rust Engineer", "--company", "Acme", "--description", "Rust"]
        with patch.object(commands, "build_context", return_value=ctx), patch("sys.argv", argv):
            result = commands.run_suggest_cli()

        assert result == 0
        output = json.loads(capsys.readouterr().out)
        assert output["relevantProjects"] == ["kv-store"]
        assert "errorMessage" not in output

    def test_suggest_by_job_id_with_resume(self, ctx, tmp_path, capsys):
        resume = tmp_path / "cv.txt"
        resume.write_text("Experience\n- Built things in Go")
        argv = ["suggest", "--job-id", "42", "--resume", str(resume)]
        with patch.object(commands, "build_context", return_value=ctx), patch("sys.argv", argv):
            result = commands.run_suggest_cli()

        assert result == 0
        assert json.loads(capsys.readouterr().out)["skillsToHighlight"] == ["Rust"]
        prompt = ctx.pipeline._completion.calls[0][-1]["content"]
        assert "Built things in Go" in prompt

    def test_unknown_job_returns_one(self, ctx, capsys):
        with patch.object(commands, "build_context", return_value=ctx), \
                patch("sys.argv", ["suggest", "--job-id", "404"]):
            result = commands.run_suggest_cli()

        assert result == 1
        assert "404" in json.loads(capsys.readouterr().out)["errorMessage"]

    def test_job_source_is_required(self):
        with patch("sys.argv", ["suggest", "--company", "Acme"]):
            with pytest.raises(SystemExit):
                commands.run_suggest_cli()

    def test_description_file(self, ctx, tmp_path, capsys):
        description = tmp_path / "job.txt"
        description.write_text("Looking for a Rust systems engineer.")
        argv = ["projects", "--title", "Engineer", "--description-file", str(description)]
        ctx.pipeline._completion = MockCompletionService('{"projectRecommendations": []}')
        with patch.object(commands, "build_context", return_value=ctx), patch("sys.argv", argv):
            result = commands.run_projects_cli()

        assert result == 0
        assert json.loads(capsys.readouterr().out) == {"projectRecommendations": []}
        assert "Looking for a Rust systems engineer." in ctx.pipeline._completion.calls[0][-1]["content"]

    @pytest.mark.parametrize("flag", ["--resume", "--description-file"])
    def test_missing_input_file_returns_one(self, tmp_path, flag, capsys):
        argv = ["suggest", "--title", "Engineer", flag, str(tmp_path / "missing.txt")]
        with patch.object(commands, "build_context") as build, patch("sys.argv", argv):
            result = commands.run_suggest_cli()

        assert result == 1
        assert "Cannot read input file" in capsys.readouterr().err
        build.assert_not_called()


# ---------------------------------------------------------------------------
# UPDATE + REPORT
# ---------------------------------------------------------------------------


class TestUpdateCli:

    def test_prints_skip(self, ctx, capsys):
        with patch.object(commands, "build_context", return_value=ctx), patch("sys.argv", ["update"]):
            result = commands.run_update_cli()

        assert result == 0
        output = json.loads(capsys.readouterr().out)
        assert output == {"rebuilt": False, "previousCount": 2, "newCount": 2}

    def test_prints_rebuild(self, ctx, static_corpus, rust_records, capsys):
        asyncio.run(ctx.controller.ensure_fresh())
        static_corpus.records.append(replace(rust_records[0], source="extra"))

        with patch.object(commands, "build_context", return_value=ctx), patch("sys.argv", ["update"]):
            result = commands.run_update_cli()

        assert result == 0
        output = json.loads(capsys.readouterr().out)
        assert output == {"rebuilt": True, "previousCount": 2, "newCount": 3}

    def test_failure_returns_one(self, ctx, capsys):
        async def timeout():
            raise RebuildTimeoutError("took too long")

        with patch.object(commands, "build_context", return_value=ctx), \
                patch.object(ctx, "update_vector_store", timeout), \
                patch("sys.argv", ["update"]):
            result = commands.run_update_cli()

        assert result == 1
        assert "took too long" in capsys.readouterr().err


class TestEvalReportCli:

    def test_report(self, tmp_path, capsys):
        log = tmp_path / "rag-eval-logs.jsonl"
        writer = EvalLogWriter(log)
        writer.append({}, {"suggestions": ["a", "b"]})
        writer.append({}, {"suggestions": [], "errorMessage": "boom"})

        with patch("sys.argv", ["eval-report", "--log", str(log)]):
            result = commands.run_eval_report_cli()

        out = capsys.readouterr().out
        assert result == 0
        assert "Total runs: 2" in out
        assert "Average suggestions per run: 1.00" in out
        assert "Failures: 1" in out
