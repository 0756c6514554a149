"""
Unit Tests for the RAG Pipeline

Tests the generation contract with MockEmbeddings and
MockCompletionService:
1. Response cache
2. Failure containment (never raises, degraded response instead)
3. Schema validation of model output
4. The two specialised variants
5. Eval log on success
"""

import asyncio
import json

import pytest

from resume_rag.core.errors import CompletionError
from resume_rag.embeddings import MockEmbeddings
from resume_rag.generation import (
    EvalLogWriter,
    MockCompletionService,
    RagPipeline,
    SuggestionRequest,
    read_eval_log,
)
from resume_rag.generation.prompts import build_context
from resume_rag.retrieval import FreshnessController, InMemoryVectorIndex

from conftest import SUGGESTION_JSON


@pytest.fixture
def request_():
    return SuggestionRequest(
        job_title="Systems Engineer",
        job_company="Acme",
        job_description="Looking for a Rust systems engineer.",
        base_resume_text="Experience\n- Built things in Go",
    )


def _pipeline(corpus, responses, **kwargs):
    index = InMemoryVectorIndex(MockEmbeddings())
    controller = FreshnessController(index, corpus)
    completion = MockCompletionService(responses)
    return RagPipeline(controller, completion, **kwargs), completion, index


def _empty_lists(response):
    return (
        response.suggestions == []
        and response.relevant_projects == []
        and response.skills_to_highlight == []
        and response.experience_to_highlight == []
    )


# ---------------------------------------------------------------------------
# CACHE
# ---------------------------------------------------------------------------


class TestResponseCache:

    def test_identical_requests_call_completion_once(self, static_corpus, request_):
        pipeline, completion, _ = _pipeline(static_corpus, SUGGESTION_JSON)

        async def run():
            first = await pipeline.generate_suggestions(request_)
            second = await pipeline.generate_suggestions(request_)
            return first, second

        first, second = asyncio.run(run())
        assert completion.call_count == 1
        assert first == second

    def test_key_ignores_resume_text(self, static_corpus, request_):
        pipeline, completion, _ = _pipeline(static_corpus, SUGGESTION_JSON)
        other_resume = request_.model_copy(update={"base_resume_text": "different"})

        async def run():
            await pipeline.generate_suggestions(request_)
            await pipeline.generate_suggestions(other_resume)

        asyncio.run(run())
        assert completion.call_count == 1

    def test_different_description_misses(self, static_corpus, request_):
        pipeline, completion, _ = _pipeline(static_corpus, SUGGESTION_JSON)
        other = request_.model_copy(update={"job_description": "Go developer"})

        async def run():
            await pipeline.generate_suggestions(request_)
            await pipeline.generate_suggestions(other)

        asyncio.run(run())
        assert completion.call_count == 2

    def test_failures_are_not_cached(self, static_corpus, request_):
        pipeline, completion, _ = _pipeline(static_corpus, ["not json", SUGGESTION_JSON])

        async def run():
            failed = await pipeline.generate_suggestions(request_)
            ok = await pipeline.generate_suggestions(request_)
            return failed, ok

        failed, ok = asyncio.run(run())
        assert failed.error_message
        assert ok.error_message is None
        assert completion.call_count == 2

    def test_cached_result_is_a_copy(self, static_corpus, request_):
        pipeline, _, _ = _pipeline(static_corpus, SUGGESTION_JSON)

        async def run():
            first = await pipeline.generate_suggestions(request_)
            first.suggestions.append("mutated by caller")
            return await pipeline.generate_suggestions(request_)

        assert asyncio.run(run()).suggestions == ["Highlight Rust KV store project"]

    def test_clear_cache(self, static_corpus, request_):
        pipeline, completion, _ = _pipeline(static_corpus, SUGGESTION_JSON)

        async def run():
            await pipeline.generate_suggestions(request_)
            pipeline.clear_cache()
            await pipeline.generate_suggestions(request_)

        asyncio.run(run())
        assert pipeline.cache_size == 1
        assert completion.call_count == 2


# ---------------------------------------------------------------------------
# FAILURE CONTAINMENT
# ---------------------------------------------------------------------------


class TestFailureContainment:

    def test_invalid_json_gives_degraded_response(self, static_corpus, request_):
        pipeline, _, _ = _pipeline(static_corpus, "I think you should learn Rust!")
        response = asyncio.run(pipeline.generate_suggestions(request_))

        assert _empty_lists(response)
        assert response.error_message

    def test_schema_mismatch_gives_degraded_response(self, static_corpus, request_):
        pipeline, _, _ = _pipeline(static_corpus, json.dumps({"suggestions": "not a list"}))
        response = asyncio.run(pipeline.generate_suggestions(request_))

        assert _empty_lists(response)
        assert response.error_message

    def test_completion_error_gives_degraded_response(self, static_corpus, request_):
        pipeline, _, _ = _pipeline(static_corpus, [CompletionError("service down")])
        response = asyncio.run(pipeline.generate_suggestions(request_))

        assert response.error_message == "service down"

    def test_initialization_failure_gives_degraded_response(self, request_):
        class BrokenCorpus:
            async def list_corpus_records(self):
                raise OSError("profile disk unreadable")

        pipeline, completion, _ = _pipeline(BrokenCorpus(), SUGGESTION_JSON)
        response = asyncio.run(pipeline.generate_suggestions(request_))

        assert _empty_lists(response)
        assert "profile disk unreadable" in response.error_message
        assert completion.call_count == 0

    def test_wire_form_of_degraded_response(self, static_corpus, request_):
        pipeline, _, _ = _pipeline(static_corpus, "oops")
        wire = asyncio.run(pipeline.generate_suggestions(request_)).to_wire()

        assert wire["suggestions"] == []
        assert wire["relevantProjects"] == []
        assert wire["skillsToHighlight"] == []
        assert wire["experienceToHighlight"] == []
        assert wire["errorMessage"]


# ---------------------------------------------------------------------------
# PROMPT + RETRIEVAL
# ---------------------------------------------------------------------------


class TestPromptAssembly:

    def test_prompt_contains_context_and_resume(self, static_corpus, request_):
        pipeline, completion, _ = _pipeline(static_corpus, SUGGESTION_JSON)
        asyncio.run(pipeline.generate_suggestions(request_))

        prompt = completion.calls[0][-1]["content"]
        assert "Skills: Go, Rust" in prompt
        assert "A distributed key-value store written in Rust" in prompt
        assert "Built things in Go" in prompt
        assert "Title: Systems Engineer" in prompt
        assert "Only use information from the provided context" in prompt

    def test_empty_description_falls_back_to_title_and_company(self):
        request = SuggestionRequest(job_title="Rust Engineer", job_company="Acme", job_description="")
        assert request.retrieval_query() == "Rust Engineer Acme"

    def test_build_context_joins_with_blank_lines(self, static_corpus):
        index = InMemoryVectorIndex(MockEmbeddings())
        controller = FreshnessController(index, static_corpus)
        asyncio.run(controller.ensure_fresh())
        passages = asyncio.run(index.retrieve("rust", k=2))

        context = build_context(passages)
        assert context.count("\n\n") == 1
        assert build_context(passages, "my resume").endswith("Current resume:\nmy resume")


# ---------------------------------------------------------------------------
# VARIANTS
# ---------------------------------------------------------------------------


class TestVariants:

    def test_experience_rewrite(self, static_corpus, request_):
        payload = {"experienceReplacements": [{
            "sectionName": "Experience",
            "currentContent": "- Built things in Go",
            "suggestedContent": "- Built a distributed KV store in Rust",
            "reason": "Matches the Rust requirement (kv-store README)",
        }]}
        pipeline, completion, _ = _pipeline(static_corpus, json.dumps(payload))
        response = asyncio.run(pipeline.rewrite_experience_items(request_))

        assert response.error_message is None
        assert response.experience_replacements[0].current_content == "- Built things in Go"
        assert response.to_wire()["experienceReplacements"][0]["sectionName"] == "Experience"
        assert "Built things in Go" in completion.calls[0][-1]["content"]

    def test_project_highlights(self, static_corpus, request_):
        payload = {"projectRecommendations": [{
            "projectTitle": "kv-store",
            "reason": "Rust systems work",
            "priority": "high",
            "suggestedPlacement": "Projects",
        }]}
        pipeline, _, _ = _pipeline(static_corpus, json.dumps(payload))
        response = asyncio.run(pipeline.highlight_relevant_projects(request_))

        assert response.project_recommendations[0].priority == "high"

    def test_invalid_priority_is_degraded(self, static_corpus, request_):
        payload = {"projectRecommendations": [{
            "projectTitle": "kv-store",
            "reason": "Rust",
            "priority": "urgent",
            "suggestedPlacement": "Projects",
        }]}
        pipeline, _, _ = _pipeline(static_corpus, json.dumps(payload))
        response = asyncio.run(pipeline.highlight_relevant_projects(request_))

        assert response.project_recommendations == []
        assert response.error_message

    def test_variants_are_not_cached(self, static_corpus, request_):
        pipeline, completion, _ = _pipeline(static_corpus, '{"experienceReplacements": []}')

        async def run():
            await pipeline.rewrite_experience_items(request_)
            await pipeline.rewrite_experience_items(request_)

        asyncio.run(run())
        assert completion.call_count == 2

    def test_variant_failure_is_degraded(self, static_corpus, request_):
        pipeline, _, _ = _pipeline(static_corpus, "[]")
        response = asyncio.run(pipeline.rewrite_experience_items(request_))
        assert response.experience_replacements == []
        assert response.error_message


# ---------------------------------------------------------------------------
# EVAL LOG
# ---------------------------------------------------------------------------


class TestEvalLogging:

    def test_success_is_logged(self, tmp_path, static_corpus, request_):
        writer = EvalLogWriter(tmp_path / "rag-eval-logs.jsonl")
        pipeline, _, _ = _pipeline(static_corpus, SUGGESTION_JSON, eval_log=writer)
        asyncio.run(pipeline.generate_suggestions(request_))

        entries = read_eval_log(writer.path)
        assert len(entries) == 1
        assert entries[0]["input"] == {
            "jobTitle": "Systems Engineer",
            "jobCompany": "Acme",
            "jobDescription": "Looking for a Rust systems engineer.",
        }
        assert entries[0]["response"]["skillsToHighlight"] == ["Rust"]

    def test_failure_is_not_logged(self, tmp_path, static_corpus, request_):
        writer = EvalLogWriter(tmp_path / "rag-eval-logs.jsonl")
        pipeline, _, _ = _pipeline(static_corpus, "oops", eval_log=writer)
        asyncio.run(pipeline.generate_suggestions(request_))
        assert read_eval_log(writer.path) == []

    def test_log_write_failure_does_not_fail_request(self, tmp_path, static_corpus, request_):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        writer = EvalLogWriter(blocker / "logs" / "rag-eval-logs.jsonl")
        pipeline, _, _ = _pipeline(static_corpus, SUGGESTION_JSON, eval_log=writer)

        response = asyncio.run(pipeline.generate_suggestions(request_))
        assert response.error_message is None
