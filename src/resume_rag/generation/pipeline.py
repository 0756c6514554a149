"""
RAG pipeline - retrieve, ground, complete, validate.

FLOW (per request):
-------------------
1. Response cache lookup (resume suggestions only)
2. controller.ensure_fresh()
3. Retrieve top-k passages for the job description
4. Join passages (plus the resume, in suggestion mode) into one context
5. Render the prompt, call the completion service
6. Parse the output strictly as JSON and validate it with pydantic
7. Success: cache + eval log. Any failure in 2-6: degraded response.

Public methods never raise. The caller gets a well-formed response with
errorMessage set instead.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from pydantic import BaseModel

from resume_rag.core.protocols import CompletionService, RetrievalStrategy, ScoredDocument
from resume_rag.generation.completion import parse_json_object
from resume_rag.generation.eval_log import EvalLogWriter
from resume_rag.generation.prompts import (
    as_messages,
    build_context,
    build_experience_prompt,
    build_projects_prompt,
    build_suggestion_prompt,
)
from resume_rag.generation.schemas import (
    ExperienceRewriteOutput,
    ExperienceRewriteResponse,
    ProjectHighlightOutput,
    ProjectHighlightResponse,
    SuggestionOutput,
    SuggestionRequest,
    SuggestionResponse,
)
from resume_rag.observability import get_tracer
from resume_rag.observability.attributes import (
    GEN_AI_COMPLETION,
    GEN_AI_PROMPT,
    RAG_CACHE_HIT,
    RAG_CONTEXT_CHARS,
    RAG_DEGRADED,
    RAG_ERROR,
    RAG_OPERATION,
    completion_attributes,
    retrieval_attributes,
)
from resume_rag.observability.config import get_config as get_tracing_config
from resume_rag.retrieval.freshness import FreshnessController

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)

SUGGESTION_K = 8
SUGGESTION_STRATEGY: RetrievalStrategy = "mmr"
VARIANT_K = 5
VARIANT_STRATEGY: RetrievalStrategy = "similarity"


class RagPipeline:
    """
    Suggestion generation over a freshness-controlled index.

    Dependencies are INJECTED: the controller owns the index, the
    completion service may be a mock, the eval log is optional.
    """

    def __init__(
        self,
        controller: FreshnessController,
        completion: CompletionService,
        *,
        eval_log: EvalLogWriter | None = None,
        model_name: str = "gpt-4",
        temperature: float = 0.7,
    ):
        self._controller = controller
        self._completion = completion
        self._eval_log = eval_log
        self._model_name = model_name
        self._temperature = temperature
        self._cache: dict[tuple[str, str, str], SuggestionResponse] = {}
        # Cached answers describe the previous corpus
        controller.add_rebuild_listener(self.clear_cache)

    @property
    def controller(self) -> FreshnessController:
        return self._controller

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    # ---------------------------------------------------------------------
    # PUBLIC OPERATIONS
    # ---------------------------------------------------------------------

    async def generate_suggestions(self, request: SuggestionRequest) -> SuggestionResponse:
        """Resume suggestions for a job; cached per (title, company, description)."""
        tracer = get_tracer()
        with tracer.start_span("rag.generate", {RAG_OPERATION: "resume_suggestions"}) as span:
            cached = self._cache.get(request.cache_key)
            span.set_attribute(RAG_CACHE_HIT, cached is not None)
            if cached is not None:
                logger.debug(f"Cache hit for {request.job_title} at {request.job_company}")
                return cached.model_copy(deep=True)

            logger.info(f"Generating resume suggestions for {request.job_title} at {request.job_company}")
            try:
                output = await self._run(
                    request,
                    k=SUGGESTION_K,
                    strategy=SUGGESTION_STRATEGY,
                    include_resume=True,
                    build_prompt=build_suggestion_prompt,
                    output_model=SuggestionOutput,
                )
            except Exception as e:
                logger.error(f"Error generating resume suggestions: {e}")
                span.set_attributes({RAG_DEGRADED: True, RAG_ERROR: str(e)})
                return SuggestionResponse.degraded(str(e))

            response = SuggestionResponse.model_validate(output.model_dump())
            self._cache[request.cache_key] = response
            self._write_eval_log(request, response)
            return response.model_copy(deep=True)

    async def rewrite_experience_items(self, request: SuggestionRequest) -> ExperienceRewriteResponse:
        """Rewrite experience bullet points for impact and job alignment."""
        tracer = get_tracer()
        with tracer.start_span("rag.generate", {RAG_OPERATION: "experience_rewrite"}) as span:
            try:
                output = await self._run(
                    request,
                    k=VARIANT_K,
                    strategy=VARIANT_STRATEGY,
                    include_resume=False,
                    build_prompt=build_experience_prompt,
                    output_model=ExperienceRewriteOutput,
                )
            except Exception as e:
                logger.error(f"Error rewriting experience items: {e}")
                span.set_attributes({RAG_DEGRADED: True, RAG_ERROR: str(e)})
                return ExperienceRewriteResponse.degraded(str(e))
            return ExperienceRewriteResponse.model_validate(output.model_dump())

    async def highlight_relevant_projects(self, request: SuggestionRequest) -> ProjectHighlightResponse:
        """Rank portfolio projects by relevance to the job."""
        tracer = get_tracer()
        with tracer.start_span("rag.generate", {RAG_OPERATION: "project_highlights"}) as span:
            try:
                output = await self._run(
                    request,
                    k=VARIANT_K,
                    strategy=VARIANT_STRATEGY,
                    include_resume=False,
                    build_prompt=build_projects_prompt,
                    output_model=ProjectHighlightOutput,
                )
            except Exception as e:
                logger.error(f"Error highlighting relevant projects: {e}")
                span.set_attributes({RAG_DEGRADED: True, RAG_ERROR: str(e)})
                return ProjectHighlightResponse.degraded(str(e))
            return ProjectHighlightResponse.model_validate(output.model_dump())

    # ---------------------------------------------------------------------
    # STEPS
    # ---------------------------------------------------------------------

    async def _run(
        self,
        request: SuggestionRequest,
        *,
        k: int,
        strategy: RetrievalStrategy,
        include_resume: bool,
        build_prompt: Callable[[SuggestionRequest, str], str],
        output_model: type[OutputT],
    ) -> OutputT:
        await self._controller.ensure_fresh()

        passages = await self._retrieve(request.retrieval_query(), k=k, strategy=strategy)
        context = build_context(passages, request.base_resume_text if include_resume else None)
        logger.debug(f"Retrieved {len(passages)} passages, context length {len(context)}")

        text = await self._complete(as_messages(build_prompt(request, context)), len(context))
        data = parse_json_object(text)
        # ValidationError propagates into the degraded path
        return output_model.model_validate(data)

    async def _retrieve(self, query: str, *, k: int, strategy: RetrievalStrategy) -> list[ScoredDocument]:
        tracer = get_tracer()
        with tracer.start_span("rag.retrieve") as span:
            passages = await self._controller.index.retrieve(query, k=k, strategy=strategy)
            span.set_attributes(
                retrieval_attributes(k, strategy, [p.document.metadata.source for p in passages])
            )
            return passages

    async def _complete(self, messages: list[dict[str, str]], context_chars: int) -> str:
        tracer = get_tracer()
        attrs = completion_attributes(self._model_name, self._temperature)
        attrs[RAG_CONTEXT_CHARS] = context_chars
        with tracer.start_span("rag.completion", attrs) as span:
            text = await self._completion.complete(messages)
            if get_tracing_config().capture_llm_content:
                span.set_attribute(GEN_AI_PROMPT, messages[-1]["content"])
                span.set_attribute(GEN_AI_COMPLETION, text)
            return text

    def _write_eval_log(self, request: SuggestionRequest, response: SuggestionResponse) -> None:
        if self._eval_log is None:
            return
        payload = {
            "jobTitle": request.job_title,
            "jobCompany": request.job_company,
            "jobDescription": request.job_description or "",
        }
        try:
            self._eval_log.append(payload, response.to_wire())
        except OSError as e:
            logger.warning(f"Failed to write evaluation log: {e}")
