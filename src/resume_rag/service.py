"""
RagContext - the process-scoped RAG service.

One context is built at startup and handed to every request handler.
It owns the single embedding provider, index, freshness controller and
response cache for the process. Tests build their own context from
test doubles instead of patching module globals.

USAGE:
------
ctx = build_context()                       # from environment
response = await ctx.generate_resume_suggestions(request)
await ctx.update_vector_store()             # after a GitHub sync
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from resume_rag.config import RagConfig, get_config
from resume_rag.core.protocols import (
    CompletionService,
    EmbeddingProvider,
    JobStore,
    RepoDataSource,
)
from resume_rag.corpus.sources import CorpusSourceAdapter, FileRepoDataSource
from resume_rag.embeddings import get_embedding_provider
from resume_rag.generation.completion import get_completion_service
from resume_rag.generation.eval_log import EvalLogWriter
from resume_rag.generation.pipeline import RagPipeline
from resume_rag.generation.schemas import (
    ExperienceRewriteResponse,
    ProjectHighlightResponse,
    SuggestionRequest,
    SuggestionResponse,
)
from resume_rag.jobs import get_job_store
from resume_rag.retrieval.freshness import CorpusSource, FreshnessController, UpdateOutcome
from resume_rag.retrieval.store import get_vector_index

logger = logging.getLogger(__name__)


class JobNotFoundError(LookupError):
    """No job with the requested id."""


@dataclass
class RagContext:
    """Everything one process needs to serve RAG requests."""

    config: RagConfig
    embeddings: EmbeddingProvider
    controller: FreshnessController
    pipeline: RagPipeline
    jobs: JobStore

    # -- caller-supplied job details --------------------------------------

    async def generate_resume_suggestions(self, request: SuggestionRequest) -> SuggestionResponse:
        return await self.pipeline.generate_suggestions(request)

    async def rewrite_experience_items(self, request: SuggestionRequest) -> ExperienceRewriteResponse:
        return await self.pipeline.rewrite_experience_items(request)

    async def highlight_relevant_projects(self, request: SuggestionRequest) -> ProjectHighlightResponse:
        return await self.pipeline.highlight_relevant_projects(request)

    async def update_vector_store(self) -> UpdateOutcome:
        """
        Rebuild the index if the corpus changed size.

        The pipeline drops its cached suggestions when the rebuild lands,
        including a rebuild that finishes after the timeout.

        Raises:
            RebuildTimeoutError: the rebuild outlived config.rebuild_timeout_s
            RagInitializationError: the index could not be loaded or built
        """
        return await self.controller.update()

    # -- job-store entry points -------------------------------------------

    def request_for_job(self, job_id: str, base_resume_text: str = "") -> SuggestionRequest:
        job = self.jobs.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}")
        return SuggestionRequest(
            job_title=job.title,
            job_company=job.company,
            job_description=job.description,
            base_resume_text=base_resume_text,
        )

    async def generate_resume_suggestions_for_job(
        self, job_id: str, base_resume_text: str = ""
    ) -> SuggestionResponse:
        try:
            request = self.request_for_job(job_id, base_resume_text)
        except Exception as e:
            logger.error(f"Cannot load job {job_id}: {e}")
            return SuggestionResponse.degraded(str(e))
        return await self.generate_resume_suggestions(request)

    async def rewrite_experience_items_for_job(
        self, job_id: str, base_resume_text: str = ""
    ) -> ExperienceRewriteResponse:
        try:
            request = self.request_for_job(job_id, base_resume_text)
        except Exception as e:
            logger.error(f"Cannot load job {job_id}: {e}")
            return ExperienceRewriteResponse.degraded(str(e))
        return await self.rewrite_experience_items(request)

    async def highlight_relevant_projects_for_job(
        self, job_id: str, base_resume_text: str = ""
    ) -> ProjectHighlightResponse:
        try:
            request = self.request_for_job(job_id, base_resume_text)
        except Exception as e:
            logger.error(f"Cannot load job {job_id}: {e}")
            return ProjectHighlightResponse.degraded(str(e))
        return await self.highlight_relevant_projects(request)


def build_context(
    config: RagConfig | None = None,
    *,
    embeddings: EmbeddingProvider | None = None,
    completion: CompletionService | None = None,
    repos: RepoDataSource | None = None,
    corpus: CorpusSource | None = None,
    jobs: JobStore | None = None,
    persistent: bool = True,
) -> RagContext:
    """
    Wire the RAG service from configuration.

    Every collaborator can be injected; the rest come from the factories.
    Nothing is loaded or embedded here: the index is opened lazily on the
    first request.
    """
    config = config or get_config()
    if not config.has_encryption():
        logger.info("DATA_ENCRYPTION_KEY not set; index and eval log are stored as plaintext")

    embeddings = embeddings or get_embedding_provider(config)
    index = get_vector_index(embeddings, config, persistent=persistent)
    if corpus is None:
        corpus = CorpusSourceAdapter(
            repos or FileRepoDataSource(config.repos_root, secret=config.encryption_secret),
            profile_path=config.profile_path,
        )
    controller = FreshnessController(index, corpus, rebuild_timeout_s=config.rebuild_timeout_s)

    eval_log = (
        EvalLogWriter(config.eval_log_path, secret=config.encryption_secret)
        if config.eval_logging
        else None
    )
    pipeline = RagPipeline(
        controller,
        completion or get_completion_service(config),
        eval_log=eval_log,
        model_name=config.completion_model,
        temperature=config.temperature,
    )

    return RagContext(
        config=config,
        embeddings=embeddings,
        controller=controller,
        pipeline=pipeline,
        jobs=jobs or get_job_store(config),
    )
