"""
Generation - prompts, completion service, pipeline, eval log.
"""

from resume_rag.generation.completion import (
    MockCompletionService,
    OpenAICompletionService,
    UnavailableCompletionService,
    get_completion_service,
    parse_json_object,
)
from resume_rag.generation.eval_log import (
    EvalLogSummary,
    EvalLogWriter,
    read_eval_log,
    summarize_eval_log,
)
from resume_rag.generation.pipeline import RagPipeline
from resume_rag.generation.schemas import (
    ExperienceRewriteResponse,
    ProjectHighlightResponse,
    ProjectRecommendation,
    ReplacementSuggestion,
    SuggestionRequest,
    SuggestionResponse,
)

__all__ = [
    "MockCompletionService",
    "OpenAICompletionService",
    "UnavailableCompletionService",
    "get_completion_service",
    "parse_json_object",
    "EvalLogSummary",
    "EvalLogWriter",
    "read_eval_log",
    "summarize_eval_log",
    "RagPipeline",
    "ExperienceRewriteResponse",
    "ProjectHighlightResponse",
    "ProjectRecommendation",
    "ReplacementSuggestion",
    "SuggestionRequest",
    "SuggestionResponse",
]
