"""
Semantic Conventions for Span Attributes

Attribute keys following OpenTelemetry GenAI conventions
plus a custom rag.* namespace.

Reference: https://opentelemetry.io/docs/specs/semconv/gen-ai/
"""

# ---------------------------------------------------------------------------
# GENAI NAMESPACE (OTel standard)
# ---------------------------------------------------------------------------

GEN_AI_SYSTEM = "gen_ai.system"  # "openai"
GEN_AI_REQUEST_MODEL = "gen_ai.request.model"  # "gpt-4"
GEN_AI_REQUEST_TEMPERATURE = "gen_ai.request.temperature"

GEN_AI_USAGE_INPUT_TOKENS = "gen_ai.usage.input_tokens"
GEN_AI_USAGE_OUTPUT_TOKENS = "gen_ai.usage.output_tokens"

# Only set when RAG_TRACING_CAPTURE_CONTENT=true
GEN_AI_PROMPT = "gen_ai.prompt"
GEN_AI_COMPLETION = "gen_ai.completion"


# ---------------------------------------------------------------------------
# RAG NAMESPACE (custom)
# ---------------------------------------------------------------------------

# Index lifecycle
RAG_INDEX_DOC_COUNT = "rag.index.doc_count"
RAG_INDEX_PREVIOUS_DOC_COUNT = "rag.index.previous_doc_count"
RAG_INDEX_REBUILT = "rag.index.rebuilt"

# Retrieval
RAG_RETRIEVAL_K = "rag.retrieval.k"
RAG_RETRIEVAL_STRATEGY = "rag.retrieval.strategy"  # "similarity", "mmr"
RAG_RETRIEVED_DOC_COUNT = "rag.retrieval.doc_count"
RAG_RETRIEVED_SOURCES = "rag.retrieval.sources"
RAG_CONTEXT_CHARS = "rag.context.chars"

# Generation
RAG_OPERATION = "rag.operation"  # "resume_suggestions", "experience_rewrite", "project_highlights"
RAG_CACHE_HIT = "rag.cache.hit"
RAG_DEGRADED = "rag.degraded"
RAG_ERROR = "rag.error"


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def retrieval_attributes(k: int, strategy: str, sources: list[str]) -> dict:
    """Create attributes dict for a retrieval span."""
    return {
        RAG_RETRIEVAL_K: k,
        RAG_RETRIEVAL_STRATEGY: strategy,
        RAG_RETRIEVED_DOC_COUNT: len(sources),
        RAG_RETRIEVED_SOURCES: sources,
    }


def completion_attributes(
    model: str,
    temperature: float,
    input_tokens: int | None = None,
    output_tokens: int | None = None,
) -> dict:
    """Create attributes dict for a completion span."""
    attrs = {
        GEN_AI_SYSTEM: "openai",
        GEN_AI_REQUEST_MODEL: model,
        GEN_AI_REQUEST_TEMPERATURE: temperature,
    }
    if input_tokens is not None:
        attrs[GEN_AI_USAGE_INPUT_TOKENS] = input_tokens
    if output_tokens is not None:
        attrs[GEN_AI_USAGE_OUTPUT_TOKENS] = output_tokens
    return attrs
