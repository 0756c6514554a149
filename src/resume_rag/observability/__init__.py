"""
Observability Module - OpenTelemetry tracing with optional Phoenix UI

USAGE:
------
# At application startup:
from resume_rag.observability import init_tracing

init_tracing()  # No-op unless RAG_TRACING_ENABLED=true

# In code that needs tracing:
from resume_rag.observability import get_tracer

tracer = get_tracer()
with tracer.start_span("rag.retrieve", attributes={"rag.retrieval.k": 8}) as span:
    ...
    span.set_attribute("rag.retrieval.doc_count", 8)
"""

from __future__ import annotations

import logging

from resume_rag.observability.config import (
    TracingConfig,
    get_config,
    reset_config,
)
from resume_rag.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    get_tracer,
    reset_tracer,
)

logger = logging.getLogger(__name__)

_tracing_initialized = False


def init_tracing(config: TracingConfig | None = None) -> bool:
    """
    Initialize tracing.

    Sets up an OpenTelemetry tracer provider exporting to the configured
    OTLP endpoint, or to a local Phoenix app when no endpoint is given,
    and registers the OpenAI auto-instrumentor.

    Args:
        config: Optional config (uses env vars if not provided)

    Returns:
        True if tracing was initialized, False if disabled or failed
    """
    global _tracing_initialized
    if _tracing_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Tracing disabled")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        endpoint = config.collector_endpoint
        if not endpoint:
            import phoenix as px
            session = px.launch_app()
            endpoint = f"{session.url.rstrip('/')}/v1/traces"
            logger.info(f"Phoenix UI available at: {session.url}")

        provider = TracerProvider(resource=Resource.create({"service.name": config.project_name}))
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)
        logger.info(f"Exporting traces to {endpoint}")

        from resume_rag.observability.instrumentation import register_instrumentors
        register_instrumentors()

        reset_tracer()
        _tracing_initialized = True
        return True

    except ImportError as e:
        logger.warning(f"Tracing dependencies not installed, tracing disabled: {e}")
        return False
    except Exception as e:
        logger.error(f"Failed to initialize tracing: {e}")
        return False


def shutdown_tracing() -> None:
    """Flush spans and release the provider."""
    global _tracing_initialized

    if not _tracing_initialized:
        return

    try:
        from opentelemetry import trace
        provider = trace.get_tracer_provider()
        if hasattr(provider, "shutdown"):
            provider.shutdown()
    except Exception as e:
        logger.warning(f"Error shutting down tracing: {e}")

    from resume_rag.observability.instrumentation import uninstrument
    uninstrument()

    reset_tracer()
    reset_config()
    _tracing_initialized = False


__all__ = [
    # Initialization
    "init_tracing",
    "shutdown_tracing",
    # Config
    "TracingConfig",
    "get_config",
    "reset_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
]
