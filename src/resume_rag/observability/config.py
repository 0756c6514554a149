"""
Tracing Configuration

Loads observability settings from environment variables.
Supports graceful degradation when OpenTelemetry/Phoenix are not installed.
"""

import os
from dataclasses import dataclass


@dataclass
class TracingConfig:
    """Configuration for tracing.

    Environment Variables:
        RAG_TRACING_ENABLED: Enable tracing (default: false)
        RAG_TRACING_PROJECT_NAME: Project / service name (default: resume-rag)
        RAG_TRACING_ENDPOINT: OTLP HTTP endpoint (optional, local Phoenix if empty)
        RAG_TRACING_CAPTURE_CONTENT: Attach prompts/responses to spans (default: false)

    PRIVACY WARNING:
        Setting RAG_TRACING_CAPTURE_CONTENT=true exports resume text, profile
        data and job descriptions to the collector. Leave it off unless the
        collector is local.
    """

    enabled: bool = False
    project_name: str = "resume-rag"
    collector_endpoint: str | None = None
    capture_llm_content: bool = False

    @classmethod
    def from_env(cls) -> "TracingConfig":
        """Load config from environment variables."""
        return cls(
            enabled=os.environ.get("RAG_TRACING_ENABLED", "false").lower() in ("true", "1", "yes"),
            project_name=os.environ.get("RAG_TRACING_PROJECT_NAME", "resume-rag"),
            collector_endpoint=os.environ.get("RAG_TRACING_ENDPOINT") or None,
            capture_llm_content=os.environ.get("RAG_TRACING_CAPTURE_CONTENT", "false").lower() in ("true", "1", "yes"),
        )


# Global config singleton
_config: TracingConfig | None = None


def get_config() -> TracingConfig:
    """Get the global tracing config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = TracingConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
