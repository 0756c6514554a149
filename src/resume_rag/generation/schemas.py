"""
Request and response schemas for suggestion generation.

These Pydantic models are the contract with two parties:
1. Callers (UI / IPC layer) - camelCase JSON via model_dump(by_alias=True)
2. The completion service - its JSON output is untrusted wire data and
   must validate against the *Output models before anything is returned

Every response model can be built in a degraded form (empty lists plus
errorMessage) so public operations never raise.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """camelCase dict without unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# REQUEST
# ---------------------------------------------------------------------------


class SuggestionRequest(CamelModel):
    """Caller-supplied job and resume details."""

    job_title: str = Field(description="Job title")
    job_company: str = Field(description="Hiring company")
    job_description: str | None = Field(default=None, description="Full posting text")
    base_resume_text: str = Field(default="", description="Candidate's current resume")

    @property
    def cache_key(self) -> tuple[str, str, str]:
        return (self.job_title, self.job_company, self.job_description or "")

    def retrieval_query(self) -> str:
        """Query text for retrieval; title + company when the description is empty."""
        description = (self.job_description or "").strip()
        if description:
            return description
        return f"{self.job_title} {self.job_company}".strip()


# ---------------------------------------------------------------------------
# SHARED PIECES
# ---------------------------------------------------------------------------


class ReplacementSuggestion(CamelModel):
    """An exact, section-level edit to the resume."""

    section_name: str = Field(description="Resume section the edit applies to")
    current_content: str = Field(description="Exact text currently in the resume")
    suggested_content: str = Field(description="Replacement text")
    reason: str = Field(description="Why, citing the supporting context")
    line_numbers: str | None = Field(default=None, description="Optional line range, e.g. '12-14'")


class ProjectRecommendation(CamelModel):
    """A portfolio project ranked for this job."""

    project_title: str
    reason: str
    priority: Literal["high", "medium", "low"]
    suggested_placement: str


# ---------------------------------------------------------------------------
# COMPLETION OUTPUT (untrusted, validated)
# ---------------------------------------------------------------------------


class SuggestionOutput(CamelModel):
    """What the resume-suggestion prompt asks the model to return."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    replacements: list[ReplacementSuggestion] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    relevant_projects: list[str] = Field(default_factory=list)
    skills_to_highlight: list[str] = Field(default_factory=list)
    experience_to_highlight: list[str] = Field(default_factory=list)


class ExperienceRewriteOutput(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    experience_replacements: list[ReplacementSuggestion] = Field(default_factory=list)


class ProjectHighlightOutput(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    project_recommendations: list[ProjectRecommendation] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# RESPONSES
# ---------------------------------------------------------------------------


class SuggestionResponse(SuggestionOutput):
    """Resume suggestions returned to callers."""

    error_message: str | None = Field(default=None, description="Set when generation failed")

    @classmethod
    def degraded(cls, message: str) -> "SuggestionResponse":
        return cls(error_message=message or "Unknown error")


class ExperienceRewriteResponse(ExperienceRewriteOutput):
    """Rewritten experience bullet points."""

    error_message: str | None = None

    @classmethod
    def degraded(cls, message: str) -> "ExperienceRewriteResponse":
        return cls(error_message=message or "Unknown error")


class ProjectHighlightResponse(ProjectHighlightOutput):
    """Portfolio projects ranked by relevance."""

    error_message: str | None = None

    @classmethod
    def degraded(cls, message: str) -> "ProjectHighlightResponse":
        return cls(error_message=message or "Unknown error")
