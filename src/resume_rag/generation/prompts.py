"""
Prompt construction for the RAG pipeline.

Every builder here is a pure function: same inputs, same messages. They
can be tested without a completion service.
"""

from __future__ import annotations

from resume_rag.core.protocols import ScoredDocument
from resume_rag.generation.schemas import SuggestionRequest

SYSTEM_MESSAGE = (
    "You are an expert resume consultant. You answer with a single JSON object "
    "and nothing else."
)


def build_context(
    passages: list[ScoredDocument],
    resume_text: str | None = None,
) -> str:
    """
    Join retrieved passage text into one grounding context.

    Args:
        passages: Retrieved documents, in retrieval order
        resume_text: Candidate's current resume, appended when given

    Returns:
        Passage contents separated by blank lines
    """
    parts = [p.document.content for p in passages]
    if resume_text and resume_text.strip():
        parts.append(f"Current resume:\n{resume_text}")
    return "\n\n".join(parts)


def _job_block(request: SuggestionRequest) -> str:
    return (
        f"Title: {request.job_title}\n"
        f"Company: {request.job_company}\n"
        f"Description: {request.job_description or ''}"
    )


def build_suggestion_prompt(request: SuggestionRequest, context: str) -> str:
    return f"""Use the following retrieved information about the candidate to generate resume suggestions.

Context from retrieved documents:
{context}

Job Details:
{_job_block(request)}

Based ONLY on the retrieved context above, provide specific suggestions for improving the resume.
Each suggestion must be explicitly supported by information from the context.
If you need information that's not in the context, acknowledge the gap.

Format your response as a JSON object with these keys:
- suggestions: Array of specific improvements, each citing the supporting context
- relevantProjects: Array of project names from the context that match job requirements
- skillsToHighlight: Array of skills found in both context and job requirements
- experienceToHighlight: Array of relevant experience entries from the context
- replacements (optional): Array of objects {{sectionName, currentContent, suggestedContent, reason, lineNumbers}}
  where currentContent is copied exactly from the current resume

Remember:
1. Only use information from the provided context
2. Be specific about which parts of the context support each suggestion
3. Focus on matching the candidate's experience with job requirements"""


def build_experience_prompt(request: SuggestionRequest, context: str) -> str:
    return f"""Rewrite the experience bullet points of this resume so they show impact and align with the job.

Context from retrieved documents:
{context}

Current resume:
{request.base_resume_text}

Job Details:
{_job_block(request)}

Rules:
1. Only rewrite bullet points that exist in the current resume
2. Keep every claim supported by the resume or the retrieved context
3. Prefer concrete outcomes and technologies the job asks for

Format your response as a JSON object with one key:
- experienceReplacements: Array of objects {{sectionName, currentContent, suggestedContent, reason, lineNumbers}}
  where currentContent is the exact original bullet point"""


def build_projects_prompt(request: SuggestionRequest, context: str) -> str:
    return f"""Rank the candidate's portfolio projects by relevance to this job.

Projects and profile from retrieved documents:
{context}

Current resume:
{request.base_resume_text}

Job Details:
{_job_block(request)}

Only recommend projects that appear in the retrieved documents.

Format your response as a JSON object with one key:
- projectRecommendations: Array of objects {{projectTitle, reason, priority, suggestedPlacement}}
  where priority is one of "high", "medium", "low" and suggestedPlacement names the resume section"""


def as_messages(prompt: str) -> list[dict[str, str]]:
    """Wrap a user prompt in the chat message format."""
    return [
        {"role": "system", "content": SYSTEM_MESSAGE},
        {"role": "user", "content": prompt},
    ]
