"""
Completion service implementations.

Pattern: Protocol → Production impl → Test double → Factory

- OpenAICompletionService: chat completions over the OpenAI API
- MockCompletionService: canned responses, records every request
- parse_json_object(): strict parsing of the model's text output
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING

from openai import AsyncOpenAI, OpenAIError

from resume_rag.core.errors import CompletionError, ResponseFormatError
from resume_rag.core.protocols import CompletionService

if TYPE_CHECKING:
    from resume_rag.config import RagConfig

logger = logging.getLogger(__name__)

# A response wrapped entirely in one ```json fence; nothing outside it
_FENCED = re.compile(r"\s*```(?:json)?[ \t]*\n(.*?)\n?```\s*", re.DOTALL)


class OpenAICompletionService:
    """Chat completion via the OpenAI API."""

    def __init__(
        self,
        model: str = "gpt-4",
        temperature: float = 0.7,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model
        self.temperature = temperature
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def complete(self, messages: list[dict[str, str]]) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
        except OpenAIError as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        if not response.choices or response.choices[0].message.content is None:
            raise CompletionError("Completion service returned no content")
        return response.choices[0].message.content


class UnavailableCompletionService:
    """Stand-in used when no API key is configured; every call fails."""

    def __init__(self, reason: str = "OPENAI_API_KEY is not set"):
        self.reason = reason

    async def complete(self, messages: list[dict[str, str]]) -> str:
        raise CompletionError(f"Completion service unavailable: {self.reason}")


class MockCompletionService:
    """
    Mock completion service for testing.

    Returns responses in order; the last one repeats once the list is
    exhausted. An Exception instance in the list is raised instead.
    """

    def __init__(self, responses: list[str | Exception] | str | None = None):
        if responses is None:
            responses = ["{}"]
        elif isinstance(responses, str):
            responses = [responses]
        self._responses = list(responses)
        self.calls: list[list[dict[str, str]]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def complete(self, messages: list[dict[str, str]]) -> str:
        self.calls.append(messages)
        idx = min(len(self.calls) - 1, len(self._responses) - 1)
        response = self._responses[idx]
        if isinstance(response, Exception):
            raise response
        return response


def parse_json_object(text: str) -> dict:
    """
    Parse completion output as a single JSON object.

    A response that is exactly one fenced code block is unwrapped first.
    Anything else that is not a JSON object is rejected, never partially
    parsed.

    Raises:
        ResponseFormatError: not JSON, or JSON that is not an object
    """
    match = _FENCED.fullmatch(text)
    raw = match.group(1) if match else text
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ResponseFormatError(f"Model response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ResponseFormatError(
            f"Model response is JSON {type(data).__name__}, expected an object"
        )
    return data


def get_completion_service(config: RagConfig | None = None) -> CompletionService:
    """
    Factory function to get the completion service.

    Without an API key the returned service fails every call, which the
    pipeline turns into degraded responses.
    """
    if config is None:
        from resume_rag.config import get_config
        config = get_config()

    if not config.has_openai():
        logger.warning("OPENAI_API_KEY not set; suggestion generation is unavailable")
        return UnavailableCompletionService()
    return OpenAICompletionService(
        model=config.completion_model,
        temperature=config.temperature,
        api_key=config.openai_api_key,
    )
