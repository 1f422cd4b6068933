"""Tests for the OpenAI text-completion fallback service."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from src.services.llm.exceptions import (
    LLMConnectionError,
    LLMEmptyResponseError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from src.services.llm.openai_completion import STOP_SEQUENCES, OpenAICompletionService

OPENAI_URL = "https://api.openai.com/v1/completions"


def _request() -> httpx.Request:
    return httpx.Request("POST", OPENAI_URL)


def _completion(text: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(text=text)])


@pytest.fixture
def openai_service(settings) -> OpenAICompletionService:
    service = OpenAICompletionService(settings=settings)
    client = MagicMock()
    client.completions.create = AsyncMock(return_value=_completion(" When works best?\n"))
    service._client = client
    return service


class TestOpenAICompletionService:
    """Prompt completion and error translation."""

    @pytest.mark.asyncio
    async def test_complete(self, openai_service, settings) -> None:
        text = await openai_service.complete("Agent: Hello\nRecipient: Hi\nAgent:", max_tokens=40)

        assert text == "When works best?"
        kwargs = openai_service._client.completions.create.call_args.kwargs
        assert kwargs["model"] == settings.openai_completion_model
        assert kwargs["prompt"].endswith("Agent:")
        assert kwargs["max_tokens"] == 40
        assert kwargs["stop"] == STOP_SEQUENCES

    @pytest.mark.asyncio
    async def test_missing_key(self, settings_factory) -> None:
        service = OpenAICompletionService(settings=settings_factory(openai_api_key=None))

        with pytest.raises(LLMConnectionError):
            await service.complete("Agent:")

    @pytest.mark.asyncio
    async def test_empty_reply(self, openai_service) -> None:
        openai_service._client.completions.create.return_value = _completion("\n")

        with pytest.raises(LLMEmptyResponseError):
            await openai_service.complete("Agent:")

    @pytest.mark.asyncio
    async def test_rate_limit(self, openai_service) -> None:
        response = httpx.Response(429, request=_request())
        openai_service._client.completions.create.side_effect = openai.RateLimitError(
            "rate limited", response=response, body=None
        )

        with pytest.raises(LLMRateLimitError):
            await openai_service.complete("Agent:")

    @pytest.mark.asyncio
    async def test_timeout(self, openai_service) -> None:
        openai_service._client.completions.create.side_effect = openai.APITimeoutError(
            request=_request()
        )

        with pytest.raises(LLMTimeoutError):
            await openai_service.complete("Agent:")
