"""Unit tests for the OpenAI-compatible content provider."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError, APITimeoutError, AuthenticationError, RateLimitError

from domain.content.ports import (
    ProviderAuthError,
    ProviderInvalidResponseError,
    ProviderRateLimitError,
    ProviderServiceError,
    ProviderTimeoutError,
)
from infrastructure.ai.openai_provider import OpenAICompatibleProvider

REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _provider(result=None, error=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=result, side_effect=error)
    return OpenAICompatibleProvider(name="primary", api_key=None, client=client), client


class TestOpenAICompatibleProvider:

    @pytest.mark.asyncio
    async def test_ok_verdict(self):
        provider, client = _provider(_completion(json.dumps({
            "decision": "ok",
            "rewritten_text": "Earlier notice about deadline changes would help the team.",
        })))

        verdict = await provider.screen_and_rewrite("deadlines keep moving")

        assert verdict.decision == "ok"
        assert verdict.rewritten_text.startswith("Earlier notice")
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][-1]["content"].endswith("deadlines keep moving")

    @pytest.mark.asyncio
    async def test_blocked_verdict(self):
        provider, _ = _provider(_completion(json.dumps({
            "decision": "blocked",
            "category": "harassment",
            "reason": "Insults the recipient",
        })))

        verdict = await provider.screen_and_rewrite("text")
        assert verdict.decision == "blocked"
        assert verdict.category == "harassment"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, expected", [
        (APITimeoutError(request=REQUEST), ProviderTimeoutError),
        (APIConnectionError(request=REQUEST), ProviderServiceError),
        (
            RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None),
            ProviderRateLimitError,
        ),
        (
            AuthenticationError("bad key", response=httpx.Response(401, request=REQUEST), body=None),
            ProviderAuthError,
        ),
    ])
    async def test_error_mapping(self, error, expected):
        provider, _ = _provider(error=error)
        with pytest.raises(expected):
            await provider.screen_and_rewrite("text")

    @pytest.mark.asyncio
    async def test_no_choices(self):
        provider, _ = _provider(SimpleNamespace(choices=[]))
        with pytest.raises(ProviderInvalidResponseError):
            await provider.screen_and_rewrite("text")

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "not json at all",
        "[1, 2]",
        '{"decision": "maybe"}',
        '{"decision": "ok"}',
        '{"decision": "blocked", "category": "threat"}',
    ])
    def test_invalid_answers(self, raw):
        provider, _ = _provider()
        with pytest.raises(ProviderInvalidResponseError):
            provider.parse_verdict(raw)

    def test_invalid_answer_does_not_echo_text(self):
        provider, _ = _provider()
        with pytest.raises(ProviderInvalidResponseError) as exc:
            provider.parse_verdict('{"decision": "ok", "rewritten_text": ""}')
        assert "rewritten_text" not in str(exc.value)

    def test_requires_key_or_client(self):
        with pytest.raises(ValueError):
            OpenAICompatibleProvider(name="primary", api_key=None)
