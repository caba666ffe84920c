"""
Unit tests for the chat completion fallback chain.

Provider calls are patched out; no network access is needed.
"""
import pytest
from fastapi import HTTPException
from unittest.mock import AsyncMock, patch

from permaculture_planner.config import Config
from permaculture_planner.services import llm_provider
from permaculture_planner.services.llm_provider import AIProviderError, is_retryable_error

MESSAGES = [
    {"role": "system", "content": "You are a permaculture designer."},
    {"role": "user", "content": "What grows under walnuts?"},
]


class StatusError(Exception):
    def __init__(self, status_code, message="provider error"):
        super().__init__(message)
        self.status_code = status_code


@pytest.fixture
def model_chain():
    with patch.object(
        llm_provider, "get_chat_model_chain", new=AsyncMock(return_value=["free-a", "free-b", "tutor"])
    ):
        yield


@pytest.fixture
def both_keys(monkeypatch):
    monkeypatch.setattr(Config, "OPENROUTER_API_KEY", "or-key")
    monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", "an-key")


def test_is_retryable_error():
    assert is_retryable_error(StatusError(429))
    assert is_retryable_error(StatusError(404))
    assert is_retryable_error(AIProviderError("empty"))
    assert is_retryable_error(Exception("Model does not support images: unsupported input"))
    assert not is_retryable_error(StatusError(401))
    assert not is_retryable_error(Exception("boom"))


@pytest.mark.asyncio
async def test_moves_down_the_chain_on_retryable_errors(both_keys, model_chain):
    calls = []

    async def fake_openrouter(model, messages):
        calls.append(model)
        if model == "free-a":
            raise StatusError(429, "rate limited")
        return f"answer from {model}"

    with patch.object(llm_provider, "_openrouter_completion", new=fake_openrouter):
        result = await llm_provider.generate_chat_completion(MESSAGES)

    assert result == {"content": "answer from free-b", "model": "free-b"}
    assert calls == ["free-a", "free-b"]


@pytest.mark.asyncio
async def test_non_retryable_error_skips_to_anthropic(both_keys, model_chain):
    openrouter = AsyncMock(side_effect=StatusError(401, "bad key"))
    claude = AsyncMock(return_value="answer from claude")

    with patch.object(llm_provider, "_openrouter_completion", new=openrouter), \
            patch.object(llm_provider, "_anthropic_completion", new=claude):
        result = await llm_provider.generate_chat_completion(MESSAGES)

    assert result == {"content": "answer from claude", "model": Config.ANTHROPIC_FALLBACK_MODEL}
    assert openrouter.await_count == 1
    claude.assert_awaited_once_with(Config.ANTHROPIC_FALLBACK_MODEL, MESSAGES)


@pytest.mark.asyncio
async def test_all_providers_failing_is_a_503(both_keys, model_chain):
    openrouter = AsyncMock(side_effect=AIProviderError("empty response"))
    claude = AsyncMock(side_effect=StatusError(500, "overloaded"))

    with patch.object(llm_provider, "_openrouter_completion", new=openrouter), \
            patch.object(llm_provider, "_anthropic_completion", new=claude):
        with pytest.raises(HTTPException) as exc_info:
            await llm_provider.generate_chat_completion(MESSAGES)

    assert exc_info.value.status_code == 503
    assert openrouter.await_count == 3
    assert "openrouter:tutor error: empty response" in exc_info.value.detail
    assert "overloaded" in exc_info.value.detail


@pytest.mark.asyncio
async def test_no_configured_provider(monkeypatch):
    monkeypatch.setattr(Config, "OPENROUTER_API_KEY", None)
    monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", None)

    with pytest.raises(HTTPException) as exc_info:
        await llm_provider.generate_chat_completion(MESSAGES)

    assert exc_info.value.status_code == 503
    assert exc_info.value.detail == "No AI provider is configured"
