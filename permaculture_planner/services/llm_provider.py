"""
LLM provider utilities for the permaculture assistant.

Chat completions walk a chain of OpenRouter models (via the OpenAI SDK) and
fall back to Anthropic when every model in the chain fails.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import anthropic
from fastapi import HTTPException
from openai import AsyncOpenAI

from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.model_settings import get_chat_model_chain

logger = get_logger(__name__)

# Status codes that mean "try the next model" rather than "give up"
RETRYABLE_STATUS_CODES = {404, 413, 429}


class AIProviderError(Exception):
    """A provider answered but produced nothing usable."""


def check_llm_api_keys() -> Tuple[Optional[str], Optional[str]]:
    """Return the configured (OpenRouter, Anthropic) keys."""
    return Config.OPENROUTER_API_KEY, Config.ANTHROPIC_API_KEY


def is_retryable_error(error: Exception) -> bool:
    if isinstance(error, AIProviderError):
        return True
    status_code = getattr(error, "status_code", None)
    if status_code in RETRYABLE_STATUS_CODES:
        return True
    return "unsupported" in str(error).lower()


async def _openrouter_completion(model: str, messages: List[Dict[str, str]]) -> str:
    client = AsyncOpenAI(api_key=Config.OPENROUTER_API_KEY, base_url=Config.OPENROUTER_BASE_URL)
    response = await client.chat.completions.create(
        model=model,
        messages=messages,
        max_tokens=Config.MAX_TOKENS,
        temperature=Config.TEMPERATURE,
    )
    content = response.choices[0].message.content if response.choices else None
    if not content or not content.strip():
        raise AIProviderError(f"{model} returned an empty response")
    return content


async def _anthropic_completion(model: str, messages: List[Dict[str, str]]) -> str:
    system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
    conversation = [m for m in messages if m["role"] != "system"]

    client = anthropic.AsyncAnthropic(api_key=Config.ANTHROPIC_API_KEY)
    response = await client.messages.create(
        model=model,
        max_tokens=Config.MAX_TOKENS,
        system=system,
        messages=conversation,
    )
    text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
    if not text.strip():
        raise AIProviderError(f"{model} returned an empty response")
    return text


async def try_llm_provider(
    provider_name: str,
    provider_fn: Callable[..., Awaitable[str]],
    *args: Any,
) -> Tuple[Optional[str], Optional[Tuple[str, bool]]]:
    """Helper function to try an LLM provider and capture errors."""
    try:
        logger.info("Attempting chat completion with %s", provider_name)
        return await provider_fn(*args), None
    except Exception as e:
        error_msg = f"{provider_name} error: {str(e)}"
        logger.warning(error_msg)
        return None, (error_msg, is_retryable_error(e))


def handle_llm_failures(errors: List[str]) -> None:
    """Handle the case where all LLM providers failed."""
    if not errors:
        raise HTTPException(status_code=503, detail="No AI provider is configured")
    raise HTTPException(
        status_code=503,
        detail="AI service is temporarily unavailable. Errors: {}".format("; ".join(errors)),
    )


async def generate_chat_completion(messages: List[Dict[str, str]]) -> Dict[str, str]:
    """
    Produce a chat completion for ``messages``.

    Returns:
        Dict with ``content`` and the ``model`` that produced it

    Raises:
        HTTPException: 503 when no provider produced a response
    """
    openrouter_key, anthropic_key = check_llm_api_keys()
    errors: List[str] = []

    if openrouter_key:
        for model in await get_chat_model_chain():
            content, error = await try_llm_provider(f"openrouter:{model}", _openrouter_completion, model, messages)
            if content is not None:
                return {"content": content, "model": model}
            error_msg, retryable = error
            errors.append(error_msg)
            if not retryable:
                break

    if anthropic_key:
        model = Config.ANTHROPIC_FALLBACK_MODEL
        content, error = await try_llm_provider(f"anthropic:{model}", _anthropic_completion, model, messages)
        if content is not None:
            return {"content": content, "model": model}
        errors.append(error[0])

    handle_llm_failures(errors)
