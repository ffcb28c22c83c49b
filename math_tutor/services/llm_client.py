"""
LLM Client
Unified interface for generating content via Gemini, OpenAI, Anthropic, and Grok (xAI) APIs
"""
import os
import asyncio
import logging
from typing import Optional
from enum import Enum

import httpx

from math_tutor.core.config import settings

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROK = "grok"


class LLMClientError(Exception):
    """Base exception for LLM client errors"""
    pass


class LLMTimeoutError(LLMClientError):
    """Raised when LLM request times out"""
    pass


class LLMAPIError(LLMClientError):
    """Raised when LLM API returns an error"""
    pass


# API Endpoints
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
GROK_API_URL = "https://api.x.ai/v1/chat/completions"

DEFAULT_SYSTEM_INSTRUCTION = "Return ONLY valid JSON."


async def _retry_with_backoff(
    coro_func,
    max_retries: Optional[int] = None,
    initial_backoff: Optional[float] = None
):
    """
    Execute coroutine with exponential backoff retry

    Args:
        coro_func: Async function to call (no arguments)
        max_retries: Maximum number of retry attempts
        initial_backoff: Initial backoff delay in seconds

    Returns:
        Result from successful coroutine execution

    Raises:
        Last exception if all retries exhausted
    """
    if max_retries is None:
        max_retries = settings.llm_max_retries
    if initial_backoff is None:
        initial_backoff = settings.llm_initial_backoff

    last_exception = None
    backoff = initial_backoff

    for attempt in range(max_retries + 1):
        try:
            return await coro_func()
        except (httpx.TimeoutException, httpx.HTTPStatusError) as e:
            last_exception = e

            if attempt == max_retries:
                break

            # Don't retry on client errors (4xx) except rate limits (429)
            if isinstance(e, httpx.HTTPStatusError):
                if 400 <= e.response.status_code < 500 and e.response.status_code != 429:
                    raise

            logger.warning(
                f"⚠️ Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {backoff:.1f}s..."
            )

            await asyncio.sleep(backoff)
            backoff *= 2  # Exponential backoff

    raise last_exception


async def _post_json(
    api_url: str,
    headers: dict,
    payload: dict,
    provider_name: str,
    timeout: float
) -> dict:
    """
    POST a JSON payload with retries and map transport failures to LLM errors

    Args:
        api_url: API endpoint URL
        headers: Request headers
        payload: JSON body
        provider_name: Name for logging
        timeout: Request timeout in seconds

    Returns:
        Decoded JSON response
    """
    async def make_request():
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(api_url, headers=headers, json=payload)
            response.raise_for_status()
            return response.json()

    try:
        return await _retry_with_backoff(make_request)

    except httpx.TimeoutException as e:
        logger.error(f"❌ {provider_name} request timed out after {timeout}s")
        raise LLMTimeoutError(f"{provider_name} request timed out: {e}")

    except httpx.HTTPStatusError as e:
        logger.error(f"❌ {provider_name} API error: {e.response.status_code}")
        raise LLMAPIError(f"{provider_name} API error: {e.response.text}")

    except httpx.RequestError as e:
        logger.error(f"❌ {provider_name} request failed: {e}")
        raise LLMAPIError(f"{provider_name} request failed: {e}")


async def _call_openai_compatible(
    prompt: str,
    system: str,
    api_url: str,
    api_key: str,
    model: str,
    provider_name: str,
    timeout: float
) -> str:
    """
    Call OpenAI-compatible Chat Completions API
    Works with OpenAI, Grok, and other compatible APIs

    Returns:
        Raw response content string
    """
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json"
    }

    payload = {
        "model": model,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt}
        ],
        "temperature": settings.llm_temperature,
        "max_tokens": settings.llm_max_tokens
    }

    data = await _post_json(api_url, headers, payload, provider_name, timeout)

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise LLMAPIError(f"{provider_name} returned an unexpected response shape")

    logger.info(f"✅ {provider_name} response received ({len(content)} chars)")
    return content


async def _call_openai(prompt: str, system: str, timeout: float) -> str:
    """Call OpenAI API"""
    api_key = settings.openai_api_key or os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise LLMClientError("OPENAI_API_KEY environment variable not set")

    return await _call_openai_compatible(
        prompt=prompt,
        system=system,
        api_url=OPENAI_API_URL,
        api_key=api_key,
        model=settings.openai_model,
        provider_name="OpenAI",
        timeout=timeout
    )


async def _call_grok(prompt: str, system: str, timeout: float) -> str:
    """Call Grok (xAI) API - OpenAI compatible"""
    api_key = settings.grok_api_key or os.getenv("XAI_API_KEY")
    if not api_key:
        raise LLMClientError("GROK_API_KEY or XAI_API_KEY environment variable not set")

    return await _call_openai_compatible(
        prompt=prompt,
        system=system,
        api_url=GROK_API_URL,
        api_key=api_key,
        model=settings.grok_model,
        provider_name="Grok",
        timeout=timeout
    )


async def _call_anthropic(prompt: str, system: str, timeout: float) -> str:
    """Call Anthropic Messages API"""
    api_key = settings.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise LLMClientError("ANTHROPIC_API_KEY environment variable not set")

    headers = {
        "x-api-key": api_key,
        "Content-Type": "application/json",
        "anthropic-version": "2023-06-01"
    }

    payload = {
        "model": settings.anthropic_model,
        "max_tokens": settings.llm_max_tokens,
        "system": system,
        "messages": [
            {"role": "user", "content": prompt}
        ]
    }

    data = await _post_json(ANTHROPIC_API_URL, headers, payload, "Anthropic", timeout)

    try:
        content = data["content"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise LLMAPIError("Anthropic returned an unexpected response shape")

    logger.info(f"✅ Anthropic response received ({len(content)} chars)")
    return content


async def _call_gemini(prompt: str, system: str, timeout: float) -> str:
    """Call Gemini generateContent API"""
    api_key = settings.gemini_api_key or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise LLMClientError("GEMINI_API_KEY (or GOOGLE_API_KEY) environment variable not set")

    headers = {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json"
    }

    payload = {
        "systemInstruction": {"parts": [{"text": system}]},
        "contents": [
            {"role": "user", "parts": [{"text": prompt}]}
        ],
        "generationConfig": {
            "temperature": settings.llm_temperature,
            "maxOutputTokens": settings.llm_max_tokens
        }
    }

    api_url = GEMINI_API_URL.format(model=settings.gemini_model)
    data = await _post_json(api_url, headers, payload, "Gemini", timeout)

    try:
        parts = data["candidates"][0]["content"]["parts"]
        content = "".join(part.get("text", "") for part in parts)
    except (KeyError, IndexError, TypeError):
        raise LLMAPIError("Gemini returned an unexpected response shape")

    logger.info(f"✅ Gemini response received ({len(content)} chars)")
    return content


async def complete(
    prompt: str,
    system: str = DEFAULT_SYSTEM_INSTRUCTION,
    provider: Optional[str] = None,
    timeout: Optional[float] = None
) -> str:
    """
    Generate content using specified LLM provider

    Args:
        prompt: The user prompt
        system: System instruction sent alongside the prompt
        provider: LLM provider - "gemini", "openai", "anthropic", or "grok"
                  (defaults to settings.llm_provider)
        timeout: Optional custom timeout (uses settings.llm_timeout if not specified)

    Returns:
        Raw string output from the LLM (no parsing)

    Raises:
        LLMClientError: If API key is missing
        LLMTimeoutError: If request times out after retries
        LLMAPIError: If API returns an error
        ValueError: If invalid provider specified

    Example:
        response = await complete(prompt, provider="gemini")
    """
    timeout = timeout or settings.llm_timeout
    provider = (provider or settings.llm_provider).lower()

    logger.info(f"🤖 Calling {provider} (timeout: {timeout}s)")

    if provider == LLMProvider.GEMINI:
        return await _call_gemini(prompt, system, timeout)

    elif provider == LLMProvider.OPENAI:
        return await _call_openai(prompt, system, timeout)

    elif provider == LLMProvider.ANTHROPIC:
        return await _call_anthropic(prompt, system, timeout)

    elif provider == LLMProvider.GROK:
        return await _call_grok(prompt, system, timeout)

    else:
        raise ValueError(
            f"Invalid provider: {provider}. "
            f"Supported providers: {[p.value for p in LLMProvider]}"
        )


def health_check(provider: Optional[str] = None) -> dict:
    """
    Check if LLM provider is configured

    Args:
        provider: LLM provider to check (defaults to settings.llm_provider)

    Returns:
        Health status dictionary
    """
    provider = (provider or settings.llm_provider).lower()

    if provider == LLMProvider.GEMINI:
        api_key = settings.gemini_api_key or os.getenv("GOOGLE_API_KEY")
        model = settings.gemini_model
    elif provider == LLMProvider.OPENAI:
        api_key = settings.openai_api_key or os.getenv("OPENAI_API_KEY")
        model = settings.openai_model
    elif provider == LLMProvider.ANTHROPIC:
        api_key = settings.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")
        model = settings.anthropic_model
    elif provider == LLMProvider.GROK:
        api_key = settings.grok_api_key or os.getenv("XAI_API_KEY")
        model = settings.grok_model
    else:
        return {"provider": provider, "status": "error", "message": "Invalid provider"}

    configured = bool(api_key)

    return {
        "provider": provider,
        "configured": configured,
        "model": model,
        "status": "ready" if configured else "not_configured"
    }
