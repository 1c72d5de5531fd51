"""
Obligation Tracker - LLM Provider Abstraction.

Routes extraction prompts to the configured provider and hands back a
parsed JSON object. The provider is chosen on first use from LLM_PROVIDER;
supported: gemini (default), anthropic, openai, cohere.

Every call asks for deterministic output (temperature 0) and, where the
provider supports it, a JSON-only response. Provider SDKs are optional
extras and imported only when their provider is selected.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class LLMUnavailable(Exception):
    """Raised when no provider can be used (missing API key, unknown provider)."""


class LLMResponseError(ValueError):
    """Raised when the provider's reply is not a single JSON object."""


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    model: str
    api_key: str


_ProviderFn = Callable[[ProviderConfig, str, str, int], Awaitable[str]]

# ---------------------------------------------------------------------------
# Provider implementations
# ---------------------------------------------------------------------------


async def _gemini_json(cfg: ProviderConfig, system: str, user_message: str, max_tokens: int) -> str:
    import google.generativeai as genai

    genai.configure(api_key=cfg.api_key)
    model = genai.GenerativeModel(model_name=cfg.model, system_instruction=system)
    response = await model.generate_content_async(
        user_message,
        generation_config=genai.types.GenerationConfig(
            max_output_tokens=max_tokens,
            temperature=0,
            response_mime_type="application/json",
        ),
    )
    return response.text


async def _anthropic_json(cfg: ProviderConfig, system: str, user_message: str, max_tokens: int) -> str:
    import anthropic

    client = anthropic.AsyncAnthropic(api_key=cfg.api_key)
    # No JSON mode; the system prompt demands a bare object
    response = await client.messages.create(
        model=cfg.model,
        max_tokens=max_tokens,
        temperature=0,
        system=system,
        messages=[{"role": "user", "content": user_message}],
    )
    return "".join(block.text for block in response.content if getattr(block, "type", "text") == "text")


async def _openai_json(cfg: ProviderConfig, system: str, user_message: str, max_tokens: int) -> str:
    from openai import AsyncOpenAI

    client = AsyncOpenAI(api_key=cfg.api_key)
    response = await client.chat.completions.create(
        model=cfg.model,
        max_tokens=max_tokens,
        temperature=0,
        response_format={"type": "json_object"},
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.choices[0].message.content or ""


async def _cohere_json(cfg: ProviderConfig, system: str, user_message: str, max_tokens: int) -> str:
    import cohere

    client = cohere.AsyncClientV2(api_key=cfg.api_key)
    response = await client.chat(
        model=cfg.model,
        max_tokens=max_tokens,
        temperature=0,
        response_format={"type": "json_object"},
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.message.content[0].text


# name -> (implementation, default model)
_PROVIDERS: dict[str, tuple[_ProviderFn, str]] = {
    "gemini":    (_gemini_json,    "gemini-2.0-flash"),
    "anthropic": (_anthropic_json, "claude-haiku-4-5-20251001"),
    "openai":    (_openai_json,    "gpt-4o-mini"),
    "cohere":    (_cohere_json,    "command-a-03-2025"),
}


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def is_configured() -> bool:
    """True when an API key is set, i.e. extraction can reach a provider."""
    from src.config import settings

    key = settings.LLM_API_KEY.strip()
    return bool(key) and not key.startswith("your-")


def provider_config() -> ProviderConfig:
    """Resolve the provider, model and key from settings.

    Raises LLMUnavailable for a missing key or an unknown provider.
    """
    from src.config import settings

    if not is_configured():
        raise LLMUnavailable("LLM_API_KEY is not set")

    name = settings.LLM_PROVIDER.strip().lower()
    if name not in _PROVIDERS:
        raise LLMUnavailable(f"Unknown LLM_PROVIDER={name!r}. Supported: {', '.join(_PROVIDERS)}")

    model = settings.LLM_MODEL or _PROVIDERS[name][1]
    return ProviderConfig(name=name, model=model, api_key=settings.LLM_API_KEY.strip())


# Lazy singleton - populated on first call to complete()
_active: ProviderConfig | None = None


def reset_provider() -> None:
    """Forget the selected provider so the next call re-reads settings."""
    global _active
    _active = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def strip_code_fences(raw_text: str | None) -> str:
    """Remove markdown code block delimiters around a model reply."""
    cleaned = (raw_text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned.removeprefix("```json")
    elif cleaned.startswith("```"):
        cleaned = cleaned.removeprefix("```")
    if cleaned.endswith("```"):
        cleaned = cleaned.removesuffix("```")
    return cleaned.strip()


async def complete(system: str, user_message: str, max_tokens: int = 512) -> str:
    """Send a prompt to the configured provider and return the raw reply text.

    Raises LLMUnavailable when no provider is configured; provider API
    errors propagate to the caller.
    """
    global _active

    if _active is None:
        _active = provider_config()
        logger.info("LLM provider: %s, model: %s", _active.name, _active.model)

    fn = _PROVIDERS[_active.name][0]
    return await fn(_active, system, user_message, max_tokens)


async def complete_json(system: str, user_message: str, max_tokens: int = 512) -> dict[str, Any]:
    """Like complete(), but parse the reply into a JSON object.

    Raises LLMResponseError when the reply is not valid JSON or not an object.
    """
    raw_text = strip_code_fences(
        await complete(system=system, user_message=user_message, max_tokens=max_tokens)
    )
    logger.debug("LLM raw response: %s", raw_text)
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise LLMResponseError(f"Reply is not JSON: {exc} (raw: {raw_text[:200]!r})") from exc
    if not isinstance(data, dict):
        raise LLMResponseError(f"Expected a JSON object, got {type(data).__name__}")
    return data
