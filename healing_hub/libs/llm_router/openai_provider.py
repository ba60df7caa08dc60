"""OpenAI chat completions provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

import openai
from openai import AsyncOpenAI

from .base import ChatProvider, ChatReply

LOGGER = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 500

# USD per million tokens: (prompt, completion).
_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4o": (2.50, 10.00),
    "gpt-4o-mini": (0.15, 0.60),
}


def estimate_cost(model: str, usage: Mapping[str, Any]) -> float | None:
    """Dated snapshots such as ``gpt-4o-2024-08-06`` use their family's price."""

    prices = _PRICING.get(model)
    if prices is None:
        family = next((key for key in sorted(_PRICING, key=len, reverse=True) if model.startswith(f"{key}-")), None)
        prices = _PRICING.get(family) if family else None
    if prices is None:
        return None
    prompt = float(usage.get("prompt_tokens") or 0)
    completion = float(usage.get("completion_tokens") or 0)
    return (prompt * prices[0] + completion * prices[1]) / 1_000_000


def _clamp_temperature(value: Any) -> float:
    if not isinstance(value, (int, float)):
        return DEFAULT_TEMPERATURE
    return max(0.0, min(2.0, float(value)))


def _clamp_max_tokens(value: Any) -> int:
    try:
        tokens = int(value)
    except (TypeError, ValueError):
        return DEFAULT_MAX_TOKENS
    return tokens if tokens > 0 else DEFAULT_MAX_TOKENS


class OpenAIProvider(ChatProvider):
    name = "openai"

    def __init__(self, api_key: str, *, timeout: float = 45.0, client: AsyncOpenAI | None = None) -> None:
        self._timeout = timeout
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def complete(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        model: str,
        temperature: Any = DEFAULT_TEMPERATURE,
        max_tokens: Any = DEFAULT_MAX_TOKENS,
        **options: Any,
    ) -> ChatReply:
        if not messages:
            raise ValueError("At least one chat message is required")

        request = {
            "model": model,
            "messages": [{"role": message["role"], "content": message["content"]} for message in messages],
            "temperature": _clamp_temperature(temperature),
            "max_tokens": _clamp_max_tokens(max_tokens),
            **options,
        }
        try:
            response = await asyncio.wait_for(self._client.chat.completions.create(**request), timeout=self._timeout)
        except openai.AuthenticationError as exc:
            LOGGER.error("openai_auth_failed: %s", exc)
            raise RuntimeError("OpenAI rejected the API key") from exc
        except openai.RateLimitError as exc:
            LOGGER.warning("openai_rate_limited: %s", exc)
            raise RuntimeError("OpenAI rate limit reached") from exc
        except asyncio.TimeoutError as exc:
            LOGGER.warning("openai_timeout after %.0fs", self._timeout)
            raise RuntimeError("OpenAI request timed out") from exc
        except openai.OpenAIError as exc:
            LOGGER.error("openai_request_failed: %r", exc)
            raise RuntimeError(f"OpenAI request failed: {exc}") from exc

        choice = response.choices[0] if response.choices else None
        text = (choice.message.content or "") if choice is not None else ""
        usage = response.usage.model_dump() if response.usage is not None else {}
        resolved_model = response.model or model
        return ChatReply(
            text=text,
            model=resolved_model,
            provider=self.name,
            finish_reason=choice.finish_reason if choice is not None else None,
            usage=usage,
            cost=estimate_cost(resolved_model, usage),
        )


def make_openai_provider(api_key: str | None) -> OpenAIProvider | None:
    return OpenAIProvider(api_key) if api_key else None


__all__ = ["OpenAIProvider", "estimate_cost", "make_openai_provider"]
