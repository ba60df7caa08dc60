"""Process-wide chat router and the single entry point services use to reach it."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from healing_hub.apps.api.middleware.request_context import mask_pii
from healing_hub.libs.llm_router import ChatProvider, ChatReply, ChatRouter, make_openai_provider
from healing_hub.libs.schemas.settings import AppSettings, get_settings

LOGGER = logging.getLogger(__name__)

OFFLINE_REPLY = (
    "I'm here with you. Take a slow breath in, and a slower breath out. "
    "What feels most present for you right now?"
)

_ROUTER: ChatRouter | None = None


class OfflineProvider(ChatProvider):
    """Canned reply used when no OpenAI key is configured."""

    name = "offline"

    async def complete(self, messages: Sequence[Mapping[str, Any]], *, model: str, **options: Any) -> ChatReply:
        return ChatReply(text=OFFLINE_REPLY, model=model, provider=self.name)


def build_chat_router(settings: AppSettings | None = None) -> ChatRouter:
    settings = settings or get_settings()
    router = ChatRouter()
    openai_provider = make_openai_provider(settings.openai_api_key)
    if openai_provider is not None:
        router.register_provider("openai", openai_provider, daily_budget=settings.openai_daily_budget)
    else:
        LOGGER.warning("OPENAI_API_KEY not set; chat replies come from the offline provider")
        router.register_provider("offline", OfflineProvider())
    return router


def set_router(router: ChatRouter | None) -> None:
    global _ROUTER
    _ROUTER = router


def get_router() -> ChatRouter | None:
    return _ROUTER


async def call_llm(
    *,
    messages: Sequence[Mapping[str, Any]],
    model: str | None = None,
    **options: Any,
) -> str:
    """Send chat messages through the router and return the reply text.

    Email addresses and phone numbers are masked before anything leaves the
    process.
    """

    if _ROUTER is None:
        raise RuntimeError("Chat router has not been initialised")

    settings = get_settings()
    request_options = {
        "temperature": settings.chat_temperature,
        "max_tokens": settings.chat_max_tokens,
        **options,
    }
    sanitized = [_scrub_message(message) for message in messages]
    reply = await _ROUTER.complete(sanitized, model=model or settings.model_chat, **request_options)
    return reply.text


def _scrub_message(message: Mapping[str, Any]) -> dict[str, Any]:
    payload = dict(message)
    if isinstance(payload.get("content"), str):
        payload["content"] = mask_pii(payload["content"])
    return payload


__all__ = ["OFFLINE_REPLY", "OfflineProvider", "build_chat_router", "call_llm", "get_router", "set_router"]
