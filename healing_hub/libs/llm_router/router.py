"""Ordered provider fallback with per-provider daily spend caps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Mapping, Sequence

from .base import ChatProvider, ChatReply

LOGGER = logging.getLogger(__name__)


class AllProvidersFailedError(RuntimeError):
    """No provider in the fallback order produced a reply."""


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass
class SpendCap:
    """USD spent by one provider today; ``limit=None`` means uncapped."""

    limit: float | None = None
    spent: float = 0.0
    day: date = field(default_factory=_utc_today)

    def _roll(self) -> None:
        today = _utc_today()
        if today != self.day:
            self.day = today
            self.spent = 0.0

    @property
    def exhausted(self) -> bool:
        self._roll()
        return self.limit is not None and self.spent >= self.limit

    def charge(self, amount: float | None) -> None:
        self._roll()
        if amount and amount > 0:
            self.spent += amount


class ChatRouter:
    """Try each registered provider in order until one answers."""

    def __init__(self) -> None:
        self._providers: dict[str, ChatProvider] = {}
        self._caps: dict[str, SpendCap] = {}
        self._order: list[str] = []

    @property
    def providers(self) -> list[str]:
        return list(self._providers)

    def register_provider(self, key: str, provider: ChatProvider, *, daily_budget: float | None = None) -> None:
        self._providers[key] = provider
        self._caps[key] = SpendCap(daily_budget)

    def set_fallback_order(self, keys: Sequence[str]) -> None:
        if not keys:
            raise ValueError("Fallback order needs at least one provider")
        unknown = [key for key in keys if key not in self._providers]
        if unknown:
            raise ValueError(f"Unknown chat providers: {', '.join(unknown)}")
        self._order = list(dict.fromkeys(keys))

    async def complete(self, messages: Sequence[Mapping[str, Any]], *, model: str, **options: Any) -> ChatReply:
        order = self._order or self.providers
        if not order:
            raise AllProvidersFailedError("No chat providers registered")

        failures: list[str] = []
        for key in order:
            cap = self._caps[key]
            if cap.exhausted:
                failures.append(f"{key}: daily budget exhausted")
                continue
            try:
                reply = await self._providers[key].complete(messages, model=model, **options)
            except Exception as exc:
                LOGGER.warning("chat_provider_failed provider=%s: %s", key, exc)
                failures.append(f"{key}: {exc}")
                continue

            reply.provider = reply.provider or key
            cap.charge(reply.cost)
            LOGGER.info(
                "chat_completion provider=%s model=%s total_tokens=%s cost=%.6f",
                key,
                reply.model,
                reply.usage.get("total_tokens"),
                reply.cost or 0.0,
            )
            return reply

        raise AllProvidersFailedError("; ".join(failures))


__all__ = ["AllProvidersFailedError", "ChatRouter", "SpendCap"]
