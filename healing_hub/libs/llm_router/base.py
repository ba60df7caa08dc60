"""Chat completion provider contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


@dataclass
class ChatReply:
    """Assistant reply plus the accounting the router needs."""

    text: str
    model: str
    provider: str | None = None
    finish_reason: str | None = None
    usage: Mapping[str, Any] = field(default_factory=dict)
    cost: float | None = None


class ChatProvider(ABC):
    name = "provider"

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[Mapping[str, Any]],
        *,
        model: str,
        **options: Any,
    ) -> ChatReply:
        """Return the assistant reply for ``messages``."""


__all__ = ["ChatProvider", "ChatReply"]
