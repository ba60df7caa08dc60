"""Chat completion routing across OpenAI and offline providers."""

from .base import ChatProvider, ChatReply
from .openai_provider import OpenAIProvider, estimate_cost, make_openai_provider
from .router import AllProvidersFailedError, ChatRouter, SpendCap

__all__ = [
    "AllProvidersFailedError",
    "ChatProvider",
    "ChatReply",
    "ChatRouter",
    "OpenAIProvider",
    "SpendCap",
    "estimate_cost",
    "make_openai_provider",
]
