"""Per-route, per-client rate limits as FastAPI dependencies.

The in-memory limiter keeps a sliding window of request timestamps per
client. With ``RATE_LIMIT_STORAGE=redis`` the limit is shared between
workers through fixed-window ``INCR`` buckets.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque

from fastapi import HTTPException, Request, status
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from healing_hub.apps.api.middleware.request_context import peer_ip
from healing_hub.libs.schemas.settings import get_settings

LOGGER = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Too many requests, please try again later"
# Tracked clients per limiter before idle entries are dropped.
SWEEP_THRESHOLD = 1024

_redis: aioredis.Redis | None = None
_LIMITERS: list["RateLimiter"] = []


def _get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(get_settings().redis_url, decode_responses=True)
    return _redis


class RateLimiter:
    """Callable dependency enforcing ``max_requests`` per ``window_seconds``."""

    def __init__(self, scope: str, max_requests: int, window_seconds: int, message: str = DEFAULT_MESSAGE) -> None:
        self.scope = scope
        self.max_requests = max(int(max_requests), 1)
        self.window_seconds = max(int(window_seconds), 1)
        self.message = message
        self._hits: dict[str, Deque[float]] = {}
        self._next_sweep = 0.0
        _LIMITERS.append(self)

    async def __call__(self, request: Request) -> None:
        key = peer_ip(request)
        if get_settings().rate_limit_storage.lower() == "redis":
            allowed = await self._allow_redis(key)
        else:
            allowed = self._allow_memory(key)
        if not allowed:
            LOGGER.warning("rate_limited scope=%s limit=%d/%ds", self.scope, self.max_requests, self.window_seconds)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={"Retry-After": str(self.window_seconds)},
            )

    def _allow_memory(self, key: str) -> bool:
        now = time.monotonic()
        if len(self._hits) >= SWEEP_THRESHOLD and now >= self._next_sweep:
            self._sweep(now)
        hits = self._hits.setdefault(key, deque())
        self._expire(hits, now)
        if len(hits) >= self.max_requests:
            return False
        hits.append(now)
        return True

    def _expire(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        self._next_sweep = now + self.window_seconds
        for key in list(self._hits):
            hits = self._hits[key]
            self._expire(hits, now)
            if not hits:
                del self._hits[key]

    async def _allow_redis(self, key: str) -> bool:
        bucket = f"ratelimit:{self.scope}:{key}:{int(time.time() // self.window_seconds)}"
        redis = _get_redis()
        try:
            count = await redis.incr(bucket)
            if count == 1:
                await redis.expire(bucket, self.window_seconds * 2)
        except RedisError as exc:
            # Fail open when Redis is unreachable.
            LOGGER.error("rate_limit_backend_error scope=%s: %s", self.scope, exc)
            return True
        return count <= self.max_requests

    @property
    def tracked_clients(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()
        self._next_sweep = 0.0


def rate_limit(
    scope: str,
    *,
    max_requests: int,
    window_seconds: int = 60,
    message: str = DEFAULT_MESSAGE,
) -> Callable[[Request], Awaitable[None]]:
    return RateLimiter(scope, max_requests, window_seconds, message)


def reset_rate_limits() -> None:
    for limiter in _LIMITERS:
        limiter.reset()


__all__ = ["DEFAULT_MESSAGE", "RateLimiter", "rate_limit", "reset_rate_limits"]
