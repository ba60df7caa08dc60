"""Request correlation, timing and PII masking."""

from __future__ import annotations

import re
import time
import uuid
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

RE_EMAIL = re.compile(r"([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})")
RE_PHONE = re.compile(r"\b(\+?\d[\d\s-]{7,}\d)\b")


def mask_pii(text: str) -> str:
    if not text:
        return text
    safe = RE_EMAIL.sub(r"***@***", text)
    safe = RE_PHONE.sub("***", safe)
    return safe


def peer_ip(request: Request) -> str:
    """Socket peer address.

    Behind a reverse proxy, uvicorn rewrites this from ``X-Forwarded-For`` only
    for hosts listed in ``FORWARDED_ALLOW_IPS``.
    """

    return getattr(request.client, "host", None) or "unknown"


def client_ip(request: Request) -> str:
    """First hop of ``X-Forwarded-For``, else the socket peer.

    The header is client controlled, so this is for audit fields only.
    """

    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return peer_ip(request)


@dataclass
class RequestStats:
    """Process-local request counters used for the admin error rate."""

    total: int = 0
    server_errors: int = 0

    def record(self, status_code: int) -> None:
        self.total += 1
        if status_code >= 500:
            self.server_errors += 1

    def error_rate(self) -> float:
        """Percentage of responses with a 5xx status, two decimals."""

        if not self.total:
            return 0.0
        return round(self.server_errors * 100 / self.total, 2)

    def reset(self) -> None:
        self.total = 0
        self.server_errors = 0


REQUEST_STATS = RequestStats()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a request id, time the request and count failures."""

    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()
        request.state.request_id = req_id

        try:
            response = await call_next(request)
        except Exception:
            REQUEST_STATS.record(500)
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Request-ID"] = req_id
        response.headers["X-Response-Time-ms"] = str(duration_ms)
        if request.url.path.startswith("/api"):
            REQUEST_STATS.record(response.status_code)
        return response


__all__ = ["REQUEST_STATS", "RequestContextMiddleware", "RequestStats", "client_ip", "mask_pii", "peer_ip"]
