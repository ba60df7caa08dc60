"""Request telemetry middleware for logging sanitized request metadata."""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .request_context import mask_pii

LOGGER = logging.getLogger("healing_hub.requests")

_QUIET_PATHS = {"/health", "/metrics", "/api/health"}


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Log one structured line per request. Bodies are never logged."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        path = request.url.path
        if path in _QUIET_PATHS:
            return response

        duration_ms = int(response.headers.get("X-Response-Time-ms", "0") or 0)
        extra = {
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": mask_pii(path),
            "query": mask_pii(request.url.query),
            "status": response.status_code,
            "duration_ms": duration_ms,
            "user_agent": mask_pii(request.headers.get("user-agent", "")),
        }
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        LOGGER.log(level, "%s %s %s %dms", request.method, extra["path"], response.status_code, duration_ms, extra=extra)
        return response


__all__ = ["TelemetryMiddleware"]
