"""Core helpers for the Healing Hub API."""

from .errors import (
    AuthError,
    Conflict,
    NotFound,
    PermissionDenied,
    ServiceError,
    UpstreamError,
    ValidationFailed,
    to_http,
)
from .responses import error_body, fail, ok, success_body

__all__ = [
    "AuthError",
    "Conflict",
    "NotFound",
    "PermissionDenied",
    "ServiceError",
    "UpstreamError",
    "ValidationFailed",
    "error_body",
    "fail",
    "ok",
    "success_body",
    "to_http",
]
