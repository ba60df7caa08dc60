"""Domain errors raised by services and translated to HTTP at the route edge."""

from __future__ import annotations

from fastapi import HTTPException


class ServiceError(RuntimeError):
    """Base class for failures that carry a client-facing message."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(ServiceError):
    status_code = 400


class AuthError(ServiceError):
    status_code = 401


class PermissionDenied(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class UpstreamError(ServiceError):
    status_code = 502


def to_http(exc: ServiceError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


__all__ = [
    "AuthError",
    "Conflict",
    "NotFound",
    "PermissionDenied",
    "ServiceError",
    "UpstreamError",
    "ValidationFailed",
    "to_http",
]
