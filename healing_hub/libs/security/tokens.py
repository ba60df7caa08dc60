"""JWT access and refresh tokens signed with HS256."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from healing_hub.libs.schemas.settings import get_settings

ALGORITHM = "HS256"


class TokenError(ValueError):
    """Raised when a token is missing, expired or signed with the wrong secret."""


def _encode(user_id: str, secret: str, ttl_seconds: int, token_type: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "type": token_type,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def _decode(token: str, secret: str, token_type: str) -> dict[str, Any]:
    if not token:
        raise TokenError("Token is required")
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc
    if payload.get("type") != token_type or not payload.get("userId"):
        raise TokenError("Invalid token")
    return payload


def create_access_token(user_id: str) -> str:
    settings = get_settings()
    return _encode(user_id, settings.jwt_secret, settings.access_token_ttl_seconds, "access")


def create_refresh_token(user_id: str) -> str:
    settings = get_settings()
    return _encode(user_id, settings.jwt_refresh_secret, settings.refresh_token_ttl_seconds, "refresh")


def verify_access_token(token: str) -> dict[str, Any]:
    return _decode(token, get_settings().jwt_secret, "access")


def verify_refresh_token(token: str) -> dict[str, Any]:
    return _decode(token, get_settings().jwt_refresh_secret, "refresh")


__all__ = [
    "TokenError",
    "create_access_token",
    "create_refresh_token",
    "verify_access_token",
    "verify_refresh_token",
]
