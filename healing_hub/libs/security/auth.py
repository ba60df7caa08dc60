"""API key checks for internal tooling endpoints."""

from __future__ import annotations

import secrets

from fastapi import HTTPException, status

from healing_hub.libs.schemas.settings import get_settings


def api_key_matches(candidate: str | None) -> bool:
    expected = get_settings().internal_api_key
    if not expected or not candidate:
        return False
    return secrets.compare_digest(candidate, expected)


def verify_api_key(candidate: str | None) -> None:
    """Raise if the provided API key does not match ``INTERNAL_API_KEY``.

    An unset key disables the internal endpoints rather than opening them.
    """

    if not api_key_matches(candidate):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


__all__ = ["api_key_matches", "verify_api_key"]
