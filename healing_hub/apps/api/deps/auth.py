from __future__ import annotations

from fastapi import Depends, Header, HTTPException

from healing_hub.apps.api.services.users import find_user_by_id
from healing_hub.libs.security import TokenError, verify_access_token, verify_api_key


def _bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1].strip()
        return token or None
    return None


async def get_current_user_id(authorization: str | None = Header(default=None)) -> str:
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        payload = verify_access_token(token)
    except TokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
    return payload["userId"]


async def get_optional_user_id(authorization: str | None = Header(default=None)) -> str | None:
    """Like ``get_current_user_id`` but anonymous callers get ``None`` instead of a 401."""

    token = _bearer_token(authorization)
    if token is None:
        return None
    try:
        return verify_access_token(token)["userId"]
    except TokenError:
        return None


async def require_admin(user_id: str = Depends(get_current_user_id)) -> str:
    record = await find_user_by_id(user_id)
    if record is None or record.get("Role") != "admin":
        raise HTTPException(status_code=403, detail="Unauthorized")
    return user_id


async def verify_internal_api_key(x_api_key: str | None = Header(default=None)) -> None:
    verify_api_key(x_api_key)


__all__ = ["get_current_user_id", "get_optional_user_id", "require_admin", "verify_internal_api_key"]
