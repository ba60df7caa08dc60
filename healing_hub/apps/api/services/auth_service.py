"""Registration, login and token refresh."""

from __future__ import annotations

import logging
from typing import Any

from healing_hub.apps.api.core.errors import AuthError, Conflict
from healing_hub.apps.api.services.users import (
    find_user_by_email,
    find_user_by_healing_name,
    find_user_by_id,
    public_user,
)
from healing_hub.libs.security import (
    TokenError,
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from healing_hub.libs.storage import LOGIN_RECORDS, USERS, StorageError, get_table, utc_now_iso

LOGGER = logging.getLogger(__name__)


async def register_user(healing_name: str, email: str, password: str) -> dict[str, Any]:
    normalized_email = email.strip().lower()
    if await find_user_by_email(normalized_email):
        raise Conflict("User with this email already exists")
    if await find_user_by_healing_name(healing_name):
        raise Conflict("This healing name is already taken")

    record = await get_table(USERS).create(
        {
            "Healing Name": healing_name,
            "Email": normalized_email,
            "Password": hash_password(password),
            "Role": "user",
            "Registration Date": utc_now_iso(),
            "Journey Status": "Active",
            "Registration Source": "website",
        }
    )
    LOGGER.info("user_registered user_id=%s", record.id)
    return public_user(record)


async def login_user(email: str, password: str) -> dict[str, Any]:
    """Verify credentials and mint an access/refresh token pair."""

    record = await find_user_by_email(email)
    if record is None or not verify_password(password, record.get("Password")):
        raise AuthError("Invalid credentials")

    await _record_login(record.id)
    return {
        "user": public_user(record),
        "accessToken": create_access_token(record.id),
        "refreshToken": create_refresh_token(record.id),
    }


async def _record_login(user_id: str) -> None:
    now = utc_now_iso()
    try:
        await get_table(USERS).update(user_id, {"Last Login Date": now})
        await get_table(LOGIN_RECORDS).create({"User ID": user_id, "Timestamp": now})
    except StorageError as exc:
        LOGGER.warning("login_record_failed user_id=%s: %s", user_id, exc)


async def refresh_access_token(refresh_token: str) -> dict[str, Any]:
    try:
        payload = verify_refresh_token(refresh_token)
    except TokenError as exc:
        raise AuthError("Invalid refresh token") from exc

    record = await find_user_by_id(payload["userId"])
    if record is None:
        raise AuthError("Invalid refresh token")
    return {"accessToken": create_access_token(record.id)}


async def get_user_by_id(user_id: str) -> dict[str, Any] | None:
    record = await find_user_by_id(user_id)
    return public_user(record) if record else None


__all__ = ["get_user_by_id", "login_user", "refresh_access_token", "register_user"]
