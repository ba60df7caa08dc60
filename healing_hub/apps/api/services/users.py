"""User lookups over the ``Users`` table."""

from __future__ import annotations

from typing import Any

from healing_hub.libs.storage import USERS, Record, get_table


def public_user(record: Record) -> dict[str, Any]:
    """API shape of a user; the password hash never leaves the service layer."""

    return {
        "id": record.id,
        "healingName": record.get("Healing Name"),
        "email": record.get("Email"),
        "role": record.get("Role") or "user",
        "createdAt": record.get("Registration Date") or record.created_time,
    }


async def find_user_by_email(email: str) -> Record | None:
    if not email:
        return None
    return await get_table(USERS).first({"Email": email.strip().lower()})


async def find_user_by_healing_name(healing_name: str) -> Record | None:
    if not healing_name:
        return None
    return await get_table(USERS).first({"Healing Name": healing_name})


async def find_user_by_id(user_id: str) -> Record | None:
    if not user_id:
        return None
    return await get_table(USERS).get(user_id)


__all__ = ["find_user_by_email", "find_user_by_healing_name", "find_user_by_id", "public_user"]
