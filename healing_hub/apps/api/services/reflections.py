"""Journey reflections."""

from __future__ import annotations

import logging
from typing import Any

from healing_hub.apps.api.services.users import find_user_by_healing_name
from healing_hub.libs.storage import REFLECTIONS, Record, get_table, utc_now_iso

LOGGER = logging.getLogger(__name__)

MAX_REFLECTIONS = 100


def _reflection(record: Record) -> dict[str, Any]:
    return {
        "id": record.id,
        "healingName": record.get("Healing Name"),
        "content": record.get("Reflection Text"),
        "journeyDay": record.get("Journey Day"),
        "createdAt": record.get("Timestamp"),
    }


async def save_reflection(
    healing_name: str,
    reflection_text: str,
    journey_day: str = "Not specified",
    email_consent: bool = False,
    user_id: str | None = None,
) -> dict[str, Any]:
    """Store a reflection, attributing it to ``user_id`` or the user owning ``healing_name``."""

    fields: dict[str, Any] = {
        "Healing Name": healing_name,
        "Reflection Text": reflection_text,
        "Journey Day": journey_day,
        "Timestamp": utc_now_iso(),
        "Email Consent": email_consent,
    }
    if user_id is None:
        owner = await find_user_by_healing_name(healing_name)
        user_id = owner.id if owner else None
    if user_id:
        fields["User ID"] = user_id

    record = await get_table(REFLECTIONS).create(fields)
    LOGGER.info("reflection_saved reflection_id=%s journey_day=%s", record.id, journey_day)
    return {
        "id": record.id,
        "healingName": healing_name,
        "journeyDay": journey_day,
        "timestamp": record.get("Timestamp"),
        "success": True,
    }


async def get_reflections_by_healing_name(healing_name: str) -> list[dict[str, Any]]:
    records = await get_table(REFLECTIONS).all(
        match={"Healing Name": healing_name}, sort="-Timestamp", max_records=MAX_REFLECTIONS
    )
    return [_reflection(record) for record in records]


async def get_reflections_by_user_id(user_id: str) -> list[dict[str, Any]]:
    records = await get_table(REFLECTIONS).all(
        match={"User ID": user_id}, sort="-Timestamp", max_records=MAX_REFLECTIONS
    )
    return [_reflection(record) for record in records]


__all__ = [
    "MAX_REFLECTIONS",
    "find_user_by_healing_name",
    "get_reflections_by_healing_name",
    "get_reflections_by_user_id",
    "save_reflection",
]
