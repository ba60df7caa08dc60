from __future__ import annotations

import logging
from typing import Any

from healing_hub.apps.api.core.errors import NotFound, ValidationFailed
from healing_hub.libs.schemas import FEEDBACK_STATUSES
from healing_hub.libs.security import hash_ip
from healing_hub.libs.storage import FEEDBACK, Record, get_table, utc_now_iso

LOGGER = logging.getLogger(__name__)


def _feedback(record: Record) -> dict[str, Any]:
    return {
        "id": record.id,
        "type": record.get("Type"),
        "title": record.get("Title"),
        "description": record.get("Description"),
        "email": record.get("Email") or None,
        "timestamp": record.get("Timestamp"),
        "status": record.get("Status"),
    }


async def save_feedback(
    *,
    type: str,
    title: str,
    description: str,
    email: str | None = None,
    client_ip: str | None = None,
    user_agent: str | None = None,
) -> dict[str, Any]:
    record = await get_table(FEEDBACK).create(
        {
            "Type": type,
            "Title": title,
            "Description": description,
            "Email": email or "",
            "IP Hash": hash_ip(client_ip) if client_ip else "",
            "User Agent": user_agent or "",
            "Timestamp": utc_now_iso(),
            "Status": "New",
        }
    )
    LOGGER.info("feedback_saved feedback_id=%s type=%s", record.id, type)
    return _feedback(record)


async def get_all_feedback(status: str | None = None, type: str | None = None) -> list[dict[str, Any]]:
    match: dict[str, Any] = {}
    if status:
        match["Status"] = status
    if type:
        match["Type"] = type
    records = await get_table(FEEDBACK).all(match=match or None, sort="-Timestamp")
    return [_feedback(record) for record in records]


async def update_feedback_status(feedback_id: str, status: str | None) -> dict[str, Any]:
    if not status:
        raise ValidationFailed("Status is required")
    if status not in FEEDBACK_STATUSES:
        raise ValidationFailed("Invalid status")

    table = get_table(FEEDBACK)
    if await table.get(feedback_id) is None:
        raise NotFound("Feedback not found")
    record = await table.update(feedback_id, {"Status": status})
    return {
        "id": record.id,
        "type": record.get("Type"),
        "title": record.get("Title"),
        "status": record.get("Status"),
    }


__all__ = ["get_all_feedback", "save_feedback", "update_feedback_status"]
