from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.auth import get_current_user_id
from healing_hub.apps.api.services import reflections
from healing_hub.libs.mail import MailchimpError, get_mailchimp
from healing_hub.libs.schemas.payloads import ReflectionPayload, SecureReflectionPayload

router = APIRouter(prefix="/api/reflection", tags=["reflection"])
logger = logging.getLogger(__name__)


async def _sync_milestone(healing_name: str, journey_day: str) -> None:
    user = await reflections.find_user_by_healing_name(healing_name)
    email = user.get("Email") if user else None
    if not email:
        return
    try:
        await get_mailchimp().update_subscriber_milestone(email, journey_day)
    except MailchimpError as exc:
        logger.warning("mailchimp_milestone_failed: %s", exc)


@router.post("", status_code=201)
async def save_reflection(payload: ReflectionPayload):
    reflection = await reflections.save_reflection(
        payload.healing_name,
        payload.reflection_text,
        payload.journey_day,
        payload.email_consent,
    )
    if payload.email_consent:
        await _sync_milestone(payload.healing_name, payload.journey_day)
    return ok(reflection, status=201)


@router.post("/secure", status_code=201)
async def save_secure_reflection(payload: SecureReflectionPayload, user_id: str = Depends(get_current_user_id)):
    reflection = await reflections.save_reflection(
        payload.healing_name,
        payload.content,
        payload.milestone,
        payload.email_consent,
        user_id=user_id,
    )
    if payload.email_consent:
        await _sync_milestone(payload.healing_name, payload.milestone)
    return ok({"message": "Reflection saved successfully", "reflection": reflection}, status=201)


@router.get("/secure")
async def list_reflections(
    healing_name: str | None = Query(default=None, alias="healingName"),
    user_id: str = Depends(get_current_user_id),
):
    if healing_name:
        owner = await reflections.find_user_by_healing_name(healing_name)
        if owner is None or owner.id != user_id:
            raise HTTPException(status_code=403, detail="Unauthorized access to reflections")
        items = await reflections.get_reflections_by_healing_name(healing_name)
    else:
        items = await reflections.get_reflections_by_user_id(user_id)
    return ok({"reflections": items})


__all__ = ["router"]
