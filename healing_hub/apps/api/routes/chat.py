"""Chat endpoints leveraging the shared LLM router."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from healing_hub.apps.api.core.errors import ServiceError, to_http
from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.auth import get_optional_user_id
from healing_hub.apps.api.services.chat_service import process_chat
from healing_hub.apps.api.services.guidance import GuidanceContext, get_personalized_exercises
from healing_hub.libs.schemas.payloads import ChatPayload

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = logging.getLogger(__name__)


@router.post("")
async def chat(payload: ChatPayload, user_id: str | None = Depends(get_optional_user_id)):
    try:
        result = await process_chat(
            payload.message,
            healing_name=payload.healing_name,
            store_conversation=payload.store_conversation,
            history=[turn.model_dump() for turn in payload.history],
            context=payload.context.model_dump() if payload.context else None,
            user_id=user_id,
            conversation_id=payload.conversation_id,
        )
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok(result)


@router.get("/exercises")
async def exercises(
    mood: str | None = Query(default=None),
    journey_stage: str | None = Query(default=None, alias="journeyStage"),
    practice: list[str] | None = Query(default=None),
    limit: int = Query(default=3, ge=1, le=10),
):
    context = GuidanceContext(journey_stage=journey_stage, current_mood=mood, practice_preferences=practice or [])
    return ok({"exercises": [exercise.to_dict() for exercise in get_personalized_exercises(context, limit=limit)]})


__all__ = ["router"]
