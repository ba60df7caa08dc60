from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from healing_hub.apps.api.core.errors import ServiceError, to_http
from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.auth import require_admin
from healing_hub.apps.api.services.admin_stats import get_admin_stats, get_user_activity
from healing_hub.apps.api.services.feedback import get_all_feedback, update_feedback_status
from healing_hub.libs.schemas.payloads import FeedbackStatusPayload

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/stats")
async def stats():
    return ok({"stats": await get_admin_stats()})


@router.get("/feedback")
async def list_feedback(status: str | None = Query(default=None), type: str | None = Query(default=None)):
    return ok({"feedback": await get_all_feedback(status=status, type=type)})


@router.patch("/feedback/{feedback_id}")
async def set_feedback_status(feedback_id: str, payload: FeedbackStatusPayload):
    try:
        feedback = await update_feedback_status(feedback_id, payload.status)
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok({"feedback": feedback})


@router.get("/activity")
async def activity(days: int = Query(default=30, ge=1, le=365)):
    return ok({"activity": await get_user_activity(days)})


__all__ = ["router"]
