from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.rate_limit import rate_limit
from healing_hub.apps.api.middleware.request_context import client_ip
from healing_hub.apps.api.services.feedback import save_feedback
from healing_hub.libs.schemas.payloads import FeedbackPayload

router = APIRouter(prefix="/api/feedback", tags=["feedback"])

feedback_limit = rate_limit(
    "feedback",
    max_requests=5,
    window_seconds=60 * 60,
    message="Too many feedback submissions, please try again later",
)


@router.post("", dependencies=[Depends(feedback_limit)])
async def submit_feedback(payload: FeedbackPayload, request: Request):
    await save_feedback(
        type=payload.type,
        title=payload.title,
        description=payload.description,
        email=payload.email or None,
        client_ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return ok({"message": "Feedback submitted successfully"})


__all__ = ["router"]
