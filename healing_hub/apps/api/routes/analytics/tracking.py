from __future__ import annotations

from fastapi import APIRouter, Depends

from healing_hub.apps.api.core.errors import ServiceError, to_http
from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.rate_limit import rate_limit
from healing_hub.apps.api.services import analytics
from healing_hub.libs.schemas.payloads import (
    ChatbotEngagementEventPayload,
    EmailVerificationEventPayload,
    FormSubmissionEventPayload,
    ReflectionEventPayload,
    TrackEventPayload,
)

router = APIRouter(prefix="/track")


def _tracked(message: str, result: dict) -> dict:
    return {"message": message, "eventId": result["eventId"], "timestamp": result["timestamp"]}


@router.post("", dependencies=[Depends(rate_limit("track_event", max_requests=100))])
async def track_event(payload: TrackEventPayload):
    try:
        result = await analytics.track_conversion_event(
            payload.event_type,
            user_id=payload.user_id,
            healing_name=payload.healing_name,
            email=payload.email,
            source=payload.source or "unknown",
            metadata=payload.metadata,
        )
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok(_tracked("Event tracked successfully", result))


@router.post("/form-submission", dependencies=[Depends(rate_limit("track_form", max_requests=50))])
async def track_form_submission(payload: FormSubmissionEventPayload):
    result = await analytics.track_form_submission(
        healing_name=payload.healing_name,
        email=payload.email,
        healing_goals=payload.healing_goals,
        fasting_experience=payload.fasting_experience,
        email_consent=payload.email_consent,
        completion_time=payload.completion_time,
    )
    return ok(_tracked("Form submission tracked successfully", result))


@router.post("/email-verification", dependencies=[Depends(rate_limit("track_verification", max_requests=50))])
async def track_email_verification(payload: EmailVerificationEventPayload):
    result = await analytics.track_email_verification(
        user_id=payload.user_id,
        email=payload.email,
        method=payload.method,
        time_to_verify=payload.time_to_verify,
    )
    return ok(_tracked("Email verification tracked successfully", result))


@router.post("/chatbot-engagement", dependencies=[Depends(rate_limit("track_chatbot", max_requests=200))])
async def track_chatbot_engagement(payload: ChatbotEngagementEventPayload):
    result = await analytics.track_chatbot_engagement(
        user_id=payload.user_id,
        healing_name=payload.healing_name,
        message_count=payload.message_count,
        session_duration=payload.session_duration,
        is_first_message=payload.is_first_message,
        store_conversation=payload.store_conversation,
    )
    return ok(_tracked("Chatbot engagement tracked successfully", result))


@router.post("/reflection-submission", dependencies=[Depends(rate_limit("track_reflection", max_requests=50))])
async def track_reflection_submission(payload: ReflectionEventPayload):
    result = await analytics.track_reflection_submission(
        user_id=payload.user_id,
        healing_name=payload.healing_name,
        milestone=payload.milestone,
        content=payload.content,
        journey_day=payload.journey_day,
    )
    return ok(_tracked("Reflection submission tracked successfully", result))


__all__ = ["router"]
