"""Inbound onboarding webhooks (Typeform, Google Forms)."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from healing_hub.apps.api.core.errors import ServiceError, to_http
from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.auth import verify_internal_api_key
from healing_hub.apps.api.deps.rate_limit import rate_limit
from healing_hub.apps.api.services import onboarding
from healing_hub.libs.schemas import get_settings
from healing_hub.libs.schemas.payloads import GoogleFormPayload
from healing_hub.libs.security import verify_typeform_signature

router = APIRouter(prefix="/api/webhook", tags=["webhook"])
logger = logging.getLogger(__name__)


def _check_typeform_signature(body: bytes, signature: str | None) -> None:
    settings = get_settings()
    secret = settings.typeform_webhook_secret
    if not secret:
        if settings.is_production:
            logger.error("typeform_secret_missing")
            raise HTTPException(status_code=500, detail="Webhook secret not configured")
        return
    if not verify_typeform_signature(secret, body, signature):
        raise HTTPException(status_code=401, detail="Invalid signature")


@router.post("/typeform")
async def typeform(request: Request, typeform_signature: str | None = Header(default=None)):
    body = await request.body()
    _check_typeform_signature(body, typeform_signature)
    try:
        data = json.loads(body or b"null")
    except json.JSONDecodeError:
        data = None
    if not isinstance(data, dict) or not data.get("form_response"):
        raise HTTPException(status_code=400, detail="Invalid webhook data")

    try:
        user = await onboarding.process_typeform_submission(data["form_response"])
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok({"message": "Webhook processed successfully", "user": user})


@router.post("/google-forms", dependencies=[Depends(rate_limit("google_forms", max_requests=20))])
async def google_forms(payload: GoogleFormPayload):
    logger.info("google_forms_webhook source=%s variant=%s", payload.source, payload.variant)
    try:
        user = await onboarding.process_google_form_submission(
            healing_name=payload.healing_name,
            email=payload.email,
            healing_goals=payload.healing_goals,
            fasting_experience=payload.fasting_experience,
            email_consent=payload.email_consent,
            timestamp=payload.timestamp,
            source=payload.source,
            variant=payload.variant,
        )
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok({"message": "Google Forms webhook processed successfully", "user": user})


@router.get(
    "/google-forms/responses",
    dependencies=[Depends(rate_limit("google_forms_responses", max_requests=10)), Depends(verify_internal_api_key)],
)
async def google_form_responses():
    responses = await onboarding.fetch_form_responses()
    return ok(
        {"message": "Google Forms responses fetched successfully", "responses": responses, "count": len(responses)}
    )


@router.get(
    "/google-forms/stats",
    dependencies=[Depends(rate_limit("google_forms_stats", max_requests=10)), Depends(verify_internal_api_key)],
)
async def google_form_stats():
    return ok({"stats": await onboarding.get_form_response_stats()})


__all__ = ["router"]
