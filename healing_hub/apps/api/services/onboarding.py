"""Onboarding intake from Typeform and Google Forms."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Mapping, Sequence

from healing_hub.apps.api.core.errors import Conflict, ValidationFailed
from healing_hub.apps.api.services.users import find_user_by_email, find_user_by_healing_name
from healing_hub.libs.mail import MailchimpError, get_mailchimp
from healing_hub.libs.storage import FORM_RESPONSES, USERS, Record, get_table, utc_now_iso

LOGGER = logging.getLogger(__name__)

RECENT_RESPONSES = 10
FORM_RESPONSE_COLUMNS = (
    "Timestamp",
    "Email",
    "Healing Name",
    "Healing Goals",
    "Fasting Experience",
    "Email Consent",
    "Source",
    "Variant",
)


def _answer(answers: Sequence[Mapping[str, Any]], ref: str, key: str) -> Any:
    for answer in answers:
        field_info = answer.get("field") or {}
        if field_info.get("ref") == ref:
            return answer.get(key)
    return None


async def process_typeform_submission(form_response: Mapping[str, Any]) -> dict[str, Any]:
    answers = form_response.get("answers") or []
    healing_name = _answer(answers, "healing_name", "text") or ""
    email = (_answer(answers, "email", "email") or "").strip().lower()
    healing_goals = _answer(answers, "healing_goals", "text") or ""
    email_consent = bool(_answer(answers, "email_consent", "boolean"))
    if not healing_name:
        raise ValidationFailed("Healing name is required")

    table = get_table(USERS)
    existing = await find_user_by_healing_name(healing_name)
    email_owner = await find_user_by_email(email)
    if email_owner is not None and (existing is None or email_owner.id != existing.id):
        raise Conflict("User with this email already exists")
    if existing is not None:
        await table.update(
            existing.id,
            {
                "Email": email,
                "Healing Goals": healing_goals,
                "Email Consent": email_consent,
                "Last Updated": utc_now_iso(),
            },
        )
        LOGGER.info("typeform_user_updated user_id=%s", existing.id)
        return {"id": existing.id, "healingName": healing_name, "email": email, "updated": True}

    record = await table.create(
        {
            "Healing Name": healing_name,
            "Email": email,
            "Healing Goals": healing_goals,
            "Email Consent": email_consent,
            "Registration Date": utc_now_iso(),
            "Journey Status": "Active",
            "Registration Source": "Typeform",
        }
    )
    LOGGER.info("typeform_user_created user_id=%s", record.id)
    return {"id": record.id, "healingName": healing_name, "email": email, "created": True}


async def _find_form_user(email: str, healing_name: str) -> Record | None:
    """Match by email, else by healing name; a name held under another email is a conflict."""

    by_email = await find_user_by_email(email)
    by_name = await find_user_by_healing_name(healing_name)
    if by_name is None:
        return by_email
    if by_email is not None and by_email.id != by_name.id:
        raise Conflict("This healing name is already taken")
    if by_email is None and str(by_name.get("Email") or "").strip().lower() not in {"", email}:
        raise Conflict("This healing name is already taken")
    return by_name


async def process_google_form_submission(
    *,
    healing_name: str,
    email: str,
    healing_goals: str = "",
    fasting_experience: str = "",
    email_consent: bool = False,
    timestamp: str | None = None,
    source: str | None = None,
    variant: str | None = None,
) -> dict[str, Any]:
    """Upsert the user, append the raw response and subscribe them when they consented."""

    email = email.strip().lower()
    now = utc_now_iso()
    fields = {
        "Healing Name": healing_name,
        "Email": email,
        "Healing Goals": healing_goals,
        "Fasting Experience": fasting_experience,
        "Email Consent": email_consent,
        "Onboarding Stage": "Form Submitted",
        "Last Updated": now,
    }

    users = get_table(USERS)
    existing = await _find_form_user(email, healing_name)
    if existing is not None:
        record = await users.update(existing.id, fields)
        created = False
    else:
        record = await users.create(
            {
                **fields,
                "Registration Date": timestamp or now,
                "Journey Status": "Active",
                "Registration Source": source or "Google Forms",
            }
        )
        created = True

    await get_table(FORM_RESPONSES).create(
        {
            "Timestamp": timestamp or now,
            "Email": email,
            "Healing Name": healing_name,
            "Healing Goals": healing_goals,
            "Fasting Experience": fasting_experience,
            "Email Consent": "Yes" if email_consent else "No",
            "Source": source or "",
            "Variant": variant or "",
        }
    )

    result: dict[str, Any] = {
        "id": record.id,
        "healingName": healing_name,
        "email": email,
        "healingGoals": healing_goals,
        "fastingExperience": fasting_experience,
        "emailConsent": email_consent,
        "created": created,
        "mailchimp": None,
    }

    if email_consent:
        try:
            result["mailchimp"] = await get_mailchimp().add_subscriber(
                email=email,
                healing_name=healing_name,
                healing_goals=healing_goals,
                fasting_experience=fasting_experience,
            )
        except MailchimpError as exc:
            LOGGER.error("mailchimp_subscribe_failed user_id=%s: %s", record.id, exc)
            result["mailchimp"] = {"status": "error"}
    return result


async def fetch_form_responses() -> list[dict[str, Any]]:
    records = await get_table(FORM_RESPONSES).all(sort="Timestamp")
    return [{column: record.get(column, "") for column in FORM_RESPONSE_COLUMNS} for record in records]


async def get_form_response_stats() -> dict[str, Any]:
    responses = await fetch_form_responses()
    return {
        "totalResponses": len(responses),
        "emailConsentCount": sum(1 for row in responses if row["Email Consent"] == "Yes"),
        "sourceBreakdown": dict(Counter(row["Source"] or "unknown" for row in responses)),
        "variantBreakdown": dict(Counter(row["Variant"] or "none" for row in responses)),
        "recentResponses": list(reversed(responses[-RECENT_RESPONSES:])),
    }


__all__ = [
    "FORM_RESPONSE_COLUMNS",
    "fetch_form_responses",
    "get_form_response_stats",
    "process_google_form_submission",
    "process_typeform_submission",
]
