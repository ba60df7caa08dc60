"""Conversion tracking and journey analytics.

Tracked events are written to the ``healing_hub.analytics`` logger as
structured records. Funnel and engagement figures are derived from the
``Onboarding Stage`` of each user plus process-local event tallies.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from healing_hub.apps.api.core.errors import ValidationFailed
from healing_hub.apps.api.services.admin_stats import get_user_activity
from healing_hub.libs.storage import (
    CONVERSATIONS,
    FORM_RESPONSES,
    REFLECTIONS,
    USERS,
    Record,
    get_table,
    parse_timestamp,
    utc_now_iso,
)

LOGGER = logging.getLogger(__name__)
EVENT_LOGGER = logging.getLogger("healing_hub.analytics")

FUNNEL_STAGES = (
    "Form Submitted",
    "Welcome Email Sent",
    "Email Verified",
    "Chatbot Accessed",
    "First Reflection",
    "Journey Active",
    "Journey Completed",
)
RECENT_REGISTRATION_DAYS = 7
ACTIVE_DAYS = 30
RETENTION_DAYS = 7
# Distinct event types tallied; /track accepts arbitrary names.
MAX_EVENT_TYPES = 200
MAX_RANGE_DAYS = 3650

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class EventTally:
    """Counts of tracked events since process start."""

    counts: Counter[str] = field(default_factory=Counter)
    session_total: float = 0.0
    session_count: int = 0

    def record(self, event_type: str, metadata: Mapping[str, Any]) -> None:
        if event_type in self.counts or len(self.counts) < MAX_EVENT_TYPES:
            self.counts[event_type] += 1
        duration = metadata.get("sessionDuration")
        if event_type == "chatbot_engagement" and isinstance(duration, (int, float)) and not isinstance(duration, bool):
            self.session_total += float(duration)
            self.session_count += 1

    def average_session_duration(self) -> float:
        if not self.session_count:
            return 0.0
        return round(self.session_total / self.session_count, 2)

    def reset(self) -> None:
        self.counts.clear()
        self.session_total = 0.0
        self.session_count = 0


EVENT_TALLY = EventTally()


def mask_email(email: str | None) -> str | None:
    return f"{email[:3]}***" if email else None


def _event_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"event_{int(time.time() * 1000)}_{suffix}"


def _rate(numerator: int | float, denominator: int | float) -> float:
    return numerator / max(denominator, 1)


async def track_conversion_event(
    event_type: str,
    *,
    user_id: str | None = None,
    healing_name: str | None = None,
    email: str | None = None,
    source: str | None = None,
    timestamp: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    if not event_type:
        raise ValidationFailed("Event type is required")

    stamp = timestamp or utc_now_iso()
    metadata = dict(metadata or {})
    EVENT_LOGGER.info(
        "conversion_event",
        extra={
            "event_type": event_type,
            "user_id": user_id,
            "healing_name": healing_name,
            "email": mask_email(email),
            "source": source or "unknown",
            "event_timestamp": stamp,
            "metadata": metadata,
        },
    )
    EVENT_TALLY.record(event_type, metadata)
    return {"success": True, "eventId": _event_id(), "timestamp": stamp}


async def track_form_submission(
    *,
    healing_name: str | None = None,
    email: str | None = None,
    healing_goals: str | None = None,
    fasting_experience: str | None = None,
    email_consent: bool = False,
    completion_time: float | None = None,
) -> dict[str, Any]:
    return await track_conversion_event(
        "form_submission",
        healing_name=healing_name,
        email=email,
        source="google_forms",
        metadata={
            "hasHealingGoals": bool(healing_goals),
            "hasFastingExperience": bool(fasting_experience),
            "emailConsent": email_consent,
            "formCompletionTime": completion_time,
        },
    )


async def track_email_verification(
    *,
    user_id: str | None = None,
    email: str | None = None,
    method: str = "link",
    time_to_verify: float | None = None,
) -> dict[str, Any]:
    return await track_conversion_event(
        "email_verification",
        user_id=user_id,
        email=email,
        source="email_verification",
        metadata={"verificationMethod": method or "link", "timeToVerify": time_to_verify},
    )


async def track_chatbot_engagement(
    *,
    user_id: str | None = None,
    healing_name: str | None = None,
    message_count: int = 1,
    session_duration: float | None = None,
    is_first_message: bool = False,
    store_conversation: bool = False,
) -> dict[str, Any]:
    return await track_conversion_event(
        "chatbot_engagement",
        user_id=user_id,
        healing_name=healing_name,
        source="chatbot",
        metadata={
            "messageCount": message_count or 1,
            "sessionDuration": session_duration,
            "firstMessage": is_first_message,
            "consentGiven": store_conversation,
        },
    )


async def track_reflection_submission(
    *,
    user_id: str | None = None,
    healing_name: str | None = None,
    milestone: str | None = None,
    content: str | None = None,
    journey_day: str | None = None,
) -> dict[str, Any]:
    return await track_conversion_event(
        "reflection_submission",
        user_id=user_id,
        healing_name=healing_name,
        source="reflection_form",
        metadata={
            "milestone": milestone or "unknown",
            "contentLength": len(content) if content else 0,
            "journeyDay": journey_day,
        },
    )


async def track_ab_test_event(
    *,
    test_name: str,
    variant: str,
    user_id: str | None,
    event_type: str,
    metadata: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    return await track_conversion_event(
        "ab_test_event",
        user_id=user_id,
        source="ab_test",
        metadata={
            "testName": test_name,
            "variant": variant,
            "originalEventType": event_type,
            **dict(metadata or {}),
        },
    )


def _in_range(record: Record, start: datetime | None, end: datetime | None) -> bool:
    if start is None and end is None:
        return True
    registered = parse_timestamp(record.get("Registration Date"))
    if registered is None:
        return False
    if start and registered < start:
        return False
    if end and registered > end:
        return False
    return True


async def _users(start: datetime | None = None, end: datetime | None = None) -> list[Record]:
    users = await get_table(USERS).all()
    return [user for user in users if _in_range(user, start, end)]


def _stage_index(record: Record) -> int:
    stage = record.get("Onboarding Stage")
    return FUNNEL_STAGES.index(stage) if stage in FUNNEL_STAGES else -1


async def get_user_journey_analytics(
    start: datetime | None = None, end: datetime | None = None
) -> dict[str, Any]:
    users = await _users(start, end)
    recent_cutoff = datetime.now(timezone.utc) - timedelta(days=RECENT_REGISTRATION_DAYS)
    recent = 0
    for user in users:
        registered = parse_timestamp(user.get("Registration Date"))
        if registered is not None and registered >= recent_cutoff:
            recent += 1
    return {
        "totalUsers": len(users),
        "onboardingStages": dict(Counter(user.get("Onboarding Stage") or "Unknown" for user in users)),
        "registrationSources": dict(Counter(user.get("Registration Source") or "Unknown" for user in users)),
        "recentRegistrations": recent,
    }


async def get_conversion_funnel_analytics(
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    source: str | None = None,
) -> dict[str, Any]:
    users = await _users(start_date, end_date)
    if source:
        users = [user for user in users if user.get("Registration Source") == source]
    journey = await get_user_journey_analytics(start_date, end_date)

    def reached(stage: str) -> int:
        threshold = FUNNEL_STAGES.index(stage)
        return sum(1 for user in users if _stage_index(user) >= threshold)

    funnel = {
        "landingPageViews": EVENT_TALLY.counts["landing_page_view"],
        "formStarts": EVENT_TALLY.counts["form_start"],
        "formCompletions": len(users),
        "emailVerifications": reached("Email Verified"),
        "chatbotEngagements": reached("Chatbot Accessed"),
        "reflectionSubmissions": reached("First Reflection"),
        "journeyCompletions": reached("Journey Completed"),
    }
    rates = {
        "formStartToCompletion": _rate(funnel["formCompletions"], funnel["formStarts"]),
        "formCompletionToVerification": _rate(funnel["emailVerifications"], funnel["formCompletions"]),
        "verificationToChatbot": _rate(funnel["chatbotEngagements"], funnel["emailVerifications"]),
        "chatbotToReflection": _rate(funnel["reflectionSubmissions"], funnel["chatbotEngagements"]),
        "reflectionToCompletion": _rate(funnel["journeyCompletions"], funnel["reflectionSubmissions"]),
        "overallConversion": _rate(funnel["journeyCompletions"], funnel["landingPageViews"]),
    }
    return {
        "funnelMetrics": funnel,
        "conversionRates": rates,
        "journeyAnalytics": journey,
        "generatedAt": utc_now_iso(),
        "dateRange": {
            "startDate": start_date.isoformat() if start_date else None,
            "endDate": end_date.isoformat() if end_date else None,
        },
    }


async def get_user_engagement_metrics(*, user_id: str | None = None) -> dict[str, Any]:
    users = await _users()
    if user_id:
        users = [user for user in users if user.id == user_id]
    journey = await get_user_journey_analytics()

    now = datetime.now(timezone.utc)
    active_cutoff = now - timedelta(days=ACTIVE_DAYS)
    active = retained = 0
    for user in users:
        last_login = parse_timestamp(user.get("Last Login Date"))
        registered = parse_timestamp(user.get("Registration Date"))
        if last_login is not None and last_login >= active_cutoff:
            active += 1
        if last_login and registered and last_login - registered >= timedelta(days=RETENTION_DAYS):
            retained += 1

    user_ids = {user.id for user in users}
    reflecting = {
        record.get("User ID")
        for record in await get_table(REFLECTIONS).all()
        if record.get("User ID") in user_ids
    }
    conversation_sizes = [
        int(record.get("Message Count") or 0)
        for record in await get_table(CONVERSATIONS).all()
        if not user_id or record.get("User ID") == user_id
    ]
    completed = sum(1 for user in users if user.get("Onboarding Stage") == "Journey Completed")

    metrics = {
        "totalUsers": len(users),
        "activeUsers": active,
        "retentionRate": _rate(retained, len(users)),
        "averageSessionDuration": EVENT_TALLY.average_session_duration(),
        "averageMessagesPerSession": round(_rate(sum(conversation_sizes), len(conversation_sizes)), 2),
        "reflectionRate": _rate(len(reflecting), len(users)),
        "completionRate": _rate(completed, len(users)),
        "onboardingStages": journey["onboardingStages"],
        "registrationSources": journey["registrationSources"],
        "recentRegistrations": journey["recentRegistrations"],
    }
    return {"engagementMetrics": metrics, "generatedAt": utc_now_iso()}


def parse_time_range(value: str | None, default_days: int = 30) -> int:
    """``"30d"`` / ``"12w"`` / ``"90"`` to a number of days."""

    if not value:
        return default_days
    text = value.strip().lower()
    multiplier = 1
    if text.endswith("w"):
        multiplier, text = 7, text[:-1]
    elif text.endswith("d"):
        text = text[:-1]
    if not text.isdecimal() or len(text) > 6 or int(text) <= 0:
        raise ValidationFailed("Invalid time range")
    days = int(text) * multiplier
    if days > MAX_RANGE_DAYS:
        raise ValidationFailed(f"Time range cannot exceed {MAX_RANGE_DAYS} days")
    return days


async def _daily_counts(table: str, field_name: str, days: int) -> list[dict[str, Any]]:
    start = datetime.now(timezone.utc) - timedelta(days=days)
    per_day: Counter[str] = Counter()
    for record in await get_table(table).all():
        stamp = parse_timestamp(record.get(field_name))
        if stamp is not None and stamp > start:
            per_day[stamp.date().isoformat()] += 1
    return [{"date": day, "count": per_day[day]} for day in sorted(per_day)]


async def generate_analytics_dashboard(
    *,
    time_range: str | None = "30d",
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict[str, Any]:
    days = parse_time_range(time_range)
    funnel = await get_conversion_funnel_analytics(start_date=start_date, end_date=end_date)
    engagement = await get_user_engagement_metrics()
    metrics = engagement["engagementMetrics"]

    return {
        "dashboard": {
            "overview": {
                "totalUsers": metrics["totalUsers"],
                "conversionRate": funnel["conversionRates"]["overallConversion"],
                "activeUsers": metrics["activeUsers"],
                "completionRate": metrics["completionRate"],
            },
            "funnel": funnel,
            "engagement": engagement,
            "trends": {
                "registrationTrend": await _daily_counts(USERS, "Registration Date", days),
                "engagementTrend": await get_user_activity(days),
                "conversionTrend": await _daily_counts(FORM_RESPONSES, "Timestamp", days),
            },
        },
        "generatedAt": utc_now_iso(),
    }


__all__ = [
    "EVENT_TALLY",
    "EventTally",
    "FUNNEL_STAGES",
    "generate_analytics_dashboard",
    "get_conversion_funnel_analytics",
    "get_user_engagement_metrics",
    "get_user_journey_analytics",
    "mask_email",
    "parse_time_range",
    "track_ab_test_event",
    "track_chatbot_engagement",
    "track_conversion_event",
    "track_email_verification",
    "track_form_submission",
    "track_reflection_submission",
]
