from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any

from healing_hub.apps.api.middleware.request_context import REQUEST_STATS
from healing_hub.apps.api.services.feedback import get_all_feedback
from healing_hub.libs.storage import LOGIN_RECORDS, USERS, get_table, parse_timestamp

ACTIVE_WINDOW_DAYS = 30


async def get_admin_stats() -> dict[str, Any]:
    """Dashboard counters; ``errorRate`` is the share of 5xx API responses since start-up."""

    users = await get_table(USERS).all()
    cutoff = datetime.now(timezone.utc) - timedelta(days=ACTIVE_WINDOW_DAYS)
    active_users = sum(
        1
        for user in users
        if (last_login := parse_timestamp(user.get("Last Login Date"))) is not None and last_login >= cutoff
    )

    feedback = await get_all_feedback()
    return {
        "totalUsers": len(users),
        "activeUsers": active_users,
        "totalFeedback": len(feedback),
        "newFeedback": sum(1 for item in feedback if item["status"] == "New"),
        "resolvedFeedback": sum(1 for item in feedback if item["status"] == "Resolved"),
        "errorRate": REQUEST_STATS.error_rate(),
    }


async def get_user_activity(days: int = 30) -> list[dict[str, Any]]:
    """Login counts per UTC day over the last ``days`` days, oldest first."""

    start = datetime.now(timezone.utc) - timedelta(days=days)
    per_day: Counter[str] = Counter()
    for record in await get_table(LOGIN_RECORDS).all():
        stamp = parse_timestamp(record.get("Timestamp"))
        if stamp is None or stamp <= start:
            continue
        per_day[stamp.date().isoformat()] += 1
    return [{"date": day, "count": per_day[day]} for day in sorted(per_day)]


__all__ = ["ACTIVE_WINDOW_DAYS", "get_admin_stats", "get_user_activity"]
