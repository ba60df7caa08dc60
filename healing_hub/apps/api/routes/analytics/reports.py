from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from healing_hub.apps.api.core.errors import ServiceError, to_http
from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.auth import get_current_user_id, require_admin, verify_internal_api_key
from healing_hub.apps.api.deps.rate_limit import rate_limit
from healing_hub.apps.api.services.analytics import (
    generate_analytics_dashboard,
    get_conversion_funnel_analytics,
    get_user_engagement_metrics,
)
from healing_hub.libs.security import api_key_matches

router = APIRouter()


def _utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def dashboard_access(
    x_api_key: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
) -> None:
    """Internal API key, or a bearer token belonging to an admin."""

    if x_api_key:
        if not api_key_matches(x_api_key):
            raise HTTPException(status_code=401, detail="Invalid API key")
        return
    if not authorization:
        raise HTTPException(status_code=401, detail="Authentication required")
    user_id = await get_current_user_id(authorization)
    await require_admin(user_id)


@router.get(
    "/dashboard",
    dependencies=[Depends(rate_limit("analytics_dashboard", max_requests=30)), Depends(dashboard_access)],
)
async def dashboard(
    time_range: str | None = Query(default="30d", alias="timeRange"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
):
    try:
        data = await generate_analytics_dashboard(
            time_range=time_range, start_date=_utc(start_date), end_date=_utc(end_date)
        )
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok(
        {
            "message": "Analytics dashboard data retrieved successfully",
            "dashboard": data["dashboard"],
            "generatedAt": data["generatedAt"],
        }
    )


@router.get(
    "/funnel",
    dependencies=[Depends(rate_limit("analytics_funnel", max_requests=20)), Depends(verify_internal_api_key)],
)
async def funnel(
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    source: str | None = Query(default=None),
):
    data = await get_conversion_funnel_analytics(
        start_date=_utc(start_date), end_date=_utc(end_date), source=source
    )
    return ok({"message": "Conversion funnel analytics retrieved successfully", **data})


@router.get(
    "/engagement",
    dependencies=[Depends(rate_limit("analytics_engagement", max_requests=20)), Depends(verify_internal_api_key)],
)
async def engagement(user_id: str | None = Query(default=None, alias="userId")):
    data = await get_user_engagement_metrics(user_id=user_id)
    return ok({"message": "User engagement metrics retrieved successfully", **data})


__all__ = ["router"]
