from __future__ import annotations

from fastapi import APIRouter

from healing_hub.apps.api.core.responses import ok
from healing_hub.libs.schemas import get_settings
from healing_hub.libs.storage import utc_now_iso

router = APIRouter(tags=["health"])


def _health_body() -> dict:
    return {
        "status": "ok",
        "message": "Server is running",
        "version": get_settings().app_version,
        "timestamp": utc_now_iso(),
    }


@router.get("/health")
async def health():
    return _health_body()


@router.get("/api/health")
async def api_health():
    return ok(_health_body())


__all__ = ["router"]
