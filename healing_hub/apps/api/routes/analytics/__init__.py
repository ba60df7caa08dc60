from __future__ import annotations

from fastapi import APIRouter, Depends

from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.rate_limit import rate_limit
from healing_hub.libs.storage import utc_now_iso

from .experiments import router as experiments_router
from .reports import router as reports_router
from .tracking import router as tracking_router

router = APIRouter(prefix="/api/analytics", tags=["analytics"])
router.include_router(reports_router)
router.include_router(tracking_router)
router.include_router(experiments_router)


@router.get("/health", dependencies=[Depends(rate_limit("analytics_health", max_requests=60))])
async def analytics_health():
    return ok({"message": "Analytics service is healthy", "timestamp": utc_now_iso(), "status": "operational"})


__all__ = ["router"]
