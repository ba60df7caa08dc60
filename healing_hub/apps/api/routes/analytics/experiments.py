from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.rate_limit import rate_limit
from healing_hub.apps.api.services.ab_testing import AB_TESTING
from healing_hub.libs.schemas.payloads import ABConversionPayload

router = APIRouter(prefix="/ab")


@router.get("")
async def list_tests():
    return ok({"tests": [test.to_dict() for test in AB_TESTING.tests.values()]})


@router.get("/{test_name}", dependencies=[Depends(rate_limit("ab_variant", max_requests=100))])
async def get_variant(test_name: str, user_id: str = Query(min_length=1, alias="userId")):
    variant = await AB_TESTING.get_variant(test_name, user_id)
    return ok({"testName": test_name, "variant": variant, "userId": user_id})


@router.post("/{test_name}/convert", dependencies=[Depends(rate_limit("ab_convert", max_requests=100))])
async def convert(test_name: str, payload: ABConversionPayload):
    result = await AB_TESTING.track_conversion(test_name, payload.user_id, payload.event_type, payload.metadata)
    if result is None:
        raise HTTPException(status_code=404, detail="User is not enrolled in this test")
    return ok({"message": "Conversion tracked successfully", "eventId": result["eventId"]})


__all__ = ["router"]
