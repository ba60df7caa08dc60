from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, HTTPException
from fastapi.responses import JSONResponse

from healing_hub.apps.api.core.errors import ServiceError, to_http
from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.auth import get_current_user_id
from healing_hub.apps.api.deps.rate_limit import rate_limit
from healing_hub.apps.api.services import auth_service
from healing_hub.libs.schemas import get_settings
from healing_hub.libs.schemas.payloads import LoginPayload, RegisterPayload

router = APIRouter(prefix="/api/auth", tags=["auth"])

REFRESH_COOKIE = "refreshToken"


def _set_refresh_cookie(response: JSONResponse, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        REFRESH_COOKIE,
        token,
        max_age=settings.refresh_token_ttl_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


@router.post("/register", status_code=201, dependencies=[Depends(rate_limit("auth_register", max_requests=5))])
async def register(payload: RegisterPayload):
    try:
        user = await auth_service.register_user(payload.healing_name, payload.email, payload.password)
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok({"message": "User registered successfully", "user": user}, status=201)


@router.post("/login", dependencies=[Depends(rate_limit("auth_login", max_requests=10))])
async def login(payload: LoginPayload):
    try:
        result = await auth_service.login_user(payload.email, payload.password)
    except ServiceError as exc:
        raise to_http(exc) from exc

    response = ok({"message": "Login successful", "user": result["user"], "accessToken": result["accessToken"]})
    _set_refresh_cookie(response, result["refreshToken"])
    return response


@router.post("/refresh")
async def refresh(refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE)):
    if not refresh_token:
        raise HTTPException(status_code=401, detail="Refresh token required")
    try:
        result = await auth_service.refresh_access_token(refresh_token)
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok({"message": "Token refreshed successfully", "accessToken": result["accessToken"]})


@router.post("/logout")
async def logout():
    response = ok({"message": "Logout successful"})
    response.delete_cookie(REFRESH_COOKIE, httponly=True, samesite="strict")
    return response


@router.get("/me")
async def me(user_id: str = Depends(get_current_user_id)):
    user = await auth_service.get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ok({"user": user})


__all__ = ["router"]
