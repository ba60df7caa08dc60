"""FastAPI application entrypoint for the Sacred Healing Hub."""

from __future__ import annotations

from healing_hub.libs.logging_utils import colorize, configure_logging

configure_logging()

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette_exporter import PrometheusMiddleware, handle_metrics

from healing_hub.apps.api.core.llm import build_chat_router, set_router
from healing_hub.apps.api.core.responses import fail
from healing_hub.apps.api.middleware import RequestContextMiddleware, TelemetryMiddleware
from healing_hub.apps.api.routes.admin import router as admin_router
from healing_hub.apps.api.routes.analytics import router as analytics_router
from healing_hub.apps.api.routes.auth import router as auth_router
from healing_hub.apps.api.routes.chat import router as chat_router
from healing_hub.apps.api.routes.conversations import router as conversations_router
from healing_hub.apps.api.routes.feedback import router as feedback_router
from healing_hub.apps.api.routes.health import router as health_router
from healing_hub.apps.api.routes.reflection import router as reflection_router
from healing_hub.apps.api.routes.webhook import router as webhook_router
from healing_hub.libs.monitoring import capture_exception, init_sentry
from healing_hub.libs.schemas import get_settings
from healing_hub.libs.storage import get_storage

LOGGER = logging.getLogger(__name__)
SETTINGS = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    init_sentry(settings)

    router = build_chat_router(settings)
    app.state.chat_router = router
    set_router(router)

    storage = get_storage()
    LOGGER.info(
        colorize("Healing Hub configured", "cyan"),
        extra={
            "event": "app_config",
            "environment": settings.environment,
            "storage_backend": storage.backend,
            "providers": router.providers,
            "model_chat": settings.model_chat,
        },
    )
    try:
        yield
    finally:
        set_router(None)


app = FastAPI(title=f"{SETTINGS.app_name} API", version=SETTINGS.app_version, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-Request-ID"],
)
app.add_middleware(PrometheusMiddleware)
app.add_route("/metrics", handle_metrics)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(TelemetryMiddleware)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return fail(exc.detail, exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    return fail({"message": "Validation error", "errors": errors}, 400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    LOGGER.exception("unhandled_error path=%s", request.url.path)
    capture_exception(exc)
    return fail("An unexpected error occurred", 500)


app.include_router(health_router)
app.include_router(auth_router)
app.include_router(chat_router)
app.include_router(conversations_router)
app.include_router(reflection_router)
app.include_router(feedback_router)
app.include_router(admin_router)
app.include_router(analytics_router)
app.include_router(webhook_router)


__all__ = ["app", "lifespan"]


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "healing_hub.apps.api.main:app",
        host="0.0.0.0",
        port=SETTINGS.port,
        reload=True,
        proxy_headers=True,
        forwarded_allow_ips=SETTINGS.forwarded_allow_ips,
    )
