"""Sentry error reporting."""

from __future__ import annotations

import logging

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from healing_hub.libs.schemas.settings import AppSettings

LOGGER = logging.getLogger(__name__)

_SENSITIVE_KEYS = {"password", "authorization", "cookie", "refreshtoken", "accesstoken", "x-api-key"}


def _scrub(event: dict, hint: dict) -> dict:
    request = event.get("request") or {}
    for section in ("headers", "cookies", "data"):
        values = request.get(section)
        if isinstance(values, dict):
            for key in list(values):
                if key.lower() in _SENSITIVE_KEYS:
                    values[key] = "[Filtered]"
    return event


def init_sentry(settings: AppSettings) -> bool:
    """Initialise Sentry when a DSN is configured. Returns whether reporting is active."""

    if not settings.sentry_dsn:
        LOGGER.info("Sentry DSN not configured; error reporting disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"healing-hub@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
        before_send=_scrub,
        integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
    )
    LOGGER.info("Sentry initialised environment=%s", settings.environment)
    return True


def capture_exception(exc: BaseException) -> None:
    sentry_sdk.capture_exception(exc)


__all__ = ["capture_exception", "init_sentry"]
