"""Logging configuration for the Healing Hub API.

``HEALING_HUB_LOG_FORMAT=json`` (the default) emits one JSON object per line
with any ``extra=`` fields merged in; ``text`` gives colourised console lines
for local work. Credentials passed as extras are redacted before formatting.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.config import dictConfig
from typing import Any, Dict

_DEV_ENVIRONMENTS = {"local", "dev", "development", "test"}

_COLOR_CODES = {
    "red": "\033[31m",
    "yellow": "\033[33m",
    "green": "\033[32m",
    "cyan": "\033[36m",
    "magenta": "\033[35m",
}

_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

SENSITIVE_FIELDS = {"password", "token", "access_token", "refresh_token", "authorization", "api_key", "secret"}
REDACTED = "[redacted]"


def _environment() -> str:
    return (os.getenv("HEALING_HUB_ENVIRONMENT") or os.getenv("NODE_ENV") or "development").lower()


def _color_enabled() -> bool:
    flag = os.getenv("HEALING_HUB_LOG_COLOR")
    if flag:
        return flag == "1"
    return _environment() in _DEV_ENVIRONMENTS


def colorize(text: str, color: str = "red") -> str:
    if not _color_enabled():
        return text
    prefix = _COLOR_CODES.get(color, "")
    suffix = "\033[0m" if prefix else ""
    return f"{prefix}{text}{suffix}"


class SensitiveFieldFilter(logging.Filter):
    """Blank out extras such as ``password`` or ``refresh_token``."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in list(vars(record)):
            if key.lower() in SENSITIVE_FIELDS and getattr(record, key):
                setattr(record, key, REDACTED)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS and key not in payload}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ColorTextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        if record.levelno >= logging.ERROR:
            return colorize(formatted, "red")
        if record.levelno >= logging.WARNING:
            return colorize(formatted, "yellow")
        return formatted


def configure_logging() -> None:
    """Install the console handler on the root logger."""

    default_level = "DEBUG" if _environment() in _DEV_ENVIRONMENTS else "INFO"
    log_level = os.getenv("HEALING_HUB_LOG_LEVEL", default_level).upper()
    formatter_name = "text" if os.getenv("HEALING_HUB_LOG_FORMAT", "json").lower() == "text" else "json"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"sensitive": {"()": SensitiveFieldFilter}},
            "formatters": {
                "json": {"()": JsonFormatter},
                "text": {
                    "()": ColorTextFormatter,
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                    "filters": ["sensitive"],
                    "level": log_level,
                }
            },
            "root": {"handlers": ["console"], "level": log_level},
            "loggers": {
                # Client libraries log full request URLs at DEBUG, including Airtable record ids.
                "httpx": {"level": "WARNING"},
                "urllib3": {"level": "WARNING"},
            },
        }
    )


__all__ = [
    "ColorTextFormatter",
    "JsonFormatter",
    "SensitiveFieldFilter",
    "colorize",
    "configure_logging",
]
