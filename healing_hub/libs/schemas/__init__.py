"""Pydantic models and settings utilities."""

from .payloads import EMAIL_PATTERN, FEEDBACK_STATUSES, FEEDBACK_TYPES, MILESTONES
from .settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "EMAIL_PATTERN",
    "FEEDBACK_STATUSES",
    "FEEDBACK_TYPES",
    "MILESTONES",
    "get_settings",
]
