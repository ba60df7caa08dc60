"""Request payloads shared by the HTTP routes.

The browser client speaks camelCase JSON, so every model accepts both the
camelCase alias and the snake_case field name.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MILESTONES = ("Day 1", "Day 7", "Day 14", "Day 21", "Day 30", "Day 60", "Day 90")
FEEDBACK_TYPES = ("general", "bug", "feature", "content", "other")
FEEDBACK_STATUSES = ("New", "In Progress", "Resolved", "Closed")


def _check_email(value: str | None) -> str | None:
    if value is None or value == "":
        return value
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


Email = Annotated[str, AfterValidator(_check_email)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterPayload(CamelModel):
    healing_name: str = Field(min_length=2, max_length=50)
    email: Email
    password: str = Field(min_length=8, max_length=128)


class LoginPayload(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class SpiritualContext(CamelModel):
    journey_stage: Literal["beginning", "exploring", "deepening", "integrating"] | None = None
    current_mood: Literal["peaceful", "anxious", "curious", "struggling", "grateful"] | None = None
    practice_preferences: list[str] = Field(default_factory=list)
    healing_goals: list[str] = Field(default_factory=list)
    previous_topics: list[str] = Field(default_factory=list)
    session_count: int | None = Field(default=None, ge=0)


class ChatPayload(CamelModel):
    message: str = Field(min_length=1, max_length=1000)
    healing_name: str | None = Field(default=None, min_length=2, max_length=50)
    store_conversation: bool = False
    conversation_id: str | None = None
    history: list[ChatTurn] = Field(default_factory=list)
    context: SpiritualContext | None = None

    @field_validator("message")
    @classmethod
    def _strip_message(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Message is required")
        return stripped


class ConversationCreatePayload(CamelModel):
    healing_name: str | None = None
    title: str = Field(default="New Conversation", min_length=1, max_length=200)
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ConversationUpdatePayload(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    tags: list[str] | None = None
    archived: bool | None = None
    shared: bool | None = None
    metadata: dict[str, Any] | None = None


class ConversationMessagePayload(CamelModel):
    content: str = Field(min_length=1, max_length=5000)
    sender: Literal["user", "assistant"] = "user"
    metadata: dict[str, Any] = Field(default_factory=dict)


class ReflectionPayload(CamelModel):
    healing_name: str = Field(min_length=1)
    reflection_text: str = Field(min_length=1)
    journey_day: str = "Not specified"
    email_consent: bool = False


class SecureReflectionPayload(CamelModel):
    healing_name: str = Field(min_length=2, max_length=50)
    content: str = Field(min_length=1, max_length=5000)
    milestone: Literal["Day 1", "Day 7", "Day 14", "Day 21", "Day 30", "Day 60", "Day 90"]
    email_consent: bool = False


class FeedbackPayload(CamelModel):
    type: Literal["general", "bug", "feature", "content", "other"]
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=10, max_length=5000)
    email: Email | None = None


class FeedbackStatusPayload(CamelModel):
    status: str | None = None


class GoogleFormPayload(CamelModel):
    healing_name: str = Field(min_length=2, max_length=100)
    email: Email
    healing_goals: str = Field(default="", max_length=1000)
    fasting_experience: str = Field(default="", max_length=500)
    email_consent: bool = False
    timestamp: str | None = None
    source: str | None = None
    variant: str | None = None


class TrackEventPayload(CamelModel):
    event_type: str = Field(min_length=1)
    user_id: str | None = None
    healing_name: str | None = None
    email: str | None = None
    source: str | None = None
    timestamp: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class FormSubmissionEventPayload(CamelModel):
    healing_name: str | None = None
    email: str | None = None
    healing_goals: str | None = None
    fasting_experience: str | None = None
    email_consent: bool = False
    completion_time: float | None = None


class EmailVerificationEventPayload(CamelModel):
    user_id: str | None = None
    email: str | None = None
    method: str = "link"
    time_to_verify: float | None = None


class ChatbotEngagementEventPayload(CamelModel):
    user_id: str | None = None
    healing_name: str | None = None
    message_count: int = 1
    session_duration: float | None = None
    is_first_message: bool = False
    store_conversation: bool = False


class ReflectionEventPayload(CamelModel):
    user_id: str | None = None
    healing_name: str | None = None
    milestone: str | None = None
    content: str | None = None
    journey_day: str | None = None


class ABConversionPayload(CamelModel):
    user_id: str = Field(min_length=1)
    event_type: str = "conversion"
    metadata: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "ABConversionPayload",
    "CamelModel",
    "ChatPayload",
    "ChatTurn",
    "ChatbotEngagementEventPayload",
    "ConversationCreatePayload",
    "ConversationMessagePayload",
    "ConversationUpdatePayload",
    "EMAIL_PATTERN",
    "Email",
    "EmailVerificationEventPayload",
    "FEEDBACK_STATUSES",
    "FEEDBACK_TYPES",
    "FeedbackPayload",
    "FeedbackStatusPayload",
    "FormSubmissionEventPayload",
    "GoogleFormPayload",
    "LoginPayload",
    "MILESTONES",
    "ReflectionEventPayload",
    "ReflectionPayload",
    "RegisterPayload",
    "SecureReflectionPayload",
    "SpiritualContext",
    "TrackEventPayload",
]
