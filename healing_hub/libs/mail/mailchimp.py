"""Mailchimp audience management for journey emails.

Wraps the official ``mailchimp-marketing`` SDK. Members are addressed by the
md5 hash of their lower-cased email. When no API key or audience id is
configured the client runs disabled: every call is logged and returns a
``status: "disabled"`` payload, so local development never needs Mailchimp.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Mapping, TypeVar

import mailchimp_marketing
from mailchimp_marketing.api_client import ApiClientError

from healing_hub.libs.schemas.settings import AppSettings, get_settings
from healing_hub.libs.security.signatures import subscriber_hash

LOGGER = logging.getLogger(__name__)

JOURNEY_TAGS = ("Sacred Healing Journey", "Google Forms Signup")

T = TypeVar("T")


class MailchimpError(RuntimeError):
    """Raised when Mailchimp rejects a request."""


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _server_prefix(settings: AppSettings) -> str:
    if settings.mailchimp_server_prefix:
        return settings.mailchimp_server_prefix
    # API keys end with the datacenter, e.g. "...-us21".
    key = settings.mailchimp_api_key or ""
    return key.rsplit("-", 1)[-1] if "-" in key else "us1"


def _split_name(healing_name: str) -> tuple[str, str]:
    parts = healing_name.split()
    if not parts:
        return healing_name, ""
    return parts[0], " ".join(parts[1:])


class MailchimpService:
    """Async facade over the synchronous Mailchimp Marketing client."""

    def __init__(self, settings: AppSettings | None = None, client: Any | None = None) -> None:
        settings = settings or get_settings()
        self._list_id = settings.mailchimp_list_id or ""
        self._reply_to = settings.reply_to_email
        self._template_id = settings.mailchimp_welcome_template_id
        self.enabled = client is not None or settings.mailchimp_configured
        if client is not None:
            self._client = client
        elif self.enabled:
            self._client = mailchimp_marketing.Client()
            self._client.set_config(
                {"api_key": settings.mailchimp_api_key, "server": _server_prefix(settings)}
            )
        else:
            self._client = None
            LOGGER.warning("Mailchimp is not configured; email operations are disabled")

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args))

    def _disabled(self, operation: str, **details: Any) -> dict[str, Any]:
        LOGGER.info("mailchimp_disabled operation=%s", operation)
        return {"status": "disabled", **details}

    async def add_subscriber(
        self,
        *,
        email: str,
        healing_name: str,
        healing_goals: str | None = None,
        fasting_experience: str | None = None,
        signup_source: str = "Google Forms",
    ) -> dict[str, Any]:
        """Create or refresh an audience member and tag them into the journey."""

        if not email or not healing_name:
            raise ValueError("Email and Healing Name are required")
        if not self.enabled:
            return self._disabled("add_subscriber", email=email, healingName=healing_name, isNew=False)

        member_hash = subscriber_hash(email)
        existing = await self._get_member(member_hash)
        first_name, last_name = _split_name(healing_name)
        merge_fields = {
            "FNAME": first_name,
            "LNAME": last_name,
            "HEALING_NAME": healing_name,
            "HEALING_GOALS": healing_goals or "",
            "FASTING_EXP": fasting_experience or "",
            "CURRENT_MILESTONE": "Day 1",
            "SIGNUP_SOURCE": signup_source,
        }
        if existing is None:
            merge_fields["JOURNEY_START"] = _today()

        body = {"email_address": email, "status_if_new": "subscribed", "merge_fields": merge_fields}
        try:
            response = await self._call(self._client.lists.set_list_member, self._list_id, member_hash, body)
            await self._call(
                self._client.lists.update_list_member_tags,
                self._list_id,
                member_hash,
                {"tags": [{"name": tag, "status": "active"} for tag in JOURNEY_TAGS]},
            )
        except ApiClientError as exc:
            raise MailchimpError(f"Failed to add subscriber to Mailchimp: {exc.text}") from exc

        LOGGER.info("mailchimp_subscriber_%s", "added" if existing is None else "updated")
        return {
            "id": response.get("id"),
            "email": response.get("email_address", email),
            "status": response.get("status"),
            "healingName": healing_name,
            "isNew": existing is None,
        }

    async def update_subscriber_milestone(self, email: str, milestone: str) -> dict[str, Any]:
        if not email or not milestone:
            raise ValueError("Email and milestone are required")
        if not self.enabled:
            return self._disabled("update_subscriber_milestone", email=email, currentMilestone=milestone)

        body = {"merge_fields": {"CURRENT_MILESTONE": milestone, "LAST_UPDATED": _today()}}
        try:
            response = await self._call(
                self._client.lists.update_list_member, self._list_id, subscriber_hash(email), body
            )
        except ApiClientError as exc:
            raise MailchimpError(f"Failed to update subscriber milestone: {exc.text}") from exc

        merge_fields = response.get("merge_fields") or {}
        return {
            "id": response.get("id"),
            "email": response.get("email_address", email),
            "currentMilestone": merge_fields.get("CURRENT_MILESTONE", milestone),
            "lastUpdated": merge_fields.get("LAST_UPDATED"),
        }

    async def get_subscriber_info(self, email: str) -> dict[str, Any] | None:
        """Return the member summary, or ``None`` when the address is not in the audience."""

        if not email:
            raise ValueError("Email is required")
        if not self.enabled:
            return None

        member = await self._get_member(subscriber_hash(email))
        if member is None:
            return None
        merge_fields = member.get("merge_fields") or {}
        return {
            "id": member.get("id"),
            "email": member.get("email_address"),
            "status": member.get("status"),
            "healingName": merge_fields.get("HEALING_NAME"),
            "currentMilestone": merge_fields.get("CURRENT_MILESTONE"),
            "journeyStart": merge_fields.get("JOURNEY_START"),
            "lastUpdated": merge_fields.get("LAST_UPDATED"),
            "tags": [tag.get("name") for tag in member.get("tags") or []],
        }

    async def trigger_automation_email(self, email: str, workflow_id: str, workflow_email_id: str) -> dict[str, Any]:
        if not email or not workflow_id or not workflow_email_id:
            raise ValueError("Email, automation ID, and email ID are required")
        if not self.enabled:
            return self._disabled("trigger_automation_email", email=email, triggered=False)

        try:
            await self._call(
                self._client.automations.add_workflow_email_subscriber,
                workflow_id,
                workflow_email_id,
                {"email_address": email},
            )
        except ApiClientError as exc:
            raise MailchimpError(f"Failed to trigger automation email: {exc.text}") from exc

        return {
            "email": email,
            "automationId": workflow_id,
            "emailId": workflow_email_id,
            "triggered": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def send_welcome_email(self, *, email: str, healing_name: str) -> dict[str, Any]:
        """Create a one-recipient campaign and send it immediately."""

        if not email or not healing_name:
            raise ValueError("Email and healing name are required")
        if not self.enabled:
            return self._disabled("send_welcome_email", email=email, sent=False)

        settings: dict[str, Any] = {
            "subject_line": f"Welcome to Your Sacred Healing Journey, {healing_name}",
            "from_name": "Sacred Healing Team",
            "reply_to": self._reply_to,
        }
        if self._template_id:
            settings["template_id"] = self._template_id
        body = {
            "type": "regular",
            "recipients": {
                "list_id": self._list_id,
                "segment_opts": {
                    "match": "any",
                    "conditions": [
                        {"condition_type": "EmailAddress", "field": "EMAIL", "op": "is", "value": email}
                    ],
                },
            },
            "settings": settings,
        }
        try:
            campaign = await self._call(self._client.campaigns.create, body)
            await self._call(self._client.campaigns.send, campaign["id"])
        except ApiClientError as exc:
            raise MailchimpError(f"Failed to send welcome email: {exc.text}") from exc

        return {
            "campaignId": campaign["id"],
            "email": email,
            "healingName": healing_name,
            "sent": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def _get_member(self, member_hash: str) -> Mapping[str, Any] | None:
        try:
            return await self._call(self._client.lists.get_list_member, self._list_id, member_hash)
        except ApiClientError as exc:
            if exc.status_code == 404:
                return None
            raise MailchimpError(f"Failed to get subscriber info: {exc.text}") from exc


_SERVICE: MailchimpService | None = None


def get_mailchimp() -> MailchimpService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = MailchimpService()
    return _SERVICE


def set_mailchimp(service: MailchimpService | None) -> None:
    global _SERVICE
    _SERVICE = service


__all__ = ["JOURNEY_TAGS", "MailchimpError", "MailchimpService", "get_mailchimp", "set_mailchimp"]
