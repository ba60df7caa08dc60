import json

import pytest

from healing_hub.libs.mail import MailchimpService, set_mailchimp
from healing_hub.libs.schemas import get_settings
from healing_hub.libs.security import typeform_signature
from healing_hub.libs.storage import FORM_RESPONSES, USERS, get_table

TYPEFORM_EVENT = {
    "event_type": "form_response",
    "form_response": {
        "answers": [
            {"field": {"ref": "healing_name"}, "type": "text", "text": "River Calm"},
            {"field": {"ref": "email"}, "type": "email", "email": "River@Example.com"},
            {"field": {"ref": "healing_goals"}, "type": "text", "text": "Sleep better"},
            {"field": {"ref": "email_consent"}, "type": "boolean", "boolean": True},
        ]
    },
}

GOOGLE_FORM = {
    "healingName": "River Calm",
    "email": "river@example.com",
    "healingGoals": "Sleep better",
    "fastingExperience": "None yet",
    "emailConsent": True,
    "source": "landing",
    "variant": "mystical",
}


def _use_secret(monkeypatch, secret="whsec"):
    monkeypatch.setenv("TYPEFORM_WEBHOOK_SECRET", secret)
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_typeform_creates_then_updates_user(client, monkeypatch):
    _use_secret(monkeypatch)
    body = json.dumps(TYPEFORM_EVENT).encode()
    headers = {"Typeform-Signature": typeform_signature("whsec", body), "Content-Type": "application/json"}

    resp = await client.post("/api/webhook/typeform", content=body, headers=headers)
    assert resp.status_code == 200
    user = resp.json()["data"]["user"]
    assert user["created"] is True
    assert user["email"] == "river@example.com"

    resp = await client.post("/api/webhook/typeform", content=body, headers=headers)
    assert resp.json()["data"]["user"]["updated"] is True
    [record] = await get_table(USERS).all()
    assert record.get("Registration Source") == "Typeform"
    assert record.get("Email Consent") is True


@pytest.mark.asyncio
async def test_typeform_signature_and_payload_checks(client, monkeypatch):
    _use_secret(monkeypatch)
    body = json.dumps(TYPEFORM_EVENT).encode()

    resp = await client.post("/api/webhook/typeform", content=body, headers={"Typeform-Signature": "sha256=bad"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid signature"

    empty = b'{"event_type": "ping"}'
    resp = await client.post(
        "/api/webhook/typeform", content=empty, headers={"Typeform-Signature": typeform_signature("whsec", empty)}
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid webhook data"


@pytest.mark.asyncio
async def test_typeform_without_secret(client, monkeypatch):
    resp = await client.post("/api/webhook/typeform", json=TYPEFORM_EVENT)
    assert resp.status_code == 200

    monkeypatch.setenv("NODE_ENV", "production")
    get_settings.cache_clear()
    resp = await client.post("/api/webhook/typeform", json=TYPEFORM_EVENT)
    assert resp.status_code == 500
    assert resp.json()["error"] == "Webhook secret not configured"


@pytest.mark.asyncio
async def test_google_form_upserts_and_records_response(client):
    resp = await client.post("/api/webhook/google-forms", json=GOOGLE_FORM)
    assert resp.status_code == 200
    user = resp.json()["data"]["user"]
    assert user["created"] is True
    assert user["mailchimp"]["status"] == "disabled"

    again = await client.post("/api/webhook/google-forms", json=dict(GOOGLE_FORM, healingGoals="Rest"))
    assert again.json()["data"]["user"]["created"] is False

    [record] = await get_table(USERS).all()
    assert record.get("Onboarding Stage") == "Form Submitted"
    assert record.get("Registration Source") == "landing"
    responses = await get_table(FORM_RESPONSES).all()
    assert [row.get("Email Consent") for row in responses] == ["Yes", "Yes"]


@pytest.mark.asyncio
async def test_google_form_subscribes_consenting_users(client):
    calls = {}

    class _Lists:
        def get_list_member(self, list_id, member_hash):
            from mailchimp_marketing.api_client import ApiClientError

            raise ApiClientError("Resource Not Found", status_code=404)

        def set_list_member(self, list_id, member_hash, body):
            calls["member"] = body
            return {"id": member_hash, "email_address": body["email_address"], "status": "subscribed"}

        def update_list_member_tags(self, list_id, member_hash, body):
            calls["tags"] = body

    class _Client:
        lists = _Lists()

    set_mailchimp(MailchimpService(client=_Client()))
    resp = await client.post("/api/webhook/google-forms", json=GOOGLE_FORM)
    mailchimp = resp.json()["data"]["user"]["mailchimp"]
    assert mailchimp["isNew"] is True
    assert calls["member"]["merge_fields"]["HEALING_NAME"] == "River Calm"
    assert "JOURNEY_START" in calls["member"]["merge_fields"]
    assert {tag["name"] for tag in calls["tags"]["tags"]} == {"Sacred Healing Journey", "Google Forms Signup"}


@pytest.mark.asyncio
async def test_google_form_validation(client):
    resp = await client.post("/api/webhook/google-forms", json=dict(GOOGLE_FORM, email="nope"))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_form_responses_and_stats_need_api_key(client, api_headers):
    await client.post("/api/webhook/google-forms", json=GOOGLE_FORM)
    await client.post(
        "/api/webhook/google-forms",
        json=dict(GOOGLE_FORM, email="sky@example.com", healingName="Sky", emailConsent=False, variant=None),
    )

    assert (await client.get("/api/webhook/google-forms/responses")).status_code == 401

    resp = await client.get("/api/webhook/google-forms/responses", headers=api_headers)
    assert resp.json()["data"]["count"] == 2

    stats = (await client.get("/api/webhook/google-forms/stats", headers=api_headers)).json()["data"]["stats"]
    assert stats["totalResponses"] == 2
    assert stats["emailConsentCount"] == 1
    assert stats["sourceBreakdown"] == {"landing": 2}
    assert stats["variantBreakdown"] == {"mystical": 1, "none": 1}
    assert stats["recentResponses"][0]["Healing Name"] == "Sky"


@pytest.mark.asyncio
async def test_google_form_cannot_take_another_users_healing_name(client, signup):
    await signup()
    await signup(healing_name="Sol Bright", email="sol@example.com")

    resp = await client.post(
        "/api/webhook/google-forms", json=dict(GOOGLE_FORM, healingName="Sol Bright", email="luna@example.com")
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "This healing name is already taken"

    resp = await client.post(
        "/api/webhook/google-forms", json=dict(GOOGLE_FORM, healingName="Sol Bright", email="new@example.com")
    )
    assert resp.status_code == 409

    names = sorted(record.get("Healing Name") for record in await get_table(USERS).all())
    assert names == ["Luna Rising", "Sol Bright"]
    assert await get_table(FORM_RESPONSES).all() == []


@pytest.mark.asyncio
async def test_typeform_rejects_email_owned_by_another_user(client, signup):
    await signup(email="river@example.com")
    resp = await client.post("/api/webhook/typeform", json=TYPEFORM_EVENT)
    assert resp.status_code == 409
    assert resp.json()["error"] == "User with this email already exists"
