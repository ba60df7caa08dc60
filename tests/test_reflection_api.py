import pytest

from healing_hub.libs.mail import MailchimpService, set_mailchimp
from healing_hub.libs.storage import REFLECTIONS, get_table


class _Lists:
    def __init__(self):
        self.updates = []

    def update_list_member(self, list_id, member_hash, body):
        self.updates.append((list_id, member_hash, body))
        return {"id": member_hash, "email_address": "luna@example.com", "merge_fields": body["merge_fields"]}


class _Client:
    def __init__(self):
        self.lists = _Lists()


@pytest.mark.asyncio
async def test_public_reflection_is_attributed_to_the_healing_name_owner(client, signup):
    user, _ = await signup()
    resp = await client.post(
        "/api/reflection",
        json={"healingName": "Luna Rising", "reflectionText": "Today I rested.", "journeyDay": "Day 7"},
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["success"] is True
    assert data["journeyDay"] == "Day 7"

    record = await get_table(REFLECTIONS).get(data["id"])
    assert record.get("User ID") == user["id"]
    assert record.get("Reflection Text") == "Today I rested."


@pytest.mark.asyncio
async def test_consent_syncs_milestone_to_mailchimp(client, signup):
    await signup()
    fake = _Client()
    set_mailchimp(MailchimpService(client=fake))

    resp = await client.post(
        "/api/reflection",
        json={
            "healingName": "Luna Rising",
            "reflectionText": "Grateful.",
            "journeyDay": "Day 14",
            "emailConsent": True,
        },
    )
    assert resp.status_code == 201
    [(_, _, body)] = fake.lists.updates
    assert body["merge_fields"]["CURRENT_MILESTONE"] == "Day 14"


@pytest.mark.asyncio
async def test_secure_reflections_are_scoped_to_the_caller(client, signup):
    _, headers = await signup()
    _, other = await signup(healing_name="Sol Seeker", email="sol@example.com")

    for milestone in ("Day 1", "Day 7"):
        resp = await client.post(
            "/api/reflection/secure",
            json={"healingName": "Luna Rising", "content": f"Reflection for {milestone}", "milestone": milestone},
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["message"] == "Reflection saved successfully"

    mine = await client.get("/api/reflection/secure", headers=headers)
    assert len(mine.json()["data"]["reflections"]) == 2

    by_name = await client.get("/api/reflection/secure", params={"healingName": "Luna Rising"}, headers=headers)
    assert {item["journeyDay"] for item in by_name.json()["data"]["reflections"]} == {"Day 1", "Day 7"}

    resp = await client.get("/api/reflection/secure", params={"healingName": "Luna Rising"}, headers=other)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Unauthorized access to reflections"
    assert (await client.get("/api/reflection/secure", headers=other)).json()["data"]["reflections"] == []


@pytest.mark.asyncio
async def test_secure_reflection_validates_milestone(client, signup):
    _, headers = await signup()
    resp = await client.post(
        "/api/reflection/secure",
        json={"healingName": "Luna Rising", "content": "Hello", "milestone": "Day 3"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert (await client.post("/api/reflection/secure", json={})).status_code == 401
