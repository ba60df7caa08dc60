import pytest


@pytest.mark.asyncio
async def test_conversation_lifecycle(client, signup):
    _, headers = await signup()
    resp = await client.post(
        "/api/conversations",
        json={"title": "Morning practice", "tags": ["breathing", "calm"], "metadata": {"mood": "peaceful"}},
        headers=headers,
    )
    assert resp.status_code == 201
    conversation = resp.json()["data"]["conversation"]
    assert conversation["tags"] == ["breathing", "calm"]
    assert conversation["metadata"] == {"mood": "peaceful"}
    assert conversation["messageCount"] == 0

    conversation_id = conversation["id"]
    resp = await client.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"content": "I breathed slowly for ten minutes"},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["message"]["sender"] == "user"

    thread = (await client.get(f"/api/conversations/{conversation_id}", headers=headers)).json()["data"]
    assert thread["conversation"]["messageCount"] == 1
    assert thread["conversation"]["lastMessage"] == "I breathed slowly for ten minutes"

    resp = await client.patch(f"/api/conversations/{conversation_id}", json={"title": "Evening"}, headers=headers)
    assert resp.json()["data"]["conversation"]["title"] == "Evening"

    listed = (await client.get("/api/conversations", headers=headers)).json()["data"]["conversations"]
    assert [item["id"] for item in listed] == [conversation_id]

    resp = await client.post(f"/api/conversations/{conversation_id}/archive", headers=headers)
    assert resp.json()["data"]["conversation"]["archived"] is True
    assert (await client.get("/api/conversations", headers=headers)).json()["data"]["conversations"] == []
    archived = await client.get("/api/conversations", params={"archived": "true"}, headers=headers)
    assert len(archived.json()["data"]["conversations"]) == 1

    resp = await client.post(f"/api/conversations/{conversation_id}/share", headers=headers)
    assert resp.json()["data"]["conversation"]["shared"] is True


@pytest.mark.asyncio
async def test_search_and_filters(client, signup):
    _, headers = await signup()
    for title, tags in (("Gratitude notes", ["gratitude"]), ("Anxious night", ["anxiety"])):
        await client.post("/api/conversations", json={"title": title, "tags": tags}, headers=headers)

    by_tag = await client.get("/api/conversations", params={"tags": "grat"}, headers=headers)
    assert [item["title"] for item in by_tag.json()["data"]["conversations"]] == ["Gratitude notes"]

    by_text = await client.get("/api/conversations", params={"search": "night"}, headers=headers)
    assert [item["title"] for item in by_text.json()["data"]["conversations"]] == ["Anxious night"]

    results = await client.get(
        "/api/conversations/search", params={"q": "gratitude", "includeMessages": "true"}, headers=headers
    )
    [result] = results.json()["data"]["results"]
    assert result["conversation"]["title"] == "Gratitude notes"
    assert result["matchingMessages"] == []

    analytics = (await client.get("/api/conversations/analytics", headers=headers)).json()["data"]["analytics"]
    assert analytics["totalConversations"] == 2
    assert analytics["totalMessages"] == 0


@pytest.mark.asyncio
async def test_conversation_ownership(client, signup):
    _, owner = await signup()
    _, stranger = await signup(healing_name="Sol Seeker", email="sol@example.com")
    conversation_id = (
        await client.post("/api/conversations", json={"title": "Private"}, headers=owner)
    ).json()["data"]["conversation"]["id"]

    resp = await client.get(f"/api/conversations/{conversation_id}", headers=stranger)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Unauthorized access to conversation"

    resp = await client.post(
        f"/api/conversations/{conversation_id}/messages", json={"content": "hi"}, headers=stranger
    )
    assert resp.status_code == 403

    resp = await client.get("/api/conversations/recmissing", headers=owner)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Conversation not found"

    assert (await client.get("/api/conversations")).status_code == 401
