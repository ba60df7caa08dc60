import pytest

from healing_hub.apps.api.core.errors import ValidationFailed
from healing_hub.apps.api.services.analytics import EVENT_TALLY, parse_time_range
from healing_hub.libs.storage import USERS, get_table


@pytest.mark.asyncio
async def test_track_event_requires_type(client):
    resp = await client.post(
        "/api/analytics/track", json={"eventType": "landing_page_view", "email": "luna@example.com"}
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["message"] == "Event tracked successfully"
    assert data["eventId"].startswith("event_")

    assert (await client.post("/api/analytics/track", json={})).status_code == 400
    assert (await client.post("/api/analytics/track", json={"eventType": ""})).status_code == 400


@pytest.mark.asyncio
async def test_typed_trackers(client):
    cases = {
        "/api/analytics/track/form-submission": {"healingName": "Luna", "emailConsent": True},
        "/api/analytics/track/email-verification": {"userId": "rec1", "timeToVerify": 12.5},
        "/api/analytics/track/chatbot-engagement": {"userId": "rec1", "sessionDuration": 90},
        "/api/analytics/track/reflection-submission": {"milestone": "Day 7", "content": "Grateful"},
    }
    for path, payload in cases.items():
        resp = await client.post(path, json=payload)
        assert resp.status_code == 200, path

    assert EVENT_TALLY.counts["form_submission"] == 1
    assert EVENT_TALLY.counts["reflection_submission"] == 1
    assert EVENT_TALLY.average_session_duration() == 90.0


@pytest.mark.asyncio
async def test_funnel_uses_onboarding_stages_and_event_counts(client, api_headers):
    for _ in range(2):
        await client.post("/api/analytics/track", json={"eventType": "form_start"})
    await client.post(
        "/api/webhook/google-forms", json={"healingName": "River Calm", "email": "river@example.com"}
    )
    [user] = await get_table(USERS).all()
    await get_table(USERS).update(user.id, {"Onboarding Stage": "First Reflection"})

    assert (await client.get("/api/analytics/funnel")).status_code == 401
    resp = await client.get("/api/analytics/funnel", headers=api_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    funnel = data["funnelMetrics"]
    assert funnel["formStarts"] == 2
    assert funnel["formCompletions"] == 1
    assert funnel["chatbotEngagements"] == 1
    assert funnel["journeyCompletions"] == 0
    assert data["conversionRates"]["formStartToCompletion"] == 0.5
    assert data["conversionRates"]["overallConversion"] == 0
    assert data["journeyAnalytics"]["onboardingStages"] == {"First Reflection": 1}


@pytest.mark.asyncio
async def test_engagement_metrics(client, signup, api_headers):
    await signup()
    resp = await client.get("/api/analytics/engagement", headers=api_headers)
    metrics = resp.json()["data"]["engagementMetrics"]
    assert metrics["totalUsers"] == 1
    assert metrics["activeUsers"] == 1
    assert metrics["reflectionRate"] == 0


@pytest.mark.asyncio
async def test_dashboard_access_paths(client, signup, api_headers):
    assert (await client.get("/api/analytics/dashboard")).status_code == 401
    resp = await client.get("/api/analytics/dashboard", headers={"X-API-Key": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid API key"

    _, user_headers = await signup()
    assert (await client.get("/api/analytics/dashboard", headers=user_headers)).status_code == 403

    _, admin_headers = await signup(healing_name="Guide", email="guide@example.com", role="admin")
    resp = await client.get("/api/analytics/dashboard", params={"timeRange": "7d"}, headers=admin_headers)
    assert resp.status_code == 200
    dashboard = resp.json()["data"]["dashboard"]
    assert set(dashboard) == {"overview", "funnel", "engagement", "trends"}
    assert dashboard["overview"]["totalUsers"] == 2
    assert sum(day["count"] for day in dashboard["trends"]["registrationTrend"]) == 2

    resp = await client.get("/api/analytics/dashboard", params={"timeRange": "soon"}, headers=api_headers)
    assert resp.status_code == 400
    resp = await client.get(
        "/api/analytics/dashboard", params={"timeRange": "1000000000d"}, headers=api_headers
    )
    assert resp.status_code == 400


def test_parse_time_range():
    assert parse_time_range("30d") == 30
    assert parse_time_range("2w") == 14
    assert parse_time_range("90") == 90
    assert parse_time_range(None) == 30
    with pytest.raises(ValidationFailed):
        parse_time_range("0d")
    with pytest.raises(ValidationFailed, match="3650"):
        parse_time_range("4000d")
    with pytest.raises(ValidationFailed):
        parse_time_range("1000000000d")
    with pytest.raises(ValidationFailed):
        parse_time_range("600w")
    with pytest.raises(ValidationFailed):
        parse_time_range("\u00b2d")
    assert parse_time_range("3650d") == 3650


@pytest.mark.asyncio
async def test_ab_endpoints(client):
    tests = (await client.get("/api/analytics/ab")).json()["data"]["tests"]
    assert {test["name"] for test in tests} == {"landing_page_cta", "form_introduction", "email_consent_copy"}

    resp = await client.post("/api/analytics/ab/landing_page_cta/convert", json={"userId": "visitor-1"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "User is not enrolled in this test"

    first = await client.get("/api/analytics/ab/landing_page_cta", params={"userId": "visitor-1"})
    second = await client.get("/api/analytics/ab/landing_page_cta", params={"userId": "visitor-1"})
    assert first.json()["data"]["variant"] == second.json()["data"]["variant"]

    resp = await client.post("/api/analytics/ab/landing_page_cta/convert", json={"userId": "visitor-1"})
    assert resp.status_code == 200
    assert resp.json()["data"]["eventId"].startswith("event_")


@pytest.mark.asyncio
async def test_analytics_health(client):
    resp = await client.get("/api/analytics/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "operational"
