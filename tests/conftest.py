import os

os.environ["HEALING_HUB_ENVIRONMENT"] = "test"
os.environ["HEALING_HUB_LOG_FORMAT"] = "text"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["JWT_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["RATE_LIMIT_STORAGE"] = "memory"
for _name in ("OPENAI_API_KEY", "SENTRY_DSN", "MAILCHIMP_API_KEY", "TYPEFORM_WEBHOOK_SECRET", "NODE_ENV", "ENVIRONMENT"):
    os.environ.pop(_name, None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from healing_hub.apps.api.core.llm import build_chat_router, set_router
from healing_hub.apps.api.deps.rate_limit import reset_rate_limits
from healing_hub.apps.api.middleware.request_context import REQUEST_STATS
from healing_hub.apps.api.services.ab_testing import AB_TESTING
from healing_hub.apps.api.services.analytics import EVENT_TALLY
from healing_hub.libs.mail import set_mailchimp
from healing_hub.libs.schemas import get_settings
from healing_hub.libs.storage import USERS, MemoryTable, Storage, get_table, set_storage

INTERNAL_API_KEY = "test-internal-key"


@pytest.fixture(autouse=True)
def fresh_state():
    get_settings.cache_clear()
    set_storage(Storage("memory", MemoryTable))
    set_mailchimp(None)
    reset_rate_limits()
    REQUEST_STATS.reset()
    EVENT_TALLY.reset()
    AB_TESTING.reset()

    set_router(build_chat_router())
    yield
    set_router(None)
    set_storage(None)
    get_settings.cache_clear()


@pytest.fixture
def api_headers():
    return {"X-API-Key": INTERNAL_API_KEY}


@pytest_asyncio.fixture
async def client():
    from healing_hub.apps.api.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def signup(client):
    """Register a user and return ``(user, headers)`` with a bearer token."""

    async def _signup(healing_name="Luna Rising", email="luna@example.com", password="sacred-path-1", role=None):
        resp = await client.post(
            "/api/auth/register", json={"healingName": healing_name, "email": email, "password": password}
        )
        assert resp.status_code == 201, resp.text
        user = resp.json()["data"]["user"]
        if role:
            await get_table(USERS).update(user["id"], {"Role": role})
        login = await client.post("/api/auth/login", json={"email": email, "password": password})
        token = login.json()["data"]["accessToken"]
        return user, {"Authorization": f"Bearer {token}"}

    return _signup
