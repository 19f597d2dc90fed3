"""Fixtures: settings, fake Redis stores, ASGI client and a signed-in user."""

import httpx
import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from webscraper.api.schemas import RegisterRequest
from webscraper.auth.service import register_user
from webscraper.auth.tokens import create_session_token
from webscraper.config import Settings
from webscraper.main import create_app
from webscraper.scrape import BrowserConfig
from webscraper.store.redis import SelectionStore, UserStore

PASSWORD = "Sup3r$ecret"


@pytest.fixture
def settings() -> Settings:
    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        jwt_secret="test-jwt-secret",
        max_failed_logins=3,
        lockout_minutes=15,
        mouse_mode_timeout_seconds=5,
    )


@pytest_asyncio.fixture
async def redis_client():
    """In-memory FakeRedis instance, emptied per test."""
    client = FakeRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.aclose()


@pytest.fixture
def user_store(redis_client) -> UserStore:
    return UserStore(redis_client)


@pytest.fixture
def selection_store(redis_client) -> SelectionStore:
    return SelectionStore(redis_client, ttl=60)


@pytest.fixture
def app(settings, user_store, selection_store):
    app = create_app()
    app.state.settings = settings
    app.state.users = user_store
    app.state.selections = selection_store
    app.state.browser_config = BrowserConfig(headless=True)
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest_asyncio.fixture
async def user(user_store):
    return await register_user(
        user_store,
        RegisterRequest(
            username="Alice_01",
            email="alice@example.com",
            password=PASSWORD,
            name="Alice",
            agree_to_terms=True,
        ),
    )


@pytest.fixture
def auth_headers(user, settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(user.id, settings)}"}
