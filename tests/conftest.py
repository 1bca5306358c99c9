"""Test fixtures for the CRM API.

Provides:
- A fresh file-backed SQLite database per test (sqlite+aiosqlite)
- FastAPI test app whose app.state is wired to that database
- Async HTTP client for API testing
- Two signed-up, logged-in users (alice, bob) with auth headers
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

# Cheap bcrypt for tests; must be set before settings are first read
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "development"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine  # noqa: E402

from src.app.config import get_settings  # noqa: E402

get_settings.cache_clear()

from src.app.core.database import build_engine, init_db  # noqa: E402
from src.app.main import create_app, init_app_state  # noqa: E402


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Async engine on an empty database with all tables created."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}")
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def app(engine):
    """FastAPI app with repositories bound to the test engine.

    Background recalculations start without delay so tests only need to
    wait for the task, not for a timer.
    """
    application = create_app()
    init_app_state(application, engine, recalc_delay=0)
    yield application
    await application.state.analytics.shutdown()


@pytest.fixture
def session_factory(app):
    return app.state.session_factory


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _register(client: AsyncClient, email: str, password: str = "pass1") -> dict:
    signup = await client.post("/auth/signup", json={"email": email, "password": password})
    assert signup.status_code == 201, signup.text
    login = await client.post("/auth/login", json={"email": email, "password": password})
    assert login.status_code == 200, login.text
    token = login.json()["token"]
    return {
        "id": signup.json()["id"],
        "email": email,
        "password": password,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest_asyncio.fixture
async def alice(client) -> dict:
    """Signed-up user with auth headers."""
    return await _register(client, "alice@example.com")


@pytest_asyncio.fixture
async def bob(client) -> dict:
    """Second signed-up user, used for cross-user isolation checks."""
    return await _register(client, "bob@example.com")


@pytest_asyncio.fixture
async def alice_contact(client, alice) -> dict:
    """A contact owned by alice."""
    response = await client.post(
        "/contacts",
        json={"name": "Ada Lovelace", "email": "ada@example.com", "company": "Engines"},
        headers=alice["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()
