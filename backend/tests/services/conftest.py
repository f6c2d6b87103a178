"""Service test fixtures — async DB, change feed and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - db_manager and change_feed singletons are swapped for test instances and restored
    - Providers built by fixtures share the same db_manager/feed as the routes

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (ADR: PostgreSQL-specific features not exercised here)
    - DatabaseSessionManager built via __new__: reuses the test engine instead of
      creating a second pool
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from app.db.base import Base
from app.infrastructure.change_feed import ChangeFeedBroker
from app.infrastructure.database import DatabaseSessionManager
from app.infrastructure.sql_provider import SqlCapabilityProvider
import app.infrastructure.change_feed as feed_module
import app.infrastructure.database as db_module
import app.models  # noqa: F401
from app.main import app


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def db_manager(test_engine, test_session_factory):
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = test_session_factory
    return manager


@pytest.fixture
def feed():
    return ChangeFeedBroker()


@pytest.fixture
def make_provider(db_manager, feed):
    """Factory for SQL providers sharing the test database and feed."""
    def _make(token: str | None = None) -> SqlCapabilityProvider:
        return SqlCapabilityProvider(db_manager, feed, token)
    return _make


@pytest.fixture
async def client(db_manager, feed):
    """FastAPI test client with the DB and change feed singletons patched."""
    original_manager = db_module.db_manager
    original_feed = feed_module.change_feed
    db_module.db_manager = db_manager
    feed_module.change_feed = feed

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    db_module.db_manager = original_manager
    feed_module.change_feed = original_feed


async def sign_in(client: AsyncClient, email: str, full_name: str | None = None) -> dict:
    """Sign in through the API and return auth headers plus the identity."""
    res = await client.post(
        "/api/v1/auth/session", json={"email": email, "full_name": full_name},
    )
    assert res.status_code == 201, res.text
    body = res.json()
    return {
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
        "identity": body["identity"],
        "token": body["access_token"],
    }


@pytest.fixture
async def ada(client):
    return await sign_in(client, "ada@example.com", "Ada Lovelace")


@pytest.fixture
async def grace(client):
    return await sign_in(client, "grace@example.com", "Grace Hopper")
