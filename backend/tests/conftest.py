"""
SnippetDeck Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all
       tests. Database-backed fixtures run against in-memory SQLite
       (aiosqlite), one fresh database per test.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: Mock AsyncSession (no real DB needed)
    ├── db_engine: In-memory SQLite engine with the schema created
    │   ├── db_session: AsyncSession on that engine
    │   │   ├── store: SqlSnippetStore
    │   │   ├── alice / bob: persisted users
    │   │   └── make_snippet: factory for persisted snippets
    │   └── test_app → test_client: fresh app on the same engine + HTTPX client
    └── memory_store: dict-backed SnippetStore for engine/service unit tests
"""

import os

# Override settings for testing BEFORE any snippetdeck imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production-use-only"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from snippetdeck.config import Settings
from snippetdeck.database import Base, build_session_factory
from snippetdeck.models import Snippet, User
from snippetdeck.services.access import Caller, SnippetQuery
from snippetdeck.services.auth_service import hash_password
from snippetdeck.services.snippet_store import SqlSnippetStore
from snippetdeck.services.store_base import SnippetStore

BASE_TIME = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Mocks
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_user(mock_db_session):
            mock_db_session.get.return_value = user
            result = await AuthService(mock_db_session).get_user(user.id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


class MemorySnippetStore(SnippetStore):
    """
    SnippetStore over a plain dict, for tests that only exercise decisions.

    `query()` records every SnippetQuery it receives and returns `results`.
    """

    def __init__(self, snippets: Optional[List[Snippet]] = None):
        self.snippets: Dict[uuid.UUID, Snippet] = {s.id: s for s in snippets or []}
        self.queries: List[SnippetQuery] = []
        self.results: List[Snippet] = []

    async def find_by_id(self, snippet_id):
        return self.snippets.get(snippet_id)

    async def query(self, query):
        self.queries.append(query)
        return list(self.results)

    async def insert(self, owner_id, payload):
        snippet = build_snippet(owner_id=owner_id, **payload)
        self.snippets[snippet.id] = snippet
        return snippet

    async def update_by_id(self, snippet_id, payload):
        snippet = self.snippets.get(snippet_id)
        if snippet is None:
            return None
        for field, value in payload.items():
            setattr(snippet, field, value)
        return snippet

    async def delete_by_id(self, snippet_id):
        return self.snippets.pop(snippet_id, None) is not None


def build_snippet(owner_id: uuid.UUID, **overrides: Any) -> Snippet:
    """Transient (unsaved) Snippet with sensible defaults."""
    fields = {
        "id": uuid.uuid4(),
        "title": "Sample",
        "description": "",
        "code": "print('hi')",
        "language": "python",
        "tags": [],
        "is_public": False,
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME,
    }
    fields.update(overrides)
    return Snippet(owner_id=owner_id, **fields)


@pytest.fixture
def owner() -> Caller:
    return Caller.user(uuid.uuid4(), "owner")


@pytest.fixture
def stranger() -> Caller:
    return Caller.user(uuid.uuid4(), "stranger")


@pytest.fixture
def memory_store() -> MemorySnippetStore:
    return MemorySnippetStore()


# ══════════════════════════════════════════════════════════════════════════
# SQLite-backed fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite shared by every connection of this engine (StaticPool)."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = build_session_factory(db_engine)
    async with factory() as session:
        yield session


@pytest.fixture
def store(db_session) -> SqlSnippetStore:
    return SqlSnippetStore(db_session)


async def _add_user(session, username: str) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password("password123"),
    )
    session.add(user)
    await session.flush()
    return user


@pytest_asyncio.fixture
async def alice(db_session) -> User:
    return await _add_user(db_session, "alice")


@pytest_asyncio.fixture
async def bob(db_session) -> User:
    return await _add_user(db_session, "bob")


@pytest.fixture
def make_snippet(db_session):
    """
    Factory for persisted snippets.

    `minutes` offsets created_at from BASE_TIME so ordering is deterministic.

    Usage:
        s = await make_snippet(alice, title="B", is_public=True, minutes=5)
    """

    async def _make(user: User, minutes: int = 0, **overrides: Any) -> Snippet:
        created = BASE_TIME + timedelta(minutes=minutes)
        overrides.setdefault("created_at", created)
        overrides.setdefault("updated_at", created)
        snippet = build_snippet(owner_id=user.id, **overrides)
        db_session.add(snippet)
        await db_session.flush()
        return snippet

    return _make


# ══════════════════════════════════════════════════════════════════════════
# API client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings() -> Settings:
    return Settings()


@pytest.fixture
def test_app(db_engine, test_settings):
    """
    A fresh application wired to the test engine.

    ASGITransport does not run the lifespan, so the engine and session
    factory are attached to app.state here. Each test gets a fresh app and
    therefore fresh rate-limit counters.
    """
    from snippetdeck.main import create_app

    app = create_app(test_settings)
    app.state.engine = db_engine
    app.state.session_factory = build_session_factory(db_engine)
    return app


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def register(client: AsyncClient, username: str) -> Dict[str, str]:
    """Register `username` and return Authorization headers for it."""
    response = await client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": "password123",
        },
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def register_user():
    return register


@pytest.fixture
def new_snippet():
    return build_snippet
