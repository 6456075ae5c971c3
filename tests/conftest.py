"""Test fixtures.

Learn: Two kinds of tests live here:

1. REST tests — an httpx AsyncClient over ASGITransport, with get_db
   overridden to a fresh in-memory SQLite database per test. No Postgres
   or Redis needed; the rate limiter skips itself when Redis is absent.
2. Hub tests — the real-time core driven directly with in-memory fakes
   for sockets (FakeWebSocket) and persistence (FakeStore).
"""

import os

# Must be set before chathub.config is imported anywhere.
os.environ.setdefault("CHATHUB_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CHATHUB_ENVIRONMENT", "development")

import asyncio
import json
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chathub.db.engine import get_db
from chathub.db.models import Base
from chathub.main import app
from chathub.realtime.hub import ConnectionHub
from chathub.services.errors import StoreError


# ═══════════════════════════════════════════════════════════
# Database
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def db_engine():
    """Fresh in-memory database with all tables, dropped after the test.

    StaticPool keeps the single connection alive — with :memory: SQLite
    every new connection would otherwise be a new, empty database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client with get_db pointed at the per-test database.

    Auth is NOT overridden: tests register and log in real users
    (see make_user), so every request runs the full JWT pipeline.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def make_user(client):
    """Factory: register + log in a user, return (user_json, auth_headers)."""

    async def _make(username: str | None = None, password: str = "password_123"):
        username = username or f"user_{uuid.uuid4().hex[:8]}"
        r = await client.post(
            "/api/users/register",
            json={"username": username, "password": password, "profilePicture": ""},
        )
        assert r.status_code == 201, r.text
        user = r.json()

        r = await client.post(
            "/api/users/login", json={"username": username, "password": password}
        )
        assert r.status_code == 200, r.text
        return user, {"Authorization": f"Bearer {r.json()['token']}"}

    return _make


# ═══════════════════════════════════════════════════════════
# Real-time fakes
# ═══════════════════════════════════════════════════════════


class FakeWebSocket:
    """Stands in for a Starlette WebSocket.

    Outbound frames are decoded and collected in .sent; inbound frames are
    queued with feed() and handed out by receive(), ending with hang_up().
    """

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []
        self.closed_with: int | None = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    async def receive(self) -> dict:
        return await self._inbox.get()

    def feed(self, frame: dict | str) -> None:
        text = frame if isinstance(frame, str) else json.dumps(frame)
        self._inbox.put_nowait({"type": "websocket.receive", "text": text})

    def hang_up(self) -> None:
        self._inbox.put_nowait({"type": "websocket.disconnect", "code": 1000})

    def events(self, name: str) -> list[dict]:
        return [frame for frame in self.sent if frame["event"] == name]


class FakeStore:
    """In-memory message store; fail=True makes every write raise."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages = []

    async def create_message(self, message) -> None:
        if self.fail:
            raise StoreError("database unavailable")
        self.messages.append(message)


@pytest.fixture
def make_socket():
    def _make(fail: bool = False) -> FakeWebSocket:
        return FakeWebSocket(fail=fail)

    return _make


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def hub(store):
    return ConnectionHub(store=store)

