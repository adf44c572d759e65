"""Pytest configuration and fixtures for TaskShare tests.

Points the app at a throw-away SQLite database (aiosqlite) before anything
from `taskshare` is imported, creates the schema per test, and provides
an HTTP client, a fresh hub, users and token headers.
"""

import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="taskshare-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_DIR}/test.db"
os.environ["SECRET_KEY"] = "test-secret-key"

from typing import Any, AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.auth.jwt import create_access_token
from taskshare.database import Base, async_session, engine
from taskshare.main import app
from taskshare.models.user import User
from taskshare.realtime.hub import Hub

import taskshare.models  # noqa: F401  (register mappers)


# ── Fake transport ───────────────────────────────────────────────

class FakeSocket:
    """Records every JSON frame the hub sends to it."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail
        self.close_code: int | None = None

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise ConnectionError("socket gone")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.close_code = code

    def events(self) -> list[str]:
        return [frame["event"] for frame in self.sent]

    def of(self, event: str) -> list[Any]:
        return [frame["data"] for frame in self.sent if frame["event"] == event]


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Create every table for one test and drop them afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


@pytest.fixture
def hub() -> Hub:
    return Hub(send_timeout=1.0)


@pytest_asyncio.fixture
async def client(database, hub: Hub) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the ASGI app with a fresh hub on app.state.

    ASGITransport does not run the lifespan, so the hub is installed here.
    """
    app.state.hub = hub
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client
    await hub.close()


# ── Test Data Fixtures ───────────────────────────────────────────

@pytest.fixture
def user_factory(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def create(name: str, email: str | None = None) -> User:
        user = User(name=name, email=email or f"{name.lower()}@example.com")
        db_session.add(user)
        await db_session.commit()
        return user

    return create


@pytest_asyncio.fixture
async def alice(user_factory) -> User:
    return await user_factory("Alice")


@pytest_asyncio.fixture
async def bob(user_factory) -> User:
    return await user_factory("Bob")


@pytest_asyncio.fixture
async def carol(user_factory) -> User:
    return await user_factory("Carol")


@pytest_asyncio.fixture
async def dave(user_factory) -> User:
    return await user_factory("Dave")


def auth_headers(user: User) -> dict:
    """Authorization headers carrying an access token for `user`."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def headers() -> Callable[[User], dict]:
    return auth_headers


@pytest.fixture
def make_socket() -> Callable[..., FakeSocket]:
    return FakeSocket


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Pure unit tests (no database)")
    config.addinivalue_line("markers", "api: HTTP tests through the ASGI app")
    config.addinivalue_line("markers", "realtime: Hub, projector and client tests")
