"""
Shared fixtures: an in-memory SQLite store, a user factory and an HTTP client
wired to the FastAPI app with the store and a fake broadcaster.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_access_token
from app.core.database import get_session
from app.core.events import EventBroadcaster, get_broadcaster
from app.main import app as fastapi_app
from app.models.user import User


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session):
    async def _make(name: str = "Alice", email: str | None = None, avatar_url: str | None = None) -> User:
        user = User(
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            name=name,
            avatar_url=avatar_url,
            provider="github",
            provider_id=uuid.uuid4().hex,
        )
        session.add(user)
        await session.flush()
        return user

    return _make


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def broadcaster():
    return MagicMock(spec=EventBroadcaster)


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}

    return _headers


@pytest.fixture
async def client(session, broadcaster):
    async def _session_override():
        yield session

    fastapi_app.dependency_overrides[get_session] = _session_override
    fastapi_app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    # The detached last_used_at write would share the single in-memory connection.
    with patch("app.services.api_keys._touch_last_used", new=AsyncMock()):
        async with AsyncClient(
            transport=ASGITransport(app=fastapi_app), base_url="http://test"
        ) as ac:
            yield ac
    fastapi_app.dependency_overrides.clear()
