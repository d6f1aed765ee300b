"""
Tests for the periodic credential cleanup and the operator CLI.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from app.core.database import utcnow
from app.models.user import GLOBAL_ROLE_SUPER_ADMIN
from app.scripts.promote_admin import promote
from app.services.api_keys import ApiKeyService
from app.services.tokens import TokenService
from app.services.workspaces import WorkspaceService
from app.tasks.cleanup import WorkerSettings, cleanup_expired_credentials


@pytest.fixture
def session_context(session):
    @asynccontextmanager
    async def _context():
        yield session

    return _context


class TestCleanupTask:
    async def test_purges_expired_credentials(self, session, session_context, make_user):
        user = await make_user()
        workspace = await WorkspaceService(session).create("Mine", user.id)
        now = utcnow()
        await ApiKeyService(session, session_factory=MagicMock()).create(
            workspace.id, "Old", user.id, expires_at=now - timedelta(days=1)
        )
        await ApiKeyService(session, session_factory=MagicMock()).create(workspace.id, "Live", user.id)
        tokens = TokenService(session)
        await tokens.store_refresh_token(user.id, "stale", now - timedelta(hours=1))
        await tokens.store_refresh_token(user.id, "live", now + timedelta(hours=1))

        with patch("app.tasks.cleanup.get_session_context", session_context):
            result = await cleanup_expired_credentials({})

        assert result == {"api_keys": 1, "refresh_tokens": 1}

    def test_registered_with_worker(self):
        assert cleanup_expired_credentials in WorkerSettings.functions


class TestPromoteAdmin:
    async def test_promotes_existing_user(self, session_context, make_user):
        user = await make_user("Root", email="root@example.com")
        with patch("app.scripts.promote_admin.get_session_context", session_context):
            assert await promote("root@example.com") is True
        assert user.global_role == GLOBAL_ROLE_SUPER_ADMIN

    async def test_unknown_email(self, session_context):
        with patch("app.scripts.promote_admin.get_session_context", session_context):
            assert await promote("ghost@example.com") is False
