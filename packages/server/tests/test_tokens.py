"""
Tests for refresh token storage, rotation and revocation.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.core.auth import create_access_token, hash_token
from app.core.database import utcnow
from app.core.errors import ErrorKind, ServiceError
from app.services.tokens import TokenService


@pytest.fixture
def tokens(session):
    return TokenService(session)


async def _rejects(tokens, token) -> None:
    with pytest.raises(ServiceError) as exc:
        await tokens.validate_refresh_token(token)
    assert exc.value.kind == ErrorKind.UNAUTHENTICATED


class TestRefreshTokens:
    async def test_issue_and_validate(self, tokens, make_user):
        user = await make_user()
        pair = await tokens.issue_pair(user)
        assert pair.expires_in == 15 * 60
        assert await tokens.validate_refresh_token(pair.refresh_token) == user.id

    async def test_rotation_invalidates_old_token(self, tokens, make_user):
        user = await make_user()
        old = await tokens.issue_pair(user)
        new = await tokens.rotate(old.refresh_token, user)
        assert new.refresh_token != old.refresh_token
        await _rejects(tokens, old.refresh_token)
        assert await tokens.validate_refresh_token(new.refresh_token) == user.id

    async def test_access_token_is_not_a_refresh_token(self, tokens, make_user):
        user = await make_user()
        await _rejects(tokens, create_access_token(user.id, user.email))

    async def test_garbage_rejected(self, tokens):
        await _rejects(tokens, "not-a-jwt")

    async def test_logout_all(self, tokens, make_user):
        user = await make_user()
        a = await tokens.issue_pair(user)
        b = await tokens.issue_pair(user)
        assert await tokens.revoke_all_user_tokens(user.id) == 2
        await _rejects(tokens, a.refresh_token)
        await _rejects(tokens, b.refresh_token)

    async def test_cleanup_expired(self, session, make_user):
        user = await make_user()
        now = utcnow()
        tokens = TokenService(session, now=lambda: now)
        await tokens.store_refresh_token(user.id, "stale", now - timedelta(hours=1))
        await tokens.store_refresh_token(user.id, "live", now + timedelta(hours=1))
        assert await tokens.cleanup_expired() == 1

    async def test_stored_hash_only(self, session, tokens, make_user):
        from sqlmodel import select

        from app.models.token import RefreshToken

        user = await make_user()
        pair = await tokens.issue_pair(user)
        stored = (await session.execute(select(RefreshToken.token_hash))).scalars().all()
        assert stored == [hash_token(pair.refresh_token)]
