"""
Token service: access/refresh pairs and the server-side refresh token store.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import jwt
import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_token,
    token_user_id,
)
from app.core.config import get_settings
from app.core.database import utcnow
from app.core.errors import ErrorKind, ServiceError
from app.models.token import RefreshToken
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


class TokenService:
    def __init__(self, session: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.now = now

    async def issue_pair(self, user: User) -> TokenPair:
        """Mint an access/refresh pair and remember the refresh token's hash."""
        now = self.now()
        access = create_access_token(user.id, user.email, now=now)
        refresh, expires_at = create_refresh_token(user.id, now=now)
        await self.store_refresh_token(user.id, refresh, expires_at)
        return TokenPair(
            access_token=access,
            refresh_token=refresh,
            expires_in=settings.access_token_expire_minutes * 60,
        )

    async def store_refresh_token(
        self, user_id: uuid.UUID, token: str, expires_at: datetime
    ) -> None:
        self.session.add(
            RefreshToken(
                user_id=user_id,
                token_hash=hash_token(token),
                expires_at=expires_at,
                created_at=self.now(),
            )
        )
        await self.session.flush()

    async def validate_refresh_token(self, token: str) -> uuid.UUID:
        """Verify signature and claims, then require a live stored hash."""
        try:
            payload = decode_token(token)
        except jwt.PyJWTError:
            raise ServiceError(ErrorKind.UNAUTHENTICATED, "invalid refresh token")
        if "jti" not in payload:
            raise ServiceError(ErrorKind.UNAUTHENTICATED, "invalid refresh token")

        result = await self.session.execute(
            select(RefreshToken.user_id).where(
                RefreshToken.token_hash == hash_token(token),
                RefreshToken.expires_at > self.now(),
            )
        )
        user_id = result.scalar_one_or_none()
        if user_id is None or user_id != token_user_id(payload):
            raise ServiceError(ErrorKind.UNAUTHENTICATED, "refresh token revoked or expired")
        return user_id

    async def revoke_refresh_token(self, token: str) -> None:
        await self.session.execute(
            delete(RefreshToken).where(RefreshToken.token_hash == hash_token(token))
        )

    async def revoke_all_user_tokens(self, user_id: uuid.UUID) -> int:
        result = await self.session.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id)
        )
        log.info("auth.tokens_revoked", user_id=str(user_id), count=result.rowcount)
        return result.rowcount or 0

    async def rotate(self, refresh_token: str, user: User) -> TokenPair:
        """Exchange a live refresh token for a new pair; the old one stops working."""
        await self.revoke_refresh_token(refresh_token)
        pair = await self.issue_pair(user)
        log.info("auth.token_refreshed", user_id=str(user.id))
        return pair

    async def cleanup_expired(self) -> int:
        result = await self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.expires_at < self.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
