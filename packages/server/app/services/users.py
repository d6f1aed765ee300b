"""
User service: identity store with OAuth provenance.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import select

from app.core.database import utcnow
from app.core.errors import ErrorKind, ServiceError
from app.models.user import GLOBAL_ROLE_SUPER_ADMIN, GLOBAL_ROLE_USER, User

log = structlog.get_logger()


@dataclass
class OAuthUserInfo:
    """Identity as reported by an OAuth provider after consent."""

    provider: str
    provider_id: str
    email: str
    name: str
    avatar_url: Optional[str] = None


class UserService:
    def __init__(self, session: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.now = now

    async def find_or_create_from_oauth(self, info: OAuthUserInfo) -> User:
        """Find a user by provider identity, reconciling changed profile fields.

        Reconciliation is best-effort: a failed write is logged and the
        in-memory user still carries the new values.
        """
        result = await self.session.execute(
            select(User).where(
                User.provider == info.provider, User.provider_id == info.provider_id
            )
        )
        user = result.scalar_one_or_none()

        if user is not None:
            avatar_changed = user.avatar_url is None and bool(info.avatar_url)
            if user.email != info.email or user.name != info.name or avatar_changed:
                await self._reconcile(user, info)
            return user

        user = User(
            email=info.email,
            name=info.name,
            avatar_url=info.avatar_url or None,
            provider=info.provider,
            provider_id=info.provider_id,
            global_role=GLOBAL_ROLE_USER,
        )
        self.session.add(user)
        await self.session.flush()
        log.info("user.created", user_id=str(user.id), provider=info.provider)
        return user

    async def _reconcile(self, user: User, info: OAuthUserInfo) -> None:
        values = {"email": info.email, "name": info.name, "updated_at": self.now()}
        if info.avatar_url:
            values["avatar_url"] = info.avatar_url
        try:
            async with self.session.begin_nested():
                await self.session.execute(
                    update(User)
                    .where(User.id == user.id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            log.warning("user.reconcile_failed", user_id=str(user.id), error=str(exc))

        # In-memory only; the row was written (or not) above.
        set_committed_value(user, "email", info.email)
        set_committed_value(user, "name", info.name)
        if info.avatar_url:
            set_committed_value(user, "avatar_url", info.avatar_url)

    async def get_by_id(self, user_id: uuid.UUID) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "user not found")
        return user

    async def get_by_email(self, email: str) -> User:
        result = await self.session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "user not found")
        return user

    async def update(self, user_id: uuid.UUID, name: str) -> User:
        user = await self.get_by_id(user_id)
        user.name = name
        user.updated_at = self.now()
        self.session.add(user)
        await self.session.flush()
        log.info("user.updated", user_id=str(user_id))
        return user

    async def promote_to_super_admin(self, email: str) -> User:
        user = await self.get_by_email(email)
        user.global_role = GLOBAL_ROLE_SUPER_ADMIN
        user.updated_at = self.now()
        self.session.add(user)
        await self.session.flush()
        log.info("user.promoted", user_id=str(user.id), global_role=GLOBAL_ROLE_SUPER_ADMIN)
        return user
