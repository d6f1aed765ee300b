"""
Workspace API key service.

Keys are shown once on creation; only their SHA-256 is stored. Successful
validation schedules a detached ``last_used_at`` write on its own session,
so the request never waits on it and never sees its failure.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from sqlalchemy import delete, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import generate_api_key, hash_api_key, parse_api_key
from app.core.config import get_settings
from app.core.database import async_session_factory, ensure_aware, utcnow
from app.core.errors import ErrorKind, ServiceError
from app.models.api_key import WorkspaceAPIKey

log = structlog.get_logger()
settings = get_settings()

_background_tasks: set[asyncio.Task] = set()


async def wait_for_background_tasks() -> None:
    """Let in-flight last_used_at writes finish (shutdown, tests)."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


async def _touch_last_used(session_factory, key_id: uuid.UUID, used_at: datetime) -> None:
    try:
        async with session_factory() as session:
            await session.execute(
                update(WorkspaceAPIKey)
                .where(WorkspaceAPIKey.id == key_id)
                .values(last_used_at=used_at)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
    except (SQLAlchemyError, OSError) as exc:
        log.warning("api_key.last_used_update_failed", key_id=str(key_id), error=str(exc))


class ApiKeyService:
    def __init__(
        self,
        session: AsyncSession,
        now: Callable[[], datetime] = utcnow,
        session_factory=None,
    ):
        self.session = session
        self.now = now
        self.session_factory = session_factory or async_session_factory

    async def create(
        self,
        workspace_id: uuid.UUID,
        name: str,
        created_by: uuid.UUID,
        expires_at: Optional[datetime] = None,
    ) -> tuple[WorkspaceAPIKey, str]:
        """Create a key. Returns (row, plain_key); the plain key is not kept."""
        plain_key, key_prefix = generate_api_key(workspace_id)
        api_key = WorkspaceAPIKey(
            workspace_id=workspace_id,
            name=name,
            key_hash=hash_api_key(plain_key),
            key_prefix=key_prefix,
            created_by=created_by,
            expires_at=expires_at,
            created_at=self.now(),
        )
        self.session.add(api_key)
        await self.session.flush()
        log.info(
            "api_key.created",
            key_id=str(api_key.id),
            workspace_id=str(workspace_id),
            key_prefix=key_prefix,
        )
        return api_key, plain_key

    async def validate(self, plain_key: str) -> WorkspaceAPIKey:
        """Resolve a presented key to its row, or raise key-invalid/revoked/expired."""
        try:
            parse_api_key(plain_key)
        except ValueError:
            raise ServiceError(ErrorKind.KEY_INVALID, "invalid api key")

        result = await self.session.execute(
            select(WorkspaceAPIKey)
            .where(WorkspaceAPIKey.key_hash == hash_api_key(plain_key))
            .execution_options(populate_existing=True)
        )
        api_key = result.scalar_one_or_none()
        if api_key is None:
            raise ServiceError(ErrorKind.KEY_INVALID, "invalid api key")
        if api_key.revoked_at is not None:
            raise ServiceError(ErrorKind.KEY_REVOKED, "api key has been revoked")

        now = self.now()
        expires_at = ensure_aware(api_key.expires_at)
        if expires_at is not None and expires_at <= now:
            raise ServiceError(ErrorKind.KEY_EXPIRED, "api key has expired")

        self._schedule_last_used(api_key.id, now)
        return api_key

    def _schedule_last_used(self, key_id: uuid.UUID, used_at: datetime) -> None:
        task = asyncio.get_running_loop().create_task(
            _touch_last_used(self.session_factory, key_id, used_at)
        )
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    async def list_for_workspace(self, workspace_id: uuid.UUID) -> list[WorkspaceAPIKey]:
        """Unrevoked keys of a workspace, newest first."""
        result = await self.session.execute(
            select(WorkspaceAPIKey)
            .where(
                WorkspaceAPIKey.workspace_id == workspace_id,
                WorkspaceAPIKey.revoked_at.is_(None),
            )
            .order_by(WorkspaceAPIKey.created_at.desc())
        )
        return list(result.scalars().all())

    async def revoke(self, key_id: uuid.UUID, workspace_id: uuid.UUID) -> None:
        result = await self.session.execute(
            update(WorkspaceAPIKey)
            .where(
                WorkspaceAPIKey.id == key_id,
                WorkspaceAPIKey.workspace_id == workspace_id,
                WorkspaceAPIKey.revoked_at.is_(None),
            )
            .values(revoked_at=self.now())
        )
        if result.rowcount == 0:
            raise ServiceError(ErrorKind.NOT_FOUND, "api key not found")
        log.info("api_key.revoked", key_id=str(key_id), workspace_id=str(workspace_id))

    async def cleanup_expired(self) -> int:
        """Delete expired keys and keys revoked longer than the retention window."""
        now = self.now()
        cutoff = now - timedelta(days=settings.api_key_revoked_retention_days)
        result = await self.session.execute(
            delete(WorkspaceAPIKey)
            .where(
                or_(
                    WorkspaceAPIKey.expires_at < now,
                    WorkspaceAPIKey.revoked_at < cutoff,
                )
            )
            .execution_options(synchronize_session=False)
        )
        count = result.rowcount or 0
        if count:
            log.info("api_key.cleanup", deleted=count)
        return count
