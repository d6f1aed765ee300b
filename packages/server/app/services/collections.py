"""
Collection service: versioned JSON documents with optimistic concurrency.

Every successful mutation bumps ``version`` by exactly one. ``update`` is a
single conditional statement; when it returns no row, re-reading the version tells
apart a stale read (version-conflict), a missing row (not-found) and any
other failure (re-raised unchanged).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from sqlalchemy import delete, update
from sqlalchemy.exc import DBAPIError, NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import utcnow
from app.core.errors import ErrorKind, ServiceError
from app.models.collection import Collection

log = structlog.get_logger()


class CollectionService:
    def __init__(self, session: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.now = now

    async def create(
        self,
        workspace_id: uuid.UUID,
        name: str,
        data: Any = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> Collection:
        now = self.now()
        collection = Collection(
            workspace_id=workspace_id,
            name=name,
            data={} if data is None else data,
            version=1,
            updated_by=user_id,
            created_at=now,
            updated_at=now,
        )
        self.session.add(collection)
        await self.session.flush()
        log.info(
            "collection.created",
            collection_id=str(collection.id),
            workspace_id=str(workspace_id),
        )
        return collection

    async def get_by_id(self, collection_id: uuid.UUID) -> Collection:
        collection = await self.session.get(Collection, collection_id)
        if collection is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "collection not found")
        return collection

    async def get_by_workspace(self, workspace_id: uuid.UUID) -> list[Collection]:
        result = await self.session.execute(
            select(Collection)
            .where(Collection.workspace_id == workspace_id)
            .order_by(Collection.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_workspace_and_name(
        self, workspace_id: uuid.UUID, name: str
    ) -> Optional[Collection]:
        result = await self.session.execute(
            select(Collection)
            .where(Collection.workspace_id == workspace_id, Collection.name == name)
            .order_by(Collection.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def delete(self, collection_id: uuid.UUID) -> None:
        await self.session.execute(delete(Collection).where(Collection.id == collection_id))
        log.info("collection.deleted", collection_id=str(collection_id))

    # -----------------------------------------------------------------------
    # Updates
    # -----------------------------------------------------------------------

    async def update(
        self,
        collection_id: uuid.UUID,
        name: Optional[str],
        data: Any,
        expected_version: int,
        user_id: Optional[uuid.UUID],
    ) -> Collection:
        """Apply a partial update if the row is still at ``expected_version``."""
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = name
        if data is not None:
            fields["data"] = data
        if not fields:
            raise ServiceError(ErrorKind.NO_FIELDS_TO_UPDATE, "no fields to update")

        stmt = (
            update(Collection)
            .where(Collection.id == collection_id, Collection.version == expected_version)
            .values(
                **fields,
                version=Collection.version + 1,
                updated_by=user_id,
                updated_at=self.now(),
            )
            .returning(Collection)
            .execution_options(populate_existing=True)
        )
        try:
            async with self.session.begin_nested():
                result = await self.session.execute(stmt)
                collection = result.scalars().one()
        except (NoResultFound, DBAPIError) as exc:
            await self._classify_failed_update(collection_id, expected_version, exc)
            raise

        log.info(
            "collection.updated",
            collection_id=str(collection_id),
            version=collection.version,
            fields=sorted(fields),
        )
        return collection

    async def _classify_failed_update(
        self, collection_id: uuid.UUID, expected_version: int, original: Exception
    ) -> None:
        """Raise not-found or version-conflict; return to let the caller re-raise."""
        result = await self.session.execute(
            select(Collection.version).where(Collection.id == collection_id)
        )
        current = result.scalar_one_or_none()
        if current is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "collection not found") from original
        if current != expected_version:
            log.info(
                "collection.version_conflict",
                collection_id=str(collection_id),
                expected_version=expected_version,
                current_version=current,
            )
            raise ServiceError(
                ErrorKind.VERSION_CONFLICT,
                "collection has been modified by another user",
                current_version=current,
            ) from original

    async def force_update(
        self, collection_id: uuid.UUID, name: Optional[str], data: Any
    ) -> Collection:
        """Overwrite regardless of version; still bumps the version by one."""
        fields: dict[str, Any] = {}
        if name:
            fields["name"] = name
        if data is not None:
            fields["data"] = data

        result = await self.session.execute(
            update(Collection)
            .where(Collection.id == collection_id)
            .values(**fields, version=Collection.version + 1, updated_at=self.now())
            .returning(Collection)
            .execution_options(populate_existing=True)
        )
        collection = result.scalars().one_or_none()
        if collection is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "collection not found")
        log.info("collection.force_updated", collection_id=str(collection_id), version=collection.version)
        return collection
