"""
Vault service: one client-encrypted vault per workspace, plus its items.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

import structlog
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import is_unique_violation, utcnow
from app.core.errors import ErrorKind, ServiceError
from app.models.vault import Vault, VaultItem

log = structlog.get_logger()


class VaultService:
    def __init__(self, session: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.now = now

    async def create(self, workspace_id: uuid.UUID, salt: str, verification: str) -> Vault:
        now = self.now()
        vault = Vault(
            workspace_id=workspace_id,
            salt=salt,
            verification=verification,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(vault)
                await self.session.flush()
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise ServiceError(ErrorKind.ALREADY_EXISTS, "vault already exists") from exc
            raise
        log.info("vault.created", vault_id=str(vault.id), workspace_id=str(workspace_id))
        return vault

    async def get_by_workspace(self, workspace_id: uuid.UUID) -> Vault:
        result = await self.session.execute(
            select(Vault).where(Vault.workspace_id == workspace_id)
        )
        vault = result.scalar_one_or_none()
        if vault is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "vault not found")
        return vault

    async def delete(self, workspace_id: uuid.UUID) -> None:
        result = await self.session.execute(
            delete(Vault).where(Vault.workspace_id == workspace_id)
        )
        if result.rowcount == 0:
            raise ServiceError(ErrorKind.NOT_FOUND, "vault not found")
        log.info("vault.deleted", workspace_id=str(workspace_id))

    # -----------------------------------------------------------------------
    # Items
    # -----------------------------------------------------------------------

    async def list_items(self, vault_id: uuid.UUID) -> list[VaultItem]:
        result = await self.session.execute(
            select(VaultItem)
            .where(VaultItem.vault_id == vault_id)
            .order_by(VaultItem.created_at.asc())
        )
        return list(result.scalars().all())

    async def create_item(self, vault_id: uuid.UUID, data: str) -> VaultItem:
        now = self.now()
        item = VaultItem(vault_id=vault_id, data=data, created_at=now, updated_at=now)
        self.session.add(item)
        await self.session.flush()
        log.info("vault.item_created", vault_id=str(vault_id), item_id=str(item.id))
        return item

    async def update_item(self, vault_id: uuid.UUID, item_id: uuid.UUID, data: str) -> VaultItem:
        result = await self.session.execute(
            update(VaultItem)
            .where(VaultItem.id == item_id, VaultItem.vault_id == vault_id)
            .values(data=data, updated_at=self.now())
            .returning(VaultItem)
            .execution_options(populate_existing=True)
        )
        item = result.scalars().one_or_none()
        if item is None:
            raise ServiceError(ErrorKind.ITEM_NOT_FOUND, "vault item not found")
        return item

    async def delete_item(self, vault_id: uuid.UUID, item_id: uuid.UUID) -> None:
        result = await self.session.execute(
            delete(VaultItem).where(VaultItem.id == item_id, VaultItem.vault_id == vault_id)
        )
        if result.rowcount == 0:
            raise ServiceError(ErrorKind.ITEM_NOT_FOUND, "vault item not found")
