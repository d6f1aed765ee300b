"""Workspace vault and vault item models. Payloads are opaque client ciphertext."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Vault(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspace_vaults"

    workspace_id: uuid.UUID = Field(
        foreign_key="workspaces.id", ondelete="CASCADE", nullable=False, unique=True
    )
    salt: str = Field(nullable=False)
    verification: str = Field(nullable=False)


class VaultItem(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "vault_items"

    vault_id: uuid.UUID = Field(foreign_key="workspace_vaults.id", ondelete="CASCADE", nullable=False, index=True)
    data: str = Field(nullable=False)
