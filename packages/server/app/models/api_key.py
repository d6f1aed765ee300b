"""Workspace API key model. Only the SHA-256 of the plain key is stored."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, _utcnow


class WorkspaceAPIKey(UUIDMixin, SQLModel, table=True):
    __tablename__ = "workspace_api_keys"

    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", ondelete="CASCADE", nullable=False, index=True)
    name: str = Field(nullable=False)
    key_hash: str = Field(nullable=False, unique=True, index=True)
    key_prefix: str = Field(nullable=False)
    created_by: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False)
    expires_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    revoked_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    last_used_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
