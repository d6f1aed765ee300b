"""Collection model (versioned JSON document)."""

from typing import Any, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONDocument, TimestampMixin, UUIDMixin


class Collection(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "collections"

    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", ondelete="CASCADE", nullable=False, index=True)
    name: str = Field(nullable=False)
    data: Any = Field(
        default_factory=dict,
        sa_type=JSONDocument,
        nullable=False,
        sa_column_kwargs={"server_default": sa.text("'{}'")},
    )
    version: int = Field(default=1, nullable=False, sa_column_kwargs={"server_default": sa.text("1")})
    updated_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
