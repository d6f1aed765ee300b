"""Workspace model: personal (user_id) xor team-owned (team_id)."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin

WORKSPACE_PERSONAL = "personal"
WORKSPACE_TEAM = "team"


class Workspace(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspaces"
    __table_args__ = (
        sa.CheckConstraint(
            "(user_id IS NOT NULL AND team_id IS NULL) OR (user_id IS NULL AND team_id IS NOT NULL)",
            name="workspace_owner_check",
        ),
    )

    name: str = Field(nullable=False)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="CASCADE", index=True)
    team_id: Optional[uuid.UUID] = Field(default=None, foreign_key="teams.id", ondelete="CASCADE", index=True)

    @property
    def type(self) -> str:
        return WORKSPACE_TEAM if self.team_id is not None else WORKSPACE_PERSONAL
