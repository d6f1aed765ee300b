"""Team, team membership and team invite models."""

import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin

ROLE_OWNER = "owner"
ROLE_MEMBER = "member"

INVITE_PENDING = "pending"
INVITE_ACCEPTED = "accepted"
INVITE_DECLINED = "declined"


class Team(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "teams"

    name: str = Field(nullable=False)
    owner_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)


class TeamMember(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "team_members"
    __table_args__ = (
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    team_id: uuid.UUID = Field(foreign_key="teams.id", ondelete="CASCADE", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)
    role: str = Field(default=ROLE_MEMBER, nullable=False)  # owner | member


class TeamInvite(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "team_invites"
    __table_args__ = (
        sa.UniqueConstraint("team_id", "invitee_id", name="uq_team_invites_team_invitee"),
    )

    team_id: uuid.UUID = Field(foreign_key="teams.id", ondelete="CASCADE", nullable=False, index=True)
    inviter_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False)
    invitee_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)
    status: str = Field(default=INVITE_PENDING, nullable=False)  # pending | accepted | declined
