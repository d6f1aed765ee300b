"""User model."""

from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin

GLOBAL_ROLE_USER = "user"
GLOBAL_ROLE_SUPER_ADMIN = "super_admin"


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        sa.UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
    )

    email: str = Field(nullable=False, unique=True, index=True)
    name: str = Field(nullable=False)
    avatar_url: Optional[str] = None
    provider: str = Field(nullable=False)  # github | gitlab | google
    provider_id: str = Field(nullable=False)
    global_role: str = Field(default=GLOBAL_ROLE_USER, nullable=False)  # user | super_admin
