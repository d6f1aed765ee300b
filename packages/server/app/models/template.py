"""Public collection template catalog."""

from typing import Any, Optional

from sqlmodel import Field, SQLModel

from .base import JSONDocument, TimestampMixin, UUIDMixin


class PublicTemplate(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "public_templates"

    name: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    category: Optional[str] = None
    data: Any = Field(default_factory=dict, sa_type=JSONDocument, nullable=False)
