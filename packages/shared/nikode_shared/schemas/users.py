"""User profile schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, UUID4

from .common import GlobalRole


class UserUpdateRequest(BaseModel):
    """Update the caller's own profile."""
    name: str = Field(min_length=1, max_length=200)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    email: str
    name: str
    avatar_url: Optional[str] = None
    provider: str
    global_role: GlobalRole = GlobalRole.USER
    created_at: datetime
