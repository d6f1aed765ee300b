"""Workspace API key schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, UUID4


class ApiKeyCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    expires_at: Optional[datetime] = None


class ApiKeyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    name: str
    key_prefix: str
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    created_at: datetime


class ApiKeyCreatedResponse(ApiKeyResponse):
    """Includes the plain key. Shown ONCE."""
    key: str


class ApiKeyListResponse(BaseModel):
    data: List[ApiKeyResponse]
