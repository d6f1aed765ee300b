"""Workspace schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, UUID4

from .common import WorkspaceType


class WorkspaceCreateRequest(BaseModel):
    """Create a personal workspace, or a team workspace when team_id is given."""
    name: str = Field(min_length=1, max_length=200)
    team_id: Optional[UUID4] = None


class WorkspaceUpdateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class WorkspaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    name: str
    user_id: Optional[UUID4] = None
    team_id: Optional[UUID4] = None
    type: WorkspaceType
    created_at: datetime


class WorkspaceListResponse(BaseModel):
    data: List[WorkspaceResponse]
