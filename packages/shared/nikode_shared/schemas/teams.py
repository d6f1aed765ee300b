"""Team, membership and invite schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, UUID4

from .common import InviteStatus, TeamRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class TeamUpdateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class TeamInviteRequest(BaseModel):
    """Invite an existing user (looked up by email) to the team."""
    email: EmailStr


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    name: str
    owner_id: UUID4
    role: Optional[TeamRole] = None  # caller's role, when listed for a user
    created_at: datetime


class TeamListResponse(BaseModel):
    data: List[TeamResponse]


class TeamMemberResponse(BaseModel):
    id: UUID4
    team_id: UUID4
    user_id: UUID4
    role: TeamRole
    email: str
    name: str
    avatar_url: Optional[str] = None
    created_at: datetime


class TeamMemberListResponse(BaseModel):
    data: List[TeamMemberResponse]


class TeamInviteResponse(BaseModel):
    id: UUID4
    team_id: UUID4
    inviter_id: UUID4
    invitee_id: UUID4
    status: InviteStatus
    team_name: Optional[str] = None
    inviter_name: Optional[str] = None
    invitee_email: Optional[str] = None
    invitee_name: Optional[str] = None
    created_at: datetime


class TeamInviteListResponse(BaseModel):
    data: List[TeamInviteResponse]
