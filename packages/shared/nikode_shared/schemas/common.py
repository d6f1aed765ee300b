from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TeamRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class GlobalRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    USER = "user"


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class WorkspaceType(str, Enum):
    PERSONAL = "personal"
    TEAM = "team"


class ConflictResolution(str, Enum):
    FORCE = "force"
    CLONE = "clone"
    FAIL = "fail"


class MessageResponse(BaseModel):
    message: str


class ErrorBody(BaseModel):
    code: str
    message: str
    status: int
    current_version: Optional[int] = None


class ErrorResponse(BaseModel):
    error: ErrorBody
