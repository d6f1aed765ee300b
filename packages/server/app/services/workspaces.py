"""
Workspace service and the authorization engine.

A workspace is personal (user_id set) or team-owned (team_id set), never both.

Access rules:
- personal: only the owning user may access and modify
- team: members may access, the team owner may modify
- API key principal: access and modify only the key's own workspace
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.core.database import utcnow
from app.core.errors import ErrorKind, ServiceError
from app.models.team import ROLE_OWNER, TeamMember
from app.models.workspace import Workspace
from app.services.teams import TeamService

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Authorization decisions (pure)
# ---------------------------------------------------------------------------

def can_access(workspace: Workspace, principal: Principal, team_role: Optional[str] = None) -> bool:
    """Decide read access. team_role is the principal's role in the owning team, if any."""
    if principal.is_api_key:
        return workspace.id == principal.workspace_id
    if workspace.team_id is None:
        return workspace.user_id == principal.user_id
    return team_role is not None


def can_modify(workspace: Workspace, principal: Principal, team_role: Optional[str] = None) -> bool:
    if principal.is_api_key:
        return workspace.id == principal.workspace_id
    if workspace.team_id is None:
        return workspace.user_id == principal.user_id
    return team_role == ROLE_OWNER


class WorkspaceService:
    def __init__(self, session: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.now = now
        self.teams = TeamService(session, now)

    async def create(
        self, name: str, user_id: uuid.UUID, team_id: Optional[uuid.UUID] = None
    ) -> Workspace:
        """Create a personal workspace, or a team workspace (team owner only)."""
        if team_id is not None:
            await self.teams.get_by_id(team_id)
            if not await self.teams.is_owner(team_id, user_id):
                raise ServiceError(ErrorKind.FORBIDDEN, "only the team owner can create team workspaces")
            workspace = Workspace(name=name, team_id=team_id)
        else:
            workspace = Workspace(name=name, user_id=user_id)

        now = self.now()
        workspace.created_at = now
        workspace.updated_at = now
        self.session.add(workspace)
        await self.session.flush()
        log.info(
            "workspace.created",
            workspace_id=str(workspace.id),
            type=workspace.type,
            user_id=str(user_id),
        )
        return workspace

    async def get_by_id(self, workspace_id: uuid.UUID) -> Workspace:
        workspace = await self.session.get(Workspace, workspace_id)
        if workspace is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "workspace not found")
        return workspace

    async def list_for_user(self, user_id: uuid.UUID) -> list[Workspace]:
        """Personal workspaces plus workspaces of the user's teams, newest first."""
        team_ids = select(TeamMember.team_id).where(TeamMember.user_id == user_id)
        result = await self.session.execute(
            select(Workspace)
            .where(or_(Workspace.user_id == user_id, Workspace.team_id.in_(team_ids)))
            .order_by(Workspace.created_at.desc())
        )
        return list(result.scalars().unique().all())

    async def list_for_team(self, team_id: uuid.UUID) -> list[Workspace]:
        result = await self.session.execute(
            select(Workspace).where(Workspace.team_id == team_id)
        )
        return list(result.scalars().all())

    async def update(self, workspace_id: uuid.UUID, name: str) -> Workspace:
        workspace = await self.get_by_id(workspace_id)
        workspace.name = name
        workspace.updated_at = self.now()
        self.session.add(workspace)
        await self.session.flush()
        log.info("workspace.updated", workspace_id=str(workspace_id))
        return workspace

    async def delete(self, workspace_id: uuid.UUID) -> None:
        result = await self.session.execute(delete(Workspace).where(Workspace.id == workspace_id))
        if result.rowcount == 0:
            raise ServiceError(ErrorKind.NOT_FOUND, "workspace not found")
        log.info("workspace.deleted", workspace_id=str(workspace_id))

    # -----------------------------------------------------------------------
    # Authorization
    # -----------------------------------------------------------------------

    async def _team_role(self, workspace: Workspace, principal: Principal) -> Optional[str]:
        if workspace.team_id is None or not principal.is_user:
            return None
        return await self.teams.get_member_role(workspace.team_id, principal.user_id)

    async def can_access(self, workspace: Workspace, principal: Principal) -> bool:
        return can_access(workspace, principal, await self._team_role(workspace, principal))

    async def can_modify(self, workspace: Workspace, principal: Principal) -> bool:
        return can_modify(workspace, principal, await self._team_role(workspace, principal))

    async def get_accessible(self, workspace_id: uuid.UUID, principal: Principal) -> Workspace:
        """Load a workspace the principal may read. Hidden workspaces look missing."""
        workspace = await self.get_by_id(workspace_id)
        if not await self.can_access(workspace, principal):
            raise ServiceError(ErrorKind.NOT_FOUND, "workspace not found")
        return workspace

    async def get_modifiable(self, workspace_id: uuid.UUID, principal: Principal) -> Workspace:
        """Load a workspace the principal may change."""
        workspace = await self.get_by_id(workspace_id)
        team_role = await self._team_role(workspace, principal)
        if not can_access(workspace, principal, team_role):
            raise ServiceError(ErrorKind.NOT_FOUND, "workspace not found")
        if not can_modify(workspace, principal, team_role):
            raise ServiceError(ErrorKind.FORBIDDEN, "cannot modify this workspace")
        return workspace
