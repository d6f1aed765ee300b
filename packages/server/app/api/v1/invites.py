"""
Invites addressed to the caller.

GET    /api/v1/invites                       - My pending invites
POST   /api/v1/invites/{inviteId}/accept     - Accept (joins the team)
POST   /api/v1/invites/{inviteId}/decline    - Decline
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_team_service, get_workspace_service
from app.core.database import get_session
from app.core.events import EventBroadcaster, get_broadcaster
from app.models.user import User
from app.services.teams import TeamService
from app.services.workspaces import WorkspaceService
from nikode_shared.schemas.common import MessageResponse
from nikode_shared.schemas.teams import TeamInviteListResponse, TeamInviteResponse

router = APIRouter()


@router.get("", response_model=TeamInviteListResponse)
async def list_my_invites(
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    rows = await teams.list_user_pending_invites(user.id)
    return TeamInviteListResponse(
        data=[
            TeamInviteResponse(
                id=invite.id,
                team_id=invite.team_id,
                inviter_id=invite.inviter_id,
                invitee_id=invite.invitee_id,
                status=invite.status,
                team_name=team.name,
                inviter_name=inviter.name,
                created_at=invite.created_at,
            )
            for invite, team, inviter in rows
        ]
    )


@router.post("/{inviteId}/accept", response_model=MessageResponse)
async def accept_invite(
    inviteId: uuid.UUID,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    session: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    invite = await teams.accept_invite(inviteId, user.id)
    team_workspaces = await workspaces.list_for_team(invite.team_id)
    await session.commit()
    for workspace in team_workspaces:
        broadcaster.member_joined(workspace.id, user.id, user.name, user.avatar_url)
    return MessageResponse(message="invite accepted")


@router.post("/{inviteId}/decline", response_model=MessageResponse)
async def decline_invite(
    inviteId: uuid.UUID,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    await teams.decline_invite(inviteId, user.id)
    return MessageResponse(message="invite declined")
