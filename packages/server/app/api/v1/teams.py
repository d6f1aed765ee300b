"""
Team endpoints.

GET    /api/v1/teams                                - Teams of the caller, with role
POST   /api/v1/teams                                - Create (caller becomes owner)
GET    /api/v1/teams/{teamId}                       - Get (members)
PATCH  /api/v1/teams/{teamId}                       - Rename (owner)
DELETE /api/v1/teams/{teamId}                       - Delete (owner)
GET    /api/v1/teams/{teamId}/members               - List members (members)
DELETE /api/v1/teams/{teamId}/members/{userId}      - Remove a member (owner), or leave (self)
POST   /api/v1/teams/{teamId}/invites               - Invite by email (owner)
GET    /api/v1/teams/{teamId}/invites               - Pending invites (owner)
DELETE /api/v1/teams/{teamId}/invites/{inviteId}    - Cancel a pending invite (owner)
"""

from __future__ import annotations

import smtplib
import uuid

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_team_service, get_user_service, get_workspace_service
from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import ErrorKind, ServiceError
from app.core.events import EventBroadcaster, get_broadcaster
from app.models.team import Team
from app.models.user import User
from app.services.email import EmailService
from app.services.teams import TeamService
from app.services.users import UserService
from app.services.workspaces import WorkspaceService
from nikode_shared.schemas.teams import (
    TeamCreateRequest,
    TeamInviteListResponse,
    TeamInviteRequest,
    TeamInviteResponse,
    TeamListResponse,
    TeamMemberListResponse,
    TeamMemberResponse,
    TeamResponse,
    TeamUpdateRequest,
)

router = APIRouter()
log = structlog.get_logger()
settings = get_settings()


def get_email_service() -> EmailService:
    return EmailService()


async def _require_member(teams: TeamService, team_id: uuid.UUID, user: User) -> Team:
    team = await teams.get_by_id(team_id)
    if not await teams.is_member(team_id, user.id):
        raise ServiceError(ErrorKind.NOT_FOUND, "team not found")
    return team


async def _require_owner(teams: TeamService, team_id: uuid.UUID, user: User) -> Team:
    team = await _require_member(teams, team_id, user)
    if team.owner_id != user.id:
        raise ServiceError(ErrorKind.FORBIDDEN, "only the team owner can do this")
    return team


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

@router.get("", response_model=TeamListResponse)
async def list_teams(
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    rows = await teams.list_for_user(user.id)
    return TeamListResponse(
        data=[
            TeamResponse(
                id=team.id,
                name=team.name,
                owner_id=team.owner_id,
                role=role,
                created_at=team.created_at,
            )
            for team, role in rows
        ]
    )


@router.post("", response_model=TeamResponse, status_code=201)
async def create_team(
    body: TeamCreateRequest,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    team = await teams.create(body.name, user.id)
    return TeamResponse(
        id=team.id, name=team.name, owner_id=team.owner_id, role="owner", created_at=team.created_at
    )


@router.get("/{teamId}", response_model=TeamResponse)
async def get_team(
    teamId: uuid.UUID,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    team = await _require_member(teams, teamId, user)
    return TeamResponse(
        id=team.id,
        name=team.name,
        owner_id=team.owner_id,
        role=await teams.get_member_role(teamId, user.id),
        created_at=team.created_at,
    )


@router.patch("/{teamId}", response_model=TeamResponse)
async def update_team(
    teamId: uuid.UUID,
    body: TeamUpdateRequest,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    await _require_owner(teams, teamId, user)
    team = await teams.update(teamId, body.name)
    return TeamResponse(
        id=team.id, name=team.name, owner_id=team.owner_id, role="owner", created_at=team.created_at
    )


@router.delete("/{teamId}", status_code=204)
async def delete_team(
    teamId: uuid.UUID,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    await _require_owner(teams, teamId, user)
    await teams.delete(teamId)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get("/{teamId}/members", response_model=TeamMemberListResponse)
async def list_members(
    teamId: uuid.UUID,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    await _require_member(teams, teamId, user)
    rows = await teams.list_members(teamId)
    return TeamMemberListResponse(
        data=[
            TeamMemberResponse(
                id=member.id,
                team_id=member.team_id,
                user_id=member.user_id,
                role=member.role,
                email=member_user.email,
                name=member_user.name,
                avatar_url=member_user.avatar_url,
                created_at=member.created_at,
            )
            for member, member_user in rows
        ]
    )


@router.delete("/{teamId}/members/{userId}", status_code=204)
async def remove_member(
    teamId: uuid.UUID,
    userId: uuid.UUID,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    session: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """The owner removes others; any member may remove themselves (leave)."""
    team = await _require_member(teams, teamId, user)
    if userId != user.id and team.owner_id != user.id:
        raise ServiceError(ErrorKind.FORBIDDEN, "only the team owner can remove members")

    await teams.remove_member(teamId, userId)
    team_workspaces = await workspaces.list_for_team(teamId)
    await session.commit()
    for workspace in team_workspaces:
        broadcaster.member_left(workspace.id, userId)


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

@router.post("/{teamId}/invites", response_model=TeamInviteResponse, status_code=201)
async def invite_member(
    teamId: uuid.UUID,
    body: TeamInviteRequest,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
    users: UserService = Depends(get_user_service),
    session: AsyncSession = Depends(get_session),
    email: EmailService = Depends(get_email_service),
):
    """Invite an existing user by email. The notification email is best-effort."""
    team = await _require_owner(teams, teamId, user)
    invitee = await users.get_by_email(str(body.email))
    invite = await teams.create_invite(teamId, user.id, invitee.id)
    await session.commit()

    invite_url = f"{settings.base_url.rstrip('/')}/invite/{invite.id}"
    try:
        await email.send_team_invite(invitee.email, team.name, user.name, invite_url)
    except (smtplib.SMTPException, OSError) as exc:
        log.warning("team.invite_email_failed", invite_id=str(invite.id), error=str(exc))

    return TeamInviteResponse(
        id=invite.id,
        team_id=invite.team_id,
        inviter_id=invite.inviter_id,
        invitee_id=invite.invitee_id,
        status=invite.status,
        team_name=team.name,
        inviter_name=user.name,
        invitee_email=invitee.email,
        invitee_name=invitee.name,
        created_at=invite.created_at,
    )


@router.get("/{teamId}/invites", response_model=TeamInviteListResponse)
async def list_team_invites(
    teamId: uuid.UUID,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    team = await _require_owner(teams, teamId, user)
    rows = await teams.list_team_pending_invites(teamId)
    return TeamInviteListResponse(
        data=[
            TeamInviteResponse(
                id=invite.id,
                team_id=invite.team_id,
                inviter_id=invite.inviter_id,
                invitee_id=invite.invitee_id,
                status=invite.status,
                team_name=team.name,
                invitee_email=invitee.email,
                invitee_name=invitee.name,
                created_at=invite.created_at,
            )
            for invite, invitee in rows
        ]
    )


@router.delete("/{teamId}/invites/{inviteId}", status_code=204)
async def cancel_invite(
    teamId: uuid.UUID,
    inviteId: uuid.UUID,
    user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
):
    await _require_owner(teams, teamId, user)
    await teams.cancel_invite(inviteId, teamId)
