"""
Team service: teams, memberships and the team invite state machine.

Invite transitions: pending -> accepted | declined, pending -> (deleted) on cancel.
Re-inviting upserts on (team_id, invitee_id), flipping the row back to pending.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import delete, exists, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from app.core.database import insert_ignore, upsert, utcnow
from app.core.errors import ErrorKind, ServiceError
from app.models.team import (
    INVITE_ACCEPTED,
    INVITE_DECLINED,
    INVITE_PENDING,
    ROLE_MEMBER,
    ROLE_OWNER,
    Team,
    TeamInvite,
    TeamMember,
)
from app.models.user import User

log = structlog.get_logger()


class TeamService:
    def __init__(self, session: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.now = now

    # -----------------------------------------------------------------------
    # Teams
    # -----------------------------------------------------------------------

    async def create(self, name: str, owner_id: uuid.UUID) -> Team:
        """Create a team and its owner membership atomically."""
        now = self.now()
        team = Team(name=name, owner_id=owner_id, created_at=now, updated_at=now)
        async with self.session.begin_nested():
            self.session.add(team)
            await self.session.flush()
            self.session.add(
                TeamMember(
                    team_id=team.id,
                    user_id=owner_id,
                    role=ROLE_OWNER,
                    created_at=now,
                    updated_at=now,
                )
            )
            await self.session.flush()
        log.info("team.created", team_id=str(team.id), owner_id=str(owner_id))
        return team

    async def get_by_id(self, team_id: uuid.UUID) -> Team:
        team = await self.session.get(Team, team_id)
        if team is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "team not found")
        return team

    async def list_for_user(self, user_id: uuid.UUID) -> list[tuple[Team, str]]:
        """Teams the user belongs to, with the user's role, newest first."""
        result = await self.session.execute(
            select(Team, TeamMember.role)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == user_id)
            .order_by(Team.created_at.desc())
        )
        return [(team, role) for team, role in result.all()]

    async def update(self, team_id: uuid.UUID, name: str) -> Team:
        team = await self.get_by_id(team_id)
        team.name = name
        team.updated_at = self.now()
        self.session.add(team)
        await self.session.flush()
        log.info("team.updated", team_id=str(team_id))
        return team

    async def delete(self, team_id: uuid.UUID) -> None:
        """Delete a team; members, invites and team workspaces cascade."""
        result = await self.session.execute(delete(Team).where(Team.id == team_id))
        if result.rowcount == 0:
            raise ServiceError(ErrorKind.NOT_FOUND, "team not found")
        log.info("team.deleted", team_id=str(team_id))

    async def is_owner(self, team_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            select(exists().where(Team.id == team_id, Team.owner_id == user_id))
        )
        return bool(result.scalar())

    async def is_member(self, team_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            select(
                exists().where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
            )
        )
        return bool(result.scalar())

    async def get_member_role(self, team_id: uuid.UUID, user_id: uuid.UUID) -> Optional[str]:
        result = await self.session.execute(
            select(TeamMember.role).where(
                TeamMember.team_id == team_id, TeamMember.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    # -----------------------------------------------------------------------
    # Members
    # -----------------------------------------------------------------------

    async def list_members(self, team_id: uuid.UUID) -> list[tuple[TeamMember, User]]:
        result = await self.session.execute(
            select(TeamMember, User)
            .join(User, User.id == TeamMember.user_id)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.created_at)
        )
        return [(member, user) for member, user in result.all()]

    async def add_member(
        self, team_id: uuid.UUID, user_id: uuid.UUID, role: str = ROLE_MEMBER
    ) -> None:
        """Add a member; a no-op if the user already belongs to the team."""
        now = self.now()
        await self.session.execute(
            insert_ignore(self.session, TeamMember).values(
                id=uuid.uuid4(),
                team_id=team_id,
                user_id=user_id,
                role=role,
                created_at=now,
                updated_at=now,
            )
        )

    async def remove_member(self, team_id: uuid.UUID, user_id: uuid.UUID) -> None:
        role = await self.get_member_role(team_id, user_id)
        if role is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "member not found")
        if role == ROLE_OWNER:
            raise ServiceError(ErrorKind.CANNOT_REMOVE_OWNER, "cannot remove the team owner")
        await self.session.execute(
            delete(TeamMember).where(
                TeamMember.team_id == team_id, TeamMember.user_id == user_id
            )
        )
        log.info("team.member_removed", team_id=str(team_id), user_id=str(user_id))

    # -----------------------------------------------------------------------
    # Invites
    # -----------------------------------------------------------------------

    async def create_invite(
        self, team_id: uuid.UUID, inviter_id: uuid.UUID, invitee_id: uuid.UUID
    ) -> TeamInvite:
        if await self.is_member(team_id, invitee_id):
            raise ServiceError(ErrorKind.ALREADY_MEMBER, "user is already a team member")

        now = self.now()
        await self.session.execute(
            upsert(
                self.session,
                TeamInvite,
                values={
                    "id": uuid.uuid4(),
                    "team_id": team_id,
                    "inviter_id": inviter_id,
                    "invitee_id": invitee_id,
                    "status": INVITE_PENDING,
                    "created_at": now,
                    "updated_at": now,
                },
                index_elements=["team_id", "invitee_id"],
                update={"inviter_id": inviter_id, "status": INVITE_PENDING, "updated_at": now},
            )
        )
        result = await self.session.execute(
            select(TeamInvite)
            .where(TeamInvite.team_id == team_id, TeamInvite.invitee_id == invitee_id)
            .execution_options(populate_existing=True)
        )
        invite = result.scalar_one()
        log.info(
            "team.invite_created",
            invite_id=str(invite.id),
            team_id=str(team_id),
            invitee_id=str(invitee_id),
        )
        return invite

    async def get_invite(self, invite_id: uuid.UUID) -> TeamInvite:
        invite = await self.session.get(TeamInvite, invite_id)
        if invite is None:
            raise ServiceError(ErrorKind.INVITE_NOT_FOUND, "invite not found")
        return invite

    async def list_user_pending_invites(
        self, user_id: uuid.UUID
    ) -> list[tuple[TeamInvite, Team, User]]:
        """Pending invites addressed to the user, with team and inviter."""
        inviter = aliased(User)
        result = await self.session.execute(
            select(TeamInvite, Team, inviter)
            .join(Team, Team.id == TeamInvite.team_id)
            .join(inviter, inviter.id == TeamInvite.inviter_id)
            .where(TeamInvite.invitee_id == user_id, TeamInvite.status == INVITE_PENDING)
            .order_by(TeamInvite.created_at.desc())
        )
        return [tuple(row) for row in result.all()]

    async def list_team_pending_invites(
        self, team_id: uuid.UUID
    ) -> list[tuple[TeamInvite, User]]:
        """Pending invites for a team, with the invitee."""
        invitee = aliased(User)
        result = await self.session.execute(
            select(TeamInvite, invitee)
            .join(invitee, invitee.id == TeamInvite.invitee_id)
            .where(TeamInvite.team_id == team_id, TeamInvite.status == INVITE_PENDING)
            .order_by(TeamInvite.created_at.desc())
        )
        return [tuple(row) for row in result.all()]

    async def accept_invite(self, invite_id: uuid.UUID, user_id: uuid.UUID) -> TeamInvite:
        """Accept a pending invite and join the team in one transaction."""
        async with self.session.begin_nested():
            result = await self.session.execute(
                select(TeamInvite)
                .where(TeamInvite.id == invite_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            invite = result.scalar_one_or_none()
            if (
                invite is None
                or invite.invitee_id != user_id
                or invite.status != INVITE_PENDING
            ):
                raise ServiceError(ErrorKind.INVITE_NOT_FOUND, "invite not found")

            invite.status = INVITE_ACCEPTED
            invite.updated_at = self.now()
            self.session.add(invite)
            await self.session.flush()
            await self.add_member(invite.team_id, user_id)

        log.info("team.invite_accepted", invite_id=str(invite_id), team_id=str(invite.team_id))
        return invite

    async def decline_invite(self, invite_id: uuid.UUID, user_id: uuid.UUID) -> None:
        result = await self.session.execute(
            update(TeamInvite)
            .where(
                TeamInvite.id == invite_id,
                TeamInvite.invitee_id == user_id,
                TeamInvite.status == INVITE_PENDING,
            )
            .values(status=INVITE_DECLINED, updated_at=self.now())
        )
        if result.rowcount == 0:
            raise ServiceError(ErrorKind.INVITE_NOT_FOUND, "invite not found")
        log.info("team.invite_declined", invite_id=str(invite_id))

    async def cancel_invite(self, invite_id: uuid.UUID, team_id: uuid.UUID) -> None:
        result = await self.session.execute(
            delete(TeamInvite).where(
                TeamInvite.id == invite_id,
                TeamInvite.team_id == team_id,
                TeamInvite.status == INVITE_PENDING,
            )
        )
        if result.rowcount == 0:
            raise ServiceError(ErrorKind.INVITE_NOT_FOUND, "invite not found")
        log.info("team.invite_cancelled", invite_id=str(invite_id), team_id=str(team_id))
