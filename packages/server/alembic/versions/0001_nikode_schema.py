"""Nikode schema: users, teams, workspaces, collections, vaults, keys, tokens, templates.

Revision ID: 0001_nikode_schema
Revises:
Create Date: 2026-10-16 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_nikode_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def _fk(column: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        column,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # users
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("provider", sa.Text(), nullable=False),
        sa.Column("provider_id", sa.Text(), nullable=False),
        sa.Column("global_role", sa.Text(), nullable=False, server_default="user"),
        *_timestamps(),
        sa.UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
        sa.CheckConstraint("global_role IN ('user', 'super_admin')", name="users_global_role_check"),
    )

    # teams
    op.create_table(
        "teams",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        _fk("owner_id", "users.id"),
        *_timestamps(),
    )
    op.create_index("ix_teams_owner_id", "teams", ["owner_id"])

    op.create_table(
        "team_members",
        _id(),
        _fk("team_id", "teams.id"),
        _fk("user_id", "users.id"),
        sa.Column("role", sa.Text(), nullable=False, server_default="member"),
        *_timestamps(),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
        sa.CheckConstraint("role IN ('owner', 'member')", name="team_members_role_check"),
    )
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])

    op.create_table(
        "team_invites",
        _id(),
        _fk("team_id", "teams.id"),
        _fk("inviter_id", "users.id"),
        _fk("invitee_id", "users.id"),
        sa.Column("status", sa.Text(), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.UniqueConstraint("team_id", "invitee_id", name="uq_team_invites_team_invitee"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined')", name="team_invites_status_check"
        ),
    )
    op.create_index("ix_team_invites_invitee_id", "team_invites", ["invitee_id"])

    # workspaces: personal (user_id) xor team-owned (team_id)
    op.create_table(
        "workspaces",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        _fk("user_id", "users.id", nullable=True),
        _fk("team_id", "teams.id", nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(user_id IS NOT NULL AND team_id IS NULL) OR (user_id IS NULL AND team_id IS NOT NULL)",
            name="workspace_owner_check",
        ),
    )
    op.create_index("ix_workspaces_user_id", "workspaces", ["user_id"])
    op.create_index("ix_workspaces_team_id", "workspaces", ["team_id"])

    # collections
    op.create_table(
        "collections",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        _fk("updated_by", "users.id", nullable=True, ondelete="SET NULL"),
        *_timestamps(),
        sa.CheckConstraint("version >= 1", name="collections_version_check"),
    )
    op.create_index("ix_collections_workspace_id", "collections", ["workspace_id"])

    # vaults
    op.create_table(
        "workspace_vaults",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("salt", sa.Text(), nullable=False),
        sa.Column("verification", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("workspace_id", name="uq_workspace_vaults_workspace"),
    )

    op.create_table(
        "vault_items",
        _id(),
        _fk("vault_id", "workspace_vaults.id"),
        sa.Column("data", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_vault_items_vault_id", "vault_items", ["vault_id"])

    # credentials
    op.create_table(
        "workspace_api_keys",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("key_hash", sa.Text(), nullable=False, unique=True),
        sa.Column("key_prefix", sa.Text(), nullable=False),
        _fk("created_by", "users.id"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_workspace_api_keys_workspace_id", "workspace_api_keys", ["workspace_id"])

    op.create_table(
        "refresh_tokens",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("token_hash", sa.Text(), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])
    op.create_index("ix_refresh_tokens_expires_at", "refresh_tokens", ["expires_at"])

    # templates
    op.create_table(
        "public_templates",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default="{}"),
        *_timestamps(),
    )
    op.create_index("ix_public_templates_name", "public_templates", ["name"])


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in (
        "public_templates",
        "refresh_tokens",
        "workspace_api_keys",
        "vault_items",
        "workspace_vaults",
        "collections",
        "workspaces",
        "team_invites",
        "team_members",
        "teams",
        "users",
    ):
        op.drop_table(table)
