"""
Workspace endpoints.

GET    /api/v1/workspaces                 - List workspaces visible to the caller
POST   /api/v1/workspaces                 - Create a personal or team workspace
GET    /api/v1/workspaces/{workspaceId}   - Get a workspace
PATCH  /api/v1/workspaces/{workspaceId}   - Rename (modify rights)
DELETE /api/v1/workspaces/{workspaceId}   - Delete (modify rights)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_principal, get_user_principal, get_workspace_service
from app.core.auth import Principal
from app.core.database import get_session
from app.core.events import EventBroadcaster, get_broadcaster
from app.services.workspaces import WorkspaceService
from nikode_shared.schemas.workspaces import (
    WorkspaceCreateRequest,
    WorkspaceListResponse,
    WorkspaceResponse,
    WorkspaceUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=WorkspaceListResponse)
async def list_workspaces(
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
):
    """Personal and team workspaces of the user, or the API key's own workspace."""
    if principal.is_api_key:
        items = [await workspaces.get_by_id(principal.workspace_id)]
    else:
        items = await workspaces.list_for_user(principal.user_id)
    return WorkspaceListResponse(data=[WorkspaceResponse.model_validate(w) for w in items])


@router.post("", response_model=WorkspaceResponse, status_code=201)
async def create_workspace(
    body: WorkspaceCreateRequest,
    principal: Principal = Depends(get_user_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
):
    workspace = await workspaces.create(body.name, principal.user_id, team_id=body.team_id)
    return WorkspaceResponse.model_validate(workspace)


@router.get("/{workspaceId}", response_model=WorkspaceResponse)
async def get_workspace(
    workspaceId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
):
    workspace = await workspaces.get_accessible(workspaceId, principal)
    return WorkspaceResponse.model_validate(workspace)


@router.patch("/{workspaceId}", response_model=WorkspaceResponse)
async def update_workspace(
    workspaceId: uuid.UUID,
    body: WorkspaceUpdateRequest,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    session: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await workspaces.get_modifiable(workspaceId, principal)
    workspace = await workspaces.update(workspaceId, body.name)
    await session.commit()
    broadcaster.workspace_updated(workspace.id, workspace.name, principal.user_id)
    return WorkspaceResponse.model_validate(workspace)


@router.delete("/{workspaceId}", status_code=204)
async def delete_workspace(
    workspaceId: uuid.UUID,
    principal: Principal = Depends(get_user_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
):
    await workspaces.get_modifiable(workspaceId, principal)
    await workspaces.delete(workspaceId)
