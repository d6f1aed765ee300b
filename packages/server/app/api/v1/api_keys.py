"""
Workspace API key endpoints. The plain key is returned once, on creation.

POST   /api/v1/workspaces/{workspaceId}/api-keys           - Create
GET    /api/v1/workspaces/{workspaceId}/api-keys           - List unrevoked keys
DELETE /api/v1/workspaces/{workspaceId}/api-keys/{keyId}   - Revoke
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from app.api.deps import get_api_key_service, get_user_principal, get_workspace_service
from app.core.auth import Principal
from app.services.api_keys import ApiKeyService
from app.services.workspaces import WorkspaceService
from nikode_shared.schemas.api_keys import (
    ApiKeyCreatedResponse,
    ApiKeyCreateRequest,
    ApiKeyListResponse,
    ApiKeyResponse,
)

router = APIRouter()


@router.post("", response_model=ApiKeyCreatedResponse, status_code=201)
async def create_api_key(
    workspaceId: uuid.UUID,
    body: ApiKeyCreateRequest,
    principal: Principal = Depends(get_user_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    api_keys: ApiKeyService = Depends(get_api_key_service),
):
    await workspaces.get_modifiable(workspaceId, principal)
    api_key, plain_key = await api_keys.create(
        workspaceId, body.name, principal.user_id, expires_at=body.expires_at
    )
    return ApiKeyCreatedResponse(
        **ApiKeyResponse.model_validate(api_key).model_dump(), key=plain_key
    )


@router.get("", response_model=ApiKeyListResponse)
async def list_api_keys(
    workspaceId: uuid.UUID,
    principal: Principal = Depends(get_user_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    api_keys: ApiKeyService = Depends(get_api_key_service),
):
    await workspaces.get_modifiable(workspaceId, principal)
    items = await api_keys.list_for_workspace(workspaceId)
    return ApiKeyListResponse(data=[ApiKeyResponse.model_validate(k) for k in items])


@router.delete("/{keyId}", status_code=204)
async def revoke_api_key(
    workspaceId: uuid.UUID,
    keyId: uuid.UUID,
    principal: Principal = Depends(get_user_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    api_keys: ApiKeyService = Depends(get_api_key_service),
):
    await workspaces.get_modifiable(workspaceId, principal)
    await api_keys.revoke(keyId, workspaceId)
