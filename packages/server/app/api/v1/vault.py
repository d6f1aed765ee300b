"""
Workspace vault endpoints. Payloads are opaque client-side ciphertext.

POST   /api/v1/workspaces/{workspaceId}/vault                    - Create (modify rights)
GET    /api/v1/workspaces/{workspaceId}/vault                    - Get
DELETE /api/v1/workspaces/{workspaceId}/vault                    - Delete (modify rights)
GET    /api/v1/workspaces/{workspaceId}/vault/items              - List items
POST   /api/v1/workspaces/{workspaceId}/vault/items              - Create item
PATCH  /api/v1/workspaces/{workspaceId}/vault/items/{itemId}     - Update item
DELETE /api/v1/workspaces/{workspaceId}/vault/items/{itemId}     - Delete item
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from app.api.deps import get_principal, get_vault_service, get_workspace_service
from app.core.auth import Principal
from app.services.vault import VaultService
from app.services.workspaces import WorkspaceService
from nikode_shared.schemas.vault import (
    VaultCreateRequest,
    VaultItemListResponse,
    VaultItemRequest,
    VaultItemResponse,
    VaultResponse,
)

router = APIRouter()


@router.post("", response_model=VaultResponse, status_code=201)
async def create_vault(
    workspaceId: uuid.UUID,
    body: VaultCreateRequest,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    vaults: VaultService = Depends(get_vault_service),
):
    await workspaces.get_modifiable(workspaceId, principal)
    vault = await vaults.create(workspaceId, body.salt, body.verification)
    return VaultResponse.model_validate(vault)


@router.get("", response_model=VaultResponse)
async def get_vault(
    workspaceId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    vaults: VaultService = Depends(get_vault_service),
):
    await workspaces.get_accessible(workspaceId, principal)
    return VaultResponse.model_validate(await vaults.get_by_workspace(workspaceId))


@router.delete("", status_code=204)
async def delete_vault(
    workspaceId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    vaults: VaultService = Depends(get_vault_service),
):
    await workspaces.get_modifiable(workspaceId, principal)
    await vaults.delete(workspaceId)


@router.get("/items", response_model=VaultItemListResponse)
async def list_items(
    workspaceId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    vaults: VaultService = Depends(get_vault_service),
):
    await workspaces.get_accessible(workspaceId, principal)
    vault = await vaults.get_by_workspace(workspaceId)
    items = await vaults.list_items(vault.id)
    return VaultItemListResponse(data=[VaultItemResponse.model_validate(i) for i in items])


@router.post("/items", response_model=VaultItemResponse, status_code=201)
async def create_item(
    workspaceId: uuid.UUID,
    body: VaultItemRequest,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    vaults: VaultService = Depends(get_vault_service),
):
    await workspaces.get_accessible(workspaceId, principal)
    vault = await vaults.get_by_workspace(workspaceId)
    return VaultItemResponse.model_validate(await vaults.create_item(vault.id, body.data))


@router.patch("/items/{itemId}", response_model=VaultItemResponse)
async def update_item(
    workspaceId: uuid.UUID,
    itemId: uuid.UUID,
    body: VaultItemRequest,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    vaults: VaultService = Depends(get_vault_service),
):
    await workspaces.get_accessible(workspaceId, principal)
    vault = await vaults.get_by_workspace(workspaceId)
    return VaultItemResponse.model_validate(await vaults.update_item(vault.id, itemId, body.data))


@router.delete("/items/{itemId}", status_code=204)
async def delete_item(
    workspaceId: uuid.UUID,
    itemId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    vaults: VaultService = Depends(get_vault_service),
):
    await workspaces.get_accessible(workspaceId, principal)
    vault = await vaults.get_by_workspace(workspaceId)
    await vaults.delete_item(vault.id, itemId)
