"""
Collection endpoints (workspace-scoped).

GET    /api/v1/workspaces/{workspaceId}/collections                   - List
POST   /api/v1/workspaces/{workspaceId}/collections                   - Create
GET    /api/v1/workspaces/{workspaceId}/collections/{collectionId}    - Get
PATCH  /api/v1/workspaces/{workspaceId}/collections/{collectionId}    - Update (expected_version)
DELETE /api/v1/workspaces/{workspaceId}/collections/{collectionId}    - Delete (modify rights)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_collection_service, get_principal, get_workspace_service
from app.core.auth import Principal
from app.core.database import get_session
from app.core.errors import ErrorKind, ServiceError
from app.core.events import EventBroadcaster, get_broadcaster
from app.models.collection import Collection
from app.services.collections import CollectionService
from app.services.workspaces import WorkspaceService
from nikode_shared.schemas.collections import (
    CollectionCreateRequest,
    CollectionListResponse,
    CollectionResponse,
    CollectionUpdateRequest,
)
from nikode_shared.schemas.common import ErrorResponse

router = APIRouter()


async def _load(
    collections: CollectionService, workspace_id: uuid.UUID, collection_id: uuid.UUID
) -> Collection:
    collection = await collections.get_by_id(collection_id)
    if collection.workspace_id != workspace_id:
        raise ServiceError(ErrorKind.NOT_FOUND, "collection not found")
    return collection


@router.get("", response_model=CollectionListResponse)
async def list_collections(
    workspaceId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    collections: CollectionService = Depends(get_collection_service),
):
    await workspaces.get_accessible(workspaceId, principal)
    items = await collections.get_by_workspace(workspaceId)
    return CollectionListResponse(data=[CollectionResponse.model_validate(c) for c in items])


@router.post("", response_model=CollectionResponse, status_code=201)
async def create_collection(
    workspaceId: uuid.UUID,
    body: CollectionCreateRequest,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    collections: CollectionService = Depends(get_collection_service),
    session: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await workspaces.get_accessible(workspaceId, principal)
    collection = await collections.create(workspaceId, body.name, body.data, principal.user_id)
    await session.commit()
    broadcaster.collection_created(
        workspaceId, collection.id, collection.name, collection.version, principal.user_id
    )
    return CollectionResponse.model_validate(collection)


@router.get("/{collectionId}", response_model=CollectionResponse)
async def get_collection(
    workspaceId: uuid.UUID,
    collectionId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    collections: CollectionService = Depends(get_collection_service),
):
    await workspaces.get_accessible(workspaceId, principal)
    collection = await _load(collections, workspaceId, collectionId)
    return CollectionResponse.model_validate(collection)


@router.patch(
    "/{collectionId}",
    response_model=CollectionResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_collection(
    workspaceId: uuid.UUID,
    collectionId: uuid.UUID,
    body: CollectionUpdateRequest,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    collections: CollectionService = Depends(get_collection_service),
    session: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """Partial update. A stale expected_version yields 409 with current_version."""
    await workspaces.get_accessible(workspaceId, principal)
    await _load(collections, workspaceId, collectionId)
    collection = await collections.update(
        collectionId,
        name=body.name,
        data=body.data,
        expected_version=body.expected_version,
        user_id=principal.user_id,
    )
    await session.commit()
    broadcaster.collection_updated(
        workspaceId, collection.id, collection.name, collection.version, principal.user_id
    )
    return CollectionResponse.model_validate(collection)


@router.delete("/{collectionId}", status_code=204)
async def delete_collection(
    workspaceId: uuid.UUID,
    collectionId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    collections: CollectionService = Depends(get_collection_service),
    session: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await workspaces.get_modifiable(workspaceId, principal)
    await _load(collections, workspaceId, collectionId)
    await collections.delete(collectionId)
    await session.commit()
    broadcaster.collection_deleted(workspaceId, collectionId, principal.user_id)
