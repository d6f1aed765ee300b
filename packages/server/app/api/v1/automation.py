"""
Automation endpoints for CI pipelines holding a workspace API key.

PUT /api/v1/automation/collections - Create or overwrite a collection from an OpenAPI document

The document arrives either as JSON ``{"spec": ..., "name", "collection_id",
"resolution"}`` where ``spec`` is an object or JSON/YAML text, or as a raw
YAML body (``application/yaml``) with the other fields as query parameters.

An existing collection is matched by ``collection_id`` first, then by name.
On a match, ``resolution`` decides: ``force`` overwrites (200), ``clone``
creates "<name> (copy)" (201), ``fail`` returns 409.
"""

from __future__ import annotations

import json

import structlog
from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_api_key_principal, get_collection_service
from app.core.auth import Principal
from app.core.database import get_session
from app.core.errors import ErrorKind, ServiceError
from app.core.events import EventBroadcaster, get_broadcaster
from app.models.collection import Collection
from app.services import openapi
from app.services.collections import CollectionService
from nikode_shared.schemas.collections import CollectionUpsertRequest, CollectionUpsertResponse
from nikode_shared.schemas.common import ConflictResolution

router = APIRouter()
log = structlog.get_logger()

YAML_CONTENT_TYPES = ("application/yaml", "text/yaml", "application/x-yaml")
QUERY_FIELDS = ("name", "collection_id", "resolution")


async def _read_request(request: Request) -> CollectionUpsertRequest:
    content_type = request.headers.get("content-type", "")
    raw = await request.body()

    if any(kind in content_type for kind in YAML_CONTENT_TYPES):
        # The body is the document; metadata comes from the query string.
        payload = {
            field: request.query_params[field]
            for field in QUERY_FIELDS
            if request.query_params.get(field)
        }
        payload["spec"] = raw
    else:
        try:
            payload = json.loads(raw) if raw else None
        except ValueError:
            raise ServiceError(ErrorKind.BAD_REQUEST, "invalid request body")
        if not isinstance(payload, dict):
            raise ServiceError(ErrorKind.BAD_REQUEST, "invalid request body")
        if not payload.get("resolution"):
            payload.pop("resolution", None)

    try:
        body = CollectionUpsertRequest.model_validate(payload)
    except ValidationError as exc:
        fields = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        if "resolution" in fields:
            raise ServiceError(
                ErrorKind.BAD_REQUEST, "resolution must be one of: force, clone, fail"
            )
        raise ServiceError(ErrorKind.BAD_REQUEST, "invalid request body", fields=fields)

    if body.spec is None or body.spec in ("", b""):
        raise ServiceError(ErrorKind.BAD_REQUEST, "spec is required")
    return body


async def _find_existing(
    collections: CollectionService, principal: Principal, body: CollectionUpsertRequest
) -> Collection | None:
    if body.collection_id is not None:
        collection = await collections.get_by_id(body.collection_id)
        if collection.workspace_id != principal.workspace_id:
            raise ServiceError(ErrorKind.NOT_FOUND, "collection not found")
        return collection
    if not (body.name or "").strip():
        raise ServiceError(ErrorKind.BAD_REQUEST, "name or collection_id is required")
    return await collections.get_by_workspace_and_name(principal.workspace_id, body.name)


@router.put("/collections", response_model=CollectionUpsertResponse)
async def upsert_collection(
    request: Request,
    response: Response,
    principal: Principal = Depends(get_api_key_principal),
    collections: CollectionService = Depends(get_collection_service),
    session: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    body = await _read_request(request)
    data = openapi.convert_to_collection(openapi.parse_spec(body.spec))

    workspace_id = principal.workspace_id
    existing = await _find_existing(collections, principal, body)
    name = (body.name or "").strip()
    if not name and existing is not None:
        name = existing.name

    if existing is None:
        if not name:
            raise ServiceError(ErrorKind.BAD_REQUEST, "name is required when creating a new collection")
        collection = await collections.create(workspace_id, name, data, None)
        created = True
    elif body.resolution == ConflictResolution.FAIL:
        raise ServiceError(
            ErrorKind.ALREADY_EXISTS,
            f'collection "{existing.name}" already exists, use resolution=force or resolution=clone',
        )
    elif body.resolution == ConflictResolution.CLONE:
        collection = await collections.create(workspace_id, f"{name} (copy)", data, None)
        created = True
    else:
        collection = await collections.force_update(existing.id, name, data)
        created = False

    await session.commit()
    if created:
        broadcaster.collection_created(
            workspace_id, collection.id, collection.name, collection.version, None
        )
    else:
        broadcaster.collection_updated(
            workspace_id, collection.id, collection.name, collection.version, None
        )
    log.info(
        "automation.collection_upserted",
        workspace_id=str(workspace_id),
        collection_id=str(collection.id),
        resolution=body.resolution.value,
        created=created,
    )

    response.status_code = 201 if created else 200
    return CollectionUpsertResponse(
        id=collection.id,
        workspace_id=collection.workspace_id,
        name=collection.name,
        version=collection.version,
        created=created,
    )
