"""Collection schemas (optimistic concurrency on update)."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, UUID4

from .common import ConflictResolution


class CollectionCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    data: Optional[Any] = None


class CollectionUpdateRequest(BaseModel):
    """Partial update gated by the version the client last read."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    data: Optional[Any] = None
    expected_version: int = Field(
        ge=1, validation_alias=AliasChoices("expected_version", "version")
    )


class CollectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    workspace_id: UUID4
    name: str
    data: Any
    version: int
    updated_by: Optional[UUID4] = None


class CollectionListResponse(BaseModel):
    data: List[CollectionResponse]


class CollectionUpsertRequest(BaseModel):
    """Automation upsert from an OpenAPI document.

    ``spec`` is the document as a JSON object, or JSON/YAML text. An existing
    collection is matched by ``collection_id``, else by ``name``.
    """
    name: Optional[str] = None
    collection_id: Optional[UUID4] = None
    resolution: ConflictResolution = ConflictResolution.FORCE
    spec: Any = None


class CollectionUpsertResponse(BaseModel):
    id: UUID4
    workspace_id: UUID4
    name: str
    version: int
    created: bool
