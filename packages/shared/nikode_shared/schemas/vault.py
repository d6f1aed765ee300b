"""Vault schemas. Payloads are client-side ciphertext."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, UUID4


class VaultCreateRequest(BaseModel):
    salt: str = Field(min_length=1)
    verification: str = Field(min_length=1)


class VaultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    workspace_id: UUID4
    salt: str
    verification: str
    created_at: datetime


class VaultItemRequest(BaseModel):
    data: str = Field(min_length=1)


class VaultItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    vault_id: UUID4
    data: str
    created_at: datetime
    updated_at: datetime


class VaultItemListResponse(BaseModel):
    data: List[VaultItemResponse]
