"""
Public template catalog.

GET /api/v1/templates?q=&limit=    - Search by name
GET /api/v1/templates/{templateId} - Get one
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_principal, get_template_service
from app.core.auth import Principal
from app.services.templates import TemplateService
from nikode_shared.schemas.templates import TemplateListResponse, TemplateResponse

router = APIRouter()


@router.get("", response_model=TemplateListResponse)
async def search_templates(
    q: str = Query(default=""),
    limit: int = Query(default=0),
    principal: Principal = Depends(get_principal),
    templates: TemplateService = Depends(get_template_service),
):
    items = await templates.search(q.strip(), limit)
    return TemplateListResponse(data=[TemplateResponse.model_validate(t) for t in items])


@router.get("/{templateId}", response_model=TemplateResponse)
async def get_template(
    templateId: uuid.UUID,
    principal: Principal = Depends(get_principal),
    templates: TemplateService = Depends(get_template_service),
):
    return TemplateResponse.model_validate(await templates.get_by_id(templateId))
