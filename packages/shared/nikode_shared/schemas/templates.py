from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, UUID4


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    data: Any
    created_at: datetime


class TemplateListResponse(BaseModel):
    data: List[TemplateResponse]
