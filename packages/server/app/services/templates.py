"""
Public template catalog service.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import utcnow
from app.core.errors import ErrorKind, ServiceError
from app.models.template import PublicTemplate

log = structlog.get_logger()
settings = get_settings()


def clamp_limit(limit: int) -> int:
    if limit <= 0 or limit > settings.template_search_max_limit:
        return settings.template_search_default_limit
    return limit


class TemplateService:
    def __init__(self, session: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.now = now

    async def search(self, query: str = "", limit: int = 0) -> list[PublicTemplate]:
        """Case-insensitive substring match on name, ordered by name."""
        stmt = select(PublicTemplate)
        if query:
            stmt = stmt.where(PublicTemplate.name.ilike(f"%{query}%"))
        result = await self.session.execute(
            stmt.order_by(PublicTemplate.name).limit(clamp_limit(limit))
        )
        return list(result.scalars().all())

    async def get_by_id(self, template_id: uuid.UUID) -> PublicTemplate:
        template = await self.session.get(PublicTemplate, template_id)
        if template is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "template not found")
        return template

    async def create(
        self,
        name: str,
        data: Any,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> PublicTemplate:
        now = self.now()
        template = PublicTemplate(
            name=name,
            description=description,
            category=category,
            data=data,
            created_at=now,
            updated_at=now,
        )
        self.session.add(template)
        await self.session.flush()
        log.info("template.created", template_id=str(template.id), name=name)
        return template

    async def delete(self, template_id: uuid.UUID) -> None:
        result = await self.session.execute(
            delete(PublicTemplate).where(PublicTemplate.id == template_id)
        )
        if result.rowcount == 0:
            raise ServiceError(ErrorKind.NOT_FOUND, "template not found")
