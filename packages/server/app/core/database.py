"""
Database connection and session management.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings

settings = get_settings()

UNIQUE_VIOLATION = "23505"

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ---------------------------------------------------------------------------
# Dialect helpers
# ---------------------------------------------------------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps read back from the store as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def insert_ignore(session: AsyncSession, model: Any):
    """INSERT ... ON CONFLICT DO NOTHING for the session's dialect."""
    if session.bind.dialect.name == "sqlite":
        return sqlite.insert(model).on_conflict_do_nothing()
    return postgresql.insert(model).on_conflict_do_nothing()


def upsert(session: AsyncSession, model: Any, values: dict, index_elements: list[str], update: dict):
    """INSERT ... ON CONFLICT (index_elements) DO UPDATE SET update."""
    dialect = sqlite if session.bind.dialect.name == "sqlite" else postgresql
    return (
        dialect.insert(model)
        .values(**values)
        .on_conflict_do_update(index_elements=index_elements, set_=update)
    )


def is_unique_violation(exc: DBAPIError) -> bool:
    """Recognise a unique-constraint violation from the driver error."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == UNIQUE_VIOLATION:
        return True
    return isinstance(exc, IntegrityError) and "UNIQUE constraint failed" in str(orig)
