"""
ARQ background task: purge expired credentials.

Deletes expired API keys, keys revoked longer than the retention window, and
expired refresh tokens. Scheduled to run periodically (e.g., every hour).
"""

from __future__ import annotations

import structlog

from app.core.database import get_session_context
from app.services.api_keys import ApiKeyService
from app.services.tokens import TokenService

log = structlog.get_logger()


async def cleanup_expired_credentials(ctx: dict) -> dict[str, int]:
    """Returns the number of rows removed per credential kind."""
    async with get_session_context() as session:
        api_keys = await ApiKeyService(session).cleanup_expired()
        refresh_tokens = await TokenService(session).cleanup_expired()

    if api_keys or refresh_tokens:
        log.info("cleanup.credentials_purged", api_keys=api_keys, refresh_tokens=refresh_tokens)
    return {"api_keys": api_keys, "refresh_tokens": refresh_tokens}


# ARQ worker settings
class WorkerSettings:
    """ARQ worker configuration."""

    functions = [cleanup_expired_credentials]
    cron_jobs = [
        {
            "coroutine": cleanup_expired_credentials,
            "hour": None,  # every hour
            "minute": 15,
        },
    ]
