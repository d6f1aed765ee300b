"""
Workspace event broadcasting over Redis Pub/Sub.

Engines call the broadcaster after a mutation has been written; delivery to
connected clients is the hub's job. Publishing is fire-and-forget: a Redis
failure is logged and never reaches the request.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import structlog
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.core.redis import get_redis

log = structlog.get_logger()
settings = get_settings()


class EventType(str, Enum):
    COLLECTION_CREATED = "collection_created"
    COLLECTION_UPDATED = "collection_updated"
    COLLECTION_DELETED = "collection_deleted"
    WORKSPACE_UPDATED = "workspace_updated"
    MEMBER_JOINED = "member_joined"
    MEMBER_LEFT = "member_left"


def build_event(
    event_type: EventType, workspace_id: Optional[uuid.UUID], data: dict[str, Any]
) -> dict[str, Any]:
    return {
        "type": event_type.value,
        "workspace_id": str(workspace_id) if workspace_id else None,
        "data": data,
    }


class EventBroadcaster:
    """Publishes workspace events to the hub channel."""

    def __init__(
        self,
        redis_getter: Callable[[], Awaitable[Any]] = get_redis,
        channel: str | None = None,
    ):
        self._get_redis = redis_getter
        self.channel = channel or settings.events_channel
        self._pending: set[asyncio.Task] = set()

    async def publish(self, event: dict[str, Any]) -> None:
        try:
            redis = await self._get_redis()
            await redis.publish(self.channel, json.dumps(event, default=str))
        except (RedisError, OSError) as exc:
            log.warning("broadcast.failed", event_type=event.get("type"), error=str(exc))

    def broadcast(
        self,
        event_type: EventType,
        workspace_id: Optional[uuid.UUID],
        **data: Any,
    ) -> None:
        """Schedule a publish without waiting for it."""
        event = build_event(event_type, workspace_id, data)
        task = asyncio.get_running_loop().create_task(self.publish(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # -----------------------------------------------------------------------
    # Convenience emitters
    # -----------------------------------------------------------------------

    def collection_created(self, workspace_id, collection_id, name, version, created_by) -> None:
        self.broadcast(
            EventType.COLLECTION_CREATED,
            workspace_id,
            collection_id=str(collection_id),
            name=name,
            version=version,
            created_by=str(created_by) if created_by else None,
        )

    def collection_updated(self, workspace_id, collection_id, name, version, updated_by) -> None:
        self.broadcast(
            EventType.COLLECTION_UPDATED,
            workspace_id,
            collection_id=str(collection_id),
            name=name,
            version=version,
            updated_by=str(updated_by) if updated_by else None,
        )

    def collection_deleted(self, workspace_id, collection_id, deleted_by) -> None:
        self.broadcast(
            EventType.COLLECTION_DELETED,
            workspace_id,
            collection_id=str(collection_id),
            deleted_by=str(deleted_by) if deleted_by else None,
        )

    def workspace_updated(self, workspace_id, name, updated_by) -> None:
        self.broadcast(
            EventType.WORKSPACE_UPDATED,
            workspace_id,
            name=name,
            updated_by=str(updated_by) if updated_by else None,
        )

    def member_joined(self, workspace_id, user_id, user_name, avatar_url=None) -> None:
        self.broadcast(
            EventType.MEMBER_JOINED,
            workspace_id,
            user_id=str(user_id),
            user_name=user_name,
            user_avatar_url=avatar_url,
        )

    def member_left(self, workspace_id, user_id) -> None:
        self.broadcast(EventType.MEMBER_LEFT, workspace_id, user_id=str(user_id))


_broadcaster: EventBroadcaster | None = None


def get_broadcaster() -> EventBroadcaster:
    """FastAPI dependency: the process-wide broadcaster."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = EventBroadcaster()
    return _broadcaster
