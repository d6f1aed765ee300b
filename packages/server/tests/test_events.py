"""
Tests for workspace event broadcasting.
"""

from __future__ import annotations

import json
import uuid
from unittest.mock import AsyncMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.events import EventBroadcaster, EventType, build_event


def _broadcaster(redis) -> EventBroadcaster:
    return EventBroadcaster(redis_getter=AsyncMock(return_value=redis), channel="test:events")


class TestBuildEvent:
    def test_shape(self):
        ws = uuid.uuid4()
        event = build_event(EventType.COLLECTION_UPDATED, ws, {"version": 2})
        assert event == {"type": "collection_updated", "workspace_id": str(ws), "data": {"version": 2}}


class TestBroadcaster:
    async def test_publishes_json_to_channel(self):
        redis = AsyncMock()
        broadcaster = _broadcaster(redis)
        ws, cid, uid = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

        broadcaster.collection_updated(ws, cid, "Smoke", 3, uid)
        await broadcaster.drain()

        channel, payload = redis.publish.call_args.args
        assert channel == "test:events"
        event = json.loads(payload)
        assert event["type"] == "collection_updated"
        assert event["workspace_id"] == str(ws)
        assert event["data"] == {
            "collection_id": str(cid),
            "name": "Smoke",
            "version": 3,
            "updated_by": str(uid),
        }

    async def test_member_events(self):
        redis = AsyncMock()
        broadcaster = _broadcaster(redis)
        ws, uid = uuid.uuid4(), uuid.uuid4()

        broadcaster.member_joined(ws, uid, "Ada", None)
        broadcaster.member_left(ws, uid)
        await broadcaster.drain()

        types = [json.loads(call.args[1])["type"] for call in redis.publish.call_args_list]
        assert sorted(types) == ["member_joined", "member_left"]

    async def test_failure_is_logged_not_raised(self):
        redis = AsyncMock()
        redis.publish.side_effect = RedisConnectionError("connection refused")
        broadcaster = _broadcaster(redis)

        with patch("app.core.events.log") as log:
            broadcaster.collection_deleted(uuid.uuid4(), uuid.uuid4(), None)
            await broadcaster.drain()

        log.warning.assert_called_once()
        assert log.warning.call_args.kwargs["event_type"] == "collection_deleted"
