# calendar_alerts/services/notification_sink.py
"""
Notification sink.

Posted notifications are kept in a Redis hash keyed by notification id, so
re-posting an id replaces the previous payload. Every change is also
published on a channel the rendering surface subscribes to.
"""

import json
from typing import Protocol

from calendar_alerts.config import settings
from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.models.domain import NotificationPayload
from calendar_alerts.services.redis_client import RedisClient, redis_client

logger = get_logger(__name__)


class NotificationSink(Protocol):
    async def notify(self, notification_id: int, payload: NotificationPayload) -> None: ...

    async def cancel(self, notification_id: int) -> None: ...

    async def cancel_all(self) -> None: ...


class RedisNotificationSink:
    """Redis-backed notification surface."""

    def __init__(
        self,
        client: RedisClient | None = None,
        notifications_key: str | None = None,
        events_channel: str | None = None,
    ):
        self.client = client or redis_client
        self.notifications_key = notifications_key or settings.NOTIFICATIONS_KEY
        self.events_channel = events_channel or settings.NOTIFICATION_EVENTS_CHANNEL

    async def _publish(self, action: str, **fields) -> None:
        redis = await self.client.ensure_client()
        await redis.publish(self.events_channel, json.dumps({"action": action, **fields}))

    async def notify(self, notification_id: int, payload: NotificationPayload) -> None:
        data = payload.to_dict()
        redis = await self.client.ensure_client()
        await redis.hset(self.notifications_key, str(notification_id), json.dumps(data))
        await self._publish("notify", notification_id=notification_id, payload=data)

    async def cancel(self, notification_id: int) -> None:
        redis = await self.client.ensure_client()
        await redis.hdel(self.notifications_key, str(notification_id))
        await self._publish("cancel", notification_id=notification_id)

    async def cancel_all(self) -> None:
        redis = await self.client.ensure_client()
        await redis.delete(self.notifications_key)
        await self._publish("cancel_all")
        logger.debug("All notifications cancelled", key=self.notifications_key)
