"""Realtime fan-out of delivered notifications over Redis Pub/Sub.

Channel: ``notifications:{recipient_id}``. Subscribers are live clients; a
missed publish is harmless because the inbox row is already committed.
"""

import json

from src.mp_common.redis_client import get_redis
from src.mp_notification.domain.models import Notification


def channel_for(recipient_id: str) -> str:
    return f"notifications:{recipient_id}"


class RedisNotificationPublisher:
    async def publish(self, notification: Notification) -> None:
        redis = await get_redis()
        payload = {
            "id": notification.id,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "related_id": notification.related_id,
            "created_at": (
                notification.created_at.isoformat() if notification.created_at else None
            ),
        }
        await redis.publish(channel_for(notification.recipient_id), json.dumps(payload))
