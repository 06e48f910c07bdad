"""OutboxDispatcher: moves committed outbox rows into recipient inboxes.

One batch = one DB transaction: claim (SKIP LOCKED) → insert inbox rows →
mark dispatched → commit. Redis fan-out happens after the commit so live
clients never see a notification that could still roll back.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.mp_notification.domain.models import Notification
from src.mp_notification.domain.repository import (
    NotificationRepositoryProtocol,
    OutboxRepositoryProtocol,
)
from src.mp_notification.infrastructure.persistence import (
    NotificationRepository,
    OutboxRepository,
)
from src.mp_notification.infrastructure.publisher import RedisNotificationPublisher

logger = logging.getLogger(__name__)


class OutboxDispatcher:
    def __init__(
        self,
        outbox_repo: OutboxRepositoryProtocol | None = None,
        notification_repo: NotificationRepositoryProtocol | None = None,
        publisher: RedisNotificationPublisher | None = None,
    ) -> None:
        self._outbox: OutboxRepositoryProtocol = outbox_repo or OutboxRepository()
        self._inbox: NotificationRepositoryProtocol = (
            notification_repo or NotificationRepository()
        )
        self._publisher = publisher or RedisNotificationPublisher()

    async def dispatch_pending(self, db: AsyncSession, limit: int) -> int:
        """Deliver up to ``limit`` outbox rows. Returns how many were claimed."""
        delivered: list[Notification] = []
        try:
            batch = await self._outbox.claim_pending(db, limit)
            for msg in batch:
                notification = await self._inbox.insert_from_outbox(db, msg)
                if notification is not None:
                    delivered.append(notification)
            await self._outbox.mark_dispatched(db, [m.id for m in batch])
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        for notification in delivered:
            try:
                await self._publisher.publish(notification)
            except Exception:
                # Inbox row is committed; realtime push is best effort.
                logger.warning(
                    "Realtime publish failed: notification=%s recipient=%s",
                    notification.id,
                    notification.recipient_id,
                    exc_info=True,
                )
        if batch:
            logger.info(
                "Outbox dispatched: claimed=%d delivered=%d", len(batch), len(delivered)
            )
        return len(batch)


async def run_dispatch_loop(
    session_factory: async_sessionmaker[AsyncSession],
    dispatcher: OutboxDispatcher | None = None,
) -> None:
    """Background task started by the app lifespan; cancelled on shutdown."""
    dispatcher = dispatcher or OutboxDispatcher()
    while True:
        try:
            async with session_factory() as db:
                claimed = await dispatcher.dispatch_pending(db, settings.OUTBOX_BATCH_SIZE)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Outbox dispatch batch failed")
            claimed = 0
        # A full batch means more rows are probably waiting.
        if claimed < settings.OUTBOX_BATCH_SIZE:
            await asyncio.sleep(settings.OUTBOX_DISPATCH_INTERVAL_SECONDS)
