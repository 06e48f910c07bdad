"""NotificationEmitter: the only write path other modules use.

publish() inserts an outbox row on the caller's session and does NOT commit:
the notification becomes visible exactly when the caller's ledger change
does, and vanishes with it on rollback.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import NotificationType
from src.mp_notification.domain.models import OutboxMessage
from src.mp_notification.domain.repository import OutboxRepositoryProtocol
from src.mp_notification.infrastructure.persistence import OutboxRepository


class NotificationEmitter:
    def __init__(self, outbox_repo: OutboxRepositoryProtocol | None = None) -> None:
        self._outbox: OutboxRepositoryProtocol = outbox_repo or OutboxRepository()

    async def publish(
        self,
        db: AsyncSession,
        recipient_id: str,
        type_: NotificationType,
        title: str,
        message: str,
        related_id: str | None = None,
    ) -> OutboxMessage:
        return await self._outbox.enqueue(
            db, recipient_id, type_.value, title, message, related_id
        )
