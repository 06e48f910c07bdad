"""Repository Protocols for the outbox and the recipient inbox."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_notification.domain.models import Notification, OutboxMessage


class OutboxRepositoryProtocol(Protocol):
    async def enqueue(
        self,
        db: AsyncSession,
        recipient_id: str,
        type_: str,
        title: str,
        message: str,
        related_id: str | None,
    ) -> OutboxMessage: ...

    async def claim_pending(self, db: AsyncSession, limit: int) -> list[OutboxMessage]: ...

    async def mark_dispatched(self, db: AsyncSession, outbox_ids: list[int]) -> None: ...


class NotificationRepositoryProtocol(Protocol):
    async def insert_from_outbox(
        self, db: AsyncSession, msg: OutboxMessage
    ) -> Notification | None: ...

    async def list_for_recipient(
        self,
        db: AsyncSession,
        recipient_id: str,
        unread_only: bool,
        cursor_id: int | None,
        limit: int,
    ) -> list[Notification]: ...

    async def mark_read(
        self, db: AsyncSession, recipient_id: str, notification_id: int
    ) -> Notification | None: ...

    async def mark_all_read(self, db: AsyncSession, recipient_id: str) -> int: ...
