"""NotificationApplicationService: recipient inbox + buyer→seller messages."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.domain.repository import ProductRepositoryProtocol
from src.mp_catalog.infrastructure.persistence import ProductRepository
from src.mp_common.enums import NotificationType
from src.mp_common.errors import (
    NotificationNotFoundError,
    ProductNotFoundError,
    UnauthorizedActorError,
)
from src.mp_common.pagination import decode_id_cursor, encode_id_cursor
from src.mp_gateway.auth.context import CurrentUser
from src.mp_notification.application.emitter import NotificationEmitter
from src.mp_notification.application.schemas import (
    MarkAllReadResponse,
    MessageSentResponse,
    NotificationListResponse,
    NotificationResponse,
    SendMessageRequest,
)
from src.mp_notification.domain.repository import NotificationRepositoryProtocol
from src.mp_notification.infrastructure.persistence import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationApplicationService:
    def __init__(
        self,
        repo: NotificationRepositoryProtocol | None = None,
        product_repo: ProductRepositoryProtocol | None = None,
        emitter: NotificationEmitter | None = None,
    ) -> None:
        self._repo: NotificationRepositoryProtocol = repo or NotificationRepository()
        self._products: ProductRepositoryProtocol = product_repo or ProductRepository()
        self._emitter = emitter or NotificationEmitter()

    async def list_inbox(
        self,
        db: AsyncSession,
        user: CurrentUser,
        unread_only: bool,
        cursor: str | None,
        limit: int,
    ) -> NotificationListResponse:
        cursor_id = decode_id_cursor(cursor)
        rows = await self._repo.list_for_recipient(
            db, user.id, unread_only, cursor_id, limit + 1
        )
        has_more = len(rows) > limit
        page = rows[:limit]
        return NotificationListResponse(
            items=[NotificationResponse.from_domain(n) for n in page],
            next_cursor=encode_id_cursor(page[-1].id) if has_more and page else None,
            has_more=has_more,
        )

    async def mark_read(
        self, db: AsyncSession, user: CurrentUser, notification_id: int
    ) -> NotificationResponse:
        try:
            notification = await self._repo.mark_read(db, user.id, notification_id)
            if notification is None:
                # Someone else's notification looks the same as a missing one.
                raise NotificationNotFoundError(notification_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return NotificationResponse.from_domain(notification)

    async def mark_all_read(
        self, db: AsyncSession, user: CurrentUser
    ) -> MarkAllReadResponse:
        try:
            updated = await self._repo.mark_all_read(db, user.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return MarkAllReadResponse(updated=updated)

    async def send_message(
        self,
        db: AsyncSession,
        user: CurrentUser,
        product_id: str,
        req: SendMessageRequest,
    ) -> MessageSentResponse:
        product = await self._products.get_product(db, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        if product.seller_id == user.id:
            raise UnauthorizedActorError("sellers cannot message themselves")
        try:
            msg = await self._emitter.publish(
                db,
                product.seller_id,
                NotificationType.NEW_MESSAGE,
                f"New message about {product.name}",
                req.message,
                related_id=product.id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Message queued: product=%s from=%s", product_id, user.id)
        return MessageSentResponse(
            product_id=product.id, recipient_id=product.seller_id, outbox_id=msg.id
        )
