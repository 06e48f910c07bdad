"""Outbox + inbox repositories (raw text() SQL).

The outbox row is written inside the caller's ledger transaction; the
dispatcher later copies it into ``notifications``. ``outbox_id`` is UNIQUE on
``notifications`` so a re-dispatched row is absorbed by ON CONFLICT.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import InternalError
from src.mp_notification.domain.models import Notification, OutboxMessage

# ---------------------------------------------------------------------------
# SQL: outbox
# ---------------------------------------------------------------------------

_OUTBOX_COLUMNS = """
    id, recipient_id, type, title, message, related_id,
    attempts, created_at, dispatched_at
"""

_ENQUEUE_SQL = text(f"""
    INSERT INTO notification_outbox (recipient_id, type, title, message, related_id)
    VALUES (:recipient_id, :type, :title, :message, :related_id)
    RETURNING {_OUTBOX_COLUMNS}
""")

# SKIP LOCKED lets several dispatcher workers drain the outbox concurrently.
_CLAIM_PENDING_SQL = text(f"""
    SELECT {_OUTBOX_COLUMNS}
    FROM notification_outbox
    WHERE dispatched_at IS NULL
    ORDER BY id
    LIMIT :limit
    FOR UPDATE SKIP LOCKED
""")

_MARK_DISPATCHED_SQL = text("""
    UPDATE notification_outbox
    SET dispatched_at = NOW(), attempts = attempts + 1
    WHERE id = ANY(:ids)
""")

# ---------------------------------------------------------------------------
# SQL: inbox
# ---------------------------------------------------------------------------

_NOTIFICATION_COLUMNS = """
    id, outbox_id, recipient_id, type, title, message, related_id,
    is_read, created_at, read_at
"""

_INSERT_NOTIFICATION_SQL = text(f"""
    INSERT INTO notifications
        (outbox_id, recipient_id, type, title, message, related_id)
    VALUES
        (:outbox_id, :recipient_id, :type, :title, :message, :related_id)
    ON CONFLICT (outbox_id) DO NOTHING
    RETURNING {_NOTIFICATION_COLUMNS}
""")

_LIST_NOTIFICATIONS_SQL = text(f"""
    SELECT {_NOTIFICATION_COLUMNS}
    FROM notifications
    WHERE recipient_id = :recipient_id
      AND (:unread_only = FALSE OR is_read = FALSE)
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

# COALESCE keeps the first read_at: marking twice is a no-op.
_MARK_READ_SQL = text(f"""
    UPDATE notifications
    SET is_read = TRUE, read_at = COALESCE(read_at, NOW())
    WHERE id = :id AND recipient_id = :recipient_id
    RETURNING {_NOTIFICATION_COLUMNS}
""")

_MARK_ALL_READ_SQL = text("""
    UPDATE notifications
    SET is_read = TRUE, read_at = NOW()
    WHERE recipient_id = :recipient_id AND is_read = FALSE
""")


def _row_to_outbox(row: object) -> OutboxMessage:
    return OutboxMessage(
        id=row.id,  # type: ignore[attr-defined]
        recipient_id=row.recipient_id,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        message=row.message,  # type: ignore[attr-defined]
        related_id=row.related_id,  # type: ignore[attr-defined]
        attempts=row.attempts,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        dispatched_at=row.dispatched_at,  # type: ignore[attr-defined]
    )


def _row_to_notification(row: object) -> Notification:
    return Notification(
        id=row.id,  # type: ignore[attr-defined]
        outbox_id=row.outbox_id,  # type: ignore[attr-defined]
        recipient_id=row.recipient_id,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        message=row.message,  # type: ignore[attr-defined]
        related_id=row.related_id,  # type: ignore[attr-defined]
        is_read=row.is_read,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        read_at=row.read_at,  # type: ignore[attr-defined]
    )


class OutboxRepository:
    async def enqueue(
        self,
        db: AsyncSession,
        recipient_id: str,
        type_: str,
        title: str,
        message: str,
        related_id: str | None,
    ) -> OutboxMessage:
        result = await db.execute(
            _ENQUEUE_SQL,
            {
                "recipient_id": recipient_id,
                "type": type_,
                "title": title,
                "message": message,
                "related_id": related_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Outbox insert returned no rows")
        return _row_to_outbox(row)

    async def claim_pending(self, db: AsyncSession, limit: int) -> list[OutboxMessage]:
        result = await db.execute(_CLAIM_PENDING_SQL, {"limit": limit})
        return [_row_to_outbox(row) for row in result.fetchall()]

    async def mark_dispatched(self, db: AsyncSession, outbox_ids: list[int]) -> None:
        if not outbox_ids:
            return
        await db.execute(_MARK_DISPATCHED_SQL, {"ids": outbox_ids})


class NotificationRepository:
    async def insert_from_outbox(
        self, db: AsyncSession, msg: OutboxMessage
    ) -> Notification | None:
        """Returns None when this outbox row was already delivered."""
        result = await db.execute(
            _INSERT_NOTIFICATION_SQL,
            {
                "outbox_id": msg.id,
                "recipient_id": msg.recipient_id,
                "type": msg.type,
                "title": msg.title,
                "message": msg.message,
                "related_id": msg.related_id,
            },
        )
        row = result.fetchone()
        return _row_to_notification(row) if row else None

    async def list_for_recipient(
        self,
        db: AsyncSession,
        recipient_id: str,
        unread_only: bool,
        cursor_id: int | None,
        limit: int,
    ) -> list[Notification]:
        result = await db.execute(
            _LIST_NOTIFICATIONS_SQL,
            {
                "recipient_id": recipient_id,
                "unread_only": unread_only,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_notification(row) for row in result.fetchall()]

    async def mark_read(
        self, db: AsyncSession, recipient_id: str, notification_id: int
    ) -> Notification | None:
        result = await db.execute(
            _MARK_READ_SQL, {"id": notification_id, "recipient_id": recipient_id}
        )
        row = result.fetchone()
        return _row_to_notification(row) if row else None

    async def mark_all_read(self, db: AsyncSession, recipient_id: str) -> int:
        result = await db.execute(_MARK_ALL_READ_SQL, {"recipient_id": recipient_id})
        return result.rowcount or 0
