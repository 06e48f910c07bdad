"""Domain models for mp_notification: pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class OutboxMessage:
    """A notification committed with the ledger change that caused it."""

    id: int                      # BIGSERIAL
    recipient_id: str
    type: str                    # NotificationType value
    title: str
    message: str
    related_id: str | None = None
    attempts: int = 0
    created_at: datetime | None = None
    dispatched_at: datetime | None = None


@dataclass
class Notification:
    id: int                      # BIGSERIAL
    outbox_id: int
    recipient_id: str
    type: str
    title: str
    message: str
    related_id: str | None = None
    is_read: bool = False
    created_at: datetime | None = None
    read_at: datetime | None = None
