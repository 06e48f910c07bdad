"""Pydantic schemas for mp_notification API."""

from pydantic import BaseModel, Field

from src.mp_notification.domain.models import Notification


class SendMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    message: str
    related_id: str | None
    is_read: bool
    created_at: str | None
    read_at: str | None

    @classmethod
    def from_domain(cls, n: Notification) -> "NotificationResponse":
        return cls(
            id=n.id,
            type=n.type,
            title=n.title,
            message=n.message,
            related_id=n.related_id,
            is_read=n.is_read,
            created_at=n.created_at.isoformat() if n.created_at else None,
            read_at=n.read_at.isoformat() if n.read_at else None,
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    next_cursor: str | None
    has_more: bool


class MarkAllReadResponse(BaseModel):
    updated: int


class MessageSentResponse(BaseModel):
    product_id: str
    recipient_id: str
    outbox_id: int
