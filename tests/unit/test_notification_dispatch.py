"""Outbox emitter and dispatcher."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mp_common.enums import NotificationType
from src.mp_notification.application.dispatcher import OutboxDispatcher
from src.mp_notification.application.emitter import NotificationEmitter
from src.mp_notification.domain.models import Notification, OutboxMessage
from src.mp_notification.infrastructure import publisher as publisher_module
from src.mp_notification.infrastructure.publisher import (
    RedisNotificationPublisher,
    channel_for,
)


def _make_outbox(msg_id: int, recipient: str = "seller-1") -> OutboxMessage:
    return OutboxMessage(
        id=msg_id,
        recipient_id=recipient,
        type="bid_received",
        title="New Bid Received",
        message="You received a bid.",
        related_id="bid_1",
    )


def _make_notification(msg: OutboxMessage) -> Notification:
    return Notification(
        id=msg.id + 100,
        outbox_id=msg.id,
        recipient_id=msg.recipient_id,
        type=msg.type,
        title=msg.title,
        message=msg.message,
        related_id=msg.related_id,
        created_at=datetime.now(UTC),
    )


class TestEmitter:
    async def test_enqueues_on_callers_session_without_commit(self) -> None:
        outbox = AsyncMock()
        outbox.enqueue.return_value = _make_outbox(1)
        db = AsyncMock()

        msg = await NotificationEmitter(outbox_repo=outbox).publish(
            db, "seller-1", NotificationType.BID_RECEIVED, "New Bid", "body", related_id="bid_1"
        )

        assert msg.id == 1
        outbox.enqueue.assert_awaited_once_with(
            db, "seller-1", "bid_received", "New Bid", "body", "bid_1"
        )
        db.commit.assert_not_awaited()


class TestDispatcher:
    def _make(self) -> tuple[OutboxDispatcher, AsyncMock, AsyncMock, AsyncMock]:
        outbox = AsyncMock()
        inbox = AsyncMock()
        inbox.insert_from_outbox.side_effect = lambda db, msg: _make_notification(msg)
        publisher = AsyncMock()
        return OutboxDispatcher(outbox, inbox, publisher), outbox, inbox, publisher

    async def test_delivers_batch_then_publishes(self) -> None:
        dispatcher, outbox, inbox, publisher = self._make()
        outbox.claim_pending.return_value = [_make_outbox(1), _make_outbox(2, "buyer-1")]
        db = AsyncMock()

        claimed = await dispatcher.dispatch_pending(db, 50)

        assert claimed == 2
        assert inbox.insert_from_outbox.await_count == 2
        outbox.mark_dispatched.assert_awaited_once_with(db, [1, 2])
        db.commit.assert_awaited_once()
        assert publisher.publish.await_count == 2

    async def test_already_delivered_row_not_republished(self) -> None:
        dispatcher, outbox, inbox, publisher = self._make()
        outbox.claim_pending.return_value = [_make_outbox(1)]
        inbox.insert_from_outbox.side_effect = None
        inbox.insert_from_outbox.return_value = None

        claimed = await dispatcher.dispatch_pending(AsyncMock(), 50)

        assert claimed == 1
        publisher.publish.assert_not_awaited()

    async def test_publish_failure_does_not_undo_delivery(self) -> None:
        dispatcher, outbox, _, publisher = self._make()
        outbox.claim_pending.return_value = [_make_outbox(1)]
        publisher.publish.side_effect = ConnectionError("redis down")
        db = AsyncMock()

        claimed = await dispatcher.dispatch_pending(db, 50)

        assert claimed == 1
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    async def test_db_failure_rolls_back(self) -> None:
        dispatcher, outbox, inbox, publisher = self._make()
        outbox.claim_pending.return_value = [_make_outbox(1)]
        outbox.mark_dispatched.side_effect = RuntimeError("db gone")
        db = AsyncMock()

        with pytest.raises(RuntimeError):
            await dispatcher.dispatch_pending(db, 50)

        db.rollback.assert_awaited_once()
        publisher.publish.assert_not_awaited()

    async def test_empty_batch(self) -> None:
        dispatcher, outbox, _, _ = self._make()
        outbox.claim_pending.return_value = []

        assert await dispatcher.dispatch_pending(AsyncMock(), 50) == 0


class TestRedisPublisher:
    async def test_publishes_json_on_recipient_channel(self, monkeypatch: pytest.MonkeyPatch) -> None:
        redis = MagicMock()
        redis.publish = AsyncMock()
        monkeypatch.setattr(publisher_module, "get_redis", AsyncMock(return_value=redis))
        notification = _make_notification(_make_outbox(7, "buyer-9"))

        await RedisNotificationPublisher().publish(notification)

        channel, payload = redis.publish.await_args.args
        assert channel == "notifications:buyer-9"
        assert json.loads(payload)["id"] == 107

    def test_channel_name(self) -> None:
        assert channel_for("u1") == "notifications:u1"
