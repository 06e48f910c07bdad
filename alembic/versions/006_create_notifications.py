"""006: create notification outbox and inbox

Revision ID: 006
Revises: 005
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE notification_outbox (
            id              BIGSERIAL       PRIMARY KEY,
            recipient_id    VARCHAR(64)     NOT NULL,
            type            VARCHAR(40)     NOT NULL,
            title           VARCHAR(200)    NOT NULL,
            message         TEXT            NOT NULL,
            related_id      VARCHAR(64),
            attempts        INT             NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            dispatched_at   TIMESTAMPTZ
        );
    """)
    op.execute("""
        CREATE INDEX idx_outbox_undispatched
        ON notification_outbox (id)
        WHERE dispatched_at IS NULL;
    """)
    op.execute("""
        CREATE TABLE notifications (
            id              BIGSERIAL       PRIMARY KEY,
            outbox_id       BIGINT          NOT NULL REFERENCES notification_outbox(id),
            recipient_id    VARCHAR(64)     NOT NULL,
            type            VARCHAR(40)     NOT NULL,
            title           VARCHAR(200)    NOT NULL,
            message         TEXT            NOT NULL,
            related_id      VARCHAR(64),
            is_read         BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            read_at         TIMESTAMPTZ,
            CONSTRAINT uq_notifications_outbox UNIQUE (outbox_id)
        );
    """)
    op.execute("CREATE INDEX idx_notifications_recipient ON notifications (recipient_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_notifications_unread
        ON notifications (recipient_id, id DESC)
        WHERE is_read = FALSE;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
    op.execute("DROP TABLE IF EXISTS notification_outbox CASCADE;")
