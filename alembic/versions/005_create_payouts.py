"""005: create payouts table

Revision ID: 005
Revises: 004
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payouts (
            id                  VARCHAR(64)     PRIMARY KEY,
            transaction_id      VARCHAR(64)     NOT NULL REFERENCES transactions(id),
            seller_id           VARCHAR(64)     NOT NULL,
            destination_account VARCHAR(64)     NOT NULL,
            amount              BIGINT          NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'pending',
            gateway_transfer_id VARCHAR(255),
            attempts            INT             NOT NULL DEFAULT 0,
            last_error          VARCHAR(500),
            reopen_count        INT             NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_payouts_transaction UNIQUE (transaction_id),
            CONSTRAINT ck_payouts_amount_non_negative CHECK (amount >= 0),
            CONSTRAINT ck_payouts_status CHECK (
                status IN ('pending', 'succeeded', 'failed', 'rejected')
            ),
            CONSTRAINT ck_payouts_transfer_id CHECK (
                status <> 'succeeded' OR gateway_transfer_id IS NOT NULL
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_payouts_updated_at
            BEFORE UPDATE ON payouts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payouts CASCADE;")
