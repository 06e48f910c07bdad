"""004: create transactions table

Revision ID: 004
Revises: 003
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id                  VARCHAR(64)     PRIMARY KEY,
            bid_id              VARCHAR(64)     NOT NULL REFERENCES bids(id),
            buyer_id            VARCHAR(64)     NOT NULL,
            seller_id           VARCHAR(64)     NOT NULL,
            product_id          VARCHAR(64)     NOT NULL REFERENCES products(id),
            amount              BIGINT          NOT NULL,
            platform_fee        BIGINT          NOT NULL,
            seller_amount       BIGINT          NOT NULL,
            currency            VARCHAR(3)      NOT NULL DEFAULT 'inr',
            gateway_session_id  VARCHAR(255)    NOT NULL,
            checkout_url        TEXT,
            status              VARCHAR(20)     NOT NULL DEFAULT 'pending',
            confirmation_status VARCHAR(20)     NOT NULL DEFAULT 'pending',
            paid_at             TIMESTAMPTZ,
            confirmed_at        TIMESTAMPTZ,
            disputed_at         TIMESTAMPTZ,
            completed_at        TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_transactions_bid UNIQUE (bid_id),
            CONSTRAINT uq_transactions_session UNIQUE (gateway_session_id),
            CONSTRAINT ck_transactions_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_transactions_fee_non_negative CHECK (platform_fee >= 0),
            CONSTRAINT ck_transactions_split CHECK (seller_amount + platform_fee = amount),
            CONSTRAINT ck_transactions_status CHECK (status IN ('pending', 'completed', 'failed')),
            CONSTRAINT ck_transactions_confirmation CHECK (
                confirmation_status IN ('pending', 'confirmed', 'disputed')
            ),
            CONSTRAINT ck_transactions_completed_confirmed CHECK (
                status <> 'completed' OR confirmation_status = 'confirmed'
            )
        );
    """)
    op.execute("CREATE INDEX idx_transactions_buyer ON transactions (buyer_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_transactions_seller ON transactions (seller_id, created_at DESC, id DESC);")
    op.execute("""
        CREATE INDEX idx_transactions_payout_due
        ON transactions (confirmed_at)
        WHERE status = 'pending' AND confirmation_status = 'confirmed';
    """)
    op.execute("""
        CREATE TRIGGER trg_transactions_updated_at
            BEFORE UPDATE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
