"""008: create listing_payments table

Revision ID: 008
Revises: 007
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listing_payments (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL,
            product_id          VARCHAR(64)     REFERENCES products(id),
            type                VARCHAR(30)     NOT NULL,
            amount              BIGINT          NOT NULL,
            currency            VARCHAR(3)      NOT NULL DEFAULT 'inr',
            status              VARCHAR(20)     NOT NULL DEFAULT 'pending',
            gateway_session_id  VARCHAR(255),
            checkout_url        TEXT,
            paid_at             TIMESTAMPTZ,
            featured_until      TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_listing_payments_session UNIQUE (gateway_session_id),
            CONSTRAINT ck_listing_payments_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_listing_payments_type CHECK (
                type IN ('listing_fee', 'featured_3_days', 'featured_7_days')
            ),
            CONSTRAINT ck_listing_payments_status CHECK (status IN ('pending', 'paid')),
            CONSTRAINT ck_listing_payments_paid_at CHECK (
                status <> 'paid' OR paid_at IS NOT NULL
            )
        );
    """)
    # One open checkout per seller, product and type; a repeated click resumes it.
    op.execute("""
        CREATE UNIQUE INDEX uq_listing_payments_open
        ON listing_payments (seller_id, type, COALESCE(product_id, ''))
        WHERE status = 'pending';
    """)
    op.execute("CREATE INDEX idx_listing_payments_seller ON listing_payments (seller_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_listing_payments_updated_at
            BEFORE UPDATE ON listing_payments
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listing_payments CASCADE;")
