"""003: create bids table

Revision ID: 003
Revises: 002
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bids (
            id              VARCHAR(64)     PRIMARY KEY,
            product_id      VARCHAR(64)     NOT NULL REFERENCES products(id),
            buyer_id        VARCHAR(64)     NOT NULL,
            amount          BIGINT          NOT NULL,
            message         TEXT,
            status          VARCHAR(20)     NOT NULL DEFAULT 'pending',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at     TIMESTAMPTZ,
            CONSTRAINT ck_bids_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_bids_status CHECK (status IN ('pending', 'accepted', 'rejected')),
            CONSTRAINT ck_bids_resolved_at CHECK ((status = 'pending') = (resolved_at IS NULL))
        );
    """)
    # Last line of defence for the single-winner rule.
    op.execute("""
        CREATE UNIQUE INDEX uq_bids_one_accepted_per_product
        ON bids (product_id)
        WHERE status = 'accepted';
    """)
    op.execute("CREATE INDEX idx_bids_product_created ON bids (product_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_bids_buyer_created ON bids (buyer_id, created_at DESC, id DESC);")
    op.execute("""
        CREATE INDEX idx_bids_product_pending
        ON bids (product_id)
        WHERE status = 'pending';
    """)
    op.execute("""
        CREATE TRIGGER trg_bids_updated_at
            BEFORE UPDATE ON bids
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bids CASCADE;")
