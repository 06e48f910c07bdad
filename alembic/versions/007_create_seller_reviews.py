"""007: create seller_reviews table

Revision ID: 007
Revises: 006
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE seller_reviews (
            id              VARCHAR(64)     PRIMARY KEY,
            seller_id       VARCHAR(64)     NOT NULL,
            reviewer_id     VARCHAR(64)     NOT NULL,
            product_id      VARCHAR(64)     NOT NULL REFERENCES products(id),
            rating          SMALLINT        NOT NULL,
            comment         TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_seller_reviews_reviewer_product UNIQUE (reviewer_id, product_id),
            CONSTRAINT ck_seller_reviews_rating CHECK (rating BETWEEN 1 AND 5),
            CONSTRAINT ck_seller_reviews_not_self CHECK (seller_id <> reviewer_id)
        );
    """)
    op.execute("CREATE INDEX idx_seller_reviews_seller ON seller_reviews (seller_id, created_at DESC, id DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS seller_reviews CASCADE;")
