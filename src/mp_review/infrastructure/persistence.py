"""ReviewRepository: raw text() SQL over seller_reviews."""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_review.domain.models import RatingSummary, SellerReview

_COLUMNS = "id, seller_id, reviewer_id, product_id, rating, comment, created_at"

# UNIQUE(reviewer_id, product_id): one review per reviewer per listing.
_INSERT_REVIEW_SQL = text(f"""
    INSERT INTO seller_reviews (id, seller_id, reviewer_id, product_id, rating, comment)
    VALUES (:id, :seller_id, :reviewer_id, :product_id, :rating, :comment)
    ON CONFLICT (reviewer_id, product_id) DO NOTHING
    RETURNING {_COLUMNS}
""")

_LIST_FOR_SELLER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM seller_reviews
    WHERE seller_id = :seller_id
      AND (
          CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
          OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
          OR (
              created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
              AND id < CAST(:cursor_id AS TEXT)
          )
      )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_SUMMARY_SQL = text("""
    SELECT COUNT(*) AS review_count, AVG(rating)::NUMERIC(3, 2) AS average_rating
    FROM seller_reviews
    WHERE seller_id = :seller_id
""")


def _row_to_review(row: object) -> SellerReview:
    return SellerReview(
        id=row.id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        reviewer_id=row.reviewer_id,  # type: ignore[attr-defined]
        product_id=row.product_id,  # type: ignore[attr-defined]
        rating=row.rating,  # type: ignore[attr-defined]
        comment=row.comment,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class ReviewRepository:
    async def insert_review(
        self, db: AsyncSession, review: SellerReview
    ) -> SellerReview | None:
        """None when the reviewer already reviewed this product."""
        result = await db.execute(
            _INSERT_REVIEW_SQL,
            {
                "id": review.id,
                "seller_id": review.seller_id,
                "reviewer_id": review.reviewer_id,
                "product_id": review.product_id,
                "rating": review.rating,
                "comment": review.comment,
            },
        )
        row = result.fetchone()
        return _row_to_review(row) if row else None

    async def list_for_seller(
        self,
        db: AsyncSession,
        seller_id: str,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[SellerReview]:
        result = await db.execute(
            _LIST_FOR_SELLER_SQL,
            {
                "seller_id": seller_id,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_review(row) for row in result.fetchall()]

    async def summary_for_seller(self, db: AsyncSession, seller_id: str) -> RatingSummary:
        result = await db.execute(_SUMMARY_SQL, {"seller_id": seller_id})
        row = result.fetchone()
        count = int(row.review_count) if row else 0  # type: ignore[attr-defined]
        avg = row.average_rating if row else None  # type: ignore[attr-defined]
        return RatingSummary(
            review_count=count,
            average_rating=float(avg) if avg is not None else None,
        )
