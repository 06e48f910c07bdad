"""BidRepository: concrete implementation of BidRepositoryProtocol.

All queries use raw text() SQL (no ORM).
Transaction ownership: the CALLER (application service) commits or rolls back.

Single-winner guarantee, outermost to innermost:
  1. the service holds ``SELECT ... FOR UPDATE`` on the product row
  2. _ACCEPT_BID_SQL is a compare-and-set on status='pending' that also
     refuses when any sibling is already accepted
  3. partial unique index uq_bids_one_accepted_per_product (migration 003)
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_bidding.domain.models import Bid
from src.mp_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, product_id, buyer_id, amount, message, status,
    created_at, updated_at, resolved_at
"""

_INSERT_BID_SQL = text(f"""
    INSERT INTO bids (id, product_id, buyer_id, amount, message, status, resolved_at)
    VALUES (
        :id, :product_id, :buyer_id, :amount, :message, :status,
        CASE WHEN CAST(:status AS TEXT) = 'pending' THEN NULL ELSE NOW() END
    )
    RETURNING {_COLUMNS}
""")

_GET_BID_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM bids
    WHERE id = :bid_id
""")

_HAS_ACCEPTED_SQL = text("""
    SELECT 1 FROM bids
    WHERE product_id = :product_id AND status = 'accepted'
    LIMIT 1
""")

_ACCEPT_BID_SQL = text(f"""
    UPDATE bids
    SET status = 'accepted', resolved_at = NOW(), updated_at = NOW()
    WHERE id = :bid_id
      AND status = 'pending'
      AND NOT EXISTS (
          SELECT 1 FROM bids sibling
          WHERE sibling.product_id = :product_id AND sibling.status = 'accepted'
      )
    RETURNING {_COLUMNS}
""")

_REJECT_SIBLINGS_SQL = text(f"""
    UPDATE bids
    SET status = 'rejected', resolved_at = NOW(), updated_at = NOW()
    WHERE product_id = :product_id
      AND status = 'pending'
      AND id <> :keep_bid_id
    RETURNING {_COLUMNS}
""")

_REJECT_BID_SQL = text(f"""
    UPDATE bids
    SET status = 'rejected', resolved_at = NOW(), updated_at = NOW()
    WHERE id = :bid_id AND status = 'pending'
    RETURNING {_COLUMNS}
""")

_LIST_BY_PRODUCT_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM bids
    WHERE product_id = :product_id
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

_LIST_BY_BUYER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM bids
    WHERE buyer_id = :buyer_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
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

# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_bid(row: object) -> Bid:
    return Bid(
        id=row.id,  # type: ignore[attr-defined]
        product_id=row.product_id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        message=row.message,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BidRepository:
    async def insert_bid(self, db: AsyncSession, bid: Bid) -> Bid:
        result = await db.execute(
            _INSERT_BID_SQL,
            {
                "id": bid.id,
                "product_id": bid.product_id,
                "buyer_id": bid.buyer_id,
                "amount": bid.amount,
                "message": bid.message,
                "status": bid.status,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Bid insert returned no rows")
        return _row_to_bid(row)

    async def get_bid(self, db: AsyncSession, bid_id: str) -> Bid | None:
        result = await db.execute(_GET_BID_SQL, {"bid_id": bid_id})
        row = result.fetchone()
        return _row_to_bid(row) if row else None

    async def has_accepted_bid(self, db: AsyncSession, product_id: str) -> bool:
        result = await db.execute(_HAS_ACCEPTED_SQL, {"product_id": product_id})
        return result.fetchone() is not None

    async def accept_and_reject_siblings(
        self, db: AsyncSession, bid_id: str, product_id: str
    ) -> tuple[Bid | None, list[Bid]]:
        """Accept one bid and reject every other pending bid on the product.

        Returns (None, []) when the compare-and-set lost: the bid was no
        longer pending, or another bid on the product is already accepted.
        """
        result = await db.execute(
            _ACCEPT_BID_SQL, {"bid_id": bid_id, "product_id": product_id}
        )
        row = result.fetchone()
        if row is None:
            return None, []
        rejected = await self.reject_pending_siblings(db, product_id, bid_id)
        return _row_to_bid(row), rejected

    async def reject_pending_siblings(
        self, db: AsyncSession, product_id: str, keep_bid_id: str
    ) -> list[Bid]:
        result = await db.execute(
            _REJECT_SIBLINGS_SQL, {"product_id": product_id, "keep_bid_id": keep_bid_id}
        )
        return [_row_to_bid(row) for row in result.fetchall()]

    async def reject_bid(self, db: AsyncSession, bid_id: str) -> Bid | None:
        """pending → rejected. None when the bid was already resolved."""
        result = await db.execute(_REJECT_BID_SQL, {"bid_id": bid_id})
        row = result.fetchone()
        return _row_to_bid(row) if row else None

    async def list_by_product(
        self,
        db: AsyncSession,
        product_id: str,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Bid]:
        result = await db.execute(
            _LIST_BY_PRODUCT_SQL,
            {
                "product_id": product_id,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_bid(row) for row in result.fetchall()]

    async def list_by_buyer(
        self,
        db: AsyncSession,
        buyer_id: str,
        status: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Bid]:
        result = await db.execute(
            _LIST_BY_BUYER_SQL,
            {
                "buyer_id": buyer_id,
                "status": status,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_bid(row) for row in result.fetchall()]
