"""ProductRepository: concrete implementation of ProductRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.domain.models import Product
from src.mp_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, seller_id, name, description, price, status, location,
    created_at, updated_at
"""

_INSERT_PRODUCT_SQL = text(f"""
    INSERT INTO products (id, seller_id, name, description, price, status, location)
    VALUES (:id, :seller_id, :name, :description, :price, 'active', :location)
    RETURNING {_COLUMNS}
""")

_GET_PRODUCT_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM products
    WHERE id = :product_id
""")

# Row lock serialises every bid resolution on the same product.
_GET_PRODUCT_FOR_UPDATE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM products
    WHERE id = :product_id
    FOR UPDATE
""")

_LIST_PRODUCTS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM products
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (CAST(:seller_id AS TEXT) IS NULL OR seller_id = CAST(:seller_id AS TEXT))
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

_MARK_SOLD_SQL = text("""
    UPDATE products
    SET status = 'sold', updated_at = NOW()
    WHERE id = :product_id AND status = 'active'
    RETURNING id
""")

_MARK_REMOVED_SQL = text(f"""
    UPDATE products
    SET status = 'removed', updated_at = NOW()
    WHERE id = :product_id
      AND status = 'active'
      AND NOT EXISTS (
          SELECT 1 FROM bids
          WHERE bids.product_id = :product_id AND bids.status = 'accepted'
      )
    RETURNING {_COLUMNS}
""")

_REJECT_PENDING_BIDS_SQL = text("""
    UPDATE bids
    SET status = 'rejected', resolved_at = NOW(), updated_at = NOW()
    WHERE product_id = :product_id AND status = 'pending'
""")

# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_product(row: object) -> Product:
    return Product(
        id=row.id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        location=row.location,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ProductRepository:
    async def create_product(self, db: AsyncSession, product: Product) -> Product:
        result = await db.execute(
            _INSERT_PRODUCT_SQL,
            {
                "id": product.id,
                "seller_id": product.seller_id,
                "name": product.name,
                "description": product.description,
                "price": product.price,
                "location": product.location,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Product insert returned no rows")
        return _row_to_product(row)

    async def get_product(self, db: AsyncSession, product_id: str) -> Product | None:
        result = await db.execute(_GET_PRODUCT_SQL, {"product_id": product_id})
        row = result.fetchone()
        return _row_to_product(row) if row else None

    async def get_product_for_update(
        self, db: AsyncSession, product_id: str
    ) -> Product | None:
        result = await db.execute(_GET_PRODUCT_FOR_UPDATE_SQL, {"product_id": product_id})
        row = result.fetchone()
        return _row_to_product(row) if row else None

    async def list_products(
        self,
        db: AsyncSession,
        status: str | None,
        seller_id: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Product]:
        result = await db.execute(
            _LIST_PRODUCTS_SQL,
            {
                "status": status,
                "seller_id": seller_id,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_product(row) for row in result.fetchall()]

    async def mark_sold(self, db: AsyncSession, product_id: str) -> bool:
        """active → sold. False when the product was already sold (idempotent replay)."""
        result = await db.execute(_MARK_SOLD_SQL, {"product_id": product_id})
        return result.fetchone() is not None

    async def mark_removed(self, db: AsyncSession, product_id: str) -> Product | None:
        """active → removed, refused while a bid on it is accepted.

        Pending bids are rejected in the same transaction. Returns None when
        the guard refused the update.
        """
        result = await db.execute(_MARK_REMOVED_SQL, {"product_id": product_id})
        row = result.fetchone()
        if row is None:
            return None
        await db.execute(_REJECT_PENDING_BIDS_SQL, {"product_id": product_id})
        return _row_to_product(row)
