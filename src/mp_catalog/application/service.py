"""CatalogApplicationService: listings the bid flow depends on.

Writes commit inside the service; reads run without an explicit transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.application.schemas import (
    CreateProductRequest,
    ProductListResponse,
    ProductResponse,
)
from src.mp_catalog.domain.models import Product
from src.mp_catalog.domain.repository import ProductRepositoryProtocol
from src.mp_catalog.infrastructure.persistence import ProductRepository
from src.mp_common.datetime_utils import utc_now
from src.mp_common.errors import (
    InvalidPriceError,
    ProductHasOpenBidsError,
    ProductNotFoundError,
    UnauthorizedActorError,
)
from src.mp_common.id_generator import PRODUCT_PREFIX, generate_id
from src.mp_common.pagination import decode_ts_cursor, encode_ts_cursor
from src.mp_gateway.auth.context import CurrentUser

logger = logging.getLogger(__name__)


class CatalogApplicationService:
    def __init__(self, repo: ProductRepositoryProtocol | None = None) -> None:
        self._repo: ProductRepositoryProtocol = repo or ProductRepository()

    async def create_product(
        self, db: AsyncSession, user: CurrentUser, req: CreateProductRequest
    ) -> ProductResponse:
        if req.price <= 0:
            raise InvalidPriceError(req.price)
        now = utc_now()
        draft = Product(
            id=generate_id(PRODUCT_PREFIX),
            seller_id=user.id,
            name=req.name,
            description=req.description,
            price=req.price,
            status="active",
            location=req.location,
            created_at=now,
            updated_at=now,
        )
        try:
            product = await self._repo.create_product(db, draft)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ProductResponse.from_domain(product)

    async def get_product(self, db: AsyncSession, product_id: str) -> ProductResponse:
        product = await self._repo.get_product(db, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return ProductResponse.from_domain(product)

    async def list_products(
        self,
        db: AsyncSession,
        status: str | None,
        seller_id: str | None,
        cursor: str | None,
        limit: int,
    ) -> ProductListResponse:
        # status=None → default active; status='all' → no filter
        sql_status = None if status == "all" else (status or "active")
        cursor_ts, cursor_id = decode_ts_cursor(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        products = await self._repo.list_products(
            db, sql_status, seller_id, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(products) > limit
        page = products[:limit]
        next_cursor = (
            encode_ts_cursor(page[-1].created_at, page[-1].id) if has_more and page else None
        )
        return ProductListResponse(
            items=[ProductResponse.from_domain(p) for p in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def remove_product(
        self, db: AsyncSession, user: CurrentUser, product_id: str
    ) -> ProductResponse:
        try:
            product = await self._repo.get_product_for_update(db, product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            if product.seller_id != user.id:
                raise UnauthorizedActorError("only the seller can remove a listing")
            removed = await self._repo.mark_removed(db, product_id)
            if removed is None:
                raise ProductHasOpenBidsError(product_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Product removed: product=%s seller=%s", product_id, user.id)
        return ProductResponse.from_domain(removed)
