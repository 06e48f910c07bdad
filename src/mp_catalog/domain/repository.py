"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.domain.models import Product


class ProductRepositoryProtocol(Protocol):
    async def create_product(self, db: AsyncSession, product: Product) -> Product: ...

    async def get_product(self, db: AsyncSession, product_id: str) -> Product | None: ...

    async def get_product_for_update(
        self, db: AsyncSession, product_id: str
    ) -> Product | None: ...

    async def list_products(
        self,
        db: AsyncSession,
        status: str | None,
        seller_id: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Product]: ...

    async def mark_sold(self, db: AsyncSession, product_id: str) -> bool: ...

    async def mark_removed(self, db: AsyncSession, product_id: str) -> Product | None: ...
