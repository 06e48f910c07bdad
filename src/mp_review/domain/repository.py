"""Repository Protocol for seller reviews."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_review.domain.models import RatingSummary, SellerReview


class ReviewRepositoryProtocol(Protocol):
    async def insert_review(
        self, db: AsyncSession, review: SellerReview
    ) -> SellerReview | None: ...

    async def list_for_seller(
        self,
        db: AsyncSession,
        seller_id: str,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[SellerReview]: ...

    async def summary_for_seller(self, db: AsyncSession, seller_id: str) -> RatingSummary: ...
