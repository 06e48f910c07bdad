"""Repository Protocol for bids."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_bidding.domain.models import Bid


class BidRepositoryProtocol(Protocol):
    async def insert_bid(self, db: AsyncSession, bid: Bid) -> Bid: ...

    async def get_bid(self, db: AsyncSession, bid_id: str) -> Bid | None: ...

    async def has_accepted_bid(self, db: AsyncSession, product_id: str) -> bool: ...

    async def accept_and_reject_siblings(
        self, db: AsyncSession, bid_id: str, product_id: str
    ) -> tuple[Bid | None, list[Bid]]: ...

    async def reject_pending_siblings(
        self, db: AsyncSession, product_id: str, keep_bid_id: str
    ) -> list[Bid]: ...

    async def reject_bid(self, db: AsyncSession, bid_id: str) -> Bid | None: ...

    async def list_by_product(
        self,
        db: AsyncSession,
        product_id: str,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Bid]: ...

    async def list_by_buyer(
        self,
        db: AsyncSession,
        buyer_id: str,
        status: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Bid]: ...
