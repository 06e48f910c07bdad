"""Concurrent accepts on one product must produce exactly one winner.

The fakes model the product row lock (held until commit/rollback) and the
compare-and-set accept, and yield to the event loop between steps so the
coroutines genuinely interleave.
"""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

from src.mp_bidding.application.service import BidApplicationService
from src.mp_bidding.domain.models import Bid
from src.mp_catalog.domain.models import Product
from src.mp_common.errors import AppError
from src.mp_gateway.auth.context import CurrentUser


class _FakeSession:
    def __init__(self) -> None:
        self.held: list[asyncio.Lock] = []

    def _release(self) -> None:
        for lock in self.held:
            lock.release()
        self.held.clear()

    async def commit(self) -> None:
        self._release()

    async def rollback(self) -> None:
        self._release()


class _FakeProducts:
    def __init__(self, product: Product) -> None:
        self._product = product
        self._lock = asyncio.Lock()

    async def get_product(self, db, product_id):
        return self._product

    async def get_product_for_update(self, db, product_id):
        await self._lock.acquire()
        db.held.append(self._lock)
        return self._product


class _FakeBids:
    def __init__(self, bids: list[Bid]) -> None:
        self.bids = {b.id: b for b in bids}

    async def get_bid(self, db, bid_id):
        await asyncio.sleep(0)
        bid = self.bids.get(bid_id)
        return Bid(**vars(bid)) if bid else None

    async def has_accepted_bid(self, db, product_id):
        return any(b.status == "accepted" for b in self.bids.values())

    async def accept_and_reject_siblings(self, db, bid_id, product_id):
        await asyncio.sleep(0)
        bid = self.bids[bid_id]
        if bid.status != "pending" or await self.has_accepted_bid(db, product_id):
            return None, []
        bid.status = "accepted"
        rejected = []
        for other in self.bids.values():
            if other.id != bid_id and other.status == "pending":
                other.status = "rejected"
                rejected.append(other)
        return bid, rejected


def _make_product() -> Product:
    now = datetime.now(UTC)
    return Product(
        id="prd_1", seller_id="seller-1", name="Silk Scarf", description=None,
        price=3000, status="active", location=None, created_at=now, updated_at=now,
    )


async def test_concurrent_accepts_yield_single_winner() -> None:
    bids = _FakeBids([
        Bid(id=f"bid_{i}", product_id="prd_1", buyer_id=f"buyer-{i}", amount=2000 + i)
        for i in range(1, 6)
    ])
    profiles = AsyncMock()
    profiles.get_payout_account.return_value = "acct_seller"
    svc = BidApplicationService(
        repo=bids,  # type: ignore[arg-type]
        product_repo=_FakeProducts(_make_product()),  # type: ignore[arg-type]
        profile_repo=profiles,
        emitter=AsyncMock(),
    )
    seller = CurrentUser(id="seller-1")

    results = await asyncio.gather(
        *(svc.accept_bid(_FakeSession(), seller, bid_id) for bid_id in list(bids.bids)),  # type: ignore[arg-type]
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, BaseException)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert all(isinstance(e, AppError) and e.code == 3005 for e in losers)
    statuses = [b.status for b in bids.bids.values()]
    assert statuses.count("accepted") == 1
    assert statuses.count("rejected") == 4
