"""BidApplicationService: submit / accept / reject / buy-now.

Every write runs in one DB transaction that starts by locking the product
row (SELECT ... FOR UPDATE). That lock serialises submissions and
resolutions on the same product, so the accept-one-reject-rest step and
the notifications it emits commit together or not at all.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_bidding.application.schemas import (
    AcceptBidResponse,
    BidListResponse,
    BidResponse,
    SubmitBidRequest,
)
from src.mp_bidding.domain.models import Bid
from src.mp_bidding.domain.repository import BidRepositoryProtocol
from src.mp_bidding.domain.state_machine import (
    ensure_resolvable,
    ensure_seller,
    validate_bid_submission,
)
from src.mp_bidding.infrastructure.persistence import BidRepository
from src.mp_catalog.domain.models import Product
from src.mp_catalog.domain.repository import ProductRepositoryProtocol
from src.mp_catalog.infrastructure.persistence import ProductRepository
from src.mp_common.enums import NotificationType
from src.mp_common.errors import (
    BidAlreadyResolvedError,
    BidNotFoundError,
    PayoutDestinationMissingError,
    ProductNotAvailableError,
    ProductNotFoundError,
    SelfBiddingError,
)
from src.mp_common.id_generator import BID_PREFIX, generate_id
from src.mp_common.money import minor_to_display
from src.mp_common.pagination import decode_ts_cursor, encode_ts_cursor
from src.mp_gateway.auth.context import CurrentUser
from src.mp_notification.application.emitter import NotificationEmitter
from src.mp_payments.domain.repository import ProfileRepositoryProtocol
from src.mp_payments.infrastructure.persistence import ProfileRepository

logger = logging.getLogger(__name__)

# Reported as the product status when an accepted bid is awaiting payment.
RESERVED_STATUS = "reserved"


def _money(amount: int) -> str:
    return minor_to_display(amount, settings.CURRENCY)


class BidApplicationService:
    def __init__(
        self,
        repo: BidRepositoryProtocol | None = None,
        product_repo: ProductRepositoryProtocol | None = None,
        profile_repo: ProfileRepositoryProtocol | None = None,
        emitter: NotificationEmitter | None = None,
    ) -> None:
        self._repo: BidRepositoryProtocol = repo or BidRepository()
        self._products: ProductRepositoryProtocol = product_repo or ProductRepository()
        self._profiles: ProfileRepositoryProtocol = profile_repo or ProfileRepository()
        self._emitter = emitter or NotificationEmitter()

    async def _lock_product(self, db: AsyncSession, product_id: str) -> Product:
        product = await self._products.get_product_for_update(db, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def _notify_rejected(self, db: AsyncSession, product: Product, bids: list[Bid]) -> None:
        for sibling in bids:
            await self._emitter.publish(
                db,
                sibling.buyer_id,
                NotificationType.BID_REJECTED,
                "Bid Declined",
                f'Your bid of {_money(sibling.amount)} on "{product.name}" was declined.',
                related_id=sibling.id,
            )

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    async def submit_bid(
        self, db: AsyncSession, user: CurrentUser, product_id: str, req: SubmitBidRequest
    ) -> BidResponse:
        try:
            product = await self._lock_product(db, product_id)
            validate_bid_submission(product, user.id, req.amount)
            if await self._repo.has_accepted_bid(db, product_id):
                raise ProductNotAvailableError(product_id, RESERVED_STATUS)

            bid = await self._repo.insert_bid(
                db,
                Bid(
                    id=generate_id(BID_PREFIX),
                    product_id=product_id,
                    buyer_id=user.id,
                    amount=req.amount,
                    message=req.message,
                ),
            )
            await self._emitter.publish(
                db,
                product.seller_id,
                NotificationType.BID_RECEIVED,
                "New Bid Received",
                f'You received a bid of {_money(bid.amount)} on "{product.name}".',
                related_id=bid.id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Bid submitted: bid=%s product=%s buyer=%s amount=%d",
            bid.id, product_id, user.id, bid.amount,
        )
        return BidResponse.from_domain(bid)

    # ------------------------------------------------------------------
    # Accept / reject
    # ------------------------------------------------------------------

    async def accept_bid(
        self, db: AsyncSession, user: CurrentUser, bid_id: str
    ) -> AcceptBidResponse:
        try:
            bid = await self._repo.get_bid(db, bid_id)
            if bid is None:
                raise BidNotFoundError(bid_id)
            product = await self._lock_product(db, bid.product_id)
            ensure_seller(product, user.id)
            ensure_resolvable(bid, "accepted")
            if not product.is_active:
                raise ProductNotAvailableError(product.id, product.status)

            accepted, rejected = await self._repo.accept_and_reject_siblings(
                db, bid_id, product.id
            )
            if accepted is None:
                current = await self._repo.get_bid(db, bid_id)
                if current is not None and not current.is_pending:
                    raise BidAlreadyResolvedError(bid_id, current.status)
                raise ProductNotAvailableError(product.id, RESERVED_STATUS)

            await self._emitter.publish(
                db,
                accepted.buyer_id,
                NotificationType.BID_ACCEPTED,
                "Bid Accepted",
                f'Your bid of {_money(accepted.amount)} on "{product.name}" was accepted. '
                "Complete the payment to finish the purchase.",
                related_id=accepted.id,
            )
            await self._notify_rejected(db, product, rejected)

            payout_account = await self._profiles.get_payout_account(db, product.seller_id)
            setup_required = not payout_account
            if setup_required:
                await self._emitter.publish(
                    db,
                    product.seller_id,
                    NotificationType.PAYOUT_SETUP_REQUIRED,
                    "Connect a Payout Account",
                    f'Connect a payout account so the buyer of "{product.name}" can pay you.',
                    related_id=accepted.id,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Bid accepted: bid=%s product=%s rejected=%d",
            bid_id, product.id, len(rejected),
        )
        return AcceptBidResponse(
            bid=BidResponse.from_domain(accepted),
            rejected_bid_ids=[b.id for b in rejected],
            payout_setup_required=setup_required,
        )

    async def reject_bid(self, db: AsyncSession, user: CurrentUser, bid_id: str) -> BidResponse:
        try:
            bid = await self._repo.get_bid(db, bid_id)
            if bid is None:
                raise BidNotFoundError(bid_id)
            product = await self._products.get_product(db, bid.product_id)
            if product is None:
                raise ProductNotFoundError(bid.product_id)
            ensure_seller(product, user.id)
            ensure_resolvable(bid, "rejected")

            rejected = await self._repo.reject_bid(db, bid_id)
            if rejected is None:
                current = await self._repo.get_bid(db, bid_id)
                raise BidAlreadyResolvedError(bid_id, current.status if current else "unknown")
            await self._notify_rejected(db, product, [rejected])
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Bid rejected: bid=%s product=%s", bid_id, product.id)
        return BidResponse.from_domain(rejected)

    # ------------------------------------------------------------------
    # Buy now
    # ------------------------------------------------------------------

    async def buy_now(self, db: AsyncSession, user: CurrentUser, product_id: str) -> BidResponse:
        """Create a bid at the listed price that is accepted on insert."""
        try:
            product = await self._lock_product(db, product_id)
            if product.seller_id == user.id:
                raise SelfBiddingError()
            if not product.is_active:
                raise ProductNotAvailableError(product_id, product.status)
            if await self._repo.has_accepted_bid(db, product_id):
                raise ProductNotAvailableError(product_id, RESERVED_STATUS)
            if not await self._profiles.get_payout_account(db, product.seller_id):
                raise PayoutDestinationMissingError(product.seller_id)

            bid = await self._repo.insert_bid(
                db,
                Bid(
                    id=generate_id(BID_PREFIX),
                    product_id=product_id,
                    buyer_id=user.id,
                    amount=product.price,
                    message=None,
                    status="accepted",
                ),
            )
            rejected = await self._repo.reject_pending_siblings(db, product_id, bid.id)

            await self._emitter.publish(
                db,
                user.id,
                NotificationType.BID_ACCEPTED,
                "Purchase Reserved",
                f'"{product.name}" is reserved for you at {_money(bid.amount)}. '
                "Complete the payment to finish the purchase.",
                related_id=bid.id,
            )
            await self._emitter.publish(
                db,
                product.seller_id,
                NotificationType.PURCHASE_STARTED,
                "Buy Now Purchase",
                f'A buyer is purchasing "{product.name}" at the listed price.',
                related_id=bid.id,
            )
            await self._notify_rejected(db, product, rejected)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Buy now: bid=%s product=%s buyer=%s", bid.id, product_id, user.id)
        return BidResponse.from_domain(bid)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_product_bids(
        self,
        db: AsyncSession,
        user: CurrentUser,
        product_id: str,
        cursor: str | None,
        limit: int,
    ) -> BidListResponse:
        product = await self._products.get_product(db, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        ensure_seller(product, user.id)
        cursor_ts, cursor_id = decode_ts_cursor(cursor)
        bids = await self._repo.list_by_product(db, product_id, cursor_ts, cursor_id, limit + 1)
        return self._page(bids, limit)

    async def list_my_bids(
        self,
        db: AsyncSession,
        user: CurrentUser,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> BidListResponse:
        cursor_ts, cursor_id = decode_ts_cursor(cursor)
        bids = await self._repo.list_by_buyer(
            db, user.id, status, cursor_ts, cursor_id, limit + 1
        )
        return self._page(bids, limit)

    @staticmethod
    def _page(bids: list[Bid], limit: int) -> BidListResponse:
        has_more = len(bids) > limit
        page = bids[:limit]
        next_cursor = None
        if has_more and page and page[-1].created_at is not None:
            next_cursor = encode_ts_cursor(page[-1].created_at, page[-1].id)
        return BidListResponse(
            items=[BidResponse.from_domain(b) for b in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
