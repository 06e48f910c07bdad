"""Bid lifecycle rules: pending → accepted | rejected, both terminal.

Pure checks with no I/O. The persistence layer repeats the pending guard as
a compare-and-set so a stale read can never resolve a bid twice.
"""
from src.mp_bidding.domain.models import Bid
from src.mp_catalog.domain.models import Product
from src.mp_common.errors import (
    BidAlreadyResolvedError,
    InvalidAmountError,
    ProductNotAvailableError,
    SelfBiddingError,
    UnauthorizedActorError,
)

BID_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"accepted", "rejected"}),
    "accepted": frozenset(),
    "rejected": frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in BID_TRANSITIONS.get(current, frozenset())


def validate_bid_submission(product: Product, buyer_id: str, amount: int) -> None:
    """Checked in this order: amount, self-bid, product availability."""
    if amount <= 0:
        raise InvalidAmountError(amount)
    if product.seller_id == buyer_id:
        raise SelfBiddingError()
    if not product.is_active:
        raise ProductNotAvailableError(product.id, product.status)


def ensure_seller(product: Product, actor_id: str) -> None:
    if product.seller_id != actor_id:
        raise UnauthorizedActorError("only the seller can resolve bids on this product")


def ensure_resolvable(bid: Bid, target: str) -> None:
    if not can_transition(bid.status, target):
        raise BidAlreadyResolvedError(bid.id, bid.status)
