"""Pydantic schemas for mp_bidding API."""

from pydantic import BaseModel, Field

from config.settings import settings
from src.mp_bidding.domain.models import Bid
from src.mp_common.money import minor_to_display

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SubmitBidRequest(BaseModel):
    # Sign is validated by the bid rules so the error carries code 3001.
    amount: int = Field(..., description="Offer in minor units")
    message: str | None = Field(None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BidResponse(BaseModel):
    id: str
    product_id: str
    buyer_id: str
    amount: int
    amount_display: str
    message: str | None
    status: str
    created_at: str | None
    resolved_at: str | None

    @classmethod
    def from_domain(cls, b: Bid) -> "BidResponse":
        return cls(
            id=b.id,
            product_id=b.product_id,
            buyer_id=b.buyer_id,
            amount=b.amount,
            amount_display=minor_to_display(b.amount, settings.CURRENCY),
            message=b.message,
            status=b.status,
            created_at=b.created_at.isoformat() if b.created_at else None,
            resolved_at=b.resolved_at.isoformat() if b.resolved_at else None,
        )


class AcceptBidResponse(BaseModel):
    bid: BidResponse
    rejected_bid_ids: list[str]
    payout_setup_required: bool


class BidListResponse(BaseModel):
    items: list[BidResponse]
    next_cursor: str | None
    has_more: bool
