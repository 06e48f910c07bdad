"""Pydantic schemas for mp_settlement API."""

from pydantic import BaseModel, Field

from src.mp_common.money import minor_to_display
from src.mp_settlement.domain.models import Payout, Transaction

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class InitiatePaymentRequest(BaseModel):
    # Must equal the accepted bid amount exactly; checked by the orchestrator.
    amount: int = Field(..., description="Amount in minor units")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


def _iso(value: object) -> str | None:
    return value.isoformat() if value is not None else None  # type: ignore[attr-defined]


class TransactionResponse(BaseModel):
    id: str
    bid_id: str
    buyer_id: str
    seller_id: str
    product_id: str
    amount: int
    amount_display: str
    platform_fee: int
    seller_amount: int
    currency: str
    status: str
    confirmation_status: str
    checkout_url: str | None
    paid_at: str | None
    confirmed_at: str | None
    disputed_at: str | None
    completed_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, t: Transaction) -> "TransactionResponse":
        return cls(
            id=t.id,
            bid_id=t.bid_id,
            buyer_id=t.buyer_id,
            seller_id=t.seller_id,
            product_id=t.product_id,
            amount=t.amount,
            amount_display=minor_to_display(t.amount, t.currency),
            platform_fee=t.platform_fee,
            seller_amount=t.seller_amount,
            currency=t.currency,
            status=t.status,
            confirmation_status=t.confirmation_status,
            checkout_url=t.checkout_url,
            paid_at=_iso(t.paid_at),
            confirmed_at=_iso(t.confirmed_at),
            disputed_at=_iso(t.disputed_at),
            completed_at=_iso(t.completed_at),
            created_at=_iso(t.created_at),
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    next_cursor: str | None
    has_more: bool


class InitiatePaymentResponse(BaseModel):
    transaction_id: str
    checkout_url: str | None
    session_id: str
    amount: int
    platform_fee: int
    seller_amount: int
    replayed: bool


class PayoutResult(BaseModel):
    transaction_id: str
    transfer_id: str | None
    status: str
    amount: int
    attempts: int
    already_completed: bool = False

    @classmethod
    def from_domain(cls, p: Payout, already_completed: bool = False) -> "PayoutResult":
        return cls(
            transaction_id=p.transaction_id,
            transfer_id=p.gateway_transfer_id,
            status=p.status,
            amount=p.amount,
            attempts=p.attempts,
            already_completed=already_completed,
        )


class PayoutError(BaseModel):
    code: int
    message: str
    retryable: bool


class ConfirmReceiptResponse(BaseModel):
    transaction: TransactionResponse
    payout: PayoutResult | None = None
    payout_error: PayoutError | None = None


class CheckoutCompletionResponse(BaseModel):
    transaction_id: str
    newly_paid: bool
    product_sold: bool
    payout: PayoutResult | None = None
    payout_error: PayoutError | None = None


class PayoutSweepItem(BaseModel):
    transaction_id: str
    status: str
    error: PayoutError | None = None


class PayoutSweepResponse(BaseModel):
    attempted: int
    succeeded: int
    failed: int
    items: list[PayoutSweepItem]
