"""Domain models for mp_payments: gateway value objects and payout profiles."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    redirect_url: str


@dataclass(frozen=True)
class CheckoutSessionState:
    """What the gateway reports for a checkout session on lookup."""

    session_id: str
    payment_status: str     # "paid" | "unpaid" | "no_payment_required"
    amount_total: int | None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


@dataclass(frozen=True)
class Transfer:
    transfer_id: str


@dataclass(frozen=True)
class MerchantAccount:
    account_id: str
    onboarding_url: str


@dataclass
class PayoutProfile:
    user_id: str
    email: str | None
    payout_account_id: str | None
    payout_onboarding_completed: bool

    @property
    def has_destination(self) -> bool:
        return bool(self.payout_account_id)


@dataclass(frozen=True)
class ListingProduct:
    """A paid add-on a seller can buy for their listings."""

    type: str
    amount: int                 # minor units
    name: str
    featured_days: int | None = None


LISTING_PRODUCTS: dict[str, ListingProduct] = {
    p.type: p
    for p in (
        ListingProduct("listing_fee", 3000, "Additional Product Listing Fee"),
        ListingProduct("featured_3_days", 10000, "Featured Listing - 3 Days", 3),
        ListingProduct("featured_7_days", 20000, "Featured Listing - 7 Days", 7),
    )
}


@dataclass
class ListingPayment:
    id: str
    seller_id: str
    product_id: str | None
    type: str
    amount: int
    currency: str
    status: str = "pending"     # pending / paid
    gateway_session_id: str | None = None
    checkout_url: str | None = None
    paid_at: datetime | None = None
    featured_until: datetime | None = None
    created_at: datetime | None = None

    @property
    def has_session(self) -> bool:
        return bool(self.gateway_session_id and self.checkout_url)
