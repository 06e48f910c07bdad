"""Settlement ledger models: pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class Transaction:
    id: str
    bid_id: str
    buyer_id: str
    seller_id: str
    product_id: str
    amount: int          # minor units, == accepted bid amount
    platform_fee: int
    seller_amount: int   # amount - platform_fee
    currency: str
    gateway_session_id: str
    checkout_url: str | None = None
    status: str = "pending"                 # pending / completed / failed
    confirmation_status: str = "pending"    # pending / confirmed / disputed
    paid_at: datetime | None = None
    confirmed_at: datetime | None = None
    disputed_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.paid_at is not None

    @property
    def is_confirmed(self) -> bool:
        return self.confirmation_status == "confirmed"

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.buyer_id, self.seller_id)


@dataclass
class Payout:
    id: str
    transaction_id: str
    seller_id: str
    destination_account: str
    amount: int
    status: str = "pending"  # pending / succeeded / failed / rejected
    gateway_transfer_id: str | None = None
    attempts: int = 0
    last_error: str | None = None
    reopen_count: int = 0   # bumped each time a rejected payout is reopened
    created_at: datetime | None = None
    updated_at: datetime | None = None
