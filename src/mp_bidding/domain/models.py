"""Bid domain model: pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class Bid:
    id: str
    product_id: str
    buyer_id: str
    amount: int  # minor units
    message: str | None = None
    status: str = "pending"  # pending / accepted / rejected
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resolved_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def is_accepted(self) -> bool:
        return self.status == "accepted"
