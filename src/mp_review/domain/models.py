"""Seller review models."""
from dataclasses import dataclass
from datetime import datetime

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class SellerReview:
    id: str
    seller_id: str
    reviewer_id: str
    product_id: str
    rating: int
    comment: str | None = None
    created_at: datetime | None = None


@dataclass
class RatingSummary:
    review_count: int
    average_rating: float | None  # None when the seller has no reviews
