"""Pydantic schemas for mp_review API."""

from pydantic import BaseModel, Field

from src.mp_review.domain.models import SellerReview


class SubmitReviewRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    # Range checked by the service so the error carries code 6002.
    rating: int
    comment: str | None = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    id: str
    seller_id: str
    reviewer_id: str
    product_id: str
    rating: int
    comment: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, r: SellerReview) -> "ReviewResponse":
        return cls(
            id=r.id,
            seller_id=r.seller_id,
            reviewer_id=r.reviewer_id,
            product_id=r.product_id,
            rating=r.rating,
            comment=r.comment,
            created_at=r.created_at.isoformat() if r.created_at else None,
        )


class SellerReviewsResponse(BaseModel):
    seller_id: str
    review_count: int
    average_rating: float | None
    items: list[ReviewResponse]
    next_cursor: str | None
    has_more: bool
