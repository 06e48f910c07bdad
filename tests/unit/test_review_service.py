"""Unit tests for ReviewApplicationService."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from src.mp_catalog.domain.models import Product
from src.mp_common.enums import NotificationType
from src.mp_common.errors import (
    DuplicateReviewError,
    InvalidRatingError,
    ProductNotFoundError,
    SelfReviewError,
)
from src.mp_gateway.auth.context import CurrentUser
from src.mp_review.application.schemas import SubmitReviewRequest
from src.mp_review.application.service import ReviewApplicationService
from src.mp_review.domain.models import RatingSummary, SellerReview

BUYER = CurrentUser(id="buyer-1")


def _make_product(seller_id: str = "seller-1") -> Product:
    now = datetime.now(UTC)
    return Product(
        id="prd_1", seller_id=seller_id, name="Leather Boots", description=None,
        price=4000, status="sold", location=None, created_at=now, updated_at=now,
    )


def _make_service() -> tuple[ReviewApplicationService, AsyncMock, AsyncMock]:
    repo = AsyncMock()
    repo.insert_review.side_effect = lambda db, review: review
    products = AsyncMock()
    products.get_product.return_value = _make_product()
    emitter = AsyncMock()
    return ReviewApplicationService(repo=repo, product_repo=products, emitter=emitter), repo, emitter


class TestSubmitReview:
    async def test_review_notifies_seller(self) -> None:
        svc, _, emitter = _make_service()

        result = await svc.submit_review(
            AsyncMock(), BUYER, "seller-1",
            SubmitReviewRequest(product_id="prd_1", rating=5, comment="Great condition"),
        )

        assert result.rating == 5
        assert result.reviewer_id == "buyer-1"
        args = emitter.publish.await_args.args
        assert args[1] == "seller-1"
        assert args[2] == NotificationType.REVIEW_RECEIVED

    @pytest.mark.parametrize("rating", [0, 6, -1])
    async def test_rating_bounds(self, rating: int) -> None:
        svc, repo, _ = _make_service()
        with pytest.raises(InvalidRatingError):
            await svc.submit_review(
                AsyncMock(), BUYER, "seller-1", SubmitReviewRequest(product_id="prd_1", rating=rating)
            )
        repo.insert_review.assert_not_awaited()

    async def test_self_review(self) -> None:
        svc, _, _ = _make_service()
        with pytest.raises(SelfReviewError):
            await svc.submit_review(
                AsyncMock(), CurrentUser(id="seller-1"), "seller-1",
                SubmitReviewRequest(product_id="prd_1", rating=4),
            )

    async def test_product_of_another_seller(self) -> None:
        svc, _, _ = _make_service()
        with pytest.raises(ProductNotFoundError):
            await svc.submit_review(
                AsyncMock(), BUYER, "seller-2", SubmitReviewRequest(product_id="prd_1", rating=4)
            )

    async def test_duplicate_review(self) -> None:
        svc, repo, emitter = _make_service()
        repo.insert_review.side_effect = None
        repo.insert_review.return_value = None
        db = AsyncMock()

        with pytest.raises(DuplicateReviewError):
            await svc.submit_review(
                db, BUYER, "seller-1", SubmitReviewRequest(product_id="prd_1", rating=4)
            )
        emitter.publish.assert_not_awaited()
        db.rollback.assert_awaited_once()


class TestListSellerReviews:
    async def test_includes_summary(self) -> None:
        svc, repo, _ = _make_service()
        repo.list_for_seller.return_value = [
            SellerReview(id="rev_1", seller_id="seller-1", reviewer_id="buyer-1",
                         product_id="prd_1", rating=4, created_at=datetime.now(UTC)),
        ]
        repo.summary_for_seller.return_value = RatingSummary(review_count=1, average_rating=4.0)

        result = await svc.list_seller_reviews(AsyncMock(), "seller-1", None, 20)

        assert result.review_count == 1
        assert result.average_rating == 4.0
        assert result.has_more is False
        assert len(result.items) == 1
