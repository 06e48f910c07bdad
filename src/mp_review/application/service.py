"""ReviewApplicationService: buyers rate sellers, one review per product."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.domain.repository import ProductRepositoryProtocol
from src.mp_catalog.infrastructure.persistence import ProductRepository
from src.mp_common.enums import NotificationType
from src.mp_common.errors import (
    DuplicateReviewError,
    InvalidRatingError,
    ProductNotFoundError,
    SelfReviewError,
)
from src.mp_common.id_generator import REVIEW_PREFIX, generate_id
from src.mp_common.pagination import decode_ts_cursor, encode_ts_cursor
from src.mp_gateway.auth.context import CurrentUser
from src.mp_notification.application.emitter import NotificationEmitter
from src.mp_review.application.schemas import (
    ReviewResponse,
    SellerReviewsResponse,
    SubmitReviewRequest,
)
from src.mp_review.domain.models import MAX_RATING, MIN_RATING, SellerReview
from src.mp_review.domain.repository import ReviewRepositoryProtocol
from src.mp_review.infrastructure.persistence import ReviewRepository

logger = logging.getLogger(__name__)


class ReviewApplicationService:
    def __init__(
        self,
        repo: ReviewRepositoryProtocol | None = None,
        product_repo: ProductRepositoryProtocol | None = None,
        emitter: NotificationEmitter | None = None,
    ) -> None:
        self._repo: ReviewRepositoryProtocol = repo or ReviewRepository()
        self._products: ProductRepositoryProtocol = product_repo or ProductRepository()
        self._emitter = emitter or NotificationEmitter()

    async def submit_review(
        self,
        db: AsyncSession,
        user: CurrentUser,
        seller_id: str,
        req: SubmitReviewRequest,
    ) -> ReviewResponse:
        if not (MIN_RATING <= req.rating <= MAX_RATING):
            raise InvalidRatingError(req.rating)
        if seller_id == user.id:
            raise SelfReviewError()
        product = await self._products.get_product(db, req.product_id)
        # A review is always about one of the seller's own listings.
        if product is None or product.seller_id != seller_id:
            raise ProductNotFoundError(req.product_id)

        try:
            review = await self._repo.insert_review(
                db,
                SellerReview(
                    id=generate_id(REVIEW_PREFIX),
                    seller_id=seller_id,
                    reviewer_id=user.id,
                    product_id=req.product_id,
                    rating=req.rating,
                    comment=req.comment,
                ),
            )
            if review is None:
                raise DuplicateReviewError(req.product_id)
            await self._emitter.publish(
                db,
                seller_id,
                NotificationType.REVIEW_RECEIVED,
                "New Review",
                f'You received a {req.rating}-star review for "{product.name}".',
                related_id=review.id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Review submitted: review=%s seller=%s rating=%d", review.id, seller_id, req.rating
        )
        return ReviewResponse.from_domain(review)

    async def list_seller_reviews(
        self, db: AsyncSession, seller_id: str, cursor: str | None, limit: int
    ) -> SellerReviewsResponse:
        cursor_ts, cursor_id = decode_ts_cursor(cursor)
        reviews = await self._repo.list_for_seller(db, seller_id, cursor_ts, cursor_id, limit + 1)
        summary = await self._repo.summary_for_seller(db, seller_id)
        has_more = len(reviews) > limit
        page = reviews[:limit]
        next_cursor = None
        if has_more and page and page[-1].created_at is not None:
            next_cursor = encode_ts_cursor(page[-1].created_at, page[-1].id)
        return SellerReviewsResponse(
            seller_id=seller_id,
            review_count=summary.review_count,
            average_rating=summary.average_rating,
            items=[ReviewResponse.from_domain(r) for r in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
