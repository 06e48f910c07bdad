"""ListingPaymentService: sellers pay for extra listings and featured placement.

One pending row per seller, type and product. The row is written before the
gateway call and the checkout uses idempotency key ``listing:{payment_id}``,
so a repeated click or a crash between the two steps resumes the same
checkout session instead of charging twice.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_catalog.domain.repository import ProductRepositoryProtocol
from src.mp_catalog.infrastructure.persistence import ProductRepository
from src.mp_common.errors import (
    AmountMismatchError,
    InternalError,
    InvalidListingPaymentTypeError,
    ListingPaymentNotFoundError,
    ListingProductRequiredError,
    ProductNotFoundError,
    UnauthorizedActorError,
)
from src.mp_common.id_generator import LISTING_PAYMENT_PREFIX, generate_id
from src.mp_gateway.auth.context import CurrentUser
from src.mp_payments.application.schemas import ListingPaymentResponse
from src.mp_payments.domain.gateway import PaymentGatewayProtocol
from src.mp_payments.domain.models import LISTING_PRODUCTS, ListingPayment
from src.mp_payments.domain.repository import ListingPaymentRepositoryProtocol
from src.mp_payments.infrastructure.persistence import ListingPaymentRepository
from src.mp_payments.infrastructure.stripe_gateway import get_payment_gateway

logger = logging.getLogger(__name__)


def _response(payment: ListingPayment, replayed: bool) -> ListingPaymentResponse:
    return ListingPaymentResponse(
        id=payment.id,
        type=payment.type,
        product_id=payment.product_id,
        amount=payment.amount,
        currency=payment.currency,
        status=payment.status,
        session_id=payment.gateway_session_id,
        checkout_url=payment.checkout_url,
        replayed=replayed,
    )


class ListingPaymentService:
    def __init__(
        self,
        repo: ListingPaymentRepositoryProtocol | None = None,
        product_repo: ProductRepositoryProtocol | None = None,
        gateway: PaymentGatewayProtocol | None = None,
    ) -> None:
        self._repo: ListingPaymentRepositoryProtocol = repo or ListingPaymentRepository()
        self._products: ProductRepositoryProtocol = product_repo or ProductRepository()
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGatewayProtocol:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    async def create_listing_payment(
        self,
        db: AsyncSession,
        user: CurrentUser,
        payment_type: str,
        product_id: str | None,
    ) -> ListingPaymentResponse:
        listing_product = LISTING_PRODUCTS.get(payment_type)
        if listing_product is None:
            raise InvalidListingPaymentTypeError(payment_type)
        if listing_product.featured_days is not None and product_id is None:
            raise ListingProductRequiredError(payment_type)
        if product_id is not None:
            product = await self._products.get_product(db, product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            if product.seller_id != user.id:
                raise UnauthorizedActorError("only the seller can pay for this listing")

        try:
            payment = await self._repo.get_open(db, user.id, payment_type, product_id)
            if payment is None:
                payment = await self._repo.insert(
                    db,
                    ListingPayment(
                        id=generate_id(LISTING_PAYMENT_PREFIX),
                        seller_id=user.id,
                        product_id=product_id,
                        type=payment_type,
                        amount=listing_product.amount,
                        currency=settings.CURRENCY,
                    ),
                )
                if payment is None:
                    # A concurrent request inserted the open row first.
                    payment = await self._repo.get_open(db, user.id, payment_type, product_id)
                    if payment is None:
                        raise InternalError("Listing payment vanished after insert conflict")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if payment.has_session:
            logger.info("Listing payment replay: payment=%s", payment.id)
            return _response(payment, replayed=True)

        session = await self.gateway.create_checkout_session(
            amount=payment.amount,
            product_name=listing_product.name,
            success_url=(
                f"{settings.PUBLIC_BASE_URL}/payment-success"
                f"?session_id={{CHECKOUT_SESSION_ID}}&type={payment_type}"
            ),
            cancel_url=f"{settings.PUBLIC_BASE_URL}/sell",
            idempotency_key=f"listing:{payment.id}",
            metadata={
                "listing_payment_id": payment.id,
                "type": payment_type,
                "product_id": product_id or "",
                "seller_id": user.id,
            },
        )

        try:
            attached = await self._repo.attach_session(
                db, payment.id, session.session_id, session.redirect_url
            )
            if attached is None:
                attached = await self._repo.get(db, payment.id)
                if attached is None:
                    raise ListingPaymentNotFoundError(payment.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Listing payment started: payment=%s type=%s amount=%d session=%s",
            attached.id, attached.type, attached.amount, attached.gateway_session_id,
        )
        return _response(attached, replayed=False)

    async def handle_checkout_completed(
        self, db: AsyncSession, session_id: str, amount_total: int | None
    ) -> bool:
        """Mark the payment paid. Returns False when it already was."""
        try:
            payment = await self._repo.get_by_session_for_update(db, session_id)
            if payment is None:
                raise ListingPaymentNotFoundError(f"session:{session_id}")
            if amount_total != payment.amount:
                logger.error(
                    "Listing checkout amount mismatch: payment=%s expected=%d charged=%s",
                    payment.id, payment.amount, amount_total,
                )
                raise AmountMismatchError(payment.amount, amount_total)
            listing_product = LISTING_PRODUCTS[payment.type]
            paid = await self._repo.mark_paid(db, payment.id, listing_product.featured_days)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if paid is not None:
            logger.info(
                "Listing payment paid: payment=%s type=%s featured_until=%s",
                paid.id, paid.type, paid.featured_until,
            )
        return paid is not None
