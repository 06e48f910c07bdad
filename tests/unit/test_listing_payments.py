"""Unit tests for ListingPaymentService: paid listing fees and featured placement."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from src.mp_catalog.domain.models import Product
from src.mp_common.errors import (
    AmountMismatchError,
    GatewayUnavailableError,
    InvalidListingPaymentTypeError,
    ListingPaymentNotFoundError,
    ListingProductRequiredError,
    ProductNotFoundError,
    UnauthorizedActorError,
)
from src.mp_gateway.auth.context import CurrentUser
from src.mp_payments.application.listing_service import ListingPaymentService
from src.mp_payments.domain.models import CheckoutSession, ListingPayment

SELLER = CurrentUser(id="seller-1")
NOW = datetime(2026, 5, 1, tzinfo=UTC)


def _make_product(seller_id: str = "seller-1") -> Product:
    return Product(
        id="prd_1", seller_id=seller_id, name="Wool Coat", description=None,
        price=2500, status="active", location=None, created_at=NOW, updated_at=NOW,
    )


def _make_payment(**overrides) -> ListingPayment:
    fields = dict(
        id="lpy_1", seller_id="seller-1", product_id="prd_1", type="featured_3_days",
        amount=10000, currency="inr",
    )
    fields.update(overrides)
    return ListingPayment(**fields)


def _make_service() -> tuple[ListingPaymentService, AsyncMock, AsyncMock, AsyncMock]:
    repo = AsyncMock()
    products = AsyncMock()
    gateway = AsyncMock()
    products.get_product.return_value = _make_product()
    repo.get_open.return_value = None
    repo.insert.side_effect = lambda db, payment: payment
    repo.attach_session.side_effect = lambda db, pid, sid, url: _make_payment(
        id=pid, gateway_session_id=sid, checkout_url=url
    )
    gateway.create_checkout_session.return_value = CheckoutSession(
        session_id="cs_listing", redirect_url="https://checkout.test/cs_listing"
    )
    svc = ListingPaymentService(repo=repo, product_repo=products, gateway=gateway)
    return svc, repo, products, gateway


class TestCreateListingPayment:
    async def test_featured_placement_checkout(self) -> None:
        svc, repo, _, gateway = _make_service()
        db = AsyncMock()

        result = await svc.create_listing_payment(db, SELLER, "featured_3_days", "prd_1")

        assert result.replayed is False
        assert result.amount == 10000
        assert result.checkout_url == "https://checkout.test/cs_listing"
        inserted = repo.insert.await_args.args[1]
        assert inserted.id.startswith("lpy_")
        assert inserted.seller_id == "seller-1"
        kwargs = gateway.create_checkout_session.await_args.kwargs
        assert kwargs["amount"] == 10000
        assert kwargs["product_name"] == "Featured Listing - 3 Days"
        assert kwargs["idempotency_key"] == f"listing:{inserted.id}"
        assert kwargs["metadata"]["listing_payment_id"] == inserted.id
        assert kwargs["metadata"]["type"] == "featured_3_days"
        assert "transfer_group" not in kwargs
        assert db.commit.await_count == 2

    async def test_listing_fee_without_product(self) -> None:
        svc, repo, products, gateway = _make_service()

        result = await svc.create_listing_payment(AsyncMock(), SELLER, "listing_fee", None)

        assert result.amount == 3000
        products.get_product.assert_not_awaited()
        assert gateway.create_checkout_session.await_args.kwargs["metadata"]["product_id"] == ""

    async def test_open_checkout_is_resumed(self) -> None:
        svc, repo, _, gateway = _make_service()
        repo.get_open.return_value = _make_payment(
            gateway_session_id="cs_old", checkout_url="https://checkout.test/cs_old"
        )

        result = await svc.create_listing_payment(AsyncMock(), SELLER, "featured_3_days", "prd_1")

        assert result.replayed is True
        assert result.session_id == "cs_old"
        repo.insert.assert_not_awaited()
        gateway.create_checkout_session.assert_not_awaited()

    async def test_row_without_session_retries_same_key(self) -> None:
        svc, repo, _, gateway = _make_service()
        repo.get_open.return_value = _make_payment(id="lpy_crashed")

        await svc.create_listing_payment(AsyncMock(), SELLER, "featured_3_days", "prd_1")

        repo.insert.assert_not_awaited()
        assert gateway.create_checkout_session.await_args.kwargs["idempotency_key"] == (
            "listing:lpy_crashed"
        )

    async def test_lost_insert_race_uses_winner(self) -> None:
        svc, repo, _, gateway = _make_service()
        repo.insert.side_effect = None
        repo.insert.return_value = None
        repo.get_open.side_effect = [None, _make_payment(id="lpy_winner")]

        await svc.create_listing_payment(AsyncMock(), SELLER, "featured_3_days", "prd_1")

        assert gateway.create_checkout_session.await_args.kwargs["idempotency_key"] == (
            "listing:lpy_winner"
        )

    async def test_unknown_type(self) -> None:
        svc, repo, _, _ = _make_service()
        with pytest.raises(InvalidListingPaymentTypeError):
            await svc.create_listing_payment(AsyncMock(), SELLER, "featured_30_days", "prd_1")
        repo.insert.assert_not_awaited()

    async def test_featured_needs_product(self) -> None:
        svc, _, _, gateway = _make_service()
        with pytest.raises(ListingProductRequiredError):
            await svc.create_listing_payment(AsyncMock(), SELLER, "featured_7_days", None)
        gateway.create_checkout_session.assert_not_awaited()

    async def test_unknown_product(self) -> None:
        svc, _, products, _ = _make_service()
        products.get_product.return_value = None
        with pytest.raises(ProductNotFoundError):
            await svc.create_listing_payment(AsyncMock(), SELLER, "featured_3_days", "prd_x")

    async def test_only_own_listing(self) -> None:
        svc, _, products, gateway = _make_service()
        products.get_product.return_value = _make_product(seller_id="someone-else")
        with pytest.raises(UnauthorizedActorError):
            await svc.create_listing_payment(AsyncMock(), SELLER, "featured_3_days", "prd_1")
        gateway.create_checkout_session.assert_not_awaited()

    async def test_gateway_outage_keeps_row_for_retry(self) -> None:
        svc, repo, _, gateway = _make_service()
        gateway.create_checkout_session.side_effect = GatewayUnavailableError("timeout")
        db = AsyncMock()

        with pytest.raises(GatewayUnavailableError):
            await svc.create_listing_payment(db, SELLER, "featured_3_days", "prd_1")

        db.commit.assert_awaited_once()
        repo.attach_session.assert_not_awaited()


class TestListingCheckoutCompleted:
    async def test_marks_paid_with_featured_days(self) -> None:
        svc, repo, _, _ = _make_service()
        repo.get_by_session_for_update.return_value = _make_payment(gateway_session_id="cs_1")
        repo.mark_paid.return_value = _make_payment(status="paid", paid_at=NOW)
        db = AsyncMock()

        newly_paid = await svc.handle_checkout_completed(db, "cs_1", 10000)

        assert newly_paid is True
        repo.mark_paid.assert_awaited_once_with(db, "lpy_1", 3)
        db.commit.assert_awaited_once()

    async def test_listing_fee_has_no_featured_window(self) -> None:
        svc, repo, _, _ = _make_service()
        repo.get_by_session_for_update.return_value = _make_payment(
            type="listing_fee", amount=3000, product_id=None
        )
        repo.mark_paid.return_value = _make_payment(type="listing_fee", status="paid")

        await svc.handle_checkout_completed(AsyncMock(), "cs_1", 3000)

        assert repo.mark_paid.await_args.args[2] is None

    async def test_repeated_event_is_noop(self) -> None:
        svc, repo, _, _ = _make_service()
        repo.get_by_session_for_update.return_value = _make_payment(status="paid")
        repo.mark_paid.return_value = None

        assert await svc.handle_checkout_completed(AsyncMock(), "cs_1", 10000) is False

    async def test_amount_mismatch_leaves_unpaid(self) -> None:
        svc, repo, _, _ = _make_service()
        repo.get_by_session_for_update.return_value = _make_payment()
        db = AsyncMock()

        with pytest.raises(AmountMismatchError):
            await svc.handle_checkout_completed(db, "cs_1", 100)

        repo.mark_paid.assert_not_awaited()
        db.rollback.assert_awaited()

    async def test_unknown_session(self) -> None:
        svc, repo, _, _ = _make_service()
        repo.get_by_session_for_update.return_value = None
        with pytest.raises(ListingPaymentNotFoundError):
            await svc.handle_checkout_completed(AsyncMock(), "cs_missing", 10000)
