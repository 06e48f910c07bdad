"""HTTP surface: auth, envelopes, error mapping and the webhook endpoint."""

import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from config.settings import settings
from src.main import app
from src.mp_bidding.api import router as bidding_router
from src.mp_common.database import get_db_session
from src.mp_common.datetime_utils import unix_now
from src.mp_common.errors import AmountMismatchError, SelfBiddingError
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_payments.api import router as payments_router
from src.mp_settlement.api.router import get_orchestrator
from src.mp_payments.application.schemas import ListingPaymentResponse
from src.mp_settlement.application.schemas import CheckoutCompletionResponse, PayoutResult


async def _fake_db():
    yield AsyncMock()


@pytest.fixture
def as_user():
    def _login(user_id: str = "buyer-1") -> None:
        app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=user_id)
        app.dependency_overrides[get_db_session] = _fake_db
    return _login


@pytest.fixture
def orchestrator():
    mock = AsyncMock()
    app.dependency_overrides[get_orchestrator] = lambda: mock
    app.dependency_overrides[get_db_session] = _fake_db
    return mock


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_bid_requires_token(client: AsyncClient) -> None:
    resp = await client.post("/api/v1/products/prd_1/bids", json={"amount": 2000})
    assert resp.status_code == 401


async def test_app_error_mapped_to_envelope(
    client: AsyncClient, as_user, monkeypatch: pytest.MonkeyPatch
) -> None:
    as_user("seller-1")
    service = AsyncMock()
    service.submit_bid.side_effect = SelfBiddingError()
    monkeypatch.setattr(bidding_router, "_service", service)

    resp = await client.post("/api/v1/products/prd_1/bids", json={"amount": 2000})

    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == 3002
    assert body["data"] is None


async def test_payment_amount_mismatch(client: AsyncClient, as_user, orchestrator) -> None:
    as_user()
    orchestrator.initiate_payment.side_effect = AmountMismatchError(2500, 2400)

    resp = await client.post("/api/v1/bids/bid_1/payment", json={"amount": 2400})

    assert resp.status_code == 422
    assert resp.json()["code"] == 4002


async def test_admin_requires_operator(client: AsyncClient, as_user) -> None:
    as_user("buyer-1")
    resp = await client.get("/api/v1/admin/invariants")
    assert resp.status_code == 403
    assert resp.json()["code"] == 1006


class TestWebhook:
    def _signed(self, event: dict) -> tuple[bytes, dict[str, str]]:
        payload = json.dumps(event).encode()
        ts = unix_now()
        signed = f"{ts}.".encode() + payload
        sig = hmac.new(
            settings.STRIPE_WEBHOOK_SECRET.encode(), signed, hashlib.sha256
        ).hexdigest()
        return payload, {"Stripe-Signature": f"t={ts},v1={sig}", "Content-Type": "application/json"}

    async def test_bad_signature(self, client: AsyncClient, orchestrator) -> None:
        resp = await client.post(
            "/api/v1/payments/webhook",
            content=b"{}",
            headers={"Stripe-Signature": "t=1,v1=deadbeef"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == 5003
        orchestrator.handle_checkout_completed.assert_not_awaited()

    async def test_paid_checkout_is_recorded(self, client: AsyncClient, orchestrator) -> None:
        orchestrator.handle_checkout_completed.return_value = CheckoutCompletionResponse(
            transaction_id="txn_1", newly_paid=True, product_sold=True
        )
        payload, headers = self._signed({
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {"object": {
                "id": "cs_1", "payment_status": "paid", "amount_total": 2500,
                "metadata": {"bid_id": "bid_1"},
            }},
        })

        resp = await client.post("/api/v1/payments/webhook", content=payload, headers=headers)

        assert resp.status_code == 200
        assert resp.json()["data"]["handled"] is True
        assert orchestrator.handle_checkout_completed.await_args.args[1:] == ("cs_1", 2500)

    async def test_other_events_acknowledged(self, client: AsyncClient, orchestrator) -> None:
        payload, headers = self._signed({
            "id": "evt_2", "type": "charge.refunded", "data": {"object": {"id": "ch_1"}},
        })

        resp = await client.post("/api/v1/payments/webhook", content=payload, headers=headers)

        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "received": True, "event_type": "charge.refunded", "handled": False,
        }
        orchestrator.handle_checkout_completed.assert_not_awaited()

    async def test_paid_listing_checkout_routed_to_listing_payments(
        self, client: AsyncClient, orchestrator, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        listing_service = AsyncMock()
        listing_service.handle_checkout_completed.return_value = True
        monkeypatch.setattr(payments_router, "_listing_service", listing_service)
        payload, headers = self._signed({
            "id": "evt_3",
            "type": "checkout.session.completed",
            "data": {"object": {
                "id": "cs_listing", "payment_status": "paid", "amount_total": 10000,
                "metadata": {"listing_payment_id": "lpy_1", "type": "featured_3_days"},
            }},
        })

        resp = await client.post("/api/v1/payments/webhook", content=payload, headers=headers)

        assert resp.status_code == 200
        assert resp.json()["data"]["handled"] is True
        assert listing_service.handle_checkout_completed.await_args.args[1:] == (
            "cs_listing", 10000,
        )
        orchestrator.handle_checkout_completed.assert_not_awaited()

    async def test_account_updated_syncs_onboarding(
        self, client: AsyncClient, orchestrator, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        onboarding = AsyncMock()
        onboarding.handle_account_updated.return_value = True
        monkeypatch.setattr(payments_router, "_service", onboarding)
        payload, headers = self._signed({
            "id": "evt_4",
            "type": "account.updated",
            "data": {"object": {
                "id": "acct_new", "details_submitted": True, "payouts_enabled": True,
            }},
        })

        resp = await client.post("/api/v1/payments/webhook", content=payload, headers=headers)

        assert resp.status_code == 200
        assert resp.json()["data"]["handled"] is True
        account = onboarding.handle_account_updated.await_args.args[1]
        assert account["id"] == "acct_new"
        assert account["payouts_enabled"] is True


async def test_listing_payment_endpoint(
    client: AsyncClient, as_user, monkeypatch: pytest.MonkeyPatch
) -> None:
    as_user("seller-1")
    listing_service = AsyncMock()
    listing_service.create_listing_payment.return_value = ListingPaymentResponse(
        id="lpy_1", type="listing_fee", product_id=None, amount=3000, currency="inr",
        status="pending", session_id="cs_1", checkout_url="https://checkout.test/cs_1",
        replayed=False,
    )
    monkeypatch.setattr(payments_router, "_listing_service", listing_service)

    resp = await client.post("/api/v1/payments/listing", json={"type": "listing_fee"})

    assert resp.status_code == 201
    assert resp.json()["data"]["checkout_url"] == "https://checkout.test/cs_1"
    assert listing_service.create_listing_payment.await_args.args[2:] == ("listing_fee", None)


async def test_listing_payment_rejects_unknown_type(client: AsyncClient, as_user) -> None:
    as_user("seller-1")
    resp = await client.post("/api/v1/payments/listing", json={"type": "featured_30_days"})
    assert resp.status_code == 422


async def test_seller_retries_payout(client: AsyncClient, as_user, orchestrator) -> None:
    as_user("seller-1")
    orchestrator.retry_payout.return_value = PayoutResult(
        transaction_id="txn_1", status="succeeded",
        transfer_id="tr_2", amount=950, attempts=2,
    )

    resp = await client.post("/api/v1/transactions/txn_1/payout/retry")

    assert resp.status_code == 200
    assert resp.json()["data"]["transfer_id"] == "tr_2"
    assert orchestrator.retry_payout.await_args.args[2] == "txn_1"
