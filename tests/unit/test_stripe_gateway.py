"""StripeGateway over a mocked StripeClient: request params and error mapping."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import stripe

from src.mp_common.errors import GatewayRejectedError, GatewayUnavailableError
from src.mp_payments.infrastructure.stripe_gateway import (
    StripeGateway,
    translate_stripe_error,
)


def _obj(**fields) -> MagicMock:
    """Stand-in for a StripeObject: only to_dict() is read."""
    obj = MagicMock()
    obj.to_dict.return_value = fields
    return obj


def _gateway() -> tuple[StripeGateway, MagicMock]:
    client = MagicMock()
    client.v1.checkout.sessions.create_async = AsyncMock(
        return_value=_obj(id="cs_1", url="https://checkout.stripe.test/cs_1")
    )
    client.v1.checkout.sessions.retrieve_async = AsyncMock()
    client.v1.transfers.create_async = AsyncMock(return_value=_obj(id="tr_1"))
    client.v1.accounts.create_async = AsyncMock(return_value=_obj(id="acct_new"))
    client.v1.account_links.create_async = AsyncMock(
        return_value=_obj(url="https://connect.stripe.test/onboard")
    )
    return StripeGateway(client, currency="inr"), client


class TestCheckoutSession:
    async def test_sends_params_and_idempotency_key(self) -> None:
        gateway, client = _gateway()

        session = await gateway.create_checkout_session(
            amount=2500,
            product_name="Wool Coat",
            success_url="https://shop.test/ok",
            cancel_url="https://shop.test/cancel",
            idempotency_key="checkout:bid_1",
            metadata={"bid_id": "bid_1", "platform_fee": "125"},
            transfer_group="bid_1",
        )

        assert session.session_id == "cs_1"
        assert session.redirect_url == "https://checkout.stripe.test/cs_1"
        call = client.v1.checkout.sessions.create_async.await_args
        assert call.kwargs["options"] == {"idempotency_key": "checkout:bid_1"}
        params = call.kwargs["params"]
        assert params["mode"] == "payment"
        price_data = params["line_items"][0]["price_data"]
        assert price_data["unit_amount"] == 2500
        assert price_data["currency"] == "inr"
        assert price_data["product_data"]["name"] == "Wool Coat"
        assert params["payment_intent_data"] == {"transfer_group": "bid_1"}
        assert params["metadata"] == {"bid_id": "bid_1", "platform_fee": "125"}

    async def test_no_transfer_group_for_platform_purchases(self) -> None:
        gateway, client = _gateway()

        await gateway.create_checkout_session(
            amount=3000,
            product_name="Additional Product Listing Fee",
            success_url="https://shop.test/ok",
            cancel_url="https://shop.test/sell",
            idempotency_key="listing:lpy_1",
            metadata={"listing_payment_id": "lpy_1"},
        )

        params = client.v1.checkout.sessions.create_async.await_args.kwargs["params"]
        assert "payment_intent_data" not in params

    async def test_get_session_state(self) -> None:
        gateway, client = _gateway()
        client.v1.checkout.sessions.retrieve_async.return_value = _obj(
            id="cs_1", payment_status="paid", amount_total=2500, metadata={"bid_id": "bid_1"}
        )

        state = await gateway.get_checkout_session("cs_1")

        assert state.is_paid
        assert state.amount_total == 2500
        assert state.metadata == {"bid_id": "bid_1"}
        assert client.v1.checkout.sessions.retrieve_async.await_args.args == ("cs_1",)


class TestTransfer:
    async def test_transfer_params(self) -> None:
        gateway, client = _gateway()

        transfer = await gateway.create_transfer(
            amount=950,
            destination_account="acct_seller",
            idempotency_key="payout:txn_1",
            metadata={"transaction_id": "txn_1", "bid_id": "bid_1"},
        )

        assert transfer.transfer_id == "tr_1"
        call = client.v1.transfers.create_async.await_args
        assert call.kwargs["params"]["amount"] == 950
        assert call.kwargs["params"]["destination"] == "acct_seller"
        assert call.kwargs["params"]["transfer_group"] == "bid_1"
        assert call.kwargs["options"] == {"idempotency_key": "payout:txn_1"}


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error",
        [
            stripe.APIConnectionError("Network is unreachable"),
            stripe.RateLimitError("Too many requests", http_status=429),
            stripe.APIError("Internal error", http_status=500),
            stripe.APIError("Bad gateway", http_status=502),
        ],
    )
    async def test_transient_errors_are_unavailable(self, error: stripe.StripeError) -> None:
        gateway, client = _gateway()
        client.v1.transfers.create_async.side_effect = error

        with pytest.raises(GatewayUnavailableError) as exc:
            await gateway.create_transfer(950, "acct_seller", "payout:txn_1")

        assert exc.value.retryable is True
        assert exc.value.__cause__ is error

    async def test_invalid_destination_is_rejected(self) -> None:
        gateway, client = _gateway()
        client.v1.transfers.create_async.side_effect = stripe.InvalidRequestError(
            "No such destination: 'acct_gone'", "destination",
            code="resource_missing", http_status=400,
        )

        with pytest.raises(GatewayRejectedError) as exc:
            await gateway.create_transfer(950, "acct_gone", "payout:txn_1")

        assert "No such destination" in exc.value.message
        assert exc.value.retryable is False

    def test_authentication_error_is_permanent(self) -> None:
        error = translate_stripe_error(
            stripe.AuthenticationError("Invalid API Key provided", http_status=401)
        )
        assert isinstance(error, GatewayRejectedError)

    def test_any_5xx_is_transient(self) -> None:
        error = translate_stripe_error(stripe.StripeError("upstream", http_status=503))
        assert isinstance(error, GatewayUnavailableError)


class TestMerchantAccount:
    async def test_creates_account_then_link(self) -> None:
        gateway, client = _gateway()

        account = await gateway.create_merchant_account(
            country="IN",
            email="seller@example.com",
            refresh_url="https://shop.test/refresh",
            return_url="https://shop.test/return",
            idempotency_key="account:seller-1",
        )

        assert account.account_id == "acct_new"
        assert account.onboarding_url == "https://connect.stripe.test/onboard"
        account_call = client.v1.accounts.create_async.await_args
        assert account_call.kwargs["params"]["email"] == "seller@example.com"
        assert account_call.kwargs["options"] == {"idempotency_key": "account:seller-1"}
        link_call = client.v1.account_links.create_async.await_args
        assert link_call.kwargs["params"]["account"] == "acct_new"
        assert link_call.kwargs["params"]["type"] == "account_onboarding"
        assert link_call.kwargs["options"] == {"idempotency_key": "account:seller-1:link"}

    async def test_account_rejection_surfaces(self) -> None:
        gateway, client = _gateway()
        client.v1.accounts.create_async.side_effect = stripe.InvalidRequestError(
            "Country XX is not supported", "country", http_status=400
        )

        with pytest.raises(GatewayRejectedError):
            await gateway.create_merchant_account(
                "XX", None, "https://shop.test/r", "https://shop.test/ok", "account:seller-1"
            )
        client.v1.account_links.create_async.assert_not_awaited()
