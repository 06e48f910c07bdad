"""StripeGateway: PaymentGatewayProtocol over the official stripe SDK.

Settlement model: separate charges and transfers. The buyer pays the
platform account through Checkout; the seller's share is moved later by
create_transfer once the buyer confirms receipt. The checkout carries a
transfer_group (the bid id) so both legs reconcile in the dashboard.

Network retries (connection errors, 409 lock timeouts, 429, 5xx) are left to
the SDK via ``max_network_retries``. Every mutating call carries an
idempotency key, so a retried request that already succeeded upstream
returns the original object instead of a duplicate.

What still fails after the SDK gives up is classified here:
  APIConnectionError / RateLimitError / APIError / 5xx  → GatewayUnavailableError
  any other StripeError                                 → GatewayRejectedError
"""

import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

import stripe

from config.settings import settings
from src.mp_common.errors import AppError, GatewayRejectedError, GatewayUnavailableError
from src.mp_payments.domain.models import (
    CheckoutSession,
    CheckoutSessionState,
    MerchantAccount,
    Transfer,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


def _error_message(exc: stripe.StripeError) -> str:
    return exc.user_message or str(exc) or exc.__class__.__name__


def translate_stripe_error(exc: stripe.StripeError) -> AppError:
    status = exc.http_status or 0
    if isinstance(exc, _TRANSIENT_ERRORS) or status >= 500:
        return GatewayUnavailableError(_error_message(exc))
    return GatewayRejectedError(_error_message(exc))


class StripeGateway:
    def __init__(
        self,
        client: stripe.StripeClient,
        currency: str = "inr",
        http_client: stripe.HTTPXClient | None = None,
    ) -> None:
        self._client = client
        self._currency = currency
        self._http_client = http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.close_async()
            self._http_client = None

    async def _call(self, operation: str, pending: Awaitable[T]) -> T:
        try:
            return await pending
        except stripe.StripeError as exc:
            error = translate_stripe_error(exc)
            if isinstance(error, GatewayUnavailableError):
                logger.error(
                    "Gateway unavailable: %s status=%s error=%s",
                    operation, exc.http_status, exc.__class__.__name__,
                )
            else:
                logger.warning(
                    "Gateway rejected %s: status=%s code=%s message=%s",
                    operation, exc.http_status, exc.code, _error_message(exc),
                )
            raise error from exc

    async def create_checkout_session(
        self,
        amount: int,
        product_name: str,
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
        metadata: dict[str, str],
        transfer_group: str | None = None,
    ) -> CheckoutSession:
        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": self._currency,
                        "unit_amount": amount,
                        "product_data": {"name": product_name},
                    },
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": {k: str(v) for k, v in metadata.items()},
        }
        if transfer_group:
            params["payment_intent_data"] = {"transfer_group": transfer_group}
        session = await self._call(
            "checkout.sessions.create",
            self._client.v1.checkout.sessions.create_async(
                params=params, options={"idempotency_key": idempotency_key}
            ),
        )
        body = session.to_dict()
        return CheckoutSession(session_id=body["id"], redirect_url=body["url"])

    async def get_checkout_session(self, session_id: str) -> CheckoutSessionState:
        session = await self._call(
            "checkout.sessions.retrieve",
            self._client.v1.checkout.sessions.retrieve_async(session_id),
        )
        body = session.to_dict()
        return CheckoutSessionState(
            session_id=body["id"],
            payment_status=body.get("payment_status") or "unpaid",
            amount_total=body.get("amount_total"),
            metadata={k: str(v) for k, v in (body.get("metadata") or {}).items()},
        )

    async def create_transfer(
        self,
        amount: int,
        destination_account: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> Transfer:
        params: dict[str, Any] = {
            "amount": amount,
            "currency": self._currency,
            "destination": destination_account,
            "metadata": {k: str(v) for k, v in (metadata or {}).items()},
        }
        if metadata and "bid_id" in metadata:
            params["transfer_group"] = metadata["bid_id"]
        transfer = await self._call(
            "transfers.create",
            self._client.v1.transfers.create_async(
                params=params, options={"idempotency_key": idempotency_key}
            ),
        )
        return Transfer(transfer_id=transfer.to_dict()["id"])

    async def create_merchant_account(
        self,
        country: str,
        email: str | None,
        refresh_url: str,
        return_url: str,
        idempotency_key: str,
    ) -> MerchantAccount:
        params: dict[str, Any] = {
            "type": "standard",
            "country": country,
            "business_type": "individual",
        }
        if email:
            params["email"] = email
        account = await self._call(
            "accounts.create",
            self._client.v1.accounts.create_async(
                params=params, options={"idempotency_key": idempotency_key}
            ),
        )
        account_id = account.to_dict()["id"]
        onboarding_url = await self.create_onboarding_link(
            account_id, refresh_url, return_url, f"{idempotency_key}:link"
        )
        return MerchantAccount(account_id=account_id, onboarding_url=onboarding_url)

    async def create_onboarding_link(
        self,
        account_id: str,
        refresh_url: str,
        return_url: str,
        idempotency_key: str,
    ) -> str:
        link = await self._call(
            "account_links.create",
            self._client.v1.account_links.create_async(
                params={
                    "account": account_id,
                    "refresh_url": refresh_url,
                    "return_url": return_url,
                    "type": "account_onboarding",
                },
                options={"idempotency_key": idempotency_key},
            ),
        )
        return link.to_dict()["url"]


_gateway: StripeGateway | None = None


def get_payment_gateway() -> StripeGateway:
    """Process-wide gateway sharing one connection pool."""
    global _gateway  # noqa: PLW0603
    if _gateway is None:
        http_client = stripe.HTTPXClient(timeout=settings.GATEWAY_TIMEOUT_SECONDS)
        client = stripe.StripeClient(
            api_key=settings.STRIPE_SECRET_KEY,
            base_addresses={"api": settings.STRIPE_API_BASE},
            max_network_retries=settings.GATEWAY_MAX_RETRIES,
            http_client=http_client,
        )
        _gateway = StripeGateway(client, currency=settings.CURRENCY, http_client=http_client)
    return _gateway


async def close_payment_gateway() -> None:
    global _gateway  # noqa: PLW0603
    if _gateway is not None:
        await _gateway.close()
        _gateway = None
