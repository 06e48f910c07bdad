"""PaymentGatewayProtocol: the seam between settlement and the card processor.

Every mutating call takes an ``idempotency_key`` derived from the owning
entity id. Implementations raise GatewayUnavailableError for transient
failures (safe to replay with the same key) and GatewayRejectedError for
permanent ones.
"""

from typing import Protocol

from src.mp_payments.domain.models import (
    CheckoutSession,
    CheckoutSessionState,
    MerchantAccount,
    Transfer,
)


class PaymentGatewayProtocol(Protocol):
    async def create_checkout_session(
        self,
        amount: int,
        product_name: str,
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
        metadata: dict[str, str],
        transfer_group: str | None = None,
    ) -> CheckoutSession: ...

    async def get_checkout_session(self, session_id: str) -> CheckoutSessionState: ...

    async def create_transfer(
        self,
        amount: int,
        destination_account: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> Transfer: ...

    async def create_merchant_account(
        self,
        country: str,
        email: str | None,
        refresh_url: str,
        return_url: str,
        idempotency_key: str,
    ) -> MerchantAccount: ...

    async def create_onboarding_link(
        self,
        account_id: str,
        refresh_url: str,
        return_url: str,
        idempotency_key: str,
    ) -> str: ...
