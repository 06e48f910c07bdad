"""PayoutOnboardingService: connect a seller's payout destination.

Idempotent per user: the merchant account is created with idempotency key
``account:{user_id}``, and a user who already has an account gets a fresh
onboarding link for it rather than a second account. A seller whose
account the gateway rejected asks for ``replace`` and gets a new one; the
flag that makes an account usable for payouts follows ``account.updated``
webhook events.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.datetime_utils import unix_now
from src.mp_gateway.auth.context import CurrentUser
from src.mp_payments.application.schemas import (
    PayoutAccountResponse,
    RegisterPayoutAccountRequest,
)
from src.mp_payments.domain.gateway import PaymentGatewayProtocol
from src.mp_payments.domain.repository import ProfileRepositoryProtocol
from src.mp_payments.infrastructure.persistence import ProfileRepository
from src.mp_payments.infrastructure.stripe_gateway import get_payment_gateway

logger = logging.getLogger(__name__)

# Onboarding links expire quickly; retries inside one window reuse the link.
_LINK_WINDOW_SECONDS = 300


class PayoutOnboardingService:
    def __init__(
        self,
        repo: ProfileRepositoryProtocol | None = None,
        gateway: PaymentGatewayProtocol | None = None,
    ) -> None:
        self._repo: ProfileRepositoryProtocol = repo or ProfileRepository()
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGatewayProtocol:
        # Resolved lazily so importing the router does not build an HTTP client.
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    async def register_payout_account(
        self, db: AsyncSession, user: CurrentUser, req: RegisterPayoutAccountRequest
    ) -> PayoutAccountResponse:
        refresh_url = f"{settings.PUBLIC_BASE_URL}/sell?refresh=1"
        return_url = f"{settings.PUBLIC_BASE_URL}/sell?onboarded=1"

        existing = await self._repo.get_profile(db, user.id)
        if existing is not None and existing.payout_account_id:
            if req.replace:
                return await self._replace_account(
                    db, user, req, existing.payout_account_id, refresh_url, return_url
                )
            if existing.payout_onboarding_completed:
                onboarding_url = None
            else:
                onboarding_url = await self.gateway.create_onboarding_link(
                    existing.payout_account_id,
                    refresh_url,
                    return_url,
                    f"account:{user.id}:link:{unix_now() // _LINK_WINDOW_SECONDS}",
                )
            return PayoutAccountResponse(
                account_id=existing.payout_account_id,
                onboarding_url=onboarding_url,
                created=False,
            )

        email = req.email or user.email
        merchant = await self.gateway.create_merchant_account(
            country=req.country.upper(),
            email=email,
            refresh_url=refresh_url,
            return_url=return_url,
            idempotency_key=f"account:{user.id}",
        )
        try:
            profile = await self._repo.upsert_payout_account(
                db, user.id, email, merchant.account_id
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Payout account registered: user=%s account=%s",
            user.id, profile.payout_account_id,
        )
        return PayoutAccountResponse(
            account_id=profile.payout_account_id or merchant.account_id,
            onboarding_url=merchant.onboarding_url,
            created=True,
        )

    async def _replace_account(
        self,
        db: AsyncSession,
        user: CurrentUser,
        req: RegisterPayoutAccountRequest,
        old_account_id: str,
        refresh_url: str,
        return_url: str,
    ) -> PayoutAccountResponse:
        # Keyed on the account being replaced: a retried request reuses the
        # same new account, a later replacement gets another one.
        merchant = await self.gateway.create_merchant_account(
            country=req.country.upper(),
            email=req.email or user.email,
            refresh_url=refresh_url,
            return_url=return_url,
            idempotency_key=f"account:{user.id}:replaces:{old_account_id}",
        )
        try:
            profile = await self._repo.replace_payout_account(
                db, user.id, old_account_id, merchant.account_id
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if profile is None:
            current = await self._repo.get_profile(db, user.id)
            logger.warning(
                "Payout account replace lost race: user=%s old=%s current=%s",
                user.id, old_account_id, current.payout_account_id if current else None,
            )
            return PayoutAccountResponse(
                account_id=(current.payout_account_id if current else None)
                or merchant.account_id,
                onboarding_url=None,
                created=False,
            )

        logger.info(
            "Payout account replaced: user=%s old=%s new=%s",
            user.id, old_account_id, merchant.account_id,
        )
        return PayoutAccountResponse(
            account_id=merchant.account_id,
            onboarding_url=merchant.onboarding_url,
            created=True,
        )

    async def handle_account_updated(self, db: AsyncSession, account: dict[str, Any]) -> bool:
        """Sync the onboarding flag from an ``account.updated`` event.

        Returns True when a profile changed.
        """
        account_id = str(account.get("id") or "")
        if not account_id:
            return False
        completed = bool(account.get("details_submitted") and account.get("payouts_enabled"))
        try:
            user_id = await self._repo.set_onboarding_completed(db, account_id, completed)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if user_id is not None:
            logger.info(
                "Payout onboarding updated: user=%s account=%s completed=%s",
                user_id, account_id, completed,
            )
        return user_id is not None
