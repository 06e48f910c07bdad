"""Repository Protocols for payout destinations and listing payments."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_payments.domain.models import ListingPayment, PayoutProfile


class ProfileRepositoryProtocol(Protocol):
    async def get_profile(self, db: AsyncSession, user_id: str) -> PayoutProfile | None: ...

    async def get_payout_account(self, db: AsyncSession, user_id: str) -> str | None: ...

    async def upsert_payout_account(
        self, db: AsyncSession, user_id: str, email: str | None, account_id: str
    ) -> PayoutProfile: ...

    async def replace_payout_account(
        self, db: AsyncSession, user_id: str, old_account_id: str, new_account_id: str
    ) -> PayoutProfile | None: ...

    async def set_onboarding_completed(
        self, db: AsyncSession, account_id: str, completed: bool
    ) -> str | None: ...


class ListingPaymentRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, payment: ListingPayment) -> ListingPayment | None: ...

    async def get_open(
        self, db: AsyncSession, seller_id: str, payment_type: str, product_id: str | None
    ) -> ListingPayment | None: ...

    async def get(self, db: AsyncSession, payment_id: str) -> ListingPayment | None: ...

    async def attach_session(
        self, db: AsyncSession, payment_id: str, session_id: str, checkout_url: str
    ) -> ListingPayment | None: ...

    async def get_by_session_for_update(
        self, db: AsyncSession, session_id: str
    ) -> ListingPayment | None: ...

    async def mark_paid(
        self, db: AsyncSession, payment_id: str, featured_days: int | None
    ) -> ListingPayment | None: ...
