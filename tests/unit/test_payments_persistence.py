# tests/unit/test_payments_persistence.py
"""Unit tests for ProfileRepository and ListingPaymentRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mp_payments.domain.models import ListingPayment
from src.mp_payments.infrastructure.persistence import (
    ListingPaymentRepository,
    ProfileRepository,
)


def _make_profile_row(account: str = "acct_new", completed: bool = False):
    row = MagicMock()
    row.id = "seller-1"
    row.email = "seller@example.com"
    row.payout_account_id = account
    row.payout_onboarding_completed = completed
    return row


def _make_listing_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "lpy_1")
    row.seller_id = "seller-1"
    row.product_id = kwargs.get("product_id", "prd_1")
    row.type = kwargs.get("type", "featured_7_days")
    row.amount = kwargs.get("amount", 20000)
    row.currency = "inr"
    row.status = kwargs.get("status", "pending")
    row.gateway_session_id = kwargs.get("gateway_session_id")
    row.checkout_url = None
    row.paid_at = kwargs.get("paid_at")
    row.featured_until = kwargs.get("featured_until")
    row.created_at = datetime.now(UTC)
    return row


def _result(one=None):
    result = MagicMock()
    result.fetchone.return_value = one
    return result


@pytest.fixture
def db():
    return MagicMock()


class TestProfileRepository:
    @pytest.mark.asyncio
    async def test_payout_account_requires_finished_onboarding(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))

        account = await ProfileRepository().get_payout_account(db, "seller-1")

        assert account is None
        sql = str(db.execute.await_args.args[0])
        assert "payout_onboarding_completed" in sql

    @pytest.mark.asyncio
    async def test_replace_is_compare_and_set_on_old_account(self, db):
        db.execute = AsyncMock(return_value=_result(one=_make_profile_row("acct_new")))

        profile = await ProfileRepository().replace_payout_account(
            db, "seller-1", "acct_rejected", "acct_new"
        )

        assert profile is not None
        assert profile.payout_account_id == "acct_new"
        assert profile.payout_onboarding_completed is False
        assert db.execute.await_args.args[1] == {
            "user_id": "seller-1",
            "old_account_id": "acct_rejected",
            "new_account_id": "acct_new",
        }

    @pytest.mark.asyncio
    async def test_lost_replace_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        profile = await ProfileRepository().replace_payout_account(
            db, "seller-1", "acct_stale", "acct_new"
        )
        assert profile is None

    @pytest.mark.asyncio
    async def test_onboarding_flag_returns_owner(self, db):
        row = MagicMock()
        row.id = "seller-1"
        db.execute = AsyncMock(return_value=_result(one=row))

        owner = await ProfileRepository().set_onboarding_completed(db, "acct_new", True)

        assert owner == "seller-1"
        assert db.execute.await_args.args[1] == {"account_id": "acct_new", "completed": True}


class TestListingPaymentRepository:
    @pytest.mark.asyncio
    async def test_insert_conflict_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        payment = ListingPayment(
            id="lpy_1", seller_id="seller-1", product_id=None, type="listing_fee",
            amount=3000, currency="inr",
        )

        assert await ListingPaymentRepository().insert(db, payment) is None
        assert db.execute.await_args.args[1]["product_id"] is None

    @pytest.mark.asyncio
    async def test_mark_paid_passes_featured_days(self, db):
        until = datetime(2026, 5, 8, tzinfo=UTC)
        db.execute = AsyncMock(return_value=_result(
            one=_make_listing_row(status="paid", paid_at=datetime.now(UTC), featured_until=until)
        ))

        paid = await ListingPaymentRepository().mark_paid(db, "lpy_1", 7)

        assert paid is not None
        assert paid.status == "paid"
        assert paid.featured_until == until
        assert db.execute.await_args.args[1] == {"id": "lpy_1", "featured_days": 7}

    @pytest.mark.asyncio
    async def test_already_paid_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        assert await ListingPaymentRepository().mark_paid(db, "lpy_1", None) is None
