"""ProfileRepository (payout destination per user) and ListingPaymentRepository.

Profiles are created by the hosted auth provider's signup hook; the upsert
covers users whose row has not been provisioned yet.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import InternalError
from src.mp_payments.domain.models import ListingPayment, PayoutProfile

_COLUMNS = "id, email, payout_account_id, payout_onboarding_completed"

_GET_PROFILE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM profiles
    WHERE id = :user_id
""")

# A destination counts only once the gateway reports onboarding finished.
_GET_PAYOUT_ACCOUNT_SQL = text("""
    SELECT payout_account_id
    FROM profiles
    WHERE id = :user_id AND payout_onboarding_completed
""")

# Never overwrites a connected account; replacing one is the explicit
# compare-and-set below.
_UPSERT_PAYOUT_ACCOUNT_SQL = text(f"""
    INSERT INTO profiles (id, email, payout_account_id)
    VALUES (:user_id, :email, :account_id)
    ON CONFLICT (id) DO UPDATE
    SET payout_account_id = COALESCE(profiles.payout_account_id, EXCLUDED.payout_account_id),
        email = COALESCE(profiles.email, EXCLUDED.email),
        updated_at = NOW()
    RETURNING {_COLUMNS}
""")

# Compare-and-set on the old account so two replace requests cannot both win.
_REPLACE_PAYOUT_ACCOUNT_SQL = text(f"""
    UPDATE profiles
    SET payout_account_id = :new_account_id,
        payout_onboarding_completed = FALSE,
        updated_at = NOW()
    WHERE id = :user_id AND payout_account_id = :old_account_id
    RETURNING {_COLUMNS}
""")

_SET_ONBOARDING_SQL = text("""
    UPDATE profiles
    SET payout_onboarding_completed = :completed, updated_at = NOW()
    WHERE payout_account_id = :account_id
      AND payout_onboarding_completed IS DISTINCT FROM :completed
    RETURNING id
""")


def _row_to_profile(row: object) -> PayoutProfile:
    return PayoutProfile(
        user_id=row.id,  # type: ignore[attr-defined]
        email=row.email,  # type: ignore[attr-defined]
        payout_account_id=row.payout_account_id,  # type: ignore[attr-defined]
        payout_onboarding_completed=row.payout_onboarding_completed,  # type: ignore[attr-defined]
    )


class ProfileRepository:
    async def get_profile(self, db: AsyncSession, user_id: str) -> PayoutProfile | None:
        result = await db.execute(_GET_PROFILE_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_profile(row) if row else None

    async def get_payout_account(self, db: AsyncSession, user_id: str) -> str | None:
        result = await db.execute(_GET_PAYOUT_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return row.payout_account_id if row else None  # type: ignore[attr-defined]

    async def upsert_payout_account(
        self, db: AsyncSession, user_id: str, email: str | None, account_id: str
    ) -> PayoutProfile:
        result = await db.execute(
            _UPSERT_PAYOUT_ACCOUNT_SQL,
            {"user_id": user_id, "email": email, "account_id": account_id},
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Profile upsert returned no rows")
        return _row_to_profile(row)

    async def replace_payout_account(
        self, db: AsyncSession, user_id: str, old_account_id: str, new_account_id: str
    ) -> PayoutProfile | None:
        result = await db.execute(
            _REPLACE_PAYOUT_ACCOUNT_SQL,
            {
                "user_id": user_id,
                "old_account_id": old_account_id,
                "new_account_id": new_account_id,
            },
        )
        row = result.fetchone()
        return _row_to_profile(row) if row else None

    async def set_onboarding_completed(
        self, db: AsyncSession, account_id: str, completed: bool
    ) -> str | None:
        """Returns the owning user id when the flag changed."""
        result = await db.execute(
            _SET_ONBOARDING_SQL, {"account_id": account_id, "completed": completed}
        )
        row = result.fetchone()
        return row.id if row else None  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# listing_payments
# ---------------------------------------------------------------------------

_LISTING_COLUMNS = """
    id, seller_id, product_id, type, amount, currency, status,
    gateway_session_id, checkout_url, paid_at, featured_until, created_at
"""

# uq_listing_payments_open refuses a second pending row for the same
# seller/type/product; the caller then reads the existing one.
_INSERT_LISTING_SQL = text(f"""
    INSERT INTO listing_payments (id, seller_id, product_id, type, amount, currency)
    VALUES (:id, :seller_id, :product_id, :type, :amount, :currency)
    ON CONFLICT DO NOTHING
    RETURNING {_LISTING_COLUMNS}
""")

_GET_OPEN_LISTING_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listing_payments
    WHERE seller_id = :seller_id
      AND type = :type
      AND COALESCE(product_id, '') = COALESCE(CAST(:product_id AS TEXT), '')
      AND status = 'pending'
""")

_ATTACH_SESSION_SQL = text(f"""
    UPDATE listing_payments
    SET gateway_session_id = :session_id, checkout_url = :checkout_url, updated_at = NOW()
    WHERE id = :id AND gateway_session_id IS NULL
    RETURNING {_LISTING_COLUMNS}
""")

_GET_LISTING_BY_ID_SQL = text(f"SELECT {_LISTING_COLUMNS} FROM listing_payments WHERE id = :id")

_GET_LISTING_BY_SESSION_FOR_UPDATE_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listing_payments
    WHERE gateway_session_id = :session_id
    FOR UPDATE
""")

_MARK_LISTING_PAID_SQL = text(f"""
    UPDATE listing_payments
    SET status = 'paid',
        paid_at = NOW(),
        featured_until = CASE
            WHEN CAST(:featured_days AS INT) IS NULL THEN NULL
            ELSE NOW() + CAST(:featured_days AS INT) * INTERVAL '1 day'
        END,
        updated_at = NOW()
    WHERE id = :id AND status = 'pending'
    RETURNING {_LISTING_COLUMNS}
""")


def _row_to_listing_payment(row: object) -> ListingPayment:
    return ListingPayment(
        id=row.id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        product_id=row.product_id,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        gateway_session_id=row.gateway_session_id,  # type: ignore[attr-defined]
        checkout_url=row.checkout_url,  # type: ignore[attr-defined]
        paid_at=row.paid_at,  # type: ignore[attr-defined]
        featured_until=row.featured_until,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _one_listing_payment(result: object) -> ListingPayment | None:
    row = result.fetchone()  # type: ignore[attr-defined]
    return _row_to_listing_payment(row) if row else None


class ListingPaymentRepository:
    async def insert(self, db: AsyncSession, payment: ListingPayment) -> ListingPayment | None:
        """Returns None when an open payment for the same seller/type/product exists."""
        result = await db.execute(
            _INSERT_LISTING_SQL,
            {
                "id": payment.id,
                "seller_id": payment.seller_id,
                "product_id": payment.product_id,
                "type": payment.type,
                "amount": payment.amount,
                "currency": payment.currency,
            },
        )
        return _one_listing_payment(result)

    async def get_open(
        self, db: AsyncSession, seller_id: str, payment_type: str, product_id: str | None
    ) -> ListingPayment | None:
        return _one_listing_payment(
            await db.execute(
                _GET_OPEN_LISTING_SQL,
                {"seller_id": seller_id, "type": payment_type, "product_id": product_id},
            )
        )

    async def get(self, db: AsyncSession, payment_id: str) -> ListingPayment | None:
        return _one_listing_payment(await db.execute(_GET_LISTING_BY_ID_SQL, {"id": payment_id}))

    async def attach_session(
        self, db: AsyncSession, payment_id: str, session_id: str, checkout_url: str
    ) -> ListingPayment | None:
        return _one_listing_payment(
            await db.execute(
                _ATTACH_SESSION_SQL,
                {"id": payment_id, "session_id": session_id, "checkout_url": checkout_url},
            )
        )

    async def get_by_session_for_update(
        self, db: AsyncSession, session_id: str
    ) -> ListingPayment | None:
        return _one_listing_payment(
            await db.execute(_GET_LISTING_BY_SESSION_FOR_UPDATE_SQL, {"session_id": session_id})
        )

    async def mark_paid(
        self, db: AsyncSession, payment_id: str, featured_days: int | None
    ) -> ListingPayment | None:
        """pending -> paid once; None when it was already paid."""
        return _one_listing_payment(
            await db.execute(
                _MARK_LISTING_PAID_SQL, {"id": payment_id, "featured_days": featured_days}
            )
        )
