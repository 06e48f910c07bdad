"""TransactionRepository + PayoutRepository (raw text() SQL).

Every state change is a compare-and-set: the WHERE clause repeats the
source state and RETURNING tells the caller whether it won. A lost CAS is
never an error at this layer; the service decides what it means.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import InternalError
from src.mp_settlement.domain.models import Payout, Transaction

# ---------------------------------------------------------------------------
# SQL: transactions
# ---------------------------------------------------------------------------

_TXN_COLUMNS = """
    id, bid_id, buyer_id, seller_id, product_id, amount, platform_fee,
    seller_amount, currency, gateway_session_id, checkout_url, status,
    confirmation_status, paid_at, confirmed_at, disputed_at, completed_at,
    created_at, updated_at
"""

# Both bid_id and gateway_session_id are UNIQUE; a replay hits one of them.
_INSERT_TXN_SQL = text(f"""
    INSERT INTO transactions (
        id, bid_id, buyer_id, seller_id, product_id, amount, platform_fee,
        seller_amount, currency, gateway_session_id, checkout_url,
        status, confirmation_status
    ) VALUES (
        :id, :bid_id, :buyer_id, :seller_id, :product_id, :amount, :platform_fee,
        :seller_amount, :currency, :gateway_session_id, :checkout_url,
        'pending', 'pending'
    )
    ON CONFLICT DO NOTHING
    RETURNING {_TXN_COLUMNS}
""")

_GET_TXN_SQL = text(f"SELECT {_TXN_COLUMNS} FROM transactions WHERE id = :id")

_GET_TXN_FOR_UPDATE_SQL = text(f"""
    SELECT {_TXN_COLUMNS} FROM transactions WHERE id = :id FOR UPDATE
""")

_GET_BY_BID_SQL = text(f"SELECT {_TXN_COLUMNS} FROM transactions WHERE bid_id = :bid_id")

_GET_BY_SESSION_FOR_UPDATE_SQL = text(f"""
    SELECT {_TXN_COLUMNS}
    FROM transactions
    WHERE gateway_session_id = :session_id
    FOR UPDATE
""")

_MARK_PAID_SQL = text("""
    UPDATE transactions
    SET paid_at = NOW(), updated_at = NOW()
    WHERE id = :id AND paid_at IS NULL
    RETURNING id
""")

_CONFIRM_SQL = text(f"""
    UPDATE transactions
    SET confirmation_status = 'confirmed', confirmed_at = NOW(), updated_at = NOW()
    WHERE id = :id AND confirmation_status = 'pending'
    RETURNING {_TXN_COLUMNS}
""")

_DISPUTE_SQL = text(f"""
    UPDATE transactions
    SET confirmation_status = 'disputed', disputed_at = NOW(), updated_at = NOW()
    WHERE id = :id AND confirmation_status = 'pending'
    RETURNING {_TXN_COLUMNS}
""")

_MARK_COMPLETED_SQL = text(f"""
    UPDATE transactions
    SET status = 'completed', completed_at = NOW(), updated_at = NOW()
    WHERE id = :id AND status = 'pending' AND confirmation_status = 'confirmed'
    RETURNING {_TXN_COLUMNS}
""")

_MARK_FAILED_SQL = text(f"""
    UPDATE transactions
    SET status = 'failed', updated_at = NOW()
    WHERE id = :id AND status = 'pending'
    RETURNING {_TXN_COLUMNS}
""")

# Only a permanently rejected payout is reopened; transient failures stay
# pending and are retried by the sweep.
_REOPEN_FAILED_SQL = text(f"""
    UPDATE transactions
    SET status = 'pending', updated_at = NOW()
    WHERE id = :id AND status = 'failed'
    RETURNING {_TXN_COLUMNS}
""")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_TXN_COLUMNS}
    FROM transactions
    WHERE
        (
            (CAST(:role AS TEXT) IS NULL AND (buyer_id = :user_id OR seller_id = :user_id))
            OR (CAST(:role AS TEXT) = 'buyer' AND buyer_id = :user_id)
            OR (CAST(:role AS TEXT) = 'seller' AND seller_id = :user_id)
        )
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_PAYOUT_CANDIDATES_SQL = text("""
    SELECT id
    FROM transactions
    WHERE status = 'pending'
      AND confirmation_status = 'confirmed'
      AND paid_at IS NOT NULL
    ORDER BY confirmed_at
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: payouts
# ---------------------------------------------------------------------------

_PAYOUT_COLUMNS = """
    id, transaction_id, seller_id, destination_account, amount, status,
    gateway_transfer_id, attempts, last_error, reopen_count, created_at, updated_at
"""

_GET_PAYOUT_SQL = text(f"""
    SELECT {_PAYOUT_COLUMNS} FROM payouts WHERE transaction_id = :transaction_id
""")

# One row per transaction; each retry bumps attempts. A succeeded payout is
# never reopened.
_RECORD_ATTEMPT_SQL = text(f"""
    INSERT INTO payouts (
        id, transaction_id, seller_id, destination_account, amount, status, attempts
    ) VALUES (
        :id, :transaction_id, :seller_id, :destination_account, :amount, 'pending', 1
    )
    ON CONFLICT (transaction_id) DO UPDATE
    SET status = 'pending',
        destination_account = EXCLUDED.destination_account,
        attempts = payouts.attempts + 1,
        updated_at = NOW()
    WHERE payouts.status <> 'succeeded'
    RETURNING {_PAYOUT_COLUMNS}
""")

_PAYOUT_SUCCEEDED_SQL = text(f"""
    UPDATE payouts
    SET status = 'succeeded', gateway_transfer_id = :transfer_id,
        last_error = NULL, updated_at = NOW()
    WHERE transaction_id = :transaction_id
    RETURNING {_PAYOUT_COLUMNS}
""")

_PAYOUT_FAILED_SQL = text(f"""
    UPDATE payouts
    SET status = :status, last_error = :error, updated_at = NOW()
    WHERE transaction_id = :transaction_id AND status <> 'succeeded'
    RETURNING {_PAYOUT_COLUMNS}
""")

_PAYOUT_REOPEN_SQL = text(f"""
    UPDATE payouts
    SET status = 'pending', reopen_count = reopen_count + 1,
        last_error = NULL, updated_at = NOW()
    WHERE transaction_id = :transaction_id AND status = 'rejected'
    RETURNING {_PAYOUT_COLUMNS}
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        bid_id=row.bid_id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        product_id=row.product_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        platform_fee=row.platform_fee,  # type: ignore[attr-defined]
        seller_amount=row.seller_amount,  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        gateway_session_id=row.gateway_session_id,  # type: ignore[attr-defined]
        checkout_url=row.checkout_url,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        confirmation_status=row.confirmation_status,  # type: ignore[attr-defined]
        paid_at=row.paid_at,  # type: ignore[attr-defined]
        confirmed_at=row.confirmed_at,  # type: ignore[attr-defined]
        disputed_at=row.disputed_at,  # type: ignore[attr-defined]
        completed_at=row.completed_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_payout(row: object) -> Payout:
    return Payout(
        id=row.id,  # type: ignore[attr-defined]
        transaction_id=row.transaction_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        destination_account=row.destination_account,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        gateway_transfer_id=row.gateway_transfer_id,  # type: ignore[attr-defined]
        attempts=row.attempts,  # type: ignore[attr-defined]
        last_error=row.last_error,  # type: ignore[attr-defined]
        reopen_count=row.reopen_count,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _one_transaction(result: object) -> Transaction | None:
    row = result.fetchone()  # type: ignore[attr-defined]
    return _row_to_transaction(row) if row else None


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class TransactionRepository:
    async def insert_transaction(
        self, db: AsyncSession, txn: Transaction
    ) -> Transaction | None:
        """Returns None when a transaction for this bid/session already exists."""
        result = await db.execute(
            _INSERT_TXN_SQL,
            {
                "id": txn.id,
                "bid_id": txn.bid_id,
                "buyer_id": txn.buyer_id,
                "seller_id": txn.seller_id,
                "product_id": txn.product_id,
                "amount": txn.amount,
                "platform_fee": txn.platform_fee,
                "seller_amount": txn.seller_amount,
                "currency": txn.currency,
                "gateway_session_id": txn.gateway_session_id,
                "checkout_url": txn.checkout_url,
            },
        )
        return _one_transaction(result)

    async def get_transaction(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None:
        return _one_transaction(await db.execute(_GET_TXN_SQL, {"id": transaction_id}))

    async def get_transaction_for_update(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None:
        return _one_transaction(
            await db.execute(_GET_TXN_FOR_UPDATE_SQL, {"id": transaction_id})
        )

    async def get_by_bid(self, db: AsyncSession, bid_id: str) -> Transaction | None:
        return _one_transaction(await db.execute(_GET_BY_BID_SQL, {"bid_id": bid_id}))

    async def get_by_session_for_update(
        self, db: AsyncSession, session_id: str
    ) -> Transaction | None:
        return _one_transaction(
            await db.execute(_GET_BY_SESSION_FOR_UPDATE_SQL, {"session_id": session_id})
        )

    async def mark_paid(self, db: AsyncSession, transaction_id: str) -> bool:
        """Set paid_at once. False when it was already set."""
        result = await db.execute(_MARK_PAID_SQL, {"id": transaction_id})
        return result.fetchone() is not None

    async def confirm(self, db: AsyncSession, transaction_id: str) -> Transaction | None:
        return _one_transaction(await db.execute(_CONFIRM_SQL, {"id": transaction_id}))

    async def dispute(self, db: AsyncSession, transaction_id: str) -> Transaction | None:
        return _one_transaction(await db.execute(_DISPUTE_SQL, {"id": transaction_id}))

    async def mark_completed(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None:
        return _one_transaction(
            await db.execute(_MARK_COMPLETED_SQL, {"id": transaction_id})
        )

    async def mark_failed(self, db: AsyncSession, transaction_id: str) -> Transaction | None:
        return _one_transaction(await db.execute(_MARK_FAILED_SQL, {"id": transaction_id}))

    async def reopen_failed(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None:
        return _one_transaction(await db.execute(_REOPEN_FAILED_SQL, {"id": transaction_id}))

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {
                "user_id": user_id,
                "role": role,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_transaction(row) for row in result.fetchall()]

    async def list_payout_candidates(self, db: AsyncSession, limit: int) -> list[str]:
        result = await db.execute(_LIST_PAYOUT_CANDIDATES_SQL, {"limit": limit})
        return [row.id for row in result.fetchall()]  # type: ignore[attr-defined]


class PayoutRepository:
    async def get_by_transaction(
        self, db: AsyncSession, transaction_id: str
    ) -> Payout | None:
        result = await db.execute(_GET_PAYOUT_SQL, {"transaction_id": transaction_id})
        row = result.fetchone()
        return _row_to_payout(row) if row else None

    async def record_attempt(self, db: AsyncSession, payout: Payout) -> Payout:
        result = await db.execute(
            _RECORD_ATTEMPT_SQL,
            {
                "id": payout.id,
                "transaction_id": payout.transaction_id,
                "seller_id": payout.seller_id,
                "destination_account": payout.destination_account,
                "amount": payout.amount,
            },
        )
        row = result.fetchone()
        if row is None:
            # The conflict branch refused: a succeeded payout already exists.
            raise InternalError(
                f"Payout for transaction {payout.transaction_id} already succeeded"
            )
        return _row_to_payout(row)

    async def mark_succeeded(
        self, db: AsyncSession, transaction_id: str, transfer_id: str
    ) -> Payout | None:
        result = await db.execute(
            _PAYOUT_SUCCEEDED_SQL,
            {"transaction_id": transaction_id, "transfer_id": transfer_id},
        )
        row = result.fetchone()
        return _row_to_payout(row) if row else None

    async def mark_failed(
        self, db: AsyncSession, transaction_id: str, status: str, error: str
    ) -> Payout | None:
        result = await db.execute(
            _PAYOUT_FAILED_SQL,
            {"transaction_id": transaction_id, "status": status, "error": error[:500]},
        )
        row = result.fetchone()
        return _row_to_payout(row) if row else None

    async def reopen(self, db: AsyncSession, transaction_id: str) -> Payout | None:
        result = await db.execute(_PAYOUT_REOPEN_SQL, {"transaction_id": transaction_id})
        row = result.fetchone()
        return _row_to_payout(row) if row else None
