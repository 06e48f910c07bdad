"""Ledger invariant audit: read-only checks an operator can run at any time."""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_MULTIPLE_ACCEPTED_SQL = text("""
    SELECT product_id, COUNT(*) AS accepted_count
    FROM bids
    WHERE status = 'accepted'
    GROUP BY product_id
    HAVING COUNT(*) > 1
""")
_FEE_SPLIT_SQL = text("""
    SELECT id, amount, platform_fee, seller_amount
    FROM transactions
    WHERE seller_amount + platform_fee <> amount
""")
_AMOUNT_MISMATCH_SQL = text("""
    SELECT t.id, t.amount, b.amount AS bid_amount
    FROM transactions t
    JOIN bids b ON b.id = t.bid_id
    WHERE t.amount <> b.amount OR b.status <> 'accepted'
""")
_COMPLETED_WITHOUT_PAYOUT_SQL = text("""
    SELECT t.id
    FROM transactions t
    LEFT JOIN payouts p ON p.transaction_id = t.id AND p.status = 'succeeded'
    WHERE t.status = 'completed'
      AND (t.confirmation_status <> 'confirmed' OR p.id IS NULL)
""")


async def verify_ledger_invariants(db: AsyncSession) -> list[str]:
    """Returns violation strings; an empty list means the ledger is consistent."""
    violations: list[str] = []

    for row in (await db.execute(_MULTIPLE_ACCEPTED_SQL)).fetchall():
        violations.append(
            f"product {row.product_id} has {row.accepted_count} accepted bids"
        )
    for row in (await db.execute(_FEE_SPLIT_SQL)).fetchall():
        violations.append(
            f"transaction {row.id}: seller_amount({row.seller_amount}) + "
            f"platform_fee({row.platform_fee}) != amount({row.amount})"
        )
    for row in (await db.execute(_AMOUNT_MISMATCH_SQL)).fetchall():
        violations.append(
            f"transaction {row.id}: amount({row.amount}) does not match "
            f"accepted bid amount({row.bid_amount})"
        )
    for row in (await db.execute(_COMPLETED_WITHOUT_PAYOUT_SQL)).fetchall():
        violations.append(
            f"transaction {row.id} is completed without a confirmed receipt and succeeded payout"
        )

    for msg in violations:
        logger.error("Ledger invariant violated: %s", msg)
    return violations
