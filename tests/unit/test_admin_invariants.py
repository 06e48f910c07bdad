"""Ledger invariant audit and the admin service around it."""

from unittest.mock import AsyncMock, MagicMock

from src.mp_admin.application.service import AdminService
from src.mp_admin.domain.invariants import verify_ledger_invariants


def _rows(*rows):
    result = MagicMock()
    result.fetchall.return_value = list(rows)
    return result


def _row(**fields):
    row = MagicMock()
    for k, v in fields.items():
        setattr(row, k, v)
    return row


async def test_clean_ledger() -> None:
    db = MagicMock()
    db.execute = AsyncMock(return_value=_rows())

    assert await verify_ledger_invariants(db) == []
    assert db.execute.await_count == 4


async def test_reports_each_violation() -> None:
    db = MagicMock()
    db.execute = AsyncMock(side_effect=[
        _rows(_row(product_id="prd_1", accepted_count=2)),
        _rows(_row(id="txn_1", amount=1000, platform_fee=50, seller_amount=900)),
        _rows(_row(id="txn_2", amount=2400, bid_amount=2500)),
        _rows(_row(id="txn_3")),
    ])

    violations = await verify_ledger_invariants(db)

    assert len(violations) == 4
    assert "prd_1 has 2 accepted bids" in violations[0]
    assert "txn_1" in violations[1]
    assert "2500" in violations[2]
    assert "txn_3" in violations[3]


async def test_admin_audit_shape() -> None:
    db = MagicMock()
    db.execute = AsyncMock(return_value=_rows())
    svc = AdminService(orchestrator=AsyncMock(), dispatcher=AsyncMock())

    assert await svc.audit_invariants(db) == {"ok": True, "violations": []}


async def test_admin_dispatch() -> None:
    dispatcher = AsyncMock()
    dispatcher.dispatch_pending.return_value = 7
    svc = AdminService(orchestrator=AsyncMock(), dispatcher=dispatcher)

    assert await svc.dispatch_notifications(AsyncMock(), 100) == {"dispatched": 7}
