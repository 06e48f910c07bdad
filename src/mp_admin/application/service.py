"""Admin application service: operator-triggered sweeps and audits."""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_admin.domain.invariants import verify_ledger_invariants
from src.mp_notification.application.dispatcher import OutboxDispatcher
from src.mp_settlement.application.orchestrator import SettlementOrchestrator


class AdminService:
    def __init__(
        self,
        orchestrator: SettlementOrchestrator | None = None,
        dispatcher: OutboxDispatcher | None = None,
    ) -> None:
        self._orchestrator = orchestrator or SettlementOrchestrator()
        self._dispatcher = dispatcher or OutboxDispatcher()

    async def retry_payouts(self, db: AsyncSession, limit: int) -> dict[str, Any]:
        result = await self._orchestrator.retry_pending_payouts(db, limit)
        return result.model_dump()

    async def dispatch_notifications(self, db: AsyncSession, limit: int) -> dict[str, Any]:
        claimed = await self._dispatcher.dispatch_pending(db, limit)
        return {"dispatched": claimed}

    async def audit_invariants(self, db: AsyncSession) -> dict[str, Any]:
        violations = await verify_ledger_invariants(db)
        return {"ok": not violations, "violations": violations}
