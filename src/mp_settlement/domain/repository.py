"""Repository Protocols for the settlement ledger."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_settlement.domain.models import Payout, Transaction


class TransactionRepositoryProtocol(Protocol):
    async def insert_transaction(
        self, db: AsyncSession, txn: Transaction
    ) -> Transaction | None: ...

    async def get_transaction(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None: ...

    async def get_transaction_for_update(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None: ...

    async def get_by_bid(self, db: AsyncSession, bid_id: str) -> Transaction | None: ...

    async def get_by_session_for_update(
        self, db: AsyncSession, session_id: str
    ) -> Transaction | None: ...

    async def mark_paid(self, db: AsyncSession, transaction_id: str) -> bool: ...

    async def confirm(self, db: AsyncSession, transaction_id: str) -> Transaction | None: ...

    async def dispute(self, db: AsyncSession, transaction_id: str) -> Transaction | None: ...

    async def mark_completed(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None: ...

    async def mark_failed(self, db: AsyncSession, transaction_id: str) -> Transaction | None: ...

    async def reopen_failed(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Transaction]: ...

    async def list_payout_candidates(self, db: AsyncSession, limit: int) -> list[str]: ...


class PayoutRepositoryProtocol(Protocol):
    async def get_by_transaction(
        self, db: AsyncSession, transaction_id: str
    ) -> Payout | None: ...

    async def record_attempt(self, db: AsyncSession, payout: Payout) -> Payout: ...

    async def mark_succeeded(
        self, db: AsyncSession, transaction_id: str, transfer_id: str
    ) -> Payout | None: ...

    async def mark_failed(
        self, db: AsyncSession, transaction_id: str, status: str, error: str
    ) -> Payout | None: ...

    async def reopen(self, db: AsyncSession, transaction_id: str) -> Payout | None: ...
