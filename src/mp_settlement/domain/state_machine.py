"""Transaction lifecycle guards.

confirmation_status: pending → confirmed | disputed (one-way)
status:              pending → completed   (confirmed + transfer succeeded)
                     pending → failed      (transfer permanently rejected)
"""
from src.mp_common.errors import (
    AlreadyConfirmedError,
    PaymentNotCapturedError,
    ReceiptNotConfirmedError,
    TransactionDisputedError,
    UnauthorizedActorError,
)
from src.mp_settlement.domain.models import Transaction


def ensure_buyer(txn: Transaction, user_id: str) -> None:
    if txn.buyer_id != user_id:
        raise UnauthorizedActorError("only the buyer can perform this action")


def ensure_confirmation_pending(txn: Transaction) -> None:
    if txn.confirmation_status == "confirmed":
        raise AlreadyConfirmedError(txn.id)
    if txn.confirmation_status == "disputed":
        raise TransactionDisputedError(txn.id)


def ensure_payable(txn: Transaction) -> None:
    """Preconditions for moving the seller's share."""
    if txn.confirmation_status == "disputed":
        raise TransactionDisputedError(txn.id)
    if not txn.is_confirmed:
        raise ReceiptNotConfirmedError(txn.id)
    if not txn.is_paid:
        raise PaymentNotCapturedError(txn.id)
