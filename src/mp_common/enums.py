"""Global enums: must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class ProductStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    REMOVED = "removed"


class BidStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ConfirmationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISPUTED = "disputed"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"      # transient: eligible for the retry sweep
    REJECTED = "rejected"  # permanent: needs seller action


class NotificationType(str, Enum):
    BID_RECEIVED = "bid_received"
    BID_ACCEPTED = "bid_accepted"
    BID_REJECTED = "bid_rejected"
    PURCHASE_STARTED = "purchase_started"
    PAYOUT_SETUP_REQUIRED = "payout_setup_required"
    PAYMENT_INITIATED = "payment_initiated"
    SALE_COMPLETED = "sale_completed"
    PAYMENT_RECEIVED = "payment_received"
    PAYOUT_FAILED = "payout_failed"
    TRANSACTION_DISPUTED = "transaction_disputed"
    NEW_MESSAGE = "new_message"
    REVIEW_RECEIVED = "review_received"
