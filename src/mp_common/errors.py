"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Product
  3xxx: Bid
  4xxx: Settlement / Transaction
  5xxx: Payment gateway
  6xxx: Notification / Review
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Operation not permitted") -> None:
        super().__init__(1006, detail, 403)


# --- 2xxx: Product ---

class ProductNotFoundError(AppError):
    def __init__(self, product_id: str) -> None:
        super().__init__(2001, f"Product not found: {product_id}", 404)


class ProductNotAvailableError(AppError):
    def __init__(self, product_id: str, status: str) -> None:
        super().__init__(2002, f"Product {product_id} is not available (status={status})", 422)


class ProductHasOpenBidsError(AppError):
    def __init__(self, product_id: str) -> None:
        super().__init__(
            2003, f"Product {product_id} has an accepted bid or open transaction", 409
        )


class InvalidPriceError(AppError):
    def __init__(self, price: int) -> None:
        super().__init__(2004, f"Price must be positive, got {price}", 422)


# --- 3xxx: Bid ---

class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(3001, f"Bid amount must be positive, got {amount}", 422)


class SelfBiddingError(AppError):
    def __init__(self) -> None:
        super().__init__(3002, "Sellers cannot bid on their own products", 422)


class BidNotFoundError(AppError):
    def __init__(self, bid_id: str) -> None:
        super().__init__(3003, f"Bid not found: {bid_id}", 404)


class UnauthorizedActorError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3004, f"Unauthorized: {detail}", 403)


class BidAlreadyResolvedError(AppError):
    def __init__(self, bid_id: str, status: str) -> None:
        super().__init__(3005, f"Bid {bid_id} is already {status}", 409)


# --- 4xxx: Settlement ---

class BidNotAcceptedError(AppError):
    def __init__(self, bid_id: str, status: str) -> None:
        super().__init__(4001, f"Bid {bid_id} is not accepted (status={status})", 409)


class AmountMismatchError(AppError):
    def __init__(self, expected: int, presented: int | None) -> None:
        super().__init__(
            4002,
            f"Payment amount {presented} does not match accepted bid amount {expected}",
            422,
        )


class PayoutDestinationMissingError(AppError):
    def __init__(self, seller_id: str) -> None:
        super().__init__(
            4003, f"Seller {seller_id} has not connected a payout account", 422
        )


class TransactionNotFoundError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(4004, f"Transaction not found: {transaction_id}", 404)


class AlreadyConfirmedError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(4005, f"Transaction {transaction_id} is already confirmed", 409)


class TransactionDisputedError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(4006, f"Transaction {transaction_id} is disputed", 409)


class ReceiptNotConfirmedError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            4007, f"Buyer has not confirmed receipt for transaction {transaction_id}", 409
        )


class PaymentNotCapturedError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            4008, f"Checkout for transaction {transaction_id} has not been paid yet", 409
        )


# --- 5xxx: Payment gateway ---

class GatewayUnavailableError(AppError):
    """Transient gateway failure: safe to retry with the same idempotency key."""

    retryable = True

    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Payment gateway unavailable, try again: {detail}", 503)


class GatewayRejectedError(AppError):
    """Permanent gateway failure: must be fixed by the user, never auto-retried."""

    retryable = False

    def __init__(self, detail: str) -> None:
        super().__init__(5002, f"Payment gateway rejected the request: {detail}", 422)


class InvalidWebhookSignatureError(AppError):
    def __init__(self, detail: str = "Invalid webhook signature") -> None:
        super().__init__(5003, detail, 400)


class InvalidListingPaymentTypeError(AppError):
    def __init__(self, payment_type: str) -> None:
        super().__init__(5004, f"Unknown listing payment type: {payment_type}", 422)


class ListingPaymentNotFoundError(AppError):
    def __init__(self, reference: str) -> None:
        super().__init__(5005, f"Listing payment not found: {reference}", 404)


class ListingProductRequiredError(AppError):
    def __init__(self, payment_type: str) -> None:
        super().__init__(5006, f"Listing payment {payment_type} needs a product_id", 422)


# --- 6xxx: Notification / Review ---

class NotificationNotFoundError(AppError):
    def __init__(self, notification_id: int) -> None:
        super().__init__(6001, f"Notification not found: {notification_id}", 404)


class InvalidRatingError(AppError):
    def __init__(self, rating: int) -> None:
        super().__init__(6002, f"Rating must be between 1 and 5, got {rating}", 422)


class SelfReviewError(AppError):
    def __init__(self) -> None:
        super().__init__(6003, "You cannot review yourself", 422)


class DuplicateReviewError(AppError):
    def __init__(self, product_id: str) -> None:
        super().__init__(6004, f"You already reviewed product {product_id}", 409)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
