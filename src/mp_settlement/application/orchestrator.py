"""SettlementOrchestrator: accepted bid → checkout → receipt → seller payout.

Holds no state of its own: every entry point re-reads the ledger, so any
step can be replayed after a crash or a duplicate request.

Idempotency keys sent to the gateway:
  checkout:{bid_id}          one checkout session per accepted bid
  payout:{transaction_id}    one transfer per transaction; a payout reopened
                             after a rejected destination appends
                             ":reopen:{n}" so the gateway does not replay
                             the cached rejection

Gateway calls never run inside an open ledger write: the ledger is committed
before the call and the outcome is recorded in a second transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_bidding.domain.repository import BidRepositoryProtocol
from src.mp_bidding.infrastructure.persistence import BidRepository
from src.mp_catalog.domain.repository import ProductRepositoryProtocol
from src.mp_catalog.infrastructure.persistence import ProductRepository
from src.mp_common.enums import NotificationType
from src.mp_common.errors import (
    AmountMismatchError,
    AppError,
    BidNotAcceptedError,
    BidNotFoundError,
    GatewayRejectedError,
    GatewayUnavailableError,
    PaymentNotCapturedError,
    PayoutDestinationMissingError,
    ProductNotFoundError,
    TransactionNotFoundError,
    UnauthorizedActorError,
)
from src.mp_common.id_generator import PAYOUT_PREFIX, TRANSACTION_PREFIX, generate_id
from src.mp_common.money import minor_to_display
from src.mp_common.pagination import decode_ts_cursor, encode_ts_cursor
from src.mp_gateway.auth.context import CurrentUser
from src.mp_notification.application.emitter import NotificationEmitter
from src.mp_payments.domain.gateway import PaymentGatewayProtocol
from src.mp_payments.domain.repository import ProfileRepositoryProtocol
from src.mp_payments.infrastructure.persistence import ProfileRepository
from src.mp_payments.infrastructure.stripe_gateway import get_payment_gateway
from src.mp_settlement.application.schemas import (
    CheckoutCompletionResponse,
    ConfirmReceiptResponse,
    InitiatePaymentResponse,
    PayoutError,
    PayoutResult,
    PayoutSweepItem,
    PayoutSweepResponse,
    TransactionListResponse,
    TransactionResponse,
)
from src.mp_settlement.domain.fee import split_amount
from src.mp_settlement.domain.models import Payout, Transaction
from src.mp_settlement.domain.repository import (
    PayoutRepositoryProtocol,
    TransactionRepositoryProtocol,
)
from src.mp_settlement.domain.state_machine import (
    ensure_buyer,
    ensure_confirmation_pending,
    ensure_payable,
)
from src.mp_settlement.infrastructure.persistence import (
    PayoutRepository,
    TransactionRepository,
)

logger = logging.getLogger(__name__)


def _payout_error(exc: AppError) -> PayoutError:
    return PayoutError(
        code=exc.code, message=exc.message, retryable=getattr(exc, "retryable", False)
    )


def payout_idempotency_key(transaction_id: str, reopen_count: int) -> str:
    if reopen_count == 0:
        return f"payout:{transaction_id}"
    return f"payout:{transaction_id}:reopen:{reopen_count}"


class SettlementOrchestrator:
    def __init__(
        self,
        txn_repo: TransactionRepositoryProtocol | None = None,
        payout_repo: PayoutRepositoryProtocol | None = None,
        bid_repo: BidRepositoryProtocol | None = None,
        product_repo: ProductRepositoryProtocol | None = None,
        profile_repo: ProfileRepositoryProtocol | None = None,
        gateway: PaymentGatewayProtocol | None = None,
        emitter: NotificationEmitter | None = None,
        fee_bps: int | None = None,
    ) -> None:
        self._txns: TransactionRepositoryProtocol = txn_repo or TransactionRepository()
        self._payouts: PayoutRepositoryProtocol = payout_repo or PayoutRepository()
        self._bids: BidRepositoryProtocol = bid_repo or BidRepository()
        self._products: ProductRepositoryProtocol = product_repo or ProductRepository()
        self._profiles: ProfileRepositoryProtocol = profile_repo or ProfileRepository()
        self._gateway = gateway
        self._emitter = emitter or NotificationEmitter()
        self._fee_bps = settings.PLATFORM_FEE_BPS if fee_bps is None else fee_bps

    @property
    def gateway(self) -> PaymentGatewayProtocol:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    # ------------------------------------------------------------------
    # initiate_payment
    # ------------------------------------------------------------------

    async def initiate_payment(
        self, db: AsyncSession, user: CurrentUser, bid_id: str, amount: int
    ) -> InitiatePaymentResponse:
        bid = await self._bids.get_bid(db, bid_id)
        if bid is None:
            raise BidNotFoundError(bid_id)
        if bid.buyer_id != user.id:
            raise UnauthorizedActorError("only the winning buyer can pay for this bid")
        if not bid.is_accepted:
            raise BidNotAcceptedError(bid_id, bid.status)
        product = await self._products.get_product(db, bid.product_id)
        if product is None:
            raise ProductNotFoundError(bid.product_id)
        destination = await self._profiles.get_payout_account(db, product.seller_id)
        if not destination:
            raise PayoutDestinationMissingError(product.seller_id)
        if amount != bid.amount:
            raise AmountMismatchError(bid.amount, amount)

        existing = await self._txns.get_by_bid(db, bid_id)
        if existing is not None:
            logger.info("Payment replay: bid=%s transaction=%s", bid_id, existing.id)
            return self._initiate_response(existing, replayed=True)

        split = split_amount(amount, self._fee_bps)
        # Request parameters must be identical on replay or the gateway
        # refuses the reused idempotency key.
        session = await self.gateway.create_checkout_session(
            amount=split.amount,
            product_name=product.name,
            success_url=(
                f"{settings.PUBLIC_BASE_URL}/payment-success"
                "?session_id={CHECKOUT_SESSION_ID}"
            ),
            cancel_url=f"{settings.PUBLIC_BASE_URL}/my-activity",
            idempotency_key=f"checkout:{bid_id}",
            metadata={
                "bid_id": bid_id,
                "product_id": product.id,
                "buyer_id": bid.buyer_id,
                "platform_fee": str(split.platform_fee),
                "destination_account": destination,
            },
            transfer_group=bid_id,
        )

        try:
            txn = await self._txns.insert_transaction(
                db,
                Transaction(
                    id=generate_id(TRANSACTION_PREFIX),
                    bid_id=bid_id,
                    buyer_id=bid.buyer_id,
                    seller_id=product.seller_id,
                    product_id=product.id,
                    amount=split.amount,
                    platform_fee=split.platform_fee,
                    seller_amount=split.seller_amount,
                    currency=settings.CURRENCY,
                    gateway_session_id=session.session_id,
                    checkout_url=session.redirect_url,
                ),
            )
            if txn is None:
                # Lost the race to a concurrent initiate for the same bid.
                txn = await self._txns.get_by_bid(db, bid_id)
                if txn is None:
                    raise TransactionNotFoundError(f"bid:{bid_id}")
                await db.commit()
                return self._initiate_response(txn, replayed=True)

            await self._emitter.publish(
                db,
                product.seller_id,
                NotificationType.PAYMENT_INITIATED,
                "Payment Initiated",
                f'The buyer started paying {minor_to_display(amount, settings.CURRENCY)} '
                f'for "{product.name}". The sale completes once payment is processed.',
                related_id=txn.id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Payment initiated: transaction=%s bid=%s amount=%d fee=%d session=%s",
            txn.id, bid_id, txn.amount, txn.platform_fee, txn.gateway_session_id,
        )
        return self._initiate_response(txn, replayed=False)

    @staticmethod
    def _initiate_response(txn: Transaction, replayed: bool) -> InitiatePaymentResponse:
        return InitiatePaymentResponse(
            transaction_id=txn.id,
            checkout_url=txn.checkout_url,
            session_id=txn.gateway_session_id,
            amount=txn.amount,
            platform_fee=txn.platform_fee,
            seller_amount=txn.seller_amount,
            replayed=replayed,
        )

    # ------------------------------------------------------------------
    # checkout completion
    # ------------------------------------------------------------------

    async def complete_checkout_return(
        self, db: AsyncSession, user: CurrentUser, session_id: str
    ) -> CheckoutCompletionResponse:
        """Buyer's return redirect: trusted only after asking the gateway."""
        state = await self.gateway.get_checkout_session(session_id)
        if not state.is_paid:
            raise PaymentNotCapturedError(f"session:{session_id}")
        buyer_id = state.metadata.get("buyer_id")
        if buyer_id is not None and buyer_id != user.id:
            raise UnauthorizedActorError("checkout session belongs to another buyer")
        return await self.handle_checkout_completed(db, session_id, state.amount_total)

    async def handle_checkout_completed(
        self, db: AsyncSession, session_id: str, amount_total: int | None
    ) -> CheckoutCompletionResponse:
        """Record that the buyer paid. Safe to call any number of times.

        ``amount_total`` is what the gateway says was charged; a session whose
        total differs from the ledger amount is refused and left unpaid.
        """
        try:
            txn = await self._txns.get_by_session_for_update(db, session_id)
            if txn is None:
                raise TransactionNotFoundError(f"session:{session_id}")
            if amount_total != txn.amount:
                logger.error(
                    "Checkout amount mismatch: transaction=%s session=%s expected=%d charged=%s",
                    txn.id, session_id, txn.amount, amount_total,
                )
                raise AmountMismatchError(txn.amount, amount_total)
            newly_paid = await self._txns.mark_paid(db, txn.id)
            product_sold = await self._products.mark_sold(db, txn.product_id)
            if newly_paid:
                product = await self._products.get_product(db, txn.product_id)
                name = product.name if product else txn.product_id
                await self._emitter.publish(
                    db,
                    txn.seller_id,
                    NotificationType.SALE_COMPLETED,
                    "Item Sold!",
                    f'Your item "{name}" has been sold for '
                    f"{minor_to_display(txn.amount, txn.currency)}. "
                    "Payout follows once the buyer confirms receipt.",
                    related_id=txn.id,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if newly_paid:
            logger.info("Checkout paid: transaction=%s session=%s", txn.id, session_id)
        response = CheckoutCompletionResponse(
            transaction_id=txn.id, newly_paid=newly_paid, product_sold=product_sold
        )
        # Buyer confirmed before the payment signal arrived: pay out now.
        if txn.is_confirmed and txn.status == "pending":
            try:
                response.payout = await self.payout(db, txn.id)
            except (GatewayUnavailableError, GatewayRejectedError) as exc:
                response.payout_error = _payout_error(exc)
        return response

    # ------------------------------------------------------------------
    # confirm_receipt / dispute
    # ------------------------------------------------------------------

    async def confirm_receipt(
        self, db: AsyncSession, user: CurrentUser, transaction_id: str
    ) -> ConfirmReceiptResponse:
        try:
            txn = await self._txns.get_transaction_for_update(db, transaction_id)
            if txn is None:
                raise TransactionNotFoundError(transaction_id)
            ensure_buyer(txn, user.id)
            ensure_confirmation_pending(txn)
            confirmed = await self._txns.confirm(db, transaction_id)
            if confirmed is None:
                raise TransactionNotFoundError(transaction_id)
            # Committed on its own: a payout failure below must not undo it.
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Receipt confirmed: transaction=%s buyer=%s", transaction_id, user.id)

        response = ConfirmReceiptResponse(transaction=TransactionResponse.from_domain(confirmed))
        try:
            response.payout = await self.payout(db, transaction_id)
        except AppError as exc:
            logger.warning(
                "Payout deferred after confirmation: transaction=%s code=%d %s",
                transaction_id, exc.code, exc.message,
            )
            response.payout_error = _payout_error(exc)

        refreshed = await self._txns.get_transaction(db, transaction_id)
        if refreshed is not None:
            response.transaction = TransactionResponse.from_domain(refreshed)
        return response

    async def dispute(
        self, db: AsyncSession, user: CurrentUser, transaction_id: str
    ) -> TransactionResponse:
        try:
            txn = await self._txns.get_transaction_for_update(db, transaction_id)
            if txn is None:
                raise TransactionNotFoundError(transaction_id)
            ensure_buyer(txn, user.id)
            ensure_confirmation_pending(txn)
            disputed = await self._txns.dispute(db, transaction_id)
            if disputed is None:
                raise TransactionNotFoundError(transaction_id)
            await self._emitter.publish(
                db,
                txn.seller_id,
                NotificationType.TRANSACTION_DISPUTED,
                "Transaction Disputed",
                "The buyer reported a problem with their order. "
                "Payout is on hold until the dispute is resolved.",
                related_id=transaction_id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Transaction disputed: transaction=%s", transaction_id)
        return TransactionResponse.from_domain(disputed)

    # ------------------------------------------------------------------
    # payout
    # ------------------------------------------------------------------

    async def payout(self, db: AsyncSession, transaction_id: str) -> PayoutResult:
        """Move the seller's share. Completed transactions return the recorded transfer.

        A transaction failed by a permanent rejection is reopened only once the
        seller's payout destination differs from the one that was rejected.
        """
        try:
            txn = await self._txns.get_transaction_for_update(db, transaction_id)
            if txn is None:
                raise TransactionNotFoundError(transaction_id)

            if txn.is_completed:
                await db.rollback()
                recorded = await self._payouts.get_by_transaction(db, transaction_id)
                if recorded is None:
                    raise TransactionNotFoundError(f"payout:{transaction_id}")
                logger.info("Payout replay: transaction=%s", transaction_id)
                return PayoutResult.from_domain(recorded, already_completed=True)

            destination = await self._profiles.get_payout_account(db, txn.seller_id)
            if txn.status == "failed":
                txn = await self._reopen_rejected(db, txn, destination)

            ensure_payable(txn)
            if not destination:
                raise PayoutDestinationMissingError(txn.seller_id)

            attempt = await self._payouts.record_attempt(
                db,
                Payout(
                    id=generate_id(PAYOUT_PREFIX),
                    transaction_id=txn.id,
                    seller_id=txn.seller_id,
                    destination_account=destination,
                    amount=txn.seller_amount,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        try:
            transfer = await self.gateway.create_transfer(
                amount=txn.seller_amount,
                destination_account=destination,
                idempotency_key=payout_idempotency_key(txn.id, attempt.reopen_count),
                metadata={"transaction_id": txn.id, "bid_id": txn.bid_id},
            )
        except GatewayUnavailableError as exc:
            await self._record_failure(db, txn, "failed", exc)
            raise
        except GatewayRejectedError as exc:
            await self._record_failure(db, txn, "rejected", exc)
            raise

        try:
            succeeded = await self._payouts.mark_succeeded(db, txn.id, transfer.transfer_id)
            completed = await self._txns.mark_completed(db, txn.id)
            # A concurrent payout for the same key already completed the row.
            if completed is not None:
                await self._emitter.publish(
                    db,
                    txn.seller_id,
                    NotificationType.PAYMENT_RECEIVED,
                    "Payment Received",
                    f"You have received {minor_to_display(txn.seller_amount, txn.currency)} "
                    "for your sale.",
                    related_id=txn.id,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Payout succeeded: transaction=%s transfer=%s amount=%d attempts=%d",
            txn.id, transfer.transfer_id, txn.seller_amount, attempt.attempts,
        )
        return PayoutResult.from_domain(succeeded or attempt)

    async def _reopen_rejected(
        self, db: AsyncSession, txn: Transaction, destination: str | None
    ) -> Transaction:
        """failed -> pending, allowed only for a destination the gateway has not rejected."""
        recorded = await self._payouts.get_by_transaction(db, txn.id)
        if recorded is None or not destination or recorded.destination_account == destination:
            reason = (recorded.last_error if recorded else None) or "payout previously rejected"
            raise GatewayRejectedError(
                f"{reason}. Connect a valid payout account before retrying"
            )
        reopened = await self._txns.reopen_failed(db, txn.id)
        if reopened is None:
            raise TransactionNotFoundError(txn.id)
        await self._payouts.reopen(db, txn.id)
        logger.info(
            "Payout reopened: transaction=%s rejected=%s new_destination=%s",
            txn.id, recorded.destination_account, destination,
        )
        return reopened

    async def retry_payout(
        self, db: AsyncSession, user: CurrentUser, transaction_id: str
    ) -> PayoutResult:
        """Seller-initiated retry, typically after connecting a new payout account."""
        txn = await self._txns.get_transaction(db, transaction_id)
        if txn is None or not txn.is_party(user.id):
            raise TransactionNotFoundError(transaction_id)
        if txn.seller_id != user.id:
            raise UnauthorizedActorError("only the seller can retry a payout")
        await db.rollback()
        return await self.payout(db, transaction_id)

    async def _record_failure(
        self, db: AsyncSession, txn: Transaction, status: str, exc: AppError
    ) -> None:
        """Persist a failed transfer attempt; the caller re-raises ``exc``."""
        try:
            await self._payouts.mark_failed(db, txn.id, status, exc.message)
            if status == "rejected":
                await self._txns.mark_failed(db, txn.id)
                await self._emitter.publish(
                    db,
                    txn.seller_id,
                    NotificationType.PAYOUT_FAILED,
                    "Payout Failed",
                    "We could not send your payout: "
                    f"{exc.message}. Connect a new payout account, then retry the "
                    "payout from your transactions.",
                    related_id=txn.id,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning(
            "Payout %s: transaction=%s error=%s", status, txn.id, exc.message
        )

    async def retry_pending_payouts(self, db: AsyncSession, limit: int) -> PayoutSweepResponse:
        """Sweep confirmed + paid transactions whose payout has not completed."""
        candidate_ids = await self._txns.list_payout_candidates(db, limit)
        await db.rollback()
        items: list[PayoutSweepItem] = []
        for transaction_id in candidate_ids:
            try:
                result = await self.payout(db, transaction_id)
                items.append(PayoutSweepItem(transaction_id=transaction_id, status=result.status))
            except AppError as exc:
                items.append(
                    PayoutSweepItem(
                        transaction_id=transaction_id, status="error", error=_payout_error(exc)
                    )
                )
        succeeded = sum(1 for i in items if i.status == "succeeded")
        logger.info(
            "Payout sweep: attempted=%d succeeded=%d", len(items), succeeded
        )
        return PayoutSweepResponse(
            attempted=len(items),
            succeeded=succeeded,
            failed=len(items) - succeeded,
            items=items,
        )

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    async def get_transaction(
        self, db: AsyncSession, user: CurrentUser, transaction_id: str
    ) -> TransactionResponse:
        txn = await self._txns.get_transaction(db, transaction_id)
        if txn is None or not txn.is_party(user.id):
            raise TransactionNotFoundError(transaction_id)
        return TransactionResponse.from_domain(txn)

    async def list_transactions(
        self,
        db: AsyncSession,
        user: CurrentUser,
        role: str | None,
        cursor: str | None,
        limit: int,
    ) -> TransactionListResponse:
        cursor_ts, cursor_id = decode_ts_cursor(cursor)
        rows = await self._txns.list_for_user(
            db, user.id, role, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = None
        if has_more and page and page[-1].created_at is not None:
            next_cursor = encode_ts_cursor(page[-1].created_at, page[-1].id)
        return TransactionListResponse(
            items=[TransactionResponse.from_domain(t) for t in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
