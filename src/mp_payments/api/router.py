"""mp_payments REST endpoints.

POST /payments/payout-account      - seller connects a payout destination
POST /payments/checkout/complete   - buyer's return redirect after checkout
POST /payments/listing             - seller buys a listing fee or featured placement
POST /payments/webhook             - signed gateway events (no bearer token)
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, attach_request_id, success_response
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_payments.application.listing_service import ListingPaymentService
from src.mp_payments.application.schemas import (
    CheckoutCompleteRequest,
    CreateListingPaymentRequest,
    RegisterPayoutAccountRequest,
    WebhookAckResponse,
)
from src.mp_payments.application.service import PayoutOnboardingService
from src.mp_payments.domain.webhook import verify_and_parse
from src.mp_settlement.api.router import get_orchestrator
from src.mp_settlement.application.orchestrator import SettlementOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

_service = PayoutOnboardingService()
_listing_service = ListingPaymentService()

_CHECKOUT_COMPLETED = "checkout.session.completed"
_ACCOUNT_UPDATED = "account.updated"


@router.post("/payout-account")
async def register_payout_account(
    body: RegisterPayoutAccountRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.register_payout_account(db, current_user, body)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/checkout/complete")
async def complete_checkout(
    body: CheckoutCompleteRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[SettlementOrchestrator, Depends(get_orchestrator)],
) -> ApiResponse:
    result = await orchestrator.complete_checkout_return(db, current_user, body.session_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/listing", status_code=status.HTTP_201_CREATED)
async def create_listing_payment(
    body: CreateListingPaymentRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _listing_service.create_listing_payment(
        db, current_user, body.type, body.product_id
    )
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/webhook")
async def gateway_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[SettlementOrchestrator, Depends(get_orchestrator)],
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
) -> ApiResponse:
    payload = await request.body()
    event = verify_and_parse(
        payload,
        stripe_signature,
        settings.STRIPE_WEBHOOK_SECRET,
        settings.WEBHOOK_TOLERANCE_SECONDS,
    )
    handled = False
    obj = event.data_object
    metadata = obj.get("metadata") or {}
    if event.type == _CHECKOUT_COMPLETED and obj.get("payment_status") == "paid":
        session_id = str(obj["id"])
        amount_total = obj.get("amount_total")
        if metadata.get("bid_id"):
            await orchestrator.handle_checkout_completed(db, session_id, amount_total)
            handled = True
        elif metadata.get("listing_payment_id"):
            await _listing_service.handle_checkout_completed(db, session_id, amount_total)
            handled = True
    elif event.type == _ACCOUNT_UPDATED:
        await _service.handle_account_updated(db, obj)
        handled = True
    if not handled:
        logger.info("Webhook ignored: event=%s type=%s", event.id, event.type)
    resp = success_response(
        WebhookAckResponse(event_type=event.type, handled=handled).model_dump()
    )
    return attach_request_id(resp, getattr(request.state, "request_id", None))
