"""mp_settlement REST endpoints.

POST /bids/{bid_id}/payment                 - buyer starts checkout
GET  /transactions                          - caller's transactions
GET  /transactions/{transaction_id}         - detail (buyer or seller)
POST /transactions/{transaction_id}/confirm - buyer confirms receipt, triggers payout
POST /transactions/{transaction_id}/dispute - buyer disputes, halts payout
POST /transactions/{transaction_id}/payout/retry - seller retries a rejected payout
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, attach_request_id, success_response
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_settlement.application.orchestrator import SettlementOrchestrator
from src.mp_settlement.application.schemas import InitiatePaymentRequest

router = APIRouter(tags=["settlement"])

_orchestrator = SettlementOrchestrator()


def get_orchestrator() -> SettlementOrchestrator:
    return _orchestrator


@router.post("/bids/{bid_id}/payment", status_code=status.HTTP_201_CREATED)
async def initiate_payment(
    bid_id: str,
    body: InitiatePaymentRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[SettlementOrchestrator, Depends(get_orchestrator)],
) -> ApiResponse:
    result = await orchestrator.initiate_payment(db, current_user, bid_id, body.amount)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.get("/transactions")
async def list_transactions(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[SettlementOrchestrator, Depends(get_orchestrator)],
    role: Literal["buyer", "seller"] | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await orchestrator.list_transactions(db, current_user, role, cursor, limit)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[SettlementOrchestrator, Depends(get_orchestrator)],
) -> ApiResponse:
    result = await orchestrator.get_transaction(db, current_user, transaction_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/transactions/{transaction_id}/confirm")
async def confirm_receipt(
    transaction_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[SettlementOrchestrator, Depends(get_orchestrator)],
) -> ApiResponse:
    result = await orchestrator.confirm_receipt(db, current_user, transaction_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/transactions/{transaction_id}/dispute")
async def dispute_transaction(
    transaction_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[SettlementOrchestrator, Depends(get_orchestrator)],
) -> ApiResponse:
    result = await orchestrator.dispute(db, current_user, transaction_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/transactions/{transaction_id}/payout/retry")
async def retry_payout(
    transaction_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    orchestrator: Annotated[SettlementOrchestrator, Depends(get_orchestrator)],
) -> ApiResponse:
    result = await orchestrator.retry_payout(db, current_user, transaction_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))
