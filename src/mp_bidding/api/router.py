"""mp_bidding REST endpoints.

POST /products/{product_id}/bids     - submit a bid
GET  /products/{product_id}/bids     - bids on a listing (seller only)
POST /products/{product_id}/buy-now  - buy at the listed price
GET  /bids/mine                      - caller's bids
POST /bids/{bid_id}/accept           - seller accepts (rejects the rest)
POST /bids/{bid_id}/reject           - seller rejects
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_bidding.application.schemas import SubmitBidRequest
from src.mp_bidding.application.service import BidApplicationService
from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, attach_request_id, success_response
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.dependencies import get_current_user

router = APIRouter(tags=["bids"])

_service = BidApplicationService()


@router.post("/products/{product_id}/bids", status_code=status.HTTP_201_CREATED)
async def submit_bid(
    product_id: str,
    body: SubmitBidRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.submit_bid(db, current_user, product_id, body)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.get("/products/{product_id}/bids")
async def list_product_bids(
    product_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_product_bids(db, current_user, product_id, cursor, limit)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/products/{product_id}/buy-now", status_code=status.HTTP_201_CREATED)
async def buy_now(
    product_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.buy_now(db, current_user, product_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.get("/bids/mine")
async def list_my_bids(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(None, description="pending / accepted / rejected"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_my_bids(db, current_user, status, cursor, limit)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/bids/{bid_id}/accept")
async def accept_bid(
    bid_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.accept_bid(db, current_user, bid_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/bids/{bid_id}/reject")
async def reject_bid(
    bid_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.reject_bid(db, current_user, bid_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))
