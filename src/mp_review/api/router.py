"""mp_review REST endpoints.

POST /sellers/{seller_id}/reviews - review a seller for one of their listings
GET  /sellers/{seller_id}/reviews - reviews + average rating
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, attach_request_id, success_response
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_review.application.schemas import SubmitReviewRequest
from src.mp_review.application.service import ReviewApplicationService

router = APIRouter(prefix="/sellers", tags=["reviews"])

_service = ReviewApplicationService()


@router.post("/{seller_id}/reviews", status_code=status.HTTP_201_CREATED)
async def submit_review(
    seller_id: str,
    body: SubmitReviewRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.submit_review(db, current_user, seller_id, body)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.get("/{seller_id}/reviews")
async def list_seller_reviews(
    seller_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_seller_reviews(db, seller_id, cursor, limit)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))
