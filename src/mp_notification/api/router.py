"""mp_notification REST endpoints.

GET  /notifications                 - caller's inbox (cursor pagination)
POST /notifications/{id}/read       - mark one read (idempotent)
POST /notifications/read-all        - mark all read
POST /products/{product_id}/messages - message the seller of a listing
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, attach_request_id, success_response
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_notification.application.schemas import SendMessageRequest
from src.mp_notification.application.service import NotificationApplicationService

router = APIRouter(tags=["notifications"])

_service = NotificationApplicationService()


@router.get("/notifications")
async def list_notifications(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    unread_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_inbox(db, current_user, unread_only, cursor, limit)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


# Declared before /{notification_id}/read so "read-all" is not parsed as an id.
@router.post("/notifications/read-all")
async def mark_all_read(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.mark_all_read(db, current_user)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/notifications/{notification_id}/read")
async def mark_read(
    notification_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.mark_read(db, current_user, notification_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.post("/products/{product_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    product_id: str,
    body: SendMessageRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.send_message(db, current_user, product_id, body)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))
