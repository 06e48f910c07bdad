"""Admin REST API (operators listed in ADMIN_USER_IDS only)."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_admin.application.service import AdminService
from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, attach_request_id, success_response
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.dependencies import require_admin_user

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.post("/payouts/retry")
async def retry_payouts(
    request: Request,
    admin: Annotated[CurrentUser, Depends(require_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=500),
) -> ApiResponse:
    result = await _service.retry_payouts(db, limit)
    return attach_request_id(
        success_response(result), getattr(request.state, "request_id", None)
    )


@router.post("/notifications/dispatch")
async def dispatch_notifications(
    request: Request,
    admin: Annotated[CurrentUser, Depends(require_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(100, ge=1, le=1000),
) -> ApiResponse:
    result = await _service.dispatch_notifications(db, limit)
    return attach_request_id(
        success_response(result), getattr(request.state, "request_id", None)
    )


@router.get("/invariants")
async def audit_invariants(
    request: Request,
    admin: Annotated[CurrentUser, Depends(require_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.audit_invariants(db)
    return attach_request_id(
        success_response(result), getattr(request.state, "request_id", None)
    )
