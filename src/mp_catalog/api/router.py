"""mp_catalog REST endpoints.

POST   /products               - create listing
GET    /products               - list with cursor pagination
GET    /products/{product_id}  - detail
DELETE /products/{product_id}  - seller removes listing
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_catalog.application.schemas import CreateProductRequest
from src.mp_catalog.application.service import CatalogApplicationService
from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, attach_request_id, success_response
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.dependencies import get_current_user

router = APIRouter(prefix="/products", tags=["products"])

_service = CatalogApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    body: CreateProductRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_product(db, current_user, body)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.get("")
async def list_products(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(
        None, description="Filter by status. Default: active. Use all for no filter."
    ),
    seller_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_products(db, status, seller_id, cursor, limit)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_product(db, product_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))


@router.delete("/{product_id}")
async def remove_product(
    product_id: str,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.remove_product(db, current_user, product_id)
    resp = success_response(result.model_dump())
    return attach_request_id(resp, getattr(request.state, "request_id", None))
