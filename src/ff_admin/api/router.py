# src/ff_admin/api/router.py
"""Admin REST API.

GET    /admin/auth          is the caller an admin
POST   /admin/auth          grant admin with the shared secret
GET    /admin/users         claimer picker
GET    /admin/orders        every order with both parties
PATCH  /admin/orders/{id}   forced edit
DELETE /admin/orders/{id}   delete in any status
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_admin.application.service import AdminService
from src.ff_common.database import get_db_session
from src.ff_common.response import ApiResponse, success_response
from src.ff_gateway.auth.dependencies import get_current_user, require_admin
from src.ff_gateway.user.db_models import UserModel
from src.ff_order.api.router import get_order_service
from src.ff_order.application.schemas import AdminEditOrderRequest
from src.ff_order.application.service import OrderLifecycleService

router = APIRouter(prefix="/admin", tags=["admin"])


class AdminAuthRequest(BaseModel):
    password: str = Field(..., min_length=1)


def get_admin_service(
    orders: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> AdminService:
    return AdminService(orders=orders)


@router.get("/auth")
async def admin_status(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
) -> ApiResponse:
    return success_response({"is_admin": current_user.is_admin}, request=request)


@router.post("/auth")
async def admin_grant(
    request: Request,
    body: AdminAuthRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.grant(current_user, body.password, db)
    return success_response(result, message="Admin access granted", request=request)


@router.get("/users")
async def list_users(
    request: Request,
    _admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    return success_response(await service.list_users(db), request=request)


@router.get("/orders")
async def list_orders(
    request: Request,
    _admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    return success_response(await service.list_orders(db), request=request)


@router.patch("/orders/{order_id}")
async def edit_order(
    order_id: str,
    request: Request,
    body: AdminEditOrderRequest,
    _admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.edit_order(order_id, body, db)
    return success_response(result, message="Order updated", request=request)


@router.delete("/orders/{order_id}")
async def delete_order(
    order_id: str,
    request: Request,
    _admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    result = await service.delete_order(order_id, db)
    return success_response(result, message="Order deleted successfully", request=request)
