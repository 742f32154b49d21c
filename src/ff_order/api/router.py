# src/ff_order/api/router.py
"""ff_order REST endpoints.

GET    /orders                 filtered, paginated listing
POST   /orders                 create (setup gate)
GET    /orders/notifications   polling snapshot of the caller's orders
GET    /orders/{id}            single order
DELETE /orders/{id}            owner delete
POST   /orders/{id}/claim      claim (setup gate)
POST   /orders/{id}/ready      claimer marks ready
POST   /orders/{id}/complete   creator or claimer completes
POST   /orders/{id}/unclaim    claimer releases
PATCH  /orders/{id}/edit       owner edit
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.database import get_db_session
from src.ff_common.response import ApiResponse, success_response
from src.ff_gateway.auth.dependencies import get_current_user, require_profile
from src.ff_gateway.user.db_models import UserModel
from src.ff_notify.api.router import get_notification_hub
from src.ff_notify.application.service import NotificationService
from src.ff_notify.domain.hub import NotificationHub
from src.ff_order.application.schemas import (
    CreateOrderRequest,
    DeleteOrderResponse,
    EditOrderRequest,
    OrderResponse,
    OrderStatusLiteral,
    OrderTypeLiteral,
)
from src.ff_order.application.service import OrderLifecycleService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(
    hub: Annotated[NotificationHub, Depends(get_notification_hub)],
) -> OrderLifecycleService:
    """FastAPI dependency: lifecycle service wired to the app's notification hub."""
    return OrderLifecycleService(notifier=NotificationService(hub))


def _order_payload(order_response: OrderResponse) -> dict:
    return order_response.model_dump(mode="json")


@router.get("")
async def list_orders(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
    order_type: OrderTypeLiteral | None = Query(None, alias="orderType"),
    status_filter: OrderStatusLiteral | None = Query(None, alias="status"),
    user_id: str | None = Query(
        None, alias="userId", description="Discord id; matches creator or claimer"
    ),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    include_user_data: bool = Query(True, alias="includeUserData"),
) -> ApiResponse:
    result = await service.list_orders(
        db, order_type, status_filter, user_id, page, limit, include_user_data
    )
    return success_response(result.model_dump(mode="json"), request=request)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: Request,
    body: CreateOrderRequest,
    current_user: Annotated[UserModel, Depends(require_profile)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    order = await service.create(body, str(current_user.id), db)
    return success_response(
        _order_payload(OrderResponse.from_domain(order)), message="Order created", request=request
    )


@router.get("/notifications")
async def notification_snapshot(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    orders = await service.list_for_notifications(str(current_user.id), db)
    return success_response(
        [_order_payload(OrderResponse.from_domain(o)) for o in orders], request=request
    )


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    order = await service.get(order_id, db)
    return success_response(_order_payload(OrderResponse.from_domain(order)), request=request)


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    order = await service.delete(order_id, str(current_user.id), db)
    return success_response(
        DeleteOrderResponse.from_domain(order).model_dump(),
        message="Order deleted successfully",
        request=request,
    )


@router.post("/{order_id}/claim")
async def claim_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(require_profile)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    order = await service.claim(order_id, str(current_user.id), db)
    return success_response(_order_payload(OrderResponse.from_domain(order)), request=request)


@router.post("/{order_id}/ready")
async def mark_order_ready(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    order = await service.mark_ready(order_id, str(current_user.id), db)
    return success_response(_order_payload(OrderResponse.from_domain(order)), request=request)


@router.post("/{order_id}/complete")
async def complete_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    order = await service.complete(order_id, str(current_user.id), db)
    return success_response(_order_payload(OrderResponse.from_domain(order)), request=request)


@router.post("/{order_id}/unclaim")
async def unclaim_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    order = await service.unclaim(order_id, str(current_user.id), db)
    return success_response(_order_payload(OrderResponse.from_domain(order)), request=request)


@router.patch("/{order_id}/edit")
async def edit_order(
    order_id: str,
    request: Request,
    body: EditOrderRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderLifecycleService, Depends(get_order_service)],
) -> ApiResponse:
    order = await service.edit(order_id, str(current_user.id), body, db)
    return success_response(
        _order_payload(OrderResponse.from_domain(order)), message="Order updated", request=request
    )
