# src/ff_admin/application/service.py
"""Admin application service: thin composition over users and orders.

Admin order edits and deletes go through the same lifecycle service as
everyone else, so they share its conditional writes and notifications; only
the ownership and FULFILLED-lock checks are skipped.
"""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_gateway.user.db_models import UserModel
from src.ff_gateway.user.schemas import AdminUserOut
from src.ff_gateway.user.service import UserService
from src.ff_order.application.schemas import (
    AdminEditOrderRequest,
    DeleteOrderResponse,
    OrderResponse,
)
from src.ff_order.application.service import OrderLifecycleService


class AdminService:
    def __init__(
        self,
        orders: OrderLifecycleService | None = None,
        users: UserService | None = None,
    ) -> None:
        self._orders = orders or OrderLifecycleService()
        self._users = users or UserService()

    async def grant(self, user: UserModel, password: str, db: AsyncSession) -> dict[str, Any]:
        user = await self._users.grant_admin(user, password, db)
        return {"is_admin": user.is_admin}

    async def list_users(self, db: AsyncSession) -> list[dict[str, Any]]:
        users = await self._users.list_users(db)
        return [AdminUserOut.from_user(u).model_dump() for u in users]

    async def list_orders(self, db: AsyncSession) -> list[dict[str, Any]]:
        orders = await self._orders.list_all(db)
        return [OrderResponse.from_domain(o).model_dump(mode="json") for o in orders]

    async def edit_order(
        self, order_id: str, body: AdminEditOrderRequest, db: AsyncSession
    ) -> dict[str, Any]:
        order = await self._orders.admin_edit(order_id, body, db)
        return OrderResponse.from_domain(order).model_dump(mode="json")

    async def delete_order(self, order_id: str, db: AsyncSession) -> dict[str, Any]:
        order = await self._orders.admin_delete(order_id, db)
        return DeleteOrderResponse.from_domain(order).model_dump()
