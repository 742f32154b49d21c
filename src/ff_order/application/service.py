# src/ff_order/application/service.py
"""OrderLifecycleService: validates and applies order transitions.

Each mutation reads the order, checks it with the pure rules in
ff_order.domain.lifecycle, then writes with one conditional statement keyed
on the status (and claimer, where it matters) that was checked. If another
request got there first the statement matches no row and the caller gets
OrderConflictError instead of silently overwriting the winner.

The status guaranteed by that predicate is the previous status handed to the
notifier, so notifications never describe a transition that did not happen.
"""
import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.datetime_utils import utc_now
from src.ff_common.errors import (
    InvalidOrderInputError,
    OrderConflictError,
    OrderNotFoundError,
    UserNotFoundError,
)
from src.ff_gateway.user.service import UserService
from src.ff_notify.application.service import NotificationService
from src.ff_order.application.schemas import (
    AdminEditOrderRequest,
    CreateOrderRequest,
    EditOrderRequest,
    OrderListResponse,
    OrderResponse,
)
from src.ff_order.domain import lifecycle
from src.ff_order.domain.models import Order
from src.ff_order.domain.repository import ANY_CLAIMER, OrderRepositoryProtocol
from src.ff_order.infrastructure.persistence import OrderRepository
from src.ff_pricing.application.service import PricingService

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("item_name", "tier", "price_per_unit", "amount", "order_type")


class OrderLifecycleService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        users: UserService | None = None,
        pricing: PricingService | None = None,
        notifier: NotificationService | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._users = users or UserService()
        self._pricing = pricing or PricingService()
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, order_id: str, db: AsyncSession) -> Order:
        order = await self._repo.get_by_id(order_id, db)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(
        self,
        db: AsyncSession,
        order_type: str | None = None,
        status: str | None = None,
        user_discord_id: str | None = None,
        page: int = 1,
        limit: int = 50,
        include_user_data: bool = True,
    ) -> OrderListResponse:
        participant_id = None
        if user_discord_id:
            participant_id = await self._users.find_id_by_discord_id(user_discord_id, db)
            if participant_id is None:
                return OrderListResponse(
                    items=[], total_count=0, has_more=False, page=page, limit=limit
                )

        offset = (page - 1) * limit
        orders, total = await self._repo.list_orders(
            db, order_type, status, participant_id, offset, limit
        )
        return OrderListResponse(
            items=[OrderResponse.from_domain(o, include_user_data) for o in orders],
            total_count=total,
            has_more=offset + len(orders) < total,
            page=page,
            limit=limit,
        )

    async def list_all(self, db: AsyncSession) -> list[Order]:
        orders, _ = await self._repo.list_orders(db, None, None, None, 0, None)
        return orders

    async def list_for_notifications(self, actor_id: str, db: AsyncSession) -> list[Order]:
        """Polling snapshot: every order the actor created or claimed."""
        return await self._repo.list_for_participant(actor_id, db)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(self, body: CreateOrderRequest, actor_id: str, db: AsyncSession) -> Order:
        price = body.price_per_unit
        if price is None:
            price = await self._pricing.reference_price(body.item_name, body.tier, db)
            if price is None:
                raise InvalidOrderInputError(
                    f"No reference price for {body.item_name} T{body.tier}, "
                    "price_per_unit is required"
                )

        order = Order(
            id=str(uuid.uuid4()),
            item_name=body.item_name,
            tier=body.tier,
            price_per_unit=price,
            amount=body.amount,
            order_type=body.order_type,
            status=lifecycle.OPEN,
            creator_id=actor_id,
        )
        await self._repo.insert(order, db)
        await db.commit()
        logger.info(
            "Order %s created: %s %sx %s T%s by %s",
            order.id, order.order_type, order.amount, order.item_name, order.tier, actor_id,
        )
        return await self.get(order.id, db)

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    async def claim(self, order_id: str, actor_id: str, db: AsyncSession) -> Order:
        order = await self.get(order_id, db)
        target = lifecycle.check_claim(order, actor_id)
        return await self._transition(
            order, {"status": target, "claimer_id": actor_id}, db,
            expected_claimer_id=None,
        )

    async def mark_ready(self, order_id: str, actor_id: str, db: AsyncSession) -> Order:
        order = await self.get(order_id, db)
        target = lifecycle.check_mark_ready(order, actor_id)
        return await self._transition(
            order, {"status": target}, db, expected_claimer_id=actor_id
        )

    async def complete(self, order_id: str, actor_id: str, db: AsyncSession) -> Order:
        order = await self.get(order_id, db)
        target = lifecycle.check_complete(order, actor_id)
        return await self._transition(
            order,
            {"status": target, "fulfilled_at": utc_now()},
            db,
            expected_claimer_id=order.claimer_id,
        )

    async def unclaim(self, order_id: str, actor_id: str, db: AsyncSession) -> Order:
        order = await self.get(order_id, db)
        target = lifecycle.check_unclaim(order, actor_id)
        return await self._transition(
            order, {"status": target, "claimer_id": None}, db, expected_claimer_id=actor_id
        )

    async def edit(
        self, order_id: str, actor_id: str, body: EditOrderRequest, db: AsyncSession
    ) -> Order:
        order = await self.get(order_id, db)
        target = lifecycle.plan_owner_edit(order, actor_id, body.order_type)
        changes = self._field_changes(order, body)
        if target != order.status:
            changes["status"] = target
        if not changes:
            return order
        return await self._transition(order, changes, db)

    async def delete(self, order_id: str, actor_id: str, db: AsyncSession) -> Order:
        order = await self.get(order_id, db)
        lifecycle.check_owner_delete(order, actor_id)
        await self._delete(order, db)
        return order

    # ------------------------------------------------------------------
    # Admin overrides
    # ------------------------------------------------------------------

    async def admin_edit(
        self, order_id: str, body: AdminEditOrderRequest, db: AsyncSession
    ) -> Order:
        order = await self.get(order_id, db)
        target = lifecycle.plan_admin_edit(order, body.order_type, body.status)
        changes = self._field_changes(order, body)
        if target != order.status:
            changes["status"] = target
        if target == lifecycle.FULFILLED and order.fulfilled_at is None:
            changes["fulfilled_at"] = utc_now()
        elif target != lifecycle.FULFILLED and order.fulfilled_at is not None:
            # fulfilled_at is set exactly while the order is FULFILLED
            changes["fulfilled_at"] = None
        if "claimer_id" in body.model_fields_set and body.claimer_id != order.claimer_id:
            if body.claimer_id is not None and not await self._users.exists(body.claimer_id, db):
                raise UserNotFoundError(body.claimer_id)
            changes["claimer_id"] = body.claimer_id
        if not changes:
            return order
        logger.info("Admin edit of order %s: %s", order.id, sorted(changes))
        return await self._transition(order, changes, db)

    async def admin_delete(self, order_id: str, db: AsyncSession) -> Order:
        order = await self.get(order_id, db)
        await self._delete(order, db)
        return order

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _field_changes(order: Order, body: EditOrderRequest) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        for field in _EDITABLE_FIELDS:
            value = getattr(body, field)
            if value is not None and value != getattr(order, field):
                changes[field] = value
        return changes

    async def _transition(
        self,
        order: Order,
        changes: dict[str, Any],
        db: AsyncSession,
        expected_claimer_id: Any = ANY_CLAIMER,
    ) -> Order:
        previous_status = order.status
        applied = await self._repo.update_if_status(
            order.id, previous_status, changes, db, expected_claimer_id=expected_claimer_id
        )
        if not applied:
            await db.rollback()
            logger.info("Order %s changed concurrently, rejecting update", order.id)
            raise OrderConflictError(order.id)
        await db.commit()

        updated = await self.get(order.id, db)
        new_status = changes.get("status", previous_status)
        if new_status != previous_status:
            logger.info("Order %s: %s -> %s", order.id, previous_status, new_status)
            self._notify(updated, previous_status, new_status)
        return updated

    async def _delete(self, order: Order, db: AsyncSession) -> None:
        removed = await self._repo.delete_if_status(order.id, order.status, db)
        if not removed:
            await db.rollback()
            raise OrderConflictError(order.id)
        await db.commit()
        logger.info("Order %s deleted (was %s)", order.id, order.status)
        if order.is_claimed and order.status != lifecycle.OPEN:
            # the row is gone; report it as if it had gone back to OPEN
            self._notify(order, order.status, lifecycle.OPEN)

    def _notify(self, order: Order, previous_status: str, new_status: str) -> None:
        if self._notifier is not None:
            self._notifier.handle_order_update(order, previous_status, new_status)
