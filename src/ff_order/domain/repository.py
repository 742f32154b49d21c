# src/ff_order/domain/repository.py
"""OrderRepository Protocol: interface contract for persistence layer.

Mutations are conditional: they only touch the row while it still holds the
status (and claimer, when given) the caller validated against, and report
whether a row was affected. Callers treat False as a lost race.
"""
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_order.domain.models import Order

# Sentinel: do not constrain the update on claimer_id
ANY_CLAIMER: Any = object()


class OrderRepositoryProtocol(Protocol):
    async def insert(self, order: Order, db: AsyncSession) -> None: ...

    async def get_by_id(self, order_id: str, db: AsyncSession) -> Order | None: ...

    async def list_orders(
        self,
        db: AsyncSession,
        order_type: str | None,
        status: str | None,
        participant_id: str | None,
        offset: int,
        limit: int | None,
    ) -> tuple[list[Order], int]: ...

    async def list_for_participant(
        self, participant_id: str, db: AsyncSession
    ) -> list[Order]: ...

    async def update_if_status(
        self,
        order_id: str,
        expected_status: str,
        changes: dict[str, Any],
        db: AsyncSession,
        expected_claimer_id: Any = ANY_CLAIMER,
    ) -> bool: ...

    async def delete_if_status(
        self, order_id: str, expected_status: str, db: AsyncSession
    ) -> bool: ...
