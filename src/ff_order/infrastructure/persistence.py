# src/ff_order/infrastructure/persistence.py
"""OrderRepository: raw SQL persistence implementation."""
import uuid
from typing import Any

from sqlalchemy import TextClause, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_order.domain.models import Order, UserSummary
from src.ff_order.domain.repository import ANY_CLAIMER

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, item_name, tier, price_per_unit, amount,
        order_type, status, creator_id)
    VALUES (CAST(:id AS UUID), :item_name, :tier, :price_per_unit, :amount,
        :order_type, :status, CAST(:creator_id AS UUID))
    RETURNING created_at, updated_at, status_changed_at
""")

_SELECT_JOINED = """
    SELECT o.id, o.item_name, o.tier, o.price_per_unit, o.amount,
           o.order_type, o.status, o.creator_id, o.claimer_id,
           o.created_at, o.updated_at, o.fulfilled_at, o.status_changed_at,
           cr.discord_id AS creator_discord_id,
           cr.discord_name AS creator_discord_name,
           cr.in_game_name AS creator_in_game_name,
           cl.discord_id AS claimer_discord_id,
           cl.discord_name AS claimer_discord_name,
           cl.in_game_name AS claimer_in_game_name
    FROM orders o
    JOIN users cr ON cr.id = o.creator_id
    LEFT JOIN users cl ON cl.id = o.claimer_id
"""

_FILTERS = """
    WHERE (CAST(:order_type AS TEXT) IS NULL OR o.order_type = CAST(:order_type AS TEXT))
      AND (CAST(:status AS TEXT) IS NULL OR o.status = CAST(:status AS TEXT))
      AND (CAST(:participant_id AS UUID) IS NULL
           OR o.creator_id = CAST(:participant_id AS UUID)
           OR o.claimer_id = CAST(:participant_id AS UUID))
"""

_GET_ORDER_BY_ID_SQL = text(f"""
    {_SELECT_JOINED}
    WHERE o.id = CAST(:id AS UUID)
""")

_LIST_ORDERS_SQL = text(f"""
    {_SELECT_JOINED}
    {_FILTERS}
    ORDER BY o.created_at DESC, o.id DESC
    OFFSET :offset
    LIMIT :limit  -- NULL means no limit
""")

_COUNT_ORDERS_SQL = text(f"""
    SELECT COUNT(*) AS total
    FROM orders o
    {_FILTERS}
""")

_LIST_FOR_PARTICIPANT_SQL = text(f"""
    {_SELECT_JOINED}
    WHERE o.creator_id = CAST(:participant_id AS UUID)
       OR o.claimer_id = CAST(:participant_id AS UUID)
    ORDER BY o.updated_at DESC
""")

_DELETE_IF_STATUS_SQL = text("""
    DELETE FROM orders
    WHERE id = CAST(:id AS UUID) AND status = :expected_status
""")

# column -> bind expression; anything else is rejected
_UPDATABLE_COLUMNS = {
    "item_name": ":item_name",
    "tier": ":tier",
    "price_per_unit": ":price_per_unit",
    "amount": ":amount",
    "order_type": ":order_type",
    "status": ":status",
    "claimer_id": "CAST(:claimer_id AS UUID)",
    "fulfilled_at": ":fulfilled_at",
}


def _build_update_sql(columns: list[str], constrain_claimer: bool) -> TextClause:
    unknown = set(columns) - _UPDATABLE_COLUMNS.keys()
    if unknown:
        raise ValueError(f"Columns not updatable: {sorted(unknown)}")
    assignments = ", ".join(f"{col} = {_UPDATABLE_COLUMNS[col]}" for col in columns)
    if "status" in columns:
        # right-hand "status" is the value before this update
        assignments += (
            ", status_changed_at = CASE WHEN status <> :status"
            " THEN NOW() ELSE status_changed_at END"
        )
    predicate = "id = CAST(:id AS UUID) AND status = :expected_status"
    if constrain_claimer:
        predicate += (
            " AND claimer_id IS NOT DISTINCT FROM CAST(:expected_claimer_id AS UUID)"
        )
    return text(f"UPDATE orders SET {assignments}, updated_at = NOW() WHERE {predicate}")


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, TypeError):
        return False
    return True


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> Order:
    """Convert a joined DB result row to an Order domain object."""
    creator_id = str(row.creator_id)
    claimer_id = str(row.claimer_id) if row.claimer_id is not None else None
    claimer = None
    if claimer_id is not None and row.claimer_discord_id is not None:
        claimer = UserSummary(
            id=claimer_id,
            discord_id=row.claimer_discord_id,
            discord_name=row.claimer_discord_name,
            in_game_name=row.claimer_in_game_name,
        )
    return Order(
        id=str(row.id),
        item_name=row.item_name,
        tier=row.tier,
        price_per_unit=row.price_per_unit,
        amount=row.amount,
        order_type=row.order_type,
        status=row.status,
        creator_id=creator_id,
        claimer_id=claimer_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        fulfilled_at=row.fulfilled_at,
        status_changed_at=row.status_changed_at,
        creator=UserSummary(
            id=creator_id,
            discord_id=row.creator_discord_id,
            discord_name=row.creator_discord_name,
            in_game_name=row.creator_in_game_name,
        ),
        claimer=claimer,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def insert(self, order: Order, db: AsyncSession) -> None:
        result = await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "item_name": order.item_name,
                "tier": order.tier,
                "price_per_unit": order.price_per_unit,
                "amount": order.amount,
                "order_type": order.order_type,
                "status": order.status,
                "creator_id": order.creator_id,
            },
        )
        row = result.fetchone()
        if row is not None:
            order.created_at = row.created_at
            order.updated_at = row.updated_at
            order.status_changed_at = row.status_changed_at

    async def get_by_id(self, order_id: str, db: AsyncSession) -> Order | None:
        if not _is_uuid(order_id):
            return None
        result = await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_orders(
        self,
        db: AsyncSession,
        order_type: str | None,
        status: str | None,
        participant_id: str | None,
        offset: int,
        limit: int | None,
    ) -> tuple[list[Order], int]:
        params = {
            "order_type": order_type,
            "status": status,
            "participant_id": participant_id,
        }
        total = (await db.execute(_COUNT_ORDERS_SQL, params)).scalar_one()
        result = await db.execute(
            _LIST_ORDERS_SQL, {**params, "offset": offset, "limit": limit}
        )
        return [_row_to_order(row) for row in result.fetchall()], int(total)

    async def list_for_participant(
        self, participant_id: str, db: AsyncSession
    ) -> list[Order]:
        result = await db.execute(
            _LIST_FOR_PARTICIPANT_SQL, {"participant_id": participant_id}
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def update_if_status(
        self,
        order_id: str,
        expected_status: str,
        changes: dict[str, Any],
        db: AsyncSession,
        expected_claimer_id: Any = ANY_CLAIMER,
    ) -> bool:
        if not _is_uuid(order_id):
            return False
        constrain_claimer = expected_claimer_id is not ANY_CLAIMER
        sql = _build_update_sql(list(changes), constrain_claimer)
        params: dict[str, Any] = {
            **changes,
            "id": order_id,
            "expected_status": expected_status,
        }
        if constrain_claimer:
            params["expected_claimer_id"] = expected_claimer_id
        result = await db.execute(sql, params)
        return result.rowcount == 1

    async def delete_if_status(
        self, order_id: str, expected_status: str, db: AsyncSession
    ) -> bool:
        if not _is_uuid(order_id):
            return False
        result = await db.execute(
            _DELETE_IF_STATUS_SQL, {"id": order_id, "expected_status": expected_status}
        )
        return result.rowcount == 1
