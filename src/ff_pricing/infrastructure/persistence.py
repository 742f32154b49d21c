# src/ff_pricing/infrastructure/persistence.py
"""PricingRepository: raw SQL over pricing, price_history and pricing_metadata."""
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_pricing.domain.models import PriceEntry, PriceHistoryEntry

_LIST_ALL_SQL = text("""
    SELECT item_name, tier, price, created_by, created_at, updated_at
    FROM pricing
    ORDER BY item_name ASC, tier ASC
""")

_GET_SQL = text("""
    SELECT item_name, tier, price, created_by, created_at, updated_at
    FROM pricing
    WHERE item_name = :item_name AND tier = :tier
""")

_UPSERT_SQL = text("""
    INSERT INTO pricing (item_name, tier, price, created_by)
    VALUES (:item_name, :tier, :price, CAST(:created_by AS UUID))
    ON CONFLICT (item_name, tier) DO UPDATE
    SET price = EXCLUDED.price,
        created_by = EXCLUDED.created_by,
        updated_at = NOW()
""")

_DELETE_SQL = text("""
    DELETE FROM pricing WHERE item_name = :item_name AND tier = :tier
""")

_INSERT_HISTORY_SQL = text("""
    INSERT INTO price_history (item_name, tier, price, previous_price, change_type, created_by)
    VALUES (:item_name, :tier, :price, :previous_price, :change_type,
            CAST(:created_by AS UUID))
""")

_LIST_HISTORY_SQL = text("""
    SELECT item_name, tier, price, previous_price, change_type, created_by, created_at
    FROM price_history
    WHERE item_name = :item_name AND tier = :tier AND created_at >= :since
    ORDER BY created_at ASC, id ASC
""")

_GET_METADATA_SQL = text("SELECT key, value FROM pricing_metadata")
_DELETE_METADATA_SQL = text("DELETE FROM pricing_metadata")
_INSERT_METADATA_SQL = text("""
    INSERT INTO pricing_metadata (key, value) VALUES (:key, :value)
""")


def _row_to_entry(row: Any) -> PriceEntry:
    return PriceEntry(
        item_name=row.item_name,
        tier=row.tier,
        price=row.price,
        created_by=str(row.created_by) if row.created_by is not None else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_history(row: Any) -> PriceHistoryEntry:
    return PriceHistoryEntry(
        item_name=row.item_name,
        tier=row.tier,
        price=row.price,
        previous_price=row.previous_price,
        change_type=row.change_type,
        created_by=str(row.created_by) if row.created_by is not None else None,
        created_at=row.created_at,
    )


class PricingRepository:
    """Concrete implementation of PricingRepositoryProtocol using raw SQL."""

    async def list_all(self, db: AsyncSession) -> list[PriceEntry]:
        result = await db.execute(_LIST_ALL_SQL)
        return [_row_to_entry(row) for row in result.fetchall()]

    async def get(self, item_name: str, tier: int, db: AsyncSession) -> PriceEntry | None:
        result = await db.execute(_GET_SQL, {"item_name": item_name, "tier": tier})
        row = result.fetchone()
        return _row_to_entry(row) if row else None

    async def upsert(
        self, item_name: str, tier: int, price: Decimal, user_id: str | None, db: AsyncSession
    ) -> None:
        await db.execute(
            _UPSERT_SQL,
            {"item_name": item_name, "tier": tier, "price": price, "created_by": user_id},
        )

    async def delete(self, item_name: str, tier: int, db: AsyncSession) -> None:
        await db.execute(_DELETE_SQL, {"item_name": item_name, "tier": tier})

    async def add_history(self, entry: PriceHistoryEntry, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_HISTORY_SQL,
            {
                "item_name": entry.item_name,
                "tier": entry.tier,
                "price": entry.price,
                "previous_price": entry.previous_price,
                "change_type": entry.change_type,
                "created_by": entry.created_by,
            },
        )

    async def list_history(
        self, item_name: str, tier: int, since: datetime, db: AsyncSession
    ) -> list[PriceHistoryEntry]:
        result = await db.execute(
            _LIST_HISTORY_SQL, {"item_name": item_name, "tier": tier, "since": since}
        )
        return [_row_to_history(row) for row in result.fetchall()]

    async def get_metadata(self, db: AsyncSession) -> dict[str, str]:
        result = await db.execute(_GET_METADATA_SQL)
        return {row.key: row.value for row in result.fetchall()}

    async def replace_metadata(self, entries: dict[str, str], db: AsyncSession) -> None:
        await db.execute(_DELETE_METADATA_SQL)
        for key, value in entries.items():
            await db.execute(_INSERT_METADATA_SQL, {"key": key, "value": value})
