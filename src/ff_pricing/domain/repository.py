"""PricingRepository Protocol: interface contract for the pricing tables."""
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_pricing.domain.models import PriceEntry, PriceHistoryEntry


class PricingRepositoryProtocol(Protocol):
    async def list_all(self, db: AsyncSession) -> list[PriceEntry]: ...

    async def get(self, item_name: str, tier: int, db: AsyncSession) -> PriceEntry | None: ...

    async def upsert(
        self, item_name: str, tier: int, price: Decimal, user_id: str | None, db: AsyncSession
    ) -> None: ...

    async def delete(self, item_name: str, tier: int, db: AsyncSession) -> None: ...

    async def add_history(self, entry: PriceHistoryEntry, db: AsyncSession) -> None: ...

    async def list_history(
        self, item_name: str, tier: int, since: datetime, db: AsyncSession
    ) -> list[PriceHistoryEntry]: ...

    async def get_metadata(self, db: AsyncSession) -> dict[str, str]: ...

    async def replace_metadata(self, entries: dict[str, str], db: AsyncSession) -> None: ...
