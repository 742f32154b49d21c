"""PricingService: reference prices, their history and the pricing document.

Write methods commit; every price change also appends a price_history row
in the same transaction.
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.datetime_utils import utc_now
from src.ff_common.enums import PriceChangeType
from src.ff_common.errors import InvalidPricingDataError, PricingNotFoundError
from src.ff_pricing.application.schemas import (
    ItemPricesRequest,
    PriceHistoryPoint,
    PriceHistoryResponse,
    PriceSuggestion,
    PricingDocument,
)
from src.ff_pricing.domain.models import (
    DEFAULT_VERSION,
    NOTE_PREFIX,
    PriceEntry,
    PriceHistoryEntry,
    normalize_item_name,
    parse_tier_key,
    tier_key,
)
from src.ff_pricing.domain.repository import PricingRepositoryProtocol
from src.ff_pricing.infrastructure.persistence import PricingRepository

logger = logging.getLogger(__name__)


def build_document(entries: list[PriceEntry], metadata: dict[str, str]) -> dict[str, Any]:
    """Assemble the public pricing document from rows and metadata."""
    items: dict[str, dict[str, float]] = {}
    for entry in entries:
        items.setdefault(entry.item_name, {})[tier_key(entry.tier)] = float(entry.price)

    notes = {
        key[len(NOTE_PREFIX):]: value
        for key, value in metadata.items()
        if key.startswith(NOTE_PREFIX)
    }
    return {
        "last_updated": metadata.get("last_updated") or utc_now().date().isoformat(),
        "version": metadata.get("version") or DEFAULT_VERSION,
        "items": items,
        "notes": notes,
    }


def _flatten(items: dict[str, dict[str, Decimal]]) -> dict[tuple[str, int], Decimal]:
    flat: dict[tuple[str, int], Decimal] = {}
    for item_name, prices in items.items():
        for key, price in prices.items():
            tier = parse_tier_key(key)
            if tier is None:
                raise InvalidPricingDataError(f"bad tier key {key!r} for {item_name}")
            flat[(item_name, tier)] = price
    return flat


class PricingService:
    def __init__(self, repo: PricingRepositoryProtocol | None = None) -> None:
        self._repo: PricingRepositoryProtocol = repo or PricingRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_document(self, db: AsyncSession) -> dict[str, Any]:
        entries = await self._repo.list_all(db)
        metadata = await self._repo.get_metadata(db)
        return build_document(entries, metadata)

    async def reference_price(self, item_name: str, tier: int, db: AsyncSession) -> Decimal | None:
        """Suggested unit price used to pre-fill orders; None when unpriced."""
        entry = await self._repo.get(normalize_item_name(item_name), tier, db)
        return entry.price if entry is not None else None

    async def suggest(self, item_name: str, tier: int, db: AsyncSession) -> PriceSuggestion:
        name = normalize_item_name(item_name)
        entry = await self._repo.get(name, tier, db)
        if entry is None:
            raise PricingNotFoundError(name, tier)
        return PriceSuggestion(
            item_name=name, tier=tier, price=float(entry.price), updated_at=entry.updated_at
        )

    async def history(
        self, item_name: str, tier: int, days: int, db: AsyncSession
    ) -> PriceHistoryResponse:
        name = normalize_item_name(item_name)
        since = utc_now() - timedelta(days=days)
        entries = await self._repo.list_history(name, tier, since, db)
        current = await self._repo.get(name, tier, db)

        points = [PriceHistoryPoint.from_domain(e) for e in entries]
        if current is not None:
            last_price = entries[-1].price if entries else None
            # current price closes the series unless the last change already shows it
            if last_price is None or last_price != current.price:
                points.append(
                    PriceHistoryPoint(
                        price=float(current.price),
                        previous_price=float(last_price) if last_price is not None else None,
                        change_type="current",
                        date=(current.updated_at or utc_now()).isoformat(),
                    )
                )
        return PriceHistoryResponse(
            item_name=name,
            tier=tier,
            days=days,
            current_price=float(current.price) if current is not None else None,
            history=points,
            total_entries=len(points),
        )

    # ------------------------------------------------------------------
    # Admin writes
    # ------------------------------------------------------------------

    async def replace_all(
        self, document: PricingDocument, user_id: str, db: AsyncSession
    ) -> dict[str, Any]:
        """Make the pricing table match ``document`` exactly, recording every change."""
        wanted = _flatten(document.items)
        existing = {(e.item_name, e.tier): e for e in await self._repo.list_all(db)}

        for key, entry in existing.items():
            if key not in wanted:
                await self._delete_price(entry, user_id, db)
        for (item_name, tier), price in wanted.items():
            await self._set_price(item_name, tier, price, existing.get((item_name, tier)), user_id, db)

        metadata = {
            "last_updated": document.last_updated or utc_now().date().isoformat(),
            "version": document.version or DEFAULT_VERSION,
        }
        metadata.update({f"{NOTE_PREFIX}{k}": v for k, v in document.notes.items()})
        await self._repo.replace_metadata(metadata, db)
        await db.commit()
        logger.info("Pricing replaced by %s: %d prices", user_id, len(wanted))
        return await self.get_document(db)

    async def replace_item(
        self, body: ItemPricesRequest, user_id: str, db: AsyncSession
    ) -> dict[str, Any]:
        """Replace one item's tier prices; tiers not listed are deleted."""
        wanted = _flatten({body.item_name: body.prices})
        existing = {
            (e.item_name, e.tier): e
            for e in await self._repo.list_all(db)
            if e.item_name == body.item_name
        }

        for key, entry in existing.items():
            if key not in wanted:
                await self._delete_price(entry, user_id, db)
        for (item_name, tier), price in wanted.items():
            await self._set_price(item_name, tier, price, existing.get((item_name, tier)), user_id, db)

        await db.commit()
        logger.info("Pricing for %s replaced by %s", body.item_name, user_id)
        return await self.get_document(db)

    async def _set_price(
        self,
        item_name: str,
        tier: int,
        price: Decimal,
        current: PriceEntry | None,
        user_id: str,
        db: AsyncSession,
    ) -> None:
        if current is not None and current.price == price:
            return
        await self._repo.upsert(item_name, tier, price, user_id, db)
        await self._repo.add_history(
            PriceHistoryEntry(
                item_name=item_name,
                tier=tier,
                price=price,
                previous_price=current.price if current is not None else None,
                change_type=(
                    PriceChangeType.UPDATED.value if current is not None
                    else PriceChangeType.CREATED.value
                ),
                created_by=user_id,
            ),
            db,
        )

    async def _delete_price(self, entry: PriceEntry, user_id: str, db: AsyncSession) -> None:
        await self._repo.delete(entry.item_name, entry.tier, db)
        await self._repo.add_history(
            PriceHistoryEntry(
                item_name=entry.item_name,
                tier=entry.tier,
                price=entry.price,
                previous_price=entry.price,
                change_type=PriceChangeType.DELETED.value,
                created_by=user_id,
            ),
            db,
        )
