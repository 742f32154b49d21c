"""PricingService with an in-memory repository."""
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from src.ff_common.errors import InvalidPricingDataError, PricingNotFoundError
from src.ff_pricing.application.schemas import ItemPricesRequest, PricingDocument
from src.ff_pricing.application.service import PricingService, build_document
from src.ff_pricing.domain.models import PriceEntry, PriceHistoryEntry, parse_tier_key
from tests.unit.factories import FakePricingRepository

NOW = datetime(2025, 2, 1, tzinfo=UTC)

@pytest.fixture
def repo() -> FakePricingRepository:
    return FakePricingRepository()

@pytest.fixture
def service(repo: FakePricingRepository) -> PricingService:
    return PricingService(repo=repo)

class TestTierKeys:
    @pytest.mark.parametrize(("key", "tier"), [("tier1", 1), ("tier10", 10)])
    def test_valid(self, key: str, tier: int) -> None:
        assert parse_tier_key(key) == tier

    @pytest.mark.parametrize("key", ["tier0", "tier11", "t1", "tierx", "1"])
    def test_invalid(self, key: str) -> None:
        assert parse_tier_key(key) is None

class TestDocument:
    def test_build_document(self) -> None:
        doc = build_document(
            [PriceEntry("salt", 1, Decimal("4")), PriceEntry("salt", 2, Decimal("4.5"))],
            {"version": "2.0.0", "last_updated": "2025-01-31", "note_pricing": "per unit"},
        )
        assert doc == {
            "last_updated": "2025-01-31",
            "version": "2.0.0",
            "items": {"salt": {"tier1": 4.0, "tier2": 4.5}},
            "notes": {"pricing": "per unit"},
        }

    def test_defaults_when_metadata_missing(self) -> None:
        doc = build_document([], {})
        assert doc["version"] == "1.0.0"
        assert doc["items"] == {}

    def test_schema_rejects_bad_tier(self) -> None:
        with pytest.raises(ValidationError):
            PricingDocument(items={"salt": {"tier11": 4}})

    def test_schema_rejects_non_positive_price(self) -> None:
        with pytest.raises(ValidationError):
            PricingDocument(items={"salt": {"tier1": 0}})

    def test_schema_normalizes_item_names(self) -> None:
        doc = PricingDocument(items={" Salt ": {"tier1": 4}})
        assert list(doc.items) == ["salt"]

class TestReads:
    @pytest.mark.asyncio
    async def test_reference_price(self, service: PricingService, repo: FakePricingRepository) -> None:
        repo.seed("salt", 2, "4")
        assert await service.reference_price("SALT", 2, AsyncMock()) == Decimal("4")
        assert await service.reference_price("salt", 3, AsyncMock()) is None

    @pytest.mark.asyncio
    async def test_suggest(self, service: PricingService, repo: FakePricingRepository) -> None:
        repo.seed("salt", 2, "4.25")
        suggestion = await service.suggest("salt", 2, AsyncMock())
        assert suggestion.price == 4.25

    @pytest.mark.asyncio
    async def test_suggest_unpriced(self, service: PricingService) -> None:
        with pytest.raises(PricingNotFoundError):
            await service.suggest("salt", 2, AsyncMock())

class TestWrites:
    @pytest.mark.asyncio
    async def test_replace_all_records_changes(
        self, service: PricingService, repo: FakePricingRepository
    ) -> None:
        repo.seed("salt", 1, "4")
        repo.seed("salt", 2, "5")
        repo.seed("fish", 1, "10")
        db = AsyncMock()

        doc = PricingDocument(
            version="1.1.0",
            items={"salt": {"tier1": 4, "tier2": 6}, "wood": {"tier3": 2}},
            notes={"pricing": "per unit"},
        )
        result = await service.replace_all(doc, "admin-1", db)

        assert result["items"] == {"salt": {"tier1": 4.0, "tier2": 6.0}, "wood": {"tier3": 2.0}}
        assert result["notes"] == {"pricing": "per unit"}
        changes = {(h.item_name, h.tier): h.change_type for h in repo.history}
        assert changes == {
            ("fish", 1): "deleted",
            ("salt", 2): "updated",
            ("wood", 3): "created",
        }
        updated = next(h for h in repo.history if h.change_type == "updated")
        assert updated.previous_price == Decimal("5")
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_replace_item_leaves_other_items(
        self, service: PricingService, repo: FakePricingRepository
    ) -> None:
        repo.seed("salt", 1, "4")
        repo.seed("salt", 2, "5")
        repo.seed("fish", 1, "10")

        body = ItemPricesRequest(item_name="Salt", prices={"tier2": Decimal("7")})
        result = await service.replace_item(body, "admin-1", AsyncMock())

        assert result["items"] == {"fish": {"tier1": 10.0}, "salt": {"tier2": 7.0}}

    @pytest.mark.asyncio
    async def test_replace_all_rejects_bad_tier_key(self, service: PricingService) -> None:
        doc = PricingDocument.model_construct(
            items={"salt": {"tierX": Decimal("1")}}, notes={}, version=None, last_updated=None
        )
        with pytest.raises(InvalidPricingDataError):
            await service.replace_all(doc, "admin-1", AsyncMock())

class TestHistory:
    @pytest.mark.asyncio
    async def test_current_price_closes_series(
        self, service: PricingService, repo: FakePricingRepository
    ) -> None:
        repo.history.append(
            PriceHistoryEntry("salt", 2, Decimal("3"), None, "created", created_at=NOW)
        )
        repo.seed("salt", 2, "4")

        result = await service.history("salt", 2, 36500, AsyncMock())

        assert [p.change_type for p in result.history] == ["created", "current"]
        assert result.history[-1].previous_price == 3.0
        assert result.current_price == 4.0
        assert result.total_entries == 2

    @pytest.mark.asyncio
    async def test_no_duplicate_current_point(
        self, service: PricingService, repo: FakePricingRepository
    ) -> None:
        repo.history.append(
            PriceHistoryEntry("salt", 2, Decimal("4"), None, "created", created_at=NOW)
        )
        repo.seed("salt", 2, "4")
        result = await service.history("salt", 2, 36500, AsyncMock())
        assert [p.change_type for p in result.history] == ["created"]

    @pytest.mark.asyncio
    async def test_window_excludes_old_entries(
        self, service: PricingService, repo: FakePricingRepository
    ) -> None:
        repo.history.append(
            PriceHistoryEntry(
                "salt", 2, Decimal("1"), None, "created",
                created_at=datetime.now(UTC) - timedelta(days=90),
            )
        )
        result = await service.history("salt", 2, 30, AsyncMock())
        assert result.history == []
        assert result.current_price is None
