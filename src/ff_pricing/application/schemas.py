"""Pydantic schemas for ff_pricing.

Pricing document shape (public read and admin full replace):
  {"last_updated": "2025-01-31", "version": "1.0.0",
   "items": {"salt": {"tier1": 4, "tier2": 4}}, "notes": {"pricing": "..."}}
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from src.ff_pricing.domain.models import (
    MAX_TIER,
    MIN_TIER,
    PriceHistoryEntry,
    normalize_item_name,
    parse_tier_key,
)


def _validate_tier_prices(prices: dict[str, Decimal]) -> dict[str, Decimal]:
    for key, price in prices.items():
        if parse_tier_key(key) is None:
            raise ValueError(f"Invalid tier key {key!r}, expected tier{MIN_TIER}..tier{MAX_TIER}")
        if price <= 0:
            raise ValueError(f"Price for {key} must be positive")
    return prices


class PricingDocument(BaseModel):
    last_updated: str | None = None
    version: str | None = None
    items: dict[str, dict[str, Decimal]]
    notes: dict[str, str] = Field(default_factory=dict)

    @field_validator("items")
    @classmethod
    def check_items(cls, v: dict[str, dict[str, Decimal]]) -> dict[str, dict[str, Decimal]]:
        normalized: dict[str, dict[str, Decimal]] = {}
        for item_name, prices in v.items():
            key = normalize_item_name(item_name)
            if not key:
                raise ValueError("Item names must not be blank")
            normalized[key] = _validate_tier_prices(prices)
        return normalized


class ItemPricesRequest(BaseModel):
    """Replace every tier price of one item; tiers left out are deleted."""

    item_name: str = Field(..., min_length=1, max_length=100)
    prices: dict[str, Decimal]

    @field_validator("item_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = normalize_item_name(v)
        if not v:
            raise ValueError("Item name must not be blank")
        return v

    @field_validator("prices")
    @classmethod
    def check_prices(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        return _validate_tier_prices(v)


class PriceHistoryPoint(BaseModel):
    price: float
    previous_price: float | None = None
    change_type: str  # created / updated / deleted / current
    date: str

    @classmethod
    def from_domain(cls, entry: PriceHistoryEntry) -> "PriceHistoryPoint":
        return cls(
            price=float(entry.price),
            previous_price=float(entry.previous_price) if entry.previous_price is not None else None,
            change_type=entry.change_type,
            date=entry.created_at.isoformat() if entry.created_at else "",
        )


class PriceHistoryResponse(BaseModel):
    item_name: str
    tier: int
    days: int
    current_price: float | None = None
    history: list[PriceHistoryPoint]
    total_entries: int


class PriceSuggestion(BaseModel):
    item_name: str
    tier: int
    price: float
    updated_at: datetime | None = None
