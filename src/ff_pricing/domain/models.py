"""Pricing domain models: reference prices per (item, tier) and their history."""
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

MIN_TIER = 1
MAX_TIER = 10
DEFAULT_VERSION = "1.0.0"
NOTE_PREFIX = "note_"

_TIER_KEY = re.compile(r"^tier(\d+)$")


@dataclass
class PriceEntry:
    item_name: str
    tier: int
    price: Decimal
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class PriceHistoryEntry:
    item_name: str
    tier: int
    price: Decimal
    previous_price: Decimal | None
    change_type: str  # created / updated / deleted
    created_by: str | None = None
    created_at: datetime | None = None


def normalize_item_name(item_name: str) -> str:
    return item_name.strip().lower()


def tier_key(tier: int) -> str:
    return f"tier{tier}"


def parse_tier_key(key: str) -> int | None:
    """``"tier3"`` -> 3; None for anything that is not a tier key in range."""
    match = _TIER_KEY.match(key)
    if match is None:
        return None
    tier = int(match.group(1))
    return tier if MIN_TIER <= tier <= MAX_TIER else None
