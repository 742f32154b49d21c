"""Order domain model: pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class UserSummary:
    """Party to an order as seen from the orders table join."""

    id: str
    discord_id: str
    discord_name: str
    in_game_name: str | None = None

    @property
    def display_name(self) -> str:
        return self.in_game_name or self.discord_name


@dataclass
class Order:
    id: str
    item_name: str  # normalized to lowercase
    tier: int  # 1-10
    price_per_unit: Decimal
    amount: int
    order_type: str  # BUY / SELL
    status: str  # OPEN / IN_PROGRESS / READY_TO_TRADE / FULFILLED
    creator_id: str
    claimer_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    fulfilled_at: datetime | None = None
    # moves only when status does; notification ids are derived from it
    status_changed_at: datetime | None = None
    # Populated by joined reads only
    creator: UserSummary | None = None
    claimer: UserSummary | None = None

    @property
    def is_claimed(self) -> bool:
        return self.claimer_id is not None

    @property
    def is_fulfilled(self) -> bool:
        return self.status == "FULFILLED"

    def details(self) -> dict[str, object]:
        """Snapshot embedded in notification events."""
        return {
            "item_name": self.item_name,
            "tier": self.tier,
            "amount": self.amount,
            "order_type": self.order_type,
        }
