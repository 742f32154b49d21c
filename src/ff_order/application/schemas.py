# src/ff_order/application/schemas.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.ff_order.domain.models import Order, UserSummary

OrderTypeLiteral = Literal["BUY", "SELL"]
OrderStatusLiteral = Literal["OPEN", "IN_PROGRESS", "READY_TO_TRADE", "FULFILLED"]


def _normalize_item_name(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip().lower()
    if not v:
        raise ValueError("item_name must not be blank")
    return v


class CreateOrderRequest(BaseModel):
    # camelCase (itemName, pricePerUnit, ...) or snake_case keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    item_name: str = Field(..., max_length=100)
    tier: int = Field(..., ge=1, le=10)
    # omitted -> pre-filled from the reference price of (item, tier)
    price_per_unit: Decimal | None = Field(None, gt=0, max_digits=14, decimal_places=4)
    amount: int = Field(..., gt=0)
    order_type: OrderTypeLiteral = "BUY"

    @field_validator("item_name")
    @classmethod
    def normalize_item_name(cls, v: str) -> str:
        return _normalize_item_name(v)  # type: ignore[return-value]


class EditOrderRequest(BaseModel):
    """Owner edit; omitted fields keep their current value."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    item_name: str | None = Field(None, max_length=100)
    tier: int | None = Field(None, ge=1, le=10)
    price_per_unit: Decimal | None = Field(None, gt=0, max_digits=14, decimal_places=4)
    amount: int | None = Field(None, gt=0)
    order_type: OrderTypeLiteral | None = None

    @field_validator("item_name")
    @classmethod
    def normalize_item_name(cls, v: str | None) -> str | None:
        return _normalize_item_name(v)


class AdminEditOrderRequest(EditOrderRequest):
    """Admin edit; may also force status and reassign or clear the claimer.

    ``claimer_id`` is only applied when present in the body, so an explicit
    null clears the claimer while an omitted key leaves it alone.
    """

    status: OrderStatusLiteral | None = None
    claimer_id: str | None = None

    @field_validator("claimer_id")
    @classmethod
    def check_claimer_id(cls, v: str | None) -> str | None:
        if v is None:
            return None
        try:
            return str(uuid.UUID(v))
        except ValueError:
            raise ValueError("claimer_id must be a user id") from None


class UserSummaryOut(BaseModel):
    id: str
    discord_id: str
    discord_name: str
    in_game_name: str | None = None
    display_name: str

    @classmethod
    def from_domain(cls, user: UserSummary | None) -> "UserSummaryOut | None":
        if user is None:
            return None
        return cls(
            id=user.id,
            discord_id=user.discord_id,
            discord_name=user.discord_name,
            in_game_name=user.in_game_name,
            display_name=user.display_name,
        )


class OrderResponse(BaseModel):
    id: str
    item_name: str
    tier: int
    price_per_unit: float
    amount: int
    order_type: str
    status: str
    creator_id: str
    claimer_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    fulfilled_at: datetime | None = None
    status_changed_at: datetime | None = None
    creator: UserSummaryOut | None = None
    claimer: UserSummaryOut | None = None

    @classmethod
    def from_domain(cls, order: Order, include_user_data: bool = True) -> "OrderResponse":
        return cls(
            id=order.id,
            item_name=order.item_name,
            tier=order.tier,
            price_per_unit=float(order.price_per_unit),
            amount=order.amount,
            order_type=order.order_type,
            status=order.status,
            creator_id=order.creator_id,
            claimer_id=order.claimer_id,
            created_at=order.created_at,
            updated_at=order.updated_at,
            fulfilled_at=order.fulfilled_at,
            status_changed_at=order.status_changed_at,
            creator=UserSummaryOut.from_domain(order.creator) if include_user_data else None,
            claimer=UserSummaryOut.from_domain(order.claimer) if include_user_data else None,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total_count: int
    has_more: bool
    page: int
    limit: int


class DeleteOrderResponse(BaseModel):
    order_id: str
    item_name: str
    tier: int
    order_type: str
    status: str
    deleted: bool = True

    @classmethod
    def from_domain(cls, order: Order) -> "DeleteOrderResponse":
        return cls(
            order_id=order.id,
            item_name=order.item_name,
            tier=order.tier,
            order_type=order.order_type,
            status=order.status,
        )
