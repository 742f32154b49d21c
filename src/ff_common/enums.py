"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class OrderType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    READY_TO_TRADE = "READY_TO_TRADE"
    FULFILLED = "FULFILLED"


class NotificationType(str, Enum):
    ORDER_CLAIMED = "order_claimed"
    ORDER_READY = "order_ready"
    ORDER_COMPLETED = "order_completed"
    ORDER_CANCELLED = "order_cancelled"
    NEW_ORDER_CREATED = "new_order_created"


class PriceChangeType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
