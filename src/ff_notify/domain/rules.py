"""Which order transitions produce a notification, and what it says.

Pure functions of (previous_status, new_status); shared by the server-side
NotificationService and the client-side polling fallback so both paths
produce the same events.

    OPEN -> IN_PROGRESS                     order_claimed
    OPEN -> READY_TO_TRADE                  order_claimed ("claimed & ready")
    IN_PROGRESS -> READY_TO_TRADE           order_ready
    IN_PROGRESS|READY_TO_TRADE -> OPEN      order_cancelled
    IN_PROGRESS|READY_TO_TRADE -> FULFILLED order_completed

Every other pair is silent.
"""
from dataclasses import dataclass
from typing import Any

from src.ff_common.enums import NotificationType, OrderStatus

_OPEN = OrderStatus.OPEN.value
_IN_PROGRESS = OrderStatus.IN_PROGRESS.value
_READY = OrderStatus.READY_TO_TRADE.value
_FULFILLED = OrderStatus.FULFILLED.value
_ACTIVE = (_IN_PROGRESS, _READY)

DEFAULT_CLAIMER_NAME = "Someone"


@dataclass(frozen=True)
class TransitionNotice:
    notification_type: NotificationType
    title: str
    message: str


def classify_transition(previous_status: str | None, new_status: str) -> NotificationType | None:
    """Notification type for a status change, or None when nothing is sent."""
    if previous_status is None or previous_status == new_status:
        return None
    if previous_status == _OPEN and new_status in (_IN_PROGRESS, _READY):
        return NotificationType.ORDER_CLAIMED
    if previous_status == _IN_PROGRESS and new_status == _READY:
        return NotificationType.ORDER_READY
    if previous_status in _ACTIVE and new_status == _OPEN:
        return NotificationType.ORDER_CANCELLED
    if previous_status in _ACTIVE and new_status == _FULFILLED:
        return NotificationType.ORDER_COMPLETED
    return None


def _order_phrase(details: dict[str, Any]) -> str:
    return (
        f"{str(details['order_type']).lower()} order for "
        f"{details['amount']}x {details['item_name']} (T{details['tier']})"
    )


def describe_transition(
    previous_status: str | None,
    new_status: str,
    details: dict[str, Any],
    claimer_name: str | None = None,
) -> TransitionNotice | None:
    """Title and message for a transition, or None when it is silent.

    ``details`` carries item_name, tier, amount and order_type.
    """
    kind = classify_transition(previous_status, new_status)
    if kind is None:
        return None

    phrase = _order_phrase(details)
    who = claimer_name or DEFAULT_CLAIMER_NAME
    if kind is NotificationType.ORDER_CLAIMED:
        if new_status == _READY:
            return TransitionNotice(
                kind,
                "Order Claimed & Ready",
                f"{who} claimed your {phrase} and it's ready for pickup",
            )
        return TransitionNotice(kind, "Order Claimed", f"{who} claimed your {phrase}")
    if kind is NotificationType.ORDER_READY:
        return TransitionNotice(kind, "Order Ready", f"Your {phrase} is ready for pickup")
    if kind is NotificationType.ORDER_CANCELLED:
        return TransitionNotice(kind, "Order Cancelled", f"Your {phrase} was cancelled")
    return TransitionNotice(kind, "Order Completed", f"Your {phrase} has been completed")
