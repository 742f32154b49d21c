"""NotificationService: turns an order status change into a push event.

Only the order's creator is notified, addressed by Discord id (the hub's
key). Failures here are logged and swallowed: the acting user already has
their success response and delivery is best-effort.
"""
import logging
from typing import Any

from src.ff_common.datetime_utils import utc_now
from src.ff_common.event_ids import notification_event_id
from src.ff_notify.application.schemas import OrderNotificationEvent
from src.ff_notify.domain.hub import NotificationHub
from src.ff_notify.domain.rules import describe_transition
from src.ff_order.domain.models import Order

logger = logging.getLogger(__name__)


def _claimer_payload(order: Order) -> dict[str, Any] | None:
    if order.claimer is None:
        return None
    return {
        "id": order.claimer.id,
        "name": order.claimer.discord_name,
        "in_game_name": order.claimer.in_game_name,
    }


def build_event(
    order: Order, previous_status: str | None, new_status: str
) -> dict[str, Any] | None:
    """The ``order_notification`` event for a transition, or None if silent.

    Keys are snake_case here; ``OrderNotificationEvent.to_wire`` gives the
    camelCase form sent on the stream.
    """
    claimer_name = order.claimer.display_name if order.claimer is not None else None
    notice = describe_transition(previous_status, new_status, order.details(), claimer_name)
    if notice is None:
        return None
    return {
        "type": "order_notification",
        "id": notification_event_id(order.id, new_status, order.status_changed_at),
        "notification_type": notice.notification_type.value,
        "order_id": order.id,
        "title": notice.title,
        "message": notice.message,
        "order_details": order.details(),
        "claimer": _claimer_payload(order),
        "timestamp": utc_now().isoformat(),
    }


class NotificationService:
    def __init__(self, hub: NotificationHub) -> None:
        self._hub = hub

    def handle_order_update(
        self, order: Order, previous_status: str | None, new_status: str
    ) -> bool:
        """Notify the creator of ``order`` about a status change.

        Returns True only when an event was handed to a live channel.
        """
        try:
            event = build_event(order, previous_status, new_status)
            if event is None:
                return False
            if order.creator is None or not order.creator.discord_id:
                logger.warning("Order %s creator has no Discord id, skipping notification", order.id)
                return False
            wire = OrderNotificationEvent.model_validate(event).to_wire()
            delivered = self._hub.send(order.creator.discord_id, wire)
            logger.info(
                "Order %s %s -> %s: %s to %s (%s)",
                order.id,
                previous_status,
                new_status,
                event["notification_type"],
                order.creator.discord_id,
                "pushed" if delivered else "not connected",
            )
            return delivered
        except Exception:
            logger.exception("Failed to handle order update notification for %s", order.id)
            return False
