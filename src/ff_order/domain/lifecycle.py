"""Order lifecycle rules: legal transitions and who may perform them.

Pure functions over the Order snapshot read at validation time. They never
touch storage; the application layer turns each accepted check into a single
conditional UPDATE keyed on the status observed here.

Status sets differ by order type:

    BUY:  OPEN -> IN_PROGRESS -> READY_TO_TRADE -> FULFILLED
    SELL: OPEN -> READY_TO_TRADE -> FULFILLED

A SELL order is claimed straight into READY_TO_TRADE because the seller
already holds the goods; IN_PROGRESS is never a legal SELL status.
"""
from src.ff_common.enums import OrderStatus, OrderType
from src.ff_common.errors import InvalidOrderStateError, OrderForbiddenError
from src.ff_order.domain.models import Order

OPEN = OrderStatus.OPEN.value
IN_PROGRESS = OrderStatus.IN_PROGRESS.value
READY_TO_TRADE = OrderStatus.READY_TO_TRADE.value
FULFILLED = OrderStatus.FULFILLED.value

BUY = OrderType.BUY.value
SELL = OrderType.SELL.value

ACTIVE_CLAIM_STATUSES = (IN_PROGRESS, READY_TO_TRADE)
CLAIMED_STATUSES = (IN_PROGRESS, READY_TO_TRADE, FULFILLED)

_STATUSES_BY_TYPE: dict[str, tuple[str, ...]] = {
    BUY: (OPEN, IN_PROGRESS, READY_TO_TRADE, FULFILLED),
    SELL: (OPEN, READY_TO_TRADE, FULFILLED),
}


def allowed_statuses(order_type: str) -> tuple[str, ...]:
    try:
        return _STATUSES_BY_TYPE[order_type]
    except KeyError:
        raise InvalidOrderStateError(f"Unknown order type: {order_type}") from None


def ensure_status_allowed(order_type: str, status: str) -> None:
    if status not in allowed_statuses(order_type):
        raise InvalidOrderStateError(
            f"Status {status} is not valid for {order_type} orders"
        )


def claim_target_status(order_type: str) -> str:
    return READY_TO_TRADE if order_type == SELL else IN_PROGRESS


def check_claim(order: Order, actor_id: str) -> str:
    """Validate a claim and return the status the order moves to."""
    if order.status != OPEN:
        raise InvalidOrderStateError("Order is not available for claiming")
    if order.creator_id == actor_id:
        raise InvalidOrderStateError("Cannot claim your own order")
    return claim_target_status(order.order_type)


def check_mark_ready(order: Order, actor_id: str) -> str:
    if order.claimer_id != actor_id:
        raise OrderForbiddenError("Only the person fulfilling the order can mark it as ready")
    if order.status != IN_PROGRESS:
        raise InvalidOrderStateError("Order must be in progress to mark as ready")
    return READY_TO_TRADE


def check_complete(order: Order, actor_id: str) -> str:
    if actor_id not in (order.creator_id, order.claimer_id):
        raise OrderForbiddenError("You can only complete orders you're involved in")
    if order.status not in ACTIVE_CLAIM_STATUSES:
        raise InvalidOrderStateError("Order is not in progress or ready to trade")
    # The supplier of a BUY order has to signal readiness first
    if order.order_type == BUY and order.status != READY_TO_TRADE:
        raise InvalidOrderStateError("Buy orders must be ready to trade before completion")
    return FULFILLED


def check_unclaim(order: Order, actor_id: str) -> str:
    if order.claimer_id != actor_id:
        raise OrderForbiddenError("You can only unclaim orders you have claimed")
    if order.status not in ACTIVE_CLAIM_STATUSES:
        raise InvalidOrderStateError(
            "Can only unclaim orders that are in progress or ready to trade"
        )
    return OPEN


def plan_owner_edit(order: Order, actor_id: str, new_order_type: str | None) -> str:
    """Validate an owner edit and return the status the order ends up in."""
    if order.creator_id != actor_id:
        raise OrderForbiddenError("You can only edit your own orders")
    if order.status == FULFILLED:
        raise InvalidOrderStateError("Cannot edit completed orders")

    order_type = new_order_type or order.order_type
    status = order.status
    if order_type != order.order_type:
        if status == IN_PROGRESS and order_type == SELL:
            status = READY_TO_TRADE
        elif status == READY_TO_TRADE and order_type == BUY:
            status = IN_PROGRESS
    ensure_status_allowed(order_type, status)
    return status


def check_owner_delete(order: Order, actor_id: str) -> None:
    if order.creator_id != actor_id:
        raise OrderForbiddenError("You can only delete your own orders")
    if order.status == FULFILLED:
        raise InvalidOrderStateError("Completed orders cannot be deleted")


def plan_admin_edit(order: Order, new_order_type: str | None, new_status: str | None) -> str:
    order_type = new_order_type or order.order_type
    status = new_status or order.status
    ensure_status_allowed(order_type, status)
    return status
