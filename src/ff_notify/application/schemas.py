"""Wire shape of the ``order_notification`` push event.

Serialized with camelCase keys (``notificationType``, ``orderId``,
``orderDetails``). Either spelling validates, so pushed events and notices
the poller builds locally parse the same way.
"""
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderDetails(_CamelModel):
    item_name: str
    tier: int
    amount: int
    order_type: str


class ClaimerInfo(_CamelModel):
    id: str
    name: str
    in_game_name: str | None = None


class OrderNotificationEvent(_CamelModel):
    type: Literal["order_notification"] = "order_notification"
    id: str | None = None
    notification_type: str
    order_id: str | None = None
    title: str
    message: str
    order_details: OrderDetails | None = None
    claimer: ClaimerInfo | None = None
    timestamp: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
