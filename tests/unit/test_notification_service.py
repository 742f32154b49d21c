"""NotificationService: event construction and best-effort delivery."""
import json
from dataclasses import replace
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from src.ff_common.event_ids import notification_event_id
from src.ff_notify.application.schemas import OrderNotificationEvent
from src.ff_notify.application.service import NotificationService, build_event
from src.ff_notify.domain.hub import NotificationHub
from tests.unit.factories import ALICE, BOB, make_order

UPDATED = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def _claimed_order():
    return make_order(
        status="IN_PROGRESS",
        claimer_id=BOB.id,
        creator=ALICE,
        claimer=BOB,
        updated_at=UPDATED,
        status_changed_at=UPDATED,
    )


class TestBuildEvent:
    def test_event_shape(self) -> None:
        order = _claimed_order()
        event = build_event(order, "OPEN", "IN_PROGRESS")
        assert event["type"] == "order_notification"
        assert event["notification_type"] == "order_claimed"
        assert event["order_id"] == order.id
        assert event["order_details"] == {
            "item_name": "salt", "tier": 2, "amount": 10, "order_type": "BUY",
        }
        assert event["claimer"] == {"id": BOB.id, "name": "bob#2", "in_game_name": "Bob"}
        assert event["id"] == notification_event_id(order.id, "IN_PROGRESS", UPDATED)

    def test_silent_transition(self) -> None:
        assert build_event(_claimed_order(), "IN_PROGRESS", "IN_PROGRESS") is None

    def test_no_claimer(self) -> None:
        order = replace(_claimed_order(), status="OPEN", claimer_id=None, claimer=None)
        event = build_event(order, "IN_PROGRESS", "OPEN")
        assert event["claimer"] is None
        assert event["notification_type"] == "order_cancelled"

    def test_id_ignores_edits_that_keep_status(self) -> None:
        order = _claimed_order()
        edited = replace(order, amount=3, updated_at=datetime(2025, 3, 1, 12, 5, tzinfo=UTC))
        assert (
            build_event(order, "OPEN", "IN_PROGRESS")["id"]
            == build_event(edited, "OPEN", "IN_PROGRESS")["id"]
        )


class TestHandleOrderUpdate:
    def test_pushes_to_creator(self) -> None:
        hub = NotificationHub()
        hub.open_channel(ALICE.discord_id)
        hub.open_channel(BOB.discord_id)
        service = NotificationService(hub)
        assert service.handle_order_update(_claimed_order(), "OPEN", "IN_PROGRESS") is True

    def test_creator_not_connected(self) -> None:
        service = NotificationService(NotificationHub())
        assert service.handle_order_update(_claimed_order(), "OPEN", "IN_PROGRESS") is False

    def test_silent_transition_not_sent(self) -> None:
        hub = MagicMock()
        assert NotificationService(hub).handle_order_update(_claimed_order(), None, "OPEN") is False
        hub.send.assert_not_called()

    def test_missing_creator_skipped(self) -> None:
        hub = MagicMock()
        order = replace(_claimed_order(), creator=None)
        assert NotificationService(hub).handle_order_update(order, "OPEN", "IN_PROGRESS") is False
        hub.send.assert_not_called()

    def test_hub_failure_swallowed(self, caplog: pytest.LogCaptureFixture) -> None:
        hub = MagicMock()
        hub.send.side_effect = RuntimeError("boom")
        service = NotificationService(hub)
        assert service.handle_order_update(_claimed_order(), "OPEN", "IN_PROGRESS") is False
        assert "Failed to handle order update notification" in caplog.text


class TestWireFormat:
    @pytest.mark.asyncio
    async def test_stream_frame_is_camel_case(self) -> None:
        hub = NotificationHub()
        channel = hub.open_channel(ALICE.discord_id)
        NotificationService(hub).handle_order_update(_claimed_order(), "OPEN", "IN_PROGRESS")

        frame = await channel.next_frame(0.1)
        wire = json.loads(frame.removeprefix("data: "))
        assert wire["type"] == "order_notification"
        assert wire["notificationType"] == "order_claimed"
        assert wire["orderDetails"] == {
            "itemName": "salt", "tier": 2, "amount": 10, "orderType": "BUY",
        }
        assert wire["claimer"]["inGameName"] == "Bob"
        assert "notification_type" not in wire

    def test_either_spelling_validates(self) -> None:
        event = build_event(_claimed_order(), "OPEN", "IN_PROGRESS")
        from_snake = OrderNotificationEvent.model_validate(event)
        from_camel = OrderNotificationEvent.model_validate(from_snake.to_wire())
        assert from_camel == from_snake
        assert from_camel.order_details.item_name == "salt"
