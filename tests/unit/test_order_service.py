# tests/unit/test_order_service.py
"""OrderLifecycleService against an in-memory store and a real NotificationHub."""
import asyncio
import json
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.ff_common.errors import (
    InvalidOrderInputError,
    InvalidOrderStateError,
    OrderConflictError,
    OrderForbiddenError,
    OrderNotFoundError,
    UserNotFoundError,
)
from src.ff_notify.application.schemas import OrderNotificationEvent
from src.ff_notify.application.service import NotificationService
from src.ff_notify.domain.hub import NotificationHub, PushChannel
from src.ff_order.application.schemas import (
    AdminEditOrderRequest,
    CreateOrderRequest,
    EditOrderRequest,
)
from src.ff_order.application.service import OrderLifecycleService
from tests.unit.factories import ALICE, BOB, CAROL, InMemoryOrderRepository, make_order


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub()


@pytest.fixture
def alice_channel(hub: NotificationHub) -> PushChannel:
    return hub.open_channel(ALICE.discord_id)


@pytest.fixture
def pricing() -> AsyncMock:
    mock = AsyncMock()
    mock.reference_price.return_value = None
    return mock


@pytest.fixture
def users() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(
    order_repo: InMemoryOrderRepository,
    hub: NotificationHub,
    pricing: AsyncMock,
    users: AsyncMock,
) -> OrderLifecycleService:
    return OrderLifecycleService(
        repo=order_repo, users=users, pricing=pricing, notifier=NotificationService(hub)
    )


async def _drain(channel: PushChannel) -> list[dict]:
    events = []
    while True:
        frame = await channel.next_frame(0.01)
        if frame is None:
            return events
        wire = json.loads(frame.removeprefix("data: "))
        events.append(OrderNotificationEvent.model_validate(wire).model_dump())


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_with_explicit_price(
        self, service: OrderLifecycleService, db: AsyncMock, pricing: AsyncMock
    ) -> None:
        body = CreateOrderRequest(item_name=" Salt ", tier=2, price_per_unit="4.5", amount=10)
        order = await service.create(body, ALICE.id, db)
        assert order.status == "OPEN"
        assert order.item_name == "salt"
        assert order.price_per_unit == Decimal("4.5")
        assert order.creator.discord_id == ALICE.discord_id
        pricing.reference_price.assert_not_awaited()
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_price_prefilled_from_reference(
        self, service: OrderLifecycleService, db: AsyncMock, pricing: AsyncMock
    ) -> None:
        pricing.reference_price.return_value = Decimal("3.25")
        body = CreateOrderRequest(item_name="salt", tier=2, amount=10)
        order = await service.create(body, ALICE.id, db)
        assert order.price_per_unit == Decimal("3.25")
        pricing.reference_price.assert_awaited_once_with("salt", 2, db)

    @pytest.mark.asyncio
    async def test_missing_price_without_reference_rejected(
        self, service: OrderLifecycleService, db: AsyncMock
    ) -> None:
        body = CreateOrderRequest(item_name="salt", tier=2, amount=10)
        with pytest.raises(InvalidOrderInputError):
            await service.create(body, ALICE.id, db)
        db.commit.assert_not_awaited()


class TestBuyLifecycle:
    @pytest.mark.asyncio
    async def test_claim_ready_complete_notifies_creator(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order())

        claimed = await service.claim(order.id, BOB.id, db)
        assert claimed.status == "IN_PROGRESS"
        assert claimed.claimer_id == BOB.id

        ready = await service.mark_ready(order.id, BOB.id, db)
        assert ready.status == "READY_TO_TRADE"

        done = await service.complete(order.id, ALICE.id, db)
        assert done.status == "FULFILLED"
        assert done.fulfilled_at is not None

        events = await _drain(alice_channel)
        assert [e["notification_type"] for e in events] == [
            "order_claimed", "order_ready", "order_completed",
        ]
        assert events[0]["title"] == "Order Claimed"
        assert events[0]["message"] == "Bob claimed your buy order for 10x salt (T2)"
        assert events[0]["claimer"]["in_game_name"] == "Bob"
        assert len({e["id"] for e in events}) == 3

    @pytest.mark.asyncio
    async def test_claim_own_order_rejected(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order())
        with pytest.raises(InvalidOrderStateError):
            await service.claim(order.id, ALICE.id, db)

    @pytest.mark.asyncio
    async def test_missing_order(self, service: OrderLifecycleService, db: AsyncMock) -> None:
        with pytest.raises(OrderNotFoundError):
            await service.claim("00000000-0000-0000-0000-000000000000", BOB.id, db)


class TestSellLifecycle:
    @pytest.mark.asyncio
    async def test_sell_claim_goes_straight_to_ready(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order(order_type="SELL"))
        claimed = await service.claim(order.id, BOB.id, db)
        assert claimed.status == "READY_TO_TRADE"

        (event,) = await _drain(alice_channel)
        assert event["notification_type"] == "order_claimed"
        assert event["title"] == "Order Claimed & Ready"

    @pytest.mark.asyncio
    async def test_claimer_completes_sell(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order(order_type="SELL"))
        await service.claim(order.id, BOB.id, db)
        done = await service.complete(order.id, BOB.id, db)
        assert done.status == "FULFILLED"


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_claims_have_one_winner(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order())

        results = await asyncio.gather(
            service.claim(order.id, BOB.id, db),
            service.claim(order.id, CAROL.id, db),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], OrderConflictError)
        assert order_repo.rows[order.id].claimer_id == winners[0].claimer_id
        db.rollback.assert_awaited_once()

        events = await _drain(alice_channel)
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_ready_racing_unclaim(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))

        results = await asyncio.gather(
            service.unclaim(order.id, BOB.id, db),
            service.mark_ready(order.id, BOB.id, db),
            return_exceptions=True,
        )

        assert sum(isinstance(r, OrderConflictError) for r in results) == 1
        assert order_repo.rows[order.id].status in ("OPEN", "READY_TO_TRADE")

    @pytest.mark.asyncio
    async def test_stale_claimer_rejected(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        """Order re-claimed by someone else between read and write."""
        order = order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))
        snapshot = await order_repo.get_by_id(order.id, db)
        order_repo.rows[order.id].claimer_id = CAROL.id
        service.get = AsyncMock(return_value=snapshot)

        with pytest.raises(OrderConflictError):
            await service.mark_ready(order.id, BOB.id, db)
        assert order_repo.rows[order.id].status == "IN_PROGRESS"


class TestUnclaim:
    @pytest.mark.asyncio
    async def test_unclaim_reopens_and_notifies(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order(status="READY_TO_TRADE", claimer_id=BOB.id))
        reopened = await service.unclaim(order.id, BOB.id, db)
        assert reopened.status == "OPEN"
        assert reopened.claimer_id is None

        (event,) = await _drain(alice_channel)
        assert event["notification_type"] == "order_cancelled"
        assert event["title"] == "Order Cancelled"

    @pytest.mark.asyncio
    async def test_only_claimer_unclaims(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))
        with pytest.raises(OrderForbiddenError):
            await service.unclaim(order.id, CAROL.id, db)


class TestEdit:
    @pytest.mark.asyncio
    async def test_no_changes_is_a_noop(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order())
        same = await service.edit(order.id, ALICE.id, EditOrderRequest(amount=10), db)
        assert same.amount == 10
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fields_updated(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order())
        body = EditOrderRequest(amount=25, price_per_unit="5")
        edited = await service.edit(order.id, ALICE.id, body, db)
        assert edited.amount == 25
        assert edited.price_per_unit == Decimal("5")
        assert edited.status == "OPEN"

    @pytest.mark.asyncio
    async def test_type_switch_remaps_status(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))
        edited = await service.edit(order.id, ALICE.id, EditOrderRequest(order_type="SELL"), db)
        assert edited.order_type == "SELL"
        assert edited.status == "READY_TO_TRADE"
        (event,) = await _drain(alice_channel)
        assert event["notification_type"] == "order_ready"


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_open_order_is_silent(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order())
        deleted = await service.delete(order.id, ALICE.id, db)
        assert deleted.id == order.id
        assert order.id not in order_repo.rows
        assert await _drain(alice_channel) == []

    @pytest.mark.asyncio
    async def test_delete_claimed_order_reports_cancellation(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))
        await service.delete(order.id, ALICE.id, db)
        (event,) = await _drain(alice_channel)
        assert event["notification_type"] == "order_cancelled"

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order())
        with pytest.raises(OrderForbiddenError):
            await service.delete(order.id, BOB.id, db)
        assert order.id in order_repo.rows

    @pytest.mark.asyncio
    async def test_admin_delete_of_fulfilled_order(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order(status="FULFILLED", claimer_id=BOB.id))
        await service.admin_delete(order.id, db)
        assert order.id not in order_repo.rows
        # FULFILLED -> OPEN is not a notifying transition
        assert await _drain(alice_channel) == []

    @pytest.mark.asyncio
    async def test_admin_delete_ready_order_notifies(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        alice_channel: PushChannel,
        db: AsyncMock,
    ) -> None:
        order = order_repo.add(make_order(status="READY_TO_TRADE", claimer_id=BOB.id))
        await service.admin_delete(order.id, db)
        (event,) = await _drain(alice_channel)
        assert event["notification_type"] == "order_cancelled"


class TestAdminEdit:
    @pytest.mark.asyncio
    async def test_force_fulfilled_sets_timestamp(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))
        edited = await service.admin_edit(order.id, AdminEditOrderRequest(status="FULFILLED"), db)
        assert edited.status == "FULFILLED"
        assert edited.fulfilled_at is not None

    @pytest.mark.asyncio
    async def test_reopening_clears_fulfilled_at(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(
            make_order(
                status="FULFILLED",
                claimer_id=BOB.id,
                fulfilled_at=datetime(2025, 1, 1, tzinfo=UTC),
            )
        )
        body = AdminEditOrderRequest(status="READY_TO_TRADE")
        edited = await service.admin_edit(order.id, body, db)
        assert edited.status == "READY_TO_TRADE"
        assert edited.fulfilled_at is None

    @pytest.mark.asyncio
    async def test_field_edit_keeps_fulfilled_at(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        stamp = datetime(2025, 1, 1, tzinfo=UTC)
        order = order_repo.add(
            make_order(status="FULFILLED", claimer_id=BOB.id, fulfilled_at=stamp)
        )
        edited = await service.admin_edit(order.id, AdminEditOrderRequest(amount=3), db)
        assert edited.fulfilled_at == stamp

    @pytest.mark.asyncio
    async def test_explicit_null_clears_claimer(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))
        body = AdminEditOrderRequest.model_validate({"status": "OPEN", "claimer_id": None})
        edited = await service.admin_edit(order.id, body, db)
        assert edited.status == "OPEN"
        assert edited.claimer_id is None

    @pytest.mark.asyncio
    async def test_omitted_claimer_left_alone(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))
        edited = await service.admin_edit(order.id, AdminEditOrderRequest(amount=3), db)
        assert edited.claimer_id == BOB.id
        assert edited.amount == 3

    @pytest.mark.asyncio
    async def test_unknown_claimer_rejected(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        users: AsyncMock,
        db: AsyncMock,
    ) -> None:
        users.exists.return_value = False
        order = order_repo.add(make_order())
        body = AdminEditOrderRequest(
            status="IN_PROGRESS", claimer_id="11111111-1111-1111-1111-111111111111"
        )
        with pytest.raises(UserNotFoundError):
            await service.admin_edit(order.id, body, db)

    @pytest.mark.asyncio
    async def test_sell_in_progress_rejected(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order = order_repo.add(make_order(order_type="SELL"))
        with pytest.raises(InvalidOrderStateError):
            await service.admin_edit(order.id, AdminEditOrderRequest(status="IN_PROGRESS"), db)


class TestListing:
    @pytest.mark.asyncio
    async def test_pagination(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        for _ in range(3):
            await order_repo.insert(make_order(), db)

        first = await service.list_orders(db, page=1, limit=2)
        assert len(first.items) == 2
        assert first.total_count == 3
        assert first.has_more is True

        second = await service.list_orders(db, page=2, limit=2)
        assert len(second.items) == 1
        assert second.has_more is False

    @pytest.mark.asyncio
    async def test_filters(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order_repo.add(make_order(order_type="SELL"))
        order_repo.add(make_order(status="IN_PROGRESS", claimer_id=BOB.id))

        sells = await service.list_orders(db, order_type="SELL")
        assert [o.order_type for o in sells.items] == ["SELL"]
        claimed = await service.list_orders(db, status="IN_PROGRESS")
        assert [o.claimer_id for o in claimed.items] == [BOB.id]

    @pytest.mark.asyncio
    async def test_user_filter_matches_creator_or_claimer(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        users: AsyncMock,
        db: AsyncMock,
    ) -> None:
        order_repo.add(make_order())
        order_repo.add(make_order(creator_id=CAROL.id, status="IN_PROGRESS", claimer_id=BOB.id))
        users.find_id_by_discord_id.return_value = BOB.id

        result = await service.list_orders(db, user_discord_id=BOB.discord_id)
        assert result.total_count == 1
        assert result.items[0].claimer.discord_id == BOB.discord_id

    @pytest.mark.asyncio
    async def test_unknown_user_filter_is_empty(
        self,
        service: OrderLifecycleService,
        order_repo: InMemoryOrderRepository,
        users: AsyncMock,
        db: AsyncMock,
    ) -> None:
        order_repo.add(make_order())
        users.find_id_by_discord_id.return_value = None
        result = await service.list_orders(db, user_discord_id="999")
        assert result.items == []
        assert result.total_count == 0

    @pytest.mark.asyncio
    async def test_without_user_data(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        order_repo.add(make_order())
        result = await service.list_orders(db, include_user_data=False)
        assert result.items[0].creator is None

    @pytest.mark.asyncio
    async def test_notification_snapshot(
        self, service: OrderLifecycleService, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        mine = order_repo.add(make_order())
        claimed = order_repo.add(
            make_order(creator_id=CAROL.id, status="IN_PROGRESS", claimer_id=ALICE.id)
        )
        order_repo.add(make_order(creator_id=CAROL.id))
        orders = await service.list_for_notifications(ALICE.id, db)
        assert {o.id for o in orders} == {mine.id, claimed.id}


class TestWithoutNotifier:
    @pytest.mark.asyncio
    async def test_transitions_work_without_notifier(
        self, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        service = OrderLifecycleService(repo=order_repo, users=AsyncMock(), pricing=AsyncMock())
        order = order_repo.add(make_order())
        assert (await service.claim(order.id, BOB.id, db)).status == "IN_PROGRESS"

    @pytest.mark.asyncio
    async def test_notifier_receives_expected_previous_status(
        self, order_repo: InMemoryOrderRepository, db: AsyncMock
    ) -> None:
        notifier = MagicMock()
        service = OrderLifecycleService(
            repo=order_repo, users=AsyncMock(), pricing=AsyncMock(), notifier=notifier
        )
        order = order_repo.add(make_order())
        await service.claim(order.id, BOB.id, db)
        _, prev, new = notifier.handle_order_update.call_args.args
        assert (prev, new) == ("OPEN", "IN_PROGRESS")
