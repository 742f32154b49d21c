"""NotificationConsumer: push stream and polling fallback, side by side.

Usage:
    async with NotificationConsumer() as consumer:
        ...
        consumer.on_visibility_change(True)
"""
import asyncio
import logging
from typing import Any

import httpx

from src.ff_client.notifications import NotificationStore
from src.ff_client.poller import OrderStatusPoller
from src.ff_client.settings import ClientSettings, client_settings
from src.ff_client.signals import Signaler
from src.ff_client.sse import PushSubscriber
from src.ff_notify.application.schemas import OrderNotificationEvent

logger = logging.getLogger(__name__)

PROFILE_PATH = "/profile"


class NotificationConsumer:
    def __init__(
        self,
        settings: ClientSettings | None = None,
        store: NotificationStore | None = None,
        signaler: Signaler | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or client_settings
        self.store = store or NotificationStore(
            path=self._settings.STORAGE_PATH,
            limit=self._settings.HISTORY_LIMIT,
            signaler=signaler,
        )
        headers = {}
        if self._settings.ACCESS_TOKEN:
            headers["Authorization"] = f"Bearer {self._settings.ACCESS_TOKEN}"
        self._client = httpx.AsyncClient(
            base_url=self._settings.BASE_URL,
            headers=headers,
            timeout=httpx.Timeout(10.0, read=self._settings.STREAM_READ_TIMEOUT_SECONDS),
            transport=transport,
        )
        self.subscriber = PushSubscriber(
            self._client,
            self.handle_event,
            reconnect_delay=self._settings.RECONNECT_DELAY_SECONDS,
        )
        self.poller = OrderStatusPoller(
            self._client,
            self.handle_event,
            interval=self._settings.POLL_INTERVAL_SECONDS,
        )
        self._tasks: list[asyncio.Task[None]] = []

    async def __aenter__(self) -> "NotificationConsumer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Materialize a pushed (camelCase) or polled (snake_case) notice in the local store."""
        notice = OrderNotificationEvent.model_validate(event)
        self.store.add(
            type=notice.notification_type,
            title=notice.title,
            message=notice.message,
            order_id=notice.order_id,
            order_details=notice.order_details.model_dump() if notice.order_details else None,
            event_id=notice.id,
        )

    async def sync_settings(self) -> None:
        try:
            resp = await self._client.get(PROFILE_PATH)
            resp.raise_for_status()
            self.store.sync_from_profile(resp.json()["data"])
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning("Could not load notification settings from profile: %s", exc)

    async def start(self) -> None:
        await self.sync_settings()
        self._tasks = [
            asyncio.create_task(self.subscriber.run(), name="ff-push"),
            asyncio.create_task(self.poller.run(), name="ff-poll"),
        ]

    def on_visibility_change(self, visible: bool) -> None:
        if not visible:
            return
        self.subscriber.ensure_connected()
        self.poller.poll_now()

    async def stop(self) -> None:
        self.subscriber.stop()
        self.poller.stop()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self._client.aclose()
