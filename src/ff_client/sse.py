"""Push subscription: keep one event stream open, reconnect when it drops.

Reconnects after a fixed delay with no retry cap. ``ensure_connected`` cuts
the wait short, for when the user comes back to the app.
"""
import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

STREAM_PATH = "/notifications/stream"

EventHandler = Callable[[dict[str, Any]], Awaitable[None]]


async def parse_sse(lines: AsyncIterator[str]) -> AsyncIterator[dict[str, Any]]:
    """Decode ``data:`` frames into dicts; comments and bad JSON are skipped."""
    data: list[str] = []
    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data:
                payload = "\n".join(data)
                data = []
                try:
                    event = json.loads(payload)
                except ValueError:
                    logger.warning("Failed to parse push message: %r", payload[:200])
                    continue
                if isinstance(event, dict):
                    yield event
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if name == "data":
            data.append(value[1:] if value.startswith(" ") else value)


class PushSubscriber:
    def __init__(
        self,
        client: httpx.AsyncClient,
        on_notification: EventHandler,
        reconnect_delay: float = 5.0,
        path: str = STREAM_PATH,
    ) -> None:
        self._client = client
        self._on_notification = on_notification
        self._reconnect_delay = reconnect_delay
        self._path = path
        self._connected = False
        self._stopped = asyncio.Event()
        self._wake = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect_once(self) -> None:
        """Hold one connection open until it ends; transport errors propagate."""
        async with self._client.stream("GET", self._path) as response:
            response.raise_for_status()
            self._connected = True
            try:
                async for event in parse_sse(response.aiter_lines()):
                    await self._dispatch(event)
                    if self._stopped.is_set():
                        return
            finally:
                self._connected = False

    async def _dispatch(self, event: dict[str, Any]) -> None:
        kind = event.get("type")
        if kind == "connected":
            logger.info("Push stream connected at %s", event.get("timestamp"))
        elif kind == "ping":
            pass
        elif kind == "order_notification":
            try:
                await self._on_notification(event)
            except Exception:
                # one bad event must not drop the stream
                logger.exception("Failed to handle push notification %s", event.get("id"))
        else:
            logger.debug("Unknown push message type: %s", kind)

    async def run(self) -> None:
        while not self._stopped.is_set():
            # a wake-up requested during this attempt cuts the following pause short
            self._wake.clear()
            try:
                await self.connect_once()
            except httpx.HTTPError as exc:
                logger.warning("Push stream error: %s", exc)
            except Exception:
                logger.exception("Push stream failed")
            if self._stopped.is_set():
                break
            logger.info("Reconnecting push stream in %.0fs", self._reconnect_delay)
            await self._pause()

    async def _pause(self) -> None:
        try:
            await asyncio.wait_for(self._wake.wait(), self._reconnect_delay)
        except asyncio.TimeoutError:
            pass

    def ensure_connected(self) -> None:
        """Reconnect now instead of waiting out the delay, if not connected."""
        if not self._connected:
            self._wake.set()

    def stop(self) -> None:
        self._stopped.set()
        self._wake.set()
