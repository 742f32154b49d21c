"""In-process push hub: one outbound channel per user, keyed by Discord id.

The hub is an explicit object owned by the application lifespan (see
src/main.py) rather than module state. It lives in one process only; users
connected to another worker process are not reachable from here.

Delivery is at-most-once. A push onto a closed or full channel drops the
event and deregisters the user; nothing is buffered or retried.
"""
import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from src.ff_common.datetime_utils import utc_now

logger = logging.getLogger(__name__)

_CLOSE = object()


class ChannelClosed(Exception):
    """Raised when pushing to, or reading from, a channel that has shut down."""


def encode_sse(event: dict[str, Any]) -> str:
    """One Server-Sent-Events frame: ``data: {json}\\n\\n``."""
    return f"data: {json.dumps(event, default=str)}\n\n"


class PushChannel:
    """Bounded outbound queue behind one open event stream."""

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, frame: str) -> None:
        if self._closed:
            raise ChannelClosed()
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            # a reader this far behind is treated as gone
            self.close()
            raise ChannelClosed() from None

    async def next_frame(self, timeout: float) -> str | None:
        """Next queued frame, or None if nothing arrived within ``timeout``."""
        if self._closed and self._queue.empty():
            raise ChannelClosed()
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if item is _CLOSE:
            raise ChannelClosed()
        return str(item)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            pass  # reader drains the backlog, then sees closed + empty


class NotificationHub:
    def __init__(self, heartbeat_seconds: float = 30.0, channel_buffer: int = 100) -> None:
        self.heartbeat_seconds = heartbeat_seconds
        self.channel_buffer = channel_buffer
        self._channels: dict[str, PushChannel] = {}

    def __len__(self) -> int:
        return len(self._channels)

    def connected_users(self) -> list[str]:
        return sorted(self._channels)

    def is_connected(self, user_key: str) -> bool:
        return user_key in self._channels

    def open_channel(self, user_key: str) -> PushChannel:
        channel = PushChannel(maxsize=self.channel_buffer)
        self.register(user_key, channel)
        return channel

    def register(self, user_key: str, channel: PushChannel) -> None:
        """Track ``channel`` as the user's only channel.

        An older channel for the same user is dropped from the map but left
        open; its stream ends when that client disconnects.
        """
        if user_key in self._channels and self._channels[user_key] is not channel:
            logger.info("Push channel for %s replaced by a newer connection", user_key)
        self._channels[user_key] = channel
        logger.debug("Push channel registered for %s (%d connected)", user_key, len(self))

    def deregister(self, user_key: str, channel: PushChannel | None = None) -> bool:
        """Remove the user's entry; with ``channel``, only if it is still the current one."""
        current = self._channels.get(user_key)
        if current is None or (channel is not None and current is not channel):
            return False
        del self._channels[user_key]
        logger.debug("Push channel deregistered for %s (%d connected)", user_key, len(self))
        return True

    def send(self, user_key: str, event: dict[str, Any]) -> bool:
        """Push ``event`` to the user's channel; False if they had none or it failed."""
        channel = self._channels.get(user_key)
        if channel is None:
            logger.debug("No push channel for %s, dropping %s", user_key, event.get("type"))
            return False
        return self._push(user_key, channel, encode_sse(event))

    def broadcast(self, event: dict[str, Any]) -> int:
        """Push ``event`` to every connected user; returns how many accepted it."""
        frame = encode_sse(event)
        delivered = 0
        for user_key, channel in list(self._channels.items()):
            if self._push(user_key, channel, frame):
                delivered += 1
        return delivered

    def _push(self, user_key: str, channel: PushChannel, frame: str) -> bool:
        try:
            channel.push(frame)
        except ChannelClosed:
            logger.warning("Push to %s failed, channel closed; deregistering", user_key)
            self.deregister(user_key, channel)
            return False
        return True

    async def close(self) -> None:
        """Shut every channel; open streams end on their next read."""
        for channel in self._channels.values():
            channel.close()
        count = len(self._channels)
        self._channels.clear()
        logger.info("Notification hub closed (%d channels)", count)

    async def stream(
        self,
        user_key: str,
        channel: PushChannel,
        is_disconnected: Callable[[], Awaitable[bool]],
    ) -> AsyncIterator[str]:
        """SSE frames for one connection: connected, then events and pings.

        Ends when the client goes away or the channel is closed, and always
        deregisters the channel it was serving.
        """
        try:
            yield encode_sse({"type": "connected", "timestamp": utc_now().isoformat()})
            while not await is_disconnected():
                frame = await channel.next_frame(self.heartbeat_seconds)
                if frame is None:
                    frame = encode_sse({"type": "ping", "timestamp": utc_now().isoformat()})
                yield frame
        except ChannelClosed:
            pass
        finally:
            self.deregister(user_key, channel)
            channel.close()
