"""Polling fallback: diff the caller's orders between polls.

The first poll after start (or reset) only records a baseline. After that
every creator-side status change becomes the same notice the server would
push, stamped with the same event id so the store can drop duplicates.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from src.ff_common.event_ids import notification_event_id
from src.ff_notify.domain.rules import describe_transition

logger = logging.getLogger(__name__)

SNAPSHOT_PATH = "/orders/notifications"
SESSION_PATH = "/auth/session"

NoticeHandler = Callable[[dict[str, Any]], Awaitable[None]]


def _details(order: dict[str, Any]) -> dict[str, Any]:
    return {
        "item_name": order["item_name"],
        "tier": order["tier"],
        "amount": order["amount"],
        "order_type": order["order_type"],
    }


def _claimer_name(order: dict[str, Any]) -> str | None:
    claimer = order.get("claimer") or {}
    return claimer.get("in_game_name") or claimer.get("discord_name")


def diff_snapshots(
    previous: dict[str, dict[str, Any]],
    current: dict[str, dict[str, Any]],
    viewer_discord_id: str,
) -> list[dict[str, Any]]:
    """Notices for orders the viewer created whose status moved between snapshots."""
    notices: list[dict[str, Any]] = []
    for order_id, order in current.items():
        before = previous.get(order_id)
        if before is None or before["status"] == order["status"]:
            continue
        creator = order.get("creator") or {}
        if creator.get("discord_id") != viewer_discord_id:
            continue
        notice = describe_transition(
            before["status"], order["status"], _details(order), _claimer_name(order)
        )
        if notice is None:
            continue
        notices.append(
            {
                "id": notification_event_id(
                    order_id, order["status"], order.get("status_changed_at")
                ),
                "notification_type": notice.notification_type.value,
                "order_id": order_id,
                "title": notice.title,
                "message": notice.message,
                "order_details": _details(order),
            }
        )
    return notices


class OrderStatusPoller:
    def __init__(
        self,
        client: httpx.AsyncClient,
        on_notice: NoticeHandler,
        interval: float = 30.0,
        viewer_discord_id: str | None = None,
    ) -> None:
        self._client = client
        self._on_notice = on_notice
        self._interval = interval
        self._viewer = viewer_discord_id
        self._snapshot: dict[str, dict[str, Any]] | None = None
        self._stopped = asyncio.Event()
        self._wake = asyncio.Event()

    @property
    def initialized(self) -> bool:
        return self._snapshot is not None

    def reset(self) -> None:
        """Forget the baseline; the next poll seeds again (e.g. after sign-out)."""
        self._snapshot = None
        self._viewer = None

    async def _viewer_id(self) -> str:
        if self._viewer is None:
            resp = await self._client.get(SESSION_PATH)
            resp.raise_for_status()
            self._viewer = str(resp.json()["data"]["discord_id"])
        return self._viewer

    async def poll_once(self) -> list[dict[str, Any]]:
        """Fetch one snapshot and emit notices for changes since the last one."""
        viewer = await self._viewer_id()
        resp = await self._client.get(SNAPSHOT_PATH)
        resp.raise_for_status()
        current = {order["id"]: order for order in resp.json()["data"]}

        if self._snapshot is None:
            self._snapshot = current
            logger.debug("Order poll baseline: %d orders", len(current))
            return []

        notices = diff_snapshots(self._snapshot, current, viewer)
        self._snapshot = current
        for notice in notices:
            try:
                await self._on_notice(notice)
            except Exception:
                logger.exception("Failed to handle polled notice for order %s", notice["order_id"])
        return notices

    async def run(self) -> None:
        while not self._stopped.is_set():
            self._wake.clear()
            try:
                await self.poll_once()
            except (httpx.HTTPError, KeyError, ValueError) as exc:
                logger.warning("Failed to poll order updates: %s", exc)
            except Exception:
                logger.exception("Order poll failed")
            try:
                await asyncio.wait_for(self._wake.wait(), self._interval)
            except asyncio.TimeoutError:
                pass

    def poll_now(self) -> None:
        self._wake.set()

    def stop(self) -> None:
        self._stopped.set()
        self._wake.set()
