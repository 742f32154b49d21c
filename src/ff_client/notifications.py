"""Device-local notification history.

Newest first, capped, persisted to a JSON file together with the user's
notification settings. Events carry a content-derived id; an id already
seen is dropped so the push and polling paths never show one change twice.
"""
import json
import logging
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.ff_client.signals import (
    LoggingSignaler,
    Signaler,
    beep_pattern,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
# remembered beyond the visible history so a late duplicate is still caught
_SEEN_IDS_FACTOR = 4

Listener = Callable[[list["Notification"]], None]


@dataclass
class Notification:
    id: str
    type: str
    title: str
    message: str
    order_id: str | None = None
    order_details: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False
    play_sound: bool = True
    event_id: str | None = None

    def to_json(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Notification":
        data = dict(data)
        data["timestamp"] = datetime.fromisoformat(data["timestamp"])
        return cls(**data)


@dataclass
class NotificationSettings:
    enabled: bool = True
    audio_enabled: bool = True


class NotificationStore:
    def __init__(
        self,
        path: Path | None = None,
        limit: int = DEFAULT_LIMIT,
        signaler: Signaler | None = None,
    ) -> None:
        self._path = path
        self._limit = limit
        self._signaler: Signaler = signaler or LoggingSignaler()
        self._notifications: list[Notification] = []
        self._settings = NotificationSettings()
        self._seen: deque[str] = deque(maxlen=limit * _SEEN_IDS_FACTOR)
        self._listeners: list[Listener] = []
        self._load()
        self._signaler.request_permission()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            self._notifications = [Notification.from_json(n) for n in raw.get("notifications", [])]
            self._settings = NotificationSettings(**raw.get("settings", {}))
            self._seen.extend(raw.get("seen_event_ids", []))
        except (OSError, ValueError, TypeError, KeyError) as exc:
            logger.warning("Ignoring unreadable notification store %s: %s", self._path, exc)

    def _save(self) -> None:
        if self._path is None:
            return
        payload = {
            "notifications": [n.to_json() for n in self._notifications],
            "settings": asdict(self._settings),
            "seen_event_ids": list(self._seen),
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to save notifications to %s: %s", self._path, exc)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        snapshot = list(self._notifications)
        for listener in list(self._listeners):
            listener(snapshot)
        self._save()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add(
        self,
        type: str,
        title: str,
        message: str,
        order_id: str | None = None,
        order_details: dict[str, Any] | None = None,
        play_sound: bool = True,
        event_id: str | None = None,
    ) -> Notification | None:
        """Record and signal a notification; None when disabled or a duplicate."""
        if not self._settings.enabled:
            return None
        if event_id is not None:
            if event_id in self._seen:
                logger.debug("Duplicate notification %s dropped", event_id)
                return None
            self._seen.append(event_id)

        notification = Notification(
            id=str(uuid.uuid4()),
            type=type,
            title=title,
            message=message,
            order_id=order_id,
            order_details=order_details,
            play_sound=play_sound,
            event_id=event_id,
        )
        self._notifications.insert(0, notification)
        del self._notifications[self._limit:]

        self._signaler.toast(notification)
        if notification.play_sound and self._settings.audio_enabled:
            self._signaler.play(beep_pattern(notification.type))
        self._signaler.desktop(notification.title, notification.message, tag=order_id)

        self._changed()
        return notification

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def mark_read(self, notification_id: str) -> None:
        for n in self._notifications:
            if n.id == notification_id:
                n.read = True
                self._changed()
                return

    def mark_all_read(self) -> None:
        for n in self._notifications:
            n.read = True
        self._changed()

    def remove(self, notification_id: str) -> None:
        self._notifications = [n for n in self._notifications if n.id != notification_id]
        self._changed()

    def clear(self) -> None:
        self._notifications = []
        self._changed()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def settings(self) -> NotificationSettings:
        return NotificationSettings(**asdict(self._settings))

    def update_settings(
        self, enabled: bool | None = None, audio_enabled: bool | None = None
    ) -> None:
        if enabled is not None:
            self._settings.enabled = enabled
        if audio_enabled is not None:
            self._settings.audio_enabled = audio_enabled
        self._save()

    def sync_from_profile(self, profile: dict[str, Any]) -> None:
        """Adopt the preferences stored on the server profile."""
        self._settings = NotificationSettings(
            enabled=bool(profile.get("notifications_enabled", True)),
            audio_enabled=bool(profile.get("audio_enabled", True)),
        )
        self._save()
