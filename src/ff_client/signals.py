"""User-facing signals for a new notification: toast, sound, desktop popup.

The consumer only talks to the ``Signaler`` protocol; a GUI or terminal
front end supplies its own implementation. ``LoggingSignaler`` is the
headless default.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.ff_client.notifications import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Beep:
    frequency: int  # Hz
    duration: float  # seconds
    delay: float = 0.0  # seconds after the first beep of the pattern


BEEP_PATTERNS: dict[str, tuple[Beep, ...]] = {
    # double beep
    "order_claimed": (Beep(800, 0.2), Beep(800, 0.2, 0.25)),
    # ascending triple
    "order_ready": (Beep(600, 0.15), Beep(700, 0.15, 0.2), Beep(800, 0.15, 0.4)),
    # C-E-G chime
    "order_completed": (Beep(523, 0.2), Beep(659, 0.2, 0.2), Beep(784, 0.3, 0.4)),
    # low descending
    "order_cancelled": (Beep(400, 0.3), Beep(300, 0.3, 0.2)),
}
DEFAULT_PATTERN: tuple[Beep, ...] = (Beep(600, 0.2),)

DESKTOP_DISMISS_SECONDS = 5.0


def beep_pattern(notification_type: str) -> tuple[Beep, ...]:
    return BEEP_PATTERNS.get(notification_type, DEFAULT_PATTERN)


class Signaler(Protocol):
    def toast(self, notification: "Notification") -> None: ...

    def play(self, pattern: tuple[Beep, ...]) -> None: ...

    def desktop(self, title: str, body: str, tag: str | None) -> None: ...

    def request_permission(self) -> bool: ...


class LoggingSignaler:
    """Headless signaler: every signal becomes a log line."""

    def toast(self, notification: "Notification") -> None:
        logger.info("[%s] %s: %s", notification.type, notification.title, notification.message)

    def play(self, pattern: tuple[Beep, ...]) -> None:
        logger.debug("beep %s", "-".join(str(b.frequency) for b in pattern))

    def desktop(self, title: str, body: str, tag: str | None) -> None:
        logger.debug("desktop notification %s (tag=%s): %s", title, tag, body)

    def request_permission(self) -> bool:
        return True
