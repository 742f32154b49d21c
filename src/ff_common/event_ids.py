"""Content-derived notification ids.

Push and poll paths derive the id from the same three facts about a status
change, so a client that hears about one change twice can drop the second
copy. The timestamp is the order's ``status_changed_at``, which edits that
leave the status alone do not move. Kept free of settings and database
imports so the client package can use it too.
"""

import hashlib
from datetime import datetime, timezone


def _normalize_timestamp(value: datetime | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def notification_event_id(
    order_id: str, new_status: str, status_changed_at: datetime | str | None
) -> str:
    """sha1 of ``order_id|new_status|status_changed_at`` with the time in UTC."""
    raw = f"{order_id}|{new_status}|{_normalize_timestamp(status_changed_at)}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()
