"""Local per-user notification persistence.

The list is a projection cache, never the system of record: a missing or
corrupt file simply starts the user over with an empty list.
"""

import re
from datetime import datetime
from pathlib import Path

from pydantic import TypeAdapter

from .logger import logger
from .schemas import Notification

MAX_NOTIFICATIONS = 50

_notification_list = TypeAdapter(list[Notification])


def prune(notifications: list[Notification], now: datetime, max_entries: int = MAX_NOTIFICATIONS) -> list[Notification]:
    """Keep today's notifications only, newest first, at most ``max_entries``.

    "Today" is the local calendar day of ``now``.
    """
    today = now.astimezone().date()
    kept = [n for n in notifications if n.created_at.astimezone().date() == today]
    kept.sort(key=lambda n: n.created_at, reverse=True)
    return kept[:max_entries]


class NotificationStore:
    """Stores one JSON file of notifications per user id."""

    def __init__(self, directory: Path | str, max_entries: int = MAX_NOTIFICATIONS):
        self.directory = Path(directory)
        self.max_entries = max_entries

    def path_for(self, user_id: str) -> Path:
        safe_id = re.sub(r"[^A-Za-z0-9_.-]", "_", user_id)
        return self.directory / f"notifications_{safe_id}.json"

    def load(self, user_id: str, now: datetime) -> list[Notification]:
        """Load a user's notifications, pruned to today and the size cap."""
        path = self.path_for(user_id)
        if not path.exists():
            return []
        try:
            notifications = _notification_list.validate_json(path.read_bytes())
        except (OSError, ValueError) as e:
            logger.warning(f"Discarding unreadable notification file | path={path} | error={e}")
            return []
        return prune(notifications, now, self.max_entries)

    def save(self, user_id: str, notifications: list[Notification]) -> None:
        path = self.path_for(user_id)
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_bytes(_notification_list.dump_json(notifications[: self.max_entries]))
        tmp.replace(path)

    def clear(self, user_id: str) -> None:
        self.path_for(user_id).unlink(missing_ok=True)
