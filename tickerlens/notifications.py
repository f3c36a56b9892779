"""User-facing notifications raised by background actions."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Notification:
    title: str
    message: str
    level: str = "info"  # "info" or "error"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """Logs every notification and keeps the most recent ones for display."""

    def __init__(self, maxlen: int = 50) -> None:
        self._recent: deque[Notification] = deque(maxlen=maxlen)

    def notify(self, title: str, message: str, level: str = "info") -> Notification:
        note = Notification(title=title, message=message, level=level)
        self._recent.append(note)
        if level == "error":
            log.warning("%s – %s", title, message)
        else:
            log.info("%s – %s", title, message)
        return note

    def recent(self) -> list[Notification]:
        """Newest first."""
        return list(reversed(self._recent))

    def clear(self) -> None:
        self._recent.clear()


_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = Notifier()
    return _notifier
