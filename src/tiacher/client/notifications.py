"""
User-facing notifications ("toasts").

Managers report outcomes here instead of raising; a front-end subscribes
to render them.
"""

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from tiacher.models.base import utcnow

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100


@dataclass
class Notification:
    """A short title and description shown to the user."""

    title: str
    description: str = ""
    variant: Literal["default", "destructive"] = "default"
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


class Notifier:
    """Collects notifications and forwards them to subscribers."""

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        # Oldest notifications drop off once the limit is reached
        self.history: deque[Notification] = deque(maxlen=history_limit)
        self._subscribers: list[Callable[[Notification], None]] = []

    def subscribe(self, callback: Callable[[Notification], None]) -> None:
        self._subscribers.append(callback)

    def notify(self, title: str, description: str = "") -> Notification:
        return self._publish(Notification(title=title, description=description))

    def error(self, title: str, description: str = "") -> Notification:
        return self._publish(
            Notification(title=title, description=description, variant="destructive")
        )

    def _publish(self, notification: Notification) -> Notification:
        level = logging.WARNING if notification.is_error else logging.INFO
        logger.log(level, "%s: %s", notification.title, notification.description)
        self.history.append(notification)
        for callback in self._subscribers:
            callback(notification)
        return notification

    @property
    def last(self) -> Notification | None:
        return self.history[-1] if self.history else None
