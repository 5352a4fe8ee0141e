"""
User-visible notifications (the terminal equivalent of UI toasts).
"""

import logging
from dataclasses import dataclass
from typing import Callable, List

logger = logging.getLogger(__name__)

DEFAULT = 'default'
DESTRUCTIVE = 'destructive'


@dataclass(frozen=True)
class Notification:
    variant: str
    title: str
    description: str


Subscriber = Callable[[Notification], None]


class NotificationCenter:
    """Fire-and-forget publish/subscribe channel for notifications."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback and return a function that removes it again."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, variant: str, title: str, description: str) -> Notification:
        notification = Notification(variant=variant, title=title, description=description)
        logger.debug(f"Notification: {notification}")

        for callback in list(self._subscribers):
            try:
                callback(notification)
            except Exception:
                # A broken listener must not break whoever published
                logger.exception(f"Notification subscriber {callback!r} failed")

        return notification
