"""User-visible notifications (toasts). Every notification is also logged."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"  # default | destructive


class Notifier:
    """Collects notifications and forwards them to the UI sink, if any"""

    def __init__(self, sink: Optional[Callable[[Notification], None]] = None):
        self.sink = sink
        self.history: list[Notification] = []

    def notify(self, title: str, description: str, variant: str = "default") -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self.history.append(notification)
        if variant == "destructive":
            logger.warning(f"⚠️ {title}: {description}")
        else:
            logger.info(f"✅ {title}: {description}")
        if self.sink:
            self.sink(notification)
        return notification

    def success(self, title: str, description: str) -> Notification:
        return self.notify(title, description)

    def error(self, title: str, description: str) -> Notification:
        return self.notify(title, description, variant="destructive")

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None
