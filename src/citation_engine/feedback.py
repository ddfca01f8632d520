"""User-facing notifications (the editor's toasts)."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


class Notifier:
    """Collects notifications and forwards them to an optional listener."""

    def __init__(self, listener: Optional[Callable[[Notification], None]] = None):
        self.listener = listener
        self.history: List[Notification] = []

    def _push(self, level: str, message: str) -> Notification:
        notification = Notification(level, message)
        self.history.append(notification)
        if self.listener is not None:
            try:
                self.listener(notification)
            except Exception as e:
                logger.error(f"Notification listener failed: {e}")
        return notification

    def success(self, message: str) -> Notification:
        logger.info(f"Notify: {message}")
        return self._push(SUCCESS, message)

    def error(self, message: str) -> Notification:
        logger.warning(f"Notify error: {message}")
        return self._push(ERROR, message)

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None

    def clear(self) -> None:
        self.history.clear()
