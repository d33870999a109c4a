"""Transient user-facing notifications (toasts)."""
from dataclasses import dataclass
from typing import List

from clinic_booking.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    level: str  # "success", "error" or "info"
    message: str


class Notifier:
    """Collects notifications until the front end drains them."""

    def __init__(self):
        self.pending: List[Notification] = []

    def _push(self, level: str, message: str) -> None:
        self.pending.append(Notification(level, message))
        logger.info("notification", kind=level, message=message)

    def success(self, message: str) -> None:
        self._push("success", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def info(self, message: str) -> None:
        self._push("info", message)

    def drain(self) -> List[Notification]:
        """Return and forget everything pending."""
        drained, self.pending = self.pending, []
        return drained

    @property
    def last(self) -> Notification:
        return self.pending[-1]
