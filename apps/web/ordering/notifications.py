"""Ephemeral user-facing notifications (toasts)."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str


class Notifier:
    """
    Holds the single notification currently on screen.

    A new notification replaces the previous one. When ``auto_dismiss`` is
    set and an event loop is running, the notification clears itself after
    that many seconds; errors stay until dismissed.
    """

    def __init__(self, auto_dismiss: float | None = 3.0) -> None:
        self.auto_dismiss = auto_dismiss
        self.current: Notification | None = None
        self._handle: asyncio.TimerHandle | None = None

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._cancel_timer()
        self.current = notification

        log = logger.warning if level == NotificationLevel.ERROR else logger.info
        log("Notification (%s): %s", level.value, message)

        if self.auto_dismiss and level != NotificationLevel.ERROR:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                self._handle = loop.call_later(
                    self.auto_dismiss, self._expire, notification
                )
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message)

    def info(self, message: str) -> Notification:
        return self.notify(NotificationLevel.INFO, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.ERROR, message)

    def dismiss(self) -> None:
        self._cancel_timer()
        self.current = None

    def _expire(self, notification: Notification) -> None:
        self._handle = None
        if self.current is notification:
            self.current = None

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
