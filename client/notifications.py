"""Transient user notifications (the toast layer) and error message extraction."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Protocol, runtime_checkable

from .api_client import ApiError

logger = logging.getLogger(__name__)

LEVEL_INFO = "info"
LEVEL_ERROR = "error"


@runtime_checkable
class Notifier(Protocol):
    def info(self, title: str, description: str) -> None:
        """Show a transient success/info notification."""

    def error(self, title: str, description: str) -> None:
        """Show a transient error notification."""


def user_message(exc: BaseException, fallback: str) -> str:
    """Human-readable message from the server error payload, else `fallback`."""
    if isinstance(exc, ApiError) and exc.server_message:
        return exc.server_message
    return fallback


class LoggingNotifier:
    """Default notifier for headless use: notifications become log records."""

    def info(self, title: str, description: str) -> None:
        logger.info("%s: %s", title, description)

    def error(self, title: str, description: str) -> None:
        logger.warning("%s: %s", title, description)


@dataclass(frozen=True)
class Notification:
    level: str
    title: str
    description: str


class RecordingNotifier:
    """Keeps every notification in order, for UIs that drain a queue."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def info(self, title: str, description: str) -> None:
        self.notifications.append(Notification(LEVEL_INFO, title, description))

    def error(self, title: str, description: str) -> None:
        self.notifications.append(Notification(LEVEL_ERROR, title, description))

    @property
    def errors(self) -> list[Notification]:
        return [row for row in self.notifications if row.level == LEVEL_ERROR]

    def drain(self) -> list[Notification]:
        rows = self.notifications
        self.notifications = []
        return rows
