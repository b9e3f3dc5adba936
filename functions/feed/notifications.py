"""
User-visible notifications (toasts) raised by the expense feed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

Severity = Literal["default", "destructive"]


class Notifier(Protocol):
    def notify(self, title: str, description: str, severity: Severity = "default") -> None:
        ...


@dataclass
class Notification:
    title: str
    description: str
    severity: Severity = "default"


class LoggingNotifier:
    """Writes notifications to the log; used when no UI surface is attached."""

    def notify(self, title: str, description: str, severity: Severity = "default") -> None:
        if severity == "destructive":
            logger.warning("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)


@dataclass
class RecordingNotifier:
    """Keeps every notification in order."""

    notifications: list[Notification] = field(default_factory=list)

    def notify(self, title: str, description: str, severity: Severity = "default") -> None:
        self.notifications.append(Notification(title, description, severity))

    @property
    def errors(self) -> list[Notification]:
        return [n for n in self.notifications if n.severity == "destructive"]
