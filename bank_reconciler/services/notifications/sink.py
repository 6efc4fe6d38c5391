"""
Notification Sink

Operation outcomes are pushed to a sink owned by whatever surface
consumes the engine (a web page, a CLI, a test).

DESIGN DECISION: The engine only reports outcomes AFTER the store has
confirmed them. A success notification never precedes persistence.

Two kinds of signal:
1. notify()      - a user-facing outcome (success / warning / error)
2. invalidate()  - cached views of these scopes are stale and must be reloaded
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from bank_reconciler.models.statement import utcnow


STATEMENT_LINES_SCOPE = "statement_lines"
TRANSACTIONS_SCOPE = "transactions"


class Notification(BaseModel):
    """A structured operation outcome."""

    operation: str = Field(
        ...,
        description="Operation that produced the outcome (e.g., 'import', 'reconcile')"
    )
    level: str = Field(
        ...,
        pattern="^(success|info|warning|error)$",
        description="Outcome level"
    )
    title: str
    message: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class NotificationSink(ABC):
    """Receives operation outcomes and cache invalidation signals."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        """Deliver one outcome."""
        pass

    @abstractmethod
    def invalidate(self, *scopes: str) -> None:
        """Signal that cached views of the given scopes are stale."""
        pass


class LogNotificationSink(NotificationSink):
    """Writes notifications to the structured log. Used when no surface is attached."""

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    def notify(self, notification: Notification) -> None:
        log = self._logger.error if notification.level == "error" else self._logger.info
        log(
            "notification",
            operation=notification.operation,
            level=notification.level,
            title=notification.title,
            message=notification.message,
            details=notification.details,
        )

    def invalidate(self, *scopes: str) -> None:
        self._logger.debug("views_invalidated", scopes=list(scopes))


class CollectingNotificationSink(NotificationSink):
    """Keeps every signal in memory for a consuming surface to drain."""

    def __init__(self):
        self.notifications: list[Notification] = []
        self.invalidated: list[str] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def invalidate(self, *scopes: str) -> None:
        self.invalidated.extend(scopes)

    @property
    def last(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None

    def drain(self) -> list[Notification]:
        """Return and forget all collected notifications."""
        drained, self.notifications = self.notifications, []
        return drained
