"""Operation outcome notifications."""

from bank_reconciler.services.notifications.sink import (
    STATEMENT_LINES_SCOPE,
    TRANSACTIONS_SCOPE,
    CollectingNotificationSink,
    LogNotificationSink,
    Notification,
    NotificationSink,
)

__all__ = [
    "STATEMENT_LINES_SCOPE",
    "TRANSACTIONS_SCOPE",
    "CollectingNotificationSink",
    "LogNotificationSink",
    "Notification",
    "NotificationSink",
]
