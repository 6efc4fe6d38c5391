"""Services package."""

from bank_reconciler.services.notifications import (
    CollectingNotificationSink,
    LogNotificationSink,
    Notification,
    NotificationSink,
)
from bank_reconciler.services.statement import (
    ParseError,
    StatementFileParser,
    UnsupportedFileError,
    check_bank_match,
    decode_ofx,
    get_bank_name_from_code,
)
from bank_reconciler.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsMembershipStorage,
    GoogleSheetsStatementLineStorage,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryMembershipStorage,
    InMemoryStatementLineStorage,
    InMemoryTransactionStorage,
    MembershipStorageInterface,
    NotFoundError,
    StatementLineStorageInterface,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Notifications
    "CollectingNotificationSink",
    "LogNotificationSink",
    "Notification",
    "NotificationSink",
    # Statement files
    "ParseError",
    "StatementFileParser",
    "UnsupportedFileError",
    "check_bank_match",
    "decode_ofx",
    "get_bank_name_from_code",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsMembershipStorage",
    "GoogleSheetsStatementLineStorage",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryMembershipStorage",
    "InMemoryStatementLineStorage",
    "InMemoryTransactionStorage",
    "MembershipStorageInterface",
    "NotFoundError",
    "StatementLineStorageInterface",
    "StorageConnectionError",
    "StorageError",
    "TransactionStorageInterface",
]
