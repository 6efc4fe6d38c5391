"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the record store.
Google Sheets is the production backend; the in-memory backend serves tests
and offline runs. Both follow the same interface, so they are swappable.
"""

from bank_reconciler.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    MembershipStorageInterface,
    NotFoundError,
    StatementLineStorageInterface,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)
from bank_reconciler.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsMembershipStorage,
    GoogleSheetsStatementLineStorage,
    GoogleSheetsTransactionStorage,
)
from bank_reconciler.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryMembershipStorage,
    InMemoryStatementLineStorage,
    InMemoryTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "MembershipStorageInterface",
    "StatementLineStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsMembershipStorage",
    "GoogleSheetsStatementLineStorage",
    "GoogleSheetsTransactionStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryMembershipStorage",
    "InMemoryStatementLineStorage",
    "InMemoryTransactionStorage",
]
