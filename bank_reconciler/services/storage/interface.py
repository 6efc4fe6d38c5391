"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the record store.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Add caching layers transparently
4. Keep reconciliation logic decoupled from storage implementation

The interface is intentionally simple - a per-record CRUD surface.
There is no multi-record transaction; batch operations in the
orchestrator are sequences of independent calls.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from bank_reconciler.models.audit import AuditEvent
from bank_reconciler.models.statement import (
    LedgerTransaction,
    NewStatementLine,
    NewTransaction,
    StatementLine,
    StatementLineStatus,
    TransactionStatus,
)


class StatementLineStorageInterface(ABC):
    """
    Abstract interface for bank statement line storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_statement_lines(
        self,
        account_id: Optional[str] = None,
        status: Optional[StatementLineStatus] = None,
    ) -> list[StatementLine]:
        """
        List statement lines with optional filters.

        Args:
            account_id: Only lines of this account
            status: Only lines in this status

        Returns:
            Matching lines in store order (date descending)

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def get_statement_line(self, line_id: UUID) -> Optional[StatementLine]:
        """
        Retrieve a statement line by its ID.

        Returns:
            The line if found, None otherwise
        """
        pass

    @abstractmethod
    async def insert_statement_lines(
        self,
        lines: list[NewStatementLine],
    ) -> list[StatementLine]:
        """
        Insert new statement lines.

        New lines are stored PENDING with no matched transaction.

        Args:
            lines: The lines to insert

        Returns:
            The inserted lines with their store-assigned ids

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_statement_line_status(
        self,
        line_id: UUID,
        status: StatementLineStatus,
        matched_transaction_id: Optional[UUID] = None,
        reconciled_by: Optional[str] = None,
    ) -> StatementLine:
        """
        Change the status of a statement line.

        The matched transaction is only written when given; an existing
        link is never cleared. Moving into RECONCILED also stamps
        reconciled_at and reconciled_by.

        Returns:
            The updated line

        Raises:
            NotFoundError: If the line doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_statement_line(self, line_id: UUID) -> None:
        """
        Permanently delete a statement line.

        Raises:
            NotFoundError: If the line doesn't exist
            StorageError: If the delete fails
        """
        pass


class TransactionStorageInterface(ABC):
    """Abstract interface for ledger transaction storage."""

    @abstractmethod
    async def list_transactions(
        self,
        account_id: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
    ) -> list[LedgerTransaction]:
        """
        List ledger transactions with optional filters.

        Returns:
            Matching transactions in store order (date descending)
        """
        pass

    @abstractmethod
    async def create_transaction(
        self,
        transaction: NewTransaction,
    ) -> LedgerTransaction:
        """
        Create a ledger transaction.

        Returns:
            The created transaction with its store-assigned id

        Raises:
            StorageError: If the insert fails
        """
        pass


class MembershipStorageInterface(ABC):
    """Resolves which organization a user acts for."""

    @abstractmethod
    async def get_user_organization_id(self, user_id: str) -> Optional[str]:
        """
        Get the organization a user belongs to.

        Returns:
            The organization id, or None if the user has no membership
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one import or one batch transition).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
