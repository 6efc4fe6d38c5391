"""
In-Memory Storage Implementation

Used by the test suite and when the application runs without a
configured Google Sheets backend. Follows the same contracts as the
Google Sheets implementation, including store-assigned ids and
date-descending list order.

Every read returns copies so callers can't mutate stored records.
"""

from typing import Optional
from uuid import UUID, uuid4

from bank_reconciler.models.audit import AuditEvent
from bank_reconciler.models.statement import (
    LedgerTransaction,
    NewStatementLine,
    NewTransaction,
    StatementLine,
    StatementLineStatus,
    TransactionStatus,
    utcnow,
)
from bank_reconciler.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    MembershipStorageInterface,
    NotFoundError,
    StatementLineStorageInterface,
    TransactionStorageInterface,
)


class InMemoryStatementLineStorage(StatementLineStorageInterface):
    """
    Statement lines kept in a dict, in insertion order.

    With `unique_dedup_keys=True` the store behaves like a database with a
    unique index on (account, direction, date, amount, description) and
    rejects a whole insert batch that would violate it.
    """

    def __init__(self, unique_dedup_keys: bool = False):
        self._lines: dict[UUID, StatementLine] = {}
        self._unique_dedup_keys = unique_dedup_keys

    async def list_statement_lines(
        self,
        account_id: Optional[str] = None,
        status: Optional[StatementLineStatus] = None,
    ) -> list[StatementLine]:
        lines = [
            line.model_copy()
            for line in self._lines.values()
            if (account_id is None or line.account_id == account_id)
            and (status is None or line.status == status)
        ]
        # sort is stable: same-day lines keep insertion order
        lines.sort(key=lambda line: line.date, reverse=True)
        return lines

    async def get_statement_line(self, line_id: UUID) -> Optional[StatementLine]:
        line = self._lines.get(line_id)
        return line.model_copy() if line else None

    async def insert_statement_lines(
        self,
        lines: list[NewStatementLine],
    ) -> list[StatementLine]:
        if self._unique_dedup_keys:
            taken = {
                (line.account_id, line.dedup_key) for line in self._lines.values()
            }
            for new_line in lines:
                key = (new_line.account_id, new_line.dedup_key)
                if key in taken:
                    raise DuplicateError(
                        f"Duplicate statement line for account {new_line.account_id}: "
                        f"{new_line.dedup_key}"
                    )
                taken.add(key)

        inserted = []
        for new_line in lines:
            now = utcnow()
            line = StatementLine(
                id=uuid4(),
                status=StatementLineStatus.PENDING,
                created_at=now,
                updated_at=now,
                **new_line.model_dump(),
            )
            self._lines[line.id] = line
            inserted.append(line.model_copy())
        return inserted

    async def update_statement_line_status(
        self,
        line_id: UUID,
        status: StatementLineStatus,
        matched_transaction_id: Optional[UUID] = None,
        reconciled_by: Optional[str] = None,
    ) -> StatementLine:
        line = self._lines.get(line_id)
        if line is None:
            raise NotFoundError(f"Statement line not found: {line_id}")

        now = utcnow()
        update: dict = {"status": status, "updated_at": now}
        if matched_transaction_id is not None:
            update["matched_transaction_id"] = matched_transaction_id
        if status == StatementLineStatus.RECONCILED:
            update["reconciled_at"] = now
            update["reconciled_by"] = reconciled_by

        updated = line.model_copy(update=update)
        self._lines[line_id] = updated
        return updated.model_copy()

    async def delete_statement_line(self, line_id: UUID) -> None:
        if line_id not in self._lines:
            raise NotFoundError(f"Statement line not found: {line_id}")
        del self._lines[line_id]


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Ledger transactions kept in a dict, in insertion order."""

    def __init__(self, transactions: Optional[list[LedgerTransaction]] = None):
        self._transactions: dict[UUID, LedgerTransaction] = {
            transaction.id: transaction for transaction in transactions or []
        }

    async def list_transactions(
        self,
        account_id: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
    ) -> list[LedgerTransaction]:
        transactions = [
            transaction.model_copy()
            for transaction in self._transactions.values()
            if (account_id is None or transaction.account_id == account_id)
            and (status is None or transaction.status == status)
        ]
        transactions.sort(key=lambda transaction: transaction.date, reverse=True)
        return transactions

    async def create_transaction(
        self,
        transaction: NewTransaction,
    ) -> LedgerTransaction:
        created = LedgerTransaction(
            id=uuid4(),
            created_at=utcnow(),
            **transaction.model_dump(),
        )
        self._transactions[created.id] = created
        return created.model_copy()


class InMemoryMembershipStorage(MembershipStorageInterface):
    """Static user -> organization mapping."""

    def __init__(self, memberships: Optional[dict[str, str]] = None):
        self._memberships = dict(memberships or {})

    def add_member(self, user_id: str, organization_id: str) -> None:
        self._memberships[user_id] = organization_id

    async def get_user_organization_id(self, user_id: str) -> Optional[str]:
        return self._memberships.get(user_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
