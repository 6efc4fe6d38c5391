"""Shared fixtures: record factories and in-memory stores."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from bank_reconciler.config import MatchingSettings
from bank_reconciler.models.statement import (
    LedgerTransaction,
    NewStatementLine,
    StatementDirection,
    StatementLine,
    StatementLineStatus,
    TransactionKind,
    TransactionStatus,
)
from bank_reconciler.services.notifications import CollectingNotificationSink
from bank_reconciler.services.storage import (
    InMemoryAuditStorage,
    InMemoryMembershipStorage,
    InMemoryStatementLineStorage,
    InMemoryTransactionStorage,
)


ACCOUNT_ID = "acct-1"
ORG_ID = "org-1"
USER_ID = "user-1"


@pytest.fixture
def matching_settings():
    return MatchingSettings()


@pytest.fixture
def make_line():
    """Build a StatementLine without going through a store."""
    def _make(
        amount="100.00",
        direction=StatementDirection.CREDIT,
        on=date(2026, 1, 10),
        description="PIX RECEBIDO JOAO",
        status=StatementLineStatus.PENDING,
        account_id=ACCOUNT_ID,
        matched_transaction_id=None,
    ):
        reconciled_at = (
            datetime(2026, 1, 11, tzinfo=timezone.utc)
            if status == StatementLineStatus.RECONCILED
            else None
        )
        return StatementLine(
            organization_id=ORG_ID,
            account_id=account_id,
            user_id=USER_ID,
            date=on,
            amount=Decimal(amount),
            direction=direction,
            description=description,
            status=status,
            matched_transaction_id=matched_transaction_id,
            reconciled_at=reconciled_at,
        )
    return _make


@pytest.fixture
def make_new_line():
    """Build an insert payload for a statement line."""
    def _make(
        amount="100.00",
        direction=StatementDirection.CREDIT,
        on=date(2026, 1, 10),
        description="PIX RECEBIDO JOAO",
        account_id=ACCOUNT_ID,
    ):
        return NewStatementLine(
            organization_id=ORG_ID,
            account_id=account_id,
            user_id=USER_ID,
            date=on,
            amount=Decimal(amount),
            direction=direction,
            description=description,
            memo=description,
        )
    return _make


@pytest.fixture
def make_transaction():
    """Build a LedgerTransaction."""
    def _make(
        amount="100.00",
        kind=TransactionKind.INCOME,
        on=date(2026, 1, 10),
        description="Pix Joao",
        status=TransactionStatus.PENDING,
        account_id=ACCOUNT_ID,
    ):
        return LedgerTransaction(
            organization_id=ORG_ID,
            account_id=account_id,
            user_id=USER_ID,
            description=description,
            amount=Decimal(amount),
            kind=kind,
            date=on,
            status=status,
        )
    return _make


@pytest.fixture
def line_storage():
    return InMemoryStatementLineStorage()


@pytest.fixture
def transaction_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def membership_storage():
    return InMemoryMembershipStorage({USER_ID: ORG_ID})


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def notifier():
    return CollectingNotificationSink()
