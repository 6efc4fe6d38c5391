"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the initial storage backend because:
1. Non-technical users can view their statement lines directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for one household or small business)
- No transactions (batch transitions are per-line calls anyway)
- Limited query capabilities (we filter in Python)

Only connection setup and reads are retried. Writes are not, because a
retried append can double-insert; the user re-submits instead.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, stop_after_attempt, wait_exponential

from bank_reconciler.config import get_settings
from bank_reconciler.models.audit import AuditEvent, AuditEventType, AuditSeverity
from bank_reconciler.models.statement import (
    LedgerTransaction,
    NewStatementLine,
    NewTransaction,
    StatementDirection,
    StatementLine,
    StatementLineStatus,
    TransactionKind,
    TransactionStatus,
    utcnow,
)
from bank_reconciler.services.storage.interface import (
    AuditStorageInterface,
    MembershipStorageInterface,
    NotFoundError,
    StatementLineStorageInterface,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)


# Column mappings for StatementLines sheet
STATEMENT_LINE_COLUMNS = [
    "id",
    "organization_id",
    "account_id",
    "user_id",
    "external_id",
    "date",
    "amount",
    "direction",
    "description",
    "memo",
    "check_number",
    "status",
    "matched_transaction_id",
    "reconciled_at",
    "reconciled_by",
    "created_at",
    "updated_at",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "organization_id",
    "account_id",
    "user_id",
    "description",
    "amount",
    "kind",
    "date",
    "status",
    "category_id",
    "created_at",
]

MEMBER_COLUMNS = [
    "user_id",
    "organization_id",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "actor_id",
    "is_user_action",
]

_read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _cell(row: list, index: int) -> str:
    """Read a cell, treating missing trailing columns as empty."""
    try:
        return row[index] or ""
    except IndexError:
        return ""


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_read_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_statement_lines_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.statement_lines_sheet_name,
            STATEMENT_LINE_COLUMNS,
            rows=5000,
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
        )

    def get_members_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.members_sheet_name,
            MEMBER_COLUMNS,
            rows=100,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    @_read_retry
    def read_rows(self, sheet: gspread.Worksheet) -> list[list]:
        """All data rows of a worksheet (header excluded)."""
        return sheet.get_all_values()[1:]


class GoogleSheetsStatementLineStorage(StatementLineStorageInterface):
    """
    Google Sheets implementation of statement line storage.

    One statement line per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _line_to_row(self, line: StatementLine) -> list:
        """Convert a StatementLine to a spreadsheet row."""
        return [
            str(line.id),
            line.organization_id,
            line.account_id,
            line.user_id,
            line.external_id or "",
            line.date.isoformat(),
            str(line.amount),
            line.direction.value,
            line.description,
            line.memo or "",
            line.check_number or "",
            line.status.value,
            str(line.matched_transaction_id) if line.matched_transaction_id else "",
            line.reconciled_at.isoformat() if line.reconciled_at else "",
            line.reconciled_by or "",
            line.created_at.isoformat(),
            line.updated_at.isoformat(),
        ]

    def _row_to_line(self, row: list) -> StatementLine:
        """Convert a spreadsheet row to a StatementLine."""
        return StatementLine(
            id=UUID(_cell(row, 0)),
            organization_id=_cell(row, 1),
            account_id=_cell(row, 2),
            user_id=_cell(row, 3),
            external_id=_cell(row, 4) or None,
            date=date.fromisoformat(_cell(row, 5)),
            amount=Decimal(_cell(row, 6)),
            direction=StatementDirection(_cell(row, 7)),
            description=_cell(row, 8),
            memo=_cell(row, 9) or None,
            check_number=_cell(row, 10) or None,
            status=StatementLineStatus(_cell(row, 11)),
            matched_transaction_id=UUID(_cell(row, 12)) if _cell(row, 12) else None,
            reconciled_at=datetime.fromisoformat(_cell(row, 13)) if _cell(row, 13) else None,
            reconciled_by=_cell(row, 14) or None,
            created_at=datetime.fromisoformat(_cell(row, 15)),
            updated_at=datetime.fromisoformat(_cell(row, 16)),
        )

    def _find_row(self, sheet: gspread.Worksheet, line_id: UUID) -> tuple[int, list]:
        """Locate a line's 1-based sheet row index and its values."""
        for idx, row in enumerate(self._client.read_rows(sheet), start=2):  # row 1 is header
            if row and row[0] == str(line_id):
                return idx, row
        raise NotFoundError(f"Statement line not found: {line_id}")

    async def list_statement_lines(
        self,
        account_id: Optional[str] = None,
        status: Optional[StatementLineStatus] = None,
    ) -> list[StatementLine]:
        """List statement lines with optional filters."""
        try:
            sheet = self._client.get_statement_lines_sheet()
            rows = self._client.read_rows(sheet)
        except Exception as e:
            raise StorageError(f"Failed to list statement lines: {e}")

        lines = []
        for row in rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                line = self._row_to_line(row)
            except (ValueError, TypeError) as e:
                logger.warning("malformed_statement_line_row", row_id=row[0], error=str(e))
                continue

            if account_id and line.account_id != account_id:
                continue
            if status and line.status != status:
                continue
            lines.append(line)

        lines.sort(key=lambda line: line.date, reverse=True)
        return lines

    async def get_statement_line(self, line_id: UUID) -> Optional[StatementLine]:
        """Retrieve a statement line by its ID."""
        try:
            sheet = self._client.get_statement_lines_sheet()
            _, row = self._find_row(sheet, line_id)
            return self._row_to_line(row)
        except NotFoundError:
            return None
        except Exception as e:
            raise StorageError(f"Failed to get statement line: {e}")

    async def insert_statement_lines(
        self,
        lines: list[NewStatementLine],
    ) -> list[StatementLine]:
        """Append new statement lines in a single API call."""
        now = utcnow()
        inserted = [
            StatementLine(
                id=uuid4(),
                status=StatementLineStatus.PENDING,
                created_at=now,
                updated_at=now,
                **new_line.model_dump(),
            )
            for new_line in lines
        ]
        if not inserted:
            return []

        try:
            sheet = self._client.get_statement_lines_sheet()
            sheet.append_rows(
                [self._line_to_row(line) for line in inserted],
                value_input_option="RAW",
            )
        except Exception as e:
            raise StorageError(f"Failed to insert statement lines: {e}")
        return inserted

    async def update_statement_line_status(
        self,
        line_id: UUID,
        status: StatementLineStatus,
        matched_transaction_id: Optional[UUID] = None,
        reconciled_by: Optional[str] = None,
    ) -> StatementLine:
        """Rewrite a statement line's row with its new status."""
        try:
            sheet = self._client.get_statement_lines_sheet()
            idx, row = self._find_row(sheet, line_id)
            line = self._row_to_line(row)

            now = utcnow()
            update: dict = {"status": status, "updated_at": now}
            if matched_transaction_id is not None:
                update["matched_transaction_id"] = matched_transaction_id
            if status == StatementLineStatus.RECONCILED:
                update["reconciled_at"] = now
                update["reconciled_by"] = reconciled_by
            updated = line.model_copy(update=update)

            last_cell = rowcol_to_a1(idx, len(STATEMENT_LINE_COLUMNS))
            sheet.batch_update(
                [{"range": f"A{idx}:{last_cell}", "values": [self._line_to_row(updated)]}]
            )
            return updated
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update statement line: {e}")

    async def delete_statement_line(self, line_id: UUID) -> None:
        """Delete a statement line's row."""
        try:
            sheet = self._client.get_statement_lines_sheet()
            idx, _ = self._find_row(sheet, line_id)
            sheet.delete_rows(idx)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete statement line: {e}")


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """Google Sheets implementation of ledger transaction storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: LedgerTransaction) -> list:
        return [
            str(transaction.id),
            transaction.organization_id or "",
            transaction.account_id,
            transaction.user_id or "",
            transaction.description,
            str(transaction.amount),
            transaction.kind.value,
            transaction.date.isoformat(),
            transaction.status.value,
            transaction.category_id or "",
            transaction.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> LedgerTransaction:
        return LedgerTransaction(
            id=UUID(_cell(row, 0)),
            organization_id=_cell(row, 1) or None,
            account_id=_cell(row, 2),
            user_id=_cell(row, 3) or None,
            description=_cell(row, 4),
            amount=Decimal(_cell(row, 5)),
            kind=TransactionKind(_cell(row, 6)),
            date=date.fromisoformat(_cell(row, 7)),
            status=TransactionStatus(_cell(row, 8)),
            category_id=_cell(row, 9) or None,
            created_at=datetime.fromisoformat(_cell(row, 10)),
        )

    async def list_transactions(
        self,
        account_id: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
    ) -> list[LedgerTransaction]:
        """List transactions with optional filters."""
        try:
            sheet = self._client.get_transactions_sheet()
            rows = self._client.read_rows(sheet)
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        transactions = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                transaction = self._row_to_transaction(row)
            except (ValueError, TypeError) as e:
                logger.warning("malformed_transaction_row", row_id=row[0], error=str(e))
                continue

            if account_id and transaction.account_id != account_id:
                continue
            if status and transaction.status != status:
                continue
            transactions.append(transaction)

        transactions.sort(key=lambda transaction: transaction.date, reverse=True)
        return transactions

    async def create_transaction(
        self,
        transaction: NewTransaction,
    ) -> LedgerTransaction:
        """Append a new transaction row."""
        created = LedgerTransaction(
            id=uuid4(),
            created_at=utcnow(),
            **transaction.model_dump(),
        )
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(self._transaction_to_row(created), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to create transaction: {e}")
        return created


class GoogleSheetsMembershipStorage(MembershipStorageInterface):
    """User -> organization lookup backed by the Members sheet."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def get_user_organization_id(self, user_id: str) -> Optional[str]:
        try:
            sheet = self._client.get_members_sheet()
            rows = self._client.read_rows(sheet)
        except Exception as e:
            raise StorageError(f"Failed to read memberships: {e}")

        for row in rows:
            if _cell(row, 0) == user_id and _cell(row, 1):
                return _cell(row, 1)
        return None


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            entity_type=_cell(row, 4) or None,
            entity_id=_cell(row, 5) or None,
            correlation_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
            description=_cell(row, 7),
            details=json.loads(_cell(row, 8)) if _cell(row, 8) else {},
            error_message=_cell(row, 9) or None,
            actor_id=_cell(row, 10) or None,
            is_user_action=_cell(row, 11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", event_id=str(event.event_id), error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            sheet = self._client.get_audit_sheet()
            rows = self._client.read_rows(sheet)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in rows:
            if _cell(row, 6) == str(correlation_id):
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, TypeError):
                    continue

        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            rows = self._client.read_rows(sheet)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, TypeError):
                    continue

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
