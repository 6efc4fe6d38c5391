"""
Audit Models for Bank Reconciler

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all reconciliation decisions
2. Debugging information when things go wrong
3. Compliance and accountability
4. Ability to reconstruct who reconciled what, and when

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from bank_reconciler.models.statement import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step from statement file to committed reconciliation has its own event type.
    """
    # Statement files
    STATEMENT_PARSED = "statement_parsed"
    STATEMENT_PARSE_FAILED = "statement_parse_failed"

    # Import
    STATEMENT_IMPORTED = "statement_imported"
    IMPORT_FAILED = "import_failed"

    # Matching
    MATCHES_PROPOSED = "matches_proposed"

    # State transitions
    LINES_RECONCILED = "lines_reconciled"
    LINES_UNRECONCILED = "lines_unreconciled"
    TRANSACTION_POSTED = "transaction_posted"
    LINES_DISCARDED = "lines_discarded"
    TRANSITION_REJECTED = "transition_rejected"
    TRANSITION_FAILED = "transition_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'statement_line', 'account', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one import or one batch transition)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    # User action tracking
    actor_id: Optional[str] = Field(
        default=None,
        description="User who triggered the action, if any"
    )
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "actor_id": self.actor_id,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, actor_id,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            self.actor_id or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.statement_imported(account_id, 12, 3, user_id, correlation_id)
        event = AuditEventBuilder.lines_reconciled(line_ids, transaction_id, user_id, correlation_id)
    """

    @staticmethod
    def statement_parsed(
        filename: str,
        line_count: int,
        discarded_count: int,
        bank_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_PARSED,
            entity_type="statement_file",
            entity_id=filename,
            correlation_id=correlation_id,
            description=f"Statement file parsed: {filename} ({line_count} lines)",
            details={
                "filename": filename,
                "line_count": line_count,
                "discarded_count": discarded_count,
                "bank_id": bank_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def statement_parse_failed(
        filename: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="statement_file",
            entity_id=filename,
            correlation_id=correlation_id,
            description=f"Statement file rejected: {filename}",
            error_message=reason,
            details={
                "filename": filename,
            },
            is_user_action=True,
        )

    @staticmethod
    def statement_imported(
        account_id: str,
        inserted: int,
        skipped: int,
        actor_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_IMPORTED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Statement imported: {inserted} new lines, {skipped} duplicates skipped",
            details={
                "inserted": inserted,
                "skipped": skipped,
            },
            actor_id=actor_id,
            is_user_action=True,
        )

    @staticmethod
    def import_failed(
        account_id: str,
        error_message: str,
        actor_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Statement import failed",
            error_message=error_message,
            actor_id=actor_id,
            is_user_action=True,
        )

    @staticmethod
    def matches_proposed(
        account_id: str,
        line_count: int,
        linked_count: int,
        candidate_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MATCHES_PROPOSED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Match proposals computed: {linked_count} of {line_count} lines linked",
            details={
                "line_count": line_count,
                "linked_count": linked_count,
                "candidate_count": candidate_count,
            },
        )

    @staticmethod
    def lines_reconciled(
        line_ids: list[UUID],
        matched_transaction_id: Optional[UUID],
        actor_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINES_RECONCILED,
            entity_type="statement_line",
            entity_id=str(line_ids[0]) if len(line_ids) == 1 else None,
            correlation_id=correlation_id,
            description=f"{len(line_ids)} statement line(s) reconciled",
            details={
                "line_ids": [str(line_id) for line_id in line_ids],
                "matched_transaction_id": (
                    str(matched_transaction_id) if matched_transaction_id else None
                ),
            },
            actor_id=actor_id,
            is_user_action=True,
        )

    @staticmethod
    def lines_unreconciled(
        line_ids: list[UUID],
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINES_UNRECONCILED,
            entity_type="statement_line",
            entity_id=str(line_ids[0]) if len(line_ids) == 1 else None,
            correlation_id=correlation_id,
            description=f"{len(line_ids)} statement line(s) returned to pending",
            details={
                "line_ids": [str(line_id) for line_id in line_ids],
            },
            actor_id=actor_id,
            is_user_action=True,
        )

    @staticmethod
    def transaction_posted(
        transaction_id: UUID,
        line_id: UUID,
        kind: str,
        amount: str,
        actor_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_POSTED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Transaction posted from statement line: {kind} {amount}",
            details={
                "statement_line_id": str(line_id),
                "kind": kind,
                "amount": amount,
            },
            actor_id=actor_id,
            is_user_action=True,
        )

    @staticmethod
    def lines_discarded(
        line_ids: list[UUID],
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINES_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="statement_line",
            entity_id=str(line_ids[0]) if len(line_ids) == 1 else None,
            correlation_id=correlation_id,
            description=f"{len(line_ids)} statement line(s) permanently deleted",
            details={
                "line_ids": [str(line_id) for line_id in line_ids],
            },
            actor_id=actor_id,
            is_user_action=True,
        )

    @staticmethod
    def transition_rejected(
        operation: str,
        issues: list[dict],
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSITION_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation} rejected with {len(issues)} issue(s)",
            details={
                "operation": operation,
                "issues": issues,
            },
            actor_id=actor_id,
            is_user_action=True,
        )

    @staticmethod
    def transition_failed(
        operation: str,
        succeeded_count: int,
        failed_line_id: Optional[UUID],
        error_message: str,
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSITION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="statement_line",
            entity_id=str(failed_line_id) if failed_line_id else None,
            correlation_id=correlation_id,
            description=f"{operation} stopped after {succeeded_count} line(s)",
            error_message=error_message,
            details={
                "operation": operation,
                "succeeded_count": succeeded_count,
            },
            actor_id=actor_id,
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
