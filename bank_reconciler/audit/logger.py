"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of who reconciled, unreconciled or deleted what
2. Debugging capability
3. Users can see the history of an account's reconciliation
4. Compliance readiness

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (never breaks a flow if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from bank_reconciler.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from bank_reconciler.services.storage import AuditStorageInterface


_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
    structlog.processors.JSONRenderer()
]

# Configure structlog for local logging
structlog.configure(
    processors=_PROCESSORS,
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """
    Route structured logs to stderr at the given level.

    Call once at application start. Library use (and tests) can skip it.
    """
    logging.basicConfig(format="%(message)s", level=log_level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit persistence must never break the flow being audited
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_statement_parsed(
        self,
        filename: str,
        line_count: int,
        discarded_count: int,
        bank_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log a statement file decoded successfully."""
        event = AuditEventBuilder.statement_parsed(
            filename=filename,
            line_count=line_count,
            discarded_count=discarded_count,
            bank_id=bank_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_statement_parse_failed(
        self,
        filename: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.statement_parse_failed(
            filename=filename,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_statement_imported(
        self,
        account_id: str,
        inserted: int,
        skipped: int,
        actor_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log import completion."""
        event = AuditEventBuilder.statement_imported(
            account_id=account_id,
            inserted=inserted,
            skipped=skipped,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_import_failed(
        self,
        account_id: str,
        error_message: str,
        actor_id: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.import_failed(
            account_id=account_id,
            error_message=error_message,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_matches_proposed(
        self,
        account_id: str,
        line_count: int,
        linked_count: int,
        candidate_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.matches_proposed(
            account_id=account_id,
            line_count=line_count,
            linked_count=linked_count,
            candidate_count=candidate_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_lines_reconciled(
        self,
        line_ids: list[UUID],
        matched_transaction_id: Optional[UUID],
        actor_id: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.lines_reconciled(
            line_ids=line_ids,
            matched_transaction_id=matched_transaction_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_lines_unreconciled(
        self,
        line_ids: list[UUID],
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.lines_unreconciled(
            line_ids=line_ids,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_posted(
        self,
        transaction_id: UUID,
        line_id: UUID,
        kind: str,
        amount: str,
        actor_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log a ledger transaction created from a statement line."""
        event = AuditEventBuilder.transaction_posted(
            transaction_id=transaction_id,
            line_id=line_id,
            kind=kind,
            amount=amount,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_lines_discarded(
        self,
        line_ids: list[UUID],
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.lines_discarded(
            line_ids=line_ids,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transition_rejected(
        self,
        operation: str,
        issues: list[dict],
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log a transition refused by its preconditions."""
        event = AuditEventBuilder.transition_rejected(
            operation=operation,
            issues=issues,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transition_failed(
        self,
        operation: str,
        succeeded_count: int,
        failed_line_id: Optional[UUID],
        error_message: str,
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log a batch transition that stopped on a store failure."""
        event = AuditEventBuilder.transition_failed(
            operation=operation,
            succeeded_count=succeeded_count,
            failed_line_id=failed_line_id,
            error_message=error_message,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a statement import
    or a batch reconcile). Pass it through all subsequent operations.
    """
    return uuid4()
