"""
Main Orchestrator for Bank Reconciler

This module ties together all the components and defines the
end-to-end flows for:
1. Statement Import (file → decode → bank check → dedup → persist)
2. Reconciliation (process → human review → commit a transition)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is reconciled without an explicit user action
- Preconditions are checked for the whole selection before any write
- Success is reported only after the store confirmed it
- Every step is audited

Transitions are applied one line at a time in selection order. The
store offers no multi-line transaction, so a failure mid-batch leaves
earlier lines applied; the error says exactly how far the batch got.
"""

from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Iterable, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from bank_reconciler.audit import AuditLogger, configure_logging, create_correlation_id
from bank_reconciler.config import get_settings
from bank_reconciler.matching import MatchingEngine
from bank_reconciler.models.statement import (
    BankMatchCheck,
    CandidateSuggestion,
    DecodedStatement,
    DecodedStatementLine,
    ImportResult,
    LedgerTransaction,
    MatchProposal,
    NewStatementLine,
    NewTransaction,
    SelectionSummary,
    StatementLine,
    StatementLineStatus,
    TransactionKind,
    TransactionStatus,
    TransitionOperation,
    TransitionResult,
    TransitionValidationResult,
)
from bank_reconciler.services.notifications import (
    STATEMENT_LINES_SCOPE,
    TRANSACTIONS_SCOPE,
    LogNotificationSink,
    Notification,
    NotificationSink,
)
from bank_reconciler.services.statement import (
    ParseError,
    StatementFileParser,
    check_bank_match,
)
from bank_reconciler.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsMembershipStorage,
    GoogleSheetsStatementLineStorage,
    GoogleSheetsTransactionStorage,
    InMemoryMembershipStorage,
    InMemoryStatementLineStorage,
    InMemoryTransactionStorage,
    MembershipStorageInterface,
    StatementLineStorageInterface,
    StorageError,
    TransactionStorageInterface,
)
from bank_reconciler.validation import InvalidTransitionError, ReconciliationValidator


logger = structlog.get_logger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class StatementImportError(Exception):
    """The store rejected an import. Nothing is reported as inserted."""
    pass


class OperationInProgressError(Exception):
    """A batch transition is already running for this flow."""
    pass


class BatchTransitionError(Exception):
    """
    A batch transition stopped on a store failure.

    Lines before the failing one stay applied. The original store error
    is chained as __cause__.
    """

    def __init__(
        self,
        operation: TransitionOperation,
        succeeded_count: int,
        failed_line_id: UUID,
        message: str,
        created_transaction_ids: Optional[list[UUID]] = None,
    ):
        self.operation = operation
        self.succeeded_count = succeeded_count
        self.failed_line_id = failed_line_id
        self.created_transaction_ids = created_transaction_ids or []
        super().__init__(
            f"{operation.value} failed on statement line {failed_line_id} "
            f"after {succeeded_count} line(s): {message}"
        )


# =============================================================================
# STATEMENT IMPORT
# =============================================================================

class StatementImportFlow:
    """
    Orchestrates importing a statement file into an account.

    Flow:
    1. Parse → decode the file, drop unusable records
    2. Check → compare the file's bank with the account's bank (warning only)
    3. Import → resolve organization, skip lines already stored, persist the rest

    Lines are always stored PENDING. Import never reconciles anything.
    """

    def __init__(
        self,
        line_storage: StatementLineStorageInterface,
        membership_storage: MembershipStorageInterface,
        parser: Optional[StatementFileParser] = None,
        notifier: Optional[NotificationSink] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._line_storage = line_storage
        self._membership_storage = membership_storage
        self._parser = parser or StatementFileParser()
        self._notifier = notifier or LogNotificationSink()
        self._audit_logger = audit_logger

    async def parse_file(
        self,
        raw: Union[bytes, str],
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> DecodedStatement:
        """
        Decode an uploaded statement file.

        Raises:
            ParseError: Unsupported file or no usable transactions
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            statement = self._parser.parse(raw, filename)
        except ParseError as e:
            if self._audit_logger:
                await self._audit_logger.log_statement_parse_failed(
                    filename=filename,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            self._notifier.notify(Notification(
                operation="parse",
                level="error",
                title="Could not read statement file",
                message=str(e),
            ))
            raise

        if self._audit_logger:
            await self._audit_logger.log_statement_parsed(
                filename=filename,
                line_count=statement.line_count,
                discarded_count=statement.discarded_count,
                bank_id=statement.bank_info.bank_id,
                correlation_id=correlation_id,
            )

        return statement

    def check_bank(
        self,
        statement: DecodedStatement,
        account_bank_name: Optional[str],
    ) -> BankMatchCheck:
        """
        Warn when the file comes from a different bank than the account's.

        Never blocks the import; the user decides.
        """
        check = check_bank_match(statement.bank_info, account_bank_name)
        if check.matches is False:
            self._notifier.notify(Notification(
                operation="import",
                level="warning",
                title="Statement bank differs from account bank",
                message=(
                    f"The file is from {check.file_bank_name} but the account "
                    f"is at {check.account_bank_name}"
                ),
                details={"bank_code": check.bank_code},
            ))
        return check

    async def _resolve_organization(self, user_id: str) -> str:
        try:
            organization_id = await self._membership_storage.get_user_organization_id(user_id)
        except StorageError as e:
            raise StatementImportError(str(e)) from e
        if not organization_id:
            raise StatementImportError("Organization not found")
        return organization_id

    async def import_lines(
        self,
        account_id: str,
        lines: list[DecodedStatementLine],
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ImportResult:
        """
        Persist decoded lines that the account doesn't already have.

        A line is a duplicate when an existing line of the account has
        the same direction, date, amount and description. Duplicates
        within the incoming batch itself are all inserted. Lines without
        a usable date are counted as skipped.

        Raises:
            StatementImportError: Organization missing or store failure
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            organization_id = await self._resolve_organization(user_id)
            existing = await self._line_storage.list_statement_lines(account_id=account_id)
            existing_keys = {line.dedup_key for line in existing}

            to_insert = []
            skipped = 0
            for line in lines:
                key = line.dedup_key
                if key is None or key in existing_keys:
                    skipped += 1
                    continue
                to_insert.append(NewStatementLine(
                    organization_id=organization_id,
                    account_id=account_id,
                    user_id=user_id,
                    external_id=line.external_id,
                    date=line.posted_on,
                    amount=line.amount,
                    direction=line.direction,
                    description=line.memo,
                    memo=line.memo,
                    check_number=line.check_number,
                ))

            inserted = []
            if to_insert:
                inserted = await self._line_storage.insert_statement_lines(to_insert)
        except (StatementImportError, StorageError) as e:
            if self._audit_logger:
                await self._audit_logger.log_import_failed(
                    account_id=account_id,
                    error_message=str(e),
                    actor_id=user_id,
                    correlation_id=correlation_id,
                )
            self._notifier.notify(Notification(
                operation="import",
                level="error",
                title="Statement import failed",
                message=str(e),
            ))
            if isinstance(e, StatementImportError):
                raise
            raise StatementImportError(str(e)) from e

        result = ImportResult(
            account_id=account_id,
            inserted=len(inserted),
            skipped=skipped,
            inserted_line_ids=[line.id for line in inserted],
        )

        if self._audit_logger:
            await self._audit_logger.log_statement_imported(
                account_id=account_id,
                inserted=result.inserted,
                skipped=result.skipped,
                actor_id=user_id,
                correlation_id=correlation_id,
            )

        self._notifier.notify(Notification(
            operation="import",
            level="success",
            title="Statement imported",
            message=f"{result.inserted} new line(s), {result.skipped} skipped",
            details={"inserted": result.inserted, "skipped": result.skipped},
        ))
        self._notifier.invalidate(STATEMENT_LINES_SCOPE, TRANSACTIONS_SCOPE)

        return result

    async def import_file(
        self,
        raw: Union[bytes, str],
        filename: str,
        account_id: str,
        user_id: str,
        account_bank_name: Optional[str] = None,
    ) -> ImportResult:
        """Parse, check and import a statement file under one correlation id."""
        correlation_id = create_correlation_id()
        statement = await self.parse_file(raw, filename, correlation_id=correlation_id)
        self.check_bank(statement, account_bank_name)
        return await self.import_lines(
            account_id=account_id,
            lines=statement.lines,
            user_id=user_id,
            correlation_id=correlation_id,
        )


# =============================================================================
# RECONCILIATION
# =============================================================================

class ReconciliationFlow:
    """
    Orchestrates match proposals and state transitions.

    Flow:
    1. Process → propose matches for the account's pending lines (advisory)
    2. Review → the user accepts, overrides or rejects (outside this module)
    3. Commit → reconcile / unreconcile / post and reconcile / discard

    Only one transition batch may run at a time per flow.
    """

    def __init__(
        self,
        line_storage: StatementLineStorageInterface,
        transaction_storage: TransactionStorageInterface,
        engine: Optional[MatchingEngine] = None,
        validator: Optional[ReconciliationValidator] = None,
        notifier: Optional[NotificationSink] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._line_storage = line_storage
        self._transaction_storage = transaction_storage
        self._engine = engine or MatchingEngine()
        self._validator = validator or ReconciliationValidator()
        self._notifier = notifier or LogNotificationSink()
        self._audit_logger = audit_logger
        self._processing = False

    @property
    def is_processing(self) -> bool:
        """True while a transition batch is in flight."""
        return self._processing

    @asynccontextmanager
    async def _exclusive(self):
        if self._processing:
            raise OperationInProgressError("Another operation is still in progress")
        self._processing = True
        try:
            yield
        finally:
            self._processing = False

    # -------------------------------------------------------------------------
    # Proposals
    # -------------------------------------------------------------------------

    async def process(
        self,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> dict[UUID, MatchProposal]:
        """
        Propose matches for every pending line of an account.

        Reads a snapshot from the store and persists nothing.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            lines = await self._line_storage.list_statement_lines(account_id=account_id)
            transactions = await self._transaction_storage.list_transactions(
                account_id=account_id,
                status=TransactionStatus.PENDING,
            )
        except StorageError as e:
            await self._report_read_failure("process", e, correlation_id, {"account_id": account_id})
            raise

        proposals = self._engine.propose_matches(lines, transactions)

        if self._audit_logger:
            await self._audit_logger.log_matches_proposed(
                account_id=account_id,
                line_count=len(proposals),
                linked_count=sum(1 for p in proposals.values() if p.is_linked),
                candidate_count=len(transactions),
                correlation_id=correlation_id,
            )

        return proposals

    async def suggest_candidates(
        self,
        line: StatementLine,
        limit: Optional[int] = None,
    ) -> list[CandidateSuggestion]:
        """Ranked candidates for one line, from the account's current pool."""
        lines = await self._line_storage.list_statement_lines(account_id=line.account_id)
        transactions = await self._transaction_storage.list_transactions(
            account_id=line.account_id,
            status=TransactionStatus.PENDING,
        )
        pool = self._engine.candidate_pool(lines, transactions, account_id=line.account_id)
        return self._engine.suggest_candidates(line, pool, limit=limit)

    def summarize_selection(
        self,
        lines: list[StatementLine],
        transactions: list[LedgerTransaction],
    ) -> SelectionSummary:
        return self._engine.summarize_selection(lines, transactions)

    def can_reconcile(
        self,
        lines: list[StatementLine],
        proposals: dict[UUID, MatchProposal],
        selected_transaction_ids: Iterable[UUID] = (),
    ) -> bool:
        return self._validator.can_reconcile(lines, proposals, list(selected_transaction_ids))

    async def _report_read_failure(
        self,
        operation: str,
        error: StorageError,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=f"{operation}_failed",
                error_message=str(error),
                details=details,
                correlation_id=correlation_id,
            )
        self._notifier.notify(Notification(
            operation=operation,
            level="error",
            title="Could not read from the record store",
            message=str(error),
        ))

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def _reload(
        self,
        operation: TransitionOperation,
        lines: list[StatementLine],
        correlation_id: UUID,
    ) -> tuple[list[StatementLine], list[UUID]]:
        """
        Current stored state of the selected lines.

        Preconditions are checked against the store, never against the
        caller's copies, so a selection submitted twice is refused the
        second time.

        Returns:
            (stored lines in selection order, ids the store no longer has)
        """
        current: list[StatementLine] = []
        missing: list[UUID] = []
        try:
            for line in lines:
                stored = await self._line_storage.get_statement_line(line.id)
                if stored is None:
                    missing.append(line.id)
                else:
                    current.append(stored)
        except StorageError as e:
            await self._report_read_failure(operation.value, e, correlation_id)
            raise
        return current, missing

    async def _available_transactions(
        self,
        lines: list[StatementLine],
        correlation_id: UUID,
    ) -> dict[str, set[UUID]]:
        """Ids of the current candidate pool of every account in the selection."""
        available: dict[str, set[UUID]] = {}
        try:
            for account_id in {line.account_id for line in lines}:
                account_lines = await self._line_storage.list_statement_lines(account_id=account_id)
                transactions = await self._transaction_storage.list_transactions(
                    account_id=account_id,
                    status=TransactionStatus.PENDING,
                )
                pool = self._engine.candidate_pool(account_lines, transactions, account_id=account_id)
                available[account_id] = {transaction.id for transaction in pool}
        except StorageError as e:
            await self._report_read_failure(TransitionOperation.RECONCILE.value, e, correlation_id)
            raise
        return available

    async def _validate(
        self,
        operation: TransitionOperation,
        lines: list[StatementLine],
        transaction_ids: list[UUID],
        missing_line_ids: list[UUID],
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> TransitionValidationResult:
        result = self._validator.check(operation, lines, transaction_ids, missing_line_ids)
        if result.has_errors:
            await self._reject(result, actor_id, correlation_id)
        return result

    async def _reject(
        self,
        result: TransitionValidationResult,
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Audit and report a refused transition, then raise."""
        operation = result.operation
        if self._audit_logger:
            await self._audit_logger.log_transition_rejected(
                operation=operation.value,
                issues=[issue.model_dump(mode="json") for issue in result.issues],
                actor_id=actor_id,
                correlation_id=correlation_id,
            )
        self._notifier.notify(Notification(
            operation=operation.value,
            level="error",
            title="Action not allowed",
            message=self._validator.get_user_friendly_summary(result),
        ))
        raise InvalidTransitionError(result)

    async def _run_batch(
        self,
        operation: TransitionOperation,
        lines: list[StatementLine],
        step: Callable[[StatementLine], Awaitable[None]],
        actor_id: Optional[str],
        correlation_id: UUID,
        created: Optional[list[UUID]] = None,
    ) -> TransitionResult:
        """
        Apply `step` to each line in order, stopping at the first store failure.

        Steps that create transactions append their ids to `created`.
        """
        done: list[UUID] = []
        created = created if created is not None else []

        for line in lines:
            try:
                await step(line)
            except StorageError as e:
                logger.warning(
                    "transition_batch_failed",
                    operation=operation.value,
                    succeeded=len(done),
                    failed_line_id=str(line.id),
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_transition_failed(
                        operation=operation.value,
                        succeeded_count=len(done),
                        failed_line_id=line.id,
                        error_message=str(e),
                        actor_id=actor_id,
                        correlation_id=correlation_id,
                    )
                self._notifier.notify(Notification(
                    operation=operation.value,
                    level="error",
                    title="Operation stopped",
                    message=str(e),
                    details={
                        "succeeded_count": len(done),
                        "failed_line_id": str(line.id),
                    },
                ))
                if done or created:
                    self._notifier.invalidate(STATEMENT_LINES_SCOPE, TRANSACTIONS_SCOPE)
                raise BatchTransitionError(
                    operation=operation,
                    succeeded_count=len(done),
                    failed_line_id=line.id,
                    message=str(e),
                    created_transaction_ids=created,
                ) from e

            done.append(line.id)

        self._notifier.invalidate(STATEMENT_LINES_SCOPE, TRANSACTIONS_SCOPE)

        return TransitionResult(
            operation=operation,
            processed_count=len(done),
            line_ids=done,
            created_transaction_ids=created,
        )

    async def reconcile(
        self,
        lines: list[StatementLine],
        transaction_ids: Iterable[UUID] = (),
        acting_user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransitionResult:
        """
        Mark pending lines as reconciled.

        Every line is linked to the first selected transaction, if any.
        A line may be reconciled without a transaction (manual adjustment).

        Raises:
            OperationInProgressError: Another batch is running
            InvalidTransitionError: A line is not pending (nothing written)
            BatchTransitionError: Store failure mid-batch
        """
        correlation_id = correlation_id or create_correlation_id()
        transaction_ids = list(transaction_ids)
        operation = TransitionOperation.RECONCILE

        async with self._exclusive():
            lines, missing = await self._reload(operation, lines, correlation_id)
            await self._validate(
                operation, lines, transaction_ids, missing, acting_user_id, correlation_id
            )
            matched_transaction_id = transaction_ids[0] if transaction_ids else None

            async def step(line: StatementLine) -> None:
                await self._line_storage.update_statement_line_status(
                    line.id,
                    StatementLineStatus.RECONCILED,
                    matched_transaction_id=matched_transaction_id,
                    reconciled_by=acting_user_id,
                )

            result = await self._run_batch(operation, lines, step, acting_user_id, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_lines_reconciled(
                line_ids=result.line_ids,
                matched_transaction_id=matched_transaction_id,
                actor_id=acting_user_id,
                correlation_id=correlation_id,
            )
        self._notifier.notify(Notification(
            operation=operation.value,
            level="success",
            title="Reconciliation complete",
            message=f"{result.processed_count} line(s) reconciled",
        ))
        return result

    async def accept_proposals(
        self,
        lines: list[StatementLine],
        proposals: dict[UUID, MatchProposal],
        acting_user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransitionResult:
        """
        Reconcile each line against its own proposed transaction.

        Raises:
            OperationInProgressError: Another batch is running
            InvalidTransitionError: A line is not pending or has no linked proposal
            BatchTransitionError: Store failure mid-batch
        """
        correlation_id = correlation_id or create_correlation_id()
        operation = TransitionOperation.RECONCILE

        async with self._exclusive():
            lines, missing = await self._reload(operation, lines, correlation_id)
            available = await self._available_transactions(lines, correlation_id)
            validation = self._validator.check_accept_proposals(
                lines, proposals, available, missing_line_ids=missing
            )
            if validation.has_errors:
                await self._reject(validation, acting_user_id, correlation_id)

            async def step(line: StatementLine) -> None:
                await self._line_storage.update_statement_line_status(
                    line.id,
                    StatementLineStatus.RECONCILED,
                    matched_transaction_id=proposals[line.id].matched_transaction_id,
                    reconciled_by=acting_user_id,
                )

            result = await self._run_batch(operation, lines, step, acting_user_id, correlation_id)

        if self._audit_logger:
            for line in lines:
                await self._audit_logger.log_lines_reconciled(
                    line_ids=[line.id],
                    matched_transaction_id=proposals[line.id].matched_transaction_id,
                    actor_id=acting_user_id,
                    correlation_id=correlation_id,
                )
        self._notifier.notify(Notification(
            operation=operation.value,
            level="success",
            title="Reconciliation complete",
            message=f"{result.processed_count} proposed match(es) accepted",
        ))
        return result

    async def unreconcile(
        self,
        lines: list[StatementLine],
        acting_user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransitionResult:
        """
        Return reconciled lines to pending.

        The link to the matched transaction is kept as history.

        Raises:
            OperationInProgressError: Another batch is running
            InvalidTransitionError: A line is not reconciled (nothing written)
            BatchTransitionError: Store failure mid-batch
        """
        correlation_id = correlation_id or create_correlation_id()
        operation = TransitionOperation.UNRECONCILE

        async with self._exclusive():
            lines, missing = await self._reload(operation, lines, correlation_id)
            await self._validate(operation, lines, [], missing, acting_user_id, correlation_id)

            async def step(line: StatementLine) -> None:
                await self._line_storage.update_statement_line_status(
                    line.id,
                    StatementLineStatus.PENDING,
                )

            result = await self._run_batch(operation, lines, step, acting_user_id, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_lines_unreconciled(
                line_ids=result.line_ids,
                actor_id=acting_user_id,
                correlation_id=correlation_id,
            )
        self._notifier.notify(Notification(
            operation=operation.value,
            level="success",
            title="Reconciliation undone",
            message=f"{result.processed_count} line(s) returned to pending",
        ))
        return result

    async def post_and_reconcile(
        self,
        lines: list[StatementLine],
        selected_transaction_ids: Iterable[UUID] = (),
        acting_user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransitionResult:
        """
        Record a ledger transaction for each line, then reconcile the line against it.

        For movements the bank shows but the ledger never recorded.
        Credits become income, debits become expenses. The new
        transactions are created completed.

        Raises:
            OperationInProgressError: Another batch is running
            InvalidTransitionError: A line is not pending, or transactions are selected
            BatchTransitionError: Store failure mid-batch
        """
        correlation_id = correlation_id or create_correlation_id()
        selected_transaction_ids = list(selected_transaction_ids)
        operation = TransitionOperation.POST_AND_RECONCILE

        async with self._exclusive():
            lines, missing = await self._reload(operation, lines, correlation_id)
            await self._validate(
                operation, lines, selected_transaction_ids, missing, acting_user_id, correlation_id
            )

            posted: list[UUID] = []

            async def step(line: StatementLine) -> None:
                kind = TransactionKind.for_direction(line.direction)
                transaction = await self._transaction_storage.create_transaction(
                    NewTransaction(
                        organization_id=line.organization_id,
                        account_id=line.account_id,
                        user_id=acting_user_id or line.user_id,
                        description=line.description,
                        amount=line.amount,
                        kind=kind,
                        date=line.date,
                        status=TransactionStatus.COMPLETED,
                    )
                )
                posted.append(transaction.id)
                if self._audit_logger:
                    await self._audit_logger.log_transaction_posted(
                        transaction_id=transaction.id,
                        line_id=line.id,
                        kind=kind.value,
                        amount=str(line.amount),
                        actor_id=acting_user_id,
                        correlation_id=correlation_id,
                    )
                await self._line_storage.update_statement_line_status(
                    line.id,
                    StatementLineStatus.RECONCILED,
                    matched_transaction_id=transaction.id,
                    reconciled_by=acting_user_id,
                )

            result = await self._run_batch(
                operation, lines, step, acting_user_id, correlation_id, created=posted
            )

        if self._audit_logger:
            await self._audit_logger.log_lines_reconciled(
                line_ids=result.line_ids,
                matched_transaction_id=None,
                actor_id=acting_user_id,
                correlation_id=correlation_id,
            )
        self._notifier.notify(Notification(
            operation=operation.value,
            level="success",
            title="Transactions posted and reconciled",
            message=f"{result.processed_count} transaction(s) created",
            details={"transaction_ids": [str(tid) for tid in result.created_transaction_ids]},
        ))
        return result

    async def discard(
        self,
        lines: list[StatementLine],
        acting_user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransitionResult:
        """
        Permanently delete statement lines.

        Raises:
            OperationInProgressError: Another batch is running
            InvalidTransitionError: Empty selection
            BatchTransitionError: A line is missing or the store failed
        """
        correlation_id = correlation_id or create_correlation_id()
        operation = TransitionOperation.DISCARD

        async with self._exclusive():
            await self._validate(operation, lines, [], [], acting_user_id, correlation_id)

            async def step(line: StatementLine) -> None:
                await self._line_storage.delete_statement_line(line.id)

            result = await self._run_batch(operation, lines, step, acting_user_id, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_lines_discarded(
                line_ids=result.line_ids,
                actor_id=acting_user_id,
                correlation_id=correlation_id,
            )
        self._notifier.notify(Notification(
            operation=operation.value,
            level="success",
            title="Statement lines deleted",
            message=f"{result.processed_count} line(s) deleted",
        ))
        return result


def create_app_components(
    use_storage: bool = True,
    notifier: Optional[NotificationSink] = None,
) -> tuple[StatementImportFlow, ReconciliationFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to run
                    on in-memory storage.
        notifier: Where operation outcomes go. Defaults to the log.

    Returns:
        (statement_import_flow, reconciliation_flow, sheets_client)
    """
    app_settings = get_settings().app
    configure_logging("DEBUG" if app_settings.debug_mode else app_settings.log_level)

    sheets_client = None
    audit_logger = AuditLogger()  # Local-only logging

    line_storage: StatementLineStorageInterface = InMemoryStatementLineStorage()
    transaction_storage: TransactionStorageInterface = InMemoryTransactionStorage()
    membership_storage: MembershipStorageInterface = InMemoryMembershipStorage()

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            line_storage = GoogleSheetsStatementLineStorage(sheets_client)
            transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
            membership_storage = GoogleSheetsMembershipStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except (StorageError, ValidationError) as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    logger.info(
        "components_created",
        environment=app_settings.app_environment,
        storage="google_sheets" if sheets_client else "memory",
    )

    notifier = notifier or LogNotificationSink()

    import_flow = StatementImportFlow(
        line_storage=line_storage,
        membership_storage=membership_storage,
        notifier=notifier,
        audit_logger=audit_logger,
    )

    reconciliation_flow = ReconciliationFlow(
        line_storage=line_storage,
        transaction_storage=transaction_storage,
        notifier=notifier,
        audit_logger=audit_logger,
    )

    return import_flow, reconciliation_flow, sheets_client
