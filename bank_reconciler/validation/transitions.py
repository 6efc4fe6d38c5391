"""
Transition Precondition Checks

DESIGN DECISION: Preconditions are checked for the WHOLE selection
before the first write. If any selected line is in the wrong state,
nothing is touched and every offending line is reported, not only
the first one.

Issue severities follow the rest of the system:
- error:   the transition is not allowed
- warning: allowed, but the user should look twice
- info:    purely informational

IMPORTANT: Validation NEVER fixes a selection silently.
It reports issues for the user to resolve.
"""

from typing import Iterable, Optional
from uuid import UUID

from bank_reconciler.models.statement import (
    MatchProposal,
    StatementLine,
    StatementLineStatus,
    TransitionOperation,
    TransitionValidationResult,
    ValidationIssue,
)


class InvalidTransitionError(Exception):
    """A transition's preconditions do not hold. No write was performed."""

    def __init__(self, result: TransitionValidationResult):
        self.result = result
        self.operation = result.operation
        messages = [issue.message for issue in result.issues if issue.severity == "error"]
        super().__init__(
            f"Cannot {result.operation.value.replace('_', ' ')}: " + "; ".join(messages)
        )


class ReconciliationValidator:
    """
    Checks whether a transition may be applied to a selection of lines.

    Stateless: the caller passes the current snapshot of the lines.
    """

    def _selection_issues(
        self,
        lines: list[StatementLine],
        missing_line_ids: Iterable[UUID] = (),
    ) -> list[ValidationIssue]:
        """Empty, vanished and repeated selections."""
        missing_line_ids = list(missing_line_ids)
        if not lines and not missing_line_ids:
            return [ValidationIssue(
                field="selection",
                issue_type="empty_selection",
                message="No statement lines selected",
                severity="error",
                suggested_fix="Select at least one statement line",
            )]

        issues = [
            ValidationIssue(
                field="selection",
                issue_type="missing_line",
                message=f"Statement line {line_id} no longer exists",
                severity="error",
                line_id=line_id,
                suggested_fix="Reload the statement and select again",
            )
            for line_id in missing_line_ids
        ]
        issues.extend(self._duplicates(lines))
        return issues

    def _require_status(
        self,
        lines: list[StatementLine],
        required: StatementLineStatus,
    ) -> list[ValidationIssue]:
        issues = []
        for line in lines:
            if line.status != required:
                issues.append(ValidationIssue(
                    field="status",
                    issue_type="invalid_status",
                    message=(
                        f"Statement line {line.id} is {line.status.value}, "
                        f"expected {required.value}"
                    ),
                    severity="error",
                    line_id=line.id,
                ))
        return issues

    def _duplicates(self, lines: list[StatementLine]) -> list[ValidationIssue]:
        seen: set[UUID] = set()
        issues = []
        for line in lines:
            if line.id in seen:
                issues.append(ValidationIssue(
                    field="selection",
                    issue_type="duplicate_line",
                    message=f"Statement line {line.id} is selected more than once",
                    severity="error",
                    line_id=line.id,
                ))
            seen.add(line.id)
        return issues

    def check_reconcile(
        self,
        lines: list[StatementLine],
        transaction_ids: Iterable[UUID] = (),
        missing_line_ids: Iterable[UUID] = (),
    ) -> TransitionValidationResult:
        """Every line must be pending."""
        transaction_ids = list(transaction_ids)
        issues = self._selection_issues(lines, missing_line_ids)
        issues.extend(self._require_status(lines, StatementLineStatus.PENDING))

        if lines and not transaction_ids:
            issues.append(ValidationIssue(
                field="transaction_ids",
                issue_type="no_transaction",
                message="Lines will be reconciled without a linked transaction",
                severity="warning",
                suggested_fix="Select a transaction, or use post and reconcile to record one",
            ))
        if len(transaction_ids) > 1:
            issues.append(ValidationIssue(
                field="transaction_ids",
                issue_type="extra_transactions",
                message=(
                    f"{len(transaction_ids)} transactions selected; "
                    "only the first one is linked"
                ),
                severity="info",
            ))

        return TransitionValidationResult(
            operation=TransitionOperation.RECONCILE,
            issues=issues,
        )

    def check_accept_proposals(
        self,
        lines: list[StatementLine],
        proposals: dict[UUID, MatchProposal],
        available_transaction_ids: Optional[dict[str, set[UUID]]] = None,
        missing_line_ids: Iterable[UUID] = (),
    ) -> TransitionValidationResult:
        """
        Every line must be pending and have a linked proposal.

        Proposals are snapshots. When `available_transaction_ids` (the
        current candidate pool per account) is given, each proposed
        transaction must still be in its line's pool. A transaction can
        never be accepted for two lines of the same selection.
        """
        issues = self._selection_issues(lines, missing_line_ids)
        issues.extend(self._require_status(lines, StatementLineStatus.PENDING))

        claimed: set[UUID] = set()
        for line in lines:
            proposal = proposals.get(line.id)
            if proposal is None or not proposal.is_linked:
                issues.append(ValidationIssue(
                    field="proposal",
                    issue_type="no_proposal",
                    message=f"Statement line {line.id} has no proposed match",
                    severity="error",
                    line_id=line.id,
                    suggested_fix="Pick a transaction by hand and reconcile",
                ))
                continue

            transaction_id = proposal.matched_transaction_id
            if transaction_id in claimed:
                issues.append(ValidationIssue(
                    field="proposal",
                    issue_type="transaction_claimed_twice",
                    message=(
                        f"Transaction {transaction_id} is proposed for more "
                        f"than one selected line"
                    ),
                    severity="error",
                    line_id=line.id,
                ))
            claimed.add(transaction_id)

            if (
                available_transaction_ids is not None
                and transaction_id not in available_transaction_ids.get(line.account_id, set())
            ):
                issues.append(ValidationIssue(
                    field="proposal",
                    issue_type="transaction_unavailable",
                    message=(
                        f"Transaction {transaction_id} proposed for statement line "
                        f"{line.id} is no longer available"
                    ),
                    severity="error",
                    line_id=line.id,
                    suggested_fix="Process the account again to refresh proposals",
                ))

        return TransitionValidationResult(
            operation=TransitionOperation.RECONCILE,
            issues=issues,
        )

    def check_unreconcile(
        self,
        lines: list[StatementLine],
        missing_line_ids: Iterable[UUID] = (),
    ) -> TransitionValidationResult:
        """Every line must be reconciled."""
        issues = self._selection_issues(lines, missing_line_ids)
        issues.extend(self._require_status(lines, StatementLineStatus.RECONCILED))
        return TransitionValidationResult(
            operation=TransitionOperation.UNRECONCILE,
            issues=issues,
        )

    def check_post_and_reconcile(
        self,
        lines: list[StatementLine],
        selected_transaction_ids: Iterable[UUID] = (),
        missing_line_ids: Iterable[UUID] = (),
    ) -> TransitionValidationResult:
        """
        Every line must be pending and no ledger transaction may be selected.

        This operation is for movements the ledger never recorded; with a
        transaction selected the user wants a plain reconcile.
        """
        issues = self._selection_issues(lines, missing_line_ids)
        issues.extend(self._require_status(lines, StatementLineStatus.PENDING))

        if list(selected_transaction_ids):
            issues.append(ValidationIssue(
                field="transaction_ids",
                issue_type="transactions_selected",
                message="Post and reconcile requires no selected transactions",
                severity="error",
                suggested_fix="Clear the transaction selection or use reconcile instead",
            ))

        return TransitionValidationResult(
            operation=TransitionOperation.POST_AND_RECONCILE,
            issues=issues,
        )

    def check_discard(self, lines: list[StatementLine]) -> TransitionValidationResult:
        """Any line may be discarded. Reconciled lines get a warning."""
        issues = self._selection_issues(lines)
        for line in lines:
            if line.is_reconciled:
                issues.append(ValidationIssue(
                    field="status",
                    issue_type="discarding_reconciled",
                    message=f"Statement line {line.id} is reconciled and will be deleted",
                    severity="warning",
                    line_id=line.id,
                ))
        return TransitionValidationResult(
            operation=TransitionOperation.DISCARD,
            issues=issues,
        )

    def check(
        self,
        operation: TransitionOperation,
        lines: list[StatementLine],
        transaction_ids: Iterable[UUID] = (),
        missing_line_ids: Iterable[UUID] = (),
    ) -> TransitionValidationResult:
        """
        Dispatch to the operation's check.

        `missing_line_ids` are selected lines the store no longer has.
        Discard ignores them: deleting a vanished line fails in the store.
        """
        if operation == TransitionOperation.RECONCILE:
            return self.check_reconcile(lines, transaction_ids, missing_line_ids)
        if operation == TransitionOperation.UNRECONCILE:
            return self.check_unreconcile(lines, missing_line_ids)
        if operation == TransitionOperation.POST_AND_RECONCILE:
            return self.check_post_and_reconcile(lines, transaction_ids, missing_line_ids)
        return self.check_discard(lines)

    def ensure(
        self,
        operation: TransitionOperation,
        lines: list[StatementLine],
        transaction_ids: Iterable[UUID] = (),
    ) -> TransitionValidationResult:
        """
        Check preconditions and raise if the transition is not allowed.

        Raises:
            InvalidTransitionError: At least one error-level issue
        """
        result = self.check(operation, lines, transaction_ids)
        if result.has_errors:
            raise InvalidTransitionError(result)
        return result

    def can_reconcile(
        self,
        lines: list[StatementLine],
        proposals: dict[UUID, MatchProposal],
        selected_transaction_ids: Optional[Iterable[UUID]] = None,
    ) -> bool:
        """
        Whether the Reconcile action should be enabled for a selection.

        All selected lines must be pending, and each one must either
        have a linked proposal or the user must have picked a transaction.
        """
        if not lines or any(not line.is_pending for line in lines):
            return False
        if selected_transaction_ids and list(selected_transaction_ids):
            return True
        return all(
            proposals.get(line.id) is not None and proposals[line.id].is_linked
            for line in lines
        )

    def get_user_friendly_summary(self, result: TransitionValidationResult) -> str:
        """
        Summary of a validation result for display.
        """
        if not result.issues:
            return "✅ Ready to apply."

        lines = []
        errors = [issue for issue in result.issues if issue.severity == "error"]
        warnings = [issue for issue in result.issues if issue.severity == "warning"]

        if errors:
            lines.append("❌ This action cannot be applied:")
            for issue in errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for issue in warnings:
                lines.append(f"   • {issue.message}")

        if not errors:
            lines.append("")
            lines.append("You can still proceed.")

        return "\n".join(lines)
