"""Tests for transition precondition checks."""

import pytest
from uuid import uuid4

from bank_reconciler.models.statement import (
    MatchAction,
    MatchProposal,
    StatementLineStatus,
    TransitionOperation,
)
from bank_reconciler.validation import InvalidTransitionError, ReconciliationValidator


@pytest.fixture
def validator():
    return ReconciliationValidator()


def linked(line_id):
    return MatchProposal(
        statement_line_id=line_id,
        action=MatchAction.LINKED,
        matched_transaction_id=uuid4(),
        match_score=80,
    )


def unmatched(line_id):
    return MatchProposal(statement_line_id=line_id, action=MatchAction.UNMATCHED)


class TestReconcileChecks:
    """Tests for reconcile preconditions."""

    def test_pending_lines_allowed(self, validator, make_line):
        result = validator.check_reconcile([make_line()], [uuid4()])
        assert result.is_allowed
        assert result.issues == []

    def test_reconciled_line_rejected(self, validator, make_line):
        reconciled = make_line(status=StatementLineStatus.RECONCILED)
        result = validator.check_reconcile([make_line(), reconciled], [uuid4()])
        assert result.has_errors
        assert [issue.line_id for issue in result.issues] == [reconciled.id]

    def test_every_offending_line_is_reported(self, validator, make_line):
        lines = [make_line(status=StatementLineStatus.IGNORED) for _ in range(3)]
        assert validator.check_reconcile(lines).error_count == 3

    def test_without_transaction_is_a_warning(self, validator, make_line):
        result = validator.check_reconcile([make_line()])
        assert result.is_allowed
        assert result.issues[0].issue_type == "no_transaction"

    def test_empty_selection(self, validator):
        assert validator.check_reconcile([], [uuid4()]).has_errors

    def test_duplicate_selection(self, validator, make_line):
        line = make_line()
        result = validator.check_reconcile([line, line], [uuid4()])
        assert any(issue.issue_type == "duplicate_line" for issue in result.issues)


class TestOtherChecks:
    """Tests for unreconcile, post and reconcile, and discard."""

    def test_unreconcile_requires_reconciled(self, validator, make_line):
        assert validator.check_unreconcile([make_line()]).has_errors
        assert validator.check_unreconcile(
            [make_line(status=StatementLineStatus.RECONCILED)]
        ).is_allowed

    def test_post_requires_no_selected_transactions(self, validator, make_line):
        result = validator.check_post_and_reconcile([make_line()], [uuid4()])
        assert result.has_errors
        assert result.issues[0].issue_type == "transactions_selected"

    def test_post_requires_pending(self, validator, make_line):
        result = validator.check_post_and_reconcile([make_line(status=StatementLineStatus.RECONCILED)])
        assert result.has_errors

    def test_discard_any_status(self, validator, make_line):
        result = validator.check_discard(
            [make_line(), make_line(status=StatementLineStatus.RECONCILED)]
        )
        assert result.is_allowed
        assert result.issues[0].issue_type == "discarding_reconciled"

    def test_accept_proposals_requires_linked(self, validator, make_line):
        a, b = make_line(), make_line()
        result = validator.check_accept_proposals([a, b], {a.id: linked(a.id), b.id: unmatched(b.id)})
        assert result.error_count == 1
        assert result.issues[0].line_id == b.id

    def test_accept_proposals_one_transaction_per_selection(self, validator, make_line):
        a, b = make_line(), make_line()
        shared = linked(a.id)
        proposals = {
            a.id: shared,
            b.id: linked(b.id).model_copy(update={"matched_transaction_id": shared.matched_transaction_id}),
        }
        result = validator.check_accept_proposals([a, b], proposals)
        assert [issue.issue_type for issue in result.issues] == ["transaction_claimed_twice"]
        assert result.issues[0].line_id == b.id

    def test_accept_proposals_checks_current_pool(self, validator, make_line):
        a, b = make_line(), make_line(account_id="acct-2")
        proposals = {a.id: linked(a.id), b.id: linked(b.id)}
        available = {
            "acct-1": {proposals[a.id].matched_transaction_id},
            "acct-2": {proposals[a.id].matched_transaction_id},
        }
        result = validator.check_accept_proposals([a, b], proposals, available)
        assert result.error_count == 1
        assert result.issues[0].issue_type == "transaction_unavailable"
        assert result.issues[0].line_id == b.id

    def test_missing_lines_are_errors(self, validator):
        gone = uuid4()
        result = validator.check(TransitionOperation.UNRECONCILE, [], missing_line_ids=[gone])
        assert [issue.issue_type for issue in result.issues] == ["missing_line"]
        assert result.issues[0].line_id == gone

    def test_discard_ignores_missing_lines(self, validator, make_line):
        result = validator.check(TransitionOperation.DISCARD, [make_line()], missing_line_ids=[uuid4()])
        assert result.is_allowed

    def test_ensure_raises(self, validator, make_line):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validator.ensure(TransitionOperation.UNRECONCILE, [make_line()])
        assert exc_info.value.operation == TransitionOperation.UNRECONCILE
        assert "expected reconciled" in str(exc_info.value)

    def test_ensure_returns_result(self, validator, make_line):
        result = validator.ensure(TransitionOperation.DISCARD, [make_line()])
        assert result.operation == TransitionOperation.DISCARD


class TestCanReconcile:
    """Tests for gating the Reconcile action."""

    def test_all_lines_proposed(self, validator, make_line):
        a, b = make_line(), make_line()
        assert validator.can_reconcile([a, b], {a.id: linked(a.id), b.id: linked(b.id)})

    def test_missing_proposal(self, validator, make_line):
        a, b = make_line(), make_line()
        assert not validator.can_reconcile([a, b], {a.id: linked(a.id), b.id: unmatched(b.id)})

    def test_human_choice_overrides(self, validator, make_line):
        line = make_line()
        assert validator.can_reconcile([line], {}, [uuid4()])

    def test_non_pending_line(self, validator, make_line):
        line = make_line(status=StatementLineStatus.RECONCILED)
        assert not validator.can_reconcile([line], {line.id: linked(line.id)}, [uuid4()])

    def test_empty_selection(self, validator):
        assert not validator.can_reconcile([], {}, [uuid4()])


class TestSummary:
    def test_ready(self, validator, make_line):
        result = validator.check_reconcile([make_line()], [uuid4()])
        assert validator.get_user_friendly_summary(result) == "✅ Ready to apply."

    def test_errors_listed(self, validator, make_line):
        result = validator.check_unreconcile([make_line()])
        summary = validator.get_user_friendly_summary(result)
        assert "cannot be applied" in summary
        assert "expected reconciled" in summary
