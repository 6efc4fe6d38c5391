"""Tests for match scoring and the proposal engine."""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from bank_reconciler.config import MatchingSettings
from bank_reconciler.matching import (
    MatchingEngine,
    amount_points,
    date_points,
    description_points,
    score_candidate,
)
from bank_reconciler.models.statement import (
    MatchAction,
    StatementDirection,
    StatementLineStatus,
    TransactionKind,
    TransactionStatus,
)


DAY = date(2026, 1, 10)


class TestAmountPoints:
    """Tests for the amount signal."""

    def test_exact(self, matching_settings):
        assert amount_points(Decimal("100.00"), Decimal("100.00"), matching_settings) == 50

    def test_within_a_cent(self, matching_settings):
        assert amount_points(Decimal("100.00"), Decimal("100.005"), matching_settings) == 50

    def test_close(self, matching_settings):
        """Under 5% of the statement amount."""
        assert amount_points(Decimal("100.00"), Decimal("97.00"), matching_settings) == 25

    def test_far(self, matching_settings):
        assert amount_points(Decimal("100.00"), Decimal("90.00"), matching_settings) == 0

    def test_zero_statement_amount(self, matching_settings):
        assert amount_points(Decimal("0"), Decimal("5.00"), matching_settings) == 0


class TestDatePoints:
    """Tests for the date signal."""

    @pytest.mark.parametrize(
        "days,expected",
        [(0, 30), (1, 15), (-3, 15), (4, 5), (7, 5), (8, 0), (-30, 0)],
    )
    def test_distance(self, matching_settings, days, expected):
        assert date_points(DAY, DAY + timedelta(days=days), matching_settings) == expected


class TestDescriptionPoints:
    """Tests for the description signal."""

    def test_containment_either_direction(self, matching_settings):
        assert description_points("NETFLIX.COM", "Netflix", matching_settings) == 20
        assert description_points("Netflix", "NETFLIX.COM", matching_settings) == 20

    def test_word_fragments(self, matching_settings):
        """pix and joao overlap, recebido doesn't."""
        assert description_points("PIX RECEBIDO JOAO", "Pix Joao", matching_settings) == 10

    def test_word_points_are_capped(self, matching_settings):
        points = description_points("aaax bbbx cccx dddx", "aaa bbb ccc ddd", matching_settings)
        assert points == 15

    def test_short_words_never_count(self, matching_settings):
        assert description_points("pagamento de luz", "conta de agua", matching_settings) == 0

    def test_empty_description(self, matching_settings):
        assert description_points("", "anything", matching_settings) == 0
        assert description_points("anything", "   ", matching_settings) == 0


class TestScoreCandidate:
    """Tests for the combined score."""

    def test_total(self, make_line, make_transaction, matching_settings):
        breakdown = score_candidate(make_line(), make_transaction(), matching_settings)
        assert breakdown.amount_points == 50
        assert breakdown.date_points == 30
        assert breakdown.description_points == 10
        assert breakdown.total == 90

    def test_polarity_veto(self, make_line, make_transaction, matching_settings):
        """An expense never explains a credit, however similar."""
        line = make_line(direction=StatementDirection.CREDIT)
        expense = make_transaction(kind=TransactionKind.EXPENSE, description=line.description)
        assert score_candidate(line, expense, matching_settings) is None

    def test_income_never_explains_debit(self, make_line, make_transaction, matching_settings):
        line = make_line(direction=StatementDirection.DEBIT)
        assert score_candidate(line, make_transaction(), matching_settings) is None

    def test_transfer_explains_debit(self, make_line, make_transaction, matching_settings):
        line = make_line(direction=StatementDirection.DEBIT)
        transfer = make_transaction(kind=TransactionKind.TRANSFER)
        assert score_candidate(line, transfer, matching_settings) is not None

    def test_weights_come_from_settings(self, make_line, make_transaction):
        settings = MatchingSettings(exact_amount_points=40, same_day_points=40)
        breakdown = score_candidate(make_line(), make_transaction(), settings)
        assert breakdown.total == 90


class TestProposeMatches:
    """Tests for the greedy proposal pass."""

    @pytest.fixture
    def engine(self, matching_settings):
        return MatchingEngine(matching_settings)

    def test_links_best_candidate(self, engine, make_line, make_transaction):
        line = make_line()
        weak = make_transaction(on=DAY + timedelta(days=2))
        strong = make_transaction()
        proposals = engine.propose_matches([line], [weak, strong])
        proposal = proposals[line.id]
        assert proposal.action == MatchAction.LINKED
        assert proposal.matched_transaction_id == strong.id
        assert proposal.match_score == 90

    def test_polarity_veto_is_absolute(self, engine, make_line, make_transaction):
        """Credit 100.00 on day D never links to an expense of 100.00 on day D."""
        line = make_line(amount="100.00", direction=StatementDirection.CREDIT)
        expense = make_transaction(
            amount="100.00",
            kind=TransactionKind.EXPENSE,
            description=line.description,
        )
        proposal = engine.propose_matches([line], [expense])[line.id]
        assert proposal.action == MatchAction.UNMATCHED
        assert proposal.matched_transaction_id is None
        assert proposal.match_score == 0

    def test_below_threshold(self, engine, make_line, make_transaction):
        """25 + 15 + 0 stays under 50."""
        line = make_line(description="TED")
        candidate = make_transaction(amount="97.00", on=DAY + timedelta(days=2), description="Aluguel")
        proposal = engine.propose_matches([line], [candidate])[line.id]
        assert proposal.action == MatchAction.UNMATCHED

    def test_exactly_threshold_links(self, engine, make_line, make_transaction):
        line = make_line(description="TED")
        candidate = make_transaction(on=DAY + timedelta(days=30), description="Aluguel")
        proposal = engine.propose_matches([line], [candidate])[line.id]
        assert proposal.action == MatchAction.LINKED
        assert proposal.match_score == 50

    def test_one_to_one_consumption(self, engine, make_line, make_transaction):
        """Two lines wanting the same transaction: the first processed one wins."""
        first = make_line()
        second = make_line()
        transaction = make_transaction()
        proposals = engine.propose_matches([first, second], [transaction])
        assert proposals[first.id].matched_transaction_id == transaction.id
        assert proposals[second.id].action == MatchAction.UNMATCHED

    def test_second_line_gets_next_best(self, engine, make_line, make_transaction):
        first = make_line()
        second = make_line()
        best = make_transaction()
        next_best = make_transaction(on=DAY + timedelta(days=1))
        proposals = engine.propose_matches([first, second], [best, next_best])
        assert proposals[first.id].matched_transaction_id == best.id
        assert proposals[second.id].matched_transaction_id == next_best.id

    def test_order_dependence(self, engine, make_line, make_transaction):
        first = make_line()
        second = make_line()
        transaction = make_transaction()
        proposals = engine.propose_matches([second, first], [transaction])
        assert proposals[second.id].matched_transaction_id == transaction.id
        assert proposals[first.id].action == MatchAction.UNMATCHED

    def test_first_seen_wins_ties(self, engine, make_line, make_transaction):
        line = make_line()
        a = make_transaction()
        b = make_transaction()
        assert engine.propose_matches([line], [a, b])[line.id].matched_transaction_id == a.id
        assert engine.propose_matches([line], [b, a])[line.id].matched_transaction_id == b.id

    def test_deterministic(self, engine, make_line, make_transaction):
        """Unchanged inputs give an identical proposal map."""
        lines = [make_line(), make_line(amount="30.00", direction=StatementDirection.DEBIT)]
        transactions = [
            make_transaction(),
            make_transaction(amount="30.00", kind=TransactionKind.EXPENSE),
        ]
        assert engine.propose_matches(lines, transactions) == engine.propose_matches(
            lines, transactions
        )

    def test_only_pending_lines_get_proposals(self, engine, make_line, make_transaction):
        pending = make_line()
        ignored = make_line(status=StatementLineStatus.IGNORED)
        proposals = engine.propose_matches([pending, ignored], [make_transaction()])
        assert set(proposals) == {pending.id}

    def test_transactions_linked_by_reconciled_lines_are_excluded(
        self, engine, make_line, make_transaction
    ):
        transaction = make_transaction()
        reconciled = make_line(
            status=StatementLineStatus.RECONCILED,
            matched_transaction_id=transaction.id,
        )
        pending = make_line()
        proposals = engine.propose_matches([reconciled, pending], [transaction])
        assert proposals[pending.id].action == MatchAction.UNMATCHED

    def test_completed_transactions_are_excluded(self, engine, make_line, make_transaction):
        line = make_line()
        completed = make_transaction(status=TransactionStatus.COMPLETED)
        assert engine.propose_matches([line], [completed])[line.id].action == MatchAction.UNMATCHED

    def test_other_accounts_are_excluded(self, engine, make_line, make_transaction):
        line = make_line(account_id="acct-1")
        elsewhere = make_transaction(account_id="acct-2")
        assert engine.propose_matches([line], [elsewhere])[line.id].action == MatchAction.UNMATCHED


class TestSuggestCandidates:
    """Tests for ranking candidates for one focused line."""

    @pytest.fixture
    def engine(self, matching_settings):
        return MatchingEngine(matching_settings)

    def test_ranking(self, engine, make_line, make_transaction):
        line = make_line()
        later_weak = make_transaction(amount="97.00", on=DAY + timedelta(days=5))
        earlier_equal = make_transaction(on=DAY - timedelta(days=1))
        later_equal = make_transaction(on=DAY + timedelta(days=1))
        best = make_transaction()
        vetoed = make_transaction(kind=TransactionKind.EXPENSE)

        suggestions = engine.suggest_candidates(
            line, [later_weak, later_equal, vetoed, earlier_equal, best]
        )

        assert [s.transaction.id for s in suggestions] == [
            best.id,
            earlier_equal.id,
            later_equal.id,
            later_weak.id,
        ]
        assert suggestions[0].meets_threshold
        assert not suggestions[-1].meets_threshold

    def test_limit(self, engine, make_line, make_transaction):
        line = make_line()
        transactions = [make_transaction() for _ in range(5)]
        assert len(engine.suggest_candidates(line, transactions, limit=2)) == 2


class TestSummarizeSelection:
    """Tests for selection totals."""

    @pytest.fixture
    def engine(self, matching_settings):
        return MatchingEngine(matching_settings)

    def test_balanced(self, engine, make_line, make_transaction):
        lines = [make_line(amount="100.00"), make_line(amount="30.00", direction=StatementDirection.DEBIT)]
        transactions = [
            make_transaction(amount="100.00"),
            make_transaction(amount="30.00", kind=TransactionKind.EXPENSE),
        ]
        summary = engine.summarize_selection(lines, transactions)
        assert summary.statement_total == Decimal("70.00")
        assert summary.transactions_total == Decimal("70.00")
        assert summary.difference == Decimal("0")
        assert summary.is_balanced
        assert summary.statement_count == 2

    def test_unbalanced(self, engine, make_line, make_transaction):
        summary = engine.summarize_selection(
            [make_line(amount="100.00")],
            [make_transaction(amount="99.00")],
        )
        assert summary.difference == Decimal("1.00")
        assert not summary.is_balanced

    def test_transfer_counts_as_outflow(self, engine, make_line, make_transaction):
        summary = engine.summarize_selection(
            [make_line(amount="10.00", direction=StatementDirection.DEBIT)],
            [make_transaction(amount="10.00", kind=TransactionKind.TRANSFER)],
        )
        assert summary.is_balanced

    def test_empty_selection(self, engine):
        summary = engine.summarize_selection([], [])
        assert summary.is_balanced
        assert summary.statement_total == Decimal("0")
