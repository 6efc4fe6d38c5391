"""
Match Proposal Engine

Proposes, for every pending statement line, the single best pending
ledger transaction of the same account, or nothing.

DESIGN DECISION: Matching is greedy and order-dependent.
Lines are processed in the order given; the first line that clears the
threshold for a transaction consumes it. Given the same inputs in the
same order, the result is always identical. A globally optimal
assignment is deliberately not attempted.

The engine is pure. It reads snapshots and returns proposals; it
never persists anything and never changes a status. Committing a
proposal is a separate, explicit user action.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from bank_reconciler.config import MatchingSettings, get_settings
from bank_reconciler.matching.scoring import score_candidate
from bank_reconciler.models.statement import (
    CandidateSuggestion,
    LedgerTransaction,
    MatchAction,
    MatchProposal,
    ScoreBreakdown,
    SelectionSummary,
    StatementLine,
    TransactionStatus,
)


class MatchingEngine:
    """
    Scores statement lines against ledger transactions.

    All thresholds and weights come from MatchingSettings.
    """

    def __init__(self, settings: Optional[MatchingSettings] = None):
        self._settings = settings or get_settings().matching

    @property
    def settings(self) -> MatchingSettings:
        return self._settings

    def candidate_pool(
        self,
        lines: Iterable[StatementLine],
        transactions: Iterable[LedgerTransaction],
        account_id: Optional[str] = None,
    ) -> list[LedgerTransaction]:
        """
        Transactions eligible for matching.

        Pending, in the requested account (when given), and not already
        linked to a reconciled statement line.
        """
        linked_ids = {
            line.matched_transaction_id
            for line in lines
            if line.is_reconciled and line.matched_transaction_id is not None
        }
        return [
            transaction
            for transaction in transactions
            if transaction.status == TransactionStatus.PENDING
            and (account_id is None or transaction.account_id == account_id)
            and transaction.id not in linked_ids
        ]

    def propose_matches(
        self,
        lines: list[StatementLine],
        transactions: list[LedgerTransaction],
    ) -> dict[UUID, MatchProposal]:
        """
        Propose at most one transaction per pending statement line.

        Args:
            lines: Statement lines in store order. Non-pending lines are
                   skipped but still exclude the transactions they link.
            transactions: Ledger transactions of the account

        Returns:
            Proposal for every pending line, keyed by line id
        """
        pool = self.candidate_pool(lines, transactions)
        used: set[UUID] = set()
        proposals: dict[UUID, MatchProposal] = {}

        for line in lines:
            if not line.is_pending:
                continue

            best: Optional[tuple[LedgerTransaction, ScoreBreakdown]] = None
            for candidate in pool:
                if candidate.id in used or candidate.account_id != line.account_id:
                    continue
                breakdown = score_candidate(line, candidate, self._settings)
                if breakdown is None or breakdown.total < self._settings.min_match_score:
                    continue
                # Strictly greater: the first candidate seen keeps a tie
                if best is None or breakdown.total > best[1].total:
                    best = (candidate, breakdown)

            if best is None:
                proposals[line.id] = MatchProposal(
                    statement_line_id=line.id,
                    action=MatchAction.UNMATCHED,
                )
                continue

            transaction, breakdown = best
            used.add(transaction.id)
            proposals[line.id] = MatchProposal(
                statement_line_id=line.id,
                action=MatchAction.LINKED,
                matched_transaction_id=transaction.id,
                match_score=min(breakdown.total, 100),
                breakdown=breakdown,
            )

        return proposals

    def suggest_candidates(
        self,
        line: StatementLine,
        transactions: list[LedgerTransaction],
        limit: Optional[int] = None,
    ) -> list[CandidateSuggestion]:
        """
        Rank candidate transactions for one focused statement line.

        Unlike propose_matches this ignores consumption by other lines
        and keeps candidates under the threshold, so a user can still
        pick one by hand. Vetoed candidates are never listed.
        Ordered by score (highest first), then by date (oldest first).
        """
        suggestions = []
        for transaction in transactions:
            breakdown = score_candidate(line, transaction, self._settings)
            if breakdown is None:
                continue
            suggestions.append(
                CandidateSuggestion(
                    transaction=transaction,
                    breakdown=breakdown,
                    meets_threshold=breakdown.total >= self._settings.min_match_score,
                )
            )

        suggestions.sort(key=lambda s: (-s.score, s.transaction.date))
        if limit is not None:
            return suggestions[:limit]
        return suggestions

    def summarize_selection(
        self,
        lines: list[StatementLine],
        transactions: list[LedgerTransaction],
    ) -> SelectionSummary:
        """Signed totals of a selection on both sides and whether they balance."""
        statement_total = sum((line.signed_amount for line in lines), Decimal("0"))
        transactions_total = sum(
            (transaction.signed_amount for transaction in transactions), Decimal("0")
        )
        difference = statement_total - transactions_total

        return SelectionSummary(
            statement_count=len(lines),
            transaction_count=len(transactions),
            statement_total=statement_total,
            transactions_total=transactions_total,
            difference=difference,
            is_balanced=abs(difference) < self._settings.balance_tolerance,
        )
