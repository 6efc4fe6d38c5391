"""
Match Scoring

Scores how well a ledger transaction explains a bank statement line.

DESIGN DECISION: Scoring is a sum of three independent signals
(amount, date, description), each with a fixed number of points.
The total is bounded at 100 with the default weights, so a score
reads as a rough percentage of confidence.

Polarity is NOT a signal: an income can never explain a debit and an
expense can never explain a credit, so a mismatch vetoes the candidate
before any points are computed.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from bank_reconciler.config import MatchingSettings
from bank_reconciler.models.statement import (
    LedgerTransaction,
    ScoreBreakdown,
    StatementLine,
)


def polarity_matches(line: StatementLine, transaction: LedgerTransaction) -> bool:
    """Income explains credits; expenses and transfers explain debits."""
    return transaction.direction == line.direction


def amount_points(
    line_amount: Decimal,
    candidate_amount: Decimal,
    settings: MatchingSettings,
) -> int:
    difference = abs(candidate_amount - line_amount)
    if difference < settings.exact_amount_tolerance:
        return settings.exact_amount_points
    # A zero-amount line has no meaningful relative difference
    if line_amount > 0 and difference / line_amount < settings.close_amount_ratio:
        return settings.close_amount_points
    return 0


def date_points(
    line_date: date,
    candidate_date: date,
    settings: MatchingSettings,
) -> int:
    days = abs((candidate_date - line_date).days)
    if days == 0:
        return settings.same_day_points
    if days <= settings.near_date_days:
        return settings.near_date_points
    if days <= settings.week_date_days:
        return settings.week_date_points
    return 0


def _words(text: str, min_length: int) -> list[str]:
    return [word for word in text.lower().split() if len(word) >= min_length]


def description_points(
    line_description: str,
    candidate_description: str,
    settings: MatchingSettings,
) -> int:
    """
    Containment of one whole description in the other scores highest.
    Otherwise each statement word that overlaps some candidate word
    (either is a substring of the other) earns points, up to the cap.
    """
    statement_text = (line_description or "").lower().strip()
    candidate_text = (candidate_description or "").lower().strip()
    if not statement_text or not candidate_text:
        return 0

    if statement_text in candidate_text or candidate_text in statement_text:
        return settings.containment_points

    candidate_words = _words(candidate_text, settings.min_word_length)
    matching_words = sum(
        1
        for word in _words(statement_text, settings.min_word_length)
        if any(word in other or other in word for other in candidate_words)
    )
    return min(matching_words * settings.word_points, settings.word_points_cap)


def score_candidate(
    line: StatementLine,
    transaction: LedgerTransaction,
    settings: MatchingSettings,
) -> Optional[ScoreBreakdown]:
    """
    Score one candidate transaction against a statement line.

    Returns:
        Points per signal, or None when the polarity vetoes the candidate
    """
    if not polarity_matches(line, transaction):
        return None

    return ScoreBreakdown(
        amount_points=amount_points(line.amount, transaction.amount, settings),
        date_points=date_points(line.date, transaction.date, settings),
        description_points=description_points(
            line.description, transaction.description, settings
        ),
    )
