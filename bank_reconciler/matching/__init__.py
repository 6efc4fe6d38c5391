"""Statement line to ledger transaction matching."""

from bank_reconciler.matching.engine import MatchingEngine
from bank_reconciler.matching.scoring import (
    amount_points,
    date_points,
    description_points,
    polarity_matches,
    score_candidate,
)

__all__ = [
    "MatchingEngine",
    "amount_points",
    "date_points",
    "description_points",
    "polarity_matches",
    "score_candidate",
]
