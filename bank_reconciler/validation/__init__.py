"""Validation of state transitions on statement lines."""

from bank_reconciler.validation.transitions import (
    InvalidTransitionError,
    ReconciliationValidator,
)

__all__ = [
    "InvalidTransitionError",
    "ReconciliationValidator",
]
