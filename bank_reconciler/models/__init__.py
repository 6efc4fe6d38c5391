"""
Data Models Package

This package contains all Pydantic models used in the Bank Reconciler system.
All data flowing through the system must conform to these schemas.
"""

from bank_reconciler.models.statement import (
    BankInfo,
    BankMatchCheck,
    CandidateSuggestion,
    DecodedStatement,
    DecodedStatementLine,
    ImportResult,
    LedgerTransaction,
    MatchAction,
    MatchProposal,
    NewStatementLine,
    NewTransaction,
    ScoreBreakdown,
    SelectionSummary,
    StatementDirection,
    StatementLine,
    StatementLineStatus,
    TransactionKind,
    TransactionStatus,
    TransitionOperation,
    TransitionResult,
    TransitionValidationResult,
    ValidationIssue,
    dedup_key,
    utcnow,
)
from bank_reconciler.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Statement and ledger models
    "BankInfo",
    "BankMatchCheck",
    "CandidateSuggestion",
    "DecodedStatement",
    "DecodedStatementLine",
    "ImportResult",
    "LedgerTransaction",
    "MatchAction",
    "MatchProposal",
    "NewStatementLine",
    "NewTransaction",
    "ScoreBreakdown",
    "SelectionSummary",
    "StatementDirection",
    "StatementLine",
    "StatementLineStatus",
    "TransactionKind",
    "TransactionStatus",
    "TransitionOperation",
    "TransitionResult",
    "TransitionValidationResult",
    "ValidationIssue",
    "dedup_key",
    "utcnow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
