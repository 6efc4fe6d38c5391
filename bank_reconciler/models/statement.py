"""
Core Data Models for Bank Reconciler

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Money is always a non-negative Decimal magnitude.
The sign of a movement is carried by an enum (statement direction or
transaction kind), never by the number itself.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class StatementDirection(str, Enum):
    """
    Direction of a bank movement as reported by the bank.

    Values mirror the single-letter codes stored by the dashboard.
    """
    CREDIT = "C"  # Money in
    DEBIT = "D"   # Money out

    @property
    def sign(self) -> int:
        return 1 if self is StatementDirection.CREDIT else -1


class StatementLineStatus(str, Enum):
    """
    Lifecycle of an imported statement line.

    CRITICAL: Lines only leave PENDING through an explicit user action.
    The matching engine NEVER changes status on its own.
    """
    PENDING = "pending"
    RECONCILED = "reconciled"
    IGNORED = "ignored"


class TransactionKind(str, Enum):
    """Ledger transaction kind."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"

    @property
    def direction(self) -> StatementDirection:
        """Bank direction this kind of transaction shows up as."""
        if self is TransactionKind.INCOME:
            return StatementDirection.CREDIT
        return StatementDirection.DEBIT

    @classmethod
    def for_direction(cls, direction: StatementDirection) -> "TransactionKind":
        """Kind used when posting a new transaction for a bank movement."""
        if direction is StatementDirection.CREDIT:
            return cls.INCOME
        return cls.EXPENSE


class TransactionStatus(str, Enum):
    """Ledger transaction status."""
    PENDING = "pending"      # Expected but not yet seen on a statement
    COMPLETED = "completed"  # Happened


class MatchAction(str, Enum):
    """Outcome of the match proposal for one statement line."""
    LINKED = "linked"
    UNMATCHED = "unmatched"


class TransitionOperation(str, Enum):
    """State transitions a user can commit on statement lines."""
    RECONCILE = "reconcile"
    UNRECONCILE = "unreconcile"
    POST_AND_RECONCILE = "post_and_reconcile"
    DISCARD = "discard"


def dedup_key(
    direction: StatementDirection,
    posted_on: date,
    amount: Decimal,
    description: str,
) -> str:
    """
    Build the de-duplication key for a statement line.

    Amounts are normalized to two decimal places so that 100, 100.0 and
    100.00 produce the same key.
    """
    normalized_amount = Decimal(amount).quantize(Decimal("0.01"))
    return f"{direction.value}|{posted_on.isoformat()}|{normalized_amount}|{description}"


# =============================================================================
# DECODER OUTPUT
# =============================================================================

class BankInfo(BaseModel):
    """Bank-identifying fields found in a statement file. Missing fields are empty strings."""
    model_config = ConfigDict(str_strip_whitespace=True)

    bank_id: str = ""
    account_id: str = ""
    account_type: str = ""


class DecodedStatementLine(BaseModel):
    """
    One transaction block decoded from a statement file.

    This is PROPOSED data straight from the bank file. It becomes a
    StatementLine only after import assigns an account and organization.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    external_id: str = Field(
        ...,
        min_length=1,
        description="Bank-assigned transaction identifier (FITID)"
    )
    transaction_type: str = Field(
        default="",
        description="Raw transaction type marker (TRNTYPE), informational only"
    )
    direction: StatementDirection
    posted_date: str = Field(
        ...,
        description="Posting date as YYYY-MM-DD, or empty when the file value was too short"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Absolute amount of the movement"
    )
    memo: str = Field(
        ...,
        description="Memo, name, or placeholder text"
    )
    check_number: Optional[str] = None

    @property
    def posted_on(self) -> Optional[date]:
        """Posting date as a date, or None when the record is unusable."""
        if not self.posted_date:
            return None
        try:
            return date.fromisoformat(self.posted_date)
        except ValueError:
            return None

    @property
    def is_usable(self) -> bool:
        return self.posted_on is not None

    @property
    def dedup_key(self) -> Optional[str]:
        posted_on = self.posted_on
        if posted_on is None:
            return None
        return dedup_key(self.direction, posted_on, self.amount, self.memo)


class DecodedStatement(BaseModel):
    """Result of decoding one statement file."""

    bank_info: BankInfo = Field(default_factory=BankInfo)
    lines: list[DecodedStatementLine] = Field(default_factory=list)
    discarded_count: int = Field(
        default=0,
        ge=0,
        description="Decoded records dropped because they had no usable date"
    )

    @property
    def line_count(self) -> int:
        return len(self.lines)


# =============================================================================
# STATEMENT LINES
# =============================================================================

class NewStatementLine(BaseModel):
    """
    Insert payload for a statement line.

    New lines are always stored PENDING with no matched transaction;
    the store assigns the id and timestamps.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    organization_id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    external_id: Optional[str] = None
    date: date
    amount: Decimal = Field(..., ge=0)
    direction: StatementDirection
    description: str
    memo: Optional[str] = None
    check_number: Optional[str] = None

    @property
    def dedup_key(self) -> str:
        return dedup_key(self.direction, self.date, self.amount, self.description)


class StatementLine(BaseModel):
    """
    A bank statement line as persisted in the record store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    organization_id: str
    account_id: str
    user_id: str

    date: date
    amount: Decimal = Field(..., ge=0)
    direction: StatementDirection
    description: str
    memo: Optional[str] = None
    external_id: Optional[str] = None
    check_number: Optional[str] = None

    status: StatementLineStatus = StatementLineStatus.PENDING
    matched_transaction_id: Optional[UUID] = None
    reconciled_at: Optional[datetime] = None
    reconciled_by: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_reconciliation_metadata(self) -> 'StatementLine':
        """Reconciled lines always know when they were reconciled."""
        if self.status == StatementLineStatus.RECONCILED and self.reconciled_at is None:
            raise ValueError("Reconciled statement line must have reconciled_at")
        return self

    @property
    def is_pending(self) -> bool:
        return self.status == StatementLineStatus.PENDING

    @property
    def is_reconciled(self) -> bool:
        return self.status == StatementLineStatus.RECONCILED

    @property
    def signed_amount(self) -> Decimal:
        """Credits positive, debits negative."""
        return self.amount * self.direction.sign

    @property
    def dedup_key(self) -> str:
        return dedup_key(self.direction, self.date, self.amount, self.description)


# =============================================================================
# LEDGER TRANSACTIONS
# =============================================================================

class NewTransaction(BaseModel):
    """Insert payload for a ledger transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    organization_id: Optional[str] = None
    account_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    description: str
    amount: Decimal = Field(..., ge=0)
    kind: TransactionKind
    date: date
    status: TransactionStatus = TransactionStatus.PENDING
    category_id: Optional[str] = None


class LedgerTransaction(BaseModel):
    """
    A ledger transaction recorded by the user (or posted by the engine).

    The amount is a magnitude; `kind` says which way the money moved.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    organization_id: Optional[str] = None
    account_id: str
    user_id: Optional[str] = None
    description: str
    amount: Decimal = Field(..., ge=0)
    kind: TransactionKind
    date: date
    status: TransactionStatus = TransactionStatus.PENDING
    category_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def direction(self) -> StatementDirection:
        return self.kind.direction

    @property
    def signed_amount(self) -> Decimal:
        """Income positive, expenses and transfers negative."""
        return self.amount * self.direction.sign


# =============================================================================
# MATCHING MODELS
# =============================================================================

class ScoreBreakdown(BaseModel):
    """Points awarded by each scoring signal."""

    amount_points: int = Field(default=0, ge=0)
    date_points: int = Field(default=0, ge=0)
    description_points: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.amount_points + self.date_points + self.description_points


class MatchProposal(BaseModel):
    """
    The engine's proposal for one statement line.

    Purely advisory: nothing is persisted until the user commits a transition.
    """

    statement_line_id: UUID
    action: MatchAction
    matched_transaction_id: Optional[UUID] = None
    match_score: int = Field(default=0, ge=0, le=100)
    breakdown: Optional[ScoreBreakdown] = None

    @model_validator(mode='after')
    def validate_action(self) -> 'MatchProposal':
        if self.action == MatchAction.LINKED and self.matched_transaction_id is None:
            raise ValueError("Linked proposal requires a matched transaction")
        if self.action == MatchAction.UNMATCHED:
            if self.matched_transaction_id is not None or self.match_score != 0:
                raise ValueError("Unmatched proposal cannot carry a transaction or score")
        return self

    @property
    def is_linked(self) -> bool:
        return self.action == MatchAction.LINKED


class CandidateSuggestion(BaseModel):
    """A scored candidate transaction for one focused statement line."""

    transaction: LedgerTransaction
    breakdown: ScoreBreakdown
    meets_threshold: bool

    @property
    def score(self) -> int:
        return self.breakdown.total


class SelectionSummary(BaseModel):
    """
    Signed totals of a user's selection on both sides.

    Shown before committing so the user can see whether the selected
    statement lines and ledger transactions add up.
    """

    statement_count: int = Field(ge=0)
    transaction_count: int = Field(ge=0)
    statement_total: Decimal
    transactions_total: Decimal
    difference: Decimal
    is_balanced: bool


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class ImportResult(BaseModel):
    """Outcome of importing one decoded statement into an account."""

    account_id: str
    inserted: int = Field(ge=0)
    skipped: int = Field(ge=0)
    inserted_line_ids: list[UUID] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.skipped


class TransitionResult(BaseModel):
    """Outcome of a fully applied batch transition."""

    operation: TransitionOperation
    processed_count: int = Field(ge=0)
    line_ids: list[UUID] = Field(default_factory=list)
    created_transaction_ids: list[UUID] = Field(default_factory=list)
    completed_at: datetime = Field(default_factory=utcnow)


class BankMatchCheck(BaseModel):
    """
    Whether the bank named in a statement file matches the target account's bank.

    `matches` is None when either side is unknown.
    """

    bank_code: str = ""
    file_bank_name: Optional[str] = None
    account_bank_name: Optional[str] = None
    matches: Optional[bool] = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field or subject with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_status', 'empty_selection')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    line_id: Optional[UUID] = Field(
        default=None,
        description="Statement line the issue is about, if any"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class TransitionValidationResult(BaseModel):
    """Result of checking a transition's preconditions against a selection."""

    operation: TransitionOperation
    validated_at: datetime = Field(default_factory=utcnow)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_allowed(self) -> bool:
        return not self.has_errors
