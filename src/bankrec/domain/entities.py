"""Domain model entities for bankrec.

These are pure data classes representing reconciliation concepts, independent
of the database schema. Status enums carry their own transition rules so the
services never compare raw strings.
"""

from dataclasses import dataclass
from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from bankrec.domain.errors import InvalidTransitionError

ZERO = Decimal("0")
CENTS = Decimal("0.01")


class AccountType(str, Enum):
    """Kind of bank account."""

    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"


class StatementStatus(str, Enum):
    """Aggregate reconciliation state of a statement."""

    IMPORTED = "IMPORTED"
    PARTIALLY_RECONCILED = "PARTIALLY_RECONCILED"
    RECONCILED = "RECONCILED"

    @classmethod
    def derive(cls, matched_lines: int, total_lines: int) -> "StatementStatus":
        """Derive the status from line counts.

        A statement without lines stays IMPORTED.
        """
        if matched_lines < 0 or matched_lines > total_lines:
            raise ValueError(
                f"matched_lines must be between 0 and {total_lines}, got {matched_lines}"
            )
        if matched_lines == 0:
            return cls.IMPORTED
        if matched_lines == total_lines:
            return cls.RECONCILED
        return cls.PARTIALLY_RECONCILED


class LineStatus(str, Enum):
    """Reconciliation state of a single statement line."""

    UNMATCHED = "UNMATCHED"
    MATCHED = "MATCHED"
    MANUALLY_MATCHED = "MANUALLY_MATCHED"

    @property
    def is_matched(self) -> bool:
        return self is not LineStatus.UNMATCHED

    def can_transition_to(self, target: "LineStatus") -> bool:
        return target in _LINE_TRANSITIONS[self]

    def transition_to(self, target: "LineStatus") -> "LineStatus":
        """Return target if the transition is legal, otherwise raise."""
        if not self.can_transition_to(target):
            raise InvalidTransitionError(
                f"Cannot change line status from {self.value} to {target.value}"
            )
        return target


_LINE_TRANSITIONS: dict[LineStatus, frozenset[LineStatus]] = {
    LineStatus.UNMATCHED: frozenset({LineStatus.MATCHED, LineStatus.MANUALLY_MATCHED}),
    LineStatus.MATCHED: frozenset({LineStatus.UNMATCHED, LineStatus.MANUALLY_MATCHED}),
    LineStatus.MANUALLY_MATCHED: frozenset({LineStatus.UNMATCHED, LineStatus.MANUALLY_MATCHED}),
}


class MovementKind(str, Enum):
    """Kind of internal movement a line can be matched to."""

    JOURNAL_ENTRY = "JOURNAL_ENTRY"
    PAYMENT = "PAYMENT"


class Direction(str, Enum):
    """Direction of money relative to the bank account."""

    INFLOW = "INFLOW"
    OUTFLOW = "OUTFLOW"


class ClaimType(str, Enum):
    """How a claim was established."""

    AUTO = "AUTO"
    MANUAL = "MANUAL"


def percentage(part: int, whole: int) -> Decimal:
    """Return part/whole*100 rounded half-up to 2 decimals, 0 for an empty whole."""
    if whole == 0:
        return ZERO.quantize(CENTS)
    return (Decimal(part) * 100 / Decimal(whole)).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class BankAccount:
    """Bank account domain entity."""

    id: int
    tenant_id: str
    name: str
    bank_name: str
    account_number: str
    account_type: AccountType
    currency: str
    initial_balance: Decimal
    current_balance: Decimal
    is_active: bool
    ledger_account_code: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class BankStatement:
    """Imported bank statement domain entity."""

    id: int
    tenant_id: str
    bank_account_id: int
    file_name: str
    period_start: date
    period_end: date
    status: StatementStatus
    total_lines: int
    matched_lines: int
    match_percentage: Decimal
    imported_at: datetime
    imported_by: Optional[str] = None
    reconciled_at: Optional[datetime] = None


@dataclass(frozen=True)
class MovementRef:
    """Identity of an internal movement (journal entry or payment)."""

    kind: MovementKind
    movement_id: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.movement_id}"


@dataclass(frozen=True)
class BankStatementLine:
    """Statement line domain entity."""

    id: int
    statement_id: int
    line_number: int
    line_date: date
    description: str
    reference: Optional[str]
    debit: Decimal
    credit: Decimal
    balance: Optional[Decimal]
    status: LineStatus
    matched_journal_entry_id: Optional[str] = None
    matched_payment_id: Optional[str] = None
    matched_at: Optional[datetime] = None
    matched_by: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        """Credit increases, debit decreases the bank balance."""
        return self.credit - self.debit

    @property
    def direction(self) -> Optional[Direction]:
        if self.credit > 0:
            return Direction.INFLOW
        if self.debit > 0:
            return Direction.OUTFLOW
        return None

    @property
    def matched_movement(self) -> Optional[MovementRef]:
        if self.matched_journal_entry_id is not None:
            return MovementRef(MovementKind.JOURNAL_ENTRY, self.matched_journal_entry_id)
        if self.matched_payment_id is not None:
            return MovementRef(MovementKind.PAYMENT, self.matched_payment_id)
        return None


@dataclass(frozen=True)
class RawStatementLine:
    """Line record as delivered by the statement parsing adapter."""

    line_date: date
    description: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    reference: Optional[str] = None
    balance: Optional[Decimal] = None


@dataclass(frozen=True)
class Movement:
    """Internal movement offered by the candidate pool."""

    ref: MovementRef
    tenant_id: str
    bank_account_id: int
    amount: Decimal
    direction: Direction
    date: date
    reference: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction is Direction.INFLOW else -self.amount


@dataclass(frozen=True)
class Claim:
    """Exclusive association of one movement to one statement line.

    This is also the record sent to the ledger side when a claim is
    recorded or released.
    """

    movement: MovementRef
    statement_line_id: int
    claim_type: ClaimType
    claimed_at: datetime


@dataclass(frozen=True)
class StatementProgress:
    """Aggregate state written back to a statement."""

    matched_lines: int
    total_lines: int
    match_percentage: Decimal
    status: StatementStatus


@dataclass(frozen=True)
class ReconciliationResult:
    """Summary of one matching run (not persisted)."""

    statement_id: int
    total_lines: int
    matched_lines: int
    match_percentage: Decimal
    new_matches: int
    conflicts: int = 0
    cancelled: bool = False


@dataclass(frozen=True)
class BalanceAudit:
    """Comparison between the stored and fully recomputed account balance."""

    bank_account_id: int
    stored_balance: Decimal
    computed_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored_balance - self.computed_balance

    @property
    def is_consistent(self) -> bool:
        return self.difference == 0
