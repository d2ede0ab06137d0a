"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Sequence
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from bankrec.domain.entities import (
    AccountType,
    BankAccount,
    BankStatement,
    BankStatementLine,
    Claim,
    ClaimType,
    Direction,
    LineStatus,
    Movement,
    MovementKind,
    MovementRef,
    RawStatementLine,
    StatementStatus,
)


class Database(ABC):
    """Abstract database interface for bankrec.

    Writes issued inside ``transaction()`` are committed together when the
    outermost block exits, or rolled back together if it raises. Writes
    issued outside a transaction commit immediately.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open a unit of work; nested calls join the outer one."""
        pass

    # Bank account operations
    @abstractmethod
    def create_bank_account(
        self,
        tenant_id: str,
        name: str,
        bank_name: str,
        account_number: str,
        account_type: AccountType,
        currency: str,
        initial_balance: Decimal,
        ledger_account_code: Optional[str] = None,
    ) -> int:
        """Create a bank account with current balance equal to initial balance. Returns ID."""
        pass

    @abstractmethod
    def get_bank_account(self, account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        pass

    @abstractmethod
    def get_bank_account_by_number(self, tenant_id: str, account_number: str) -> Optional[BankAccount]:
        """Get a tenant's bank account by account number."""
        pass

    @abstractmethod
    def list_bank_accounts(self, tenant_id: str, active_only: bool = True) -> list[BankAccount]:
        """List a tenant's bank accounts ordered by name."""
        pass

    @abstractmethod
    def update_bank_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        bank_name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> None:
        """Update descriptive bank account fields."""
        pass

    @abstractmethod
    def set_bank_account_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate a bank account."""
        pass

    @abstractmethod
    def delete_bank_account(self, account_id: int) -> None:
        """Delete a bank account."""
        pass

    @abstractmethod
    def adjust_current_balance(self, account_id: int, delta: Decimal) -> None:
        """Atomically add delta to the account's current balance."""
        pass

    @abstractmethod
    def set_current_balance(self, account_id: int, balance: Decimal) -> None:
        """Overwrite the account's current balance."""
        pass

    # Statement operations
    @abstractmethod
    def create_statement(
        self,
        tenant_id: str,
        bank_account_id: int,
        file_name: str,
        period_start: date,
        period_end: date,
        lines: Sequence[RawStatementLine],
        imported_by: Optional[str] = None,
    ) -> int:
        """Create a statement and all its lines (UNMATCHED). Returns statement ID."""
        pass

    @abstractmethod
    def get_statement(self, statement_id: int) -> Optional[BankStatement]:
        """Get statement by ID."""
        pass

    @abstractmethod
    def list_statements(self, bank_account_id: int) -> list[BankStatement]:
        """List an account's statements, newest period first."""
        pass

    @abstractmethod
    def count_statements(self, bank_account_id: int) -> int:
        """Count statements for a bank account."""
        pass

    @abstractmethod
    def update_statement_progress(
        self,
        statement_id: int,
        matched_lines: int,
        match_percentage: Decimal,
        status: StatementStatus,
        reconciled_at: Optional[datetime],
    ) -> None:
        """Persist aggregate reconciliation fields of a statement."""
        pass

    @abstractmethod
    def delete_statement(self, statement_id: int) -> None:
        """Delete a statement, its lines and their claims."""
        pass

    # Statement line operations
    @abstractmethod
    def get_line(self, line_id: int) -> Optional[BankStatementLine]:
        """Get statement line by ID."""
        pass

    @abstractmethod
    def list_lines(
        self, statement_id: int, status: Optional[LineStatus] = None
    ) -> list[BankStatementLine]:
        """List a statement's lines ordered by line date then import order."""
        pass

    @abstractmethod
    def list_line_statuses(self, statement_id: int) -> list[LineStatus]:
        """Return the status of every line of a statement."""
        pass

    @abstractmethod
    def list_matched_lines_for_account(self, bank_account_id: int) -> list[BankStatementLine]:
        """List matched lines across all of an account's statements.

        Ordered by line date, then statement import order, then line order.
        """
        pass

    @abstractmethod
    def set_line_match(
        self,
        line_id: int,
        status: LineStatus,
        movement: MovementRef,
        matched_at: datetime,
        matched_by: Optional[str] = None,
    ) -> None:
        """Record a line as matched to a movement."""
        pass

    @abstractmethod
    def clear_line_match(self, line_id: int) -> None:
        """Return a line to UNMATCHED and drop its movement reference."""
        pass

    # Claim operations
    @abstractmethod
    def claim_movement(self, movement: MovementRef, line_id: int, claim_type: ClaimType) -> bool:
        """Atomically claim a movement for a line.

        Returns True if the claim was created, False if the movement (or the
        line) already holds a claim. Never overwrites an existing claim.
        """
        pass

    @abstractmethod
    def release_claim(self, movement: MovementRef) -> None:
        """Remove the claim on a movement, if any."""
        pass

    @abstractmethod
    def get_claim(self, movement: MovementRef) -> Optional[Claim]:
        """Get the claim held on a movement."""
        pass

    @abstractmethod
    def list_claims_for_statement(self, statement_id: int) -> list[Claim]:
        """List claims held by lines of a statement."""
        pass

    @abstractmethod
    def claimed_movements(self, movements: Sequence[MovementRef]) -> set[MovementRef]:
        """Return the subset of the given movements that are currently claimed."""
        pass

    # Ledger movement operations
    @abstractmethod
    def create_movement(
        self,
        tenant_id: str,
        bank_account_id: int,
        kind: MovementKind,
        movement_id: str,
        amount: Decimal,
        direction: Direction,
        movement_date: date,
        reference: Optional[str] = None,
    ) -> None:
        """Record a ledger movement in the candidate view."""
        pass

    @abstractmethod
    def get_movement(self, movement: MovementRef) -> Optional[Movement]:
        """Get a ledger movement by reference."""
        pass

    @abstractmethod
    def list_movements(
        self,
        tenant_id: str,
        bank_account_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Movement]:
        """List an account's movements within an inclusive date range."""
        pass
