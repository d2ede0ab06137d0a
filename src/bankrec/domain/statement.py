"""Statement line store: import, lookup and administrative deletion."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from bankrec.database.base import Database
from bankrec.domain.access import require_bank_account, require_line, require_statement
from bankrec.domain.entities import (
    BankStatement as BankStatementEntity,
    BankStatementLine as BankStatementLineEntity,
    Claim,
    LineStatus,
    RawStatementLine,
    StatementStatus,
    ZERO,
    CENTS,
)
from bankrec.domain.errors import ConflictError, NotFoundError, ValidationError, statement_not_found
from bankrec.domain.locking import hold_account_lock
from bankrec.domain.notifications import ClaimListener, LoggingClaimListener, notify_released
from bankrec.domain.progress import BalanceTracker

logger = logging.getLogger(__name__)


def validate_raw_line(index: int, raw: RawStatementLine) -> RawStatementLine:
    """Validate one inbound line and normalize its amounts to cents.

    Args:
        index: 1-based position of the line, used in error messages
        raw: Line record from the parsing adapter

    Raises:
        ValidationError: If amounts are negative or both debit and credit are set
    """
    if raw.line_date is None:
        raise ValidationError(f"Line {index}: missing date")
    debit = Decimal(raw.debit if raw.debit is not None else ZERO).quantize(CENTS)
    credit = Decimal(raw.credit if raw.credit is not None else ZERO).quantize(CENTS)
    if debit < 0 or credit < 0:
        raise ValidationError(f"Line {index}: amounts must not be negative")
    if debit > 0 and credit > 0:
        raise ValidationError(f"Line {index}: debit and credit cannot both be set")
    balance = raw.balance
    if balance is not None:
        balance = Decimal(balance).quantize(CENTS)
    reference = raw.reference.strip() if raw.reference and raw.reference.strip() else None
    return RawStatementLine(
        line_date=raw.line_date,
        description=(raw.description or "").strip(),
        debit=debit,
        credit=credit,
        reference=reference,
        balance=balance,
    )


class StatementService:
    """Service for importing and managing bank statements."""

    def __init__(
        self,
        db: Database,
        claim_listener: Optional[ClaimListener] = None,
        lock_timeout: Optional[float] = None,
    ):
        """Initialize statement service.

        Args:
            db: Database instance
            claim_listener: Receives released claims when a statement is deleted
            lock_timeout: Seconds to wait for the account lock (None waits forever)
        """
        self.db = db
        self.claim_listener = claim_listener or LoggingClaimListener()
        self.lock_timeout = lock_timeout
        self.balance_tracker = BalanceTracker(db)

    def import_statement(
        self,
        tenant_id: str,
        bank_account_id: int,
        file_name: str,
        period_start: date,
        period_end: date,
        lines: Sequence[RawStatementLine],
        imported_by: Optional[str] = None,
    ) -> int:
        """Create a statement with all lines UNMATCHED.

        Lines are stored in the order given; that order is the import order
        used to break ties between lines on the same date.

        Returns:
            Statement ID

        Raises:
            NotFoundError: If the bank account does not exist
            PermissionDeniedError: If it belongs to another tenant
            ValidationError: If the account is inactive or the data is malformed;
                no statement is created
        """
        account = require_bank_account(self.db, tenant_id, bank_account_id)
        if not account.is_active:
            raise ValidationError(f"Bank account {bank_account_id} is inactive")
        if not lines:
            raise ValidationError("Statement has no lines to import")
        if period_start > period_end:
            raise ValidationError(
                f"Period start {period_start} is after period end {period_end}"
            )
        if not file_name or not file_name.strip():
            raise ValidationError("File name must not be empty")

        validated = [validate_raw_line(i, raw) for i, raw in enumerate(lines, start=1)]

        outside = sum(1 for raw in validated if not period_start <= raw.line_date <= period_end)
        if outside:
            logger.warning(
                "%s line(s) of %s fall outside the declared period %s..%s",
                outside,
                file_name,
                period_start,
                period_end,
            )

        statement_id = self.db.create_statement(
            tenant_id=tenant_id,
            bank_account_id=bank_account_id,
            file_name=file_name.strip(),
            period_start=period_start,
            period_end=period_end,
            lines=validated,
            imported_by=imported_by,
        )
        logger.info(
            "Imported statement %s (%s) with %s lines into bank account %s",
            statement_id,
            file_name,
            len(validated),
            bank_account_id,
        )
        return statement_id

    def get_statement(self, tenant_id: str, statement_id: int) -> BankStatementEntity:
        """Get a statement by ID (tenant-scoped)."""
        return require_statement(self.db, tenant_id, statement_id)

    def list_statements(self, tenant_id: str, bank_account_id: int) -> list[BankStatementEntity]:
        """List an account's statements, newest period first."""
        require_bank_account(self.db, tenant_id, bank_account_id)
        return self.db.list_statements(bank_account_id)

    def get_lines(
        self, tenant_id: str, statement_id: int, status: Optional[LineStatus] = None
    ) -> list[BankStatementLineEntity]:
        """List a statement's lines by line date, then import order."""
        require_statement(self.db, tenant_id, statement_id)
        return self.db.list_lines(statement_id, status=status)

    def get_line(self, tenant_id: str, line_id: int) -> BankStatementLineEntity:
        """Get a single statement line (tenant-scoped)."""
        line, _ = require_line(self.db, tenant_id, line_id)
        return line

    def delete_statement(self, tenant_id: str, statement_id: int) -> None:
        """Administratively delete a statement.

        Claims held by its lines are released and the matched lines'
        contribution is removed from the account balance, all in one
        transaction.

        Raises:
            ConflictError: If the statement is fully reconciled
        """
        statement = require_statement(self.db, tenant_id, statement_id)
        if statement.status is StatementStatus.RECONCILED:
            raise ConflictError(f"Statement {statement_id} is reconciled and cannot be deleted")

        with hold_account_lock(statement.bank_account_id, self.lock_timeout):
            with self.db.transaction():
                current = self.db.get_statement(statement_id)
                if current is None:
                    raise NotFoundError(statement_not_found(statement_id))
                if current.status is StatementStatus.RECONCILED:
                    raise ConflictError(f"Statement {statement_id} is reconciled and cannot be deleted")
                released: list[Claim] = self.db.list_claims_for_statement(statement_id)
                delta = self.balance_tracker.remove_lines(
                    statement.bank_account_id, self.db.list_lines(statement_id)
                )
                self.db.delete_statement(statement_id)

        logger.info(
            "Deleted statement %s; released %s claim(s), balance adjusted by %s",
            statement_id,
            len(released),
            delta,
        )
        notify_released(self.claim_listener, released)
