"""Mapper functions to convert between domain models and SQLAlchemy models.

Enum-valued columns are stored as plain strings; conversion to the domain
enums happens here and nowhere else.
"""

from decimal import Decimal

from bankrec.domain import entities as domain
from bankrec.database.models import (
    BankAccount as ORMBankAccount,
    BankStatement as ORMBankStatement,
    BankStatementLine as ORMBankStatementLine,
    MovementClaim as ORMMovementClaim,
    LedgerMovement as ORMLedgerMovement,
)


def _money(value) -> Decimal:
    return Decimal(value if value is not None else 0).quantize(domain.CENTS)


def bank_account_to_domain(orm_account: ORMBankAccount) -> domain.BankAccount:
    """Convert SQLAlchemy BankAccount model to domain BankAccount entity."""
    return domain.BankAccount(
        id=orm_account.id,
        tenant_id=orm_account.tenant_id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        account_number=orm_account.account_number,
        account_type=domain.AccountType(orm_account.account_type),
        currency=orm_account.currency,
        initial_balance=_money(orm_account.initial_balance),
        current_balance=_money(orm_account.current_balance),
        is_active=orm_account.is_active,
        ledger_account_code=orm_account.ledger_account_code,
        created_at=orm_account.created_at,
    )


def statement_to_domain(orm_statement: ORMBankStatement) -> domain.BankStatement:
    """Convert SQLAlchemy BankStatement model to domain BankStatement entity."""
    return domain.BankStatement(
        id=orm_statement.id,
        tenant_id=orm_statement.tenant_id,
        bank_account_id=orm_statement.bank_account_id,
        file_name=orm_statement.file_name,
        period_start=orm_statement.period_start,
        period_end=orm_statement.period_end,
        status=domain.StatementStatus(orm_statement.status),
        total_lines=orm_statement.total_lines,
        matched_lines=orm_statement.matched_lines,
        match_percentage=_money(orm_statement.match_percentage),
        imported_at=orm_statement.imported_at,
        imported_by=orm_statement.imported_by,
        reconciled_at=orm_statement.reconciled_at,
    )


def line_to_domain(orm_line: ORMBankStatementLine) -> domain.BankStatementLine:
    """Convert SQLAlchemy BankStatementLine model to domain BankStatementLine entity."""
    return domain.BankStatementLine(
        id=orm_line.id,
        statement_id=orm_line.statement_id,
        line_number=orm_line.line_number,
        line_date=orm_line.line_date,
        description=orm_line.description,
        reference=orm_line.reference,
        debit=_money(orm_line.debit),
        credit=_money(orm_line.credit),
        balance=_money(orm_line.balance) if orm_line.balance is not None else None,
        status=domain.LineStatus(orm_line.status),
        matched_journal_entry_id=orm_line.matched_journal_entry_id,
        matched_payment_id=orm_line.matched_payment_id,
        matched_at=orm_line.matched_at,
        matched_by=orm_line.matched_by,
    )


def claim_to_domain(orm_claim: ORMMovementClaim) -> domain.Claim:
    """Convert SQLAlchemy MovementClaim model to domain Claim entity."""
    return domain.Claim(
        movement=domain.MovementRef(
            kind=domain.MovementKind(orm_claim.movement_kind),
            movement_id=orm_claim.movement_id,
        ),
        statement_line_id=orm_claim.statement_line_id,
        claim_type=domain.ClaimType(orm_claim.claim_type),
        claimed_at=orm_claim.claimed_at,
    )


def movement_to_domain(orm_movement: ORMLedgerMovement) -> domain.Movement:
    """Convert SQLAlchemy LedgerMovement model to domain Movement entity."""
    return domain.Movement(
        ref=domain.MovementRef(
            kind=domain.MovementKind(orm_movement.kind),
            movement_id=orm_movement.movement_id,
        ),
        tenant_id=orm_movement.tenant_id,
        bank_account_id=orm_movement.bank_account_id,
        amount=_money(orm_movement.amount),
        direction=domain.Direction(orm_movement.direction),
        date=orm_movement.date,
        reference=orm_movement.reference,
    )
