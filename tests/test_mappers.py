"""Tests for ORM to domain mappers."""

from datetime import date, datetime, UTC
from decimal import Decimal

from bankrec.database import models
from bankrec.database.mappers import (
    bank_account_to_domain,
    claim_to_domain,
    line_to_domain,
    movement_to_domain,
    statement_to_domain,
)
from bankrec.domain.entities import (
    AccountType,
    ClaimType,
    Direction,
    LineStatus,
    MovementKind,
    MovementRef,
    StatementStatus,
)


def test_bank_account_to_domain_converts_enums_and_money():
    orm = models.BankAccount(
        id=3,
        tenant_id="acme",
        name="Reserve",
        bank_name="Davivienda",
        account_number="998",
        account_type="SAVINGS",
        currency="COP",
        initial_balance=Decimal("10"),
        current_balance=Decimal("12.5"),
        is_active=True,
        ledger_account_code="1110",
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )
    account = bank_account_to_domain(orm)
    assert account.account_type is AccountType.SAVINGS
    assert account.initial_balance == Decimal("10.00")
    assert str(account.current_balance) == "12.50"
    assert account.ledger_account_code == "1110"


def test_statement_to_domain():
    orm = models.BankStatement(
        id=1,
        tenant_id="acme",
        bank_account_id=3,
        file_name="march.csv",
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        status="PARTIALLY_RECONCILED",
        total_lines=4,
        matched_lines=3,
        match_percentage=Decimal("75"),
        imported_at=datetime(2024, 4, 1, tzinfo=UTC),
        imported_by="ana",
    )
    statement = statement_to_domain(orm)
    assert statement.status is StatementStatus.PARTIALLY_RECONCILED
    assert str(statement.match_percentage) == "75.00"
    assert statement.imported_by == "ana"
    assert statement.reconciled_at is None


def test_line_to_domain_keeps_missing_balance():
    orm = models.BankStatementLine(
        id=9,
        statement_id=1,
        line_number=2,
        line_date=date(2024, 3, 5),
        description="Supplier",
        reference=None,
        debit=Decimal("50"),
        credit=Decimal("0"),
        balance=None,
        status="MATCHED",
        matched_payment_id="PAY-1",
    )
    line = line_to_domain(orm)
    assert line.status is LineStatus.MATCHED
    assert line.balance is None
    assert line.signed_amount == Decimal("-50.00")
    assert line.matched_movement == MovementRef(MovementKind.PAYMENT, "PAY-1")


def test_claim_and_movement_to_domain():
    claim = claim_to_domain(
        models.MovementClaim(
            movement_kind="JOURNAL_ENTRY",
            movement_id="JE-1",
            statement_line_id=9,
            claim_type="MANUAL",
            claimed_at=datetime(2024, 4, 1, tzinfo=UTC),
        )
    )
    assert claim.movement == MovementRef(MovementKind.JOURNAL_ENTRY, "JE-1")
    assert claim.claim_type is ClaimType.MANUAL

    movement = movement_to_domain(
        models.LedgerMovement(
            id=1,
            tenant_id="acme",
            bank_account_id=3,
            kind="PAYMENT",
            movement_id="PAY-1",
            amount=Decimal("50"),
            direction="OUTFLOW",
            date=date(2024, 3, 5),
            reference="rent",
        )
    )
    assert movement.direction is Direction.OUTFLOW
    assert movement.signed_amount == Decimal("-50.00")
