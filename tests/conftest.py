"""Shared pytest fixtures for bankrec tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from bankrec.database.factories import create_sqlite_database
from bankrec.domain.account import BankAccountService
from bankrec.domain.entities import Direction, MovementKind, MovementRef, RawStatementLine
from bankrec.domain.reconciliation import ReconciliationService
from bankrec.domain.statement import StatementService

TENANT = "acme"
OTHER_TENANT = "globex"


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path, timeout=5)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create a BankAccountService with a temporary database."""
    return BankAccountService(temp_db)


@pytest.fixture
def statement_service(temp_db):
    """Create a StatementService with a temporary database."""
    return StatementService(temp_db, lock_timeout=5)


@pytest.fixture
def recon_service(temp_db):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db, lock_timeout=5)


@pytest.fixture
def sample_account(account_service):
    """Create a sample bank account with an opening balance of 1000."""
    account_id = account_service.create_account(
        TENANT,
        name="Operating",
        bank_name="Bancolombia",
        account_number="0012345",
        initial_balance=Decimal("1000.00"),
    )
    return account_service.get_account(TENANT, account_id)


def add_movement(db, account, movement_id, signed_amount, movement_date, reference=None, payment=False):
    """Seed one ledger movement for an account; returns its MovementRef."""
    amount = Decimal(signed_amount)
    kind = MovementKind.PAYMENT if payment else MovementKind.JOURNAL_ENTRY
    db.create_movement(
        tenant_id=account.tenant_id,
        bank_account_id=account.id,
        kind=kind,
        movement_id=movement_id,
        amount=abs(amount),
        direction=Direction.INFLOW if amount > 0 else Direction.OUTFLOW,
        movement_date=movement_date,
        reference=reference,
    )
    return MovementRef(kind, movement_id)


def raw_line(line_date, signed_amount, description="", reference=None):
    """Build a RawStatementLine from a signed amount (credit positive)."""
    amount = Decimal(signed_amount)
    return RawStatementLine(
        line_date=line_date,
        description=description,
        debit=-amount if amount < 0 else Decimal("0"),
        credit=amount if amount > 0 else Decimal("0"),
        reference=reference,
    )


@pytest.fixture
def four_line_statement(temp_db, recon_service, sample_account):
    """Statement with lines +100, -50, +25, +10 and exact movements for the first three."""
    add_movement(temp_db, sample_account, "JE-1", "100.00", date(2024, 3, 2), reference="INV-100")
    add_movement(temp_db, sample_account, "PAY-1", "-50.00", date(2024, 3, 5), payment=True)
    add_movement(temp_db, sample_account, "JE-2", "25.00", date(2024, 3, 11))

    lines = [
        raw_line(date(2024, 3, 1), "100.00", "Customer deposit", reference="INV-100"),
        raw_line(date(2024, 3, 5), "-50.00", "Supplier payment"),
        raw_line(date(2024, 3, 10), "25.00", "Transfer in"),
        raw_line(date(2024, 3, 20), "10.00", "Interest"),
    ]
    statement_id = recon_service.import_statement(
        TENANT,
        sample_account.id,
        "march.csv",
        date(2024, 3, 1),
        date(2024, 3, 31),
        lines,
    )
    return statement_id


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
