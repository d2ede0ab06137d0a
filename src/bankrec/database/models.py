"""SQLAlchemy models for bankrec database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Index,
    UniqueConstraint,
    PrimaryKeyConstraint,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class BankAccount(Base):
    """Bank account model."""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    currency = Column(String(3), default="COP", nullable=False)
    initial_balance = Column(Numeric(12, 2), default=0, nullable=False)
    current_balance = Column(Numeric(12, 2), default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    ledger_account_code = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "account_number", name="uq_tenant_account_number"),
    )

    # Relationships
    statements = relationship("BankStatement", back_populates="bank_account")


class BankStatement(Base):
    """Imported bank statement model."""

    __tablename__ = "bank_statements"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    file_name = Column(String, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(String, default="IMPORTED", nullable=False)
    total_lines = Column(Integer, default=0, nullable=False)
    matched_lines = Column(Integer, default=0, nullable=False)
    match_percentage = Column(Numeric(5, 2), default=0, nullable=False)
    imported_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    imported_by = Column(String, nullable=True)
    reconciled_at = Column(DateTime, nullable=True)

    # Relationships
    bank_account = relationship("BankAccount", back_populates="statements")
    lines = relationship(
        "BankStatementLine",
        back_populates="statement",
        cascade="all, delete-orphan",
        order_by="BankStatementLine.line_number",
    )


class BankStatementLine(Base):
    """Statement line model."""

    __tablename__ = "bank_statement_lines"

    id = Column(Integer, primary_key=True)
    statement_id = Column(Integer, ForeignKey("bank_statements.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    line_date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    reference = Column(String, nullable=True)
    debit = Column(Numeric(12, 2), default=0, nullable=False)
    credit = Column(Numeric(12, 2), default=0, nullable=False)
    balance = Column(Numeric(12, 2), nullable=True)
    status = Column(String, default="UNMATCHED", nullable=False)
    matched_journal_entry_id = Column(String, nullable=True)
    matched_payment_id = Column(String, nullable=True)
    matched_at = Column(DateTime, nullable=True)
    matched_by = Column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("statement_id", "line_number", name="uq_statement_line_number"),
        Index("ix_statement_line_status", "statement_id", "status"),
    )

    # Relationships
    statement = relationship("BankStatement", back_populates="lines")


class MovementClaim(Base):
    """Exclusive claim of a ledger movement by a statement line.

    The primary key makes a second claim on the same movement impossible;
    the unique line id keeps one claim per line.
    """

    __tablename__ = "movement_claims"

    movement_kind = Column(String, nullable=False)
    movement_id = Column(String, nullable=False)
    statement_line_id = Column(
        Integer, ForeignKey("bank_statement_lines.id"), nullable=False, unique=True
    )
    claim_type = Column(String, nullable=False)
    claimed_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (PrimaryKeyConstraint("movement_kind", "movement_id", name="pk_movement_claims"),)


class LedgerMovement(Base):
    """Journal entries and payments eligible for matching.

    Owned by the ledger side; the reconciliation engine only reads it.
    """

    __tablename__ = "ledger_movements"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    kind = Column(String, nullable=False)
    movement_id = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    direction = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    reference = Column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("kind", "movement_id", name="uq_movement_kind_id"),
        Index("ix_movement_account_date", "tenant_id", "bank_account_id", "date"),
    )


def create_session_factory(database_url: str, timeout: float = 30.0) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["timeout"] = timeout
    engine = create_engine(database_url, echo=False, connect_args=connect_args)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
