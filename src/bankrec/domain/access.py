"""Tenant-scoped lookups shared by the domain services.

Each helper raises NotFoundError when the entity is missing and
PermissionDeniedError when it belongs to another tenant.
"""

from bankrec.database.base import Database
from bankrec.domain.entities import BankAccount, BankStatement, BankStatementLine
from bankrec.domain.errors import (
    NotFoundError,
    PermissionDeniedError,
    bank_account_not_found,
    cross_tenant_access,
    line_not_found,
    statement_not_found,
)


def require_bank_account(db: Database, tenant_id: str, account_id: int) -> BankAccount:
    account = db.get_bank_account(account_id)
    if account is None:
        raise NotFoundError(bank_account_not_found(account_id))
    if account.tenant_id != tenant_id:
        raise PermissionDeniedError(cross_tenant_access("bank account", account_id))
    return account


def require_statement(db: Database, tenant_id: str, statement_id: int) -> BankStatement:
    statement = db.get_statement(statement_id)
    if statement is None:
        raise NotFoundError(statement_not_found(statement_id))
    if statement.tenant_id != tenant_id:
        raise PermissionDeniedError(cross_tenant_access("statement", statement_id))
    return statement


def require_line(
    db: Database, tenant_id: str, line_id: int
) -> tuple[BankStatementLine, BankStatement]:
    """Return a line together with its owning statement."""
    line = db.get_line(line_id)
    if line is None:
        raise NotFoundError(line_not_found(line_id))
    statement = db.get_statement(line.statement_id)
    if statement is None:
        raise NotFoundError(statement_not_found(line.statement_id))
    if statement.tenant_id != tenant_id:
        raise PermissionDeniedError(cross_tenant_access("statement line", line_id))
    return line, statement
