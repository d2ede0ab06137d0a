"""Bank account domain service."""

import logging
from decimal import Decimal
from typing import Optional

from bankrec.database.base import Database
from bankrec.domain.access import require_bank_account
from bankrec.domain.entities import AccountType, BankAccount as BankAccountEntity, CENTS
from bankrec.domain.errors import (
    ConflictError,
    DependencyError,
    ValidationError,
    account_delete_blocked,
    account_delete_blocked_by_movements,
    duplicate_account_number,
)

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "COP"


def _normalize_currency(currency: str) -> str:
    code = currency.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"Invalid currency code '{currency}'")
    return code


class BankAccountService:
    """Service for managing bank accounts."""

    def __init__(self, db: Database):
        """Initialize bank account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        tenant_id: str,
        name: str,
        bank_name: str,
        account_number: str,
        account_type: AccountType | str = AccountType.CHECKING,
        currency: str = DEFAULT_CURRENCY,
        initial_balance: Decimal = Decimal("0"),
        ledger_account_code: Optional[str] = None,
    ) -> int:
        """Create a new bank account.

        The current balance starts at the initial balance.

        Args:
            tenant_id: Owning tenant
            name: Display name
            bank_name: Bank name
            account_number: Account number, unique per tenant
            account_type: CHECKING or SAVINGS
            currency: ISO currency code (defaults to COP)
            initial_balance: Opening balance
            ledger_account_code: Optional chart-of-accounts code

        Returns:
            Bank account ID

        Raises:
            ValidationError: If a field is empty or malformed
            ConflictError: If the account number already exists for the tenant
        """
        if not name.strip():
            raise ValidationError("Account name must not be empty")
        if not account_number.strip():
            raise ValidationError("Account number must not be empty")
        try:
            account_type = AccountType(account_type)
        except ValueError as e:
            raise ValidationError(f"Invalid account type '{account_type}'") from e
        currency = _normalize_currency(currency)
        initial_balance = Decimal(initial_balance).quantize(CENTS)

        account_number = account_number.strip()
        if self.db.get_bank_account_by_number(tenant_id, account_number) is not None:
            raise ConflictError(duplicate_account_number(account_number))

        account_id = self.db.create_bank_account(
            tenant_id=tenant_id,
            name=name.strip(),
            bank_name=bank_name.strip(),
            account_number=account_number,
            account_type=account_type,
            currency=currency,
            initial_balance=initial_balance,
            ledger_account_code=ledger_account_code,
        )
        logger.info("Created bank account %s (%s) for tenant %s", account_id, name, tenant_id)
        return account_id

    def get_account(self, tenant_id: str, account_id: int) -> BankAccountEntity:
        """Get a bank account by ID.

        Raises:
            NotFoundError: If the account does not exist
            PermissionDeniedError: If it belongs to another tenant
        """
        return require_bank_account(self.db, tenant_id, account_id)

    def list_accounts(self, tenant_id: str, active_only: bool = True) -> list[BankAccountEntity]:
        """List the tenant's bank accounts ordered by name."""
        return self.db.list_bank_accounts(tenant_id, active_only=active_only)

    def update_account(
        self,
        tenant_id: str,
        account_id: int,
        name: Optional[str] = None,
        bank_name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> BankAccountEntity:
        """Update name, bank name and currency.

        Account number, type and balances cannot be changed here.
        """
        require_bank_account(self.db, tenant_id, account_id)
        if name is not None and not name.strip():
            raise ValidationError("Account name must not be empty")
        if currency is not None:
            currency = _normalize_currency(currency)
        self.db.update_bank_account(
            account_id,
            name=name.strip() if name is not None else None,
            bank_name=bank_name.strip() if bank_name is not None else None,
            currency=currency,
        )
        return require_bank_account(self.db, tenant_id, account_id)

    def deactivate_account(self, tenant_id: str, account_id: int) -> None:
        """Soft-delete a bank account; its statements stay intact."""
        require_bank_account(self.db, tenant_id, account_id)
        self.db.set_bank_account_active(account_id, False)
        logger.info("Deactivated bank account %s", account_id)

    def activate_account(self, tenant_id: str, account_id: int) -> None:
        """Re-activate a deactivated bank account."""
        require_bank_account(self.db, tenant_id, account_id)
        self.db.set_bank_account_active(account_id, True)

    def delete_account(self, tenant_id: str, account_id: int) -> None:
        """Delete a bank account that has no statements and no ledger movements.

        Raises:
            DependencyError: If statements or ledger movements still reference the account
        """
        require_bank_account(self.db, tenant_id, account_id)
        statement_count = self.db.count_statements(account_id)
        if statement_count > 0:
            raise DependencyError(account_delete_blocked(account_id, statement_count))
        movements = self.db.list_movements(tenant_id, account_id)
        if movements:
            raise DependencyError(account_delete_blocked_by_movements(account_id, len(movements)))
        self.db.delete_bank_account(account_id)
        logger.info("Deleted bank account %s", account_id)
