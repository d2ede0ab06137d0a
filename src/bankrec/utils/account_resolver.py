"""Utility for resolving bank account references to IDs."""

from bankrec.domain.account import BankAccountService
from bankrec.domain.errors import NotFoundError


def resolve_account(service: BankAccountService, tenant_id: str, account: str | int) -> int:
    """Resolve a bank account ID, account number or name to an ID.

    Lookups only consider the tenant's own accounts, inactive ones
    included so they can be re-activated. Numeric input is tried as an
    ID first, then as an account number.

    Raises:
        NotFoundError: If no account matches within the tenant
    """
    if isinstance(account, int):
        return service.get_account(tenant_id, account).id

    text = account.strip()
    accounts = service.list_accounts(tenant_id, active_only=False)

    if text.isdigit():
        for acc in accounts:
            if acc.id == int(text):
                return acc.id
    for acc in accounts:
        if acc.account_number == text:
            return acc.id
    for acc in accounts:
        if acc.name == text:
            return acc.id

    raise NotFoundError(f"Bank account '{account}' not found")
