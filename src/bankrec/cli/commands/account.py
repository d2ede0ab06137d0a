"""Bank account management commands."""

import click
from bankrec.cli.error_handling import domain_errors
from bankrec.domain.account import DEFAULT_CURRENCY, BankAccountService
from bankrec.domain.entities import AccountType
from bankrec.domain.progress import BalanceTracker
from bankrec.utils.account_resolver import resolve_account
from bankrec.utils.amount_parser import parse_amount


@click.group()
def account_group():
    """Manage bank accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--bank", required=True, help="Bank name")
@click.option("--number", "account_number", required=True, help="Account number (unique per tenant)")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType], case_sensitive=False),
    default=AccountType.CHECKING.value,
    show_default=True,
)
@click.option("--currency", default=DEFAULT_CURRENCY, show_default=True)
@click.option("--initial-balance", default="0", help="Opening balance")
@click.option("--ledger-account", help="Chart-of-accounts code this account maps to")
@click.pass_context
def create_account(
    ctx,
    name: str,
    bank: str,
    account_number: str,
    account_type: str,
    currency: str,
    initial_balance: str,
    ledger_account: str | None,
):
    """Create a new bank account.

    Examples:
        bankrec account create "Operating" --bank "Bancolombia" --number 0012345
        bankrec account create "Reserve" --bank "Davivienda" --number 998 --type SAVINGS --initial-balance 1500000
    """
    service = BankAccountService(ctx.obj["db"])
    with domain_errors(ctx):
        account_id = service.create_account(
            ctx.obj["tenant"],
            name=name,
            bank_name=bank,
            account_number=account_number,
            account_type=account_type.upper(),
            currency=currency,
            initial_balance=parse_amount(initial_balance),
            ledger_account_code=ledger_account,
        )
        click.echo(f"Created bank account '{name}' (ID: {account_id})")


@account_group.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include deactivated accounts")
@click.pass_context
def list_accounts(ctx, show_all: bool):
    """List bank accounts."""
    service = BankAccountService(ctx.obj["db"])

    accounts = service.list_accounts(ctx.obj["tenant"], active_only=not show_all)
    if not accounts:
        click.echo("No bank accounts found.")
        return

    click.echo("\nBank accounts:")
    click.echo("-" * 80)
    for acc in accounts:
        inactive = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.bank_name:15s} | {acc.account_number:12s} | "
            f"{acc.current_balance:>14,.2f} {acc.currency}{inactive}"
        )


@account_group.command("show")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def show_account(ctx, account: str):
    """Show details of a bank account.

    ACCOUNT can be an account name, number or ID.
    """
    service = BankAccountService(ctx.obj["db"])
    with domain_errors(ctx):
        acc = service.get_account(ctx.obj["tenant"], resolve_account(service, ctx.obj["tenant"], account))

    click.echo(f"ID:              {acc.id}")
    click.echo(f"Name:            {acc.name}")
    click.echo(f"Bank:            {acc.bank_name}")
    click.echo(f"Number:          {acc.account_number}")
    click.echo(f"Type:            {acc.account_type.value}")
    click.echo(f"Currency:        {acc.currency}")
    click.echo(f"Initial balance: {acc.initial_balance:,.2f}")
    click.echo(f"Current balance: {acc.current_balance:,.2f}")
    click.echo(f"Active:          {'yes' if acc.is_active else 'no'}")
    if acc.ledger_account_code:
        click.echo(f"Ledger account:  {acc.ledger_account_code}")


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New display name")
@click.option("--bank", help="New bank name")
@click.option("--currency", help="New currency code")
@click.pass_context
def update_account(ctx, account: str, name: str | None, bank: str | None, currency: str | None):
    """Update a bank account's name, bank or currency."""
    if name is None and bank is None and currency is None:
        click.echo("Error: Nothing to update. Use --name, --bank or --currency.", err=True)
        ctx.exit(1)

    service = BankAccountService(ctx.obj["db"])
    tenant = ctx.obj["tenant"]
    with domain_errors(ctx):
        account_id = resolve_account(service, tenant, account)
        updated = service.update_account(tenant, account_id, name=name, bank_name=bank, currency=currency)
        click.echo(f"Updated bank account '{updated.name}' (ID: {updated.id})")


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str):
    """Deactivate a bank account. Its statements are kept."""
    service = BankAccountService(ctx.obj["db"])
    tenant = ctx.obj["tenant"]
    with domain_errors(ctx):
        account_id = resolve_account(service, tenant, account)
        service.deactivate_account(tenant, account_id)
        click.echo(f"Deactivated bank account {account_id}")


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str):
    """Re-activate a deactivated bank account."""
    service = BankAccountService(ctx.obj["db"])
    tenant = ctx.obj["tenant"]
    with domain_errors(ctx):
        account_id = resolve_account(service, tenant, account)
        service.activate_account(tenant, account_id)
        click.echo(f"Activated bank account {account_id}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool):
    """Delete a bank account.

    Only accounts without statements can be deleted; deactivate the
    others instead.
    """
    service = BankAccountService(ctx.obj["db"])
    tenant = ctx.obj["tenant"]
    with domain_errors(ctx):
        acc = service.get_account(tenant, resolve_account(service, tenant, account))

    if not yes and not click.confirm(
        f"Are you sure you want to delete bank account '{acc.name}' (ID: {acc.id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    with domain_errors(ctx):
        service.delete_account(tenant, acc.id)
        click.echo(f"Deleted bank account '{acc.name}'")


@account_group.command("audit")
@click.argument("account", metavar="ACCOUNT")
@click.option("--repair", is_flag=True, help="Overwrite the stored balance with the recomputed one")
@click.pass_context
def audit_account(ctx, account: str, repair: bool):
    """Compare the stored balance with a full recomputation.

    Exits with status 2 when they differ and --repair was not given.
    """
    db = ctx.obj["db"]
    service = BankAccountService(db)
    tracker = BalanceTracker(db)
    tenant = ctx.obj["tenant"]
    with domain_errors(ctx):
        account_id = resolve_account(service, tenant, account)
        result = tracker.audit(account_id)

    click.echo(f"Stored balance:   {result.stored_balance:,.2f}")
    click.echo(f"Computed balance: {result.computed_balance:,.2f}")
    if result.is_consistent:
        click.echo("Balance is consistent.")
        return

    click.echo(f"Difference:       {result.difference:,.2f}")
    if repair:
        with domain_errors(ctx):
            balance = tracker.recompute_full(account_id)
        click.echo(f"Repaired: current balance set to {balance:,.2f}")
    else:
        ctx.exit(2)


def register_commands(cli):
    """Register bank account commands with main CLI."""
    cli.add_command(account_group, name="account")
