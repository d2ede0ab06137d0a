"""Ledger movement commands.

Movements normally come from the ledger and payment subsystems; these
commands seed and inspect the local view the matching engine reads.
"""

import click
from bankrec.cli.error_handling import domain_errors
from bankrec.domain.account import BankAccountService
from bankrec.domain.entities import CENTS, Direction, MovementKind, MovementRef
from bankrec.domain.errors import ConflictError, ValidationError
from bankrec.utils.account_resolver import resolve_account
from bankrec.utils.amount_parser import parse_amount
from bankrec.utils.date_parser import parse_date


@click.group()
def movement_group():
    """Manage ledger movements available for matching."""
    pass


@movement_group.command("add")
@click.argument("movement_id", metavar="MOVEMENT_ID")
@click.option("--account", required=True, help="Bank account (name, number or ID)")
@click.option("--amount", required=True, help="Signed amount: positive for inflows, negative for outflows")
@click.option("--date", "movement_date", required=True, help="Movement date")
@click.option("--reference", help="Reference text")
@click.option("--payment", is_flag=True, help="Movement is a recorded payment (default: journal entry)")
@click.pass_context
def add_movement(
    ctx,
    movement_id: str,
    account: str,
    amount: str,
    movement_date: str,
    reference: str | None,
    payment: bool,
):
    """Add a journal entry or payment to the ledger view.

    Examples:
        bankrec movement add JE-1001 --account Operating --amount 100.00 --date 2024-03-05
        bankrec movement add PAY-77 --account Operating --amount -50 --date 2024-03-06 --payment
    """
    db = ctx.obj["db"]
    tenant = ctx.obj["tenant"]
    kind = MovementKind.PAYMENT if payment else MovementKind.JOURNAL_ENTRY

    with domain_errors(ctx):
        account_id = resolve_account(BankAccountService(db), tenant, account)
        signed = parse_amount(amount).quantize(CENTS)
        if signed == 0:
            raise ValidationError("Movement amount must not be zero")
        ref = MovementRef(kind, movement_id)
        if db.get_movement(ref) is not None:
            raise ConflictError(f"Movement {ref} already exists")
        db.create_movement(
            tenant_id=tenant,
            bank_account_id=account_id,
            kind=kind,
            movement_id=movement_id,
            amount=abs(signed),
            direction=Direction.INFLOW if signed > 0 else Direction.OUTFLOW,
            movement_date=parse_date(movement_date),
            reference=reference,
        )
        click.echo(f"Added movement {ref} ({signed:,.2f})")


@movement_group.command("list")
@click.option("--account", required=True, help="Bank account (name, number or ID)")
@click.option("--from", "date_from", help="Earliest date")
@click.option("--to", "date_to", help="Latest date")
@click.pass_context
def list_movements(ctx, account: str, date_from: str | None, date_to: str | None):
    """List ledger movements of a bank account with their claim state."""
    db = ctx.obj["db"]
    tenant = ctx.obj["tenant"]

    with domain_errors(ctx):
        account_id = resolve_account(BankAccountService(db), tenant, account)
        movements = db.list_movements(
            tenant,
            account_id,
            date_from=parse_date(date_from) if date_from else None,
            date_to=parse_date(date_to) if date_to else None,
        )

    if not movements:
        click.echo("No movements found.")
        return

    claimed = db.claimed_movements([m.ref for m in movements])
    for m in movements:
        state = "claimed" if m.ref in claimed else "open"
        click.echo(
            f"{m.date.isoformat()} | {str(m.ref):24s} | {m.signed_amount:>14,.2f} | "
            f"{(m.reference or ''):20s} | {state}"
        )


def register_commands(cli):
    """Register movement commands with main CLI."""
    cli.add_command(movement_group, name="movement")
