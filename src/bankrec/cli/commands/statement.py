"""Bank statement commands."""

from pathlib import Path

import click
from bankrec.cli.commands.reconcile import build_reconciliation_service, echo_result
from bankrec.cli.error_handling import domain_errors
from bankrec.domain.account import BankAccountService
from bankrec.domain.entities import LineStatus
from bankrec.domain.errors import ValidationError
from bankrec.utils.account_resolver import resolve_account
from bankrec.utils.date_parser import month_range, parse_date
from bankrec.utils.statement_csv import read_statement_csv, statement_period


@click.group()
def statement_group():
    """Import and inspect bank statements."""
    pass


@statement_group.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Bank account (name, number or ID)")
@click.option("--period-start", help="First day covered (defaults to the earliest line date)")
@click.option("--period-end", help="Last day covered (defaults to the latest line date)")
@click.option("--month", help="Statement month as YYYY-MM (sets both period bounds)")
@click.option("--dayfirst", is_flag=True, help="Read numeric dates as day/month/year")
@click.option("--match", "run_match", is_flag=True, help="Run automatic matching right after import")
@click.pass_context
def import_statement(
    ctx,
    csv_file: str,
    account: str,
    period_start: str | None,
    period_end: str | None,
    month: str | None,
    dayfirst: bool,
    run_match: bool,
):
    """Import a statement CSV with columns Date,Description,Reference,Debit,Credit,Balance.

    Examples:
        bankrec statement import march.csv --account Operating --match
        bankrec statement import march.csv --account 0012345 --month 2024-03
        bankrec statement import march.csv --account 7 --period-start 2024-03-01 --period-end 2024-03-31
    """
    db = ctx.obj["db"]
    tenant = ctx.obj["tenant"]
    service = build_reconciliation_service(db)

    with domain_errors(ctx):
        account_id = resolve_account(BankAccountService(db), tenant, account)
        lines = read_statement_csv(csv_file, dayfirst=dayfirst)
        if not lines:
            raise ValidationError(f"{csv_file} contains no statement lines")
        first, last = statement_period(lines)
        if month:
            if period_start or period_end:
                raise ValidationError("Use either --month or --period-start/--period-end, not both")
            first, last = month_range(month)
        start = parse_date(period_start) if period_start else first
        end = parse_date(period_end) if period_end else last

        if run_match:
            result = service.import_and_match(
                tenant,
                account_id,
                Path(csv_file).name,
                start,
                end,
                lines,
                imported_by=ctx.obj.get("user"),
            )
            click.echo(f"Imported statement {result.statement_id} with {len(lines)} lines")
            echo_result(result)
        else:
            statement_id = service.import_statement(
                tenant,
                account_id,
                Path(csv_file).name,
                start,
                end,
                lines,
                imported_by=ctx.obj.get("user"),
            )
            click.echo(f"Imported statement {statement_id} with {len(lines)} lines")


@statement_group.command("list")
@click.option("--account", required=True, help="Bank account (name, number or ID)")
@click.pass_context
def list_statements(ctx, account: str):
    """List a bank account's statements, newest period first."""
    db = ctx.obj["db"]
    tenant = ctx.obj["tenant"]
    service = build_reconciliation_service(db)

    with domain_errors(ctx):
        account_id = resolve_account(BankAccountService(db), tenant, account)
        statements = service.statements.list_statements(tenant, account_id)

    if not statements:
        click.echo("No statements found.")
        return

    for s in statements:
        click.echo(
            f"ID: {s.id:3d} | {s.period_start.isoformat()}..{s.period_end.isoformat()} | "
            f"{s.file_name:25s} | {s.matched_lines:4d}/{s.total_lines:<4d} "
            f"{s.match_percentage:>6}% | {s.status.value}"
        )


@statement_group.command("show")
@click.argument("statement_id", type=int)
@click.option(
    "--status",
    type=click.Choice([s.value for s in LineStatus], case_sensitive=False),
    help="Only show lines with this status",
)
@click.pass_context
def show_statement(ctx, statement_id: int, status: str | None):
    """Show a statement and its lines."""
    db = ctx.obj["db"]
    tenant = ctx.obj["tenant"]
    service = build_reconciliation_service(db)

    with domain_errors(ctx):
        s = service.statements.get_statement(tenant, statement_id)
        lines = service.statements.get_lines(
            tenant, statement_id, status=LineStatus(status.upper()) if status else None
        )

    click.echo(f"Statement {s.id}: {s.file_name}")
    click.echo(f"Period:   {s.period_start.isoformat()} .. {s.period_end.isoformat()}")
    click.echo(f"Status:   {s.status.value} ({s.matched_lines}/{s.total_lines}, {s.match_percentage}%)")
    if s.imported_by:
        click.echo(f"Imported by {s.imported_by} at {s.imported_at:%Y-%m-%d %H:%M}")
    click.echo("-" * 100)
    for line in lines:
        matched = str(line.matched_movement) if line.matched_movement else ""
        click.echo(
            f"{line.id:5d} | {line.line_date.isoformat()} | {line.description[:30]:30s} | "
            f"{line.signed_amount:>14,.2f} | {line.status.value:16s} | {matched}"
        )


@statement_group.command("delete")
@click.argument("statement_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_statement(ctx, statement_id: int, yes: bool):
    """Delete a statement, releasing its matches and their balance effect.

    Fully reconciled statements cannot be deleted.
    """
    db = ctx.obj["db"]
    tenant = ctx.obj["tenant"]
    service = build_reconciliation_service(db)

    with domain_errors(ctx):
        s = service.statements.get_statement(tenant, statement_id)

    if not yes and not click.confirm(
        f"Delete statement {s.id} ({s.file_name}) and its {s.total_lines} lines?"
    ):
        click.echo("Deletion cancelled.")
        return

    with domain_errors(ctx):
        service.statements.delete_statement(tenant, statement_id)
        click.echo(f"Deleted statement {statement_id}")


def register_commands(cli):
    """Register statement commands with main CLI."""
    cli.add_command(statement_group, name="statement")
