"""Reconciliation commands: automatic runs, manual matches and results."""

import click
from bankrec.cli.error_handling import domain_errors
from bankrec.config import get_lock_timeout, load_match_policy
from bankrec.database.base import Database
from bankrec.domain.entities import MovementKind, MovementRef, ReconciliationResult
from bankrec.domain.reconciliation import ReconciliationService


def build_reconciliation_service(db: Database) -> ReconciliationService:
    """Create the service with policy and lock timeout from the environment."""
    return ReconciliationService(db, policy=load_match_policy(), lock_timeout=get_lock_timeout())


def echo_result(result: ReconciliationResult) -> None:
    """Print a ReconciliationResult summary."""
    click.echo(f"Statement {result.statement_id}:")
    click.echo(f"  New matches: {result.new_matches}")
    click.echo(f"  Matched:     {result.matched_lines}/{result.total_lines} ({result.match_percentage}%)")
    if result.conflicts:
        click.echo(f"  Conflicts:   {result.conflicts} (claimed concurrently, left unmatched)")
    if result.cancelled:
        click.echo("  Run was cancelled before all lines were evaluated.")


def _service(ctx) -> ReconciliationService:
    with domain_errors(ctx):
        return build_reconciliation_service(ctx.obj["db"])


@click.group()
def reconcile_group():
    """Match statement lines against ledger movements."""
    pass


@reconcile_group.command("run")
@click.argument("statement_id", type=int)
@click.option("--timeout", type=float, help="Give up (without changes) after this many seconds")
@click.pass_context
def run_matching(ctx, statement_id: int, timeout: float | None):
    """Run automatic matching for a statement.

    Only unmatched lines are considered, so the command can be re-run safely.
    """
    service = _service(ctx)
    with domain_errors(ctx):
        result = service.run_matching(ctx.obj["tenant"], statement_id, timeout=timeout)
    echo_result(result)


@reconcile_group.command("match")
@click.argument("line_id", type=int)
@click.argument("movement_id", metavar="MOVEMENT_ID")
@click.option("--payment", is_flag=True, help="MOVEMENT_ID is a payment (default: journal entry)")
@click.pass_context
def manual_match(ctx, line_id: int, movement_id: str, payment: bool):
    """Manually match a statement line to a movement.

    A line that is already matched is re-pointed to the new movement.

    Examples:
        bankrec reconcile match 42 JE-1001
        bankrec reconcile match 43 PAY-77 --payment
    """
    service = _service(ctx)
    ref = MovementRef(MovementKind.PAYMENT if payment else MovementKind.JOURNAL_ENTRY, movement_id)
    with domain_errors(ctx):
        line = service.manual_match(ctx.obj["tenant"], line_id, ref, matched_by=ctx.obj.get("user"))
    click.echo(f"Line {line.id} matched to {ref} ({line.status.value})")


@reconcile_group.command("unmatch")
@click.argument("line_id", type=int)
@click.pass_context
def unmatch(ctx, line_id: int):
    """Undo the match of a statement line."""
    service = _service(ctx)
    with domain_errors(ctx):
        line = service.unmatch(ctx.obj["tenant"], line_id)
    click.echo(f"Line {line.id} is now {line.status.value}")


@reconcile_group.command("candidates")
@click.argument("line_id", type=int)
@click.pass_context
def candidates(ctx, line_id: int):
    """Show unclaimed movements near a line, best first."""
    service = _service(ctx)
    with domain_errors(ctx):
        scores = service.suggest_candidates(ctx.obj["tenant"], line_id)

    if not scores:
        click.echo("No unclaimed movements within the date window.")
        return

    for s in scores:
        amount = "exact" if s.amount_matches else "differs"
        click.echo(
            f"{str(s.movement.ref):24s} | {s.movement.date.isoformat()} | "
            f"{s.movement.signed_amount:>14,.2f} | amount {amount:7s} | score {s.score:6.2f}"
        )


@reconcile_group.command("result")
@click.argument("statement_id", type=int)
@click.pass_context
def result(ctx, statement_id: int):
    """Show the current reconciliation state of a statement."""
    service = _service(ctx)
    with domain_errors(ctx):
        summary = service.get_reconciliation_result(ctx.obj["tenant"], statement_id)
    echo_result(summary)


def register_commands(cli):
    """Register reconciliation commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
