"""Main CLI entry point."""

import logging

import click
from bankrec.config import DEFAULT_TENANT
from bankrec.database.factories import create_sqlite_database

# Import and register all commands at module level
from bankrec.cli.commands import (
    account,
    movement,
    statement,
    reconcile,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BANKREC_DB_PATH environment variable)",
    envvar="BANKREC_DB_PATH",
)
@click.option(
    "--tenant",
    default=DEFAULT_TENANT,
    show_default=True,
    help="Tenant whose data the command operates on",
    envvar="BANKREC_TENANT",
)
@click.option("--user", help="User recorded on imports and manual matches", envvar="BANKREC_USER")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, tenant: str, user: str | None, verbose: bool):
    """Bankrec - Bank statement reconciliation.

    Import bank statements, match their lines against ledger movements
    and resolve the rest by hand.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj["tenant"] = tenant
    ctx.obj["user"] = user

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None and "db" not in ctx.obj:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
movement.register_commands(cli)
statement.register_commands(cli)
reconcile.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
