"""CLI error handling helpers."""

from contextlib import contextmanager
from typing import Iterator

import click

from bankrec.domain.errors import DomainError

# EX_TEMPFAIL from sysexits.h
EXIT_TRANSIENT = 75


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure.

    Retryable errors exit with EX_TEMPFAIL so scripts can tell them apart.
    """
    click.echo(f"Error: {error}", err=True)
    if getattr(error, "retryable", False):
        click.echo("This is a temporary failure; nothing was changed. Retry the command.", err=True)
        ctx.exit(EXIT_TRANSIENT)
    ctx.exit(1)


@contextmanager
def domain_errors(ctx: click.Context) -> Iterator[None]:
    """Route domain (and parse) errors raised inside the block to handle_domain_error."""
    try:
        yield
    except ValueError as e:
        handle_domain_error(ctx, e)
