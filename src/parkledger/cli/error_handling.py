"""CLI error handling and output helpers."""

import json
import logging
from typing import Any

import click

from parkledger.domain.errors import BudgetImportError, DomainError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, BudgetImportError):
        for row_error in error.row_errors:
            click.echo(f"  {row_error}", err=True)
    ctx.exit(1)


def handle_unexpected_error(error: Exception) -> None:
    """Log an unexpected failure with full detail and print a generic message."""
    logger.error("Unexpected failure: %s", error, exc_info=error)
    click.echo("Error: unexpected failure, see the log for details", err=True)


def echo_json(data: Any) -> None:
    """Print data as indented JSON (decimals and dates as strings)."""
    click.echo(json.dumps(data, indent=2, default=str, ensure_ascii=False))
