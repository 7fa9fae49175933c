"""CLI helpers for date and period options."""

from datetime import date

import click

from parkledger.utils.date_parser import parse_date, parse_period


def parse_date_or_exit(ctx: click.Context, value: str | None, label: str) -> date | None:
    """Parse an optional date option, or exit with a CLI error."""
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def parse_period_or_exit(ctx: click.Context, value: str) -> str:
    """Parse a YYYY-MM period option, or exit with a CLI error."""
    try:
        return parse_period(value)
    except ValueError as e:
        click.echo(f"Error: Invalid period: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
) -> tuple[date | None, date | None]:
    """Resolve --start-date/--end-date options into dates."""
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")
    if start is not None and end is not None and start > end:
        click.echo("Error: --start-date must not be after --end-date", err=True)
        ctx.exit(1)
    return start, end
