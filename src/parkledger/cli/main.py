"""Main CLI entry point."""

import sys
from dataclasses import replace

import click

from parkledger.config import load_settings
from parkledger.database.factories import create_database
from parkledger.domain.errors import ConfigError
from parkledger.logging_config import configure_logging
from parkledger.cli.error_handling import handle_unexpected_error

# Import and register all commands at module level
from parkledger.cli.commands import (
    init_accounts,
    account,
    transaction,
    journal,
    report,
    budget,
    cashflow,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides PARKLEDGER_DB_PATH environment variable)",
    envvar="PARKLEDGER_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (overrides PARKLEDGER_LOG_LEVEL)",
    envvar="PARKLEDGER_LOG_LEVEL",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    help="Log output format (overrides PARKLEDGER_LOG_FORMAT)",
    envvar="PARKLEDGER_LOG_FORMAT",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None, log_format: str | None):
    """Parkledger - Municipal parks accounting ledger.

    Keep a chart of accounts, record income and expenses with automatic
    double-entry journal entries, run trial balances and statements, and plan
    a monthly budget to compare against realized cash flow.
    """
    ctx.ensure_object(dict)

    # Initialize settings and database only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is None:
        return

    try:
        settings = load_settings()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    overrides = {}
    if db_path is not None:
        overrides["database_path"] = db_path
    if log_level is not None:
        overrides["log_level"] = log_level.upper()
    if log_format is not None:
        overrides["log_format"] = log_format.lower()
    settings = replace(settings, **overrides)

    configure_logging(settings.log_level, settings.log_format)

    db = create_database(settings)
    db.connect()
    db.initialize_schema()
    ctx.obj["db"] = db
    ctx.obj["settings"] = settings
    ctx.call_on_close(db.disconnect)


# Register all commands
init_accounts.register_commands(cli)
account.register_commands(cli)
transaction.register_commands(cli)
journal.register_commands(cli)
report.register_commands(cli)
budget.register_commands(cli)
cashflow.register_commands(cli)


def main():
    """Main entry point for CLI."""
    try:
        cli()
    except Exception as e:
        handle_unexpected_error(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
