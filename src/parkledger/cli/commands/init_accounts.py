"""Initialize the default chart of accounts."""

import click
from parkledger.domain.chart import ChartOfAccountsService


@click.command("init-accounts")
@click.pass_context
def init_accounts(ctx):
    """Initialize database with the default municipal chart of accounts."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)

    if service.list_accounts(active_only=False):
        click.echo("Accounts already exist. Nothing to do.")
        return

    click.echo("Creating default chart of accounts...")
    try:
        created = service.seed_default_chart()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(f"Successfully created {created} accounts.")


def register_commands(cli):
    """Register init-accounts command with main CLI."""
    cli.add_command(init_accounts)
