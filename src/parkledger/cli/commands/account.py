"""Chart of accounts commands."""

import click
from parkledger.cli.account_resolution import resolve_account_or_exit
from parkledger.cli.error_handling import echo_json, handle_domain_error
from parkledger.domain.chart import ChartOfAccountsService


def _account_dict(account) -> dict:
    return {
        "id": account.id,
        "code": account.code,
        "name": account.name,
        "level": account.level,
        "parentId": account.parent_id,
        "nature": account.nature.value,
        "isActive": account.is_active,
        "fullPath": account.full_path,
        "sortOrder": account.sort_order,
    }


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include inactive accounts")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def list_accounts(ctx, show_all: bool, as_json: bool):
    """List accounts ordered by code."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)

    accounts = service.list_accounts(active_only=not show_all)
    if as_json:
        echo_json([_account_dict(acc) for acc in accounts])
        return
    if not accounts:
        click.echo("No accounts found. Run 'parkledger init-accounts' first.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 70)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.code:10s} | {acc.nature.value:6s} | {acc.name}{status}"
        )


@account_group.command("tree")
@click.option("--all", "show_all", is_flag=True, help="Include inactive accounts")
@click.pass_context
def show_tree(ctx, show_all: bool):
    """Show the chart of accounts as a tree."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)

    tree = service.get_tree(active_only=not show_all)
    if not len(tree):
        click.echo("No accounts found.")
        return
    for acc, depth in tree.walk():
        status = "" if acc.is_active else " (inactive)"
        click.echo(f"{'  ' * depth}{acc.code} {acc.name} [{acc.nature.value}]{status}")


@account_group.command("create")
@click.argument("code")
@click.argument("name")
@click.option("--parent", help="Parent account code or ID")
@click.option(
    "--nature",
    type=click.Choice(["debit", "credit"]),
    help="Natural balance side (defaults to the parent's)",
)
@click.option("--description", help="Account description")
@click.option("--sort-order", type=int, default=0, show_default=True)
@click.pass_context
def create_account(
    ctx,
    code: str,
    name: str,
    parent: str | None,
    nature: str | None,
    description: str | None,
    sort_order: int,
):
    """Create an account.

    Examples:
        parkledger account create 401.04 "Ingresos por eventos" --parent 401
        parkledger account create 600 "Cuentas de orden" --nature debit
    """
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)

    parent_account = None
    if parent is not None:
        parent_account = resolve_account_or_exit(ctx, service, parent)
    if nature is None:
        if parent_account is None:
            click.echo("Error: --nature is required for root accounts", err=True)
            ctx.exit(1)
        nature = parent_account.nature.value

    try:
        account_id = service.create_account(
            code=code,
            name=name,
            level=None,
            nature=nature,
            parent_id=parent_account.id if parent_account else None,
            description=description,
            sort_order=sort_order,
        )
        click.echo(f"Created account {code} '{name}' (ID: {account_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("rename")
@click.argument("account")
@click.argument("new_name")
@click.option("--description", help="New description")
@click.pass_context
def rename_account(ctx, account: str, new_name: str, description: str | None):
    """Rename an account (ACCOUNT is a code or ID)."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)
    acc = resolve_account_or_exit(ctx, service, account)

    try:
        service.update_account(acc.id, name=new_name, description=description)
        click.echo(f"Renamed account {acc.code} to '{new_name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("move")
@click.argument("account")
@click.option("--parent", help="New parent code or ID (omit to make it a root)")
@click.pass_context
def move_account(ctx, account: str, parent: str | None):
    """Move an account under a new parent."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)
    acc = resolve_account_or_exit(ctx, service, account)
    parent_id = resolve_account_or_exit(ctx, service, parent).id if parent else None

    try:
        service.move_account(acc.id, parent_id)
        moved = service.get_account(acc.id)
        click.echo(f"Moved account {acc.code}; new path {moved.full_path}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("deactivate")
@click.argument("account")
@click.pass_context
def deactivate_account(ctx, account: str):
    """Deactivate an account nothing depends on."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)
    acc = resolve_account_or_exit(ctx, service, account)

    try:
        service.deactivate_account(acc.id)
        click.echo(f"Deactivated account {acc.code} '{acc.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("reactivate")
@click.argument("account")
@click.pass_context
def reactivate_account(ctx, account: str):
    """Reactivate a deactivated account."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)
    acc = resolve_account_or_exit(ctx, service, account)

    try:
        service.reactivate_account(acc.id)
        click.echo(f"Reactivated account {acc.code} '{acc.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("path")
@click.argument("code")
@click.pass_context
def show_path(ctx, code: str):
    """Show the ancestor chain of an account code."""
    db = ctx.obj["db"]
    service = ChartOfAccountsService(db)

    try:
        chain = service.resolve_path(code)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(" > ".join(f"{acc.code} {acc.name}" for acc in chain))


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
