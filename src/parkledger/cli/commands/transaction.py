"""Transaction commands."""

import click
from parkledger.cli.account_resolution import resolve_account_or_exit
from parkledger.cli.date_filters import parse_date_or_exit, resolve_cli_date_range
from parkledger.cli.error_handling import handle_domain_error
from parkledger.domain.chart import ChartOfAccountsService
from parkledger.domain.entities import NewTransaction, TransactionType
from parkledger.domain.transaction import TransactionService
from parkledger.utils.amount_parser import parse_amount
from parkledger.utils.date_parser import parse_date


@click.group()
def transaction_group():
    """Record and manage income and expense transactions."""
    pass


@transaction_group.command("add")
@click.argument("transaction_type", type=click.Choice(["income", "expense"]))
@click.argument("amount")
@click.option("--category", required=True, help="Category code or ID")
@click.option("--date", "date_str", default="today", show_default=True, help="Transaction date")
@click.option("--description", default="", help="Transaction description")
@click.option("--reference", help="Reference number")
@click.pass_context
def add_transaction(
    ctx,
    transaction_type: str,
    amount: str,
    category: str,
    date_str: str,
    description: str,
    reference: str | None,
):
    """Record a transaction and generate its journal entry.

    Examples:
        parkledger transaction add income 1000 --category 401.01 --description "Renta de cancha"
        parkledger transaction add expense 250 --category 501.01 --date 2025-03-15
    """
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]
    service = TransactionService(db, settings)
    chart = ChartOfAccountsService(db)

    category_account = resolve_account_or_exit(ctx, chart, category)
    txn_date = parse_date_or_exit(ctx, date_str, "date")
    try:
        txn_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        result = service.record_transaction(
            NewTransaction(
                transaction_type=TransactionType(transaction_type),
                amount=txn_amount,
                date=txn_date,
                category_id=category_account.id,
                description=description,
                reference=reference,
            )
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    txn = result.transaction
    click.echo(f"Recorded {txn.transaction_type.value} transaction {txn.id} for {txn.amount}")
    if result.entry is not None:
        click.echo(f"Journal entry {result.entry.entry_number} ({result.entry.status.value})")
    if result.warning:
        click.echo(f"Warning: {result.warning}", err=True)


@transaction_group.command("list")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive)")
@click.option("--type", "transaction_type", type=click.Choice(["income", "expense"]))
@click.option("--category", help="Category code or ID")
@click.option("--unlinked", is_flag=True, help="Only transactions without a journal entry")
@click.option("--limit", type=int, help="Maximum rows")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    transaction_type: str | None,
    category: str | None,
    unlinked: bool,
    limit: int | None,
):
    """List transactions, newest first."""
    db = ctx.obj["db"]
    service = TransactionService(db, ctx.obj["settings"])
    chart = ChartOfAccountsService(db)

    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date)
    category_id = resolve_account_or_exit(ctx, chart, category).id if category else None

    transactions = service.list_transactions(
        start_date=start,
        end_date=end,
        transaction_type=transaction_type,
        category_id=category_id,
        unlinked_only=unlinked,
        limit=limit,
    )
    if not transactions:
        click.echo("No transactions found.")
        return

    accounts = {acc.id: acc for acc in chart.list_accounts(active_only=False)}
    click.echo(f"{'ID':>5} {'Date':10} {'Type':7} {'Amount':>12} {'Category':10} {'Entry':>6} Description")
    click.echo("-" * 80)
    for txn in transactions:
        acc = accounts.get(txn.category_id)
        code = acc.code if acc else "?"
        entry = str(txn.journal_entry_id) if txn.journal_entry_id else "-"
        click.echo(
            f"{txn.id:>5} {txn.date.isoformat():10} {txn.transaction_type.value:7} "
            f"{txn.amount:>12} {code:10} {entry:>6} {txn.description}"
        )


@transaction_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--description", help="New description")
@click.option("--reference", help="New reference")
@click.option("--amount", help="New amount (only while no journal entry is linked)")
@click.option("--date", "date_str", help="New date (only while no journal entry is linked)")
@click.option("--category", help="New category code or ID (only while unlinked)")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    description: str | None,
    reference: str | None,
    amount: str | None,
    date_str: str | None,
    category: str | None,
):
    """Update a transaction."""
    db = ctx.obj["db"]
    service = TransactionService(db, ctx.obj["settings"])
    chart = ChartOfAccountsService(db)

    txn_amount = None
    if amount is not None:
        try:
            txn_amount = parse_amount(amount)
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)
    txn_date = None
    if date_str is not None:
        try:
            txn_date = parse_date(date_str)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)
    category_id = resolve_account_or_exit(ctx, chart, category).id if category else None

    try:
        service.update_transaction(
            transaction_id,
            description=description,
            reference=reference,
            amount=txn_amount,
            date=txn_date,
            category_id=category_id,
        )
        click.echo(f"Updated transaction {transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool):
    """Delete a transaction (its journal entry is kept)."""
    db = ctx.obj["db"]
    service = TransactionService(db, ctx.obj["settings"])

    txn = service.get_transaction(transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Delete transaction {transaction_id} ({txn.amount})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_transaction(transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted transaction {transaction_id}")
    if txn.journal_entry_id is not None:
        click.echo(
            f"Journal entry {txn.journal_entry_id} was kept; reverse it with "
            f"'parkledger journal reverse {txn.journal_entry_id}' if needed"
        )


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
