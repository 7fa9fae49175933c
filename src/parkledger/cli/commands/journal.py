"""Journal entry commands."""

import click
from parkledger.cli.account_resolution import resolve_account_or_exit
from parkledger.cli.date_filters import parse_date_or_exit, resolve_cli_date_range
from parkledger.cli.error_handling import echo_json, handle_domain_error
from parkledger.domain.chart import ChartOfAccountsService
from parkledger.domain.entities import JournalLineInput
from parkledger.domain.journal import JournalService
from parkledger.utils.amount_parser import parse_amount


def _entry_dict(entry) -> dict:
    return {
        "id": entry.id,
        "entryNumber": entry.entry_number,
        "date": entry.date,
        "description": entry.description,
        "reference": entry.reference,
        "status": entry.status.value,
        "totalDebit": entry.total_debit,
        "totalCredit": entry.total_credit,
        "lines": [
            {
                "accountId": line.account_id,
                "debit": line.debit,
                "credit": line.credit,
                "description": line.description,
            }
            for line in entry.lines
        ],
    }


@click.group()
def journal_group():
    """Manage journal entries."""
    pass


@journal_group.command("list")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive)")
@click.option("--status", type=click.Choice(["draft", "approved", "posted"]))
@click.option("--limit", type=int, help="Maximum rows")
@click.pass_context
def list_entries(ctx, start_date, end_date, status, limit):
    """List journal entries."""
    db = ctx.obj["db"]
    service = JournalService(db, ctx.obj["settings"])

    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date)
    entries = service.list_entries(start_date=start, end_date=end, status=status, limit=limit)
    if not entries:
        click.echo("No journal entries found.")
        return

    click.echo(f"{'ID':>5} {'Number':18} {'Date':10} {'Status':8} {'Amount':>12} Description")
    click.echo("-" * 80)
    for entry in entries:
        click.echo(
            f"{entry.id:>5} {entry.entry_number:18} {entry.date.isoformat():10} "
            f"{entry.status.value:8} {entry.total_debit:>12} {entry.description}"
        )


@journal_group.command("show")
@click.argument("entry_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def show_entry(ctx, entry_id: int, as_json: bool):
    """Show one journal entry with its lines."""
    db = ctx.obj["db"]
    service = JournalService(db, ctx.obj["settings"])
    chart = ChartOfAccountsService(db)

    entry = service.get_entry(entry_id)
    if entry is None:
        click.echo(f"Error: Journal entry {entry_id} not found", err=True)
        ctx.exit(1)
    if as_json:
        echo_json(_entry_dict(entry))
        return

    click.echo(f"{entry.entry_number}  {entry.date.isoformat()}  [{entry.status.value}]")
    click.echo(entry.description)
    if entry.reference:
        click.echo(f"Reference: {entry.reference}")
    click.echo("-" * 70)
    for line in entry.lines:
        acc = chart.get_account(line.account_id)
        label = f"{acc.code} {acc.name}" if acc else f"<unknown account {line.account_id}>"
        click.echo(f"{label:40} {line.debit:>12} {line.credit:>12}")
    click.echo("-" * 70)
    click.echo(f"{'Totals':40} {entry.total_debit:>12} {entry.total_credit:>12}")


@journal_group.command("create")
@click.option("--date", "date_str", default="today", show_default=True)
@click.option("--description", required=True)
@click.option("--reference")
@click.option(
    "--line",
    "lines",
    multiple=True,
    required=True,
    help="ACCOUNT:DEBIT:CREDIT, e.g. 101.02:500:0 (repeat for each line)",
)
@click.pass_context
def create_entry(ctx, date_str: str, description: str, reference: str | None, lines):
    """Create a draft manual journal entry."""
    db = ctx.obj["db"]
    service = JournalService(db, ctx.obj["settings"])
    chart = ChartOfAccountsService(db)

    entry_date = parse_date_or_exit(ctx, date_str, "date")
    line_inputs = []
    for raw in lines:
        parts = raw.split(":")
        if len(parts) != 3:
            click.echo(f"Error: Invalid line '{raw}', expected ACCOUNT:DEBIT:CREDIT", err=True)
            ctx.exit(1)
        acc = resolve_account_or_exit(ctx, chart, parts[0])
        try:
            debit = parse_amount(parts[1], blank_as_zero=True)
            credit = parse_amount(parts[2], blank_as_zero=True)
        except ValueError as e:
            click.echo(f"Error: Invalid amount in line '{raw}': {e}", err=True)
            ctx.exit(1)
        line_inputs.append(
            JournalLineInput(account_id=acc.id, debit=debit, credit=credit)
        )

    try:
        entry = service.create_manual_entry(
            entry_date, description, line_inputs, reference=reference
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created draft entry {entry.entry_number} (ID: {entry.id})")


@journal_group.command("approve")
@click.argument("entry_id", type=int)
@click.pass_context
def approve_entry(ctx, entry_id: int):
    """Approve a draft entry."""
    service = JournalService(ctx.obj["db"], ctx.obj["settings"])
    try:
        entry = service.approve_entry(entry_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Entry {entry.entry_number} approved")


@journal_group.command("post")
@click.argument("entry_id", type=int)
@click.pass_context
def post_entry(ctx, entry_id: int):
    """Post an approved entry to the ledger."""
    service = JournalService(ctx.obj["db"], ctx.obj["settings"])
    try:
        entry = service.post_entry(entry_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Entry {entry.entry_number} posted")


@journal_group.command("reverse")
@click.argument("entry_id", type=int)
@click.option("--date", "date_str", help="Reversal date (defaults to today)")
@click.pass_context
def reverse_entry(ctx, entry_id: int, date_str: str | None):
    """Create an offsetting entry for a posted entry."""
    service = JournalService(ctx.obj["db"], ctx.obj["settings"])
    reversal_date = parse_date_or_exit(ctx, date_str, "date")
    try:
        reversal = service.reverse_entry(entry_id, reversal_date=reversal_date)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created reversal {reversal.entry_number} (ID: {reversal.id})")


@journal_group.command("sync")
@click.option("--limit", type=int, help="Maximum transactions (default PARKLEDGER_CATCH_UP_LIMIT)")
@click.pass_context
def sync_entries(ctx, limit: int | None):
    """Generate missing entries for transactions, oldest first."""
    service = JournalService(ctx.obj["db"], ctx.obj["settings"])
    try:
        result = service.generate_automatic_entries_for_unprocessed(limit=limit)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(
        f"Processed {result.processed} transactions: "
        f"{len(result.succeeded)} succeeded, {len(result.failed)} failed"
    )
    for failure in result.failed:
        click.echo(f"  Transaction {failure.transaction_id}: {failure.message}", err=True)
    if result.failed:
        ctx.exit(1)


@journal_group.command("stats")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def show_stats(ctx, as_json: bool):
    """Show how many transactions are linked to journal entries."""
    service = JournalService(ctx.obj["db"], ctx.obj["settings"])
    stats = service.integration_stats()
    if as_json:
        echo_json(
            {
                "income": {"total": stats.income_total, "linked": stats.income_linked},
                "expense": {"total": stats.expense_total, "linked": stats.expense_linked},
                "entries": {"total": stats.entries_total, "automatic": stats.entries_automatic},
                "pending": stats.pending,
            }
        )
        return
    click.echo(f"Income transactions:  {stats.income_linked}/{stats.income_total} linked")
    click.echo(f"Expense transactions: {stats.expense_linked}/{stats.expense_total} linked")
    click.echo(f"Journal entries:      {stats.entries_total} ({stats.entries_automatic} automatic)")
    click.echo(f"Pending:              {stats.pending}")


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
