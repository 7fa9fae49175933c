"""Ledger report commands."""

import click
from parkledger.cli.account_resolution import resolve_account_or_exit
from parkledger.cli.date_filters import (
    parse_date_or_exit,
    parse_period_or_exit,
    resolve_cli_date_range,
)
from parkledger.cli.error_handling import echo_json, handle_domain_error
from parkledger.domain.chart import ChartOfAccountsService
from parkledger.domain.ledger import LedgerService


def _trial_balance_dict(trial_balance) -> dict:
    return {
        "period": trial_balance.period,
        "startDate": trial_balance.start_date,
        "endDate": trial_balance.end_date,
        "rows": [
            {
                "accountId": row.account_id,
                "code": row.code,
                "accountName": row.account_name,
                "nature": row.nature.value,
                "level": row.level,
                "openingBalance": row.opening_balance,
                "periodDebits": row.period_debits,
                "periodCredits": row.period_credits,
                "endingBalance": row.ending_balance,
                "balanceType": row.balance_type.value,
            }
            for row in trial_balance.rows
        ],
        "totalDebits": trial_balance.total_debits,
        "totalCredits": trial_balance.total_credits,
        "isBalanced": trial_balance.is_balanced,
    }


def _bucket_dict(bucket) -> dict:
    return {
        "accounts": [
            {"accountId": line.account_id, "code": line.code, "name": line.name, "balance": line.balance}
            for line in bucket.accounts
        ],
        "total": bucket.total,
        "rollup": bucket.rollup,
    }


def _lines_dict(lines) -> list:
    return [
        {"accountId": line.account_id, "code": line.code, "name": line.name, "amount": line.balance}
        for line in lines
    ]


def _echo_lines(title: str, lines, total) -> None:
    click.echo(f"\n{title}")
    click.echo("-" * 60)
    for line in lines:
        name = line.name if line.name is not None else "<unknown account>"
        click.echo(f"  {line.code or '?':10} {name:32} {line.balance:>14}")
    click.echo(f"  {'Total':43} {total:>14}")


@click.group()
def report_group():
    """Trial balance, financial statements and account ledgers."""
    pass


@report_group.command("trial-balance")
@click.argument("period")
@click.option("--snapshot", is_flag=True, help="Store the balances in the period cache")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def trial_balance(ctx, period: str, snapshot: bool, as_json: bool):
    """Show the trial balance of PERIOD (YYYY-MM)."""
    service = LedgerService(ctx.obj["db"])
    period = parse_period_or_exit(ctx, period)

    result = service.compute_trial_balance(period)
    if snapshot:
        service.snapshot_period(period)
    if as_json:
        echo_json(_trial_balance_dict(result))
        return

    click.echo(f"Trial balance {result.period} ({result.start_date} to {result.end_date})")
    click.echo("-" * 100)
    click.echo(
        f"{'Code':10} {'Account':30} {'Opening':>12} {'Debits':>12} {'Credits':>12} {'Ending':>12} Side"
    )
    for row in result.rows:
        name = row.account_name if row.account_name is not None else "<unknown account>"
        click.echo(
            f"{row.code or '?':10} {name[:30]:30} {row.opening_balance:>12} "
            f"{row.period_debits:>12} {row.period_credits:>12} {row.ending_balance:>12} "
            f"{row.balance_type.value}"
        )
    click.echo("-" * 100)
    click.echo(f"{'Totals':54} {result.total_debits:>12} {result.total_credits:>12}")
    if not result.is_balanced:
        click.echo("Warning: debits and credits differ", err=True)


@report_group.command("balance-sheet")
@click.option("--date", "date_str", default="today", show_default=True, help="Cutoff date")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def balance_sheet(ctx, date_str: str, as_json: bool):
    """Show the balance sheet at a cutoff date."""
    service = LedgerService(ctx.obj["db"])
    cutoff = parse_date_or_exit(ctx, date_str, "date")

    sheet = service.compute_balance_sheet(cutoff)
    if as_json:
        echo_json(
            {
                "cutoffDate": sheet.cutoff_date,
                "assets": _bucket_dict(sheet.assets),
                "liabilities": _bucket_dict(sheet.liabilities),
                "equity": _bucket_dict(sheet.equity),
                "unclosedResult": sheet.unclosed_result,
                "unclassified": _lines_dict(sheet.unclassified),
                "unclassifiedTotal": sheet.unclassified_total,
                "difference": sheet.difference,
            }
        )
        return

    click.echo(f"Balance sheet at {sheet.cutoff_date}")
    _echo_lines("Assets", sheet.assets.accounts, sheet.assets.total)
    _echo_lines("Liabilities", sheet.liabilities.accounts, sheet.liabilities.total)
    _echo_lines("Equity", sheet.equity.accounts, sheet.equity.total)
    if sheet.unclassified:
        _echo_lines("Unclassified", sheet.unclassified, sheet.unclassified_total)
    click.echo(f"\nUnclosed result: {sheet.unclosed_result}")
    click.echo(f"Difference:      {sheet.difference}")


@report_group.command("income-statement")
@click.option("--date", "date_str", default="today", show_default=True, help="Cutoff date")
@click.option("--start-date", help="First day included (defaults to all history)")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def income_statement(ctx, date_str: str, start_date: str | None, as_json: bool):
    """Show the income statement from realized transactions."""
    service = LedgerService(ctx.obj["db"])
    cutoff = parse_date_or_exit(ctx, date_str, "date")
    start = parse_date_or_exit(ctx, start_date, "start date")

    statement = service.compute_income_statement(cutoff, start_date=start)
    if as_json:
        echo_json(
            {
                "startDate": statement.start_date,
                "cutoffDate": statement.cutoff_date,
                "revenue": _lines_dict(statement.revenue),
                "expenses": _lines_dict(statement.expenses),
                "totalRevenue": statement.total_revenue,
                "totalExpenses": statement.total_expenses,
                "netIncome": statement.net_income,
            }
        )
        return

    since = f" from {statement.start_date}" if statement.start_date else ""
    click.echo(f"Income statement{since} to {statement.cutoff_date}")
    _echo_lines("Revenue", statement.revenue, statement.total_revenue)
    _echo_lines("Expenses", statement.expenses, statement.total_expenses)
    click.echo(f"\nNet income: {statement.net_income}")


@report_group.command("ledger")
@click.argument("account")
@click.option("--start-date", help="Start date (inclusive)")
@click.option("--end-date", help="End date (inclusive)")
@click.pass_context
def account_ledger(ctx, account: str, start_date: str | None, end_date: str | None):
    """Show the posted movements of ACCOUNT (code or ID) with running balance."""
    db = ctx.obj["db"]
    service = LedgerService(db)
    acc = resolve_account_or_exit(ctx, ChartOfAccountsService(db), account)
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date)

    try:
        lines = service.account_ledger(acc.id, start_date=start, end_date=end)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Ledger {acc.code} {acc.name} [{acc.nature.value}]")
    click.echo("-" * 90)
    if not lines:
        click.echo("No posted movements.")
        return
    for line in lines:
        click.echo(
            f"{line.date.isoformat():10} {line.entry_number:18} {line.debit:>12} "
            f"{line.credit:>12} {line.balance:>12} {line.description or ''}"
        )


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
