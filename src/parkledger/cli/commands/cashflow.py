"""Cash-flow commands."""

import click
from parkledger.cli.commands.budget import echo_matrix
from parkledger.cli.date_filters import parse_date_or_exit
from parkledger.cli.error_handling import echo_json
from parkledger.domain.budget import CSV_TYPE_LABELS
from parkledger.domain.cash_flow import CashFlowService


@click.group()
def cashflow_group():
    """Realized cash flow and budget variance."""
    pass


@cashflow_group.command("show")
@click.argument("year", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def show_cashflow(ctx, year: int, as_json: bool):
    """Show the realized cash-flow matrix of YEAR."""
    service = CashFlowService(ctx.obj["db"], ctx.obj["settings"])
    matrix = service.get_realized_matrix(year)
    if as_json:
        echo_json(matrix.to_dict())
        return
    if not matrix.categories:
        click.echo(f"No transactions in {year}.")
        return
    click.echo(f"Realized cash flow {year}")
    echo_matrix(matrix)


@cashflow_group.command("compare")
@click.argument("year", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def compare_cashflow(ctx, year: int, as_json: bool):
    """Compare budget and realized amounts of YEAR per category."""
    service = CashFlowService(ctx.obj["db"], ctx.obj["settings"])
    variances = service.compare_with_budget(year)
    if as_json:
        echo_json(
            [
                {
                    "categoryId": row.category_id,
                    "name": row.name,
                    "type": row.transaction_type.value,
                    "budget": list(row.budget),
                    "actual": list(row.actual),
                    "budgetTotal": row.budget_total,
                    "actualTotal": row.actual_total,
                    "difference": row.difference,
                    "percentage": row.percentage,
                }
                for row in variances
            ]
        )
        return

    click.echo(f"{'Category':30} {'Type':7} {'Budget':>12} {'Actual':>12} {'Diff':>12} {'%':>8}")
    click.echo("-" * 86)
    for row in variances:
        percentage = f"{row.percentage}" if row.percentage is not None else "-"
        click.echo(
            f"{row.name[:30]:30} {CSV_TYPE_LABELS[row.transaction_type]:7} "
            f"{row.budget_total:>12} {row.actual_total:>12} {row.difference:>12} {percentage:>8}"
        )


@cashflow_group.command("alerts")
@click.argument("year", type=int)
@click.option("--as-of", help="Last day considered realized (defaults to today)")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def cashflow_alerts(ctx, year: int, as_of: str | None, as_json: bool):
    """List category-months that deviate from their trailing average."""
    service = CashFlowService(ctx.obj["db"], ctx.obj["settings"])
    alerts = service.detect_alerts(year, as_of=parse_date_or_exit(ctx, as_of, "date"))
    if as_json:
        echo_json(
            [
                {
                    "categoryId": alert.category_id,
                    "name": alert.name,
                    "type": alert.transaction_type.value,
                    "month": alert.month,
                    "realized": alert.realized,
                    "trailingAverage": alert.trailing_average,
                    "ratio": alert.ratio,
                }
                for alert in alerts
            ]
        )
        return
    if not alerts:
        click.echo("No alerts.")
        return
    for alert in alerts:
        click.echo(
            f"{year}-{alert.month:02d} {alert.name} ({CSV_TYPE_LABELS[alert.transaction_type]}): "
            f"{alert.realized} vs trailing average {alert.trailing_average} (x{alert.ratio})"
        )


def register_commands(cli):
    """Register cashflow commands with main CLI."""
    cli.add_command(cashflow_group, name="cashflow")
