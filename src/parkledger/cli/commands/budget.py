"""Budget projection commands."""

from pathlib import Path

import click
from parkledger.cli.error_handling import echo_json, handle_domain_error
from parkledger.domain.budget import BudgetService, CSV_TYPE_LABELS


def echo_matrix(matrix) -> None:
    """Print a category x month matrix with its totals."""
    header = " ".join(f"{month:>10}" for month in range(1, 13))
    click.echo(f"{'Category':28} {'Type':7} {header} {'Total':>12}")
    click.echo("-" * 180)
    for row in matrix.categories:
        values = " ".join(f"{value:>10}" for value in row.monthly_values)
        click.echo(
            f"{row.name[:28]:28} {CSV_TYPE_LABELS[row.transaction_type]:7} {values} {row.total:>12}"
        )
    click.echo("-" * 180)
    totals = matrix.monthly_totals
    yearly = matrix.yearly_totals
    for label, values, total in (
        ("Total ingresos", totals.income, yearly.income),
        ("Total gastos", totals.expenses, yearly.expense),
        ("Flujo neto", totals.net, yearly.net),
    ):
        cells = " ".join(f"{value:>10}" for value in values)
        click.echo(f"{label:36} {cells} {total:>12}")


@click.group()
def budget_group():
    """Plan the yearly budget matrix."""
    pass


@budget_group.command("show")
@click.argument("year", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def show_budget(ctx, year: int, as_json: bool):
    """Show the budget matrix of YEAR."""
    service = BudgetService(ctx.obj["db"])
    try:
        matrix = service.get_matrix(year)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    if as_json:
        echo_json(matrix.to_dict())
        return
    if not matrix.categories:
        click.echo("No budget categories found. Run 'parkledger init-accounts' first.")
        return
    click.echo(f"Budget {year}")
    echo_matrix(matrix)


@budget_group.command("import")
@click.argument("year", type=int)
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--merge",
    is_flag=True,
    help="Only replace the categories in the file (default replaces the whole year)",
)
@click.pass_context
def import_budget(ctx, year: int, csv_file: str, merge: bool):
    """Import the budget of YEAR from CSV_FILE.

    Columns: categoria, tipo (ingreso|gasto), enero..diciembre, total.
    Any invalid row rejects the whole file.
    """
    service = BudgetService(ctx.obj["db"])
    try:
        text = Path(csv_file).read_text(encoding="utf-8-sig")
        rows = service.read_csv(text)
        count = service.import_from_csv(year, rows, replace=not merge)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Imported {count} budget rows for {year}")


@budget_group.command("export")
@click.argument("year", type=int)
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to file instead of stdout")
@click.option("--no-totals", is_flag=True, help="Omit the summary rows")
@click.pass_context
def export_budget(ctx, year: int, output: str | None, no_totals: bool):
    """Export the budget of YEAR as CSV."""
    service = BudgetService(ctx.obj["db"])
    try:
        text = service.export_to_csv(year, include_totals=not no_totals)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    if output:
        Path(output).write_text(text, encoding="utf-8")
        click.echo(f"Budget {year} exported to {output}")
    else:
        click.echo(text, nl=False)


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
