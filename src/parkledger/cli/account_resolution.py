"""CLI helpers for account resolution."""

from __future__ import annotations

import click

from parkledger.domain.chart import ChartOfAccountsService
from parkledger.domain.entities import Category


def resolve_account(chart: ChartOfAccountsService, account: str | int) -> Category:
    """Resolve an account code or ID to the account.

    Codes win over IDs, so "101" names the account with code 101 when one
    exists.

    Raises:
        ValueError: If account is not found
    """
    by_code = chart.get_account_by_code(str(account).strip())
    if by_code is not None:
        return by_code

    try:
        account_id = int(account)
    except (ValueError, TypeError):
        raise ValueError(f"Account '{account}' not found") from None
    by_id = chart.get_account(account_id)
    if by_id is None:
        raise ValueError(f"Account ID {account_id} not found")
    return by_id


def resolve_account_or_exit(
    ctx: click.Context, chart: ChartOfAccountsService, account: str | int
) -> Category:
    """Resolve account code or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_account(chart, account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
