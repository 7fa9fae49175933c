"""Ledger aggregation: trial balance, financial statements and period cache.

Posted journal-entry lines are the only source of balances. The
account_balances table is a cache filled by snapshot_period and dropped
whenever an entry is posted into its period or an earlier one.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from parkledger.database.base import Database
from parkledger.domain.chart import AccountTree
from parkledger.domain.entities import (
    ZERO,
    AccountBalance,
    BalanceSheet,
    Category,
    IncomeStatement,
    LedgerLine,
    LineTotals,
    Nature,
    StatementBucket,
    StatementLine,
    StatementSection,
    TransactionType,
    TrialBalance,
    TrialBalanceRow,
)
from parkledger.domain.errors import NotFoundError, account_not_found
from parkledger.utils.date_parser import parse_period, period_bounds

logger = logging.getLogger(__name__)

# Side on which each statement section grows
SECTION_SIDE = {
    StatementSection.ASSET: Nature.DEBIT,
    StatementSection.LIABILITY: Nature.CREDIT,
    StatementSection.EQUITY: Nature.CREDIT,
    StatementSection.REVENUE: Nature.CREDIT,
    StatementSection.EXPENSE: Nature.DEBIT,
}


def signed_balance(nature: Nature, debit: Decimal, credit: Decimal) -> Decimal:
    """Return debit - credit for debit nature, credit - debit otherwise."""
    if nature is Nature.DEBIT:
        return debit - credit
    return credit - debit


def _sort_key(code: Optional[str], account_id: int) -> tuple:
    # Unknown accounts (no code) sort last
    return (code is None, code or "", account_id)


class LedgerService:
    """Service computing balances and statements from posted entries."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def _totals_by_account(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> dict[int, LineTotals]:
        totals = self.db.get_line_totals_by_account(start_date=start_date, end_date=end_date)
        return {row.account_id: row for row in totals}

    def _warn_unknown(self, account_id: int, account: Optional[Category]) -> None:
        if account is None:
            logger.warning("Ledger lines reference missing account %s", account_id)
        else:
            logger.warning(
                "Ledger lines reference inactive account %s (%s)", account.code, account_id
            )

    def compute_trial_balance(self, period: str) -> TrialBalance:
        """Compute the trial balance of a 'YYYY-MM' period.

        Every active account gets a row, plus any account with posted activity
        up to the end of the period. Accounts that are missing or inactive are
        reported with no name and still counted.

        Args:
            period: Period such as "2025-03"

        Returns:
            TrialBalance with one row per account and the period totals
        """
        period = parse_period(period)
        start_date, end_date = period_bounds(period)

        accounts = {account.id: account for account in self.db.list_accounts()}
        opening_totals = self._totals_by_account(end_date=start_date - timedelta(days=1))
        period_totals = self._totals_by_account(start_date=start_date, end_date=end_date)

        account_ids = {account.id for account in accounts.values() if account.is_active}
        account_ids |= set(opening_totals) | set(period_totals)

        rows = []
        for account_id in account_ids:
            account = accounts.get(account_id)
            is_known = account is not None and account.is_active
            if not is_known:
                self._warn_unknown(account_id, account)
            # Missing accounts use the debit convention
            nature = account.nature if account is not None else Nature.DEBIT

            opening = opening_totals.get(account_id)
            current = period_totals.get(account_id)
            opening_balance = (
                signed_balance(nature, opening.debit, opening.credit) if opening else ZERO
            )
            period_debits = current.debit if current else ZERO
            period_credits = current.credit if current else ZERO
            ending_balance = opening_balance + signed_balance(
                nature, period_debits, period_credits
            )

            rows.append(
                TrialBalanceRow(
                    account_id=account_id,
                    code=account.code if account is not None else None,
                    account_name=account.name if is_known else None,
                    nature=nature,
                    level=account.level if account is not None else None,
                    opening_balance=opening_balance,
                    period_debits=period_debits,
                    period_credits=period_credits,
                    ending_balance=ending_balance,
                    balance_type=nature if ending_balance >= 0 else nature.opposite,
                    is_known=is_known,
                )
            )

        rows.sort(key=lambda row: _sort_key(row.code, row.account_id))
        return TrialBalance(
            period=period,
            start_date=start_date,
            end_date=end_date,
            rows=tuple(rows),
            total_debits=sum((row.period_debits for row in rows), ZERO),
            total_credits=sum((row.period_credits for row in rows), ZERO),
        )

    def _build_bucket(
        self,
        section: StatementSection,
        lines: list[StatementLine],
        tree: AccountTree,
    ) -> StatementBucket:
        lines.sort(key=lambda line: _sort_key(line.code, line.account_id))
        rollup: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for line in lines:
            for node in tree.ancestors(line.account_id):
                rollup[node.code] += line.balance
            if line.code is not None:
                rollup[line.code] += line.balance
        return StatementBucket(
            section=section,
            accounts=tuple(lines),
            total=sum((line.balance for line in lines), ZERO),
            rollup=dict(sorted(rollup.items())),
        )

    def compute_balance_sheet(self, cutoff_date: date) -> BalanceSheet:
        """Compute the balance sheet at a cutoff date.

        Balances come from posted lines dated up to the cutoff and are signed
        by the side of their section (assets debit; liabilities and equity
        credit). The unclosed result (revenue minus expenses) is reported
        beside equity; the sheet is never forced to balance. Balances of
        accounts missing from the chart, or outside every section, are listed
        as unclassified (debit minus credit) and count on the asset side.

        Args:
            cutoff_date: Last day included

        Returns:
            BalanceSheet with the asset, liability and equity buckets
        """
        tree = AccountTree(self.db.list_accounts())
        totals = self._totals_by_account(end_date=cutoff_date)

        sections: dict[StatementSection, list[StatementLine]] = {
            section: [] for section in StatementSection
        }
        unclassified: list[StatementLine] = []
        for account_id, row in totals.items():
            account = tree.get(account_id)
            section = account.section if account is not None else None
            if section is None:
                logger.warning(
                    "Balance of unclassifiable account %s (%s) reported as unclassified",
                    account_id,
                    row.debit - row.credit,
                )
                unclassified.append(
                    StatementLine(
                        account_id=account_id,
                        code=account.code if account is not None else None,
                        name=account.name if account is not None else None,
                        balance=signed_balance(Nature.DEBIT, row.debit, row.credit),
                    )
                )
                continue
            if not account.is_active:
                self._warn_unknown(account_id, account)
            sections[section].append(
                StatementLine(
                    account_id=account_id,
                    code=account.code,
                    name=account.name if account.is_active else None,
                    balance=signed_balance(SECTION_SIDE[section], row.debit, row.credit),
                )
            )

        revenue = sum((line.balance for line in sections[StatementSection.REVENUE]), ZERO)
        expenses = sum((line.balance for line in sections[StatementSection.EXPENSE]), ZERO)

        return BalanceSheet(
            cutoff_date=cutoff_date,
            assets=self._build_bucket(
                StatementSection.ASSET, sections[StatementSection.ASSET], tree
            ),
            liabilities=self._build_bucket(
                StatementSection.LIABILITY, sections[StatementSection.LIABILITY], tree
            ),
            equity=self._build_bucket(
                StatementSection.EQUITY, sections[StatementSection.EQUITY], tree
            ),
            unclosed_result=revenue - expenses,
            unclassified=tuple(
                sorted(unclassified, key=lambda line: _sort_key(line.code, line.account_id))
            ),
        )

    def compute_income_statement(
        self, cutoff_date: date, start_date: Optional[date] = None
    ) -> IncomeStatement:
        """Compute the income statement from realized transactions.

        Amounts are grouped by the category's root (4 revenue, 5 expense);
        a category that no longer exists falls back to the transaction type.

        Args:
            cutoff_date: Last day included
            start_date: Optional first day included

        Returns:
            IncomeStatement with revenue and expense lines and net income
        """
        accounts = {account.id: account for account in self.db.list_accounts()}
        amounts: dict[StatementSection, dict[int, Decimal]] = {
            StatementSection.REVENUE: defaultdict(lambda: ZERO),
            StatementSection.EXPENSE: defaultdict(lambda: ZERO),
        }

        for row in self.db.get_transaction_totals(start_date=start_date, end_date=cutoff_date):
            account = accounts.get(row["category_id"])
            section = account.section if account is not None else None
            if section not in amounts:
                if row["transaction_type"] == TransactionType.INCOME.value:
                    section = StatementSection.REVENUE
                else:
                    section = StatementSection.EXPENSE
            amounts[section][row["category_id"]] += row["total"]

        def to_lines(section: StatementSection) -> tuple[StatementLine, ...]:
            lines = []
            for category_id, total in amounts[section].items():
                account = accounts.get(category_id)
                lines.append(
                    StatementLine(
                        account_id=category_id,
                        code=account.code if account is not None else None,
                        name=account.name if account is not None else None,
                        balance=total,
                    )
                )
            lines.sort(key=lambda line: _sort_key(line.code, line.account_id))
            return tuple(lines)

        revenue = to_lines(StatementSection.REVENUE)
        expenses = to_lines(StatementSection.EXPENSE)
        return IncomeStatement(
            start_date=start_date,
            cutoff_date=cutoff_date,
            revenue=revenue,
            expenses=expenses,
            total_revenue=sum((line.balance for line in revenue), ZERO),
            total_expenses=sum((line.balance for line in expenses), ZERO),
        )

    def snapshot_period(self, period: str) -> list[AccountBalance]:
        """Store the trial balance of a period in the balance cache.

        Returns:
            The cached rows
        """
        trial_balance = self.compute_trial_balance(period)
        rows = [
            {
                "account_id": row.account_id,
                "opening_balance": row.opening_balance,
                "period_debits": row.period_debits,
                "period_credits": row.period_credits,
                "ending_balance": row.ending_balance,
            }
            for row in trial_balance.rows
        ]
        with self.db.unit_of_work():
            self.db.replace_account_balances(trial_balance.period, rows)
        logger.info("Cached %d balances for %s", len(rows), trial_balance.period)
        return self.db.get_account_balances(trial_balance.period)

    def get_cached_balances(self, period: str) -> list[AccountBalance]:
        """Read cached balances of a period (empty when not cached)."""
        return self.db.get_account_balances(parse_period(period))

    def account_ledger(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[LedgerLine]:
        """List the posted lines of one account with a running balance.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        balance = ZERO
        if start_date is not None:
            opening = self._totals_by_account(end_date=start_date - timedelta(days=1))
            if account_id in opening:
                balance = signed_balance(
                    account.nature, opening[account_id].debit, opening[account_id].credit
                )

        ledger = []
        for row in self.db.get_account_lines(account_id, start_date=start_date, end_date=end_date):
            balance += signed_balance(account.nature, row["debit"], row["credit"])
            ledger.append(
                LedgerLine(
                    entry_id=row["entry_id"],
                    entry_number=row["entry_number"],
                    date=row["date"],
                    description=row["description"],
                    debit=row["debit"],
                    credit=row["credit"],
                    balance=balance,
                )
            )
        return ledger
