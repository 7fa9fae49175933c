"""Cash-flow matrix domain service (realized amounts and budget variance)."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from parkledger.config import Settings
from parkledger.database.base import Database
from parkledger.domain.budget import BudgetService, build_matrix
from parkledger.domain.entities import (
    MONTHS_PER_YEAR,
    ZERO,
    Matrix,
    MatrixRow,
    TransactionType,
    VarianceAlert,
    VarianceRow,
)
from parkledger.utils.date_parser import shift_month, year_bounds

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY = "Unknown"

_TYPE_ORDER = {TransactionType.INCOME: 0, TransactionType.EXPENSE: 1}


def _row_key(row: MatrixRow) -> tuple:
    return (row.code is None, row.code or "", row.category_id or 0, _TYPE_ORDER[row.transaction_type])


class CashFlowService:
    """Service building the realized cash-flow matrix."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        budget: Optional[BudgetService] = None,
    ):
        """Initialize cash-flow service.

        Args:
            db: Database instance
            settings: Optional settings (alert ratios, trailing window)
            budget: Optional budget service used for comparisons
        """
        self.db = db
        self.settings = settings or Settings()
        self.budget = budget or BudgetService(db)

    def get_realized_matrix(self, year: int) -> Matrix:
        """Group the transactions of a year by category, type and month.

        A category with both income and expense activity yields two rows.

        Args:
            year: Calendar year

        Returns:
            Matrix in the same shape as the budget matrix
        """
        start_date, end_date = year_bounds(year)
        accounts = {account.id: account for account in self.db.list_accounts()}

        cells: dict[tuple[int, TransactionType], list[Decimal]] = {}
        for row in self.db.get_monthly_transaction_totals(start_date, end_date):
            key = (row["category_id"], TransactionType(row["transaction_type"]))
            months = cells.setdefault(key, [ZERO] * MONTHS_PER_YEAR)
            months[row["month"] - 1] += row["total"]

        rows = []
        for (category_id, transaction_type), months in cells.items():
            account = accounts.get(category_id)
            if account is None:
                logger.warning("Transactions reference missing category %s", category_id)
            rows.append(
                MatrixRow(
                    category_id=category_id,
                    code=account.code if account is not None else None,
                    name=account.name if account is not None else UNKNOWN_CATEGORY,
                    transaction_type=transaction_type,
                    monthly_values=tuple(months),
                    total=sum(months, ZERO),
                )
            )
        rows.sort(key=_row_key)
        return build_matrix(year, rows)

    def compare_with_budget(self, year: int) -> list[VarianceRow]:
        """Put budget and realized amounts side by side per category.

        Budget categories come first; realized rows without a budget row
        follow with a zero budget.
        """
        budget = self.budget.get_matrix(year)
        actual = self.get_realized_matrix(year)
        empty = (ZERO,) * MONTHS_PER_YEAR

        variances = []
        matched: set[tuple[Optional[int], TransactionType]] = set()
        for budget_row in budget.categories:
            actual_row = actual.find(budget_row.category_id, budget_row.transaction_type)
            matched.add((budget_row.category_id, budget_row.transaction_type))
            variances.append(
                VarianceRow(
                    category_id=budget_row.category_id,
                    name=budget_row.name,
                    transaction_type=budget_row.transaction_type,
                    budget=budget_row.monthly_values,
                    actual=actual_row.monthly_values if actual_row else empty,
                    budget_total=budget_row.total,
                    actual_total=actual_row.total if actual_row else ZERO,
                )
            )
        for actual_row in actual.categories:
            if (actual_row.category_id, actual_row.transaction_type) in matched:
                continue
            variances.append(
                VarianceRow(
                    category_id=actual_row.category_id,
                    name=actual_row.name,
                    transaction_type=actual_row.transaction_type,
                    budget=empty,
                    actual=actual_row.monthly_values,
                    budget_total=ZERO,
                    actual_total=actual_row.total,
                )
            )
        return variances

    def detect_alerts(self, year: int, as_of: Optional[date] = None) -> list[VarianceAlert]:
        """Flag unusual category-months against their trailing average.

        The trailing average is the mean of the previous ``trailing_months``
        months (crossing into the prior year, missing months count as zero).
        Expense above ``expense_alert_ratio`` times the average, or income
        below ``income_alert_ratio`` times it, is flagged. Months without any
        history and months after ``as_of`` (default today) are not evaluated.

        Args:
            year: Calendar year to scan
            as_of: Last day considered realized

        Returns:
            Advisory alerts ordered by month and category
        """
        as_of = as_of or date.today()
        trailing = self.settings.trailing_months
        window_year, window_month = shift_month(year, 1, -trailing)
        _, end_date = year_bounds(year)

        series: dict[tuple[int, TransactionType], dict[tuple[int, int], Decimal]] = {}
        for row in self.db.get_monthly_transaction_totals(
            date(window_year, window_month, 1), end_date
        ):
            key = (row["category_id"], TransactionType(row["transaction_type"]))
            series.setdefault(key, {})[(row["year"], row["month"])] = row["total"]

        accounts = {account.id: account for account in self.db.list_accounts()}
        alerts = []
        for (category_id, transaction_type), values in series.items():
            account = accounts.get(category_id)
            name = account.name if account is not None else UNKNOWN_CATEGORY
            for month in range(1, MONTHS_PER_YEAR + 1):
                if date(year, month, 1) > as_of:
                    break
                history = [
                    values.get(shift_month(year, month, -offset), ZERO)
                    for offset in range(1, trailing + 1)
                ]
                average = sum(history, ZERO) / trailing
                if average <= 0:
                    continue
                realized = values.get((year, month), ZERO)
                if transaction_type is TransactionType.EXPENSE:
                    flagged = realized > average * self.settings.expense_alert_ratio
                else:
                    flagged = realized < average * self.settings.income_alert_ratio
                if not flagged:
                    continue
                alerts.append(
                    VarianceAlert(
                        category_id=category_id,
                        name=name,
                        transaction_type=transaction_type,
                        month=month,
                        realized=realized,
                        trailing_average=average.quantize(Decimal("0.01")),
                        ratio=(realized / average).quantize(Decimal("0.01")),
                    )
                )

        alerts.sort(key=lambda alert: (alert.month, alert.category_id, _TYPE_ORDER[alert.transaction_type]))
        if alerts:
            logger.info("Detected %d cash-flow alerts for %s", len(alerts), year)
        return alerts
