"""Budget projection matrix domain service."""

import csv
import io
import logging
import unicodedata
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from parkledger.database.base import Database
from parkledger.domain.chart import AccountTree
from parkledger.domain.entities import (
    MONTHS_PER_YEAR,
    ROOT_DIGIT_BY_TYPE,
    ZERO,
    BudgetRow,
    Category,
    Matrix,
    MatrixRow,
    MonthlyTotals,
    TransactionType,
    YearlyTotals,
)
from parkledger.domain.errors import BudgetImportError, RowError, ValidationError
from parkledger.utils.amount_parser import parse_amount, to_money
from parkledger.utils.locks import KeyedLock, advisory_locks

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)

CSV_TYPE_LABELS = {
    TransactionType.INCOME: "ingreso",
    TransactionType.EXPENSE: "gasto",
}

_TYPE_ALIASES = {
    "ingreso": TransactionType.INCOME,
    "ingresos": TransactionType.INCOME,
    "income": TransactionType.INCOME,
    "gasto": TransactionType.EXPENSE,
    "gastos": TransactionType.EXPENSE,
    "egreso": TransactionType.EXPENSE,
    "expense": TransactionType.EXPENSE,
}

# Summary rows written by export_to_csv carry this type and are skipped on import
TOTAL_TYPE = "total"


def _normalize(text: Optional[str]) -> str:
    """Lowercase, strip accents and collapse whitespace."""
    if text is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(stripped.lower().split())


def _month_header_index() -> dict[str, int]:
    index = {}
    for month, name in enumerate(MONTH_NAMES, start=1):
        index[name] = month
        index[f"mes {month}"] = month
        index[f"mes{month}"] = month
    # Common spelling
    index["setiembre"] = 9
    return index


_MONTH_HEADERS = _month_header_index()


def build_matrix(year: int, rows: Sequence[MatrixRow]) -> Matrix:
    """Attach monthly and yearly income/expense/net totals to matrix rows."""
    income = [ZERO] * MONTHS_PER_YEAR
    expenses = [ZERO] * MONTHS_PER_YEAR
    for row in rows:
        target = income if row.transaction_type is TransactionType.INCOME else expenses
        for month, value in enumerate(row.monthly_values):
            target[month] += value
    net = [income[month] - expenses[month] for month in range(MONTHS_PER_YEAR)]

    yearly_income = sum(income, ZERO)
    yearly_expense = sum(expenses, ZERO)
    return Matrix(
        year=year,
        categories=tuple(rows),
        monthly_totals=MonthlyTotals(
            income=tuple(income), expenses=tuple(expenses), net=tuple(net)
        ),
        yearly_totals=YearlyTotals(
            income=yearly_income,
            expense=yearly_expense,
            net=yearly_income - yearly_expense,
        ),
    )


def _validate_year(year: int) -> int:
    if not isinstance(year, int) or not 1900 <= year <= 9999:
        raise ValidationError(f"Invalid budget year: {year}")
    return year


class BudgetService:
    """Service for the per-year budget projection matrix."""

    def __init__(self, db: Database, locks: Optional[KeyedLock] = None):
        """Initialize budget service.

        Args:
            db: Database instance
            locks: Optional advisory lock registry (process-wide by default)
        """
        self.db = db
        self.locks = locks or advisory_locks

    def budget_categories(self) -> list[tuple[Category, TransactionType]]:
        """Return the active leaf accounts under the income and expense roots."""
        accounts = self.db.list_accounts(active_only=True)
        tree = AccountTree(accounts)
        categories = []
        for account in accounts:
            if not tree.is_leaf(account.id):
                continue
            for transaction_type, root_digit in ROOT_DIGIT_BY_TYPE.items():
                if account.code.startswith(root_digit):
                    categories.append((account, transaction_type))
        return categories

    def get_matrix(self, year: int) -> Matrix:
        """Build the budget matrix of a year.

        Every budget category gets a row; months without a stored projection
        are zero.

        Args:
            year: Budget year

        Returns:
            Matrix with per-category rows and totals
        """
        _validate_year(year)
        projections = {
            projection.category_id: projection
            for projection in self.db.list_budget_projections(year)
        }

        rows = []
        for category, transaction_type in self.budget_categories():
            projection = projections.get(category.id)
            months = projection.months if projection else (ZERO,) * MONTHS_PER_YEAR
            rows.append(
                MatrixRow(
                    category_id=category.id,
                    code=category.code,
                    name=category.name,
                    transaction_type=transaction_type,
                    monthly_values=tuple(months),
                    total=sum(months, ZERO),
                )
            )
        return build_matrix(year, rows)

    def _write_year(
        self,
        year: int,
        entries: Sequence[tuple[int, TransactionType, tuple[Decimal, ...]]],
        replace: bool,
    ) -> int:
        with self.locks.hold(f"budget:{year}"):
            with self.db.unit_of_work():
                if replace:
                    self.db.delete_budget_projections(year)
                else:
                    self.db.delete_budget_projections(
                        year, category_ids=[category_id for category_id, _, _ in entries]
                    )
                for category_id, transaction_type, months in entries:
                    self.db.create_budget_projection(
                        year=year,
                        category_id=category_id,
                        category_type=transaction_type.value,
                        months=months,
                    )
        return len(entries)

    def save_matrix(self, year: int, rows: Sequence[BudgetRow]) -> int:
        """Replace the whole budget of a year.

        All rows are validated before anything is written; the delete and
        re-insert then run as one unit.

        Args:
            year: Budget year
            rows: One row per category with twelve amounts

        Returns:
            Number of projection rows stored

        Raises:
            ValidationError: If any row is invalid (nothing is written)
            OperationInProgressError: If the year is being saved already
        """
        _validate_year(year)
        categories = {category.id: (category, kind) for category, kind in self.budget_categories()}

        errors: list[RowError] = []
        entries = []
        seen: set[int] = set()
        for row_number, row in enumerate(rows, start=1):
            if row.category_id not in categories:
                errors.append(
                    RowError(row_number, "category_id", f"Unknown budget category {row.category_id}")
                )
                continue
            if row.category_id in seen:
                errors.append(
                    RowError(row_number, "category_id", f"Duplicate category {row.category_id}")
                )
                continue
            seen.add(row.category_id)
            if len(row.months) != MONTHS_PER_YEAR:
                errors.append(
                    RowError(row_number, "months", f"Expected 12 months, got {len(row.months)}")
                )
                continue
            invalid = []
            for month, value in enumerate(row.months, start=1):
                try:
                    to_money(value)
                except ValueError:
                    invalid.append(str(month))
            if invalid:
                errors.append(
                    RowError(row_number, "months", f"Invalid amount in month(s) {', '.join(invalid)}")
                )
                continue
            months = tuple(to_money(value) for value in row.months)
            negative = [str(month) for month, value in enumerate(months, start=1) if value < 0]
            if negative:
                errors.append(
                    RowError(row_number, "months", f"Negative amount in month(s) {', '.join(negative)}")
                )
                continue
            entries.append((row.category_id, categories[row.category_id][1], months))

        if errors:
            raise ValidationError(
                f"Budget for {year} rejected: " + "; ".join(str(error) for error in errors)
            )

        count = self._write_year(year, entries, replace=True)
        logger.info("Saved budget %s with %d categories", year, count)
        return count

    def _match_category(
        self,
        raw_name: str,
        transaction_type: Optional[TransactionType],
        by_code: dict[str, tuple[Category, TransactionType]],
        by_name: dict[str, list[tuple[Category, TransactionType]]],
    ) -> Optional[tuple[Category, TransactionType]]:
        if raw_name.strip() in by_code:
            return by_code[raw_name.strip()]
        candidates = by_name.get(_normalize(raw_name), [])
        if len(candidates) > 1 and transaction_type is not None:
            candidates = [item for item in candidates if item[1] is transaction_type]
        return candidates[0] if len(candidates) == 1 else None

    def import_from_csv(
        self, year: int, rows: Iterable[Mapping[str, str]], replace: bool = True
    ) -> int:
        """Import budget rows read from a CSV file.

        Each row names a category (by name, case and accent insensitive, or by
        code), its type ('ingreso' or 'gasto') and twelve month columns
        ('enero'..'diciembre' or 'Mes 1'..'Mes 12'). Summary rows of type
        'total' are skipped. Any invalid row rejects the whole import.

        Args:
            year: Budget year
            rows: Mappings of header to cell text
            replace: Replace the whole year (True) or only the listed categories

        Returns:
            Number of projection rows stored

        Raises:
            BudgetImportError: With one RowError per problem; nothing is written
        """
        _validate_year(year)
        categories = self.budget_categories()
        by_code = {category.code: (category, kind) for category, kind in categories}
        by_name: dict[str, list[tuple[Category, TransactionType]]] = {}
        for category, kind in categories:
            by_name.setdefault(_normalize(category.name), []).append((category, kind))

        errors: list[RowError] = []
        entries = []
        seen: dict[int, int] = {}

        for row_number, raw_row in enumerate(rows, start=2):  # Start at 2 (header is row 1)
            row = {_normalize(key): value for key, value in raw_row.items() if key is not None}

            raw_type = _normalize(row.get("tipo"))
            if raw_type == TOTAL_TYPE:
                continue
            transaction_type = _TYPE_ALIASES.get(raw_type)
            if transaction_type is None:
                errors.append(
                    RowError(row_number, "tipo", f"Type must be 'ingreso' or 'gasto', got '{row.get('tipo') or ''}'")
                )

            raw_name = (row.get("categoria") or "").strip()
            if not raw_name:
                errors.append(RowError(row_number, "categoria", "Missing category"))
                continue
            match = self._match_category(raw_name, transaction_type, by_code, by_name)
            if match is None:
                errors.append(RowError(row_number, "categoria", f"Unknown category '{raw_name}'"))
                continue
            category, category_type = match
            if transaction_type is not None and transaction_type is not category_type:
                errors.append(
                    RowError(
                        row_number,
                        "tipo",
                        f"Type '{row.get('tipo')}' does not match category '{category.name}' "
                        f"({CSV_TYPE_LABELS[category_type]})",
                    )
                )
                continue
            if category.id in seen:
                errors.append(
                    RowError(
                        row_number,
                        "categoria",
                        f"Category '{category.name}' already given in row {seen[category.id]}",
                    )
                )
                continue
            seen[category.id] = row_number

            months = [ZERO] * MONTHS_PER_YEAR
            row_ok = True
            for header, value in row.items():
                month = _MONTH_HEADERS.get(header) or _MONTH_HEADERS.get(header.replace(" ", ""))
                if month is None:
                    continue
                try:
                    amount = parse_amount(value, blank_as_zero=True)
                except ValueError as e:
                    errors.append(RowError(row_number, header, str(e)))
                    row_ok = False
                    continue
                if amount < 0:
                    errors.append(RowError(row_number, header, f"Amount cannot be negative ({amount})"))
                    row_ok = False
                    continue
                months[month - 1] = amount
            if row_ok and transaction_type is not None:
                entries.append((category.id, category_type, tuple(months)))

        if errors:
            logger.warning("Rejected budget import for %s with %d errors", year, len(errors))
            raise BudgetImportError(year, errors)
        if not entries:
            raise ValidationError(f"No budget rows to import for {year}")

        count = self._write_year(year, entries, replace=replace)
        logger.info("Imported budget %s: %d categories (replace=%s)", year, count, replace)
        return count

    def read_csv(self, text: str) -> list[dict[str, str]]:
        """Parse CSV text into row mappings, detecting the delimiter.

        Raises:
            ValidationError: If the text has no header row
        """
        text = text.lstrip("\ufeff")
        sample = text[:1024]
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
        except csv.Error:
            delimiter = ","

        reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
        if not reader.fieldnames:
            raise ValidationError("CSV file has no columns")

        rows = []
        for row in reader:
            if all(not (value or "").strip() for value in row.values() if isinstance(value, str)):
                continue
            rows.append(row)
        return rows

    def export_to_csv(self, year: int, include_totals: bool = True) -> str:
        """Render the budget matrix of a year as CSV text.

        Columns are categoria, tipo, enero..diciembre and total. With
        include_totals, 'Total ingresos', 'Total gastos' and 'Flujo neto'
        rows of type 'total' follow the categories.
        """
        matrix = self.get_matrix(year)
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(["categoria", "tipo", *MONTH_NAMES, "total"])

        for row in matrix.categories:
            writer.writerow(
                [
                    row.name,
                    CSV_TYPE_LABELS[row.transaction_type],
                    *(str(value) for value in row.monthly_values),
                    str(row.total),
                ]
            )

        if include_totals:
            totals = matrix.monthly_totals
            yearly = matrix.yearly_totals
            for label, values, total in (
                ("Total ingresos", totals.income, yearly.income),
                ("Total gastos", totals.expenses, yearly.expense),
                ("Flujo neto", totals.net, yearly.net),
            ):
                writer.writerow([label, TOTAL_TYPE, *(str(value) for value in values), str(total)])

        return output.getvalue()
