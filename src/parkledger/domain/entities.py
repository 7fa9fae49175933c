"""Domain model entities for parkledger.

These are pure data classes representing accounting concepts, independent of
the database schema. Services and the CLI only ever see these types; the ORM
models stay behind the database layer.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

MONTHS_PER_YEAR = 12
ZERO = Decimal("0.00")


class Nature(str, Enum):
    """Side on which an account's balance grows."""

    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def opposite(self) -> "Nature":
        return Nature.CREDIT if self is Nature.DEBIT else Nature.DEBIT


class TransactionType(str, Enum):
    """Kind of realized financial fact."""

    INCOME = "income"
    EXPENSE = "expense"


class EntryStatus(str, Enum):
    """Journal entry lifecycle state."""

    DRAFT = "draft"
    APPROVED = "approved"
    POSTED = "posted"


class StatementSection(str, Enum):
    """Financial statement section, derived from the first digit of a code."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @classmethod
    def from_code(cls, code: Optional[str]) -> Optional["StatementSection"]:
        if not code:
            return None
        return _SECTION_BY_DIGIT.get(code[0])


_SECTION_BY_DIGIT = {
    "1": StatementSection.ASSET,
    "2": StatementSection.LIABILITY,
    "3": StatementSection.EQUITY,
    "4": StatementSection.REVENUE,
    "5": StatementSection.EXPENSE,
}

# Root digit of the operational accounts for each transaction type
ROOT_DIGIT_BY_TYPE = {
    TransactionType.INCOME: "4",
    TransactionType.EXPENSE: "5",
}


@dataclass(frozen=True)
class Category:
    """Chart of accounts node (an account)."""

    id: int
    code: str
    name: str
    level: int
    parent_id: Optional[int]
    nature: Nature
    is_active: bool
    full_path: str
    sort_order: int
    description: Optional[str]
    created_at: datetime

    @property
    def section(self) -> Optional[StatementSection]:
        return StatementSection.from_code(self.code)


@dataclass(frozen=True)
class Transaction:
    """Realized income or expense."""

    id: int
    transaction_type: TransactionType
    amount: Decimal
    date: date
    category_id: int
    description: str
    reference: Optional[str]
    journal_entry_id: Optional[int]
    source_module: Optional[str]
    created_by: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class NewTransaction:
    """Validated input for recording a transaction."""

    transaction_type: TransactionType
    amount: Decimal
    date: date
    category_id: int
    description: str = ""
    reference: Optional[str] = None
    source_module: Optional[str] = "manual"


@dataclass(frozen=True)
class JournalEntryLine:
    """Posting line of a journal entry."""

    id: int
    entry_id: int
    account_id: int
    debit: Decimal
    credit: Decimal
    description: Optional[str]


@dataclass(frozen=True)
class JournalLineInput:
    """Line supplied when building an entry by hand."""

    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None


@dataclass(frozen=True)
class JournalEntry:
    """Balanced set of postings recorded together."""

    id: int
    entry_number: str
    date: date
    description: str
    reference: Optional[str]
    status: EntryStatus
    total_debit: Decimal
    total_credit: Decimal
    source_transaction_id: Optional[int]
    created_by: Optional[int]
    created_at: datetime
    posted_at: Optional[datetime]
    lines: tuple[JournalEntryLine, ...] = ()

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass(frozen=True)
class AccountMapping:
    """Accounts touched by an automatic entry and the side each one moves."""

    transaction_type: TransactionType
    cash_account: Category
    operational_account: Category
    debit_account: Category
    credit_account: Category


@dataclass(frozen=True)
class RecordResult:
    """Outcome of recording a transaction (phase 1) and its entry (phase 2)."""

    transaction: Transaction
    entry: Optional[JournalEntry] = None
    warning: Optional[str] = None


@dataclass(frozen=True)
class BatchFailure:
    transaction_id: int
    message: str


@dataclass(frozen=True)
class BatchResult:
    """Summary of a catch-up run."""

    processed: int
    succeeded: tuple[int, ...]
    failed: tuple[BatchFailure, ...]


@dataclass(frozen=True)
class IntegrationStats:
    """How many transactions already carry a journal entry."""

    income_total: int
    income_linked: int
    expense_total: int
    expense_linked: int
    entries_total: int
    entries_automatic: int

    @property
    def pending(self) -> int:
        return (self.income_total - self.income_linked) + (
            self.expense_total - self.expense_linked
        )


@dataclass(frozen=True)
class AccountBalance:
    """Cached per-period balance of one account."""

    id: int
    account_id: int
    period: str
    opening_balance: Decimal
    period_debits: Decimal
    period_credits: Decimal
    ending_balance: Decimal
    last_updated: datetime


@dataclass(frozen=True)
class LineTotals:
    """Summed debits and credits of one account's posted lines."""

    account_id: int
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: int
    code: Optional[str]
    account_name: Optional[str]
    nature: Nature
    level: Optional[int]
    opening_balance: Decimal
    period_debits: Decimal
    period_credits: Decimal
    ending_balance: Decimal
    balance_type: Nature
    is_known: bool = True


@dataclass(frozen=True)
class TrialBalance:
    period: str
    start_date: date
    end_date: date
    rows: tuple[TrialBalanceRow, ...]
    total_debits: Decimal
    total_credits: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


@dataclass(frozen=True)
class StatementLine:
    account_id: int
    code: Optional[str]
    name: Optional[str]
    balance: Decimal


@dataclass(frozen=True)
class StatementBucket:
    """Accounts of one statement section with total and ancestor rollup."""

    section: StatementSection
    accounts: tuple[StatementLine, ...]
    total: Decimal
    rollup: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class BalanceSheet:
    cutoff_date: date
    assets: StatementBucket
    liabilities: StatementBucket
    equity: StatementBucket
    unclosed_result: Decimal
    unclassified: tuple[StatementLine, ...] = ()

    @property
    def unclassified_total(self) -> Decimal:
        return sum((line.balance for line in self.unclassified), ZERO)

    @property
    def difference(self) -> Decimal:
        """Assets and unclassified balances minus liabilities, equity and the unclosed result."""
        return self.assets.total + self.unclassified_total - (
            self.liabilities.total + self.equity.total + self.unclosed_result
        )


@dataclass(frozen=True)
class IncomeStatement:
    start_date: Optional[date]
    cutoff_date: date
    revenue: tuple[StatementLine, ...]
    expenses: tuple[StatementLine, ...]
    total_revenue: Decimal
    total_expenses: Decimal

    @property
    def net_income(self) -> Decimal:
        return self.total_revenue - self.total_expenses


@dataclass(frozen=True)
class LedgerLine:
    entry_id: int
    entry_number: str
    date: date
    description: Optional[str]
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class BudgetProjection:
    """Twelve planned monthly amounts for one category and year."""

    id: int
    category_id: int
    category_type: TransactionType
    year: int
    months: tuple[Decimal, ...]
    total: Decimal


@dataclass(frozen=True)
class BudgetRow:
    """Input row for saving a budget year."""

    category_id: int
    months: tuple[Decimal, ...]


@dataclass(frozen=True)
class MatrixRow:
    category_id: Optional[int]
    code: Optional[str]
    name: str
    transaction_type: TransactionType
    monthly_values: tuple[Decimal, ...]
    total: Decimal


@dataclass(frozen=True)
class MonthlyTotals:
    income: tuple[Decimal, ...]
    expenses: tuple[Decimal, ...]
    net: tuple[Decimal, ...]


@dataclass(frozen=True)
class YearlyTotals:
    income: Decimal
    expense: Decimal
    net: Decimal


@dataclass(frozen=True)
class Matrix:
    """Category x month grid shared by the budget and cash-flow views."""

    year: int
    categories: tuple[MatrixRow, ...]
    monthly_totals: MonthlyTotals
    yearly_totals: YearlyTotals

    def find(
        self, category_id: int, transaction_type: TransactionType
    ) -> Optional[MatrixRow]:
        for row in self.categories:
            if row.category_id == category_id and row.transaction_type == transaction_type:
                return row
        return None

    def to_dict(self) -> dict[str, Any]:
        """Render the transport shape of the matrix."""
        return {
            "year": self.year,
            "categories": [
                {
                    "categoryId": row.category_id,
                    "code": row.code,
                    "name": row.name,
                    "type": row.transaction_type.value,
                    "monthlyValues": list(row.monthly_values),
                    "total": row.total,
                }
                for row in self.categories
            ],
            "monthlyTotals": {
                "income": list(self.monthly_totals.income),
                "expenses": list(self.monthly_totals.expenses),
                "net": list(self.monthly_totals.net),
            },
            "yearlyTotals": {
                "income": self.yearly_totals.income,
                "expense": self.yearly_totals.expense,
                "net": self.yearly_totals.net,
            },
        }


@dataclass(frozen=True)
class VarianceRow:
    """Budget against realized amounts for one category."""

    category_id: Optional[int]
    name: str
    transaction_type: TransactionType
    budget: tuple[Decimal, ...]
    actual: tuple[Decimal, ...]
    budget_total: Decimal
    actual_total: Decimal

    @property
    def difference(self) -> Decimal:
        return self.actual_total - self.budget_total

    @property
    def percentage(self) -> Optional[Decimal]:
        if self.budget_total == 0:
            return None
        return (self.actual_total / self.budget_total * 100).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class VarianceAlert:
    """Advisory flag for an unusual category-month."""

    category_id: Optional[int]
    name: str
    transaction_type: TransactionType
    month: int
    realized: Decimal
    trailing_average: Decimal
    ratio: Decimal
