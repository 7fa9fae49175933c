"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any, Sequence
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from parkledger.domain.entities import (
    Category,
    Transaction,
    JournalEntry,
    JournalLineInput,
    AccountBalance,
    BudgetProjection,
    LineTotals,
)


class Database(ABC):
    """Abstract database interface for parkledger.

    Every write commits on its own unless it is issued inside
    ``unit_of_work()``, in which case the whole block commits once at exit or
    rolls back entirely when an exception escapes it.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Group writes into one all-or-nothing unit. Units may nest."""
        pass

    # Account (chart of accounts) operations
    @abstractmethod
    def create_account(
        self,
        code: str,
        name: str,
        level: int,
        nature: str,
        full_path: str,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        sort_order: int = 0,
        created_by: Optional[int] = None,
    ) -> int:
        """Create an account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Category]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, code: str) -> Optional[Category]:
        """Get account by its unique code."""
        pass

    @abstractmethod
    def list_accounts(self, active_only: bool = False) -> list[Category]:
        """List accounts ordered by code."""
        pass

    @abstractmethod
    def count_accounts(self) -> int:
        """Count all accounts, active or not."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        sort_order: Optional[int] = None,
    ) -> None:
        """Update account metadata. None leaves a field unchanged."""
        pass

    @abstractmethod
    def set_account_active(self, account_id: int, is_active: bool) -> None:
        """Flip the active flag of an account."""
        pass

    @abstractmethod
    def set_account_nature(self, account_id: int, nature: str) -> None:
        """Change the nature of an account."""
        pass

    @abstractmethod
    def set_account_hierarchy(
        self, account_id: int, parent_id: Optional[int], level: int, full_path: str
    ) -> None:
        """Store a new parent, level and full path for an account."""
        pass

    @abstractmethod
    def count_transactions_for_account(self, account_id: int) -> int:
        """Count transactions whose category is the account."""
        pass

    @abstractmethod
    def count_lines_for_account(self, account_id: int) -> int:
        """Count journal entry lines posted against the account."""
        pass

    @abstractmethod
    def count_children(self, account_id: int, active_only: bool = True) -> int:
        """Count direct children of an account."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        transaction_type: str,
        amount: Decimal,
        date: date,
        category_id: int,
        description: str = "",
        reference: Optional[str] = None,
        source_module: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_type: Optional[str] = None,
        category_id: Optional[int] = None,
        unlinked_only: bool = False,
        limit: Optional[int] = None,
        oldest_first: bool = False,
    ) -> list[Transaction]:
        """List transactions with optional filters.

        Args:
            start_date: Optional start date filter (inclusive)
            end_date: Optional end date filter (inclusive)
            transaction_type: Optional 'income' or 'expense' filter
            category_id: Optional category ID filter
            unlinked_only: If True, only return transactions without a journal entry
            limit: Maximum number of rows
            oldest_first: Order by (date, id) ascending instead of newest first
        """
        pass

    @abstractmethod
    def update_transaction(
        self,
        transaction_id: int,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        amount: Optional[Decimal] = None,
        date: Optional[date] = None,
        category_id: Optional[int] = None,
    ) -> None:
        """Update transaction fields. None leaves a field unchanged."""
        pass

    @abstractmethod
    def set_transaction_entry(self, transaction_id: int, entry_id: Optional[int]) -> None:
        """Store (or clear) the journal entry linked to a transaction."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction."""
        pass

    @abstractmethod
    def count_transactions(
        self, transaction_type: Optional[str] = None, linked_only: bool = False
    ) -> int:
        """Count transactions, optionally only those linked to an entry."""
        pass

    @abstractmethod
    def get_transaction_totals(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[dict[str, Any]]:
        """Sum transaction amounts per category and type.

        Returns a list of dictionaries with category_id, transaction_type and
        total (Decimal).
        """
        pass

    @abstractmethod
    def get_monthly_transaction_totals(
        self, start_date: date, end_date: date
    ) -> list[dict[str, Any]]:
        """Sum transaction amounts per category, type, year and month.

        Returns a list of dictionaries with category_id, transaction_type,
        year, month and total (Decimal).
        """
        pass

    # Journal entry operations
    @abstractmethod
    def create_journal_entry(
        self,
        entry_number: str,
        date: date,
        description: str,
        status: str,
        lines: Sequence[JournalLineInput],
        reference: Optional[str] = None,
        source_transaction_id: Optional[int] = None,
        created_by: Optional[int] = None,
        posted_at: Optional[datetime] = None,
    ) -> int:
        """Create an entry header with its lines. Returns entry ID.

        Header totals are the sums of the line sides.
        """
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry (with lines) by ID."""
        pass

    @abstractmethod
    def get_entry_for_transaction(self, transaction_id: int) -> Optional[JournalEntry]:
        """Get the entry generated from a transaction, if any."""
        pass

    @abstractmethod
    def list_journal_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[JournalEntry]:
        """List journal entries ordered by date and number."""
        pass

    @abstractmethod
    def update_entry_status(
        self, entry_id: int, status: str, posted_at: Optional[datetime] = None
    ) -> None:
        """Store a new status (and posting time) for an entry."""
        pass

    @abstractmethod
    def get_last_entry_number(self, prefix: str) -> Optional[str]:
        """Get the highest entry number starting with prefix."""
        pass

    @abstractmethod
    def clear_entry_source(self, transaction_id: int) -> None:
        """Detach entries from a transaction that is about to disappear."""
        pass

    @abstractmethod
    def count_journal_entries(self, automatic_only: bool = False) -> int:
        """Count entries, optionally only those generated from transactions."""
        pass

    @abstractmethod
    def get_line_totals_by_account(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = "posted",
    ) -> list[LineTotals]:
        """Sum debits and credits per account over entries in a date range."""
        pass

    @abstractmethod
    def get_account_lines(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = "posted",
    ) -> list[dict[str, Any]]:
        """Get the lines of one account with their entry header data.

        Returns a list of dictionaries with entry_id, entry_number, date,
        description, debit and credit, ordered by date and entry ID.
        """
        pass

    # Period balance cache operations
    @abstractmethod
    def replace_account_balances(
        self, period: str, balances: Sequence[dict[str, Any]]
    ) -> None:
        """Replace the cached balances of a period.

        Each dictionary holds account_id, opening_balance, period_debits,
        period_credits and ending_balance.
        """
        pass

    @abstractmethod
    def get_account_balances(self, period: str) -> list[AccountBalance]:
        """Get the cached balances of a period."""
        pass

    @abstractmethod
    def delete_account_balances_from(self, period: str) -> int:
        """Drop cached balances for a period and every later one."""
        pass

    # Budget projection operations
    @abstractmethod
    def list_budget_projections(self, year: int) -> list[BudgetProjection]:
        """List the projections of a year."""
        pass

    @abstractmethod
    def delete_budget_projections(
        self, year: int, category_ids: Optional[Sequence[int]] = None
    ) -> int:
        """Delete projections of a year, all or only the given categories."""
        pass

    @abstractmethod
    def create_budget_projection(
        self,
        year: int,
        category_id: int,
        category_type: str,
        months: Sequence[Decimal],
    ) -> int:
        """Create a projection row. The total is the sum of the months."""
        pass
