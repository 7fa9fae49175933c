"""Shared domain error messages and error types."""

from dataclasses import dataclass
from typing import Optional, Sequence


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity or path does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class ConfigError(ValidationError):
    """Invalid configuration value."""


class DuplicateCodeError(ConflictError):
    """An account with the same code already exists."""


class ParentNotFoundError(NotFoundError):
    """The parent account of a new account does not exist."""


class UnbalancedEntryError(ValidationError):
    """Journal entry debits and credits differ."""


class CategoryTypeMismatchError(ValidationError):
    """Category does not belong to the side expected by the transaction type."""


class AmountNotPositiveError(ValidationError):
    """Amount must be strictly positive."""


class InvalidStatusTransitionError(ValidationError):
    """Journal entry status change is not allowed."""


class HasTransactionsError(DependencyError):
    """Account is referenced by transactions or ledger lines."""


class HasChildrenError(DependencyError):
    """Account still has active child accounts."""


class NoMappingFoundError(NotFoundError):
    """No cash or operational account could be resolved for a transaction."""


class EntryImmutableError(ConflictError):
    """A posted entry (or its linked transaction) cannot be changed."""


class OperationInProgressError(ConflictError):
    """Another run of the same keyed operation holds the lock."""


@dataclass(frozen=True)
class RowError:
    """Validation problem found in one input row."""

    row_number: int
    field: Optional[str]
    message: str

    def __str__(self) -> str:
        if self.field:
            return f"Row {self.row_number} ({self.field}): {self.message}"
        return f"Row {self.row_number}: {self.message}"


class BudgetImportError(ValidationError):
    """Budget CSV import rejected; nothing was written."""

    def __init__(self, year: int, row_errors: Sequence[RowError]):
        self.year = year
        self.row_errors = list(row_errors)
        super().__init__(budget_import_rejected(year, self.row_errors))


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_code_not_found(code: str) -> str:
    """Return message for missing account by code."""
    return f"Account with code '{code}' not found"


def parent_not_found(parent_id: int) -> str:
    """Return message for missing parent account."""
    return f"Parent account {parent_id} not found"


def duplicate_code(code: str) -> str:
    """Return message for duplicate account code."""
    return f"Account code '{code}' already exists"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def amount_not_positive(amount) -> str:
    """Return message for zero or negative amounts."""
    return f"Amount must be greater than zero (got {amount})"


def category_type_mismatch(code: str, transaction_type: str) -> str:
    """Return message when a category cannot be used for a transaction type."""
    return f"Category '{code}' cannot be used for {transaction_type} transactions"


def unbalanced_entry(total_debit, total_credit) -> str:
    """Return message for an entry whose sides differ."""
    return (
        f"Journal entry is not balanced: debits {total_debit} != credits {total_credit}"
    )


def invalid_transition(entry_number: str, current: str, target: str) -> str:
    """Return message for a forbidden status change."""
    return f"Cannot move entry {entry_number} from '{current}' to '{target}'"


def account_deactivate_blocked(
    account_code: str, transaction_count: int, child_count: int = 0
) -> str:
    """Return message when an account has dependent transactions or children."""
    if transaction_count > 0:
        return (
            f"Cannot deactivate account '{account_code}': it is referenced by "
            f"{transaction_count} transaction{'s' if transaction_count != 1 else ''}"
        )
    return (
        f"Cannot deactivate account '{account_code}': it has "
        f"{child_count} active child account{'s' if child_count != 1 else ''}"
    )


def no_mapping_found(transaction_type: str, missing: str) -> str:
    """Return message when the resolver cannot find an account."""
    return f"No {missing} account found for {transaction_type} transactions"


def operation_in_progress(key: str) -> str:
    """Return message when a keyed operation is already running."""
    return f"Operation '{key}' is already running"


def budget_import_rejected(year: int, row_errors: Sequence[RowError]) -> str:
    """Return message summarizing a rejected budget import."""
    count = len(row_errors)
    details = "; ".join(str(error) for error in row_errors[:5])
    more = f" (and {count - 5} more)" if count > 5 else ""
    return (
        f"Budget import for {year} rejected with {count} "
        f"error{'s' if count != 1 else ''}: {details}{more}"
    )
