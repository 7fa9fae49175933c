"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the services keep working on
frozen entities whatever the physical schema looks like (for instance the
twelve month columns of budget_projections become a tuple).
"""

from parkledger.domain import entities as domain
from parkledger.database.models import (
    AccountingCategory as ORMCategory,
    AccountingTransaction as ORMTransaction,
    JournalEntry as ORMJournalEntry,
    JournalEntryLine as ORMJournalEntryLine,
    AccountBalance as ORMAccountBalance,
    BudgetProjection as ORMBudgetProjection,
)
from parkledger.utils.amount_parser import to_money


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy AccountingCategory model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        code=orm_category.code,
        name=orm_category.name,
        level=orm_category.level,
        parent_id=orm_category.parent_id,
        nature=domain.Nature(orm_category.nature),
        is_active=bool(orm_category.is_active),
        full_path=orm_category.full_path,
        sort_order=orm_category.sort_order or 0,
        description=orm_category.description,
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy AccountingTransaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        transaction_type=domain.TransactionType(orm_transaction.transaction_type),
        amount=to_money(orm_transaction.amount),
        date=orm_transaction.date,
        category_id=orm_transaction.category_id,
        description=orm_transaction.description or "",
        reference=orm_transaction.reference,
        journal_entry_id=orm_transaction.journal_entry_id,
        source_module=orm_transaction.source_module,
        created_by=orm_transaction.created_by,
        created_at=orm_transaction.created_at,
    )


def journal_line_to_domain(orm_line: ORMJournalEntryLine) -> domain.JournalEntryLine:
    """Convert SQLAlchemy JournalEntryLine model to domain entity."""
    return domain.JournalEntryLine(
        id=orm_line.id,
        entry_id=orm_line.entry_id,
        account_id=orm_line.account_id,
        debit=to_money(orm_line.debit),
        credit=to_money(orm_line.credit),
        description=orm_line.description,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model (with its lines) to domain entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        entry_number=orm_entry.entry_number,
        date=orm_entry.date,
        description=orm_entry.description,
        reference=orm_entry.reference,
        status=domain.EntryStatus(orm_entry.status),
        total_debit=to_money(orm_entry.total_debit),
        total_credit=to_money(orm_entry.total_credit),
        source_transaction_id=orm_entry.source_transaction_id,
        created_by=orm_entry.created_by,
        created_at=orm_entry.created_at,
        posted_at=orm_entry.posted_at,
        lines=tuple(journal_line_to_domain(line) for line in orm_entry.lines),
    )


def account_balance_to_domain(orm_balance: ORMAccountBalance) -> domain.AccountBalance:
    """Convert SQLAlchemy AccountBalance model to domain entity."""
    return domain.AccountBalance(
        id=orm_balance.id,
        account_id=orm_balance.account_id,
        period=orm_balance.period,
        opening_balance=to_money(orm_balance.opening_balance),
        period_debits=to_money(orm_balance.period_debits),
        period_credits=to_money(orm_balance.period_credits),
        ending_balance=to_money(orm_balance.ending_balance),
        last_updated=orm_balance.last_updated,
    )


def budget_projection_to_domain(
    orm_projection: ORMBudgetProjection,
) -> domain.BudgetProjection:
    """Convert SQLAlchemy BudgetProjection model to domain entity."""
    months = tuple(to_money(value) for value in orm_projection.get_months())
    return domain.BudgetProjection(
        id=orm_projection.id,
        category_id=orm_projection.category_id,
        category_type=domain.TransactionType(orm_projection.category_type),
        year=orm_projection.year,
        months=months,
        total=to_money(orm_projection.total_amount),
    )
