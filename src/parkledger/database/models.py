"""SQLAlchemy models for parkledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(15, 2)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AccountingCategory(Base):
    """Chart of accounts node with hierarchical structure."""

    __tablename__ = "accounting_categories"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    level = Column(Integer, nullable=False)
    parent_id = Column(Integer, ForeignKey("accounting_categories.id"), nullable=True)
    nature = Column(String(10), nullable=False)  # 'debit' | 'credit'
    is_active = Column(Boolean, default=True, nullable=False)
    full_path = Column(String(500), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    parent = relationship("AccountingCategory", remote_side=[id], backref="children")
    transactions = relationship("AccountingTransaction", back_populates="category")

    __table_args__ = (Index("ix_accounting_categories_parent", "parent_id"),)


class AccountingTransaction(Base):
    """Realized income or expense."""

    __tablename__ = "accounting_transactions"

    id = Column(Integer, primary_key=True)
    transaction_type = Column(String(20), nullable=False)  # 'income' | 'expense'
    amount = Column(MONEY, nullable=False)
    date = Column(Date, nullable=False)
    category_id = Column(Integer, ForeignKey("accounting_categories.id"), nullable=False)
    description = Column(Text, nullable=False, default="")
    reference = Column(String(100), nullable=True)
    source_module = Column(String(50), nullable=True)
    # Plain column; the foreign key lives on journal_entries.source_transaction_id
    journal_entry_id = Column(Integer, nullable=True)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    category = relationship("AccountingCategory", back_populates="transactions")

    __table_args__ = (
        Index("ix_accounting_transactions_date", "date"),
        Index("ix_accounting_transactions_category", "category_id"),
    )


class JournalEntry(Base):
    """Journal entry header."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    entry_number = Column(String(50), unique=True, nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)
    reference = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="draft")
    total_debit = Column(MONEY, nullable=False)
    total_credit = Column(MONEY, nullable=False)
    source_transaction_id = Column(
        Integer, ForeignKey("accounting_transactions.id"), nullable=True
    )
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    posted_at = Column(DateTime, nullable=True)

    # Relationships
    lines = relationship(
        "JournalEntryLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.sort_order",
    )

    __table_args__ = (Index("ix_journal_entries_date", "date"),)


class JournalEntryLine(Base):
    """Posting line of a journal entry."""

    __tablename__ = "journal_entry_lines"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounting_categories.id"), nullable=False)
    debit = Column(MONEY, nullable=False, default=0)
    credit = Column(MONEY, nullable=False, default=0)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    entry = relationship("JournalEntry", back_populates="lines")

    __table_args__ = (Index("ix_journal_entry_lines_account", "account_id"),)


class AccountBalance(Base):
    """Per-period balance snapshot (cache of the journal lines)."""

    __tablename__ = "account_balances"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounting_categories.id"), nullable=False)
    period = Column(String(7), nullable=False)  # YYYY-MM
    opening_balance = Column(MONEY, nullable=False, default=0)
    period_debits = Column(MONEY, nullable=False, default=0)
    period_credits = Column(MONEY, nullable=False, default=0)
    ending_balance = Column(MONEY, nullable=False, default=0)
    last_updated = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "period", name="uq_account_period"),
        Index("ix_account_balances_period", "period"),
    )


class BudgetProjection(Base):
    """Planned monthly amounts for one category and year."""

    __tablename__ = "budget_projections"

    id = Column(Integer, primary_key=True)
    year = Column(Integer, nullable=False)
    category_id = Column(Integer, ForeignKey("accounting_categories.id"), nullable=False)
    category_type = Column(String(10), nullable=False)  # 'income' | 'expense'
    month1 = Column(MONEY, nullable=False, default=0)
    month2 = Column(MONEY, nullable=False, default=0)
    month3 = Column(MONEY, nullable=False, default=0)
    month4 = Column(MONEY, nullable=False, default=0)
    month5 = Column(MONEY, nullable=False, default=0)
    month6 = Column(MONEY, nullable=False, default=0)
    month7 = Column(MONEY, nullable=False, default=0)
    month8 = Column(MONEY, nullable=False, default=0)
    month9 = Column(MONEY, nullable=False, default=0)
    month10 = Column(MONEY, nullable=False, default=0)
    month11 = Column(MONEY, nullable=False, default=0)
    month12 = Column(MONEY, nullable=False, default=0)
    total_amount = Column(MONEY, nullable=False, default=0)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("category_id", "year", name="uq_budget_category_year"),
    )

    def get_months(self) -> list:
        return [getattr(self, f"month{month}") for month in range(1, 13)]

    def set_months(self, values) -> None:
        for month, value in enumerate(values, start=1):
            setattr(self, f"month{month}", value)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
