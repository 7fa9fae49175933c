"""Transaction domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from parkledger.config import Settings
from parkledger.database.base import Database
from parkledger.domain.entities import (
    ROOT_DIGIT_BY_TYPE,
    Category,
    NewTransaction,
    Nature,
    RecordResult,
    Transaction,
    TransactionType,
)
from parkledger.domain.errors import (
    AmountNotPositiveError,
    CategoryTypeMismatchError,
    EntryImmutableError,
    NotFoundError,
    ValidationError,
    account_not_found,
    amount_not_positive,
    category_type_mismatch,
    transaction_not_found,
)
from parkledger.domain.journal import JournalService
from parkledger.utils.amount_parser import to_money

logger = logging.getLogger(__name__)

# Natural side of the categories each transaction type may use
_EXPECTED_NATURE = {
    TransactionType.INCOME: Nature.CREDIT,
    TransactionType.EXPENSE: Nature.DEBIT,
}


def _parse_type(transaction_type) -> TransactionType:
    try:
        return TransactionType(transaction_type)
    except ValueError:
        raise ValidationError(
            f"Invalid transaction type '{transaction_type}'. Must be 'income' or 'expense'"
        ) from None


class TransactionService:
    """Service for recording income and expense transactions."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        journal: Optional[JournalService] = None,
    ):
        """Initialize transaction service.

        Args:
            db: Database instance
            settings: Optional settings (automatic entry generation switch)
            journal: Optional journal service used for phase 2
        """
        self.db = db
        self.settings = settings or Settings()
        self.journal = journal or JournalService(db, self.settings)

    def _validate_amount(self, amount) -> Decimal:
        try:
            amount = to_money(amount)
        except ValueError:
            raise AmountNotPositiveError(amount_not_positive(amount)) from None
        if amount <= 0:
            raise AmountNotPositiveError(amount_not_positive(amount))
        return amount

    def _validate_category(
        self, category_id: int, transaction_type: TransactionType
    ) -> Category:
        category = self.db.get_account(category_id)
        if category is None:
            raise NotFoundError(account_not_found(category_id))
        if not category.is_active:
            raise ValidationError(f"Category '{category.code}' is inactive")
        if (
            not category.code.startswith(ROOT_DIGIT_BY_TYPE[transaction_type])
            or category.nature != _EXPECTED_NATURE[transaction_type]
        ):
            raise CategoryTypeMismatchError(
                category_type_mismatch(category.code, transaction_type.value)
            )
        return category

    def record_transaction(
        self, new_transaction: NewTransaction, actor_id: Optional[int] = None
    ) -> RecordResult:
        """Record a transaction and then make sure it has a journal entry.

        The transaction is committed first. Entry generation runs afterwards;
        when it fails the transaction stays recorded and the failure is
        returned as a warning.

        Args:
            new_transaction: Validated input
            actor_id: Optional actor ID

        Returns:
            RecordResult with the transaction, its entry (if any) and a warning

        Raises:
            AmountNotPositiveError: If amount is not positive
            NotFoundError: If the category does not exist
            CategoryTypeMismatchError: If the category does not fit the type
            ValidationError: If the category is inactive or input is malformed
        """
        transaction_type = _parse_type(new_transaction.transaction_type)
        amount = self._validate_amount(new_transaction.amount)
        if not isinstance(new_transaction.date, date):
            raise ValidationError("Transaction date is required")
        self._validate_category(new_transaction.category_id, transaction_type)

        transaction_id = self.db.create_transaction(
            transaction_type=transaction_type.value,
            amount=amount,
            date=new_transaction.date,
            category_id=new_transaction.category_id,
            description=new_transaction.description or "",
            reference=new_transaction.reference,
            source_module=new_transaction.source_module,
            created_by=actor_id,
        )
        logger.info(
            "Recorded %s transaction %s for %s", transaction_type.value, transaction_id, amount
        )

        if not self.settings.auto_generate_entries:
            return RecordResult(transaction=self.db.get_transaction(transaction_id))

        entry = None
        warning = None
        try:
            entry = self.journal.ensure_entry(transaction_id, actor_id=actor_id)
        except Exception as e:
            logger.warning(
                "Journal entry generation failed for transaction %s: %s",
                transaction_id,
                e,
                exc_info=True,
            )
            warning = f"Transaction recorded but its journal entry was not generated: {e}"

        return RecordResult(
            transaction=self.db.get_transaction(transaction_id),
            entry=entry,
            warning=warning,
        )

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return self.db.get_transaction(transaction_id)

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_type=None,
        category_id: Optional[int] = None,
        unlinked_only: bool = False,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions, newest first.

        Args:
            start_date: Optional start date (inclusive)
            end_date: Optional end date (inclusive)
            transaction_type: Optional 'income' or 'expense'
            category_id: Optional category filter
            unlinked_only: Only transactions without a journal entry
            limit: Maximum number of rows

        Returns:
            List of transactions
        """
        type_value = _parse_type(transaction_type).value if transaction_type else None
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            transaction_type=type_value,
            category_id=category_id,
            unlinked_only=unlinked_only,
            limit=limit,
        )

    def update_transaction(
        self,
        transaction_id: int,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        amount=None,
        date: Optional[date] = None,
        category_id: Optional[int] = None,
    ) -> Transaction:
        """Update a transaction.

        Description and reference can always change. Amount, date and
        category change what the ledger shows, so they are frozen once a
        journal entry is linked.

        Raises:
            NotFoundError: If the transaction does not exist
            EntryImmutableError: If booked fields change on a linked transaction
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        changes_booking = amount is not None or date is not None or category_id is not None
        if changes_booking and transaction.journal_entry_id is not None:
            raise EntryImmutableError(
                f"Transaction {transaction_id} is booked in journal entry "
                f"{transaction.journal_entry_id}; reverse the entry instead"
            )
        if amount is not None:
            amount = self._validate_amount(amount)
        if category_id is not None:
            self._validate_category(category_id, transaction.transaction_type)

        self.db.update_transaction(
            transaction_id,
            description=description,
            reference=reference,
            amount=amount,
            date=date,
            category_id=category_id,
        )
        return self.db.get_transaction(transaction_id)

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction.

        A linked journal entry is kept (posted entries are not reversed
        automatically); only its back-reference to the transaction is cleared.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        with self.db.unit_of_work():
            self.db.clear_entry_source(transaction_id)
            self.db.delete_transaction(transaction_id)

        if transaction.journal_entry_id is not None:
            logger.info(
                "Deleted transaction %s; journal entry %s kept",
                transaction_id,
                transaction.journal_entry_id,
            )
        else:
            logger.info("Deleted transaction %s", transaction_id)
