"""Journal entry domain service."""

import logging
from datetime import date, datetime, UTC
from typing import Optional, Sequence

from parkledger.config import Settings
from parkledger.database.base import Database
from parkledger.domain.entities import (
    ZERO,
    BatchFailure,
    BatchResult,
    EntryStatus,
    IntegrationStats,
    JournalEntry,
    JournalLineInput,
    Transaction,
    TransactionType,
)
from parkledger.domain.errors import (
    AmountNotPositiveError,
    ConflictError,
    InvalidStatusTransitionError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
    account_not_found,
    amount_not_positive,
    entry_not_found,
    invalid_transition,
    transaction_not_found,
    unbalanced_entry,
)
from parkledger.domain.resolver import AccountResolver
from parkledger.utils.amount_parser import to_money
from parkledger.utils.date_parser import period_of
from parkledger.utils.locks import KeyedLock, advisory_locks

logger = logging.getLogger(__name__)

CATCH_UP_LOCK = "journal-catch-up"

_LINE_PREFIX = {
    TransactionType.INCOME: "Ingreso",
    TransactionType.EXPENSE: "Gasto",
}

_NEXT_STATUS = {
    EntryStatus.DRAFT: EntryStatus.APPROVED,
    EntryStatus.APPROVED: EntryStatus.POSTED,
}


class JournalService:
    """Service for generating and managing journal entries."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        resolver: Optional[AccountResolver] = None,
        locks: Optional[KeyedLock] = None,
    ):
        """Initialize journal service.

        Args:
            db: Database instance
            settings: Optional settings (entry prefix, catch-up limit)
            resolver: Optional account resolver (built from db when omitted)
            locks: Optional advisory lock registry (process-wide by default)
        """
        self.db = db
        self.settings = settings or Settings()
        self.resolver = resolver or AccountResolver(db, self.settings)
        self.locks = locks or advisory_locks

    def next_entry_number(self, entry_date: date) -> str:
        """Return the next free entry number for the month of entry_date."""
        prefix = f"{self.settings.entry_prefix}-{entry_date.year:04d}-{entry_date.month:02d}-"
        last = self.db.get_last_entry_number(prefix)
        sequence = int(last[len(prefix):]) + 1 if last else 1
        return f"{prefix}{sequence:04d}"

    def _validate_lines(self, lines: Sequence[JournalLineInput]) -> list[JournalLineInput]:
        """Check line shape, accounts and balance. Returns normalized lines."""
        if len(lines) < 2:
            raise ValidationError("A journal entry needs at least two lines")

        normalized = []
        for number, line in enumerate(lines, start=1):
            try:
                debit = to_money(line.debit)
                credit = to_money(line.credit)
            except ValueError as e:
                raise ValidationError(f"Line {number}: {e}") from None
            if debit < 0 or credit < 0:
                raise ValidationError(f"Line {number}: amounts cannot be negative")
            if (debit == 0) == (credit == 0):
                raise ValidationError(
                    f"Line {number}: exactly one of debit or credit must be non-zero"
                )
            account = self.db.get_account(line.account_id)
            if account is None:
                raise NotFoundError(f"Line {number}: {account_not_found(line.account_id)}")
            if not account.is_active:
                raise ValidationError(f"Line {number}: account '{account.code}' is inactive")
            normalized.append(
                JournalLineInput(
                    account_id=line.account_id,
                    debit=debit,
                    credit=credit,
                    description=line.description,
                )
            )

        total_debit = sum((line.debit for line in normalized), ZERO)
        total_credit = sum((line.credit for line in normalized), ZERO)
        if total_debit != total_credit:
            raise UnbalancedEntryError(unbalanced_entry(total_debit, total_credit))
        return normalized

    def _store_entry(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[JournalLineInput],
        status: EntryStatus,
        reference: Optional[str] = None,
        source_transaction_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> int:
        posted_at = datetime.now(UTC) if status is EntryStatus.POSTED else None
        entry_id = self.db.create_journal_entry(
            entry_number=self.next_entry_number(entry_date),
            date=entry_date,
            description=description,
            status=status.value,
            lines=lines,
            reference=reference,
            source_transaction_id=source_transaction_id,
            created_by=actor_id,
            posted_at=posted_at,
        )
        if status is EntryStatus.POSTED:
            self.db.delete_account_balances_from(period_of(entry_date))
        return entry_id

    def generate_entry(
        self, transaction: Transaction, actor_id: Optional[int] = None
    ) -> JournalEntry:
        """Generate the automatic entry of a transaction.

        Header, both lines and the transaction back-reference are written as
        one unit; nothing is left behind when any step fails.

        Args:
            transaction: Transaction to book
            actor_id: Optional actor ID

        Returns:
            The posted journal entry

        Raises:
            NoMappingFoundError: If accounts cannot be resolved
            AmountNotPositiveError: If the amount is not positive
            ConflictError: If the transaction already has an entry
        """
        if transaction.journal_entry_id is not None:
            raise ConflictError(
                f"Transaction {transaction.id} already has journal entry "
                f"{transaction.journal_entry_id}"
            )
        amount = to_money(transaction.amount)
        if amount <= 0:
            raise AmountNotPositiveError(amount_not_positive(amount))

        mapping = self.resolver.resolve_accounts(
            transaction.transaction_type, transaction.category_id
        )
        label = f"{_LINE_PREFIX[mapping.transaction_type]}: {transaction.description}"
        lines = self._validate_lines(
            [
                JournalLineInput(
                    account_id=mapping.debit_account.id, debit=amount, description=label
                ),
                JournalLineInput(
                    account_id=mapping.credit_account.id, credit=amount, description=label
                ),
            ]
        )

        with self.db.unit_of_work():
            entry_id = self._store_entry(
                entry_date=transaction.date,
                description=label,
                lines=lines,
                status=EntryStatus.POSTED,
                reference=transaction.reference,
                source_transaction_id=transaction.id,
                actor_id=actor_id,
            )
            self.db.set_transaction_entry(transaction.id, entry_id)

        entry = self.db.get_journal_entry(entry_id)
        logger.info(
            "Generated entry %s for %s transaction %s (%s)",
            entry.entry_number,
            mapping.transaction_type.value,
            transaction.id,
            amount,
        )
        return entry

    def ensure_entry(
        self, transaction_id: int, actor_id: Optional[int] = None
    ) -> JournalEntry:
        """Return the entry of a transaction, generating it when missing.

        Safe to call any number of times.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        if transaction.journal_entry_id is not None:
            entry = self.db.get_journal_entry(transaction.journal_entry_id)
            if entry is not None:
                return entry
            logger.warning(
                "Transaction %s points to missing entry %s; regenerating",
                transaction_id,
                transaction.journal_entry_id,
            )
            self.db.set_transaction_entry(transaction_id, None)
        else:
            # Entry written but the back-reference was lost
            entry = self.db.get_entry_for_transaction(transaction_id)
            if entry is not None:
                self.db.set_transaction_entry(transaction_id, entry.id)
                return entry

        transaction = self.db.get_transaction(transaction_id)
        return self.generate_entry(transaction, actor_id=actor_id)

    def generate_automatic_entries_for_unprocessed(
        self, limit: Optional[int] = None, actor_id: Optional[int] = None
    ) -> BatchResult:
        """Generate entries for transactions that have none, oldest first.

        Only one run may be active at a time. A failing transaction is
        recorded and skipped; the rest of the batch continues.

        Args:
            limit: Maximum transactions to process (settings default)
            actor_id: Optional actor ID

        Returns:
            BatchResult with processed count, entry IDs and failures

        Raises:
            OperationInProgressError: If another run holds the lock
        """
        if limit is None:
            limit = self.settings.catch_up_limit

        with self.locks.hold(CATCH_UP_LOCK):
            pending = self.db.list_transactions(
                unlinked_only=True, limit=limit, oldest_first=True
            )
            succeeded: list[int] = []
            failed: list[BatchFailure] = []
            for transaction in pending:
                try:
                    entry = self.ensure_entry(transaction.id, actor_id=actor_id)
                except Exception as e:
                    logger.warning(
                        "Could not generate entry for transaction %s: %s",
                        transaction.id,
                        e,
                        exc_info=True,
                    )
                    failed.append(BatchFailure(transaction_id=transaction.id, message=str(e)))
                else:
                    succeeded.append(entry.id)

        logger.info(
            "Catch-up processed %d transactions: %d succeeded, %d failed",
            len(pending),
            len(succeeded),
            len(failed),
        )
        return BatchResult(
            processed=len(pending), succeeded=tuple(succeeded), failed=tuple(failed)
        )

    def create_manual_entry(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[JournalLineInput],
        reference: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> JournalEntry:
        """Create a draft entry from hand-built lines.

        Raises:
            ValidationError: If lines are malformed or fewer than two
            UnbalancedEntryError: If debits and credits differ
            NotFoundError: If a line names an unknown account
        """
        description = (description or "").strip()
        if not description:
            raise ValidationError("Journal entry description cannot be empty")
        normalized = self._validate_lines(lines)

        with self.db.unit_of_work():
            entry_id = self._store_entry(
                entry_date=entry_date,
                description=description,
                lines=normalized,
                status=EntryStatus.DRAFT,
                reference=reference,
                actor_id=actor_id,
            )
        entry = self.db.get_journal_entry(entry_id)
        logger.info("Created manual entry %s", entry.entry_number)
        return entry

    def _advance(self, entry_id: int, target: EntryStatus) -> JournalEntry:
        entry = self.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        if _NEXT_STATUS.get(entry.status) is not target:
            raise InvalidStatusTransitionError(
                invalid_transition(entry.entry_number, entry.status.value, target.value)
            )

        with self.db.unit_of_work():
            if target is EntryStatus.POSTED:
                self.db.update_entry_status(entry_id, target.value, posted_at=datetime.now(UTC))
                self.db.delete_account_balances_from(period_of(entry.date))
            else:
                self.db.update_entry_status(entry_id, target.value)

        logger.info(
            "Entry %s moved from %s to %s",
            entry.entry_number,
            entry.status.value,
            target.value,
        )
        return self.db.get_journal_entry(entry_id)

    def approve_entry(self, entry_id: int) -> JournalEntry:
        """Move a draft entry to approved.

        Raises:
            InvalidStatusTransitionError: If the entry is not a draft
        """
        return self._advance(entry_id, EntryStatus.APPROVED)

    def post_entry(self, entry_id: int) -> JournalEntry:
        """Move an approved entry to posted, invalidating cached balances.

        Raises:
            InvalidStatusTransitionError: If the entry is not approved
        """
        return self._advance(entry_id, EntryStatus.POSTED)

    def reverse_entry(
        self,
        entry_id: int,
        reversal_date: Optional[date] = None,
        actor_id: Optional[int] = None,
    ) -> JournalEntry:
        """Create a posted entry that offsets a posted one.

        Posted entries are never changed; the reversal swaps every line's
        sides and references the original entry number.

        Raises:
            NotFoundError: If the entry does not exist
            InvalidStatusTransitionError: If the entry is not posted
        """
        entry = self.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        if entry.status is not EntryStatus.POSTED:
            raise InvalidStatusTransitionError(
                f"Only posted entries can be reversed; {entry.entry_number} is "
                f"'{entry.status.value}'"
            )

        lines = [
            JournalLineInput(
                account_id=line.account_id,
                debit=line.credit,
                credit=line.debit,
                description=line.description,
            )
            for line in entry.lines
        ]
        with self.db.unit_of_work():
            reversal_id = self._store_entry(
                entry_date=reversal_date or date.today(),
                description=f"Reversa de {entry.entry_number}: {entry.description}",
                lines=lines,
                status=EntryStatus.POSTED,
                reference=entry.entry_number,
                actor_id=actor_id,
            )
        reversal = self.db.get_journal_entry(reversal_id)
        logger.info("Reversed entry %s with %s", entry.entry_number, reversal.entry_number)
        return reversal

    def get_entry(self, entry_id: int) -> Optional[JournalEntry]:
        return self.db.get_journal_entry(entry_id)

    def list_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status=None,
        limit: Optional[int] = None,
    ) -> list[JournalEntry]:
        """List entries, optionally filtered by date range and status."""
        status_value = EntryStatus(status).value if status is not None else None
        return self.db.list_journal_entries(
            start_date=start_date, end_date=end_date, status=status_value, limit=limit
        )

    def integration_stats(self) -> IntegrationStats:
        """Report how many transactions already carry a journal entry."""
        income = TransactionType.INCOME.value
        expense = TransactionType.EXPENSE.value
        return IntegrationStats(
            income_total=self.db.count_transactions(income),
            income_linked=self.db.count_transactions(income, linked_only=True),
            expense_total=self.db.count_transactions(expense),
            expense_linked=self.db.count_transactions(expense, linked_only=True),
            entries_total=self.db.count_journal_entries(),
            entries_automatic=self.db.count_journal_entries(automatic_only=True),
        )
