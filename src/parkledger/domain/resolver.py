"""Account resolution for automatic journal entries."""

from typing import Optional

from parkledger.config import Settings
from parkledger.database.base import Database
from parkledger.domain.entities import (
    ROOT_DIGIT_BY_TYPE,
    AccountMapping,
    Category,
    TransactionType,
)
from parkledger.domain.errors import NoMappingFoundError, no_mapping_found


class AccountResolver:
    """Pick the cash and operational accounts an automatic entry touches.

    Income debits cash and credits the operational (revenue) account; expense
    debits the operational (expense) account and credits cash. That rule lives
    only in resolve_accounts.
    """

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize account resolver.

        Args:
            db: Database instance
            settings: Optional settings (cash account prefix)
        """
        self.db = db
        self.settings = settings or Settings()

    def find_cash_account(self, accounts: list[Category]) -> Optional[Category]:
        """Return the first active account (by code) under the cash prefix."""
        prefix = self.settings.cash_account_prefix
        for account in accounts:
            if account.is_active and account.code.startswith(prefix):
                return account
        return None

    def find_operational_account(
        self,
        accounts: list[Category],
        transaction_type: TransactionType,
        category_id: Optional[int] = None,
    ) -> Optional[Category]:
        """Return the account the transaction's revenue or expense posts to.

        The transaction's own category wins when it is an active account of
        level 2 or deeper under the root matching the type; otherwise the first
        such account by code is used.
        """
        root_digit = ROOT_DIGIT_BY_TYPE[transaction_type]

        def eligible(account: Category) -> bool:
            return (
                account.is_active
                and account.level >= 2
                and account.code.startswith(root_digit)
            )

        if category_id is not None:
            for account in accounts:
                if account.id == category_id and eligible(account):
                    return account
        for account in accounts:
            if eligible(account):
                return account
        return None

    def resolve_accounts(
        self, transaction_type, category_id: Optional[int] = None
    ) -> AccountMapping:
        """Resolve the accounts of an automatic entry.

        Args:
            transaction_type: 'income' or 'expense'
            category_id: Optional category of the transaction

        Returns:
            AccountMapping with cash, operational, debit and credit accounts

        Raises:
            NoMappingFoundError: If no cash or no operational account exists
        """
        transaction_type = TransactionType(transaction_type)
        accounts = self.db.list_accounts(active_only=True)

        cash_account = self.find_cash_account(accounts)
        if cash_account is None:
            raise NoMappingFoundError(no_mapping_found(transaction_type.value, "cash"))

        operational_account = self.find_operational_account(
            accounts, transaction_type, category_id
        )
        if operational_account is None:
            raise NoMappingFoundError(
                no_mapping_found(transaction_type.value, "operational")
            )

        if transaction_type is TransactionType.INCOME:
            debit_account, credit_account = cash_account, operational_account
        else:
            debit_account, credit_account = operational_account, cash_account

        return AccountMapping(
            transaction_type=transaction_type,
            cash_account=cash_account,
            operational_account=operational_account,
            debit_account=debit_account,
            credit_account=credit_account,
        )
