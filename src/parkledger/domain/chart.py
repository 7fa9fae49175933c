"""Chart of accounts domain service."""

import logging
from typing import Iterable, Iterator, Optional

from parkledger.database.base import Database
from parkledger.domain.entities import Category, Nature
from parkledger.domain.errors import (
    DuplicateCodeError,
    HasChildrenError,
    HasTransactionsError,
    NotFoundError,
    ParentNotFoundError,
    ValidationError,
    account_code_not_found,
    account_deactivate_blocked,
    account_not_found,
    duplicate_code,
    parent_not_found,
)

logger = logging.getLogger(__name__)


# Default municipal chart: (code, name, parent code, nature)
DEFAULT_CHART = [
    # Roots
    ("100", "Activos", None, Nature.DEBIT),
    ("200", "Pasivos", None, Nature.CREDIT),
    ("300", "Patrimonio", None, Nature.CREDIT),
    ("400", "Ingresos", None, Nature.CREDIT),
    ("500", "Egresos", None, Nature.DEBIT),
    # Groups
    ("101", "Activos circulantes", "100", Nature.DEBIT),
    ("102", "Activos fijos", "100", Nature.DEBIT),
    ("201", "Pasivos circulantes", "200", Nature.CREDIT),
    ("202", "Pasivos a largo plazo", "200", Nature.CREDIT),
    ("301", "Patrimonio municipal", "300", Nature.CREDIT),
    ("302", "Resultados acumulados", "300", Nature.CREDIT),
    ("401", "Ingresos operacionales", "400", Nature.CREDIT),
    ("402", "Ingresos no operacionales", "400", Nature.CREDIT),
    ("501", "Gastos de operación", "500", Nature.DEBIT),
    ("502", "Gastos de administración", "500", Nature.DEBIT),
    # Leaves
    ("101.01", "Caja y efectivo", "101", Nature.DEBIT),
    ("101.02", "Bancos", "101", Nature.DEBIT),
    ("101.03", "Cuentas por cobrar", "101", Nature.DEBIT),
    ("102.01", "Terrenos", "102", Nature.DEBIT),
    ("102.02", "Edificios", "102", Nature.DEBIT),
    ("102.03", "Maquinaria y equipo", "102", Nature.DEBIT),
    ("201.01", "Proveedores", "201", Nature.CREDIT),
    ("201.02", "Impuestos por pagar", "201", Nature.CREDIT),
    ("202.01", "Préstamos bancarios", "202", Nature.CREDIT),
    ("301.01", "Aportaciones municipales", "301", Nature.CREDIT),
    ("302.01", "Resultado de ejercicios anteriores", "302", Nature.CREDIT),
    ("401.01", "Ingresos por servicios", "401", Nature.CREDIT),
    ("401.02", "Ingresos por concesiones", "401", Nature.CREDIT),
    ("401.03", "Ingresos por patrocinios", "401", Nature.CREDIT),
    ("402.01", "Donativos", "402", Nature.CREDIT),
    ("501.01", "Mantenimiento de parques", "501", Nature.DEBIT),
    ("501.02", "Servicios públicos", "501", Nature.DEBIT),
    ("501.03", "Nómina operativa", "501", Nature.DEBIT),
    ("502.01", "Papelería y oficina", "502", Nature.DEBIT),
    ("502.02", "Honorarios", "502", Nature.DEBIT),
]


class AccountTree:
    """In-memory arena of accounts keyed by id.

    Built once from a flat account list; every hierarchy question is answered
    from the parent index and child lists without further queries. Accounts
    whose parent is not part of the arena (an inactive parent when the tree is
    built from active accounts only) are treated as roots.
    """

    def __init__(self, accounts: Iterable[Category]):
        self._nodes: dict[int, Category] = {}
        self._by_code: dict[str, int] = {}
        self._children: dict[int, list[int]] = {}
        self._roots: list[int] = []

        ordered = sorted(accounts, key=lambda account: (account.sort_order, account.code))
        for account in ordered:
            self._nodes[account.id] = account
            self._by_code[account.code] = account.id
            self._children[account.id] = []
        for account in ordered:
            if account.parent_id is not None and account.parent_id in self._nodes:
                self._children[account.parent_id].append(account.id)
            else:
                self._roots.append(account.id)

    def __contains__(self, account_id: int) -> bool:
        return account_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, account_id: int) -> Optional[Category]:
        return self._nodes.get(account_id)

    def by_code(self, code: str) -> Optional[Category]:
        account_id = self._by_code.get(code)
        return self._nodes[account_id] if account_id is not None else None

    def roots(self) -> list[Category]:
        return [self._nodes[account_id] for account_id in self._roots]

    def children(self, account_id: int) -> list[Category]:
        return [self._nodes[child] for child in self._children.get(account_id, [])]

    def is_leaf(self, account_id: int) -> bool:
        return not self._children.get(account_id)

    def ancestors(self, account_id: int) -> list[Category]:
        """Return the ancestors of an account, root first."""
        chain = []
        account = self._nodes.get(account_id)
        seen = {account_id}
        while account is not None and account.parent_id is not None:
            if account.parent_id in seen:
                break
            seen.add(account.parent_id)
            account = self._nodes.get(account.parent_id)
            if account is not None:
                chain.append(account)
        return list(reversed(chain))

    def descendants(self, account_id: int) -> list[Category]:
        """Return every account below account_id, depth first."""
        result = []
        stack = list(reversed(self._children.get(account_id, [])))
        while stack:
            current = stack.pop()
            result.append(self._nodes[current])
            stack.extend(reversed(self._children[current]))
        return result

    def walk(self) -> Iterator[tuple[Category, int]]:
        """Yield (account, depth) pairs in display order."""
        stack = [(root, 0) for root in reversed(self._roots)]
        while stack:
            current, depth = stack.pop()
            yield self._nodes[current], depth
            for child in reversed(self._children[current]):
                stack.append((child, depth + 1))


def _parse_nature(nature) -> Nature:
    try:
        return Nature(nature)
    except ValueError:
        raise ValidationError(
            f"Invalid nature '{nature}'. Must be 'debit' or 'credit'"
        ) from None


class ChartOfAccountsService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database):
        """Initialize chart of accounts service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_account(self, account_id: int) -> Category:
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def create_account(
        self,
        code: str,
        name: str,
        level: Optional[int],
        nature,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        sort_order: int = 0,
        created_by: Optional[int] = None,
    ) -> int:
        """Create an account.

        Args:
            code: Unique account code (e.g., "101.01")
            name: Account name
            level: Depth in the tree (1 for roots); None derives it from the parent
            nature: 'debit' or 'credit'
            parent_id: Optional parent account ID
            description: Optional description
            sort_order: Display order among siblings
            created_by: Optional actor ID

        Returns:
            Account ID

        Raises:
            DuplicateCodeError: If the code already exists
            ParentNotFoundError: If parent_id does not exist
            ValidationError: If code, name, level or nature are invalid
        """
        code = (code or "").strip()
        name = (name or "").strip()
        if not code:
            raise ValidationError("Account code cannot be empty")
        if not name:
            raise ValidationError("Account name cannot be empty")
        nature = _parse_nature(nature)

        if self.db.get_account_by_code(code) is not None:
            raise DuplicateCodeError(duplicate_code(code))

        if parent_id is not None:
            parent = self.db.get_account(parent_id)
            if parent is None:
                raise ParentNotFoundError(parent_not_found(parent_id))
            if not parent.is_active:
                raise ValidationError(
                    f"Parent account '{parent.code}' is inactive"
                )
            expected_level = parent.level + 1
            if level is None:
                level = expected_level
            elif level != expected_level:
                raise ValidationError(
                    f"Level {level} does not match parent '{parent.code}' "
                    f"(expected {expected_level})"
                )
            full_path = f"{parent.full_path}.{code}"
        else:
            if level is None:
                level = 1
            if level < 1:
                raise ValidationError(f"Level must be at least 1, got {level}")
            full_path = code

        account_id = self.db.create_account(
            code=code,
            name=name,
            level=level,
            nature=nature.value,
            full_path=full_path,
            parent_id=parent_id,
            description=description,
            sort_order=sort_order,
            created_by=created_by,
        )
        logger.info("Created account %s '%s' (id=%s)", code, name, account_id)
        return account_id

    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        sort_order: Optional[int] = None,
    ) -> None:
        """Update account metadata (name, description, sort order).

        Raises:
            NotFoundError: If account not found
            ValidationError: If name is blank
        """
        self._require_account(account_id)
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Account name cannot be empty")
        self.db.update_account(
            account_id, name=name, description=description, sort_order=sort_order
        )

    def change_nature(self, account_id: int, nature) -> None:
        """Change the nature of an account nothing references yet.

        Raises:
            NotFoundError: If account not found
            HasTransactionsError: If transactions or journal lines reference it
        """
        account = self._require_account(account_id)
        nature = _parse_nature(nature)
        if nature == account.nature:
            return
        references = self.db.count_transactions_for_account(
            account_id
        ) + self.db.count_lines_for_account(account_id)
        if references > 0:
            raise HasTransactionsError(
                f"Cannot change nature of account '{account.code}': it is "
                f"referenced by {references} transaction(s) or journal line(s)"
            )
        self.db.set_account_nature(account_id, nature.value)
        logger.info("Account %s nature changed to %s", account.code, nature.value)

    def move_account(self, account_id: int, new_parent_id: Optional[int]) -> None:
        """Reparent an account, recomputing level and full path of its subtree.

        Args:
            account_id: Account to move
            new_parent_id: New parent ID, or None to make it a root

        Raises:
            NotFoundError: If the account does not exist
            ParentNotFoundError: If the new parent does not exist
            ValidationError: If the move would create a cycle
        """
        tree = self.get_tree(active_only=False)
        account = tree.get(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        if new_parent_id is None:
            base_level, base_path = 1, account.code
        else:
            parent = tree.get(new_parent_id)
            if parent is None:
                raise ParentNotFoundError(parent_not_found(new_parent_id))
            subtree_ids = {node.id for node in tree.descendants(account_id)}
            if new_parent_id == account_id or new_parent_id in subtree_ids:
                raise ValidationError(
                    f"Cannot move account '{account.code}' under its own subtree"
                )
            base_level = parent.level + 1
            base_path = f"{parent.full_path}.{account.code}"

        with self.db.unit_of_work():
            self.db.set_account_hierarchy(account_id, new_parent_id, base_level, base_path)
            paths = {account_id: (base_level, base_path)}
            for node in tree.descendants(account_id):
                parent_level, parent_path = paths[node.parent_id]
                paths[node.id] = (parent_level + 1, f"{parent_path}.{node.code}")
                self.db.set_account_hierarchy(node.id, node.parent_id, *paths[node.id])

        logger.info(
            "Moved account %s under %s (%d accounts updated)",
            account.code,
            new_parent_id,
            len(paths),
        )

    def deactivate_account(self, account_id: int) -> None:
        """Soft-delete an account.

        Raises:
            NotFoundError: If account not found
            HasTransactionsError: If any transaction references the account
            HasChildrenError: If the account has active children
        """
        account = self._require_account(account_id)

        transaction_count = self.db.count_transactions_for_account(account_id)
        if transaction_count > 0:
            raise HasTransactionsError(
                account_deactivate_blocked(account.code, transaction_count)
            )
        child_count = self.db.count_children(account_id, active_only=True)
        if child_count > 0:
            raise HasChildrenError(
                account_deactivate_blocked(account.code, 0, child_count)
            )

        self.db.set_account_active(account_id, False)
        logger.info("Deactivated account %s", account.code)

    def reactivate_account(self, account_id: int) -> None:
        """Reactivate a previously deactivated account.

        Raises:
            NotFoundError: If account not found
            ValidationError: If its parent is inactive
        """
        account = self._require_account(account_id)
        if account.parent_id is not None:
            parent = self.db.get_account(account.parent_id)
            if parent is not None and not parent.is_active:
                raise ValidationError(
                    f"Cannot reactivate '{account.code}': parent '{parent.code}' is inactive"
                )
        self.db.set_account_active(account_id, True)
        logger.info("Reactivated account %s", account.code)

    def resolve_path(self, code: str) -> list[Category]:
        """Return the ancestor chain of an account, root first, ending with it.

        Raises:
            NotFoundError: If no account has the code
        """
        account = self.db.get_account_by_code(code)
        if account is None:
            raise NotFoundError(account_code_not_found(code))
        tree = self.get_tree(active_only=False)
        return tree.ancestors(account.id) + [account]

    def get_tree(self, active_only: bool = True) -> AccountTree:
        """Build the account tree from one read of the chart."""
        return AccountTree(self.db.list_accounts(active_only=active_only))

    def list_accounts(self, active_only: bool = True) -> list[Category]:
        return self.db.list_accounts(active_only=active_only)

    def get_account(self, account_id: int) -> Optional[Category]:
        return self.db.get_account(account_id)

    def get_account_by_code(self, code: str) -> Optional[Category]:
        return self.db.get_account_by_code(code)

    def seed_default_chart(self, created_by: Optional[int] = None) -> int:
        """Load the default chart of accounts into an empty database.

        Returns:
            Number of accounts created (0 when accounts already exist)
        """
        if self.db.count_accounts() > 0:
            return 0

        ids_by_code: dict[str, int] = {}
        levels: dict[str, int] = {}
        with self.db.unit_of_work():
            for position, (code, name, parent_code, nature) in enumerate(DEFAULT_CHART):
                parent_id = ids_by_code[parent_code] if parent_code else None
                level = levels[parent_code] + 1 if parent_code else 1
                ids_by_code[code] = self.create_account(
                    code=code,
                    name=name,
                    level=level,
                    nature=nature,
                    parent_id=parent_id,
                    sort_order=position,
                    created_by=created_by,
                )
                levels[code] = level

        logger.info("Seeded default chart with %d accounts", len(ids_by_code))
        return len(ids_by_code)
