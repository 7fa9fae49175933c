"""Domain layer for parkledger application.

Services are exposed lazily so that the database layer can import
parkledger.domain.entities without pulling in the services that depend on it.
"""

_SERVICES = {
    "ChartOfAccountsService": "parkledger.domain.chart",
    "AccountResolver": "parkledger.domain.resolver",
    "TransactionService": "parkledger.domain.transaction",
    "JournalService": "parkledger.domain.journal",
    "LedgerService": "parkledger.domain.ledger",
    "BudgetService": "parkledger.domain.budget",
    "CashFlowService": "parkledger.domain.cash_flow",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
