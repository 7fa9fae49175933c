"""Shared pytest fixtures for parkledger tests."""

import logging
import tempfile
import os
import pytest

from parkledger.config import Settings
from parkledger.database.factories import create_sqlite_database
from parkledger.domain.budget import BudgetService
from parkledger.domain.cash_flow import CashFlowService
from parkledger.domain.chart import ChartOfAccountsService
from parkledger.domain.journal import JournalService
from parkledger.domain.ledger import LedgerService
from parkledger.domain.resolver import AccountResolver
from parkledger.domain.transaction import TransactionService
from parkledger.logging_config import ROOT_LOGGER
from parkledger.utils.locks import KeyedLock


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI installs so later tests log through pytest."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def settings():
    """Default settings."""
    return Settings()


@pytest.fixture
def locks():
    """A lock registry private to the test."""
    return KeyedLock()


@pytest.fixture
def chart_service(temp_db):
    """Create a ChartOfAccountsService with a temporary database."""
    return ChartOfAccountsService(temp_db)


@pytest.fixture
def resolver(temp_db, settings):
    """Create an AccountResolver with a temporary database."""
    return AccountResolver(temp_db, settings)


@pytest.fixture
def journal_service(temp_db, settings, resolver, locks):
    """Create a JournalService with a temporary database."""
    return JournalService(temp_db, settings, resolver=resolver, locks=locks)


@pytest.fixture
def transaction_service(temp_db, settings, journal_service):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db, settings, journal=journal_service)


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def budget_service(temp_db, locks):
    """Create a BudgetService with a temporary database."""
    return BudgetService(temp_db, locks=locks)


@pytest.fixture
def cash_flow_service(temp_db, settings, budget_service):
    """Create a CashFlowService with a temporary database."""
    return CashFlowService(temp_db, settings, budget=budget_service)


@pytest.fixture
def seeded_chart(chart_service):
    """Load the default chart and return its accounts keyed by code."""
    chart_service.seed_default_chart()
    return {acc.code: acc for acc in chart_service.list_accounts(active_only=False)}


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
