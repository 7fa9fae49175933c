"""Tests for settings loaded from the environment."""

import pytest
from decimal import Decimal

from parkledger.config import Settings, load_settings
from parkledger.domain.errors import ConfigError


def test_defaults_without_environment():
    """Test that an empty environment yields the defaults."""
    settings = load_settings({})
    assert settings == Settings()
    assert settings.cash_account_prefix == "101."
    assert settings.entry_prefix == "AST"
    assert settings.auto_generate_entries is True
    assert settings.expense_alert_ratio == Decimal("1.5")
    assert settings.income_alert_ratio == Decimal("0.7")
    assert settings.trailing_months == 3


def test_environment_overrides():
    """Test that PARKLEDGER_* variables override defaults."""
    settings = load_settings(
        {
            "PARKLEDGER_DB_PATH": "/tmp/ledger.db",
            "PARKLEDGER_LOG_LEVEL": "debug",
            "PARKLEDGER_LOG_FORMAT": "JSON",
            "PARKLEDGER_AUTO_GENERATE_ENTRIES": "no",
            "PARKLEDGER_CATCH_UP_LIMIT": "25",
            "PARKLEDGER_EXPENSE_ALERT_RATIO": "2",
            "PARKLEDGER_TRAILING_MONTHS": "6",
            "PARKLEDGER_ENTRY_PREFIX": "PQ",
        }
    )
    assert settings.database_path == "/tmp/ledger.db"
    assert settings.log_level == "DEBUG"
    assert settings.log_format == "json"
    assert settings.auto_generate_entries is False
    assert settings.catch_up_limit == 25
    assert settings.expense_alert_ratio == Decimal("2")
    assert settings.trailing_months == 6
    assert settings.entry_prefix == "PQ"


def test_blank_values_fall_back_to_defaults():
    """Test that empty variables are ignored."""
    settings = load_settings({"PARKLEDGER_CATCH_UP_LIMIT": "  ", "PARKLEDGER_LOG_LEVEL": ""})
    assert settings.catch_up_limit == 100
    assert settings.log_level == "INFO"


@pytest.mark.parametrize(
    "name,value",
    [
        ("PARKLEDGER_AUTO_GENERATE_ENTRIES", "maybe"),
        ("PARKLEDGER_CATCH_UP_LIMIT", "ten"),
        ("PARKLEDGER_CATCH_UP_LIMIT", "0"),
        ("PARKLEDGER_EXPENSE_ALERT_RATIO", "-1"),
        ("PARKLEDGER_INCOME_ALERT_RATIO", "abc"),
        ("PARKLEDGER_LOG_FORMAT", "xml"),
    ],
)
def test_invalid_values_raise_config_error(name, value):
    """Test that malformed values are rejected."""
    with pytest.raises(ConfigError, match=name):
        load_settings({name: value})


def test_database_url_wins_over_path():
    """Test URL resolution order."""
    settings = Settings(database_url="postgresql://u@h/db", database_path="/tmp/x.db")
    assert settings.resolve_database_url() == "postgresql://u@h/db"


def test_database_path_becomes_sqlite_url():
    """Test that a file path maps to a SQLite URL."""
    settings = Settings(database_path="/tmp/x.db")
    assert settings.resolve_database_url() == "sqlite:////tmp/x.db"
