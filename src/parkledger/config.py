"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional

from parkledger.domain.errors import ConfigError

ENV_PREFIX = "PARKLEDGER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Configuration shared by the services and the CLI."""

    database_url: Optional[str] = None
    database_path: Optional[str] = None
    log_level: str = "INFO"
    log_format: str = "console"
    cash_account_prefix: str = "101."
    entry_prefix: str = "AST"
    auto_generate_entries: bool = True
    catch_up_limit: int = 100
    expense_alert_ratio: Decimal = Decimal("1.5")
    income_alert_ratio: Decimal = Decimal("0.7")
    trailing_months: int = 3

    def resolve_database_url(self) -> str:
        """Return the SQLAlchemy URL, defaulting to ~/.parkledger/parkledger.db."""
        if self.database_url:
            return self.database_url
        database_path = self.database_path
        if database_path is None:
            db_dir = Path.home() / ".parkledger"
            db_dir.mkdir(exist_ok=True)
            database_path = str(db_dir / "parkledger.db")
        return f"sqlite:///{database_path}"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{raw}'")


def _parse_int(name: str, raw: str, minimum: int = 1) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'") from None
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")
    return value


def _parse_ratio(name: str, raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from PARKLEDGER_* environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Settings instance

    Raises:
        ConfigError: If a variable holds an invalid value
    """
    env = os.environ if environ is None else environ
    defaults = Settings()

    def get(name: str) -> Optional[str]:
        value = env.get(ENV_PREFIX + name)
        if value is None or value.strip() == "":
            return None
        return value

    log_format = (get("LOG_FORMAT") or defaults.log_format).lower()
    if log_format not in ("console", "json"):
        raise ConfigError(
            f"{ENV_PREFIX}LOG_FORMAT must be 'console' or 'json', got '{log_format}'"
        )

    raw_auto = get("AUTO_GENERATE_ENTRIES")
    raw_limit = get("CATCH_UP_LIMIT")
    raw_expense = get("EXPENSE_ALERT_RATIO")
    raw_income = get("INCOME_ALERT_RATIO")
    raw_trailing = get("TRAILING_MONTHS")

    return Settings(
        database_url=get("DB_URL"),
        database_path=get("DB_PATH"),
        log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
        log_format=log_format,
        cash_account_prefix=get("CASH_ACCOUNT_PREFIX") or defaults.cash_account_prefix,
        entry_prefix=get("ENTRY_PREFIX") or defaults.entry_prefix,
        auto_generate_entries=(
            _parse_bool(ENV_PREFIX + "AUTO_GENERATE_ENTRIES", raw_auto)
            if raw_auto is not None
            else defaults.auto_generate_entries
        ),
        catch_up_limit=(
            _parse_int(ENV_PREFIX + "CATCH_UP_LIMIT", raw_limit)
            if raw_limit is not None
            else defaults.catch_up_limit
        ),
        expense_alert_ratio=(
            _parse_ratio(ENV_PREFIX + "EXPENSE_ALERT_RATIO", raw_expense)
            if raw_expense is not None
            else defaults.expense_alert_ratio
        ),
        income_alert_ratio=(
            _parse_ratio(ENV_PREFIX + "INCOME_ALERT_RATIO", raw_income)
            if raw_income is not None
            else defaults.income_alert_ratio
        ),
        trailing_months=(
            _parse_int(ENV_PREFIX + "TRAILING_MONTHS", raw_trailing)
            if raw_trailing is not None
            else defaults.trailing_months
        ),
    )
