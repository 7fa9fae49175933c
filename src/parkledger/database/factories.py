"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from parkledger.config import Settings
from parkledger.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks PARKLEDGER_DB_PATH
            environment variable, then defaults to ~/.parkledger/parkledger.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get("PARKLEDGER_DB_PATH")

    if database_path is None:
        # Default to ~/.parkledger/parkledger.db
        home = Path.home()
        db_dir = home / ".parkledger"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "parkledger.db")

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url)


def create_database(settings: Settings) -> SQLAlchemyDatabase:
    """Create a database from settings (PARKLEDGER_DB_URL wins over the path)."""
    return SQLAlchemyDatabase(settings.resolve_database_url())
