"""Database factory functions for creating database instances."""

from typing import Optional

from bankrec.config import get_database_path, get_database_timeout
from bankrec.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(
    database_path: Optional[str] = None, timeout: Optional[float] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks BANKREC_DB_PATH
            environment variable, then defaults to ~/.bankrec/bankrec.db
        timeout: Seconds to wait on a locked database. If None, checks
            BANKREC_DB_TIMEOUT, then defaults to 30

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    database_path = get_database_path(database_path)
    if timeout is None:
        timeout = get_database_timeout()

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url, timeout=timeout)
