"""
Database module - Repository pattern implementation

This module provides:
1. Repository classes for timers, allocations, checkouts, time entries, settings
2. DatabaseManager aggregating them and owning the transaction scope
3. Global get_db() and switch_database() functions for easy access
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, Optional

from core.logger import get_logger
from core.sqls import queries, schema

from .allocations import AllocationsRepository
from .base import BaseRepository, connect, transaction
from .checkouts import CheckoutsRepository
from .settings import SettingsRepository
from .time_entries import TimeEntriesRepository
from .timers import TimersRepository

logger = get_logger(__name__)


class DatabaseManager:
    """
    Unified database manager that provides access to all repositories

    Example:
        db = get_db()
        with db.transaction() as conn:
            allocation = db.allocations.get_by_id(allocation_id, conn=conn)
            db.allocations.increment_used(allocation_id, 30, conn=conn)
    """

    def __init__(self, db_path: Path):
        """
        Initialize DatabaseManager with all repositories

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)

        self._initialize_database()

        self.timers = TimersRepository(self.db_path)
        self.allocations = AllocationsRepository(self.db_path)
        self.checkouts = CheckoutsRepository(self.db_path)
        self.time_entries = TimeEntriesRepository(self.db_path)
        self.settings = SettingsRepository(self.db_path)

        logger.debug(f"✓ DatabaseManager initialized with path: {self.db_path}")

    def _initialize_database(self):
        """
        Initialize database schema - create all tables and indexes

        Called automatically on instantiation; every statement is idempotent.
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = connect(self.db_path)
            try:
                conn.execute("PRAGMA journal_mode = WAL")
                for table_sql in schema.ALL_TABLES:
                    conn.execute(table_sql)
                for index_sql in schema.ALL_INDEXES:
                    conn.execute(index_sql)
            finally:
                conn.close()

            logger.debug(
                f"✓ Database schema initialized: {len(schema.ALL_TABLES)} tables, "
                f"{len(schema.ALL_INDEXES)} indexes"
            )

        except Exception as e:
            logger.error(f"Failed to initialize database schema: {e}", exc_info=True)
            raise

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Serialized read-modify-write scope (see core.db.base.transaction)"""
        with transaction(self.db_path) as conn:
            yield conn

    @contextmanager
    def snapshot(self) -> Generator[sqlite3.Connection, None, None]:
        """Read-only scope: one deferred transaction, rolled back on exit"""
        conn = connect(self.db_path)
        try:
            conn.execute("BEGIN")
            yield conn
        finally:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            conn.close()

    def get_table_counts(self) -> Dict[str, int]:
        """Row counts for the main tables"""
        counts: Dict[str, int] = {}
        conn = connect(self.db_path)
        try:
            for table, query in queries.TABLE_COUNT_QUERIES.items():
                row = conn.execute(query).fetchone()
                counts[table] = row["count"] if row else 0
        finally:
            conn.close()
        return counts


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db() -> DatabaseManager:
    """
    Get global DatabaseManager instance

    The database path is read from config.toml (database.path), or defaults
    to ~/.config/timebank/timebank.db
    """
    global _db_manager

    if _db_manager is None:
        from config.loader import get_config
        from core.paths import get_db_path

        configured_path = get_config().get("database.path", "")

        if configured_path and configured_path.strip():
            db_path = Path(configured_path)
        else:
            db_path = get_db_path()

        _db_manager = DatabaseManager(db_path)
        logger.debug(f"✓ Global DatabaseManager initialized: {db_path}")

    return _db_manager


def switch_database(new_db_path: str) -> bool:
    """
    Switch database to a new path at runtime

    Returns:
        True if switch successful, False otherwise
    """
    global _db_manager

    try:
        new_path = Path(new_db_path)

        if _db_manager is not None and _db_manager.db_path.resolve() == new_path.resolve():
            logger.debug(f"New path is same as current, no switch needed: {new_db_path}")
            return True

        _db_manager = DatabaseManager(new_path)
        logger.debug(f"✓ Database switched to: {new_db_path}")
        return True

    except Exception as e:
        logger.error(f"Failed to switch database: {e}", exc_info=True)
        return False


__all__ = [
    "BaseRepository",
    "TimersRepository",
    "AllocationsRepository",
    "CheckoutsRepository",
    "TimeEntriesRepository",
    "SettingsRepository",
    "DatabaseManager",
    "get_db",
    "switch_database",
]
