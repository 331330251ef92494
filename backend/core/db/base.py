"""
Base repository class for database operations
Provides connection handling, the transaction scope and row conversion helpers
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

from core.errors import StorageError
from core.logger import get_logger

logger = get_logger(__name__)

BUSY_TIMEOUT_SECONDS = 30.0


def connect(db_path: Path) -> sqlite3.Connection:
    """
    Open a connection in autocommit mode

    Transactions are opened explicitly (see ``transaction``) so that the
    lock is taken at BEGIN rather than at the first write.
    """
    conn = sqlite3.connect(
        str(db_path),
        timeout=BUSY_TIMEOUT_SECONDS,
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(db_path: Path) -> Generator[sqlite3.Connection, None, None]:
    """
    Run a block inside one BEGIN IMMEDIATE transaction

    The write lock is acquired up front, so concurrent read-modify-write
    sequences on the same rows are serialized. Any exception rolls the whole
    transaction back; sqlite errors surface as StorageError.

    Example:
        with transaction(db_path) as conn:
            conn.execute("UPDATE ...")
    """
    try:
        conn = connect(db_path)
    except sqlite3.Error as e:
        raise StorageError(f"Cannot open database {db_path}: {e}") from e

    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.execute("COMMIT")
    except sqlite3.Error as e:
        _rollback(conn)
        logger.error(f"Transaction aborted: {e}")
        raise StorageError(f"Transaction failed: {e}") from e
    except BaseException:
        _rollback(conn)
        raise
    finally:
        conn.close()


def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")


def utc_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize an aware datetime as an ISO string in UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class BaseRepository:
    """
    Base repository class providing common database operations

    Every public repository method accepts an optional ``conn``. When given,
    the statement joins that connection's transaction; otherwise the method
    opens (and closes) a short-lived connection of its own.
    """

    def __init__(self, db_path: Path):
        """
        Initialize repository with database path

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        logger.debug(f"Initialized {self.__class__.__name__} with db_path: {db_path}")

    @contextmanager
    def _get_conn(
        self, conn: Optional[sqlite3.Connection] = None
    ) -> Generator[sqlite3.Connection, None, None]:
        """
        Yield the caller's connection, or a fresh one closed afterwards

        Example:
            with self._get_conn(conn) as c:
                rows = c.execute("SELECT * FROM table").fetchall()
        """
        if conn is not None:
            yield conn
            return

        own = connect(self.db_path)
        try:
            yield own
        finally:
            own.close()

    def _execute_query(
        self,
        query: str,
        params: Optional[tuple] = None,
        fetch_one: bool = False,
        fetch_all: bool = False,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Any:
        """
        Execute a SQL query with error handling

        Args:
            query: SQL query string
            params: Query parameters (optional)
            fetch_one: Whether to fetch one result
            fetch_all: Whether to fetch all results
            conn: Connection of an enclosing transaction (optional)

        Returns:
            Row(s) when fetching, otherwise the affected row count
        """
        try:
            with self._get_conn(conn) as c:
                cursor = c.execute(query, params or ())

                if fetch_one:
                    return cursor.fetchone()
                elif fetch_all:
                    return cursor.fetchall()

                return cursor.rowcount

        except sqlite3.Error as e:
            logger.error(f"Database error in {self.__class__.__name__}: {e}")
            logger.error(f"Query: {query}")
            logger.error(f"Params: {params}")
            raise

    def _row_to_dict(self, row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
        """Convert SQLite Row to dictionary (None stays None)"""
        if row is None:
            return None
        return dict(row)

    def _rows_to_dicts(self, rows: List[sqlite3.Row]) -> List[Dict[str, Any]]:
        """Convert list of SQLite Rows to list of dictionaries"""
        return [dict(row) for row in rows]
