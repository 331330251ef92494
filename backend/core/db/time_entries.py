"""
Time Entries Repository - Contiguous running intervals of a checkout
"""

import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.logger import get_logger
from core.sqls import queries

from .base import BaseRepository, utc_iso

logger = get_logger(__name__)


class TimeEntriesRepository(BaseRepository):
    """Repository for time entries"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    def open(
        self,
        checkout_id: str,
        start_time: datetime,
        conn: Optional[sqlite3.Connection] = None,
    ) -> str:
        """
        Open a new entry

        The partial unique index on open entries makes a second concurrent
        open fail instead of silently creating a duplicate.
        """
        entry_id = str(uuid.uuid4())
        self._execute_query(
            queries.INSERT_TIME_ENTRY,
            (entry_id, checkout_id, utc_iso(start_time)),
            conn=conn,
        )
        logger.debug(f"Opened time entry {entry_id} for checkout {checkout_id}")
        return entry_id

    def close(
        self,
        entry_id: str,
        end_time: datetime,
        duration_seconds: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> bool:
        """Close an open entry; False if it was already closed"""
        closed = self._execute_query(
            queries.CLOSE_TIME_ENTRY,
            (utc_iso(end_time), duration_seconds, entry_id),
            conn=conn,
        )
        if closed:
            logger.debug(f"Closed time entry {entry_id}: {duration_seconds}s")
        return closed > 0

    def get_by_checkout(
        self, checkout_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> List[Dict[str, Any]]:
        rows = self._execute_query(
            queries.SELECT_ENTRIES_BY_CHECKOUT, (checkout_id,), fetch_all=True, conn=conn
        )
        return self._rows_to_dicts(rows)
