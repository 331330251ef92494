"""
Allocations Repository - Per-(timer, calendar day) budget rows
"""

import sqlite3
import uuid
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from core.logger import get_logger
from core.sqls import queries

from .base import BaseRepository

logger = get_logger(__name__)


class AllocationsRepository(BaseRepository):
    """Repository for daily allocations"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    def get_by_id(
        self, allocation_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Dict[str, Any]]:
        row = self._execute_query(
            queries.SELECT_ALLOCATION_BY_ID, (allocation_id,), fetch_one=True, conn=conn
        )
        return self._row_to_dict(row)

    def get_by_timer_and_date(
        self, timer_id: str, day: date, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Dict[str, Any]]:
        row = self._execute_query(
            queries.SELECT_ALLOCATION_BY_TIMER_DATE,
            (timer_id, day.isoformat()),
            fetch_one=True,
            conn=conn,
        )
        return self._row_to_dict(row)

    def insert_if_absent(
        self,
        timer_id: str,
        day: date,
        total_seconds: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> bool:
        """
        Insert the allocation unless one already exists for (timer, day)

        A concurrent insert of the same key is absorbed by the unique
        constraint's DO NOTHING clause rather than raised.

        Returns:
            True if this call inserted the row
        """
        inserted = self._execute_query(
            queries.INSERT_ALLOCATION_IF_ABSENT,
            (str(uuid.uuid4()), timer_id, day.isoformat(), total_seconds),
            conn=conn,
        )
        if inserted:
            logger.debug(
                f"Created allocation for timer {timer_id} on {day}: {total_seconds}s"
            )
        return inserted > 0

    def upsert_total(
        self,
        timer_id: str,
        day: date,
        total_seconds: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Set a day's total, creating the allocation when missing"""
        self._execute_query(
            queries.UPSERT_ALLOCATION_TOTAL,
            (str(uuid.uuid4()), timer_id, day.isoformat(), total_seconds),
            conn=conn,
        )
        logger.debug(f"Set allocation total for timer {timer_id} on {day}: {total_seconds}s")

    def increment_used(
        self,
        allocation_id: str,
        delta_seconds: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        """Atomic ``used_seconds += delta``; returns rows affected"""
        return self._execute_query(
            queries.INCREMENT_ALLOCATION_USED,
            (delta_seconds, allocation_id),
            conn=conn,
        )

    def set_override(
        self,
        allocation_id: str,
        value: Optional[str],
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        """Overwrite manual_override ('active', 'expired' or None)"""
        return self._execute_query(
            queries.UPDATE_ALLOCATION_OVERRIDE, (value, allocation_id), conn=conn
        )

    def get_reserved_seconds(
        self, allocation_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> int:
        """Sum of allocated seconds over the allocation's non-terminal checkouts"""
        row = self._execute_query(
            queries.SUM_RESERVED_SECONDS, (allocation_id,), fetch_one=True, conn=conn
        )
        return int(row["reserved"]) if row else 0
