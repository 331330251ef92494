"""
Checkouts Repository - Budget reservations against a daily allocation
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


class CheckoutsRepository(BaseRepository):
    """Repository for checkouts"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    def create(
        self,
        timer_id: str,
        allocation_id: str,
        allocated_seconds: int,
        now: datetime,
        conn: Optional[sqlite3.Connection] = None,
    ) -> str:
        """Insert an admitted (ACTIVE, not yet running) checkout"""
        checkout_id = str(uuid.uuid4())
        stamp = utc_iso(now)
        self._execute_query(
            queries.INSERT_CHECKOUT,
            (checkout_id, timer_id, allocation_id, allocated_seconds, stamp, stamp),
            conn=conn,
        )
        logger.debug(
            f"Created checkout {checkout_id} on allocation {allocation_id}: "
            f"{allocated_seconds}s"
        )
        return checkout_id

    def get_by_id(
        self, checkout_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Dict[str, Any]]:
        row = self._execute_query(
            queries.SELECT_CHECKOUT_BY_ID, (checkout_id,), fetch_one=True, conn=conn
        )
        return self._row_to_dict(row)

    def get_open_by_allocation(
        self, allocation_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> List[Dict[str, Any]]:
        """ACTIVE and PAUSED checkouts of one allocation"""
        rows = self._execute_query(
            queries.SELECT_CHECKOUTS_BY_ALLOCATION_STATUS,
            (allocation_id,),
            fetch_all=True,
            conn=conn,
        )
        return self._rows_to_dicts(rows)

    def get_open_by_timer(
        self, timer_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> List[Dict[str, Any]]:
        """ACTIVE and PAUSED checkouts of one timer, across days"""
        rows = self._execute_query(
            queries.SELECT_CHECKOUTS_BY_TIMER_STATUS,
            (timer_id,),
            fetch_all=True,
            conn=conn,
        )
        return self._rows_to_dicts(rows)

    def get_running_ids(self, conn: Optional[sqlite3.Connection] = None) -> List[str]:
        """Ids of ACTIVE checkouts that currently have an open time entry"""
        rows = self._execute_query(
            queries.SELECT_RUNNING_CHECKOUT_IDS, fetch_all=True, conn=conn
        )
        return [row["id"] for row in rows]

    def get_timer_ids_with_open_checkouts(
        self, conn: Optional[sqlite3.Connection] = None
    ) -> List[str]:
        rows = self._execute_query(
            queries.SELECT_TIMER_IDS_WITH_OPEN_CHECKOUTS, fetch_all=True, conn=conn
        )
        return [row["timer_id"] for row in rows]

    def update_state(
        self,
        checkout_id: str,
        used_seconds: int,
        status: str,
        now: datetime,
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        return self._execute_query(
            queries.UPDATE_CHECKOUT_STATE,
            (used_seconds, status, utc_iso(now), checkout_id),
            conn=conn,
        )
