"""
Timers Repository - Timers and their per-weekday schedules

Timer CRUD belongs to the admin collaborator; the engine itself only reads
timers and writes their force-override timestamps. ``create`` and
``upsert_schedule`` exist for that collaborator and for fixtures.
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


class TimersRepository(BaseRepository):
    """Repository for timers and timer schedules"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    def create(
        self,
        person_id: str,
        name: str,
        default_daily_seconds: int,
        default_start_time: Optional[str] = None,
        default_expiration_time: Optional[str] = None,
        timer_id: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> str:
        """
        Insert a timer

        Returns:
            The new timer id
        """
        timer_id = timer_id or str(uuid.uuid4())
        self._execute_query(
            """
            INSERT INTO timers (
                id, person_id, name, default_daily_seconds,
                default_start_time, default_expiration_time
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                timer_id,
                person_id,
                name,
                default_daily_seconds,
                default_start_time,
                default_expiration_time,
            ),
            conn=conn,
        )
        logger.debug(f"Created timer: {timer_id} ({name})")
        return timer_id

    def get_by_id(
        self, timer_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Dict[str, Any]]:
        """Get a timer row with its schedules under ``schedules``"""
        with self._get_conn(conn) as c:
            row = self._execute_query(
                queries.SELECT_TIMER_BY_ID, (timer_id,), fetch_one=True, conn=c
            )
            timer = self._row_to_dict(row)
            if timer is None:
                return None
            timer["schedules"] = self.get_schedules(timer_id, conn=c)
            return timer

    def get_schedules(
        self, timer_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> List[Dict[str, Any]]:
        rows = self._execute_query(
            queries.SELECT_SCHEDULES_BY_TIMER, (timer_id,), fetch_all=True, conn=conn
        )
        return self._rows_to_dicts(rows)

    def get_schedule_for_day(
        self,
        timer_id: str,
        day_of_week: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[Dict[str, Any]]:
        """Schedule entry for one weekday (Sunday = 0), if any"""
        row = self._execute_query(
            queries.SELECT_SCHEDULE_FOR_DAY,
            (timer_id, day_of_week),
            fetch_one=True,
            conn=conn,
        )
        return self._row_to_dict(row)

    def upsert_schedule(
        self,
        timer_id: str,
        day_of_week: int,
        seconds: int,
        start_time: Optional[str] = None,
        expiration_time: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Create or replace the schedule entry for one weekday"""
        self._execute_query(
            queries.UPSERT_SCHEDULE,
            (
                str(uuid.uuid4()),
                timer_id,
                day_of_week,
                seconds,
                start_time,
                expiration_time,
            ),
            conn=conn,
        )
        logger.debug(f"Upserted schedule for timer {timer_id}, day {day_of_week}")

    def set_force_flags(
        self,
        timer_id: str,
        force_active_at: Optional[datetime],
        force_expired_at: Optional[datetime],
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        """
        Write both override timestamps at once

        Callers pass at most one non-null value; the table CHECK rejects both.

        Returns:
            Number of rows affected (0 when the timer does not exist)
        """
        return self._execute_query(
            queries.UPDATE_TIMER_FORCE_FLAGS,
            (utc_iso(force_active_at), utc_iso(force_expired_at), timer_id),
            conn=conn,
        )
