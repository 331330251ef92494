"""
Allocation Store

Owns the per-(timer, day) budget ledger: lazy read-or-create, atomic
used-seconds increments and admin overrides.
"""

import sqlite3
from datetime import date
from typing import Optional

from core.db import DatabaseManager
from core.errors import NotFound, StorageError, ValidationError
from core.logger import get_logger
from core.schedule import TimeResolver
from models.entities import DailyAllocation, OverrideState

logger = get_logger(__name__)

# Attempts at read-or-create before giving up with StorageError
READ_OR_CREATE_ATTEMPTS = 2


class AllocationStore:
    """Daily allocation ledger on top of AllocationsRepository"""

    def __init__(self, db: DatabaseManager, resolver: TimeResolver):
        self.db = db
        self.resolver = resolver

    def get(
        self, allocation_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> DailyAllocation:
        row = self.db.allocations.get_by_id(allocation_id, conn=conn)
        if row is None:
            raise NotFound("allocation", allocation_id)
        return DailyAllocation.model_validate(row)

    def get_or_create(
        self,
        timer_id: str,
        day: Optional[date] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> DailyAllocation:
        """
        Read the (timer, day) allocation, creating it on first access

        The total is resolved from the weekday schedule or the timer default.
        Losing a race against a concurrent creator is not an error: the insert
        is skipped by the unique constraint and the winner's row is re-read.

        Raises:
            NotFound: the timer does not exist
            StorageError: the row could not be read back after creation
        """
        day = day or self.resolver.start_of_day()

        for attempt in range(1, READ_OR_CREATE_ATTEMPTS + 1):
            row = self.db.allocations.get_by_timer_and_date(timer_id, day, conn=conn)
            if row is not None:
                return DailyAllocation.model_validate(row)

            if self.db.timers.get_by_id(timer_id, conn=conn) is None:
                raise NotFound("timer", timer_id)

            total_seconds = self.resolver.budget_seconds_for_day(timer_id, day, conn=conn)
            inserted = self.db.allocations.insert_if_absent(
                timer_id, day, total_seconds, conn=conn
            )
            if not inserted:
                logger.debug(
                    f"Allocation for timer {timer_id} on {day} created concurrently "
                    f"(attempt {attempt}), re-reading"
                )

        row = self.db.allocations.get_by_timer_and_date(timer_id, day, conn=conn)
        if row is not None:
            return DailyAllocation.model_validate(row)

        raise StorageError(
            f"Allocation for timer {timer_id} on {day} could not be read after creation"
        )

    def increment_used(
        self,
        allocation_id: str,
        delta_seconds: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """
        Add consumed seconds to an allocation

        Callers cap ``delta_seconds`` so used never passes total.
        """
        if delta_seconds < 0:
            raise ValidationError(f"Negative usage increment: {delta_seconds}")
        if delta_seconds == 0:
            return
        if not self.db.allocations.increment_used(allocation_id, delta_seconds, conn=conn):
            raise NotFound("allocation", allocation_id)

    def reserved_seconds(
        self, allocation_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> int:
        return self.db.allocations.get_reserved_seconds(allocation_id, conn=conn)

    def set_override(
        self,
        allocation_id: str,
        value: OverrideState,
        conn: Optional[sqlite3.Connection] = None,
    ) -> DailyAllocation:
        """Overwrite the manual override; setting the same value twice is a no-op"""
        value = OverrideState(value)
        if not self.db.allocations.set_override(allocation_id, value.value, conn=conn):
            raise NotFound("allocation", allocation_id)
        logger.info(f"Allocation {allocation_id} manual override set to {value.value}")
        return self.get(allocation_id, conn=conn)

    def set_total(
        self,
        timer_id: str,
        day: date,
        total_seconds: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> DailyAllocation:
        """Admin edit of a day's total budget (creates the allocation if needed)"""
        if total_seconds < 0:
            raise ValidationError("Total seconds must be zero or more")
        if self.db.timers.get_by_id(timer_id, conn=conn) is None:
            raise NotFound("timer", timer_id)

        self.db.allocations.upsert_total(timer_id, day, total_seconds, conn=conn)
        logger.info(f"Allocation total for timer {timer_id} on {day} set to {total_seconds}s")

        row = self.db.allocations.get_by_timer_and_date(timer_id, day, conn=conn)
        return DailyAllocation.model_validate(row)
