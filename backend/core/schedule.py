"""
Time & Schedule Resolver

Resolves "now" and "today" in the configured timezone and decides which
schedule entry (if any) governs a timer's budget and availability window on a
given calendar day.

Day keys are plain ``datetime.date`` values: the local calendar date in the
configured timezone, independent of the host's zone.
"""

import math
import sqlite3
from datetime import date, datetime, timezone
from typing import Callable, Optional, Tuple, Union

import pytz

from core.db import DatabaseManager
from core.logger import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]
TimezoneProvider = Callable[[], str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """
    Whole seconds between two instants, floored and clamped at zero

    A negative delta means the wall clock moved backwards after ``start``
    was recorded.
    """
    delta = (end - start).total_seconds()
    if delta < 0:
        logger.warning(
            f"Negative elapsed time ({delta:.3f}s) between {start.isoformat()} "
            f"and {end.isoformat()}; clock moved backwards, clamping to 0"
        )
        return 0
    return int(math.floor(delta))


class TimeResolver:
    """
    Timezone- and schedule-aware time lookups

    Args:
        db: Database holding timers and schedules
        timezone_name: IANA name, or a callable returning one. A callable is
            invoked on every lookup so a runtime timezone change applies
            immediately.
        clock: Returns the current aware UTC instant
    """

    def __init__(
        self,
        db: DatabaseManager,
        timezone_name: Union[str, TimezoneProvider],
        clock: Optional[Clock] = None,
    ):
        self.db = db
        if callable(timezone_name):
            self._timezone_provider = timezone_name
        else:
            self._timezone_provider = lambda: timezone_name
        self.clock = clock or utc_now

    # ============ Clock & timezone ============

    def now(self) -> datetime:
        current = self.clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current

    def get_timezone(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self._timezone_provider())

    def local_now(self) -> datetime:
        return self.now().astimezone(self.get_timezone())

    def start_of_day(self, moment: Optional[datetime] = None) -> date:
        """Calendar day (in the configured timezone) containing ``moment``"""
        moment = moment or self.now()
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.get_timezone()).date()

    def current_time_of_day(self) -> str:
        """Local wall-clock time as zero-padded 24h "HH:MM" """
        return self.local_now().strftime("%H:%M")

    # ============ Schedules ============

    def budget_seconds_for_day(
        self, timer_id: str, day: date, conn: Optional[sqlite3.Connection] = None
    ) -> int:
        """
        Budget for a timer on a day

        The weekday's schedule entry wins; otherwise the timer default;
        an unknown timer gets 0.
        """
        schedule = self.db.timers.get_schedule_for_day(
            timer_id, day_of_week(day), conn=conn
        )
        if schedule is not None:
            return schedule["seconds"]

        timer = self.db.timers.get_by_id(timer_id, conn=conn)
        if timer is None:
            return 0
        return timer["default_daily_seconds"] or 0

    def effective_window(
        self, timer_id: str, day: date, conn: Optional[sqlite3.Connection] = None
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        (start, expiration) for a day, each "HH:MM" or None

        Schedule fields override timer defaults one field at a time.
        """
        timer = self.db.timers.get_by_id(timer_id, conn=conn)
        if timer is None:
            return None, None

        schedule = self.db.timers.get_schedule_for_day(
            timer_id, day_of_week(day), conn=conn
        )
        return window_for(timer, schedule)


def window_for(
    timer: dict, schedule: Optional[dict]
) -> Tuple[Optional[str], Optional[str]]:
    """Merge a schedule row over a timer row's default window"""
    schedule = schedule or {}
    start = schedule.get("start_time") or timer.get("default_start_time")
    expiration = schedule.get("expiration_time") or timer.get("default_expiration_time")
    return start or None, expiration or None


def validate_timezone(tz_name: str) -> str:
    """Return the name unchanged, or raise pytz.UnknownTimeZoneError"""
    pytz.timezone(tz_name)
    return tz_name
