"""
Shared fixtures: a temporary SQLite database, a controllable clock and an
engine bound to both.

The default clock reads Monday 2026-02-09 14:00 in America/New_York.
"""

import datetime as dt
import threading

import pytest
import pytz

from core.db import DatabaseManager
from core.engine import AllocationEngine, set_engine
from handlers import register_admin_gate

TIMEZONE = "America/New_York"
NEW_YORK = pytz.timezone(TIMEZONE)

SUNDAY = dt.date(2026, 2, 8)
MONDAY = dt.date(2026, 2, 9)
TUESDAY = dt.date(2026, 2, 10)


def local_time(day: dt.date, hour: int, minute: int = 0, second: int = 0) -> dt.datetime:
    """UTC instant of a New York wall-clock time"""
    naive = dt.datetime.combine(day, dt.time(hour, minute, second))
    return NEW_YORK.localize(naive).astimezone(dt.timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: dt.datetime):
        self._current = start
        self._lock = threading.Lock()

    def __call__(self) -> dt.datetime:
        with self._lock:
            return self._current

    def set(self, moment: dt.datetime) -> None:
        with self._lock:
            self._current = moment

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._current += dt.timedelta(seconds=seconds)


@pytest.fixture
def db(tmp_path):
    return DatabaseManager(tmp_path / "timebank.db")


@pytest.fixture
def clock():
    return FakeClock(local_time(MONDAY, 14))


@pytest.fixture
def engine(db, clock):
    return AllocationEngine(db, timezone_name=TIMEZONE, clock=clock)


@pytest.fixture
def global_engine(engine):
    """Install the test engine behind get_engine() for handler calls"""
    set_engine(engine)
    yield engine
    set_engine(None)


@pytest.fixture
def admin_gate():
    """Gate accepting callers whose context carries pin 1234"""
    register_admin_gate(lambda context: bool(context) and context.get("pin") == "1234")
    yield {"pin": "1234"}
    register_admin_gate(None)


@pytest.fixture
def make_timer(db):
    """
    Create a timer; ``schedules`` maps day_of_week to upsert_schedule kwargs

    Example:
        make_timer(3600, schedules={1: {"seconds": 1800, "start_time": "12:00"}})
    """

    def _make(
        default_daily_seconds: int = 3600,
        start_time=None,
        expiration_time=None,
        schedules=None,
        name: str = "Reading",
    ) -> str:
        timer_id = db.timers.create(
            "person-1", name, default_daily_seconds, start_time, expiration_time
        )
        for day, schedule in (schedules or {}).items():
            db.timers.upsert_schedule(timer_id, day, **schedule)
        return timer_id

    return _make


@pytest.fixture
def windowed_timer(make_timer):
    """3600s default; Mondays give 1800s between 12:00 and 18:00"""
    return make_timer(
        3600,
        schedules={1: {"seconds": 1800, "start_time": "12:00", "expiration_time": "18:00"}},
    )
