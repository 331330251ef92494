"""
Data entity model definitions
Timers, their schedules, daily allocations, checkouts and time entries
"""

import datetime as dt
from enum import Enum
from typing import List, Optional

from .base import BaseModel


# ============ Enumerations ============


class CheckoutStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (CheckoutStatus.COMPLETED, CheckoutStatus.CANCELLED)


class OverrideState(str, Enum):
    """Admin override applied to a timer or a daily allocation"""

    ACTIVE = "active"
    EXPIRED = "expired"


class AvailabilityReason(str, Enum):
    BEFORE_START = "before_start"
    AFTER_EXPIRATION = "after_expiration"


# ============ Stored Entities ============


class ScheduleEntry(BaseModel):
    """Per-weekday budget and optional window override (Sunday = 0)"""

    id: str
    timer_id: str
    day_of_week: int
    seconds: int
    start_time: Optional[str] = None  # HH:MM
    expiration_time: Optional[str] = None  # HH:MM


class Timer(BaseModel):
    """An activity owned by a person with a default daily budget"""

    id: str
    person_id: str
    name: str
    default_daily_seconds: int
    default_start_time: Optional[str] = None  # HH:MM
    default_expiration_time: Optional[str] = None  # HH:MM
    force_active_at: Optional[dt.datetime] = None
    force_expired_at: Optional[dt.datetime] = None
    schedules: List[ScheduleEntry] = []
    created_at: Optional[dt.datetime] = None


class DailyAllocation(BaseModel):
    """Budget ledger for one (timer, calendar day)"""

    id: str
    timer_id: str
    date: dt.date
    total_seconds: int
    used_seconds: int = 0
    manual_override: Optional[OverrideState] = None
    created_at: Optional[dt.datetime] = None

    @property
    def free_seconds(self) -> int:
        return self.total_seconds - self.used_seconds


class TimeEntry(BaseModel):
    """One contiguous running interval of a checkout"""

    id: str
    checkout_id: str
    start_time: dt.datetime
    end_time: Optional[dt.datetime] = None
    duration_seconds: Optional[int] = None
    created_at: Optional[dt.datetime] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None


class Checkout(BaseModel):
    """A reserved slice of an allocation's budget"""

    id: str
    timer_id: str
    allocation_id: str
    allocated_seconds: int
    used_seconds: int = 0
    status: CheckoutStatus = CheckoutStatus.ACTIVE
    entries: List[TimeEntry] = []
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @property
    def remaining_seconds(self) -> int:
        return max(0, self.allocated_seconds - self.used_seconds)

    @property
    def open_entry(self) -> Optional[TimeEntry]:
        for entry in self.entries:
            if entry.is_open:
                return entry
        return None


# ============ Evaluation Results ============


class AvailabilityResult(BaseModel):
    available: bool
    reason: Optional[AvailabilityReason] = None


class AllocationActiveResult(BaseModel):
    active: bool
    reason: Optional[AvailabilityReason] = None


class AllocationWithState(BaseModel):
    """Today's allocation for a timer plus its computed active state"""

    allocation: DailyAllocation
    active: bool
    reason: Optional[AvailabilityReason] = None
    reserved_seconds: int = 0


class SweepResult(BaseModel):
    """Counts from one reconciler pass"""

    completed: int = 0
    force_stopped: int = 0
    failed: int = 0
