"""
Response models for the engine handlers

Every response is a TimedOperationResponse. On failure ``error`` holds the
stable failure code and ``reason`` / ``remaining_seconds`` carry the details
a client needs to render an accurate message.
"""

from typing import Optional

from .base import TimedOperationResponse
from .entities import (
    AllocationActiveResult,
    AllocationWithState,
    AvailabilityResult,
    Checkout,
    DailyAllocation,
    SweepResult,
    TimeEntry,
    Timer,
)


class EngineResponse(TimedOperationResponse):
    """Base response carrying failure details"""

    reason: Optional[str] = None
    remaining_seconds: Optional[int] = None


class CheckoutResponse(EngineResponse):
    data: Optional[Checkout] = None


class TimeEntryResponse(EngineResponse):
    data: Optional[TimeEntry] = None


class AvailabilityResponse(EngineResponse):
    data: Optional[AvailabilityResult] = None


class AllocationActiveResponse(EngineResponse):
    data: Optional[AllocationActiveResult] = None


class AllocationResponse(EngineResponse):
    data: Optional[DailyAllocation] = None


class TodayAllocationResponse(EngineResponse):
    data: Optional[AllocationWithState] = None


class TimerResponse(EngineResponse):
    data: Optional[Timer] = None


class SweepResponse(EngineResponse):
    data: Optional[SweepResult] = None
