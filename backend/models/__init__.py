"""
Data models for the allocation engine
Entities, handler requests and handler responses
"""

from .base import (
    BaseModel,
    OperationDataResponse,
    OperationResponse,
    TimedOperationResponse,
)
from .entities import (
    AllocationActiveResult,
    AllocationWithState,
    AvailabilityReason,
    AvailabilityResult,
    Checkout,
    CheckoutStatus,
    DailyAllocation,
    OverrideState,
    ScheduleEntry,
    SweepResult,
    TimeEntry,
    Timer,
)
from .requests import (
    AllocationIdRequest,
    CheckoutIdRequest,
    CreateCheckoutRequest,
    SetAllocationTotalRequest,
    TimerIdRequest,
)
from .responses import (
    AllocationActiveResponse,
    AllocationResponse,
    AvailabilityResponse,
    CheckoutResponse,
    EngineResponse,
    SweepResponse,
    TimeEntryResponse,
    TimerResponse,
    TodayAllocationResponse,
)

__all__ = [
    # Base
    "BaseModel",
    "OperationResponse",
    "OperationDataResponse",
    "TimedOperationResponse",
    # Entities
    "CheckoutStatus",
    "OverrideState",
    "AvailabilityReason",
    "ScheduleEntry",
    "Timer",
    "DailyAllocation",
    "TimeEntry",
    "Checkout",
    "AvailabilityResult",
    "AllocationActiveResult",
    "AllocationWithState",
    "SweepResult",
    # Requests
    "CreateCheckoutRequest",
    "CheckoutIdRequest",
    "AllocationIdRequest",
    "TimerIdRequest",
    "SetAllocationTotalRequest",
    # Responses
    "EngineResponse",
    "CheckoutResponse",
    "TimeEntryResponse",
    "AvailabilityResponse",
    "AllocationActiveResponse",
    "AllocationResponse",
    "TodayAllocationResponse",
    "TimerResponse",
    "SweepResponse",
]
