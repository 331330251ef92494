"""
Request models for the engine handlers
Bodies accept camelCase (clients) or snake_case (Python callers) keys
"""

import datetime as dt

from pydantic import StrictInt

from .base import BaseModel


class CreateCheckoutRequest(BaseModel):
    timer_id: str
    allocated_seconds: StrictInt


class CheckoutIdRequest(BaseModel):
    """Start, pause, stop, cancel, get and the checkout overrides"""

    checkout_id: str


class AllocationIdRequest(BaseModel):
    allocation_id: str


class TimerIdRequest(BaseModel):
    timer_id: str


class SetAllocationTotalRequest(BaseModel):
    timer_id: str
    date: dt.date
    total_seconds: StrictInt
