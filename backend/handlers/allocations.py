"""
Daily allocation API handlers

Endpoints:
- POST /allocations/active - Is an allocation usable right now
- POST /allocations/today - Today's allocation for a timer with its state
- POST /allocations/force-active - Admin: unlock an allocation before its start
- POST /allocations/force-expired - Admin: close an allocation for the day
- POST /allocations/total - Admin: edit a day's total budget
"""

from core.engine import get_engine
from core.errors import EngineError
from core.logger import get_logger
from models.entities import OverrideState
from models.requests import (
    AllocationIdRequest,
    SetAllocationTotalRequest,
    TimerIdRequest,
)
from models.responses import (
    AllocationActiveResponse,
    AllocationResponse,
    TodayAllocationResponse,
)

from . import api_handler, failure_response, timestamp, unexpected_response

logger = get_logger(__name__)


@api_handler(
    body=AllocationIdRequest,
    method="POST",
    path="/allocations/active",
    tags=["allocations"],
)
async def get_allocation_active(body: AllocationIdRequest) -> AllocationActiveResponse:
    """
    Active state of an allocation

    Past the timer's expiration time this also cancels the allocation's open
    checkouts.
    """
    try:
        result = get_engine().get_allocation_active(body.allocation_id)
        return AllocationActiveResponse(
            success=True,
            data=result,
            reason=result.reason.value if result.reason else None,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to evaluate allocation {body.allocation_id}: {e}")
        return failure_response(AllocationActiveResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error evaluating allocation: {e}", exc_info=True)
        return unexpected_response(AllocationActiveResponse, "evaluate allocation")


@api_handler(
    body=TimerIdRequest,
    method="POST",
    path="/allocations/today",
    tags=["allocations"],
)
async def get_today_allocation(body: TimerIdRequest) -> TodayAllocationResponse:
    try:
        state = get_engine().get_today_allocation(body.timer_id)
        return TodayAllocationResponse(success=True, data=state, timestamp=timestamp())
    except EngineError as e:
        logger.warning(f"Failed to load today's allocation for timer {body.timer_id}: {e}")
        return failure_response(TodayAllocationResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error loading today's allocation: {e}", exc_info=True)
        return unexpected_response(TodayAllocationResponse, "load today's allocation")


# ============ Admin ============


async def _force_override(
    allocation_id: str, value: OverrideState
) -> AllocationResponse:
    try:
        allocation = get_engine().force_allocation_override(allocation_id, value)
        return AllocationResponse(
            success=True,
            message=f"Allocation forced {value.value}",
            data=allocation,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to force allocation {allocation_id} {value.value}: {e}")
        return failure_response(AllocationResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error forcing allocation override: {e}", exc_info=True)
        return unexpected_response(AllocationResponse, "force allocation override")


@api_handler(
    body=AllocationIdRequest,
    method="POST",
    path="/allocations/force-active",
    tags=["allocations", "admin"],
)
async def force_allocation_active(body: AllocationIdRequest) -> AllocationResponse:
    return await _force_override(body.allocation_id, OverrideState.ACTIVE)


@api_handler(
    body=AllocationIdRequest,
    method="POST",
    path="/allocations/force-expired",
    tags=["allocations", "admin"],
)
async def force_allocation_expired(body: AllocationIdRequest) -> AllocationResponse:
    return await _force_override(body.allocation_id, OverrideState.EXPIRED)


@api_handler(
    body=SetAllocationTotalRequest,
    method="POST",
    path="/allocations/total",
    tags=["allocations", "admin"],
)
async def set_allocation_total(body: SetAllocationTotalRequest) -> AllocationResponse:
    try:
        allocation = get_engine().set_allocation_total(
            body.timer_id, body.date, body.total_seconds
        )
        return AllocationResponse(
            success=True,
            message="Allocation total updated",
            data=allocation,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to set allocation total for timer {body.timer_id}: {e}")
        return failure_response(AllocationResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error setting allocation total: {e}", exc_info=True)
        return unexpected_response(AllocationResponse, "set allocation total")
