"""
Timer API handlers

Endpoints:
- POST /timers/availability - Is a timer usable right now
- POST /timers/force-active - Admin: make a timer available regardless of window
- POST /timers/force-expired - Admin: close a timer for the day
- POST /timers/clear-override - Admin: hand a timer back to its schedule
"""

from typing import Optional

from core.engine import get_engine
from core.errors import EngineError
from core.logger import get_logger
from models.entities import OverrideState
from models.requests import TimerIdRequest
from models.responses import AvailabilityResponse, TimerResponse

from . import api_handler, failure_response, timestamp, unexpected_response

logger = get_logger(__name__)


@api_handler(
    body=TimerIdRequest,
    method="POST",
    path="/timers/availability",
    tags=["timers"],
)
async def get_availability(body: TimerIdRequest) -> AvailabilityResponse:
    try:
        result = get_engine().get_availability(body.timer_id)
        return AvailabilityResponse(
            success=True,
            data=result,
            reason=result.reason.value if result.reason else None,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to evaluate timer {body.timer_id}: {e}")
        return failure_response(AvailabilityResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error evaluating timer availability: {e}", exc_info=True)
        return unexpected_response(AvailabilityResponse, "evaluate timer availability")


async def _force_override(timer_id: str, value: Optional[OverrideState]) -> TimerResponse:
    label = f"forced {value.value}" if value else "override cleared"
    try:
        timer = get_engine().force_timer_override(timer_id, value)
        return TimerResponse(
            success=True,
            message=f"Timer {label}",
            data=timer,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to set timer {timer_id} {label}: {e}")
        return failure_response(TimerResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error forcing timer override: {e}", exc_info=True)
        return unexpected_response(TimerResponse, "force timer override")


@api_handler(
    body=TimerIdRequest,
    method="POST",
    path="/timers/force-active",
    tags=["timers", "admin"],
)
async def force_timer_active(body: TimerIdRequest) -> TimerResponse:
    return await _force_override(body.timer_id, OverrideState.ACTIVE)


@api_handler(
    body=TimerIdRequest,
    method="POST",
    path="/timers/force-expired",
    tags=["timers", "admin"],
)
async def force_timer_expired(body: TimerIdRequest) -> TimerResponse:
    return await _force_override(body.timer_id, OverrideState.EXPIRED)


@api_handler(
    body=TimerIdRequest,
    method="POST",
    path="/timers/clear-override",
    tags=["timers", "admin"],
)
async def clear_timer_override(body: TimerIdRequest) -> TimerResponse:
    return await _force_override(body.timer_id, None)
