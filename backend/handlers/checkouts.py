"""
Checkout API handlers

Endpoints:
- POST /checkouts/create - Reserve part of today's allocation
- POST /checkouts/get - Checkout with its time entries
- POST /checkouts/start - Start (or resume) a checkout
- POST /checkouts/pause - Pause a running checkout
- POST /checkouts/stop - Complete a checkout
- POST /checkouts/cancel - Cancel a checkout
- POST /checkouts/force-active - Admin: run a checkout regardless of window
- POST /checkouts/force-expired - Admin: complete a checkout and expire its day
"""

from core.engine import get_engine
from core.errors import EngineError
from core.logger import get_logger
from models.requests import CheckoutIdRequest, CreateCheckoutRequest
from models.responses import CheckoutResponse, TimeEntryResponse

from . import api_handler, failure_response, timestamp, unexpected_response

logger = get_logger(__name__)


@api_handler(
    body=CreateCheckoutRequest,
    method="POST",
    path="/checkouts/create",
    tags=["checkouts"],
)
async def create_checkout(body: CreateCheckoutRequest) -> CheckoutResponse:
    """
    Create a checkout for a timer

    Args:
        body: Timer id and the number of seconds to reserve

    Returns:
        CheckoutResponse with the new checkout; on INSUFFICIENT_BUDGET the
        response carries ``remaining_seconds``
    """
    try:
        checkout = get_engine().create_checkout(body.timer_id, body.allocated_seconds)
        return CheckoutResponse(
            success=True,
            message="Checkout created",
            data=checkout,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to create checkout for timer {body.timer_id}: {e}")
        return failure_response(CheckoutResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error creating checkout: {e}", exc_info=True)
        return unexpected_response(CheckoutResponse, "create checkout")


@api_handler(
    body=CheckoutIdRequest,
    method="POST",
    path="/checkouts/get",
    tags=["checkouts"],
)
async def get_checkout(body: CheckoutIdRequest) -> CheckoutResponse:
    try:
        checkout = get_engine().get_checkout(body.checkout_id)
        return CheckoutResponse(success=True, data=checkout, timestamp=timestamp())
    except EngineError as e:
        logger.warning(f"Failed to get checkout {body.checkout_id}: {e}")
        return failure_response(CheckoutResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error getting checkout: {e}", exc_info=True)
        return unexpected_response(CheckoutResponse, "get checkout")


@api_handler(
    body=CheckoutIdRequest,
    method="POST",
    path="/checkouts/start",
    tags=["checkouts"],
)
async def start_checkout(body: CheckoutIdRequest) -> TimeEntryResponse:
    """
    Start a checkout

    Returns:
        TimeEntryResponse with the opened time entry; NOT_YET_AVAILABLE or
        EXPIRED (with ``reason``) when the timer's window is closed
    """
    try:
        entry = get_engine().start_checkout(body.checkout_id)
        return TimeEntryResponse(
            success=True,
            message="Checkout started",
            data=entry,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to start checkout {body.checkout_id}: {e}")
        return failure_response(TimeEntryResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error starting checkout: {e}", exc_info=True)
        return unexpected_response(TimeEntryResponse, "start checkout")


@api_handler(
    body=CheckoutIdRequest,
    method="POST",
    path="/checkouts/pause",
    tags=["checkouts"],
)
async def pause_checkout(body: CheckoutIdRequest) -> CheckoutResponse:
    try:
        checkout = get_engine().pause_checkout(body.checkout_id)
        return CheckoutResponse(
            success=True,
            message=f"Checkout {checkout.status.value.lower()}",
            data=checkout,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to pause checkout {body.checkout_id}: {e}")
        return failure_response(CheckoutResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error pausing checkout: {e}", exc_info=True)
        return unexpected_response(CheckoutResponse, "pause checkout")


@api_handler(
    body=CheckoutIdRequest,
    method="POST",
    path="/checkouts/stop",
    tags=["checkouts"],
)
async def stop_checkout(body: CheckoutIdRequest) -> CheckoutResponse:
    try:
        checkout = get_engine().stop_checkout(body.checkout_id)
        return CheckoutResponse(
            success=True,
            message="Checkout completed",
            data=checkout,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to stop checkout {body.checkout_id}: {e}")
        return failure_response(CheckoutResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error stopping checkout: {e}", exc_info=True)
        return unexpected_response(CheckoutResponse, "stop checkout")


@api_handler(
    body=CheckoutIdRequest,
    method="POST",
    path="/checkouts/cancel",
    tags=["checkouts"],
)
async def cancel_checkout(body: CheckoutIdRequest) -> CheckoutResponse:
    try:
        checkout = get_engine().cancel_checkout(body.checkout_id)
        return CheckoutResponse(
            success=True,
            message="Checkout cancelled",
            data=checkout,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to cancel checkout {body.checkout_id}: {e}")
        return failure_response(CheckoutResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error cancelling checkout: {e}", exc_info=True)
        return unexpected_response(CheckoutResponse, "cancel checkout")


# ============ Admin ============


@api_handler(
    body=CheckoutIdRequest,
    method="POST",
    path="/checkouts/force-active",
    tags=["checkouts", "admin"],
)
async def force_checkout_active(body: CheckoutIdRequest) -> CheckoutResponse:
    try:
        checkout = get_engine().force_checkout_active(body.checkout_id)
        return CheckoutResponse(
            success=True,
            message="Checkout forced active",
            data=checkout,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to force checkout {body.checkout_id} active: {e}")
        return failure_response(CheckoutResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error forcing checkout active: {e}", exc_info=True)
        return unexpected_response(CheckoutResponse, "force checkout active")


@api_handler(
    body=CheckoutIdRequest,
    method="POST",
    path="/checkouts/force-expired",
    tags=["checkouts", "admin"],
)
async def force_checkout_expired(body: CheckoutIdRequest) -> CheckoutResponse:
    try:
        checkout = get_engine().force_checkout_expired(body.checkout_id)
        return CheckoutResponse(
            success=True,
            message="Checkout forced expired",
            data=checkout,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Failed to force checkout {body.checkout_id} expired: {e}")
        return failure_response(CheckoutResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error forcing checkout expired: {e}", exc_info=True)
        return unexpected_response(CheckoutResponse, "force checkout expired")
