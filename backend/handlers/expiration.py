"""
Expiration sweep API handler

Endpoints:
- POST /expiration/sweep - Admin: run one reconciler pass now
"""

import asyncio

from core.engine import get_engine
from core.errors import EngineError
from core.logger import get_logger
from models.responses import SweepResponse

from . import api_handler, failure_response, timestamp, unexpected_response

logger = get_logger(__name__)


@api_handler(method="POST", path="/expiration/sweep", tags=["maintenance", "admin"])
async def run_expiration_sweep() -> SweepResponse:
    """
    Run the exhaustion and window sweeps once

    Returns:
        SweepResponse with completed / force-stopped / failed counts
    """
    try:
        result = await asyncio.to_thread(get_engine().run_expiration_sweep)
        return SweepResponse(
            success=True,
            message="Expiration sweep finished",
            data=result,
            timestamp=timestamp(),
        )
    except EngineError as e:
        logger.warning(f"Expiration sweep failed: {e}")
        return failure_response(SweepResponse, e)
    except Exception as e:
        logger.error(f"Unexpected error running expiration sweep: {e}", exc_info=True)
        return unexpected_response(SweepResponse, "run expiration sweep")
