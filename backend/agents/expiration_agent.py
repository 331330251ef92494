"""
ExpirationAgent - Periodic reconciliation of running checkouts

Runs the expiration sweep on a fixed interval:
- Running checkouts whose allocated time has run out are completed
- Open checkouts of timers past their expiration time are cancelled

The sweep itself is blocking SQLite work and runs in a worker thread.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from core.engine import AllocationEngine, get_engine
from core.logger import get_logger
from models.entities import SweepResult

logger = get_logger(__name__)

DEFAULT_SWEEP_INTERVAL = 10  # seconds


class ExpirationAgent:
    """
    Background driver for the expiration reconciler

    Responsibilities:
    - Sweep once on start, then every ``sweep_interval`` seconds
    - Keep going when a sweep fails
    """

    def __init__(
        self,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        engine: Optional[AllocationEngine] = None,
    ):
        """
        Initialize ExpirationAgent

        Args:
            sweep_interval: Seconds between sweeps (default 10)
            engine: Engine to sweep with (default: the global engine)
        """
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be greater than zero")

        self.sweep_interval = sweep_interval
        self.engine = engine or get_engine()

        # Running state
        self.is_running = False
        self.is_paused = False
        self.sweep_task: Optional[asyncio.Task] = None

        # Statistics
        self.stats: Dict[str, Any] = {
            "total_sweeps": 0,
            "failed_sweeps": 0,
            "total_completed": 0,
            "total_force_stopped": 0,
            "last_sweep_time": None,
            "last_sweep_result": None,
        }

        logger.debug(f"ExpirationAgent initialized (interval: {sweep_interval}s)")

    async def start(self):
        """Start the expiration agent"""
        if self.is_running:
            logger.warning("ExpirationAgent is already running")
            return

        self.is_running = True
        self.sweep_task = asyncio.create_task(self._periodic_sweep())

        logger.info(f"ExpirationAgent started (sweep every {self.sweep_interval}s)")

    async def stop(self):
        """Stop the expiration agent"""
        if not self.is_running:
            return

        self.is_running = False
        self.is_paused = False

        if self.sweep_task:
            self.sweep_task.cancel()
            try:
                await self.sweep_task
            except asyncio.CancelledError:
                pass
            self.sweep_task = None

        logger.info("ExpirationAgent stopped")

    def pause(self):
        """Pause sweeping (system sleep)"""
        if not self.is_running:
            return

        self.is_paused = True
        logger.debug("ExpirationAgent paused")

    def resume(self):
        """Resume sweeping (system wake)"""
        if not self.is_running:
            return

        self.is_paused = False
        logger.debug("ExpirationAgent resumed")

    async def _periodic_sweep(self):
        """Scheduled task: sweep immediately, then on every interval"""
        while self.is_running:
            try:
                if self.is_paused:
                    logger.debug("ExpirationAgent paused, skipping sweep")
                else:
                    await self.run_once()

                await asyncio.sleep(self.sweep_interval)
            except asyncio.CancelledError:
                logger.debug("Expiration sweep task cancelled")
                break

    async def run_once(self) -> Optional[SweepResult]:
        """Run a single sweep; failures are logged and counted, never raised"""
        try:
            result = await asyncio.to_thread(self.engine.run_expiration_sweep)
        except Exception as e:
            self.stats["failed_sweeps"] += 1
            logger.error(f"Expiration sweep exception: {e}", exc_info=True)
            return None

        self.stats["total_sweeps"] += 1
        self.stats["total_completed"] += result.completed
        self.stats["total_force_stopped"] += result.force_stopped
        self.stats["last_sweep_time"] = datetime.now().isoformat()
        self.stats["last_sweep_result"] = result.model_dump(by_alias=False)
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get sweep statistics"""
        return {
            **self.stats,
            "is_running": self.is_running,
            "is_paused": self.is_paused,
            "sweep_interval": self.sweep_interval,
        }
