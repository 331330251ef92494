"""Backend runtime control utility

Provides startup, stop and status query logic for the background expiration
agent, shared by the CLI entry point and embedding hosts.
"""

from __future__ import annotations

import asyncio
import atexit
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from agents.expiration_agent import DEFAULT_SWEEP_INTERVAL, ExpirationAgent
from config.loader import get_config, reload_config
from core.db import get_db
from core.engine import get_engine
from core.logger import get_logger

logger = get_logger(__name__)

_agent: Optional[ExpirationAgent] = None

# Global flags to prevent duplicate cleanup
_cleanup_done = False
_exit_handlers_registered = False


def _cleanup_on_exit():
    """Cleanup function on process exit (sync version for atexit)"""
    global _cleanup_done

    if _cleanup_done:
        return

    _cleanup_done = True
    logger.debug("Executing exit cleanup...")

    agent = _agent
    if agent is None or not agent.is_running:
        logger.debug("ExpirationAgent not running, skipping cleanup")
        return

    try:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            # Cannot block the running loop; stop the task from its own loop
            loop.create_task(agent.stop())
        else:
            asyncio.run(agent.stop())

        logger.debug("Exit cleanup completed")

    except Exception as e:
        logger.error(f"Exit cleanup failed: {e}", exc_info=True)


def _signal_handler(signum, frame):
    """Signal handler"""
    signal_name = signal.Signals(signum).name
    logger.debug(f"Received signal {signal_name}, preparing to exit...")

    _cleanup_on_exit()
    sys.exit(0)


def _is_main_thread() -> bool:
    """Check if current is main thread"""
    return threading.current_thread() is threading.main_thread()


def _register_exit_handlers():
    """Register exit handlers (thread-safe)"""
    global _exit_handlers_registered

    if _exit_handlers_registered:
        logger.debug("Exit handlers already registered, skipping")
        return

    atexit.register(_cleanup_on_exit)
    logger.debug("atexit cleanup function registered")

    # Only register signal handlers in main thread
    if _is_main_thread():
        try:
            signal.signal(signal.SIGINT, _signal_handler)  # Ctrl+C
            signal.signal(signal.SIGTERM, _signal_handler)  # kill command
            logger.debug("Signal handlers registered (main thread)")
        except ValueError as e:
            logger.warning(f"Cannot register signal handlers: {e}")
    else:
        logger.debug(
            "Current thread is not main, skipping signal handler registration (will use atexit)"
        )

    _exit_handlers_registered = True


async def start_runtime(
    config_file: Optional[str] = None, register_exit_handlers: bool = True
) -> Optional[ExpirationAgent]:
    """Start the expiration agent, returns the running agent if already started.

    Returns None when ``expiration.enabled`` is false in the configuration.
    """
    global _agent

    config = reload_config(Path(config_file)) if config_file else get_config()

    # Initialize database (using database.path from config.toml)
    db = get_db()
    logger.debug(f"✓ Database: {db.db_path}")

    if not config.get("expiration.enabled", True):
        logger.info("Expiration sweeps disabled in configuration")
        return None

    if register_exit_handlers:
        _register_exit_handlers()

    if _agent is not None and _agent.is_running:
        logger.debug("ExpirationAgent is already running, no need to start again")
        return _agent

    interval = config.get("expiration.sweep_interval_seconds", DEFAULT_SWEEP_INTERVAL)
    _agent = ExpirationAgent(sweep_interval=interval, engine=get_engine())
    await _agent.start()
    return _agent


async def stop_runtime(*, quiet: bool = False) -> None:
    """Stop the expiration agent, returns directly if not running.

    Args:
        quiet: When True, only log debug messages, avoid terminal shutdown messages.
    """
    agent = _agent
    if agent is None or not agent.is_running:
        if not quiet:
            logger.info("ExpirationAgent is not currently running")
        return

    try:
        # Wait at most 5 seconds for the current sweep to finish
        await asyncio.wait_for(agent.stop(), timeout=5.0)
    except asyncio.TimeoutError:
        if not quiet:
            logger.warning("ExpirationAgent stop timeout, forcing stop")
    except Exception as e:
        if not quiet:
            logger.error(f"Exception while stopping ExpirationAgent: {e}", exc_info=True)


def get_runtime_stats() -> dict:
    """Get current agent statistics."""
    if _agent is None:
        return {"is_running": False}
    return _agent.get_stats()
