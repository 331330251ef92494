"""
Checkout State Machine

Creates, starts, pauses, stops and cancels checkouts against a daily
allocation. Every transition runs inside one BEGIN IMMEDIATE transaction, so
the guard checks and the writes they protect are atomic with respect to
concurrent requests and the expiration sweep.

    create ──> ACTIVE (admitted) ──start──> ACTIVE (running)
                   │                          │   ▲
                   │                        pause start
                   │                          ▼   │
                   │                        PAUSED
                   └── stop / cancel / sweep ──> COMPLETED | CANCELLED
"""

import sqlite3
from datetime import datetime
from typing import List, Optional, Tuple

from core.allocations import AllocationStore
from core.availability import AvailabilityEvaluator
from core.db import DatabaseManager
from core.errors import (
    InsufficientBudget,
    InvalidTransition,
    NotAvailable,
    NotFound,
    ValidationError,
)
from core.logger import get_logger
from core.schedule import TimeResolver, elapsed_seconds
from models.entities import (
    Checkout,
    CheckoutStatus,
    OverrideState,
    TimeEntry,
)

logger = get_logger(__name__)


def validate_seconds(value, field: str = "allocated_seconds") -> int:
    """Positive whole number of seconds, or ValidationError"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number of seconds")
    if value <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return value


def validate_id(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value


class CheckoutStateMachine:
    """Checkout lifecycle with transactional guards"""

    def __init__(
        self,
        db: DatabaseManager,
        resolver: TimeResolver,
        store: AllocationStore,
        evaluator: AvailabilityEvaluator,
    ):
        self.db = db
        self.resolver = resolver
        self.store = store
        self.evaluator = evaluator

    # ============ Loading ============

    def _load(self, checkout_id: str, conn: sqlite3.Connection) -> Checkout:
        row = self.db.checkouts.get_by_id(checkout_id, conn=conn)
        if row is None:
            raise NotFound("checkout", checkout_id)
        row["entries"] = self.db.time_entries.get_by_checkout(checkout_id, conn=conn)
        return Checkout.model_validate(row)

    def get(self, checkout_id: str) -> Checkout:
        """Checkout with all of its time entries"""
        validate_id(checkout_id, "checkout_id")
        with self.db.snapshot() as conn:
            return self._load(checkout_id, conn)

    # ============ Shared mechanics ============

    def _close_open_entry(
        self, conn: sqlite3.Connection, checkout: Checkout, now: datetime
    ) -> Tuple[int, int]:
        """
        Close the checkout's open entry, if any, and fold it into usage

        The recorded duration is capped at the checkout's remaining allocated
        seconds, and the allocation increment at the allocation's free
        seconds, so neither ledger can overshoot.

        Returns:
            (raw elapsed seconds, recorded duration); (0, 0) with no open entry
        """
        entry = checkout.open_entry
        if entry is None:
            return 0, 0

        raw = elapsed_seconds(entry.start_time, now)
        duration = min(raw, checkout.remaining_seconds)

        if not self.db.time_entries.close(entry.id, now, duration, conn=conn):
            return 0, 0

        allocation = self.store.get(checkout.allocation_id, conn=conn)
        delta = min(duration, max(0, allocation.free_seconds))
        if delta < duration:
            logger.warning(
                f"Allocation {allocation.id} has only {allocation.free_seconds}s free; "
                f"recording {delta}s of checkout {checkout.id}'s {duration}s"
            )
        self.store.increment_used(checkout.allocation_id, delta, conn=conn)
        return raw, duration

    def _terminate(
        self,
        conn: sqlite3.Connection,
        checkout: Checkout,
        status: CheckoutStatus,
        now: datetime,
        pin_used: bool = False,
    ) -> int:
        """
        Close any open entry and move the checkout to a terminal status

        ``pin_used`` records the full allocation as used (budget exhaustion).

        Returns:
            Seconds recorded from the closed entry
        """
        _, duration = self._close_open_entry(conn, checkout, now)
        if pin_used:
            used = checkout.allocated_seconds
        else:
            used = min(checkout.used_seconds + duration, checkout.allocated_seconds)

        self.db.checkouts.update_state(checkout.id, used, status.value, now, conn=conn)
        logger.info(
            f"Checkout {checkout.id} -> {status.value} "
            f"({used}/{checkout.allocated_seconds}s used, +{duration}s)"
        )
        return duration

    # ============ Transitions ============

    def create(self, timer_id: str, allocated_seconds: int) -> Checkout:
        """
        Reserve a slice of today's allocation

        Raises:
            ValidationError: bad input (checked before the transaction)
            NotAvailable: the timer's window is closed
            NotFound: unknown timer
            InsufficientBudget: not enough unreserved budget left today
        """
        validate_id(timer_id, "timer_id")
        validate_seconds(allocated_seconds)

        with self.db.transaction() as conn:
            availability = self.evaluator.evaluate(timer_id, conn=conn)
            if not availability.available:
                raise NotAvailable(availability.reason)

            if self.db.timers.get_by_id(timer_id, conn=conn) is None:
                raise NotFound("timer", timer_id)

            allocation = self.store.get_or_create(
                timer_id, self.resolver.start_of_day(), conn=conn
            )
            reserved = self.store.reserved_seconds(allocation.id, conn=conn)
            remaining = allocation.total_seconds - allocation.used_seconds - reserved

            if allocated_seconds > remaining:
                logger.info(
                    f"Checkout rejected for timer {timer_id}: asked {allocated_seconds}s, "
                    f"{remaining}s remaining"
                )
                raise InsufficientBudget(max(0, remaining))

            checkout_id = self.db.checkouts.create(
                timer_id, allocation.id, allocated_seconds, self.resolver.now(), conn=conn
            )
            logger.info(
                f"Checkout {checkout_id} created for timer {timer_id}: {allocated_seconds}s"
            )
            return self._load(checkout_id, conn)

    def start(self, checkout_id: str) -> TimeEntry:
        """
        Open a time entry for an admitted or paused checkout

        Raises:
            NotFound, InvalidTransition(ALREADY_FINISHED | ALREADY_RUNNING),
            NotAvailable (code NOT_YET_AVAILABLE or EXPIRED)
        """
        validate_id(checkout_id, "checkout_id")

        with self.db.transaction() as conn:
            checkout = self._load(checkout_id, conn)

            if checkout.status.is_terminal:
                raise InvalidTransition(InvalidTransition.ALREADY_FINISHED)

            availability = self.evaluator.evaluate(checkout.timer_id, conn=conn)
            if not availability.available:
                raise NotAvailable.for_start(availability.reason)

            if checkout.open_entry is not None:
                raise InvalidTransition(InvalidTransition.ALREADY_RUNNING)

            now = self.resolver.now()
            entry_id = self.db.time_entries.open(checkout_id, now, conn=conn)
            self.db.checkouts.update_state(
                checkout_id,
                checkout.used_seconds,
                CheckoutStatus.ACTIVE.value,
                now,
                conn=conn,
            )
            logger.info(f"Checkout {checkout_id} started (entry {entry_id})")
            return TimeEntry(id=entry_id, checkout_id=checkout_id, start_time=now)

    def pause(self, checkout_id: str) -> Checkout:
        """
        Close the running entry and keep the remaining reservation

        Once the used seconds reach the allocation the checkout completes
        instead, so no spent time stays reserved.

        Raises:
            NotFound, InvalidTransition(NOT_RUNNING)
        """
        validate_id(checkout_id, "checkout_id")

        with self.db.transaction() as conn:
            checkout = self._load(checkout_id, conn)
            if checkout.open_entry is None:
                raise InvalidTransition(InvalidTransition.NOT_RUNNING)

            now = self.resolver.now()
            _, duration = self._close_open_entry(conn, checkout, now)

            used = min(checkout.used_seconds + duration, checkout.allocated_seconds)
            if used >= checkout.allocated_seconds:
                status = CheckoutStatus.COMPLETED
            else:
                status = CheckoutStatus.PAUSED

            self.db.checkouts.update_state(checkout_id, used, status.value, now, conn=conn)
            logger.info(
                f"Checkout {checkout_id} paused after {duration}s -> {status.value} "
                f"({used}/{checkout.allocated_seconds}s used)"
            )
            return self._load(checkout_id, conn)

    def stop(self, checkout_id: str) -> Checkout:
        """Finish a checkout as COMPLETED; unused reservation is released"""
        return self._finish(checkout_id, CheckoutStatus.COMPLETED)

    def cancel(self, checkout_id: str) -> Checkout:
        """Finish a checkout as CANCELLED; unused reservation is released"""
        return self._finish(checkout_id, CheckoutStatus.CANCELLED)

    def _finish(self, checkout_id: str, status: CheckoutStatus) -> Checkout:
        validate_id(checkout_id, "checkout_id")

        with self.db.transaction() as conn:
            checkout = self._load(checkout_id, conn)
            if checkout.status.is_terminal:
                raise InvalidTransition(InvalidTransition.ALREADY_FINISHED)

            self._terminate(conn, checkout, status, self.resolver.now())
            return self._load(checkout_id, conn)

    # ============ Admin overrides ============

    def force_active(self, checkout_id: str) -> Checkout:
        """Run a non-terminal checkout now, ignoring the timer's window"""
        validate_id(checkout_id, "checkout_id")

        with self.db.transaction() as conn:
            checkout = self._load(checkout_id, conn)
            if checkout.status.is_terminal:
                raise InvalidTransition(InvalidTransition.ALREADY_FINISHED)

            now = self.resolver.now()
            if checkout.open_entry is None:
                self.db.time_entries.open(checkout_id, now, conn=conn)
            self.db.checkouts.update_state(
                checkout_id,
                checkout.used_seconds,
                CheckoutStatus.ACTIVE.value,
                now,
                conn=conn,
            )
            logger.info(f"Checkout {checkout_id} forced active")
            return self._load(checkout_id, conn)

    def force_expired(self, checkout_id: str) -> Checkout:
        """Complete a checkout now and mark its allocation expired"""
        validate_id(checkout_id, "checkout_id")

        with self.db.transaction() as conn:
            checkout = self._load(checkout_id, conn)
            if checkout.status.is_terminal:
                raise InvalidTransition(InvalidTransition.ALREADY_FINISHED)

            self._terminate(conn, checkout, CheckoutStatus.COMPLETED, self.resolver.now())
            self.store.set_override(checkout.allocation_id, OverrideState.EXPIRED, conn=conn)
            logger.info(f"Checkout {checkout_id} forced expired")
            return self._load(checkout_id, conn)

    # ============ Forced termination (reconciler paths) ============

    def force_stop_checkouts(
        self, conn: sqlite3.Connection, checkouts: List[dict]
    ) -> int:
        """
        CANCEL each listed ACTIVE/PAUSED checkout inside the caller's transaction

        Rows are re-read first; anything already terminal is skipped.

        Returns:
            Number of checkouts cancelled
        """
        now = self.resolver.now()
        stopped = 0
        for row in checkouts:
            checkout = self._load(row["id"], conn)
            if checkout.status.is_terminal:
                continue
            self._terminate(conn, checkout, CheckoutStatus.CANCELLED, now)
            stopped += 1
        return stopped

    def force_stop_allocation(
        self, allocation_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> int:
        """Cancel every non-terminal checkout of one allocation"""
        if conn is None:
            with self.db.transaction() as own:
                return self.force_stop_allocation(allocation_id, conn=own)

        rows = self.db.checkouts.get_open_by_allocation(allocation_id, conn=conn)
        stopped = self.force_stop_checkouts(conn, rows)
        if stopped:
            logger.info(f"Force-stopped {stopped} checkout(s) on allocation {allocation_id}")
        return stopped

    def force_stop_timer(
        self, timer_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> int:
        """Cancel every non-terminal checkout of one timer"""
        if conn is None:
            with self.db.transaction() as own:
                return self.force_stop_timer(timer_id, conn=own)

        rows = self.db.checkouts.get_open_by_timer(timer_id, conn=conn)
        stopped = self.force_stop_checkouts(conn, rows)
        if stopped:
            logger.info(f"Force-stopped {stopped} checkout(s) for expired timer {timer_id}")
        return stopped

    def complete_if_exhausted(self, checkout_id: str) -> bool:
        """
        Complete a running checkout whose allocated time has run out

        The closing entry records exactly what was left and the checkout's
        used seconds are pinned to its allocation.

        Returns:
            True if the checkout was completed by this call
        """
        with self.db.transaction() as conn:
            checkout = self._load(checkout_id, conn)
            entry = checkout.open_entry
            if checkout.status != CheckoutStatus.ACTIVE or entry is None:
                return False

            now = self.resolver.now()
            elapsed = elapsed_seconds(entry.start_time, now)
            if checkout.used_seconds + elapsed < checkout.allocated_seconds:
                return False

            self._terminate(conn, checkout, CheckoutStatus.COMPLETED, now, pin_used=True)
            return True
