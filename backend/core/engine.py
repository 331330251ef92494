"""
Allocation engine facade

Wires the resolver, allocation store, availability evaluator, checkout state
machine and expiration reconciler to one database, and exposes the operations
callers (handlers, the expiration agent, scripts) use.
"""

from datetime import date
from typing import Optional

import pytz

from config.loader import get_config
from core.allocations import AllocationStore
from core.availability import AvailabilityEvaluator
from core.checkouts import CheckoutStateMachine, validate_id
from core.db import DatabaseManager, get_db
from core.errors import NotFound, ValidationError
from core.expiration import ExpirationReconciler
from core.logger import get_logger
from core.schedule import Clock, TimeResolver, validate_timezone
from models.entities import (
    AllocationActiveResult,
    AllocationWithState,
    AvailabilityResult,
    Checkout,
    DailyAllocation,
    OverrideState,
    SweepResult,
    TimeEntry,
    Timer,
)

logger = get_logger(__name__)

DEFAULT_TIMEZONE = "America/New_York"


class AllocationEngine:
    """
    Allocation & checkout lifecycle engine

    Args:
        db: Database manager
        timezone_name: Fixed IANA timezone; when omitted the timezone stored in
            settings (falling back to config ``time.timezone``) is read on
            every lookup
        clock: Current-instant source, injectable for tests
    """

    def __init__(
        self,
        db: DatabaseManager,
        timezone_name: Optional[str] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.resolver = TimeResolver(db, timezone_name or self._stored_timezone, clock)
        self.allocations = AllocationStore(db, self.resolver)
        self.evaluator = AvailabilityEvaluator(db, self.resolver)
        self.checkouts = CheckoutStateMachine(
            db, self.resolver, self.allocations, self.evaluator
        )
        self.reconciler = ExpirationReconciler(db, self.evaluator, self.checkouts)

    def _stored_timezone(self) -> str:
        fallback = get_config().get("time.timezone", DEFAULT_TIMEZONE)
        return self.db.settings.get_timezone(fallback)

    # ============ Checkouts ============

    def create_checkout(self, timer_id: str, allocated_seconds: int) -> Checkout:
        return self.checkouts.create(timer_id, allocated_seconds)

    def get_checkout(self, checkout_id: str) -> Checkout:
        return self.checkouts.get(checkout_id)

    def start_checkout(self, checkout_id: str) -> TimeEntry:
        return self.checkouts.start(checkout_id)

    def pause_checkout(self, checkout_id: str) -> Checkout:
        return self.checkouts.pause(checkout_id)

    def stop_checkout(self, checkout_id: str) -> Checkout:
        return self.checkouts.stop(checkout_id)

    def cancel_checkout(self, checkout_id: str) -> Checkout:
        return self.checkouts.cancel(checkout_id)

    def force_checkout_active(self, checkout_id: str) -> Checkout:
        return self.checkouts.force_active(checkout_id)

    def force_checkout_expired(self, checkout_id: str) -> Checkout:
        return self.checkouts.force_expired(checkout_id)

    # ============ Availability ============

    def get_availability(self, timer_id: str) -> AvailabilityResult:
        validate_id(timer_id, "timer_id")
        with self.db.snapshot() as conn:
            return self.evaluator.evaluate(timer_id, conn=conn)

    def get_allocation_active(self, allocation_id: str) -> AllocationActiveResult:
        """
        Active state of an allocation

        Past the expiration time this also cancels the allocation's open
        checkouts, in the same transaction as the evaluation.
        """
        validate_id(allocation_id, "allocation_id")
        with self.db.transaction() as conn:
            decision = self.evaluator.evaluate_allocation(allocation_id, conn=conn)
            if decision.force_stop:
                self.checkouts.force_stop_allocation(allocation_id, conn=conn)
            return decision.result

    def get_today_allocation(self, timer_id: str) -> AllocationWithState:
        """Today's allocation for a timer (created if needed) with its active state"""
        validate_id(timer_id, "timer_id")
        with self.db.transaction() as conn:
            allocation = self.allocations.get_or_create(
                timer_id, self.resolver.start_of_day(), conn=conn
            )
            decision = self.evaluator.evaluate_allocation(allocation.id, conn=conn)
            if decision.force_stop:
                self.checkouts.force_stop_allocation(allocation.id, conn=conn)
                allocation = self.allocations.get(allocation.id, conn=conn)
            return AllocationWithState(
                allocation=allocation,
                active=decision.result.active,
                reason=decision.result.reason,
                reserved_seconds=self.allocations.reserved_seconds(allocation.id, conn=conn),
            )

    # ============ Admin overrides ============

    def force_allocation_override(
        self, allocation_id: str, value: OverrideState
    ) -> DailyAllocation:
        validate_id(allocation_id, "allocation_id")
        value = _parse_override(value)
        with self.db.transaction() as conn:
            return self.allocations.set_override(allocation_id, value, conn=conn)

    def force_timer_override(
        self, timer_id: str, value: Optional[OverrideState]
    ) -> Timer:
        """
        Set ``force_active_at`` or ``force_expired_at`` (clearing the other)

        ``None`` clears both and hands the timer back to its schedule. Expiring
        a timer also cancels its open checkouts in the same transaction.
        """
        validate_id(timer_id, "timer_id")
        value = _parse_override(value) if value is not None else None
        now = self.resolver.now()

        with self.db.transaction() as conn:
            active_at = now if value == OverrideState.ACTIVE else None
            expired_at = now if value == OverrideState.EXPIRED else None
            if not self.db.timers.set_force_flags(timer_id, active_at, expired_at, conn=conn):
                raise NotFound("timer", timer_id)
            if value == OverrideState.EXPIRED:
                self.checkouts.force_stop_timer(timer_id, conn=conn)

            logger.info(
                f"Timer {timer_id} override set to {value.value if value else 'none'}"
            )
            return Timer.model_validate(self.db.timers.get_by_id(timer_id, conn=conn))

    def set_allocation_total(
        self, timer_id: str, day: date, total_seconds: int
    ) -> DailyAllocation:
        validate_id(timer_id, "timer_id")
        if isinstance(total_seconds, bool) or not isinstance(total_seconds, int):
            raise ValidationError("total_seconds must be a whole number of seconds")
        with self.db.transaction() as conn:
            return self.allocations.set_total(timer_id, day, total_seconds, conn=conn)

    def set_timezone(self, tz_name: str) -> str:
        """Persist the runtime timezone; lookups pick it up immediately"""
        try:
            validate_timezone(tz_name)
        except pytz.UnknownTimeZoneError as e:
            raise ValidationError(f"Unknown timezone: {tz_name}") from e
        self.db.settings.set_timezone(tz_name)
        logger.info(f"Timezone set to {tz_name}")
        return tz_name

    # ============ Reconciliation ============

    def run_expiration_sweep(self) -> SweepResult:
        return self.reconciler.run_sweep()


def _parse_override(value) -> OverrideState:
    try:
        return OverrideState(value)
    except ValueError as e:
        raise ValidationError(f"Override must be 'active' or 'expired', got {value!r}") from e


# Global engine instance
_engine: Optional[AllocationEngine] = None


def get_engine() -> AllocationEngine:
    """Engine bound to the global database (see core.db.get_db)"""
    global _engine

    if _engine is None:
        _engine = AllocationEngine(get_db())
        logger.debug("✓ Global AllocationEngine initialized")

    return _engine


def set_engine(engine: Optional[AllocationEngine]) -> None:
    """Install an engine (tests, alternative databases); None resets"""
    global _engine
    _engine = engine
