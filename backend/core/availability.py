"""
Availability Evaluator

Decides whether a timer (or one day's allocation of it) may be used right now.
Precedence is written as ordered rule tables: the first rule whose condition
holds decides the outcome. Evaluation never writes; the one side effect tied
to an allocation evaluation (force-stopping sessions past expiration) is
reported back as ``force_stop`` for the caller to carry out in its
transaction.
"""

import sqlite3
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar

from core.db import DatabaseManager
from core.errors import NotFound
from core.logger import get_logger
from core.schedule import TimeResolver, day_of_week, window_for
from models.entities import (
    AllocationActiveResult,
    AvailabilityReason,
    AvailabilityResult,
    OverrideState,
)

logger = get_logger(__name__)

Ctx = TypeVar("Ctx")
Out = TypeVar("Out")


@dataclass(frozen=True)
class Rule(Generic[Ctx, Out]):
    name: str
    when: Callable[[Ctx], bool]
    then: Callable[[Ctx], Out]


def first_match(rules: Sequence[Rule], ctx, default: Callable):
    """Outcome of the first applicable rule, else ``default(ctx)``"""
    for rule in rules:
        if rule.when(ctx):
            return rule.name, rule.then(ctx)
    return "default", default(ctx)


# ============ Timer availability ============


@dataclass(frozen=True)
class TimerContext:
    exists: bool
    force_active: bool
    force_expired: bool
    current_time: str  # HH:MM
    start_time: Optional[str]
    expiration_time: Optional[str]


def _available(_ctx) -> AvailabilityResult:
    return AvailabilityResult(available=True)


def _unavailable(reason: AvailabilityReason):
    return lambda _ctx: AvailabilityResult(available=False, reason=reason)


TIMER_RULES = (
    # Stale or deleted ids stay usable for older callers
    Rule("unknown_timer", lambda c: not c.exists, _available),
    Rule("force_active", lambda c: c.force_active, _available),
    Rule(
        "force_expired",
        lambda c: c.force_expired,
        _unavailable(AvailabilityReason.AFTER_EXPIRATION),
    ),
    Rule(
        "before_start",
        lambda c: bool(c.start_time) and c.current_time < c.start_time,
        _unavailable(AvailabilityReason.BEFORE_START),
    ),
    Rule(
        "after_expiration",
        lambda c: bool(c.expiration_time) and c.current_time >= c.expiration_time,
        _unavailable(AvailabilityReason.AFTER_EXPIRATION),
    ),
)


# ============ Allocation activity ============


@dataclass(frozen=True)
class AllocationContext:
    manual_override: Optional[OverrideState]
    natural: AvailabilityResult


@dataclass(frozen=True)
class AllocationDecision:
    result: AllocationActiveResult
    force_stop: bool = False


ALLOCATION_RULES = (
    Rule(
        "override_expired",
        lambda c: c.manual_override == OverrideState.EXPIRED,
        lambda c: AllocationDecision(
            AllocationActiveResult(active=False, reason=c.natural.reason)
        ),
    ),
    # Past expiration wins over an 'active' override
    Rule(
        "after_expiration",
        lambda c: c.natural.reason == AvailabilityReason.AFTER_EXPIRATION,
        lambda c: AllocationDecision(
            AllocationActiveResult(
                active=False, reason=AvailabilityReason.AFTER_EXPIRATION
            ),
            force_stop=True,
        ),
    ),
    # An 'active' override only unlocks the time before the window opens
    Rule(
        "override_active_early",
        lambda c: c.manual_override == OverrideState.ACTIVE
        and c.natural.reason == AvailabilityReason.BEFORE_START,
        lambda c: AllocationDecision(AllocationActiveResult(active=True)),
    ),
)


def _mirror_natural(ctx: AllocationContext) -> AllocationDecision:
    return AllocationDecision(
        AllocationActiveResult(active=ctx.natural.available, reason=ctx.natural.reason)
    )


class AvailabilityEvaluator:
    """Evaluates timers and allocations against the rule tables above"""

    def __init__(self, db: DatabaseManager, resolver: TimeResolver):
        self.db = db
        self.resolver = resolver

    def timer_context(
        self, timer_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> TimerContext:
        today = self.resolver.start_of_day()
        current_time = self.resolver.current_time_of_day()

        timer = self.db.timers.get_by_id(timer_id, conn=conn)
        if timer is None:
            return TimerContext(False, False, False, current_time, None, None)

        schedule = self.db.timers.get_schedule_for_day(
            timer_id, day_of_week(today), conn=conn
        )
        start_time, expiration_time = window_for(timer, schedule)
        return TimerContext(
            exists=True,
            force_active=timer.get("force_active_at") is not None,
            force_expired=timer.get("force_expired_at") is not None,
            current_time=current_time,
            start_time=start_time,
            expiration_time=expiration_time,
        )

    def evaluate(
        self, timer_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> AvailabilityResult:
        """Is the timer usable right now, and if not which boundary was missed"""
        ctx = self.timer_context(timer_id, conn=conn)
        rule, result = first_match(TIMER_RULES, ctx, _available)
        logger.debug(f"Availability for timer {timer_id}: {rule} -> {result}")
        return result

    def evaluate_allocation(
        self, allocation_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> AllocationDecision:
        """
        Layer the allocation's manual override over its timer's availability

        Raises:
            NotFound: unknown allocation id
        """
        allocation = self.db.allocations.get_by_id(allocation_id, conn=conn)
        if allocation is None:
            raise NotFound("allocation", allocation_id)

        override = allocation.get("manual_override")
        ctx = AllocationContext(
            manual_override=OverrideState(override) if override else None,
            natural=self.evaluate(allocation["timer_id"], conn=conn),
        )
        rule, decision = first_match(ALLOCATION_RULES, ctx, _mirror_natural)
        logger.debug(f"Allocation {allocation_id} activity: {rule} -> {decision.result}")
        return decision
