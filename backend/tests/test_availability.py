"""
Tests for timer availability and allocation activity.

Covers:
- Window boundaries (start inclusive, expiration exclusive)
- Force-active / force-expired precedence on timers
- Manual allocation overrides layered over the window
- Force-stop of an allocation's sessions past expiration
"""

import pytest

from core.availability import Rule, first_match
from core.errors import NotFound, ValidationError
from models.entities import AvailabilityReason, CheckoutStatus, OverrideState

from .conftest import MONDAY, local_time


class TestScenarioWindow:
    """Monday schedule 1800s between 12:00 and 18:00, default 3600s"""

    def test_before_start(self, engine, clock, windowed_timer):
        clock.set(local_time(MONDAY, 10))
        result = engine.get_availability(windowed_timer)

        assert result.available is False
        assert result.reason == AvailabilityReason.BEFORE_START

    def test_inside_window(self, engine, clock, windowed_timer):
        clock.set(local_time(MONDAY, 14))
        result = engine.get_availability(windowed_timer)

        assert result.available is True
        assert result.reason is None

    def test_after_expiration(self, engine, clock, windowed_timer):
        clock.set(local_time(MONDAY, 19))
        result = engine.get_availability(windowed_timer)

        assert result.available is False
        assert result.reason == AvailabilityReason.AFTER_EXPIRATION

    def test_start_boundary_is_inclusive(self, engine, clock, windowed_timer):
        clock.set(local_time(MONDAY, 12))
        assert engine.get_availability(windowed_timer).available is True

    def test_expiration_boundary_is_exclusive(self, engine, clock, windowed_timer):
        clock.set(local_time(MONDAY, 17, 59))
        assert engine.get_availability(windowed_timer).available is True

        clock.set(local_time(MONDAY, 18))
        assert engine.get_availability(windowed_timer).reason == AvailabilityReason.AFTER_EXPIRATION


class TestTimerOverrides:
    def test_unknown_timer_is_available(self, engine):
        assert engine.get_availability("missing").available is True

    def test_blank_timer_id(self, engine):
        with pytest.raises(ValidationError):
            engine.get_availability("  ")

    def test_force_active_ignores_window(self, engine, clock, windowed_timer):
        clock.set(local_time(MONDAY, 10))
        engine.force_timer_override(windowed_timer, OverrideState.ACTIVE)

        assert engine.get_availability(windowed_timer).available is True

    def test_force_expired_closes_open_window(self, engine, windowed_timer):
        engine.force_timer_override(windowed_timer, OverrideState.EXPIRED)
        result = engine.get_availability(windowed_timer)

        assert result.available is False
        assert result.reason == AvailabilityReason.AFTER_EXPIRATION

    def test_one_flag_at_a_time(self, engine, windowed_timer):
        engine.force_timer_override(windowed_timer, OverrideState.ACTIVE)
        timer = engine.force_timer_override(windowed_timer, OverrideState.EXPIRED)

        assert timer.force_active_at is None
        assert timer.force_expired_at is not None

    def test_clearing_restores_schedule(self, engine, clock, windowed_timer):
        clock.set(local_time(MONDAY, 10))
        engine.force_timer_override(windowed_timer, OverrideState.ACTIVE)
        timer = engine.force_timer_override(windowed_timer, None)

        assert timer.force_active_at is None
        assert timer.force_expired_at is None
        assert engine.get_availability(windowed_timer).reason == AvailabilityReason.BEFORE_START

    def test_unknown_timer_override(self, engine):
        with pytest.raises(NotFound):
            engine.force_timer_override("missing", OverrideState.ACTIVE)

    def test_bad_override_value(self, engine, windowed_timer):
        with pytest.raises(ValidationError):
            engine.force_timer_override(windowed_timer, "paused")


class TestAllocationActivity:
    @pytest.fixture
    def allocation_id(self, engine, windowed_timer):
        return engine.get_today_allocation(windowed_timer).allocation.id

    def test_mirrors_timer_inside_window(self, engine, allocation_id):
        result = engine.get_allocation_active(allocation_id)
        assert result.active is True

    def test_mirrors_timer_before_start(self, engine, clock, allocation_id):
        clock.set(local_time(MONDAY, 10))
        result = engine.get_allocation_active(allocation_id)

        assert result.active is False
        assert result.reason == AvailabilityReason.BEFORE_START

    def test_expired_override_wins_inside_window(self, engine, allocation_id):
        engine.force_allocation_override(allocation_id, OverrideState.EXPIRED)
        assert engine.get_allocation_active(allocation_id).active is False

    def test_active_override_unlocks_before_start(self, engine, clock, allocation_id):
        clock.set(local_time(MONDAY, 10))
        engine.force_allocation_override(allocation_id, OverrideState.ACTIVE)

        assert engine.get_allocation_active(allocation_id).active is True

    def test_active_override_does_not_beat_expiration(self, engine, clock, allocation_id):
        engine.force_allocation_override(allocation_id, OverrideState.ACTIVE)
        clock.set(local_time(MONDAY, 19))
        result = engine.get_allocation_active(allocation_id)

        assert result.active is False
        assert result.reason == AvailabilityReason.AFTER_EXPIRATION

    def test_past_expiration_cancels_open_checkouts(self, engine, clock, windowed_timer):
        checkout = engine.create_checkout(windowed_timer, 600)
        engine.start_checkout(checkout.id)
        clock.set(local_time(MONDAY, 19))

        engine.get_allocation_active(checkout.allocation_id)

        stopped = engine.get_checkout(checkout.id)
        assert stopped.status == CheckoutStatus.CANCELLED
        assert stopped.open_entry is None
        # five hours elapsed, capped at the 600s reserved
        assert stopped.entries[0].duration_seconds == 600
        assert stopped.used_seconds == 600

    def test_unknown_allocation(self, engine):
        with pytest.raises(NotFound):
            engine.get_allocation_active("missing")


class TestRuleTable:
    def test_first_applicable_rule_wins(self):
        rules = (
            Rule("small", lambda n: n < 10, lambda n: "small"),
            Rule("even", lambda n: n % 2 == 0, lambda n: "even"),
        )

        assert first_match(rules, 4, lambda n: "other") == ("small", "small")
        assert first_match(rules, 12, lambda n: "other") == ("even", "even")
        assert first_match(rules, 13, lambda n: "other") == ("default", "other")
