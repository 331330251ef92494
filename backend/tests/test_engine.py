"""
Tests for the engine facade: today's allocation, admin edits and the
runtime timezone setting.
"""

import pytest

from core.engine import AllocationEngine
from core.errors import NotFound, ValidationError
from models.entities import AvailabilityReason, CheckoutStatus

from .conftest import MONDAY, TUESDAY, FakeClock, local_time


class TestTodayAllocation:
    def test_creates_on_first_read(self, engine, windowed_timer):
        state = engine.get_today_allocation(windowed_timer)

        assert state.allocation.date == MONDAY
        assert state.allocation.total_seconds == 1800
        assert state.active is True
        assert state.reserved_seconds == 0

    def test_counts_reservations(self, engine, windowed_timer):
        engine.create_checkout(windowed_timer, 500)
        engine.create_checkout(windowed_timer, 300)

        assert engine.get_today_allocation(windowed_timer).reserved_seconds == 800

    def test_past_expiration_stops_sessions(self, engine, clock, windowed_timer):
        checkout = engine.create_checkout(windowed_timer, 500)
        clock.set(local_time(MONDAY, 19))

        state = engine.get_today_allocation(windowed_timer)
        assert state.active is False
        assert state.reason == AvailabilityReason.AFTER_EXPIRATION
        assert state.reserved_seconds == 0
        assert engine.get_checkout(checkout.id).status == CheckoutStatus.CANCELLED

    def test_unknown_timer(self, engine):
        with pytest.raises(NotFound):
            engine.get_today_allocation("missing")


class TestAllocationTotal:
    def test_edit_applies_to_admission(self, engine, windowed_timer):
        engine.set_allocation_total(windowed_timer, MONDAY, 600)

        assert engine.create_checkout(windowed_timer, 600).allocated_seconds == 600

    def test_rejects_non_integer(self, engine, windowed_timer):
        with pytest.raises(ValidationError):
            engine.set_allocation_total(windowed_timer, TUESDAY, "1200")

    def test_override_unknown_allocation(self, engine):
        with pytest.raises(NotFound):
            engine.force_allocation_override("missing", "expired")


class TestTimezoneSetting:
    @pytest.fixture
    def stored_engine(self, db):
        # 19:00 UTC: 14:00 in New York, 04:00 next day in Tokyo
        return AllocationEngine(db, clock=FakeClock(local_time(MONDAY, 14)))

    def test_defaults_to_configured_zone(self, stored_engine):
        assert stored_engine.resolver.get_timezone().zone == "America/New_York"
        assert stored_engine.resolver.start_of_day() == MONDAY

    def test_change_applies_immediately(self, stored_engine, db):
        assert stored_engine.set_timezone("Asia/Tokyo") == "Asia/Tokyo"

        assert db.settings.get_timezone("UTC") == "Asia/Tokyo"
        assert stored_engine.resolver.start_of_day() == TUESDAY
        assert stored_engine.resolver.current_time_of_day() == "04:00"

    def test_unknown_zone(self, stored_engine):
        with pytest.raises(ValidationError):
            stored_engine.set_timezone("Nowhere/Special")
