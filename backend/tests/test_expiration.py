"""
Tests for the expiration reconciler.

Covers:
- Budget exhaustion: capped closing entry, usage pinned to the allocation
- Window expiration and force-expired timers cancelling open checkouts
- Repeated sweeps changing nothing
- A failing checkout not stopping the rest of the sweep
"""

import pytest

from models.entities import CheckoutStatus, OverrideState

from .conftest import MONDAY, local_time


@pytest.fixture
def timer_id(make_timer):
    return make_timer(3600)


class TestExhaustionSweep:
    def test_completes_and_caps_overrun(self, engine, clock, timer_id):
        checkout = engine.create_checkout(timer_id, 60)
        engine.start_checkout(checkout.id)
        clock.advance(95)

        result = engine.run_expiration_sweep()
        assert result.completed == 1
        assert result.failed == 0

        finished = engine.get_checkout(checkout.id)
        assert finished.status == CheckoutStatus.COMPLETED
        assert finished.used_seconds == 60
        assert finished.entries[0].duration_seconds == 60
        assert engine.allocations.get(checkout.allocation_id).used_seconds == 60

    def test_caps_at_what_was_left(self, engine, clock, timer_id):
        checkout = engine.create_checkout(timer_id, 60)
        engine.start_checkout(checkout.id)
        clock.advance(20)
        engine.pause_checkout(checkout.id)
        engine.start_checkout(checkout.id)
        clock.advance(95)

        engine.run_expiration_sweep()

        finished = engine.get_checkout(checkout.id)
        assert finished.status == CheckoutStatus.COMPLETED
        assert [e.duration_seconds for e in finished.entries] == [20, 40]
        assert finished.used_seconds == 60
        assert engine.allocations.get(checkout.allocation_id).used_seconds == 60

    def test_exactly_exhausted(self, engine, clock, timer_id):
        checkout = engine.create_checkout(timer_id, 60)
        engine.start_checkout(checkout.id)
        clock.advance(60)

        assert engine.run_expiration_sweep().completed == 1

    def test_leaves_time_remaining_alone(self, engine, clock, timer_id):
        checkout = engine.create_checkout(timer_id, 600)
        engine.start_checkout(checkout.id)
        clock.advance(30)

        result = engine.run_expiration_sweep()
        assert result.completed == 0

        running = engine.get_checkout(checkout.id)
        assert running.status == CheckoutStatus.ACTIVE
        assert running.open_entry is not None

    def test_ignores_paused_checkouts(self, engine, clock, timer_id):
        checkout = engine.create_checkout(timer_id, 60)
        engine.start_checkout(checkout.id)
        clock.advance(30)
        engine.pause_checkout(checkout.id)
        clock.advance(600)

        assert engine.run_expiration_sweep().completed == 0
        assert engine.get_checkout(checkout.id).status == CheckoutStatus.PAUSED


class TestWindowSweep:
    def test_force_expired_timer_cancels_running_checkout(
        self, engine, db, clock, timer_id
    ):
        checkout = engine.create_checkout(timer_id, 600)
        engine.start_checkout(checkout.id)
        clock.advance(30)
        # flag written straight to the store, so only the sweep can react
        db.timers.set_force_flags(timer_id, None, clock())

        result = engine.run_expiration_sweep()
        assert result.force_stopped == 1

        cancelled = engine.get_checkout(checkout.id)
        assert cancelled.status == CheckoutStatus.CANCELLED
        assert cancelled.open_entry is None
        assert cancelled.entries[0].duration_seconds == 30
        assert cancelled.used_seconds == 30

    def test_expire_override_cancels_open_checkouts_at_once(
        self, engine, clock, timer_id
    ):
        running = engine.create_checkout(timer_id, 600)
        paused = engine.create_checkout(timer_id, 600)
        engine.start_checkout(running.id)
        engine.start_checkout(paused.id)
        clock.advance(20)
        engine.pause_checkout(paused.id)
        clock.advance(25)

        engine.force_timer_override(timer_id, OverrideState.EXPIRED)

        cancelled = engine.get_checkout(running.id)
        assert cancelled.status == CheckoutStatus.CANCELLED
        assert cancelled.open_entry is None
        assert cancelled.used_seconds == 45
        assert engine.get_checkout(paused.id).status == CheckoutStatus.CANCELLED
        assert engine.allocations.get(running.allocation_id).used_seconds == 65
        assert engine.run_expiration_sweep().force_stopped == 0

    def test_forced_stop_caps_at_remaining(self, engine, clock, timer_id):
        checkout = engine.create_checkout(timer_id, 600)
        engine.start_checkout(checkout.id)
        clock.advance(1000)

        assert engine.checkouts.force_stop_timer(timer_id) == 1

        cancelled = engine.get_checkout(checkout.id)
        assert cancelled.status == CheckoutStatus.CANCELLED
        assert cancelled.entries[0].duration_seconds == 600
        assert cancelled.used_seconds == 600

    def test_window_close_cancels_running_and_paused(self, engine, clock, windowed_timer):
        running = engine.create_checkout(windowed_timer, 600)
        paused = engine.create_checkout(windowed_timer, 600)

        clock.set(local_time(MONDAY, 17, 58))
        engine.start_checkout(running.id)
        engine.start_checkout(paused.id)
        clock.advance(60)
        engine.pause_checkout(paused.id)

        # 150s into the running entry, short of its 600s
        clock.set(local_time(MONDAY, 18, 0, 30))
        result = engine.run_expiration_sweep()

        assert result.completed == 0
        assert result.force_stopped == 2
        assert engine.get_checkout(running.id).status == CheckoutStatus.CANCELLED
        assert engine.get_checkout(running.id).used_seconds == 150
        assert engine.get_checkout(paused.id).status == CheckoutStatus.CANCELLED
        assert engine.get_checkout(paused.id).used_seconds == 60

    def test_open_window_is_left_alone(self, engine, windowed_timer):
        checkout = engine.create_checkout(windowed_timer, 600)
        engine.start_checkout(checkout.id)

        assert engine.run_expiration_sweep().force_stopped == 0
        assert engine.get_checkout(checkout.id).status == CheckoutStatus.ACTIVE

    def test_before_start_is_not_expiration(self, engine, clock, windowed_timer):
        checkout = engine.create_checkout(windowed_timer, 600)
        clock.set(local_time(MONDAY, 11))

        assert engine.run_expiration_sweep().force_stopped == 0
        assert engine.get_checkout(checkout.id).status == CheckoutStatus.ACTIVE


class TestSweepBehaviour:
    def test_second_sweep_changes_nothing(self, engine, clock, timer_id):
        checkout = engine.create_checkout(timer_id, 60)
        engine.start_checkout(checkout.id)
        clock.advance(95)

        engine.run_expiration_sweep()
        again = engine.run_expiration_sweep()

        assert (again.completed, again.force_stopped, again.failed) == (0, 0, 0)
        assert engine.allocations.get(checkout.allocation_id).used_seconds == 60

    def test_terminal_checkouts_untouched(self, engine, clock, timer_id):
        checkout = engine.create_checkout(timer_id, 60)
        engine.cancel_checkout(checkout.id)
        engine.force_timer_override(timer_id, OverrideState.EXPIRED)
        clock.advance(600)

        result = engine.run_expiration_sweep()
        assert (result.completed, result.force_stopped) == (0, 0)
        assert engine.get_checkout(checkout.id).status == CheckoutStatus.CANCELLED

    def test_failing_checkout_does_not_stop_the_sweep(
        self, engine, clock, timer_id, monkeypatch
    ):
        broken = engine.create_checkout(timer_id, 60)
        healthy = engine.create_checkout(timer_id, 60)
        engine.start_checkout(broken.id)
        engine.start_checkout(healthy.id)
        clock.advance(95)

        original = engine.checkouts.complete_if_exhausted

        def flaky(checkout_id):
            if checkout_id == broken.id:
                raise RuntimeError("disk on fire")
            return original(checkout_id)

        monkeypatch.setattr(engine.checkouts, "complete_if_exhausted", flaky)

        result = engine.run_expiration_sweep()
        assert result.completed == 1
        assert result.failed == 1
        assert engine.get_checkout(healthy.id).status == CheckoutStatus.COMPLETED
        assert engine.get_checkout(broken.id).status == CheckoutStatus.ACTIVE
