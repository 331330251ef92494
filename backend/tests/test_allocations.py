"""
Tests for the daily allocation ledger.

Covers:
- Lazy read-or-create with schedule/default totals
- Concurrent first access producing one row
- Used-seconds increments and their guards
- Manual overrides and admin total edits
"""

import threading

import pytest

from core.errors import NotFound, ValidationError
from models.entities import OverrideState

from .conftest import MONDAY, TUESDAY


@pytest.fixture
def store(engine):
    return engine.allocations


class TestGetOrCreate:
    def test_creates_from_schedule(self, store, windowed_timer):
        allocation = store.get_or_create(windowed_timer, MONDAY)

        assert allocation.date == MONDAY
        assert allocation.total_seconds == 1800
        assert allocation.used_seconds == 0
        assert allocation.manual_override is None

    def test_creates_from_default(self, store, windowed_timer):
        assert store.get_or_create(windowed_timer, TUESDAY).total_seconds == 3600

    def test_defaults_to_today(self, store, windowed_timer):
        assert store.get_or_create(windowed_timer).date == MONDAY

    def test_second_access_reads_the_same_row(self, store, windowed_timer):
        first = store.get_or_create(windowed_timer, MONDAY)
        second = store.get_or_create(windowed_timer, MONDAY)
        assert first.id == second.id

    def test_total_is_fixed_at_creation(self, store, db, windowed_timer):
        first = store.get_or_create(windowed_timer, MONDAY)
        db.timers.upsert_schedule(windowed_timer, 1, 600)

        assert store.get_or_create(windowed_timer, MONDAY).total_seconds == first.total_seconds

    def test_unknown_timer(self, store):
        with pytest.raises(NotFound):
            store.get_or_create("missing", MONDAY)

    def test_concurrent_first_access_creates_one_row(self, store, db, windowed_timer):
        barrier = threading.Barrier(6)
        ids = []
        errors = []

        def worker():
            barrier.wait()
            try:
                with db.transaction() as conn:
                    ids.append(store.get_or_create(windowed_timer, MONDAY, conn=conn).id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(set(ids)) == 1
        assert db.get_table_counts()["daily_allocations"] == 1


class TestIncrementUsed:
    def test_adds_seconds(self, store, windowed_timer):
        allocation = store.get_or_create(windowed_timer, MONDAY)
        store.increment_used(allocation.id, 90)
        store.increment_used(allocation.id, 10)
        assert store.get(allocation.id).used_seconds == 100

    def test_zero_is_a_no_op(self, store, windowed_timer):
        allocation = store.get_or_create(windowed_timer, MONDAY)
        store.increment_used(allocation.id, 0)
        assert store.get(allocation.id).used_seconds == 0

    def test_negative_is_rejected(self, store, windowed_timer):
        allocation = store.get_or_create(windowed_timer, MONDAY)
        with pytest.raises(ValidationError):
            store.increment_used(allocation.id, -1)

    def test_unknown_allocation(self, store):
        with pytest.raises(NotFound):
            store.increment_used("missing", 5)


class TestAdmin:
    def test_get_unknown(self, store):
        with pytest.raises(NotFound):
            store.get("missing")

    def test_override_can_be_set_twice(self, store, windowed_timer):
        allocation = store.get_or_create(windowed_timer, MONDAY)

        store.set_override(allocation.id, OverrideState.EXPIRED)
        updated = store.set_override(allocation.id, OverrideState.EXPIRED)
        assert updated.manual_override == OverrideState.EXPIRED

        assert store.set_override(allocation.id, "active").manual_override == OverrideState.ACTIVE

    def test_override_unknown_allocation(self, store):
        with pytest.raises(NotFound):
            store.set_override("missing", OverrideState.ACTIVE)

    def test_set_total_creates_and_updates(self, store, windowed_timer):
        created = store.set_total(windowed_timer, TUESDAY, 1200)
        assert created.total_seconds == 1200

        updated = store.set_total(windowed_timer, TUESDAY, 2400)
        assert updated.id == created.id
        assert updated.total_seconds == 2400

    def test_set_total_rejects_negative(self, store, windowed_timer):
        with pytest.raises(ValidationError):
            store.set_total(windowed_timer, MONDAY, -60)

    def test_set_total_unknown_timer(self, store):
        with pytest.raises(NotFound):
            store.set_total("missing", MONDAY, 60)
