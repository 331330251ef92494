"""
Shared SQL queries
"""

# ============ Timers ============

SELECT_TIMER_BY_ID = "SELECT * FROM timers WHERE id = ?"

SELECT_SCHEDULES_BY_TIMER = """
    SELECT * FROM timer_schedules WHERE timer_id = ? ORDER BY day_of_week ASC
"""

SELECT_SCHEDULE_FOR_DAY = """
    SELECT * FROM timer_schedules WHERE timer_id = ? AND day_of_week = ?
"""

UPSERT_SCHEDULE = """
    INSERT INTO timer_schedules (id, timer_id, day_of_week, seconds, start_time, expiration_time)
    VALUES (?, ?, ?, ?, ?, ?)
    ON CONFLICT (timer_id, day_of_week) DO UPDATE SET
        seconds = excluded.seconds,
        start_time = excluded.start_time,
        expiration_time = excluded.expiration_time
"""

UPDATE_TIMER_FORCE_FLAGS = """
    UPDATE timers SET force_active_at = ?, force_expired_at = ? WHERE id = ?
"""

# ============ Daily allocations ============

SELECT_ALLOCATION_BY_ID = "SELECT * FROM daily_allocations WHERE id = ?"

SELECT_ALLOCATION_BY_TIMER_DATE = """
    SELECT * FROM daily_allocations WHERE timer_id = ? AND date = ?
"""

INSERT_ALLOCATION_IF_ABSENT = """
    INSERT INTO daily_allocations (id, timer_id, date, total_seconds, used_seconds)
    VALUES (?, ?, ?, ?, 0)
    ON CONFLICT (timer_id, date) DO NOTHING
"""

UPSERT_ALLOCATION_TOTAL = """
    INSERT INTO daily_allocations (id, timer_id, date, total_seconds, used_seconds)
    VALUES (?, ?, ?, ?, 0)
    ON CONFLICT (timer_id, date) DO UPDATE SET total_seconds = excluded.total_seconds
"""

INCREMENT_ALLOCATION_USED = """
    UPDATE daily_allocations SET used_seconds = used_seconds + ? WHERE id = ?
"""

UPDATE_ALLOCATION_OVERRIDE = """
    UPDATE daily_allocations SET manual_override = ? WHERE id = ?
"""

# ============ Checkouts ============

SELECT_CHECKOUT_BY_ID = "SELECT * FROM checkouts WHERE id = ?"

SELECT_CHECKOUTS_BY_ALLOCATION_STATUS = """
    SELECT * FROM checkouts
    WHERE allocation_id = ? AND status IN ('ACTIVE', 'PAUSED')
    ORDER BY created_at ASC
"""

SELECT_CHECKOUTS_BY_TIMER_STATUS = """
    SELECT * FROM checkouts
    WHERE timer_id = ? AND status IN ('ACTIVE', 'PAUSED')
    ORDER BY created_at ASC
"""

SUM_RESERVED_SECONDS = """
    SELECT COALESCE(SUM(allocated_seconds), 0) AS reserved
    FROM checkouts
    WHERE allocation_id = ? AND status IN ('ACTIVE', 'PAUSED')
"""

SELECT_RUNNING_CHECKOUT_IDS = """
    SELECT DISTINCT c.id
    FROM checkouts c
    JOIN time_entries e ON e.checkout_id = c.id AND e.end_time IS NULL
    WHERE c.status = 'ACTIVE'
"""

SELECT_TIMER_IDS_WITH_OPEN_CHECKOUTS = """
    SELECT DISTINCT timer_id FROM checkouts WHERE status IN ('ACTIVE', 'PAUSED')
"""

INSERT_CHECKOUT = """
    INSERT INTO checkouts (
        id, timer_id, allocation_id, allocated_seconds, used_seconds, status,
        created_at, updated_at
    ) VALUES (?, ?, ?, ?, 0, 'ACTIVE', ?, ?)
"""

UPDATE_CHECKOUT_STATE = """
    UPDATE checkouts SET used_seconds = ?, status = ?, updated_at = ? WHERE id = ?
"""

# ============ Time entries ============

SELECT_ENTRIES_BY_CHECKOUT = """
    SELECT * FROM time_entries WHERE checkout_id = ? ORDER BY start_time ASC
"""

INSERT_TIME_ENTRY = """
    INSERT INTO time_entries (id, checkout_id, start_time) VALUES (?, ?, ?)
"""

CLOSE_TIME_ENTRY = """
    UPDATE time_entries SET end_time = ?, duration_seconds = ?
    WHERE id = ? AND end_time IS NULL
"""

# ============ Counts ============

TABLE_COUNT_QUERIES = {
    "timers": "SELECT COUNT(*) AS count FROM timers",
    "daily_allocations": "SELECT COUNT(*) AS count FROM daily_allocations",
    "checkouts": "SELECT COUNT(*) AS count FROM checkouts",
    "time_entries": "SELECT COUNT(*) AS count FROM time_entries",
}
