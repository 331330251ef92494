"""
Database schema
Table and index DDL, executed on every DatabaseManager start (idempotent)
"""

CREATE_SETTINGS_TABLE = """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'string',
        description TEXT,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
"""

CREATE_TIMERS_TABLE = """
    CREATE TABLE IF NOT EXISTS timers (
        id TEXT PRIMARY KEY,
        person_id TEXT NOT NULL,
        name TEXT NOT NULL,
        default_daily_seconds INTEGER NOT NULL DEFAULT 0,
        default_start_time TEXT,
        default_expiration_time TEXT,
        force_active_at TEXT,
        force_expired_at TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        CHECK (force_active_at IS NULL OR force_expired_at IS NULL)
    )
"""

CREATE_TIMER_SCHEDULES_TABLE = """
    CREATE TABLE IF NOT EXISTS timer_schedules (
        id TEXT PRIMARY KEY,
        timer_id TEXT NOT NULL REFERENCES timers(id) ON DELETE CASCADE,
        day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
        seconds INTEGER NOT NULL CHECK (seconds >= 0),
        start_time TEXT,
        expiration_time TEXT,
        UNIQUE (timer_id, day_of_week)
    )
"""

CREATE_DAILY_ALLOCATIONS_TABLE = """
    CREATE TABLE IF NOT EXISTS daily_allocations (
        id TEXT PRIMARY KEY,
        timer_id TEXT NOT NULL REFERENCES timers(id) ON DELETE CASCADE,
        date TEXT NOT NULL,
        total_seconds INTEGER NOT NULL CHECK (total_seconds >= 0),
        used_seconds INTEGER NOT NULL DEFAULT 0 CHECK (used_seconds >= 0),
        manual_override TEXT CHECK (manual_override IN ('active', 'expired')),
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (timer_id, date)
    )
"""

CREATE_CHECKOUTS_TABLE = """
    CREATE TABLE IF NOT EXISTS checkouts (
        id TEXT PRIMARY KEY,
        timer_id TEXT NOT NULL REFERENCES timers(id) ON DELETE CASCADE,
        allocation_id TEXT NOT NULL REFERENCES daily_allocations(id) ON DELETE CASCADE,
        allocated_seconds INTEGER NOT NULL CHECK (allocated_seconds > 0),
        used_seconds INTEGER NOT NULL DEFAULT 0 CHECK (used_seconds >= 0),
        status TEXT NOT NULL DEFAULT 'ACTIVE'
            CHECK (status IN ('ACTIVE', 'PAUSED', 'COMPLETED', 'CANCELLED')),
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
"""

CREATE_TIME_ENTRIES_TABLE = """
    CREATE TABLE IF NOT EXISTS time_entries (
        id TEXT PRIMARY KEY,
        checkout_id TEXT NOT NULL REFERENCES checkouts(id) ON DELETE CASCADE,
        start_time TEXT NOT NULL,
        end_time TEXT,
        duration_seconds INTEGER CHECK (duration_seconds >= 0),
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
"""

ALL_TABLES = [
    CREATE_SETTINGS_TABLE,
    CREATE_TIMERS_TABLE,
    CREATE_TIMER_SCHEDULES_TABLE,
    CREATE_DAILY_ALLOCATIONS_TABLE,
    CREATE_CHECKOUTS_TABLE,
    CREATE_TIME_ENTRIES_TABLE,
]

ALL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_checkouts_allocation_status ON checkouts(allocation_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_checkouts_timer_status ON checkouts(timer_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_time_entries_checkout ON time_entries(checkout_id)",
    # At most one open entry per checkout
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_time_entries_one_open
    ON time_entries(checkout_id) WHERE end_time IS NULL
    """,
]
