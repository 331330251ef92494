#!/usr/bin/env python3
"""
Maintenance script: Run one expiration sweep

This script:
1. Opens the configured database (or the file given as the first argument)
2. Completes running checkouts whose allocated time has run out
3. Cancels open checkouts of timers past their expiration time
4. Prints the sweep counts and the table sizes

Run with: uv run python scripts/run_expiration_sweep.py [path/to/timebank.db]
"""

import sys
from datetime import datetime

from core.db import get_db, switch_database
from core.engine import AllocationEngine


def run(db_path: str = "") -> bool:
    """Run a single sweep"""
    if db_path and not switch_database(db_path):
        print(f"❌ Cannot open database at {db_path}")
        return False

    db = get_db()
    print(f"📊 Sweeping database: {db.db_path}")
    print(f"⏰ Sweep time: {datetime.now().isoformat()}\n")

    try:
        result = AllocationEngine(db).run_expiration_sweep()

        print(f"{'='*60}")
        print("Sweep Summary")
        print(f"{'='*60}\n")
        print(f"  Completed (budget exhausted): {result.completed}")
        print(f"  Cancelled (window expired):   {result.force_stopped}")
        print(f"  Failed:                       {result.failed}\n")

        for table, count in db.get_table_counts().items():
            print(f"  {table}: {count}")

        print("\n✅ Sweep finished\n")
        return result.failed == 0

    except Exception as e:
        print(f"\n❌ Sweep failed: {e}")
        import traceback
        traceback.print_exc()
        return False


if __name__ == "__main__":
    success = run(sys.argv[1] if len(sys.argv) > 1 else "")
    sys.exit(0 if success else 1)
