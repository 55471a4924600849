#!/usr/bin/env python
r"""
Refresh one day's flight arrivals from the flight API.

- Replaces the stored arrivals for the date (defaults to today).
- Usable from cron or by hand:
    python scripts/sync_flights.py
    python scripts/sync_flights.py 2024-05-15
"""

import os
import sys
from datetime import datetime

# Ensure the project root (where app.py lives) is on sys.path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.append(ROOT)

from app import app, local_today  # noqa: E402
from services.errors import SyncError  # noqa: E402
from services.flight_sync import sync_flights  # noqa: E402


# --- CLI entrypoint -----------------------------------------------------------


def main(argv: list[str]) -> int:
    if len(argv) > 2:
        print("Usage: python scripts/sync_flights.py [YYYY-MM-DD]")
        return 1

    if len(argv) == 2:
        try:
            target_date = datetime.strptime(argv[1], "%Y-%m-%d").date()
        except ValueError:
            print(f"[ERROR] Invalid date {argv[1]!r}; expected YYYY-MM-DD")
            return 1
    else:
        target_date = local_today()

    with app.app_context():
        try:
            result = sync_flights(target_date)
        except SyncError as e:
            print(f"[ERROR] Sync failed at stage '{e.stage}': {e.message}")
            return 2

    print(
        f"Sync complete. Date={result.date}, inserted={result.inserted_count}, "
        f"replaced={result.deleted_count}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
