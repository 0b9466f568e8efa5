"""
Season Backfill Script

Syncs a long date range (typically a full season) month by month.
Rate limiting is handled by the schedule client: 1s between pages and
exponential backoff on HTTP 429.

Usage:
    python scripts/backfill_season.py 2024-10-22 2025-06-30
"""

import os
import sys
import asyncio
import argparse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from highlights.core.logging import setup_logging
from highlights.db import close_db, init_db
from highlights.services.schedule_sync import ScheduleSyncService


async def main(start: str, end: str):
    setup_logging()
    print(f"[BACKFILL] Backfilling schedule from {start} to {end} (month by month)")

    try:
        await init_db()
        result = await ScheduleSyncService().backfill(start, end)
    finally:
        await close_db()

    print("\n[DONE] Backfill complete!")
    print(f"   Games added:   {result.games_added}")
    print(f"   Games updated: {result.games_updated}")
    print(f"   Errors:        {len(result.errors)}")
    for error in result.errors[:20]:
        print(f"   - {error}")

    if result.errors:
        sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill the NBA schedule")
    parser.add_argument("start", help="Start date (YYYY-MM-DD)")
    parser.add_argument("end", help="End date (YYYY-MM-DD)")
    args = parser.parse_args()
    asyncio.run(main(args.start, args.end))
