"""
Seed Teams Script

Inserts (or refreshes) the 30 NBA teams. With --link, also pulls the
team list from the schedule API to link/verify external team ids.

Usage:
    python scripts/seed_teams.py
    python scripts/seed_teams.py --link
"""

import os
import sys
import asyncio
import argparse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from highlights.core.logging import setup_logging
from highlights.db import close_db, init_db
from highlights.db.seeds import seed_teams
from highlights.services.schedule_sync import ScheduleSyncService


async def main(link: bool):
    setup_logging()
    print("[SEED] Seeding NBA teams...")

    try:
        await init_db()
        counts = await seed_teams()
        print(f"  [OK] created={counts['created']} updated={counts['updated']}")

        if link:
            print("[SEED] Linking external ids from the schedule API...")
            linked = await ScheduleSyncService().sync_teams()
            print(f"  [OK] {linked} upstream teams processed")
    finally:
        await close_db()

    print("\n[DONE] Teams seeded.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed NBA teams")
    parser.add_argument("--link", action="store_true", help="Link external ids from the schedule API")
    args = parser.parse_args()
    asyncio.run(main(args.link))
