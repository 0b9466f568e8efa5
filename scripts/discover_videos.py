"""
Video Discovery Script

Finds highlight videos for finished games that don't have one yet.
Each game costs ~105 YouTube quota units.

Usage:
    python scripts/discover_videos.py [limit]
"""

import os
import sys
import asyncio
import argparse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from highlights.core.logging import setup_logging
from highlights.db import close_db, init_db
from highlights.jobs.pipeline import get_pipeline


async def main(limit: int):
    setup_logging()
    print("[DISCOVER] Discovering highlight videos...\n")

    pipeline = get_pipeline()
    try:
        await init_db()
        results = await pipeline.video_discovery.discover_videos_for_finished_games(limit)
        state = await pipeline.quota_manager.get_state()
    finally:
        await close_db()

    failed = [r for r in results if not r.success]
    print("\n[DONE] Discovery complete!")
    print(f"   Videos found: {len(results) - len(failed)}/{len(results)}")
    print(f"   Quota used today: {state.used}/{state.limit}")

    if failed:
        print("\n   Failed games:")
        for r in failed:
            print(f"   - Game {r.game_id}: {r.error}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Discover highlight videos")
    parser.add_argument("limit", nargs="?", type=int, default=10)
    args = parser.parse_args()
    asyncio.run(main(args.limit))
