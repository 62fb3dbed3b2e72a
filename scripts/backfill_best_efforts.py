#!/usr/bin/env python3
"""
Compute best efforts from raw streams for runs that have none.

Strava only returns native best efforts for some activities (and none for
runs recorded before a device supported them). This script searches the
time/distance stream of every detailed outdoor run without any best effort
and stores the computed ones.

Usage:
    python scripts/backfill_best_efforts.py
    python scripts/backfill_best_efforts.py --athlete-id 12345 --limit 50

Features:
- One commit per activity, so it can be interrupted and restarted
- Stops an athlete cleanly when the Strava rate limit is reached
- Uses MEDIUM priority rate limiting (spreads over 15min window)
"""
import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pacelab.auth.service import auth_service
from pacelab.best_efforts.service import best_effort_service
from pacelab.config import get_settings
from pacelab.core.database import create_session_maker
from pacelab.strava.exceptions import AccessUnauthorized, RateLimitExceeded, StravaException
from pacelab.strava.service import strava_service

logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
    level="INFO",
)

settings = get_settings()
engine, async_session_maker = create_session_maker(settings.DATABASE_URL)


async def backfill_athlete(athlete_id: int, limit: int) -> tuple[int, int]:
    """Backfill one athlete; returns (activities processed, efforts stored)."""
    async with async_session_maker() as db:
        runs = await best_effort_service.get_runs_without_efforts(db, athlete_id, limit)
        if not runs:
            logger.info(f"Athlete {athlete_id}: nothing to backfill")
            return 0, 0

        client = await strava_service.get_client_for_athlete(db, athlete_id, priority="medium")
        targets = [(run.id, run.name, run.distance) for run in runs]
        total = len(targets)
        processed = stored = 0

        for i, (activity_id, name, distance) in enumerate(targets, 1):
            logger.info(f"[{i}/{total}] Activity {activity_id} ({name}, {distance / 1000:.1f}km)")
            try:
                count = await best_effort_service.compute_for_activity(
                    db, client, activity_id, distance
                )
                await db.commit()
            except RateLimitExceeded:
                await db.rollback()
                logger.warning(f"Rate limit reached after {processed}/{total} activities")
                break
            except AccessUnauthorized:
                await db.rollback()
                raise
            except StravaException as e:
                await db.rollback()
                logger.error(f"✗ Activity {activity_id}: {e}")
                continue

            processed += 1
            stored += count
            if count:
                logger.success(f"✓ Stored {count} computed best efforts")

        return processed, stored


async def main() -> int:
    """Main entry point for the backfill script."""
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0].strip())
    parser.add_argument("--athlete-id", type=int, help="only this athlete (default: all authorized)")
    parser.add_argument("--limit", type=int, default=100, help="max activities per athlete (default: 100)")
    args = parser.parse_args()

    try:
        if args.athlete_id:
            athlete_ids = [args.athlete_id]
        else:
            async with async_session_maker() as db:
                athlete_ids = [a.id for a in await auth_service.list_authorized_athletes(db)]

        logger.info(f"Best effort backfill for {len(athlete_ids)} athletes")
        logger.info("=" * 60)

        failures = 0
        for athlete_id in athlete_ids:
            try:
                processed, stored = await backfill_athlete(athlete_id, args.limit)
            except AccessUnauthorized as e:
                logger.error(f"Athlete {athlete_id} needs to re-authorize: {e}")
                failures += 1
                continue
            logger.info(f"Athlete {athlete_id}: {processed} activities, {stored} efforts stored")

        return 0 if failures == 0 else 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
