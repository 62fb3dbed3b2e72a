"""Best effort persistence and ranking."""

import logging
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.activities.models import Activity
from pacelab.best_efforts.calculator import (
    STRAVA_DISTANCE_NAMES,
    ComputedEffort,
    compute_best_efforts,
    format_duration,
    format_pace,
    merge_best_efforts,
    pace_per_km,
)
from pacelab.best_efforts.models import SOURCE_COMPUTED, SOURCE_STRAVA, BestEffort
from pacelab.best_efforts.schemas import BestEffortEntry, RankingSource
from pacelab.strava.client import AsyncStravaClient
from pacelab.strava.exceptions import StreamUnavailable
from pacelab.strava.schemas import BestEffortSchema

logger = logging.getLogger(__name__)

STRAVA_ACTIVITY_URL = "https://www.strava.com/activities/{activity_id}"

# Every distance name either source can produce, shortest first
DISTANCE_NAMES: tuple[str, ...] = (
    "400M",
    "800M",
    "1K",
    "1MILE",
    "2MILE",
    "5K",
    "10K",
    "15K",
    "10MILE",
    "20K",
    "HALF",
    "30K",
    "MARATHON",
)


class BestEffortService:
    """Stores native and computed best efforts and serves rankings."""

    async def _get_existing(
        self, db: AsyncSession, activity_id: int, source: str
    ) -> dict[str, BestEffort]:
        result = await db.execute(
            select(BestEffort).filter(
                BestEffort.activity_id == activity_id, BestEffort.source == source
            )
        )
        return {effort.distance_name: effort for effort in result.scalars().all()}

    async def upsert_native(
        self, db: AsyncSession, activity_id: int, efforts: Sequence[BestEffortSchema]
    ) -> int:
        """Store Strava-native efforts whose name maps to a standard distance.

        Unmapped names (Strava adds new ones now and then) are ignored. The
        caller commits.

        Returns
        -------
        int
            Number of efforts stored
        """
        existing = await self._get_existing(db, activity_id, SOURCE_STRAVA)
        stored = 0

        for data in efforts:
            distance_name = STRAVA_DISTANCE_NAMES.get(data.name)
            if distance_name is None or data.distance <= 0:
                continue

            effort = existing.get(distance_name)
            if effort is None:
                effort = BestEffort(
                    activity_id=activity_id,
                    distance_name=distance_name,
                    source=SOURCE_STRAVA,
                )
                db.add(effort)
                existing[distance_name] = effort

            effort.distance_meters = data.distance
            effort.elapsed_time = data.elapsed_time
            effort.moving_time = data.moving_time
            effort.pace_per_km = pace_per_km(data.elapsed_time, data.distance)
            effort.start_index = data.start_index
            effort.end_index = data.end_index
            effort.strava_effort_id = data.id
            effort.pr_rank = data.pr_rank
            stored += 1

        await db.flush()
        return stored

    async def upsert_computed(
        self, db: AsyncSession, activity_id: int, efforts: Sequence[ComputedEffort]
    ) -> int:
        existing = await self._get_existing(db, activity_id, SOURCE_COMPUTED)

        for data in efforts:
            effort = existing.get(data.distance_name)
            if effort is None:
                effort = BestEffort(
                    activity_id=activity_id,
                    distance_name=data.distance_name,
                    source=SOURCE_COMPUTED,
                )
                db.add(effort)
                existing[data.distance_name] = effort

            effort.distance_meters = data.distance_meters
            effort.elapsed_time = data.elapsed_time
            effort.pace_per_km = data.pace_per_km
            effort.start_index = data.start_index
            effort.end_index = data.end_index

        await db.flush()
        return len(efforts)

    async def compute_for_activity(
        self,
        db: AsyncSession,
        client: AsyncStravaClient,
        activity_id: int,
        activity_distance: float,
    ) -> int:
        """Search the activity's stream and store the computed efforts.

        A missing or malformed stream is logged and skipped; rate limit and
        auth errors propagate. The caller commits.

        Parameters
        ----------
        db : AsyncSession
            Database session
        client : AsyncStravaClient
            Client authorized for the activity's owner
        activity_id : int
            Strava activity ID
        activity_distance : float
            Total distance in meters, decides which distances are searched

        Returns
        -------
        int
            Number of computed efforts stored
        """
        try:
            stream = await client.get_activity_stream(activity_id)
            efforts = compute_best_efforts(stream.time, stream.distance, activity_distance)
        except (StreamUnavailable, ValueError) as e:
            logger.warning(f"Skipping best effort search for activity {activity_id}: {e}")
            return 0

        if not efforts:
            logger.debug(f"No realistic segments found in activity {activity_id}")
            return 0

        stored = await self.upsert_computed(db, activity_id, efforts)
        logger.info(
            f"Computed {stored} best efforts for activity {activity_id}: "
            + ", ".join(f"{e.distance_name}={format_duration(e.elapsed_time)}" for e in efforts)
        )
        return stored

    async def get_runs_without_efforts(
        self, db: AsyncSession, athlete_id: int, limit: int
    ) -> list[Activity]:
        """Detailed outdoor runs with no best effort from either source, newest first."""
        has_effort = select(BestEffort.id).filter(BestEffort.activity_id == Activity.id)
        result = await db.execute(
            select(Activity)
            .filter(
                Activity.athlete_id == athlete_id,
                or_(Activity.type == "Run", Activity.sport_type == "Run"),
                Activity.trainer.is_(False),
                Activity.detail_fetched.is_(True),
                Activity.distance > 0,
                ~has_effort.exists(),
            )
            .order_by(Activity.start_date_local.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    def _to_entry(self, effort: BestEffort, activity: Activity) -> BestEffortEntry:
        return BestEffortEntry(
            activity_id=activity.id,
            activity_name=activity.name,
            date=activity.start_date_local,
            distance_name=effort.distance_name,
            distance_meters=effort.distance_meters,
            elapsed_time=effort.elapsed_time,
            time_formatted=format_duration(effort.elapsed_time),
            pace_per_km=effort.pace_per_km,
            pace_formatted=format_pace(effort.pace_per_km),
            source=effort.source,
            pr_rank=effort.pr_rank,
            strava_url=STRAVA_ACTIVITY_URL.format(activity_id=activity.id),
        )

    async def get_ranked(
        self,
        db: AsyncSession,
        athlete_id: int,
        distance_name: str,
        limit: int = 10,
        source: RankingSource = "best",
    ) -> list[BestEffortEntry]:
        """Fastest efforts of an athlete over one distance.

        Parameters
        ----------
        db : AsyncSession
            Database session
        athlete_id : int
            Strava athlete ID
        distance_name : str
            Standard distance name, e.g. ``5K``
        limit : int
            Maximum number of entries
        source : str
            ``best`` merges both sources (native wins per activity),
            ``strava`` or ``computed`` restricts to one

        Returns
        -------
        list[BestEffortEntry]
            Sorted by time ascending, ties broken by activity id
        """
        query = (
            select(BestEffort, Activity)
            .join(Activity, BestEffort.activity_id == Activity.id)
            .filter(
                Activity.athlete_id == athlete_id,
                BestEffort.distance_name == distance_name,
            )
        )
        if source != "best":
            query = query.filter(BestEffort.source == source)

        result = await db.execute(query)
        entries = [self._to_entry(effort, activity) for effort, activity in result.all()]

        native = [e for e in entries if e.source == SOURCE_STRAVA]
        computed = [e for e in entries if e.source == SOURCE_COMPUTED]
        return merge_best_efforts(native, computed, limit)

    async def get_personal_records(
        self, db: AsyncSession, athlete_id: int
    ) -> dict[str, BestEffortEntry]:
        records = {}
        for distance_name in DISTANCE_NAMES:
            ranked = await self.get_ranked(db, athlete_id, distance_name, limit=1)
            if ranked:
                records[distance_name] = ranked[0]
        return records


best_effort_service = BestEffortService()
