"""Activity store operations."""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.activities.models import Activity, Lap
from pacelab.classification.schemas import ClassificationResult
from pacelab.strava.schemas import ActivitySchema, LapSchema
from pacelab.sync.schemas import SyncState

logger = logging.getLogger(__name__)

# Runs used for the easy-pace reference
EASY_PACE_MIN_DISTANCE = 5000
EASY_PACE_MAX_DISTANCE = 15000
EASY_PACE_SAMPLE = 100


def _is_outdoor_run():
    return and_(
        or_(Activity.type == "Run", Activity.sport_type == "Run"),
        Activity.trainer.is_(False),
    )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ActivityService:
    """Service for managing activities and laps in the database.

    Methods that take part in a larger unit of work (laps, detail flag,
    run type) only flush; the caller commits. ``upsert_activities`` commits
    once per listing page.
    """

    async def get_activity(
        self, db: AsyncSession, activity_id: int
    ) -> Optional[Activity]:
        """Get activity by ID.

        Parameters
        ----------
        db : AsyncSession
            Database session
        activity_id : int
            Strava activity ID

        Returns
        -------
        Activity | None
            Activity if found, None otherwise
        """
        result = await db.execute(select(Activity).filter(Activity.id == activity_id))
        return result.scalar_one_or_none()

    async def get_activities_by_ids(
        self, db: AsyncSession, activity_ids: Sequence[int]
    ) -> list[Activity]:
        """Activities with the given ids, most recent first."""
        if not activity_ids:
            return []
        result = await db.execute(
            select(Activity)
            .filter(Activity.id.in_(activity_ids))
            .order_by(Activity.start_date_local.desc())
        )
        return list(result.scalars().all())

    def _apply_summary(self, activity: Activity, data: ActivitySchema) -> None:
        # Provider-owned fields only; detail_fetched and run_type stay untouched
        activity.name = data.name
        activity.type = data.type
        activity.sport_type = data.sport_type
        activity.workout_type = data.workout_type
        activity.distance = data.distance
        activity.moving_time = data.moving_time
        activity.elapsed_time = data.elapsed_time
        activity.total_elevation_gain = data.total_elevation_gain
        activity.average_speed = data.average_speed
        activity.max_speed = data.max_speed
        activity.average_heartrate = data.average_heartrate
        activity.max_heartrate = data.max_heartrate
        activity.average_cadence = data.average_cadence
        activity.suffer_score = data.suffer_score
        activity.start_date = data.start_date
        activity.start_date_local = data.start_date_local
        activity.timezone = data.timezone
        activity.trainer = data.trainer
        activity.manual = data.manual
        activity.raw_data = data.model_dump(mode="json")

    async def upsert_activity(
        self, db: AsyncSession, athlete_id: int, data: ActivitySchema
    ) -> tuple[Activity, bool]:
        """Insert or update one activity from its summary payload.

        Parameters
        ----------
        db : AsyncSession
            Database session
        athlete_id : int
            Owner of the activity
        data : ActivitySchema
            Validated summary from the activity listing

        Returns
        -------
        tuple[Activity, bool]
            The stored row and whether it was created
        """
        activity = await self.get_activity(db, data.id)
        created = activity is None

        if created:
            activity = Activity(id=data.id, athlete_id=athlete_id)
            db.add(activity)
        else:
            activity.updated_at = datetime.now(timezone.utc)

        self._apply_summary(activity, data)
        await db.flush()
        return activity, created

    async def upsert_activities(
        self, db: AsyncSession, athlete_id: int, activities: Sequence[ActivitySchema]
    ) -> tuple[int, int]:
        """Upsert one listing page and commit it.

        Returns
        -------
        tuple[int, int]
            Number of created and updated activities
        """
        created = updated = 0
        try:
            for data in activities:
                _, is_new = await self.upsert_activity(db, athlete_id, data)
                if is_new:
                    created += 1
                else:
                    updated += 1
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Stored {len(activities)} activities for athlete {athlete_id}: "
            f"{created} created, {updated} updated"
        )
        return created, updated

    async def get_sync_state(self, db: AsyncSession, athlete_id: int) -> SyncState:
        """Load the sync cursor and the set of stored activity ids."""
        cursor = await db.scalar(
            select(func.max(Activity.start_date)).filter(Activity.athlete_id == athlete_id)
        )
        result = await db.execute(
            select(Activity.id).filter(Activity.athlete_id == athlete_id)
        )
        return SyncState(cursor=_as_utc(cursor), known_ids=set(result.scalars().all()))

    async def get_laps(self, db: AsyncSession, activity_id: int) -> list[Lap]:
        result = await db.execute(
            select(Lap).filter(Lap.activity_id == activity_id).order_by(Lap.lap_index)
        )
        return list(result.scalars().all())

    async def upsert_laps(
        self, db: AsyncSession, activity_id: int, laps: Sequence[LapSchema]
    ) -> int:
        """Store laps keyed by ``(activity_id, lap_index)``.

        ``lap_index`` is the zero-based position in the payload. Laps left over
        from an earlier, longer payload are removed.
        """
        existing = {lap.lap_index: lap for lap in await self.get_laps(db, activity_id)}

        for index, data in enumerate(laps):
            lap = existing.get(index)
            if lap is None:
                lap = Lap(activity_id=activity_id, lap_index=index)
                db.add(lap)
            lap.distance = data.distance
            lap.elapsed_time = data.elapsed_time
            lap.moving_time = data.moving_time
            lap.average_speed = data.average_speed
            lap.max_speed = data.max_speed
            lap.average_heartrate = data.average_heartrate
            lap.max_heartrate = data.max_heartrate
            lap.start_index = data.start_index
            lap.end_index = data.end_index

        if len(existing) > len(laps):
            await db.execute(
                delete(Lap).where(
                    Lap.activity_id == activity_id, Lap.lap_index >= len(laps)
                )
            )

        await db.flush()
        return len(laps)

    async def mark_detail_fetched(self, db: AsyncSession, activity_id: int) -> None:
        activity = await self.get_activity(db, activity_id)
        if activity is None:
            logger.warning(f"Activity {activity_id} not found, cannot mark detail fetched")
            return
        activity.detail_fetched = True
        await db.flush()

    async def get_activities_missing_detail(
        self, db: AsyncSession, athlete_id: int, limit: int
    ) -> list[Activity]:
        """Outdoor runs whose laps and best efforts were never fetched, newest first."""
        result = await db.execute(
            select(Activity)
            .filter(
                Activity.athlete_id == athlete_id,
                _is_outdoor_run(),
                Activity.detail_fetched.is_(False),
            )
            .order_by(Activity.start_date_local.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_missing_detail(self, db: AsyncSession, athlete_id: int) -> int:
        return await db.scalar(
            select(func.count(Activity.id)).filter(
                Activity.athlete_id == athlete_id,
                _is_outdoor_run(),
                Activity.detail_fetched.is_(False),
            )
        )

    async def get_unclassified(
        self, db: AsyncSession, athlete_id: int, limit: int
    ) -> list[Activity]:
        """Outdoor runs with detail but without a run type, newest first."""
        result = await db.execute(
            select(Activity)
            .filter(
                Activity.athlete_id == athlete_id,
                _is_outdoor_run(),
                Activity.detail_fetched.is_(True),
                Activity.run_type.is_(None),
            )
            .order_by(Activity.start_date_local.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def set_run_type(
        self, db: AsyncSession, activity: Activity, result: ClassificationResult
    ) -> None:
        activity.run_type = result.run_type
        activity.run_type_detail = result.run_type_detail
        await db.flush()

    async def get_run_max_heartrates(
        self, db: AsyncSession, athlete_id: int
    ) -> list[float]:
        """Max heart rate of every outdoor run that recorded one."""
        result = await db.execute(
            select(Activity.max_heartrate).filter(
                Activity.athlete_id == athlete_id,
                _is_outdoor_run(),
                Activity.max_heartrate.is_not(None),
            )
        )
        return list(result.scalars().all())

    async def get_recent_run_paces(
        self, db: AsyncSession, athlete_id: int
    ) -> list[float]:
        """Paces (s/km) of the latest outdoor runs between 5 and 15 km."""
        result = await db.execute(
            select(Activity.moving_time, Activity.distance)
            .filter(
                Activity.athlete_id == athlete_id,
                _is_outdoor_run(),
                Activity.distance >= EASY_PACE_MIN_DISTANCE,
                Activity.distance <= EASY_PACE_MAX_DISTANCE,
                Activity.average_speed > 0,
            )
            .order_by(Activity.start_date_local.desc())
            .limit(EASY_PACE_SAMPLE)
        )
        return [moving_time / distance * 1000 for moving_time, distance in result.all()]

    async def get_athlete_activities(
        self,
        db: AsyncSession,
        athlete_id: int,
        limit: int = 30,
        offset: int = 0,
        run_type: Optional[str] = None,
    ) -> list[Activity]:
        """Get activities for a specific athlete.

        Parameters
        ----------
        db : AsyncSession
            Database session
        athlete_id : int
            Athlete ID
        limit : int
            Max number of activities to return
        offset : int
            Number of activities to skip
        run_type : str, optional
            Only activities classified with this run type

        Returns
        -------
        list[Activity]
            Activities, most recent first
        """
        query = select(Activity).filter(Activity.athlete_id == athlete_id)
        if run_type is not None:
            query = query.filter(Activity.run_type == run_type)

        result = await db.execute(
            query.order_by(Activity.start_date.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all())


activity_service = ActivityService()
