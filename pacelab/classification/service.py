"""HR zone storage and run classification against the store."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.activities.models import Activity
from pacelab.activities.service import activity_service
from pacelab.classification.classifier import classify_run
from pacelab.classification.models import HrZones
from pacelab.classification.schemas import (
    ClassificationResult,
    HrZonesSnapshot,
    HrZonesUpdate,
    LapSplit,
    RunSummary,
)
from pacelab.classification.zones import easy_pace_reference, estimate_hr_zones

logger = logging.getLogger(__name__)


class ClassificationService:
    """Keeps HR zones per athlete and writes run types to activities."""

    async def _get_row(self, db: AsyncSession, athlete_id: int) -> HrZones | None:
        result = await db.execute(select(HrZones).filter(HrZones.athlete_id == athlete_id))
        return result.scalar_one_or_none()

    async def get_hr_zones(self, db: AsyncSession, athlete_id: int) -> HrZonesSnapshot:
        """Current zones, estimated and stored unconfirmed on first access.

        Parameters
        ----------
        db : AsyncSession
            Database session
        athlete_id : int
            Strava athlete ID

        Returns
        -------
        HrZonesSnapshot
            Stored zones, or a fresh estimate from the athlete's run max HRs
        """
        row = await self._get_row(db, athlete_id)
        if row is not None:
            return HrZonesSnapshot.model_validate(row)

        max_heart_rates = await activity_service.get_run_max_heartrates(db, athlete_id)
        estimate = estimate_hr_zones(max_heart_rates)

        db.add(HrZones(athlete_id=athlete_id, **estimate.model_dump()))
        await db.commit()

        logger.info(
            f"Estimated HR zones for athlete {athlete_id} from {len(max_heart_rates)} runs: "
            f"lt1={estimate.lt1} lt2={estimate.lt2} max={estimate.max_hr} (unconfirmed)"
        )
        return estimate

    async def set_hr_zones(
        self, db: AsyncSession, athlete_id: int, update: HrZonesUpdate
    ) -> HrZonesSnapshot:
        """Replace the athlete's zones wholesale; saved zones are confirmed."""
        row = await self._get_row(db, athlete_id)
        if row is None:
            row = HrZones(athlete_id=athlete_id)
            db.add(row)

        row.lt1 = update.lt1
        row.lt2 = update.lt2
        row.max_hr = update.max_hr
        row.source = update.source
        row.confirmed = True
        row.updated_at = datetime.now(timezone.utc)

        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"HR zones confirmed for athlete {athlete_id}: "
            f"lt1={update.lt1} lt2={update.lt2} max={update.max_hr} ({update.source})"
        )
        return HrZonesSnapshot.model_validate(row)

    async def compute_easy_pace_reference(self, db: AsyncSession, athlete_id: int) -> float:
        paces = await activity_service.get_recent_run_paces(db, athlete_id)
        return easy_pace_reference(paces)

    async def classify_activity(
        self,
        db: AsyncSession,
        activity: Activity,
        hr_zones: HrZonesSnapshot,
        easy_pace: float,
    ) -> ClassificationResult:
        """Classify one stored activity from its laps and write the result.

        The caller commits.
        """
        laps = await activity_service.get_laps(db, activity.id)
        result = classify_run(
            RunSummary.model_validate(activity),
            [LapSplit.model_validate(lap) for lap in laps],
            hr_zones,
            easy_pace,
        )
        await activity_service.set_run_type(db, activity, result)

        logger.debug(
            f"Activity {activity.id} classified {result.run_type}"
            f"{f' ({result.run_type_detail})' if result.run_type_detail else ''}, "
            f"{result.confidence} confidence"
        )
        return result


classification_service = ClassificationService()
