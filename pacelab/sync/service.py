"""Synchronization orchestrator.

One sync call walks through the same steps every time:

1. list activity summaries page by page and upsert them (a commit per page)
2. fetch detail (laps, native best efforts) for runs seen for the first time
3. backfill detail for older runs that never got it
4. classify runs, only once the athlete's HR zones are confirmed
5. run post-classification hooks

Every unit commits on its own, so a call cut short by the rate limit leaves a
consistent store and the next call picks up where this one stopped. The same
holds when Strava fails while listing.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Sequence

from loguru import logger as log_context
from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.activities.models import Activity
from pacelab.activities.service import activity_service
from pacelab.best_efforts.service import best_effort_service
from pacelab.classification.schemas import HrZonesSnapshot
from pacelab.classification.service import classification_service
from pacelab.config import get_settings
from pacelab.strava.client import AsyncStravaClient
from pacelab.strava.exceptions import (
    AccessUnauthorized,
    ObjectNotFound,
    RateLimitExceeded,
    StravaException,
)
from pacelab.strava.service import strava_service
from pacelab.sync.schemas import BackfillOutcome, SyncMode, SyncResult, SyncState

logger = logging.getLogger(__name__)

# Called with (db, athlete_id) after a classification pass
PostClassificationHook = Callable[[AsyncSession, int], Awaitable[None]]


class SyncService:
    """Service for syncing activities from Strava and deriving training signals."""

    def __init__(
        self,
        detail_delay: Optional[float] = None,
        backfill_limit: Optional[int] = None,
        classify_batch: Optional[int] = None,
        compute_missing_efforts: Optional[bool] = None,
    ):
        settings = get_settings()
        self.detail_delay = (
            settings.SYNC_DETAIL_DELAY_SECONDS if detail_delay is None else detail_delay
        )
        self.backfill_limit = (
            settings.SYNC_BACKFILL_LIMIT if backfill_limit is None else backfill_limit
        )
        self.classify_batch = (
            settings.SYNC_CLASSIFY_BATCH if classify_batch is None else classify_batch
        )
        self.compute_missing_efforts = (
            settings.SYNC_COMPUTE_MISSING_EFFORTS
            if compute_missing_efforts is None
            else compute_missing_efforts
        )
        self.page_size = settings.SYNC_PAGE_SIZE
        self.initial_days = settings.SYNC_INITIAL_DAYS
        self.full_days = settings.SYNC_FULL_DAYS
        self.hooks: list[PostClassificationHook] = []

    def register_hook(self, hook: PostClassificationHook) -> PostClassificationHook:
        """Register a coroutine to run after classification. Usable as decorator."""
        self.hooks.append(hook)
        return hook

    def window_start(
        self, mode: SyncMode, state: SyncState, days: Optional[int] = None
    ) -> datetime:
        """Lower bound of the listing window.

        Incremental mode starts at the cursor (second precision) or, on a first
        sync, ``SYNC_INITIAL_DAYS`` ago. Full mode covers the last ``days``.
        """
        now = datetime.now(timezone.utc)
        if mode == "full":
            return now - timedelta(days=days or self.full_days)
        if state.cursor is not None:
            return state.cursor.replace(microsecond=0)
        return now - timedelta(days=self.initial_days)

    async def sync(
        self,
        db: AsyncSession,
        athlete_id: int,
        mode: SyncMode = "incremental",
        days: Optional[int] = None,
        client: Optional[AsyncStravaClient] = None,
        state: Optional[SyncState] = None,
    ) -> SyncResult:
        """Sync one athlete.

        Parameters
        ----------
        db : AsyncSession
            Database session
        athlete_id : int
            Strava athlete ID
        mode : str
            ``incremental`` or ``full``
        days : int, optional
            Window for full mode
        client : AsyncStravaClient, optional
            Client to use; built from stored credentials when omitted
        state : SyncState, optional
            Cursor and known ids; loaded from the store when omitted

        Returns
        -------
        SyncResult
            ``completed``, ``rate_limited`` or ``provider_error`` (partial,
            committed) or ``auth_failed`` (``needs_auth`` set)
        """
        sync_id = uuid.uuid4().hex[:12]
        result = SyncResult(athlete_id=athlete_id, mode=mode)

        with log_context.contextualize(sync_id=sync_id, athlete_id=athlete_id):
            try:
                await self._run(db, athlete_id, mode, days, client, state, result)
            except AccessUnauthorized as e:
                await db.rollback()
                logger.warning(f"Sync stopped, athlete {athlete_id} must re-authorize: {e}")
                result.status = "auth_failed"
                result.needs_auth = True
                result.error = str(e)

            logger.info(
                f"Sync {result.status} for athlete {athlete_id}: "
                f"{result.created} created, {result.updated} updated, "
                f"{result.details.processed}/{result.details.requested} new runs detailed, "
                f"{result.backfill.processed}/{result.backfill.requested} backfilled "
                f"({result.remaining_backfill} left), {result.classified} classified"
            )
        return result

    async def _run(
        self,
        db: AsyncSession,
        athlete_id: int,
        mode: SyncMode,
        days: Optional[int],
        client: Optional[AsyncStravaClient],
        state: Optional[SyncState],
        result: SyncResult,
    ) -> None:
        if client is None:
            client = await strava_service.get_client_for_athlete(db, athlete_id)
        if state is None:
            state = await activity_service.get_sync_state(db, athlete_id)

        after = self.window_start(mode, state, days)
        result.window_start = after
        logger.info(
            f"Starting {mode} sync for athlete {athlete_id} from {after.isoformat()} "
            f"({len(state.known_ids)} activities known)"
        )

        # 1. Listing
        new_run_ids: list[int] = []
        try:
            await self._list_activities(db, client, athlete_id, after, state, result, new_run_ids)
        except RateLimitExceeded as e:
            logger.warning(f"Rate limited while listing page {result.pages + 1}: {e}")
            result.status = "rate_limited"
        except AccessUnauthorized:
            raise
        except StravaException as e:
            await db.rollback()
            logger.error(f"Strava failed while listing page {result.pages + 1}: {e}")
            result.status = "provider_error"
            result.error = str(e)
        result.new_runs = len(new_run_ids)

        # 2. Detail for new runs, 3. historical backfill
        if result.status == "completed":
            new_runs = await activity_service.get_activities_by_ids(db, new_run_ids)
            result.details = await self.fetch_details(db, client, new_runs)

        if result.status == "completed" and not result.details.stopped_early:
            pending = await activity_service.get_activities_missing_detail(
                db, athlete_id, limit=self.backfill_limit
            )
            result.backfill = await self.fetch_details(db, client, pending)

        if result.details.stopped_early or result.backfill.stopped_early:
            result.status = "rate_limited"
        result.remaining_backfill = await activity_service.count_missing_detail(db, athlete_id)

        # 4. Classification
        zones = await classification_service.get_hr_zones(db, athlete_id)
        result.hr_zones = zones
        if not zones.confirmed:
            logger.info(
                f"HR zones of athlete {athlete_id} not confirmed, classification deferred"
            )
            result.zones_need_confirmation = True
            return

        result.classified = await self.classify_pending(db, athlete_id, zones, new_run_ids)

        # 5. Hooks
        await self._run_hooks(db, athlete_id)

    async def _list_activities(
        self,
        db: AsyncSession,
        client: AsyncStravaClient,
        athlete_id: int,
        after: datetime,
        state: SyncState,
        result: SyncResult,
        new_run_ids: list[int],
    ) -> None:
        after_timestamp = int(after.timestamp())
        page = 1

        while True:
            activity_page = await client.get_activities(
                after=after_timestamp, page=page, per_page=self.page_size
            )
            result.pages += 1
            result.listed += len(activity_page.activities)
            result.skipped += activity_page.skipped

            if activity_page.activities:
                created, updated = await activity_service.upsert_activities(
                    db, athlete_id, activity_page.activities
                )
                result.created += created
                result.updated += updated

            for activity in activity_page.activities:
                if activity.is_outdoor_run and activity.id not in state.known_ids:
                    new_run_ids.append(activity.id)
                state.known_ids.add(activity.id)

            logger.info(
                f"Fetched {activity_page.size} activities on page {page} "
                f"for athlete {athlete_id}"
            )

            if activity_page.size < self.page_size:
                break
            page += 1

    async def fetch_details(
        self, db: AsyncSession, client: AsyncStravaClient, activities: Sequence[Activity]
    ) -> BackfillOutcome:
        """Fetch laps and best efforts for each activity, one commit per activity.

        Stops at the first rate limit signal. A failure on one activity is
        logged and the loop moves on; auth failures propagate.
        """
        outcome = BackfillOutcome(requested=len(activities))
        # Plain values: a rollback expires the ORM instances
        targets = [(activity.id, activity.distance) for activity in activities]

        for i, (activity_id, distance) in enumerate(targets):
            if i and self.detail_delay:
                await asyncio.sleep(self.detail_delay)

            try:
                await self._process_detail(db, client, activity_id, distance)
            except RateLimitExceeded as e:
                await db.rollback()
                logger.warning(
                    f"Rate limited after {outcome.processed}/{outcome.requested} "
                    f"activities: {e}"
                )
                outcome.stopped_early = True
                break
            except AccessUnauthorized:
                raise
            except ObjectNotFound:
                # Deleted on Strava since it was listed
                await db.rollback()
                logger.warning(f"Activity {activity_id} no longer exists on Strava")
                await activity_service.mark_detail_fetched(db, activity_id)
                await db.commit()
            except StravaException as e:
                await db.rollback()
                logger.error(f"Failed to fetch detail for activity {activity_id}: {e}")
            else:
                outcome.processed += 1

        return outcome

    async def _process_detail(
        self,
        db: AsyncSession,
        client: AsyncStravaClient,
        activity_id: int,
        activity_distance: float,
    ) -> None:
        detail = await client.get_activity_detail(activity_id)
        await activity_service.upsert_laps(db, activity_id, detail.laps)
        native = await best_effort_service.upsert_native(db, activity_id, detail.best_efforts)

        if native == 0 and self.compute_missing_efforts and activity_distance > 0:
            await best_effort_service.compute_for_activity(
                db, client, activity_id, activity_distance
            )

        await activity_service.mark_detail_fetched(db, activity_id)
        await db.commit()

        logger.debug(
            f"Activity {activity_id}: {len(detail.laps)} laps, {native} native best efforts"
        )

    async def classify_pending(
        self,
        db: AsyncSession,
        athlete_id: int,
        zones: HrZonesSnapshot,
        first_ids: Sequence[int] = (),
    ) -> int:
        """Classify unclassified runs with detail, ``first_ids`` before the rest.

        Returns
        -------
        int
            Number of runs classified
        """
        easy_pace = await classification_service.compute_easy_pace_reference(db, athlete_id)

        first = [
            a
            for a in await activity_service.get_activities_by_ids(db, first_ids)
            if a.detail_fetched and a.run_type is None
        ]
        first_set = {a.id for a in first}
        batch = [
            a
            for a in await activity_service.get_unclassified(
                db, athlete_id, limit=self.classify_batch
            )
            if a.id not in first_set
        ]

        classified = 0
        for activity in [*first, *batch]:
            await classification_service.classify_activity(db, activity, zones, easy_pace)
            classified += 1
        await db.commit()

        if classified:
            logger.info(
                f"Classified {classified} runs for athlete {athlete_id} "
                f"(easy pace reference {easy_pace:.0f} s/km)"
            )
        return classified

    async def _run_hooks(self, db: AsyncSession, athlete_id: int) -> None:
        for hook in self.hooks:
            try:
                await hook(db, athlete_id)
            except Exception:
                logger.exception(
                    f"Post-classification hook {getattr(hook, '__name__', hook)!r} failed"
                )


sync_service = SyncService()
