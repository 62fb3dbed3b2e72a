"""Pydantic schemas for the synchronization orchestrator."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from pacelab.classification.schemas import HrZonesSnapshot

SyncMode = Literal["incremental", "full"]
SyncStatus = Literal["completed", "rate_limited", "auth_failed", "provider_error"]


class SyncState(BaseModel):
    """What the store already knows about an athlete.

    Attributes
    ----------
    cursor : datetime | None
        Start time of the most recent stored activity
    known_ids : set[int]
        Every stored activity id of the athlete
    """

    cursor: Optional[datetime] = None
    known_ids: set[int] = Field(default_factory=set)


class BackfillOutcome(BaseModel):
    """Result of one detail loop (new runs or historical backfill)."""

    requested: int = 0
    processed: int = 0
    stopped_early: bool = False


class SyncRequest(BaseModel):
    """Request model for syncing activities."""

    mode: SyncMode = Field(
        "incremental",
        description="incremental: since the newest stored activity; full: a fixed window",
    )
    days: Optional[int] = Field(
        None,
        gt=0,
        le=3650,
        description="Window for full mode. Defaults to SYNC_FULL_DAYS.",
        examples=[30],
    )


class SyncResult(BaseModel):
    """Summary of one sync call.

    ``rate_limited`` is a partial, retryable outcome: everything counted here
    was committed. ``provider_error`` is the same when Strava fails some
    other way while listing. ``auth_failed`` means the athlete has to
    authorize again.
    """

    athlete_id: int
    status: SyncStatus = "completed"
    mode: SyncMode = "incremental"
    window_start: Optional[datetime] = None

    pages: int = 0
    listed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    new_runs: int = 0

    details: BackfillOutcome = Field(default_factory=BackfillOutcome)
    backfill: BackfillOutcome = Field(default_factory=BackfillOutcome)
    remaining_backfill: int = 0  # runs still waiting for detail

    classified: int = 0
    zones_need_confirmation: bool = False
    hr_zones: Optional[HrZonesSnapshot] = None

    needs_auth: bool = False
    error: Optional[str] = None
