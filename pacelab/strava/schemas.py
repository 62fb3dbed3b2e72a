"""Pydantic schemas for Strava API responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ActivitySchema(BaseModel):
    """Summary activity as returned by ``/athlete/activities``."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""
    type: str
    sport_type: Optional[str] = None
    distance: float = 0.0
    moving_time: int = 0
    elapsed_time: int = 0
    total_elevation_gain: float = 0.0
    start_date: datetime
    start_date_local: datetime
    timezone: Optional[str] = None
    athlete: dict[str, Any] = Field(default_factory=dict)
    average_speed: Optional[float] = None
    max_speed: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    average_cadence: Optional[float] = None
    suffer_score: Optional[float] = None
    workout_type: Optional[int] = None  # 0=default, 1=race, 2=long run, 3=workout
    trainer: bool = False
    manual: bool = False

    @property
    def is_run(self) -> bool:
        return self.type == "Run" or self.sport_type == "Run"

    @property
    def is_outdoor_run(self) -> bool:
        return self.is_run and not self.trainer


class ActivityPage(BaseModel):
    """One page of the activity listing.

    ``size`` is the raw number of items Strava returned, which is what decides
    whether another page exists; ``skipped`` counts items that failed
    validation.
    """

    activities: list[ActivitySchema]
    size: int
    skipped: int = 0


class LapSchema(BaseModel):
    """Lap from the detailed activity payload."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    lap_index: Optional[int] = None  # 1-based on Strava's side
    distance: float
    elapsed_time: int
    moving_time: int
    average_speed: Optional[float] = None
    max_speed: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    start_index: Optional[int] = None
    end_index: Optional[int] = None


class BestEffortSchema(BaseModel):
    """Strava-native best effort from the detailed activity payload."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    distance: float
    elapsed_time: int
    moving_time: Optional[int] = None
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    pr_rank: Optional[int] = None


class ActivityDetailSchema(BaseModel):
    """Laps and native best efforts of one activity."""

    activity_id: int
    laps: list[LapSchema] = Field(default_factory=list)
    best_efforts: list[BestEffortSchema] = Field(default_factory=list)
    skipped: int = 0


class ActivityStreamSchema(BaseModel):
    """Per-sample elapsed time (s) and cumulative distance (m)."""

    time: list[float]
    distance: list[float]

    @model_validator(mode="after")
    def _check_parallel(self) -> "ActivityStreamSchema":
        if len(self.time) != len(self.distance):
            raise ValueError("time and distance streams differ in length")
        if not self.time:
            raise ValueError("empty stream")
        return self


class RateLimitInfo(BaseModel):
    """Rate limit information from response headers."""

    short_usage: int  # 15-minute usage
    long_usage: int  # Daily usage
    short_limit: int  # 15-minute limit
    long_limit: int  # Daily limit

    @property
    def exhausted(self) -> bool:
        return (
            self.short_usage >= self.short_limit or self.long_usage >= self.long_limit
        )
