"""Pydantic schemas for run classification and HR zones."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

RunType = Literal[
    "easy",
    "tempo",
    "threshold",
    "intervals",
    "fartlek",
    "long_run",
    "recovery",
    "progression",
    "race",
    "unknown",
]
Confidence = Literal["low", "medium", "high"]
ZoneSource = Literal["lactate_test", "estimated", "manual"]


class HrZonesSnapshot(BaseModel):
    """Heart-rate thresholds as the classifier sees them."""

    lt1: int
    lt2: int
    max_hr: int
    source: ZoneSource
    confirmed: bool

    model_config = ConfigDict(from_attributes=True, frozen=True)


class RunSummary(BaseModel):
    """Summary metrics of one activity, classifier input."""

    id: int
    distance: float  # meters
    moving_time: int  # seconds
    average_speed: Optional[float] = None
    average_heartrate: Optional[float] = None
    workout_type: Optional[int] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class LapSplit(BaseModel):
    """One lap, classifier input."""

    lap_index: int
    distance: float
    moving_time: int
    elapsed_time: int = 0
    average_heartrate: Optional[float] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class ClassificationResult(BaseModel):
    """Run type, optional detail (e.g. ``6x1km``) and confidence."""

    run_type: RunType
    run_type_detail: Optional[str] = None
    confidence: Confidence

    model_config = ConfigDict(frozen=True)


class ZoneBound(BaseModel):
    zone: int
    label: str
    min_bpm: Optional[int] = None
    max_bpm: Optional[int] = None


class HrZonesUpdate(BaseModel):
    """Request body for setting HR zones; saving always confirms them."""

    lt1: int = Field(..., gt=0, lt=250, description="Aerobic threshold (LT1) heart rate")
    lt2: int = Field(..., gt=0, lt=250, description="Anaerobic threshold (LT2) heart rate")
    max_hr: int = Field(..., gt=0, lt=250, description="Maximum heart rate")
    source: ZoneSource = "manual"

    @model_validator(mode="after")
    def _ordered(self) -> "HrZonesUpdate":
        if not self.lt1 < self.lt2 <= self.max_hr:
            raise ValueError("expected lt1 < lt2 <= max_hr")
        return self


class HrZonesResponse(HrZonesSnapshot):
    zones: list[ZoneBound]
