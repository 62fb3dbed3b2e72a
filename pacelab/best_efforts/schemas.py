"""Pydantic schemas for best effort API responses."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

EffortSource = Literal["strava", "computed"]
RankingSource = Literal["best", "strava", "computed"]


class BestEffortEntry(BaseModel):
    """One ranked effort over a standard distance.

    Attributes
    ----------
    activity_id : int
        Strava activity ID
    activity_name : str
        Activity title
    date : datetime
        Local start time of the activity
    distance_name : str
        Standard distance name (``5K``, ``HALF``, ...)
    distance_meters : float
        Distance the time refers to
    elapsed_time : int
        Time in seconds
    time_formatted : str
        ``h:mm:ss`` or ``m:ss``
    pace_per_km : float
        Seconds per km
    pace_formatted : str
        ``m:ss/km``
    source : str
        ``strava`` for provider-native, ``computed`` for stream search
    pr_rank : int | None
        Strava's PR rank at upload time (native only)
    strava_url : str
        Link to the activity on Strava
    """

    activity_id: int
    activity_name: str
    date: datetime
    distance_name: str
    distance_meters: float
    elapsed_time: int
    time_formatted: str
    pace_per_km: float
    pace_formatted: str
    source: EffortSource
    pr_rank: Optional[int] = None
    strava_url: str

    model_config = ConfigDict(from_attributes=True)


class BestEffortsResponse(BaseModel):
    athlete_id: int
    distance_name: str
    source: RankingSource
    efforts: list[BestEffortEntry]


class PersonalRecordsResponse(BaseModel):
    """Fastest effort per distance; distances without any effort are omitted."""

    athlete_id: int
    records: dict[str, BestEffortEntry]
