"""Activity endpoints for querying stored activities."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.activities.service import activity_service
from pacelab.classification.schemas import RunType
from pacelab.dependencies import get_session, verify_admin_api_key

router = APIRouter(
    prefix="/activities",
    tags=["activities"],
    dependencies=[Depends(verify_admin_api_key)],
)


class ActivityResponse(BaseModel):
    """Activity response schema."""

    id: int
    athlete_id: int
    name: str
    type: str
    sport_type: Optional[str] = None
    workout_type: Optional[int] = None
    distance: float
    moving_time: int
    elapsed_time: int
    total_elevation_gain: float
    average_speed: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    start_date: datetime
    start_date_local: datetime
    trainer: bool
    detail_fetched: bool
    run_type: Optional[str] = None
    run_type_detail: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LapResponse(BaseModel):
    lap_index: int
    distance: float
    elapsed_time: int
    moving_time: int
    average_speed: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class ActivityDetailResponse(ActivityResponse):
    laps: list[LapResponse]


@router.get("/athlete/{athlete_id}", response_model=list[ActivityResponse])
async def get_athlete_activities(
    athlete_id: int,
    limit: int = Query(30, ge=1, le=200),
    offset: int = Query(0, ge=0),
    run_type: Optional[RunType] = None,
    db: AsyncSession = Depends(get_session),
):
    """Get activities for a specific athlete.

    Parameters
    ----------
    athlete_id : int
        Strava athlete ID
    limit : int
        Maximum number of activities to return (default: 30)
    offset : int
        Number of activities to skip (default: 0)
    run_type : str, optional
        Only return runs classified with this type
    """
    return await activity_service.get_athlete_activities(
        db, athlete_id=athlete_id, limit=limit, offset=offset, run_type=run_type
    )


@router.get("/{activity_id}", response_model=ActivityDetailResponse)
async def get_activity(activity_id: int, db: AsyncSession = Depends(get_session)):
    """Get a specific activity with its laps.

    Parameters
    ----------
    activity_id : int
        Strava activity ID
    """
    activity = await activity_service.get_activity(db, activity_id)
    if not activity:
        raise HTTPException(status_code=404, detail="Activity not found")

    laps = await activity_service.get_laps(db, activity_id)
    return ActivityDetailResponse(
        **ActivityResponse.model_validate(activity).model_dump(),
        laps=[LapResponse.model_validate(lap) for lap in laps],
    )
