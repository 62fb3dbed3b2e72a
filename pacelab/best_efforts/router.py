"""API endpoints for best efforts."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.best_efforts.schemas import (
    BestEffortsResponse,
    PersonalRecordsResponse,
    RankingSource,
)
from pacelab.best_efforts.service import DISTANCE_NAMES, best_effort_service
from pacelab.dependencies import get_session, verify_admin_api_key

router = APIRouter(
    prefix="/best-efforts",
    tags=["best-efforts"],
    dependencies=[Depends(verify_admin_api_key)],
)


@router.get("/{athlete_id}", response_model=BestEffortsResponse)
async def get_best_efforts(
    athlete_id: int,
    distance: str = Query(..., description="Standard distance name, e.g. 5K or HALF"),
    limit: int = Query(10, ge=1, le=100),
    source: RankingSource = Query(
        "best",
        description="best: native and computed merged; strava or computed: one source",
    ),
    db: AsyncSession = Depends(get_session),
):
    """Fastest efforts of an athlete over one distance.

    Parameters
    ----------
    athlete_id : int
        Strava athlete ID
    distance : str
        One of 400M, 800M, 1K, 1MILE, 2MILE, 5K, 10K, 15K, 10MILE, 20K,
        HALF, 30K, MARATHON (case-insensitive)
    limit : int
        Maximum number of entries (default: 10)
    source : str
        Which efforts to rank (default: best)

    Raises
    ------
    HTTPException
        400 for an unknown distance name
    """
    distance_name = distance.upper()
    if distance_name not in DISTANCE_NAMES:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown distance {distance!r}, expected one of {', '.join(DISTANCE_NAMES)}",
        )

    efforts = await best_effort_service.get_ranked(
        db, athlete_id, distance_name, limit=limit, source=source
    )
    return BestEffortsResponse(
        athlete_id=athlete_id, distance_name=distance_name, source=source, efforts=efforts
    )


@router.get("/{athlete_id}/records", response_model=PersonalRecordsResponse)
async def get_personal_records(athlete_id: int, db: AsyncSession = Depends(get_session)):
    """Fastest known effort for every distance the athlete has one for."""
    records = await best_effort_service.get_personal_records(db, athlete_id)
    return PersonalRecordsResponse(athlete_id=athlete_id, records=records)
