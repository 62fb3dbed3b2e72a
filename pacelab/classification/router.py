"""API endpoints for HR zones."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.classification.schemas import HrZonesResponse, HrZonesSnapshot, HrZonesUpdate
from pacelab.classification.service import classification_service
from pacelab.classification.zones import zone_bounds
from pacelab.dependencies import get_session, verify_admin_api_key

router = APIRouter(
    prefix="/hr-zones",
    tags=["hr-zones"],
    dependencies=[Depends(verify_admin_api_key)],
)


def _response(zones: HrZonesSnapshot) -> HrZonesResponse:
    return HrZonesResponse(**zones.model_dump(), zones=zone_bounds(zones))


@router.get("/{athlete_id}", response_model=HrZonesResponse)
async def get_hr_zones(athlete_id: int, db: AsyncSession = Depends(get_session)):
    """Current HR zones; estimated (unconfirmed) until set through PUT."""
    zones = await classification_service.get_hr_zones(db, athlete_id)
    return _response(zones)


@router.put("/{athlete_id}", response_model=HrZonesResponse)
async def set_hr_zones(
    athlete_id: int,
    update: HrZonesUpdate,
    db: AsyncSession = Depends(get_session),
):
    """Save and confirm HR zones.

    Runs are only classified once zones are confirmed; the next sync
    classifies the backlog.

    Parameters
    ----------
    athlete_id : int
        Strava athlete ID
    update : HrZonesUpdate
        Thresholds, ``lt1 < lt2 <= max_hr``
    """
    zones = await classification_service.set_hr_zones(db, athlete_id, update)
    return _response(zones)
