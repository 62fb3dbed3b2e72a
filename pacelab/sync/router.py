"""API routes for syncing activities."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.dependencies import get_session, verify_admin_api_key
from pacelab.sync.schemas import SyncRequest, SyncResult
from pacelab.sync.service import sync_service

router = APIRouter(
    prefix="/sync",
    tags=["sync"],
    dependencies=[Depends(verify_admin_api_key)],
)


@router.post("/{athlete_id}", response_model=SyncResult)
async def sync_athlete(
    athlete_id: int,
    request: Optional[SyncRequest] = None,
    db: AsyncSession = Depends(get_session),
):
    """Sync an athlete's activities and derive best efforts and run types.

    Safe to call repeatedly: a ``rate_limited`` result is partial but
    committed, and the next call continues from there. An ``auth_failed``
    result means the athlete has to authorize again.

    Parameters
    ----------
    athlete_id : int
        Strava athlete ID
    request : SyncRequest, optional
        Mode and window; defaults to an incremental sync
    db : AsyncSession
        Database session (injected)

    Returns
    -------
    SyncResult
        Counts per step and the final status
    """
    request = request or SyncRequest()
    return await sync_service.sync(
        db=db, athlete_id=athlete_id, mode=request.mode, days=request.days
    )
