import asyncio
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from stravalib import Client

from pacelab.auth.models import Athlete
from pacelab.config import get_settings
from pacelab.strava.exceptions import AccessUnauthorized, TokenExpired

logger = logging.getLogger(__name__)

settings = get_settings()


class AuthService:
    """Stored Strava credentials and token refresh.

    Refreshes are serialized per athlete: while one is in flight, every other
    caller awaits the same task instead of hitting the token endpoint again.
    """

    def __init__(self):
        self.client_id = settings.STRAVA_CLIENT_ID
        self.client_secret = settings.STRAVA_CLIENT_SECRET
        self._refreshing: dict[int, asyncio.Task] = {}

    async def get_athlete(self, db: AsyncSession, athlete_id: int) -> Optional[Athlete]:
        result = await db.execute(select(Athlete).filter(Athlete.id == athlete_id))
        return result.scalar_one_or_none()

    async def list_authorized_athletes(self, db: AsyncSession) -> list[Athlete]:
        result = await db.execute(select(Athlete).filter(Athlete.authorized))
        return list(result.scalars().all())

    async def update_tokens(
        self,
        db: AsyncSession,
        athlete: Athlete,
        access_token: str,
        refresh_token: str,
        expires_at: int,
    ) -> Athlete:
        try:
            athlete.access_token = access_token
            athlete.refresh_token = refresh_token
            athlete.token_expires_at = expires_at
            await db.commit()
            await db.refresh(athlete)
            return athlete
        except Exception:
            await db.rollback()
            raise

    async def _request_refresh(self, refresh_token: str) -> dict[str, Any]:
        client = Client()
        try:
            # stravalib is synchronous; keep the event loop free
            token_response = await asyncio.to_thread(
                client.refresh_access_token,
                client_id=self.client_id,
                client_secret=self.client_secret,
                refresh_token=refresh_token,
            )
        except Exception as e:
            raise TokenExpired(
                "Failed to refresh Strava token, re-authorization required"
            ) from e
        return dict(token_response)

    async def shared_refresh(self, athlete_id: int, refresh_token: str) -> dict[str, Any]:
        """Refresh the athlete's token, joining an in-flight refresh if any."""
        task = self._refreshing.get(athlete_id)
        if task is None:
            logger.info(f"Refreshing Strava token for athlete {athlete_id}")
            task = asyncio.create_task(self._request_refresh(refresh_token))
            self._refreshing[athlete_id] = task
            task.add_done_callback(lambda _: self._refreshing.pop(athlete_id, None))
        else:
            logger.debug(f"Joining in-flight token refresh for athlete {athlete_id}")
        # A cancelled caller must not cancel the refresh other callers share
        return await asyncio.shield(task)

    async def refresh_token_if_needed(self, db: AsyncSession, athlete: Athlete) -> Athlete:
        if not athlete.is_token_expired():
            return athlete

        token_response = await self.shared_refresh(athlete.id, athlete.refresh_token)
        return await self.update_tokens(
            db=db,
            athlete=athlete,
            access_token=token_response["access_token"],
            refresh_token=token_response["refresh_token"],
            expires_at=token_response["expires_at"],
        )

    async def get_access_token(self, db: AsyncSession, athlete_id: int) -> str:
        """Return a valid bearer token for the athlete, refreshing on demand.

        Raises
        ------
        AccessUnauthorized
            If the athlete never authorized (or revoked) access
        TokenExpired
            If the refresh token was rejected
        """
        athlete = await self.get_athlete(db, athlete_id)
        if athlete is None or not athlete.authorized:
            raise AccessUnauthorized(f"Athlete {athlete_id} has not authorized access")

        athlete = await self.refresh_token_if_needed(db, athlete)
        return athlete.access_token


auth_service = AuthService()
