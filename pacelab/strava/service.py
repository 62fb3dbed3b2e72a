"""Strava service layer for managing athlete clients."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from pacelab.auth.service import auth_service
from pacelab.config import get_settings
from pacelab.strava.client import AsyncStravaClient
from pacelab.strava.exceptions import AccessUnauthorized
from pacelab.strava.rate_limiter import AsyncRateLimiter, Priority

logger = logging.getLogger(__name__)


class StravaService:
    """Service layer for Strava API operations.

    Hands out clients whose token provider goes through ``auth_service`` so
    refreshes stay serialized.
    """

    async def get_client_for_athlete(
        self,
        db: AsyncSession,
        athlete_id: int,
        priority: Optional[Priority] = None,
    ) -> AsyncStravaClient:
        """Get an authenticated Strava client for a specific athlete.

        Parameters
        ----------
        db : AsyncSession
            Database session, also used for token refreshes during the
            client's lifetime
        athlete_id : int
            Strava athlete ID
        priority : str, optional
            Rate limiter priority ('high', 'medium', 'low'); defaults to
            ``STRAVA_RATE_LIMIT_PRIORITY``

        Returns
        -------
        AsyncStravaClient
            Authenticated client for the athlete

        Raises
        ------
        AccessUnauthorized
            If the athlete is unknown or not authorized
        TokenExpired
            If token is expired and cannot be refreshed
        """
        athlete = await auth_service.get_athlete(db, athlete_id)
        if athlete is None or not athlete.authorized:
            raise AccessUnauthorized(f"Athlete {athlete_id} has not authorized access")

        # Fail early on a dead refresh token rather than on the first request
        await auth_service.get_access_token(db, athlete_id)

        async def token_provider() -> str:
            return await auth_service.get_access_token(db, athlete_id)

        rate_limiter = AsyncRateLimiter(
            priority=priority or get_settings().STRAVA_RATE_LIMIT_PRIORITY
        )
        return AsyncStravaClient(token_provider=token_provider, rate_limiter=rate_limiter)


strava_service = StravaService()
