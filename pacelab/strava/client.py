"""Async Strava API client."""

import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from pacelab.strava.exceptions import (
    AccessUnauthorized,
    ObjectNotFound,
    RateLimitExceeded,
    StravaException,
    StreamUnavailable,
)
from pacelab.strava.rate_limiter import AsyncRateLimiter
from pacelab.strava.schemas import (
    ActivityDetailSchema,
    ActivityPage,
    ActivitySchema,
    ActivityStreamSchema,
    BestEffortSchema,
    LapSchema,
)

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[str]]


class AsyncStravaClient:
    """Async HTTP client for Strava API v3.

    This client handles low-level HTTP requests to Strava's API. The bearer
    token is requested from ``token_provider`` before every call, so a token
    refreshed halfway through a long backfill is picked up transparently.
    """

    BASE_URL = "https://www.strava.com/api/v3"

    def __init__(
        self,
        token_provider: TokenProvider,
        rate_limiter: Optional[AsyncRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Strava API client.

        Parameters
        ----------
        token_provider : callable
            Coroutine function returning a currently valid access token
        rate_limiter : AsyncRateLimiter, optional
            Custom rate limiter. If None, uses default high-priority limiter.
        transport : httpx.AsyncBaseTransport, optional
            Transport override (tests use ``httpx.MockTransport``)
        """
        self.token_provider = token_provider
        self.rate_limiter = rate_limiter or AsyncRateLimiter(priority="high")
        self.transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Make an authenticated request to Strava API.

        Parameters
        ----------
        method : str
            HTTP method
        endpoint : str
            API endpoint (e.g., '/athlete/activities')
        params : dict, optional
            Query parameters

        Returns
        -------
        dict or list
            Parsed JSON response

        Raises
        ------
        ObjectNotFound
            When resource not found (404)
        AccessUnauthorized
            When access is unauthorized (401/403)
        RateLimitExceeded
            When rate limit exceeded (429) or the local budget is used up
        StravaException
            For other API errors
        """
        await self.rate_limiter.throttle()

        url = f"{self.BASE_URL}{endpoint}"
        access_token = await self.token_provider()
        headers = {"Authorization": f"Bearer {access_token}"}

        logger.debug(f"{method} {url} with params {params}")

        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.request(
                    method=method, url=url, params=params, headers=headers, timeout=30.0
                )
            except httpx.HTTPError as e:
                raise StravaException(f"Request to {endpoint} failed: {e}") from e

        self.rate_limiter.update_limits(dict(response.headers))
        self._handle_errors(response)

        if response.status_code == 204:
            return {}

        return response.json()

    def _handle_errors(self, response: httpx.Response) -> None:
        """Map HTTP errors from Strava API to exceptions.

        Raises
        ------
        ObjectNotFound, AccessUnauthorized, RateLimitExceeded, StravaException
        """
        if response.is_success:
            return

        try:
            error_msg = response.json().get("message", response.text)
        except ValueError:
            error_msg = response.text

        if response.status_code == 404:
            raise ObjectNotFound(f"Not found: {error_msg}")
        elif response.status_code in (401, 403):
            raise AccessUnauthorized(f"Unauthorized: {error_msg}")
        elif response.status_code == 429:
            raise RateLimitExceeded(f"Rate limit exceeded: {error_msg}")
        elif 400 <= response.status_code < 500:
            raise StravaException(f"Client error {response.status_code}: {error_msg}")
        else:
            raise StravaException(f"Server error {response.status_code}: {error_msg}")

    # =========================================================================
    # Activity Endpoints
    # =========================================================================

    async def get_activities(
        self,
        after: Optional[int] = None,
        before: Optional[int] = None,
        page: int = 1,
        per_page: int = 200,
    ) -> ActivityPage:
        """List athlete activities.

        Parameters
        ----------
        after : int, optional
            Epoch timestamp; only activities that started after it
        before : int, optional
            Epoch timestamp; only activities that started before it
        page : int
            Page number (default: 1)
        per_page : int
            Number of items per page (default and max: 200)

        Returns
        -------
        ActivityPage
            Validated activities; items that do not parse are skipped
        """
        params: dict[str, Any] = {"page": page, "per_page": min(per_page, 200)}
        if before is not None:
            params["before"] = before
        if after is not None:
            params["after"] = after

        data = await self._request("GET", "/athlete/activities", params=params)
        if not isinstance(data, list):
            raise StravaException("Unexpected activity listing payload")

        activities = []
        skipped = 0
        for item in data:
            try:
                activities.append(ActivitySchema.model_validate(item))
            except ValidationError as e:
                skipped += 1
                logger.warning(
                    f"Skipping unparseable activity {item.get('id') if isinstance(item, dict) else '?'}: "
                    f"{e.error_count()} errors"
                )

        return ActivityPage(activities=activities, size=len(data), skipped=skipped)

    async def get_activity_detail(self, activity_id: int) -> ActivityDetailSchema:
        """Get laps and native best efforts of an activity.

        Parameters
        ----------
        activity_id : int
            The ID of the activity

        Returns
        -------
        ActivityDetailSchema
            Laps in recorded order and best efforts; malformed entries skipped
        """
        data = await self._request("GET", f"/activities/{activity_id}")

        laps: list[LapSchema] = []
        efforts: list[BestEffortSchema] = []
        skipped = 0

        for raw in data.get("laps") or []:
            try:
                laps.append(LapSchema.model_validate(raw))
            except ValidationError:
                skipped += 1

        for raw in data.get("best_efforts") or []:
            try:
                efforts.append(BestEffortSchema.model_validate(raw))
            except ValidationError:
                skipped += 1

        if skipped:
            logger.warning(f"Activity {activity_id}: skipped {skipped} malformed laps/efforts")

        return ActivityDetailSchema(
            activity_id=activity_id, laps=laps, best_efforts=efforts, skipped=skipped
        )

    async def get_activity_stream(self, activity_id: int) -> ActivityStreamSchema:
        """Get the time and distance streams of an activity.

        Raises
        ------
        StreamUnavailable
            When Strava has no stream for the activity or it is malformed
        """
        try:
            data = await self._request(
                "GET",
                f"/activities/{activity_id}/streams",
                params={"keys": "time,distance", "key_by_type": "true"},
            )
        except ObjectNotFound as e:
            raise StreamUnavailable(f"No streams for activity {activity_id}") from e

        if not isinstance(data, dict):
            raise StreamUnavailable(f"Unexpected stream payload for {activity_id}")

        try:
            return ActivityStreamSchema(
                time=data["time"]["data"], distance=data["distance"]["data"]
            )
        except (KeyError, TypeError, ValidationError) as e:
            raise StreamUnavailable(
                f"Malformed stream for activity {activity_id}: {e}"
            ) from e
