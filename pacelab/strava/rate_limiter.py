"""Async rate limiter for Strava API."""

import asyncio
import logging
from typing import Literal, Optional

from pacelab.strava.exceptions import RateLimitExceeded
from pacelab.strava.schemas import RateLimitInfo

logger = logging.getLogger(__name__)

Priority = Literal["low", "medium", "high"]


class AsyncRateLimiter:
    """Tracks Strava's rate budget from response headers.

    Strava rate limits:
    - Overall: 200 requests per 15 minutes, 2,000 per day
    - Read: 100 requests per 15 minutes, 1,000 per day

    An exhausted window is reported as ``RateLimitExceeded`` before the next
    request is sent; callers decide whether that ends their work.
    """

    def __init__(self, priority: Priority = "high"):
        """Initialize rate limiter.

        Parameters
        ----------
        priority : str
            - 'high': No throttling, only stop when a window is exhausted
            - 'medium': Spread requests evenly over the 15-min window
            - 'low': Spread requests evenly over the 24-hour window
        """
        self.priority = priority
        self.current_limits: Optional[RateLimitInfo] = None
        self.read_limits: Optional[RateLimitInfo] = None

    @staticmethod
    def _parse(headers: dict[str, str], prefix: str) -> Optional[RateLimitInfo]:
        usage = headers.get(f"{prefix}-usage")
        limit = headers.get(f"{prefix}-limit")
        if not usage or not limit:
            return None
        try:
            short_usage, long_usage = (int(x) for x in usage.split(","))
            short_limit, long_limit = (int(x) for x in limit.split(","))
        except ValueError:
            logger.warning(f"Unparseable rate limit headers: {usage!r} / {limit!r}")
            return None
        return RateLimitInfo(
            short_usage=short_usage,
            long_usage=long_usage,
            short_limit=short_limit,
            long_limit=long_limit,
        )

    def update_limits(self, headers: dict[str, str]) -> None:
        """Update rate limit info from response headers.

        Parameters
        ----------
        headers : dict
            HTTP response headers from Strava API
        """
        headers_lower = {k.lower(): v for k, v in headers.items()}

        overall = self._parse(headers_lower, "x-ratelimit")
        read = self._parse(headers_lower, "x-readratelimit")

        if overall is None and read is None:
            logger.debug("No rate limit headers found in response")
            return

        if overall is not None:
            self.current_limits = overall
        if read is not None:
            self.read_limits = read
        logger.debug(f"Updated rate limits: overall={overall} read={read}")

    def _tightest(self) -> Optional[RateLimitInfo]:
        known = [lim for lim in (self.current_limits, self.read_limits) if lim]
        if not known:
            return None
        return min(known, key=lambda lim: lim.short_limit - lim.short_usage)

    async def throttle(self) -> None:
        """Called before each request.

        Raises
        ------
        RateLimitExceeded
            When the 15-minute or daily window is already used up
        """
        for limits in (self.current_limits, self.read_limits):
            if limits is not None and limits.exhausted:
                logger.warning(
                    f"Rate limit exhausted: {limits.short_usage}/{limits.short_limit} "
                    f"(15 min), {limits.long_usage}/{limits.long_limit} (daily)"
                )
                raise RateLimitExceeded("Strava rate limit budget exhausted")

        limits = self._tightest()
        if limits is None or self.priority == "high":
            return

        if self.priority == "medium":
            # Spread evenly over 15 minutes
            remaining = limits.short_limit - limits.short_usage
            wait_time = 900 / remaining
            await asyncio.sleep(min(wait_time, 2))
        elif self.priority == "low":
            # Spread evenly over 24 hours
            remaining = limits.long_limit - limits.long_usage
            wait_time = 86400 / remaining
            await asyncio.sleep(min(wait_time, 5))
