"""Tests for the async Strava client and its rate limiter."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from pacelab.strava.client import AsyncStravaClient
from pacelab.strava.exceptions import (
    AccessUnauthorized,
    ObjectNotFound,
    RateLimitExceeded,
    StravaException,
    StreamUnavailable,
)
from pacelab.strava.rate_limiter import AsyncRateLimiter
from tests.factories import make_activity_payload

RATE_HEADERS = {
    "X-RateLimit-Limit": "200,2000",
    "X-RateLimit-Usage": "10,100",
    "X-ReadRateLimit-Limit": "100,1000",
    "X-ReadRateLimit-Usage": "5,50",
}


async def token_provider() -> str:
    return "access-token"


def make_client(handler, rate_limiter=None) -> AsyncStravaClient:
    return AsyncStravaClient(
        token_provider=token_provider,
        rate_limiter=rate_limiter,
        transport=httpx.MockTransport(handler),
    )


class TestListing:
    async def test_parses_page_and_skips_invalid_items(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json=[make_activity_payload(1), {"id": 2, "name": "broken"}],
                headers=RATE_HEADERS,
            )

        client = make_client(handler)

        page = await client.get_activities(after=1700000000, page=2, per_page=500)

        assert [a.id for a in page.activities] == [1]
        assert page.size == 2
        assert page.skipped == 1

        request = seen[0]
        assert request.url.path == "/api/v3/athlete/activities"
        assert request.url.params["after"] == "1700000000"
        assert request.url.params["page"] == "2"
        assert request.url.params["per_page"] == "200"
        assert "before" not in request.url.params
        assert request.headers["Authorization"] == "Bearer access-token"

    async def test_outdoor_run_flags(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=[
                    make_activity_payload(1),
                    make_activity_payload(2, trainer=True),
                    make_activity_payload(3, type="Ride"),
                ],
            )

        page = await make_client(handler).get_activities()

        assert [a.is_outdoor_run for a in page.activities] == [True, False, False]

    async def test_non_list_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "odd"})

        with pytest.raises(StravaException):
            await make_client(handler).get_activities()


class TestErrorMapping:
    @pytest.mark.parametrize(
        "status, exc",
        [
            (401, AccessUnauthorized),
            (403, AccessUnauthorized),
            (404, ObjectNotFound),
            (429, RateLimitExceeded),
            (400, StravaException),
            (502, StravaException),
        ],
    )
    async def test_status_codes(self, status, exc):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"message": "nope"})

        with pytest.raises(exc):
            await make_client(handler).get_activity_detail(42)

    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        with pytest.raises(StravaException):
            await make_client(handler).get_activities()

    async def test_missing_stream(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Record Not Found"})

        with pytest.raises(StreamUnavailable):
            await make_client(handler).get_activity_stream(42)


class TestDetailAndStreams:
    async def test_detail_skips_malformed_laps(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v3/activities/42"
            return httpx.Response(
                200,
                json={
                    "id": 42,
                    "laps": [
                        {"id": 1, "lap_index": 1, "distance": 1000.0, "elapsed_time": 240, "moving_time": 238},
                        {"id": 2, "lap_index": 2, "distance": "far"},
                    ],
                    "best_efforts": [
                        {"id": 7, "name": "1k", "distance": 1000.0, "elapsed_time": 238, "pr_rank": 2},
                    ],
                },
            )

        detail = await make_client(handler).get_activity_detail(42)

        assert detail.activity_id == 42
        assert [lap.moving_time for lap in detail.laps] == [238]
        assert detail.best_efforts[0].pr_rank == 2
        assert detail.skipped == 1

    async def test_detail_without_laps(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": 42})

        detail = await make_client(handler).get_activity_detail(42)

        assert detail.laps == []
        assert detail.best_efforts == []

    async def test_stream_by_type(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["keys"] == "time,distance"
            return httpx.Response(
                200,
                json={
                    "time": {"data": [0, 1, 2]},
                    "distance": {"data": [0.0, 3.5, 7.1]},
                },
            )

        stream = await make_client(handler).get_activity_stream(42)

        assert stream.time == [0.0, 1.0, 2.0]
        assert stream.distance == [0.0, 3.5, 7.1]

    @pytest.mark.parametrize(
        "payload",
        [
            {"time": {"data": [0, 1, 2]}},
            {"time": {"data": [0, 1]}, "distance": {"data": [0.0]}},
            {"time": {"data": []}, "distance": {"data": []}},
            [],
        ],
    )
    async def test_malformed_stream(self, payload):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        with pytest.raises(StreamUnavailable):
            await make_client(handler).get_activity_stream(42)


class TestRateLimiter:
    async def test_headers_update_limits(self):
        limiter = AsyncRateLimiter()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[], headers=RATE_HEADERS)

        await make_client(handler, limiter).get_activities()

        assert limiter.current_limits.short_usage == 10
        assert limiter.current_limits.long_limit == 2000
        assert limiter.read_limits.short_limit == 100

    async def test_exhausted_budget_blocks_before_request(self):
        limiter = AsyncRateLimiter()
        limiter.update_limits({"X-RateLimit-Limit": "200,2000", "X-RateLimit-Usage": "200,400"})
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        with pytest.raises(RateLimitExceeded):
            await make_client(handler, limiter).get_activities()

        assert calls == []

    async def test_daily_budget_counts_too(self):
        limiter = AsyncRateLimiter()
        limiter.update_limits({"X-ReadRateLimit-Limit": "100,1000", "X-ReadRateLimit-Usage": "3,1000"})

        with pytest.raises(RateLimitExceeded):
            await limiter.throttle()

    def test_garbage_headers_are_ignored(self):
        limiter = AsyncRateLimiter()

        limiter.update_limits({"X-RateLimit-Limit": "lots", "X-RateLimit-Usage": "some"})

        assert limiter.current_limits is None

    async def test_high_priority_never_sleeps(self):
        limiter = AsyncRateLimiter(priority="high")
        limiter.update_limits(RATE_HEADERS)

        with patch("pacelab.strava.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.throttle()

        sleep.assert_not_called()

    async def test_medium_priority_spreads_over_window(self):
        limiter = AsyncRateLimiter(priority="medium")
        limiter.update_limits({"X-RateLimit-Limit": "200,2000", "X-RateLimit-Usage": "199,300"})

        with patch("pacelab.strava.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.throttle()

        # 900 s / 1 remaining, capped
        sleep.assert_awaited_once_with(2)

    async def test_low_priority_spreads_over_day(self):
        limiter = AsyncRateLimiter(priority="low")
        limiter.update_limits({"X-RateLimit-Limit": "200,2000", "X-RateLimit-Usage": "10,1990"})

        with patch("pacelab.strava.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await limiter.throttle()

        sleep.assert_awaited_once_with(5)
