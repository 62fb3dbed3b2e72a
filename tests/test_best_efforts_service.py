"""Tests for best effort storage and rankings."""

import pytest

from pacelab.activities.service import activity_service
from pacelab.best_efforts.calculator import ComputedEffort
from pacelab.best_efforts.service import best_effort_service
from pacelab.strava.schemas import ActivitySchema, BestEffortSchema
from tests.factories import ATHLETE_ID, FakeStravaClient, make_activity_payload


def native(name: str, distance: float, elapsed_time: int, effort_id: int = 1, pr_rank=None):
    return BestEffortSchema(
        id=effort_id, name=name, distance=distance, elapsed_time=elapsed_time, pr_rank=pr_rank
    )


def computed(distance_name: str, distance_meters: float, elapsed_time: int) -> ComputedEffort:
    return ComputedEffort(
        distance_name=distance_name,
        distance_meters=distance_meters,
        elapsed_time=elapsed_time,
        pace_per_km=elapsed_time / distance_meters * 1000,
        start_index=0,
        end_index=elapsed_time,
    )


@pytest.fixture
async def stored_runs(db_session):
    """Three stored runs, ids 1 to 3."""
    payloads = [ActivitySchema.model_validate(make_activity_payload(i, days_ago=i)) for i in (1, 2, 3)]
    await activity_service.upsert_activities(db_session, ATHLETE_ID, payloads)
    return payloads


class TestUpsertNative:
    async def test_maps_known_names_only(self, db_session, stored_runs):
        efforts = [
            native("1K", 1000, 230, effort_id=1, pr_rank=1),
            native("Half-Marathon", 21097.5, 5400, effort_id=2),
            native("50K", 50000, 15000, effort_id=3),
            native("5K", 0, 1200, effort_id=4),
        ]

        stored = await best_effort_service.upsert_native(db_session, 1, efforts)
        await db_session.commit()

        assert stored == 2
        records = await best_effort_service.get_personal_records(db_session, ATHLETE_ID)
        assert set(records) == {"1K", "HALF"}
        assert records["1K"].pr_rank == 1
        assert records["HALF"].time_formatted == "1:30:00"

    async def test_resync_updates_in_place(self, db_session, stored_runs):
        await best_effort_service.upsert_native(db_session, 1, [native("1K", 1000, 240)])
        await best_effort_service.upsert_native(db_session, 1, [native("1K", 1000, 235)])
        await db_session.commit()

        ranked = await best_effort_service.get_ranked(db_session, ATHLETE_ID, "1K")

        assert [e.elapsed_time for e in ranked] == [235]


class TestRanking:
    @pytest.fixture
    async def efforts(self, db_session, stored_runs):
        # Run 1 has both sources, the native time wins for it
        await best_effort_service.upsert_native(db_session, 1, [native("5K", 5000, 1250)])
        await best_effort_service.upsert_computed(db_session, 1, [computed("5K", 5010, 1240)])
        await best_effort_service.upsert_computed(db_session, 2, [computed("5K", 4990, 1200)])
        await best_effort_service.upsert_native(db_session, 3, [native("5K", 5000, 1300)])
        await db_session.commit()

    async def test_best_merges_sources(self, db_session, efforts):
        ranked = await best_effort_service.get_ranked(db_session, ATHLETE_ID, "5K")

        assert [(e.activity_id, e.source, e.elapsed_time) for e in ranked] == [
            (2, "computed", 1200),
            (1, "strava", 1250),
            (3, "strava", 1300),
        ]

    async def test_strava_only(self, db_session, efforts):
        ranked = await best_effort_service.get_ranked(db_session, ATHLETE_ID, "5K", source="strava")

        assert [e.activity_id for e in ranked] == [1, 3]

    async def test_computed_only(self, db_session, efforts):
        ranked = await best_effort_service.get_ranked(db_session, ATHLETE_ID, "5K", source="computed")

        assert [(e.activity_id, e.elapsed_time) for e in ranked] == [(2, 1200), (1, 1240)]

    async def test_limit(self, db_session, efforts):
        ranked = await best_effort_service.get_ranked(db_session, ATHLETE_ID, "5K", limit=1)

        assert len(ranked) == 1
        entry = ranked[0]
        assert entry.activity_name == "Activity 2"
        assert entry.time_formatted == "20:00"
        assert entry.pace_formatted == "4:00/km"
        assert entry.strava_url == "https://www.strava.com/activities/2"

    async def test_other_athletes_are_invisible(self, db_session, efforts):
        assert await best_effort_service.get_ranked(db_session, 2002, "5K") == []

    async def test_runs_without_efforts(self, db_session, stored_runs):
        for activity_id in (1, 2, 3):
            await activity_service.mark_detail_fetched(db_session, activity_id)
        await best_effort_service.upsert_computed(db_session, 2, [computed("1K", 1000, 240)])
        await db_session.commit()

        runs = await best_effort_service.get_runs_without_efforts(db_session, ATHLETE_ID, limit=10)

        assert [a.id for a in runs] == [1, 3]


class TestComputeForActivity:
    async def test_missing_stream_is_skipped(self, db_session, stored_runs):
        client = FakeStravaClient([])

        stored = await best_effort_service.compute_for_activity(db_session, client, 1, 10000)

        assert stored == 0
        assert client.stream_calls == [1]

    async def test_stream_too_short_for_any_distance(self, db_session, stored_runs):
        client = FakeStravaClient([], streams={1: ([0.0, 1.0, 2.0], [0.0, 4.0, 8.0])})

        stored = await best_effort_service.compute_for_activity(db_session, client, 1, 10000)

        assert stored == 0
