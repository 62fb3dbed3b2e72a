"""Tests for the HTTP endpoints."""

from unittest.mock import AsyncMock, patch

from httpx import AsyncClient

from pacelab.activities.service import activity_service
from pacelab.best_efforts.service import best_effort_service
from pacelab.classification.schemas import ClassificationResult
from pacelab.strava.schemas import ActivitySchema, BestEffortSchema, LapSchema
from pacelab.sync.schemas import SyncResult
from tests.factories import ADMIN_HEADERS, ATHLETE_ID, interval_session_laps, make_activity_payload


async def store_run(db_session, activity_id: int, days_ago: int = 0, with_laps: bool = False):
    payload = ActivitySchema.model_validate(make_activity_payload(activity_id, days_ago=days_ago))
    await activity_service.upsert_activities(db_session, ATHLETE_ID, [payload])
    if with_laps:
        laps = [LapSchema(**raw) for raw in interval_session_laps()]
        await activity_service.upsert_laps(db_session, activity_id, laps)
        await db_session.commit()


class TestHealthAndAuth:
    async def test_health_needs_no_key(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_wrong_key(self, client: AsyncClient):
        response = await client.get(
            f"/hr-zones/{ATHLETE_ID}", headers={"X-API-Key": "not-the-key"}
        )

        assert response.status_code == 403

    async def test_missing_key(self, client: AsyncClient):
        response = await client.post(f"/sync/{ATHLETE_ID}")

        assert response.status_code in (401, 403)


class TestHrZones:
    async def test_get_returns_unconfirmed_estimate(self, client: AsyncClient):
        response = await client.get(f"/hr-zones/{ATHLETE_ID}", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["confirmed"] is False
        assert data["source"] == "estimated"
        assert [z["zone"] for z in data["zones"]] == [1, 2, 3, 4, 5]

    async def test_put_confirms(self, client: AsyncClient):
        response = await client.put(
            f"/hr-zones/{ATHLETE_ID}",
            headers=ADMIN_HEADERS,
            json={"lt1": 150, "lt2": 172, "max_hr": 192, "source": "lactate_test"},
        )

        assert response.status_code == 200
        data = response.json()
        assert (data["lt1"], data["lt2"], data["max_hr"]) == (150, 172, 192)
        assert data["confirmed"] is True

        again = await client.get(f"/hr-zones/{ATHLETE_ID}", headers=ADMIN_HEADERS)
        assert again.json()["source"] == "lactate_test"

    async def test_put_rejects_unordered_thresholds(self, client: AsyncClient):
        response = await client.put(
            f"/hr-zones/{ATHLETE_ID}",
            headers=ADMIN_HEADERS,
            json={"lt1": 175, "lt2": 160, "max_hr": 190},
        )

        assert response.status_code == 422


class TestActivities:
    async def test_unknown_activity(self, client: AsyncClient):
        response = await client.get("/activities/999", headers=ADMIN_HEADERS)

        assert response.status_code == 404

    async def test_activity_with_laps(self, client: AsyncClient, db_session):
        await store_run(db_session, 1, with_laps=True)

        response = await client.get("/activities/1", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["athlete_id"] == ATHLETE_ID
        assert len(data["laps"]) == 13
        assert data["laps"][1] == {
            "lap_index": 1,
            "distance": 1000.0,
            "elapsed_time": 230,
            "moving_time": 230,
            "average_speed": None,
            "average_heartrate": None,
            "max_heartrate": None,
        }

    async def test_list_filters_by_run_type(self, client: AsyncClient, db_session):
        for activity_id in (1, 2, 3):
            await store_run(db_session, activity_id, days_ago=activity_id)
        workout = await activity_service.get_activity(db_session, 2)
        await activity_service.set_run_type(
            db_session,
            workout,
            ClassificationResult(run_type="intervals", run_type_detail="6x1km", confidence="high"),
        )
        await db_session.commit()

        everything = await client.get(f"/activities/athlete/{ATHLETE_ID}", headers=ADMIN_HEADERS)
        intervals = await client.get(
            f"/activities/athlete/{ATHLETE_ID}",
            headers=ADMIN_HEADERS,
            params={"run_type": "intervals"},
        )

        assert [a["id"] for a in everything.json()] == [1, 2, 3]
        assert [(a["id"], a["run_type_detail"]) for a in intervals.json()] == [(2, "6x1km")]

    async def test_unknown_run_type(self, client: AsyncClient):
        response = await client.get(
            f"/activities/athlete/{ATHLETE_ID}",
            headers=ADMIN_HEADERS,
            params={"run_type": "jogging"},
        )

        assert response.status_code == 422


class TestBestEfforts:
    async def test_unknown_distance(self, client: AsyncClient):
        response = await client.get(
            f"/best-efforts/{ATHLETE_ID}", headers=ADMIN_HEADERS, params={"distance": "3K"}
        )

        assert response.status_code == 400
        assert "MARATHON" in response.json()["detail"]

    async def test_ranking_is_case_insensitive(self, client: AsyncClient, db_session):
        await store_run(db_session, 1)
        await best_effort_service.upsert_native(
            db_session,
            1,
            [BestEffortSchema(id=10, name="5K", distance=5000, elapsed_time=1199, pr_rank=1)],
        )
        await db_session.commit()

        response = await client.get(
            f"/best-efforts/{ATHLETE_ID}", headers=ADMIN_HEADERS, params={"distance": "5k"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["distance_name"] == "5K"
        assert data["source"] == "best"
        assert [(e["activity_id"], e["time_formatted"]) for e in data["efforts"]] == [(1, "19:59")]

        records = await client.get(f"/best-efforts/{ATHLETE_ID}/records", headers=ADMIN_HEADERS)
        assert list(records.json()["records"]) == ["5K"]

    async def test_invalid_source(self, client: AsyncClient):
        response = await client.get(
            f"/best-efforts/{ATHLETE_ID}",
            headers=ADMIN_HEADERS,
            params={"distance": "5K", "source": "garmin"},
        )

        assert response.status_code == 422


class TestSyncEndpoint:
    async def test_defaults_to_incremental(self, client: AsyncClient):
        with patch(
            "pacelab.sync.router.sync_service.sync",
            new_callable=AsyncMock,
            return_value=SyncResult(athlete_id=ATHLETE_ID, mode="incremental", created=3),
        ) as sync:
            response = await client.post(f"/sync/{ATHLETE_ID}", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["created"] == 3
        assert sync.await_args.kwargs["mode"] == "incremental"
        assert sync.await_args.kwargs["days"] is None

    async def test_full_mode_with_window(self, client: AsyncClient):
        with patch(
            "pacelab.sync.router.sync_service.sync",
            new_callable=AsyncMock,
            return_value=SyncResult(athlete_id=ATHLETE_ID, mode="full"),
        ) as sync:
            response = await client.post(
                f"/sync/{ATHLETE_ID}", headers=ADMIN_HEADERS, json={"mode": "full", "days": 7}
            )

        assert response.status_code == 200
        assert sync.await_args.kwargs["mode"] == "full"
        assert sync.await_args.kwargs["days"] == 7

    async def test_partial_result_is_not_an_error(self, client: AsyncClient):
        result = SyncResult(athlete_id=ATHLETE_ID, mode="incremental", status="rate_limited")
        with patch(
            "pacelab.sync.router.sync_service.sync", new_callable=AsyncMock, return_value=result
        ):
            response = await client.post(f"/sync/{ATHLETE_ID}", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["status"] == "rate_limited"

    async def test_invalid_mode(self, client: AsyncClient):
        response = await client.post(
            f"/sync/{ATHLETE_ID}", headers=ADMIN_HEADERS, json={"mode": "everything"}
        )

        assert response.status_code == 422

    async def test_auth_failure_reported_in_body(self, client: AsyncClient):
        # No stored credentials for this athlete
        response = await client.post(f"/sync/{ATHLETE_ID}", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "auth_failed"
        assert data["needs_auth"] is True
