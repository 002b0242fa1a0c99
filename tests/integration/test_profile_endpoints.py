"""
Интеграционные тесты /api/v1/profile и /api/v1/personal-records.
"""

import pytest
from datetime import datetime

from app.models.personal_record import PersonalRecord
from app.models.profile import DistanceEnum, GenderEnum, Profile

pytestmark = pytest.mark.integration


def _record(record_id: int, distance: DistanceEnum, time_seconds: int) -> PersonalRecord:
    return PersonalRecord(
        id=record_id,
        user_id=1,
        distance=distance,
        time_seconds=time_seconds,
        created_at=datetime(2026, 3, 1, 12, 0),
    )


# ---------------------------------------------------------------------------
# GET /profile
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_profile(user_client, mock_plan_repo, user_fixture):
    mock_plan_repo.get_profile.return_value = Profile(
        user_id=user_fixture.id,
        goal_distance=DistanceEnum.marathon,
        weekly_km=45.0,
        training_days_per_week=5,
        age=40,
        weight=80.0,
        height=182,
        gender=GenderEnum.male,
        created_at=datetime(2026, 1, 1),
        updated_at=datetime(2026, 3, 1),
    )

    response = await user_client.get("/api/v1/profile")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["goal_distance"] == "Marathon"
    assert data["gender"] == "M"
    assert data["training_days_per_week"] == 5


@pytest.mark.asyncio
async def test_get_missing_profile_returns_404(user_client, mock_plan_repo):
    mock_plan_repo.get_profile.return_value = None

    response = await user_client.get("/api/v1/profile")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PROFILE_NOT_FOUND"


# ---------------------------------------------------------------------------
# /personal-records
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_personal_records(user_client, mock_plan_repo):
    mock_plan_repo.list_personal_records.return_value = [
        _record(2, DistanceEnum.ten_k, 2900),
        _record(1, DistanceEnum.five_k, 1350),
    ]

    response = await user_client.get("/api/v1/personal-records")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [record["distance"] for record in data] == ["10K", "5K"]


@pytest.mark.asyncio
async def test_list_personal_records_empty(user_client, mock_plan_repo):
    mock_plan_repo.list_personal_records.return_value = []

    response = await user_client.get("/api/v1/personal-records")

    assert response.status_code == 200
    assert response.json() == {"data": []}


@pytest.mark.asyncio
async def test_create_personal_record(user_client, mock_plan_repo, user_fixture):
    mock_plan_repo.add_personal_record.return_value = _record(3, DistanceEnum.half_marathon, 6135)

    response = await user_client.post(
        "/api/v1/personal-records", json={"distance": "Half Marathon", "time_seconds": 6135}
    )

    assert response.status_code == 201
    assert response.json()["data"]["id"] == 3
    user_id, data = mock_plan_repo.add_personal_record.call_args.args
    assert user_id == user_fixture.id
    assert data.distance == DistanceEnum.half_marathon
    mock_plan_repo.commit.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [{"distance": "5K", "time_seconds": 0}, {"distance": "3K", "time_seconds": 700}],
)
async def test_create_invalid_personal_record_returns_400(user_client, mock_plan_repo, body):
    response = await user_client.post("/api/v1/personal-records", json=body)

    assert response.status_code == 400
    mock_plan_repo.add_personal_record.assert_not_called()


@pytest.mark.asyncio
async def test_delete_personal_record_is_idempotent(user_client, mock_plan_repo, user_fixture):
    mock_plan_repo.delete_personal_record.return_value = 0

    response = await user_client.delete("/api/v1/personal-records/77")

    assert response.status_code == 204
    mock_plan_repo.delete_personal_record.assert_awaited_once_with(user_fixture.id, 77)
