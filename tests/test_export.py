import csv
import io
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from conftest import USER_ID, cursor_of

ACHIEVEMENT = {
    "_id": ObjectId("64b7f0c2a1b2c3d4e5f60771"),
    "user_id": USER_ID,
    "type": "early_bird",
    "title": "First Steps",
    "description": "Complete your first meditation, then another",
    "points": 10,
    "target": 1,
    "progress": 1,
    "completed": True,
    "completed_at": datetime(2024, 3, 2, 8, tzinfo=timezone.utc),
}

SESSION = {
    "_id": ObjectId("64b7f0c2a1b2c3d4e5f60772"),
    "user_id": USER_ID,
    "type": "guided",
    "start_time": datetime(2024, 3, 3, 7, tzinfo=timezone.utc),
    "status": "COMPLETED",
    "duration_completed": 12,
    "mood_before": "stressed",
    "mood_after": "calm",
}

ASSESSMENT = {
    "_id": ObjectId("64b7f0c2a1b2c3d4e5f60773"),
    "user_id": USER_ID,
    "date": datetime(2024, 3, 4, 21, tzinfo=timezone.utc),
    "stress_level": 7,
    "physical_symptoms": ["headache"],
    "emotional_symptoms": ["irritable", "tired"],
    "triggers": ["work"],
    "notes": None,
    "created_at": datetime(2024, 3, 4, 21, tzinfo=timezone.utc),
    "updated_at": datetime(2024, 3, 4, 21, tzinfo=timezone.utc),
}

USER = {
    "_id": ObjectId(USER_ID),
    "username": "alice",
    "email": "alice@mail.com",
    "password_hash": "x",
    "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
}


def _collection(docs):
    col = MagicMock()
    col.find = MagicMock(return_value=cursor_of(docs))
    return col


@pytest.fixture
def mock_db():
    users = MagicMock()
    users.find_one = AsyncMock(return_value=USER)
    return {
        "users": users,
        "achievements": _collection([ACHIEVEMENT]),
        "meditation_sessions": _collection([SESSION]),
        "stress_assessments": _collection([ASSESSMENT]),
    }


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


async def test_export_requires_login(client):
    resp = await client.get("/api/export/achievements")
    assert resp.status_code == 401


async def test_achievements_json(client, user_headers, mock_db):
    resp = await client.get("/api/export/achievements", headers=user_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data[0]["title"] == "First Steps"
    assert data[0]["completedAt"].startswith("2024-03-02")
    assert mock_db["achievements"].find.call_args.args[0] == {"user_id": USER_ID}


async def test_achievements_csv_quotes_commas(client, user_headers):
    resp = await client.get("/api/export/achievements", params={"format": "csv"}, headers=user_headers)

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.headers["content-disposition"] == f'attachment; filename="achievements-{USER_ID}.csv"'
    header, row = _rows(resp.text)
    assert header == ["Achievement Name", "Description", "Category", "Points", "Date Earned"]
    assert row == ["First Steps", "Complete your first meditation, then another", "early_bird", "10", "2024-03-02"]


async def test_meditations_date_filter(client, user_headers, mock_db):
    resp = await client.get(
        "/api/export/meditations",
        params={"startDate": "2024-03-01T00:00:00Z", "endDate": "2024-03-31T00:00:00Z"},
        headers=user_headers,
    )
    assert resp.status_code == 200
    query = mock_db["meditation_sessions"].find.call_args.args[0]
    assert query["start_time"]["$gte"] == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert query["start_time"]["$lte"] == datetime(2024, 3, 31, tzinfo=timezone.utc)


async def test_meditations_csv_row(client, user_headers):
    resp = await client.get("/api/export/meditations", params={"format": "csv"}, headers=user_headers)
    header, row = _rows(resp.text)
    assert header[0] == "Date"
    assert row == ["2024-03-03", "12", "guided", "N/A", "stressed", "calm"]


async def test_reversed_range_is_rejected(client, user_headers):
    resp = await client.get(
        "/api/export/stress-levels",
        params={"startDate": "2024-04-01T00:00:00Z", "endDate": "2024-03-01T00:00:00Z"},
        headers=user_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "startDate cannot be after endDate"


async def test_stress_levels_csv(client, user_headers):
    resp = await client.get("/api/export/stress-levels", params={"format": "csv"}, headers=user_headers)
    _, row = _rows(resp.text)
    assert row == ["2024-03-04", "7", "work", "headache", "irritable, tired", "N/A"]


async def test_unknown_format_is_rejected(client, user_headers):
    resp = await client.get("/api/export/achievements", params={"format": "xml"}, headers=user_headers)
    assert resp.status_code == 400


async def test_user_data_json_has_every_section(client, user_headers):
    resp = await client.get("/api/export/user-data", headers=user_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["profile"]["username"] == "alice"
    assert "passwordHash" not in data["profile"]
    assert len(data["achievements"]) == 1
    assert len(data["meditations"]) == 1
    assert data["stressAssessments"][0]["stressLevel"] == 7


async def test_user_data_csv_sections(client, user_headers):
    resp = await client.get("/api/export/user-data", params={"format": "csv"}, headers=user_headers)
    text = resp.text
    assert text.startswith("# USER PROFILE\nUsername: alice\nEmail: alice@mail.com\nLast Login: N/A")
    for section in ("# ACHIEVEMENTS", "# MEDITATION SESSIONS", "# STRESS ASSESSMENTS"):
        assert section in text


async def test_user_data_for_deleted_account(client, user_headers, mock_db):
    mock_db["users"].find_one = AsyncMock(return_value=None)
    resp = await client.get("/api/export/user-data", headers=user_headers)
    assert resp.status_code == 404
