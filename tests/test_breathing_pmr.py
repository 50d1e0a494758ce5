from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from mindfulness.core.cache import CatalogCache
from mindfulness.core.errors import NotFoundError, ValidationError
from mindfulness.crud import breathing as breathing_crud
from mindfulness.crud import pmr as pmr_crud
from mindfulness.models.session import DEFAULT_BREATHING_PATTERNS, DEFAULT_MUSCLE_GROUPS
from mindfulness.schemas.session import (
    BreathingSessionComplete,
    BreathingSessionCreate,
    PMRProgressUpdate,
    PMRSessionComplete,
)

from conftest import USER_ID, cursor_of

SESSION_ID = "64b7f0c2a1b2c3d4e5f60780"
BOX = {"name": "BOX_BREATHING", "inhale": 4, "hold": 4, "exhale": 4, "post_exhale_hold": 4, "cycles": 4}


def _session(**overrides):
    doc = {
        "_id": ObjectId(SESSION_ID),
        "user_id": USER_ID,
        "start_time": datetime.now(timezone.utc) - timedelta(minutes=5),
        "status": "IN_PROGRESS",
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def db():
    return {
        "breathing_patterns": MagicMock(),
        "breathing_sessions": MagicMock(),
        "muscle_groups": MagicMock(),
        "pmr_sessions": MagicMock(),
    }


# ---------- breathing ----------
async def test_seed_patterns_upserts_every_default(db):
    db["breathing_patterns"].update_one = AsyncMock()
    await breathing_crud.seed_patterns(db)

    calls = db["breathing_patterns"].update_one.await_args_list
    assert [c.args[0] for c in calls] == [{"name": p.name} for p in DEFAULT_BREATHING_PATTERNS]
    assert all(c.kwargs == {"upsert": True} for c in calls)


async def test_unknown_pattern_is_cached_as_miss(db):
    cache = CatalogCache()
    db["breathing_patterns"].find_one = AsyncMock(return_value=None)

    for _ in range(2):
        with pytest.raises(NotFoundError, match="Breathing pattern not found"):
            await breathing_crud.get_pattern(db, cache, "NOPE")
    db["breathing_patterns"].find_one.assert_awaited_once()


async def test_start_session_defaults_cycles_to_pattern(db):
    db["breathing_patterns"].find_one = AsyncMock(return_value=BOX)
    sessions = db["breathing_sessions"]
    sessions.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId(SESSION_ID)))
    sessions.find_one = AsyncMock(
        return_value=_session(pattern_name="BOX_BREATHING", target_cycles=4, stress_level_before=8)
    )

    result = await breathing_crud.start_session(
        db, CatalogCache(), USER_ID, BreathingSessionCreate(pattern_name="BOX_BREATHING", stress_level_before=8)
    )

    stored = sessions.insert_one.await_args.args[0]
    assert stored["target_cycles"] == 4
    assert stored["status"] == "IN_PROGRESS"
    assert result.pattern_name == "BOX_BREATHING"


async def test_complete_breathing_twice_is_rejected(db):
    db["breathing_sessions"].find_one = AsyncMock(return_value=_session(pattern_name="4-7-8", target_cycles=4, status="COMPLETED"))
    with pytest.raises(ValidationError, match="Session already completed"):
        await breathing_crud.complete_session(db, SESSION_ID, BreathingSessionComplete(completed_cycles=4))


async def test_complete_breathing_guards_on_current_status(db):
    sessions = db["breathing_sessions"]
    sessions.find_one = AsyncMock(return_value=_session(pattern_name="4-7-8", target_cycles=4, stress_level_before=7))
    sessions.update_one = AsyncMock(return_value=MagicMock(matched_count=0))

    # another request completed it between the read and the write
    with pytest.raises(ValidationError, match="Session already completed"):
        await breathing_crud.complete_session(
            db, SESSION_ID, BreathingSessionComplete(completed_cycles=4, stress_level_after=3)
        )
    filter_, update = sessions.update_one.await_args.args
    assert filter_ == {"_id": ObjectId(SESSION_ID), "status": "IN_PROGRESS"}
    assert update["$set"]["duration"] >= 300


async def test_breathing_effectiveness_picks_best_pattern(db):
    db["breathing_sessions"].find = MagicMock(
        return_value=cursor_of(
            [
                {"pattern_name": "4-7-8", "stress_level_before": 8, "stress_level_after": 4},
                {"pattern_name": "4-7-8", "stress_level_before": 6, "stress_level_after": 4},
                {"pattern_name": "BOX_BREATHING", "stress_level_before": 5, "stress_level_after": 4},
            ]
        )
    )
    result = await breathing_crud.get_effectiveness(db, USER_ID)

    assert result.total_sessions == 3
    assert result.average_stress_reduction == 2.33
    assert result.most_effective_pattern == "4-7-8"


async def test_breathing_effectiveness_without_sessions(db):
    db["breathing_sessions"].find = MagicMock(return_value=cursor_of([]))
    result = await breathing_crud.get_effectiveness(db, USER_ID)
    assert result.total_sessions == 0
    assert result.most_effective_pattern is None


# ---------- pmr ----------
def _groups():
    return [g.to_document() for g in DEFAULT_MUSCLE_GROUPS]


async def test_progress_rejects_unknown_group(db):
    db["pmr_sessions"].find_one = AsyncMock(return_value=_session())
    db["muscle_groups"].find = MagicMock(return_value=cursor_of(_groups()))

    with pytest.raises(ValidationError, match="Invalid muscle group name"):
        await pmr_crud.record_progress(db, CatalogCache(), SESSION_ID, PMRProgressUpdate(completed_group="ears"))


async def test_progress_rejects_repeated_group(db):
    db["pmr_sessions"].find_one = AsyncMock(return_value=_session(completed_groups=["biceps"]))
    db["muscle_groups"].find = MagicMock(return_value=cursor_of(_groups()))

    with pytest.raises(ValidationError, match="Muscle group already completed"):
        await pmr_crud.record_progress(db, CatalogCache(), SESSION_ID, PMRProgressUpdate(completed_group="biceps"))


async def test_progress_adds_group_to_set(db):
    sessions = db["pmr_sessions"]
    sessions.find_one = AsyncMock(side_effect=[_session(), _session(completed_groups=["biceps"])])
    sessions.update_one = AsyncMock()
    db["muscle_groups"].find = MagicMock(return_value=cursor_of(_groups()))

    result = await pmr_crud.record_progress(db, CatalogCache(), SESSION_ID, PMRProgressUpdate(completed_group="biceps"))

    assert sessions.update_one.await_args.args[1] == {"$addToSet": {"completed_groups": "biceps"}}
    assert result.completed_groups == ["biceps"]


async def test_progress_on_finished_session(db):
    db["pmr_sessions"].find_one = AsyncMock(return_value=_session(status="COMPLETED"))
    with pytest.raises(ValidationError, match="Session is not in progress"):
        await pmr_crud.record_progress(db, CatalogCache(), SESSION_ID, PMRProgressUpdate(completed_group="biceps"))


async def test_complete_cancelled_pmr_session(db):
    db["pmr_sessions"].find_one = AsyncMock(return_value=_session(status="CANCELLED"))
    with pytest.raises(ValidationError, match="Cannot complete a session that is CANCELLED"):
        await pmr_crud.complete_session(db, SESSION_ID, PMRSessionComplete())


async def test_missing_pmr_session(db):
    db["pmr_sessions"].find_one = AsyncMock(return_value=None)
    with pytest.raises(NotFoundError):
        await pmr_crud.complete_session(db, SESSION_ID, PMRSessionComplete())


async def test_pmr_effectiveness(db):
    all_groups = [g.name for g in DEFAULT_MUSCLE_GROUPS]
    db["pmr_sessions"].find = MagicMock(
        return_value=cursor_of(
            [
                {"completed_groups": all_groups, "stress_level_before": 9, "stress_level_after": 5},
                {"completed_groups": [], "stress_level_before": None, "stress_level_after": None},
            ]
        )
    )
    result = await pmr_crud.get_effectiveness(db, USER_ID)

    assert result.total_sessions == 2
    assert result.average_stress_reduction == 4.0
    assert result.average_completion_rate == 50.0


async def test_muscle_group_endpoint(client, mock_db, user_headers):
    mock_db["muscle_groups"].find = MagicMock(return_value=cursor_of(_groups()))
    resp = await client.get("/api/pmr/muscle-groups", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()[0]["name"] == DEFAULT_MUSCLE_GROUPS[0].name
