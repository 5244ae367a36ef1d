"""
Tests for the mood store adapter over the in-memory Supabase fake.
"""
import pytest

from api.schemas.moods import MoodSelectionInput
from services.errors import (
    InvalidInputError,
    LimitExceededError,
    NotFoundError,
    UpstreamFailureError,
)
from services.mood_store import MoodStore, normalize_timestamp
from services.user_directory import UserDirectory

PATIENT_ID = "patient-0001"


@pytest.fixture
def store(fake_db):
    return MoodStore(fake_db, UserDirectory(fake_db))


def moods(*mood_ids, note=None, at=None):
    return [MoodSelectionInput(mood_id=mood_id, note=note, at=at) for mood_id in mood_ids]


def test_normalize_timestamp():
    assert normalize_timestamp("2024-01-02T03:04:05Z") == "2024-01-02T03:04:05.000Z"
    assert normalize_timestamp("2024-01-02T00:30:00-03:00") == "2024-01-02T03:30:00.000Z"
    assert normalize_timestamp("2024-01-02T03:04:05.123456+00:00") == "2024-01-02T03:04:05.123Z"
    # invalid or missing becomes "now" in the same format
    generated = normalize_timestamp("not-a-date")
    assert generated.endswith("Z") and len(generated) == 24
    assert normalize_timestamp(None).endswith("Z")


@pytest.mark.asyncio
async def test_upsert_then_get_day_round_trip(store):
    await store.upsert_day(
        PATIENT_ID, "2024-01", "5",
        moods("euforia", note="buen día", at="2024-01-05T10:00:00Z") + moods("tristeza"),
    )

    day = await store.get_day(PATIENT_ID, "2024-01", "05")

    assert day.day == "05"
    assert [(m.mood_id, m.note) for m in day.moods] == [("euforia", "buen día"), ("tristeza", None)]
    assert day.moods[0].at == "2024-01-05T10:00:00.000Z"
    assert day.moods[1].at.endswith("Z")


@pytest.mark.asyncio
async def test_stored_document_shape(fake_db, store):
    await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("ira"))

    row = fake_db.tables["mood_months"][0]
    assert row["user_id"] == PATIENT_ID
    assert row["month_id"] == "2024-01"
    assert row["year"] == 2024 and row["month"] == 1
    assert row["schema_version"] == 1
    assert row["days"]["05"]["moods"][0]["moodId"] == "ira"
    assert row["created_at"] and row["updated_at"]


@pytest.mark.asyncio
async def test_put_replaces_existing_moods(store):
    await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("euforia", "ira"))
    await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("tristeza"))

    day = await store.get_day(PATIENT_ID, "2024-01", "05")
    assert [m.mood_id for m in day.moods] == ["tristeza"]


@pytest.mark.asyncio
async def test_merge_appends_moods(store):
    await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("euforia"))
    result = await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("ira"), merge=True)

    assert [m.mood_id for m in result.saved] == ["euforia", "ira"]


@pytest.mark.asyncio
async def test_fourth_mood_is_rejected_and_day_untouched(fake_db, store):
    await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("euforia", "ira", "culpa"))
    writes_before = len(fake_db.writes)

    with pytest.raises(LimitExceededError):
        await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("miedo"), merge=True)

    assert len(fake_db.writes) == writes_before
    day = await store.get_day(PATIENT_ID, "2024-01", "05")
    assert [m.mood_id for m in day.moods] == ["euforia", "ira", "culpa"]


@pytest.mark.asyncio
async def test_replace_with_four_moods_is_rejected(store):
    with pytest.raises(LimitExceededError):
        await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("a", "b", "c", "d"))


@pytest.mark.asyncio
async def test_upsert_without_moods_is_invalid(store):
    with pytest.raises(InvalidInputError):
        await store.upsert_day(PATIENT_ID, "2024-01", "05", [])


@pytest.mark.asyncio
async def test_upsert_for_unknown_user_is_not_found(fake_db, store):
    with pytest.raises(NotFoundError):
        await store.upsert_day("ghost", "2024-01", "05", moods("ira"))

    assert "mood_months" not in fake_db.tables or fake_db.tables["mood_months"] == []


@pytest.mark.asyncio
async def test_get_month_missing_returns_empty_days(store):
    month = await store.get_month(PATIENT_ID, "2024-07")

    assert month.month_id == "2024-07"
    assert month.year == 2024 and month.month == 7
    assert month.days == {}


@pytest.mark.asyncio
async def test_get_day_missing_month_or_day(store):
    with pytest.raises(NotFoundError):
        await store.get_day(PATIENT_ID, "2024-01", "01")

    await store.upsert_day(PATIENT_ID, "2024-01", "02", moods("ira"))
    with pytest.raises(NotFoundError):
        await store.get_day(PATIENT_ID, "2024-01", "01")


@pytest.mark.asyncio
async def test_list_year_orders_by_month(fake_db, store):
    fake_db.add_day(PATIENT_ID, "2024-11-01", ["ira"])
    fake_db.add_day(PATIENT_ID, "2024-02-01", ["euforia"])
    fake_db.add_day(PATIENT_ID, "2023-12-01", ["culpa"])

    year = await store.list_year(PATIENT_ID, 2024)

    assert year.year == 2024
    assert [m.month_id for m in year.months] == ["2024-02", "2024-11"]


@pytest.mark.asyncio
async def test_delete_day(store):
    await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("ira"))

    result = await store.delete_day(PATIENT_ID, "2024-01", "05")

    assert result.deleted is True
    with pytest.raises(NotFoundError):
        await store.get_day(PATIENT_ID, "2024-01", "05")
    with pytest.raises(NotFoundError):
        await store.delete_day(PATIENT_ID, "2024-01", "05")


@pytest.mark.asyncio
async def test_delete_day_mood_removes_empty_day(store):
    await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("ira", "culpa"))

    await store.delete_day_mood(PATIENT_ID, "2024-01", "05", "ira")
    day = await store.get_day(PATIENT_ID, "2024-01", "05")
    assert [m.mood_id for m in day.moods] == ["culpa"]

    await store.delete_day_mood(PATIENT_ID, "2024-01", "05", "culpa")
    with pytest.raises(NotFoundError):
        await store.get_day(PATIENT_ID, "2024-01", "05")


@pytest.mark.asyncio
async def test_delete_unknown_mood_is_not_found(store):
    await store.upsert_day(PATIENT_ID, "2024-01", "05", moods("ira"))

    with pytest.raises(NotFoundError):
        await store.delete_day_mood(PATIENT_ID, "2024-01", "05", "euforia")


@pytest.mark.asyncio
async def test_postgrest_errors_become_upstream_failures(fake_db, store):
    fake_db.failing_tables.add("mood_months")

    with pytest.raises(UpstreamFailureError) as exc_info:
        await store.get_month(PATIENT_ID, "2024-01")

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_malformed_document_is_upstream_failure(fake_db, store):
    fake_db.tables["mood_months"] = [
        {"user_id": PATIENT_ID, "month_id": "2024-01", "year": "not-a-year", "month": 1, "days": {}}
    ]

    with pytest.raises(UpstreamFailureError):
        await store.get_month(PATIENT_ID, "2024-01")
