"""
Tests for profile reads over the in-memory Supabase fake.
"""
import pytest

from api.schemas.users import UserProfile, UserRole, UserStatus
from services.errors import NotFoundError, UpstreamFailureError
from services.user_directory import UserDirectory


@pytest.fixture
def users(fake_db):
    return UserDirectory(fake_db)


def test_profile_normalises_case_and_nulls():
    profile = UserProfile.model_validate(
        {"id": "u1", "name": None, "email": None, "role": " staff ", "status": "active"}
    )

    assert profile.name == ""
    assert profile.role == UserRole.STAFF
    assert profile.status == UserStatus.ACTIVE


def test_unknown_role_and_status_fall_back_to_safe_defaults():
    profile = UserProfile.model_validate({"id": "u1", "role": "superuser", "status": "PENDING"})

    assert profile.role == UserRole.USER
    assert profile.status == UserStatus.INACTIVE


@pytest.mark.asyncio
async def test_list_tolerates_unknown_status(fake_db, users):
    fake_db.add_profile("patient-x", status="PENDING")

    everyone = await users.list()
    active = await users.list(status=UserStatus.ACTIVE)

    assert len(everyone) == 5
    assert next(p for p in everyone if p.id == "patient-x").status == UserStatus.INACTIVE
    assert "patient-x" not in {p.id for p in active}


@pytest.mark.asyncio
async def test_list_skips_rows_without_id(fake_db, users):
    fake_db.tables["profiles"].append({"name": "orphan", "role": "USER", "status": "ACTIVE"})

    profiles = await users.list()

    assert len(profiles) == 4


@pytest.mark.asyncio
async def test_get_by_id(users):
    profile = await users.get_by_id("patient-0001")

    assert profile.name == "Ana"
    with pytest.raises(NotFoundError):
        await users.get_by_id("ghost")


@pytest.mark.asyncio
async def test_get_by_id_upstream_failure(fake_db, users):
    fake_db.failing_tables.add("profiles")

    with pytest.raises(UpstreamFailureError):
        await users.get_by_id("patient-0001")
