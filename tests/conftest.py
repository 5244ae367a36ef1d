"""
Pytest configuration and fixtures for the Mood Reports API tests.

Provides an in-memory stand-in for the Supabase async client so storage
adapters, services and endpoints run end to end without network calls.
"""
import copy
import os
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

# Set environment variables before importing main
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_SERVICE_KEY"] = "test-key"
os.environ["ENABLE_WEEKLY_REPORTS_SCHEDULER"] = "false"
os.environ.pop("REDIS_URL", None)
# Use memory storage for tests (not Redis)
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["RATE_LIMIT_DEFAULT"] = "1000/minute"
os.environ["RATE_LIMIT_DATA_ACCESS"] = "1000/minute"
os.environ["RATE_LIMIT_REPORTS"] = "5/minute"

# Import app after setting env vars
from main import app  # noqa: E402

PATIENT_ID = "patient-0001"
OTHER_PATIENT_ID = "patient-0002"
STAFF_ID = "staff-0001"
ADMIN_ID = "admin-0001"

TOKENS = {
    "patient-token": PATIENT_ID,
    "other-token": OTHER_PATIENT_ID,
    "staff-token": STAFF_ID,
    "admin-token": ADMIN_ID,
}


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class FakeQueryBuilder:
    """
    Chainable query builder over an in-memory table.

    Supports the subset used by the storage adapters:
    select / eq / in_ / order / limit / upsert / execute.
    """

    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._filters = []
        self._order = None
        self._limit = None
        self._upsert_rows = None
        self._on_conflict = None

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def upsert(self, rows, on_conflict=None):
        self._upsert_rows = rows if isinstance(rows, list) else [rows]
        self._on_conflict = on_conflict
        return self

    async def execute(self):
        if self._table in self._db.failing_tables:
            raise APIError({"message": "upstream failure", "code": "XX000"})

        rows = self._db.tables.setdefault(self._table, [])
        response = MagicMock()

        if self._upsert_rows is not None:
            keys = (self._on_conflict or "id").split(",")
            for incoming in self._upsert_rows:
                incoming = copy.deepcopy(incoming)
                for index, existing in enumerate(rows):
                    if all(existing.get(k) == incoming.get(k) for k in keys):
                        rows[index] = incoming
                        break
                else:
                    rows.append(incoming)
                self._db.writes.append((self._table, incoming))
            response.data = copy.deepcopy(self._upsert_rows)
            return response

        selected = [row for row in rows if all(f(row) for f in self._filters)]
        if self._order is not None:
            column, desc = self._order
            selected.sort(key=lambda row: row.get(column), reverse=desc)
        if self._limit is not None:
            selected = selected[: self._limit]
        response.data = copy.deepcopy(selected)
        return response


class FakeAuth:
    def __init__(self, tokens: Dict[str, str]):
        self._tokens = tokens
        self.calls = 0

    async def get_user(self, token: str):
        self.calls += 1
        if token not in self._tokens:
            raise Exception("invalid JWT")
        response = MagicMock()
        response.user = MagicMock()
        response.user.id = self._tokens[token]
        return response


class FakeSupabase:
    """In-memory replacement for ``supabase.AsyncClient``."""

    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.writes = []
        self.failing_tables = set()
        self.auth = FakeAuth(dict(TOKENS))

    def table(self, name: str) -> FakeQueryBuilder:
        return FakeQueryBuilder(self, name)

    def add_profile(
        self,
        user_id: str,
        role: str = "USER",
        status: str = "ACTIVE",
        name: Optional[str] = None,
    ) -> dict:
        row = {
            "id": user_id,
            "name": name or user_id,
            "email": f"{user_id}@example.com",
            "role": role,
            "status": status,
            "photo_url": None,
        }
        self.tables.setdefault("profiles", []).append(row)
        return row

    def add_day(self, user_id: str, day: str, mood_ids: List[str], hour: int = 12):
        """Store moods for ``day`` (YYYY-MM-DD) directly in ``mood_months``."""
        month_id, day_key = day[:7], day[8:10]
        rows = self.tables.setdefault("mood_months", [])
        for row in rows:
            if row["user_id"] == user_id and row["month_id"] == month_id:
                break
        else:
            row = {
                "user_id": user_id,
                "month_id": month_id,
                "year": int(month_id[:4]),
                "month": int(month_id[5:7]),
                "days": {},
                "schema_version": 1,
                "created_at": None,
                "updated_at": None,
            }
            rows.append(row)
        row["days"][day_key] = {
            "moods": [
                {"moodId": mood_id, "note": None, "at": f"{day}T{hour:02d}:{minute:02d}:00.000Z"}
                for minute, mood_id in enumerate(mood_ids)
            ]
        }


@pytest.fixture
def fake_db():
    db = FakeSupabase()
    db.add_profile(PATIENT_ID, name="Ana")
    db.add_profile(OTHER_PATIENT_ID, name="Bruno")
    db.add_profile(STAFF_ID, role="STAFF", name="Staff")
    db.add_profile(ADMIN_ID, role="ADMIN", name="Admin")
    return db


@pytest.fixture
def client(fake_db):
    """
    Test client wired to the in-memory Supabase fake with the auth cache disabled.
    """
    from api.dependencies import get_supabase_service_client
    from api.rate_limiter import limiter
    from services.auth_cache import AuthContextCache, get_auth_cache

    # MemoryStorage has no public API to clear every counter
    limiter._storage.storage.clear()

    app.dependency_overrides.clear()

    async def override_get_supabase_service_client():
        return fake_db

    disabled_cache = AuthContextCache(redis_url="")

    app.dependency_overrides[get_supabase_service_client] = override_get_supabase_service_client
    app.dependency_overrides[get_auth_cache] = lambda: disabled_cache

    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
