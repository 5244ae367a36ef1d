# services/mood_store.py
"""
Mood records stored as one document per user and calendar month.

Each row of ``mood_months`` holds a ``days`` JSONB map ``{"DD": {"moods": [...]}}``.
Rows are validated with pydantic at this boundary, so every caller works with
typed ``MonthDocument`` objects and never with raw PostgREST payloads.

There are no transactions: writes are read-modify-write and last write wins.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import AsyncClient

from api.schemas.moods import (
    MONTH_DOCUMENT_SCHEMA_VERSION,
    DayMoods,
    DeleteDayResult,
    MonthDocument,
    MonthMoods,
    MoodSelection,
    MoodSelectionInput,
    StoredDay,
    StoredMood,
    UpsertDayResult,
    YearMoods,
)
from api.utils import hash_user_id_for_logging
from services.errors import (
    InvalidInputError,
    LimitExceededError,
    NotFoundError,
    UpstreamFailureError,
)
from services.user_directory import UserDirectory

logger = logging.getLogger("mood-api.moods")

MOOD_MONTHS_TABLE = "mood_months"
MAX_MOODS_PER_DAY = 3


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_timestamp(value: Optional[str]) -> str:
    """ISO-8601 UTC with milliseconds and ``Z``; missing or invalid input becomes now."""
    if not value:
        return _now_iso()
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return _now_iso()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (
        parsed.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _day_key(day: str) -> str:
    return str(int(day)).zfill(2)


def _to_selection(mood: StoredMood) -> MoodSelection:
    return MoodSelection(mood_id=mood.mood_id, note=mood.note, at=mood.at)


class MoodStore:
    """Per-user, per-month mood documents in the ``mood_months`` table."""

    def __init__(self, client: AsyncClient, user_directory: UserDirectory):
        self._client = client
        self._users = user_directory

    # ------------------------------------------------------------------
    # Raw document access
    # ------------------------------------------------------------------

    async def fetch_document(self, user_id: str, month_id: str) -> Optional[MonthDocument]:
        try:
            response = await (
                self._client.table(MOOD_MONTHS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .eq("month_id", month_id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            logger.error(
                f"Failed to read {month_id} for user {hash_user_id_for_logging(user_id)}: {e}"
            )
            raise UpstreamFailureError("Failed to read mood records") from e

        if not response.data:
            return None
        return self._validate(response.data[0])

    async def fetch_documents(
        self, user_id: str, month_ids: Sequence[str]
    ) -> List[Optional[MonthDocument]]:
        """Documents aligned with ``month_ids``; None where a month was never written."""
        if not month_ids:
            return []
        try:
            response = await (
                self._client.table(MOOD_MONTHS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .in_("month_id", list(month_ids))
                .execute()
            )
        except APIError as e:
            logger.error(
                f"Failed to read months for user {hash_user_id_for_logging(user_id)}: {e}"
            )
            raise UpstreamFailureError("Failed to read mood records") from e

        by_month = {}
        for row in response.data or []:
            document = self._validate(row)
            by_month[document.month_id] = document
        return [by_month.get(month_id) for month_id in month_ids]

    async def _save_document(self, document: MonthDocument) -> None:
        payload = document.model_dump(mode="json", by_alias=True)
        try:
            await (
                self._client.table(MOOD_MONTHS_TABLE)
                .upsert(payload, on_conflict="user_id,month_id")
                .execute()
            )
        except APIError as e:
            logger.error(
                f"Failed to save {document.month_id} for user "
                f"{hash_user_id_for_logging(document.user_id)}: {e}"
            )
            raise UpstreamFailureError("Failed to save mood records") from e

    @staticmethod
    def _validate(row: dict) -> MonthDocument:
        try:
            return MonthDocument.model_validate(row)
        except ValidationError as e:
            logger.error(f"Malformed mood document {row.get('month_id')}: {e}")
            raise UpstreamFailureError("Stored mood document is malformed") from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_month(self, user_id: str, month_id: str) -> MonthMoods:
        year, month = (int(part) for part in month_id.split("-"))
        document = await self.fetch_document(user_id, month_id)
        if document is None:
            return MonthMoods(month_id=month_id, year=year, month=month, days={})
        return MonthMoods(
            month_id=month_id,
            year=year,
            month=month,
            days=document.days,
            updated_at=document.updated_at,
        )

    async def list_year(self, user_id: str, year: int) -> YearMoods:
        try:
            response = await (
                self._client.table(MOOD_MONTHS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .eq("year", year)
                .order("month")
                .execute()
            )
        except APIError as e:
            logger.error(
                f"Failed to list {year} for user {hash_user_id_for_logging(user_id)}: {e}"
            )
            raise UpstreamFailureError("Failed to read mood records") from e

        documents = sorted(
            (self._validate(row) for row in response.data or []),
            key=lambda doc: doc.month,
        )
        return YearMoods(
            year=year,
            months=[
                MonthMoods(
                    month_id=doc.month_id,
                    year=doc.year,
                    month=doc.month,
                    days=doc.days,
                    updated_at=doc.updated_at,
                )
                for doc in documents
            ],
        )

    async def get_day(self, user_id: str, month_id: str, day: str) -> DayMoods:
        key = _day_key(day)
        document = await self.fetch_document(user_id, month_id)
        if document is None:
            raise NotFoundError("Month not found")
        stored_day = document.days.get(key)
        if stored_day is None:
            raise NotFoundError("Day not found")
        return DayMoods(
            month_id=month_id,
            day=key,
            moods=[_to_selection(mood) for mood in stored_day.moods],
        )

    async def upsert_day(
        self,
        user_id: str,
        month_id: str,
        day: str,
        moods: Sequence[MoodSelectionInput],
        merge: bool = False,
    ) -> UpsertDayResult:
        """
        Write the moods of one day.

        ``merge=True`` appends to the moods already stored for the day,
        otherwise they are replaced. Nothing is written when validation fails.

        Raises:
            NotFoundError: the user does not exist
            InvalidInputError: no moods were given
            LimitExceededError: the day would hold more than three moods
        """
        if not moods:
            raise InvalidInputError("At least one mood is required")

        await self._users.get_by_id(user_id)

        key = _day_key(day)
        year, month = (int(part) for part in month_id.split("-"))
        now = _now_iso()

        incoming = [
            StoredMood(
                mood_id=mood.mood_id.strip(),
                note=mood.note,
                at=normalize_timestamp(mood.at),
            )
            for mood in moods
        ]

        document = await self.fetch_document(user_id, month_id)
        if document is None:
            document = MonthDocument(
                user_id=user_id,
                month_id=month_id,
                year=year,
                month=month,
                days={},
                schema_version=MONTH_DOCUMENT_SCHEMA_VERSION,
                created_at=now,
            )

        existing = document.days.get(key)
        combined = (list(existing.moods) if existing and merge else []) + incoming
        if len(combined) > MAX_MOODS_PER_DAY:
            raise LimitExceededError(
                f"A day can hold at most {MAX_MOODS_PER_DAY} moods"
            )

        days = dict(document.days)
        days[key] = StoredDay(moods=combined)
        document = document.model_copy(
            update={
                "days": days,
                "updated_at": now,
                "schema_version": MONTH_DOCUMENT_SCHEMA_VERSION,
            }
        )
        await self._save_document(document)

        logger.info(
            f"Saved {len(incoming)} mood(s) for {month_id}-{key} "
            f"(user={hash_user_id_for_logging(user_id)}, merge={merge})"
        )
        return UpsertDayResult(
            month_id=month_id,
            day=key,
            saved=[_to_selection(mood) for mood in combined],
        )

    async def delete_day(self, user_id: str, month_id: str, day: str) -> DeleteDayResult:
        key = _day_key(day)
        document = await self.fetch_document(user_id, month_id)
        if document is None or key not in document.days:
            raise NotFoundError("Day not found")

        days = {k: v for k, v in document.days.items() if k != key}
        await self._save_document(
            document.model_copy(update={"days": days, "updated_at": _now_iso()})
        )
        logger.info(
            f"Deleted {month_id}-{key} for user {hash_user_id_for_logging(user_id)}"
        )
        return DeleteDayResult(month_id=month_id, day=key)

    async def delete_day_mood(
        self, user_id: str, month_id: str, day: str, mood_id: str
    ) -> DeleteDayResult:
        """Remove every occurrence of ``mood_id`` from a day; an emptied day is removed."""
        key = _day_key(day)
        document = await self.fetch_document(user_id, month_id)
        stored_day = document.days.get(key) if document else None
        if stored_day is None:
            raise NotFoundError("Day not found")

        remaining = [mood for mood in stored_day.moods if mood.mood_id != mood_id]
        if len(remaining) == len(stored_day.moods):
            raise NotFoundError("Mood not found for this day")

        days = dict(document.days)
        if remaining:
            days[key] = StoredDay(moods=remaining)
        else:
            del days[key]

        await self._save_document(
            document.model_copy(update={"days": days, "updated_at": _now_iso()})
        )
        return DeleteDayResult(month_id=month_id, day=key)
