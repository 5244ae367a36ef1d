"""
Pydantic models for mood records, timelines and mood analytics.

``MonthDocument`` / ``StoredMood`` describe the stored shape of a row in the
``mood_months`` table and are validated at the storage adapter boundary.
The remaining models are API payloads.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from analysis.mood_catalog import MoodTone
from .base import CamelModel

MONTH_DOCUMENT_SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Stored shape
# ---------------------------------------------------------------------------

class StoredMood(BaseModel):
    """One mood inside the ``days`` JSONB column."""

    model_config = ConfigDict(populate_by_name=True)

    mood_id: str = Field(..., alias="moodId")
    note: Optional[str] = None
    at: Optional[str] = None


class StoredDay(BaseModel):
    # no length cap on read: legacy rows may hold more than three moods
    moods: List[StoredMood] = Field(default_factory=list)


class MonthDocument(BaseModel):
    """Row of the ``mood_months`` table (one user, one calendar month)."""

    user_id: str
    month_id: str
    year: int
    month: int
    days: Dict[str, StoredDay] = Field(default_factory=dict)
    schema_version: int = MONTH_DOCUMENT_SCHEMA_VERSION
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class MoodSelectionInput(CamelModel):
    mood_id: str = Field(..., min_length=1, max_length=64)
    note: Optional[str] = Field(default=None, max_length=2000)
    at: Optional[str] = Field(default=None, description="ISO-8601 timestamp")


class UpsertDayMoodRequest(CamelModel):
    moods: List[MoodSelectionInput] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class MoodSelection(CamelModel):
    mood_id: str
    note: Optional[str] = None
    at: Optional[str] = None


class MonthMoods(CamelModel):
    month_id: str
    year: int
    month: int
    days: Dict[str, StoredDay] = Field(default_factory=dict)
    updated_at: Optional[str] = None


class YearMoods(CamelModel):
    year: int
    months: List[MonthMoods] = Field(default_factory=list)


class DayMoods(CamelModel):
    month_id: str
    day: str
    moods: List[MoodSelection] = Field(default_factory=list)


class UpsertDayResult(CamelModel):
    month_id: str
    day: str
    saved: List[MoodSelection]
    ok: bool = True


class DeleteDayResult(CamelModel):
    month_id: str
    day: str
    deleted: bool = True


class TimelineMood(CamelModel):
    mood_id: str
    tone: MoodTone
    at: Optional[str] = None
    note: Optional[str] = None


class MoodTimelineEntry(CamelModel):
    """One tracked day; ``day_score`` is the mean valence of its moods."""

    date: str
    day_score: float
    moods: List[TimelineMood] = Field(default_factory=list)


class MoodTimeline(CamelModel):
    months: List[str]
    entries: List[MoodTimelineEntry] = Field(default_factory=list)


class SentimentBreakdown(CamelModel):
    positive: float = 0
    neutral: float = 0
    negative: float = 0
    wellbeing_score: float = 0
    risk_score: float = 0


class TopMood(CamelModel):
    mood_id: str
    label: str
    tone: MoodTone
    count: int
    percentage: float


class AnalyticsPeriod(CamelModel):
    focus_month: str
    months: List[str]
    from_: str = Field(..., alias="from")
    to: str


class AnalyticsSummary(CamelModel):
    total_entries: int = 0
    days_tracked: int = 0
    unique_moods: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_entry_at: Optional[str] = None


class MoodAnalytics(CamelModel):
    period: AnalyticsPeriod
    summary: AnalyticsSummary
    sentiment: SentimentBreakdown
    top_moods: List[TopMood] = Field(default_factory=list)
    timeline: List[MoodTimelineEntry] = Field(default_factory=list)


class MoodProfileOut(CamelModel):
    mood_id: str
    label: str
    valence: float
    activation: float
    dominance: float
    risk_weight: float
    wellbeing_weight: float
    tone: MoodTone
