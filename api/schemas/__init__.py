"""Pydantic schemas for API models."""
from .base import CamelModel
from .users import AuthContext, UserProfile, UserRole, UserStatus
from .moods import (
    MonthDocument,
    StoredDay,
    StoredMood,
    MoodSelectionInput,
    UpsertDayMoodRequest,
    MoodSelection,
    MonthMoods,
    YearMoods,
    DayMoods,
    UpsertDayResult,
    DeleteDayResult,
    TimelineMood,
    MoodTimelineEntry,
    MoodTimeline,
    SentimentBreakdown,
    TopMood,
    MoodAnalytics,
    MoodProfileOut,
)
from .reports import (
    ReportFilters,
    AggregatedMetrics,
    PatientSummary,
    WeeklyReport,
    PatientEvolutionReport,
    PatientGrouping,
)


__all__ = [
    "CamelModel",
    "AuthContext",
    "UserProfile",
    "UserRole",
    "UserStatus",
    "MonthDocument",
    "StoredDay",
    "StoredMood",
    "MoodSelectionInput",
    "UpsertDayMoodRequest",
    "MoodSelection",
    "MonthMoods",
    "YearMoods",
    "DayMoods",
    "UpsertDayResult",
    "DeleteDayResult",
    "TimelineMood",
    "MoodTimelineEntry",
    "MoodTimeline",
    "SentimentBreakdown",
    "TopMood",
    "MoodAnalytics",
    "MoodProfileOut",
    "ReportFilters",
    "AggregatedMetrics",
    "PatientSummary",
    "WeeklyReport",
    "PatientEvolutionReport",
    "PatientGrouping",
]
