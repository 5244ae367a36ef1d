"""
Pydantic models for report filters and the three report types.
"""
from typing import List, Optional

from pydantic import Field

from .base import CamelModel
from .moods import SentimentBreakdown, TopMood


class ReportFilters(CamelModel):
    """Optional window filters shared by every report type."""

    start_date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    end_date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    months: Optional[int] = Field(default=None, ge=1, le=12)
    include_inactive: bool = False


class SentimentDistribution(CamelModel):
    positive: float = 0
    neutral: float = 0
    negative: float = 0


class MetricTotals(CamelModel):
    wellbeing: float = 0
    risk: float = 0
    valence: float = 0


class AggregatedMetrics(CamelModel):
    """Weighted summary of a slice of a timeline."""

    average_wellbeing: float = 0
    average_risk: float = 0
    average_valence: float = 0
    total_entries: int = 0
    days_tracked: int = 0
    last_entry_at: Optional[str] = None
    sentiment_distribution: SentimentDistribution = Field(default_factory=SentimentDistribution)
    totals: MetricTotals = Field(default_factory=MetricTotals)


class PatientSummary(CamelModel):
    user_id: str
    name: str
    email: str
    photo_url: Optional[str] = None
    average_wellbeing: float
    average_risk: float
    average_valence: float
    total_entries: int
    days_tracked: int
    last_entry_at: Optional[str] = None
    sentiment_distribution: SentimentDistribution


# ---------------------------------------------------------------------------
# Weekly report
# ---------------------------------------------------------------------------

class WeeklyReportSummary(CamelModel):
    total_patients: int
    active_patients: int
    total_entries: int
    average_wellbeing: float
    average_risk: float
    average_valence: float


class WeeklyTrends(CamelModel):
    improving: int = 0
    stable: int = 0
    declining: int = 0


class WeeklyReport(CamelModel):
    report_id: str
    week_start: str
    week_end: str
    week_number: int
    year: int
    generated_at: str
    summary: WeeklyReportSummary
    patients: List[PatientSummary] = Field(default_factory=list)
    trends: WeeklyTrends = Field(default_factory=WeeklyTrends)


# ---------------------------------------------------------------------------
# Patient evolution
# ---------------------------------------------------------------------------

class EvolutionPeriod(CamelModel):
    from_: str = Field(..., alias="from")
    to: str
    months: List[str]


class EvolutionSummary(CamelModel):
    total_entries: int
    days_tracked: int
    current_streak: int
    longest_streak: int
    average_wellbeing: float
    average_risk: float
    average_valence: float


class WeeklyEvolutionPoint(CamelModel):
    week_start: str
    week_end: str
    average_wellbeing: float
    average_risk: float
    average_valence: float
    entries_count: int


class MonthlyEvolutionPoint(CamelModel):
    month: str
    average_wellbeing: float
    average_risk: float
    average_valence: float
    entries_count: int


class PatientEvolution(CamelModel):
    weekly: List[WeeklyEvolutionPoint] = Field(default_factory=list)
    monthly: List[MonthlyEvolutionPoint] = Field(default_factory=list)


class EvolutionTimelinePoint(CamelModel):
    """Per-day wellbeing/risk normalised by that day's own mood count."""

    date: str
    day_score: float
    wellbeing: float
    risk: float
    moods_count: int


class PatientEvolutionReport(CamelModel):
    user_id: str
    patient_name: str
    email: str
    photo_url: Optional[str] = None
    period: EvolutionPeriod
    summary: EvolutionSummary
    evolution: PatientEvolution
    top_moods: List[TopMood] = Field(default_factory=list)
    sentiment: SentimentBreakdown
    timeline: List[EvolutionTimelinePoint] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

class GroupingPeriod(CamelModel):
    from_: str = Field(..., alias="from")
    to: str


class PatientGroups(CamelModel):
    best: List[PatientSummary] = Field(default_factory=list)
    average: List[PatientSummary] = Field(default_factory=list)
    worst: List[PatientSummary] = Field(default_factory=list)


class BestThreshold(CamelModel):
    min_wellbeing: float
    max_risk: float


class WorstThreshold(CamelModel):
    max_wellbeing: float
    min_risk: float


class GroupingThresholds(CamelModel):
    best: BestThreshold
    worst: WorstThreshold


class GroupingStatistics(CamelModel):
    total_patients: int
    best_count: int = 0
    average_count: int = 0
    worst_count: int = 0


class PatientGrouping(CamelModel):
    generated_at: str
    period: GroupingPeriod
    groups: PatientGroups
    thresholds: GroupingThresholds
    statistics: GroupingStatistics
