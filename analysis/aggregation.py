"""
Aggregation engine for mood reports.

Pure functions that reduce timelines into weighted metrics and classify
patients. Nothing here performs I/O; the report service feeds these functions
with timelines fetched from the mood store.

Scales:
- wellbeing / risk averages are percentages (0-100, 2 decimals)
- valence averages stay on the -1..1 scale (2 decimals)
- sentiment shares are percentages (1 decimal)
"""
import logging
import os
from datetime import timedelta
from typing import Dict, List, Literal, Sequence, Tuple

import numpy as np

from analysis.mood_catalog import MoodTone, get_mood_profile
from analysis.periods import DateRange, format_date, format_month, iter_month_starts, week_bounds
from analysis.timeline import filter_by_range
from api.schemas.moods import MoodTimelineEntry, SentimentBreakdown, TopMood
from api.schemas.reports import (
    AggregatedMetrics,
    BestThreshold,
    EvolutionTimelinePoint,
    GroupingThresholds,
    MetricTotals,
    MonthlyEvolutionPoint,
    PatientGroups,
    PatientSummary,
    SentimentDistribution,
    WeeklyEvolutionPoint,
    WorstThreshold,
)

logger = logging.getLogger("mood-api.aggregation")

Trend = Literal["improving", "stable", "declining"]

# Wellbeing delta (percentage points) between two consecutive weeks
TREND_DELTA_THRESHOLD = float(os.getenv("REPORT_TREND_DELTA", "5"))
# Percentiles of the population used as dynamic grouping cutoffs
BEST_PERCENTILE = float(os.getenv("REPORT_BEST_PERCENTILE", "0.75"))
WORST_PERCENTILE = float(os.getenv("REPORT_WORST_PERCENTILE", "0.25"))

TOP_MOODS_LIMIT = 5

DEFAULT_THRESHOLDS = GroupingThresholds(
    best=BestThreshold(min_wellbeing=70, max_risk=30),
    worst=WorstThreshold(max_wellbeing=40, min_risk=60),
)

logger.info(
    f"Report thresholds configured - trend delta: {TREND_DELTA_THRESHOLD}, "
    f"percentiles: {BEST_PERCENTILE}/{WORST_PERCENTILE}"
)


def _pct(value: float, total: int) -> float:
    return 0 if total == 0 else round(value / total * 100, 1)


def summarize_timeline(entries: Sequence[MoodTimelineEntry]) -> AggregatedMetrics:
    """
    Weighted summary of every mood occurrence in ``entries``.

    Empty input yields all-zero metrics and ``last_entry_at=None``.
    """
    total_wellbeing = 0.0
    total_risk = 0.0
    total_valence = 0.0
    total_entries = 0
    last_entry_at = None
    sentiments = {"positive": 0, "neutral": 0, "negative": 0}

    for day in entries:
        for mood in day.moods:
            profile = get_mood_profile(mood.mood_id)
            total_wellbeing += profile.wellbeing_weight
            total_risk += profile.risk_weight
            total_valence += profile.valence
            total_entries += 1

            # ISO-8601 UTC strings order lexicographically
            if mood.at and (last_entry_at is None or mood.at > last_entry_at):
                last_entry_at = mood.at

            sentiments[mood.tone if mood.tone in sentiments else "neutral"] += 1

    if last_entry_at is None and entries:
        last_entry_at = f"{entries[-1].date}T00:00:00.000Z"

    if total_entries:
        average_wellbeing = round(total_wellbeing / total_entries * 100, 2)
        average_risk = round(total_risk / total_entries * 100, 2)
        average_valence = round(total_valence / total_entries, 2)
    else:
        average_wellbeing = average_risk = average_valence = 0

    return AggregatedMetrics(
        average_wellbeing=average_wellbeing,
        average_risk=average_risk,
        average_valence=average_valence,
        total_entries=total_entries,
        days_tracked=len(entries),
        last_entry_at=last_entry_at,
        sentiment_distribution=SentimentDistribution(
            positive=_pct(sentiments["positive"], total_entries),
            neutral=_pct(sentiments["neutral"], total_entries),
            negative=_pct(sentiments["negative"], total_entries),
        ),
        totals=MetricTotals(
            wellbeing=total_wellbeing,
            risk=total_risk,
            valence=total_valence,
        ),
    )


def sentiment_breakdown(
    entries: Sequence[MoodTimelineEntry],
    metrics: AggregatedMetrics,
) -> SentimentBreakdown:
    """Tone shares plus wellbeing/risk scores at one decimal."""
    counters = {"positive": 0, "neutral": 0, "negative": 0}
    for day in entries:
        for mood in day.moods:
            counters[mood.tone if mood.tone in counters else "neutral"] += 1

    total = metrics.total_entries
    return SentimentBreakdown(
        positive=_pct(counters["positive"], total),
        neutral=_pct(counters["neutral"], total),
        negative=_pct(counters["negative"], total),
        wellbeing_score=_pct(metrics.totals.wellbeing, total),
        risk_score=_pct(metrics.totals.risk, total),
    )


def top_moods(
    entries: Sequence[MoodTimelineEntry],
    total_entries: int,
    limit: int = TOP_MOODS_LIMIT,
) -> List[TopMood]:
    """Most frequent moods; ties keep first-seen order."""
    histogram: Dict[str, Tuple[int, str, MoodTone]] = {}
    for day in entries:
        for mood in day.moods:
            count, label, tone = histogram.get(
                mood.mood_id, (0, get_mood_profile(mood.mood_id).label, mood.tone)
            )
            histogram[mood.mood_id] = (count + 1, label, tone)

    ranked = sorted(histogram.items(), key=lambda item: item[1][0], reverse=True)
    return [
        TopMood(
            mood_id=mood_id,
            label=label,
            tone=tone,
            count=count,
            percentage=_pct(count, total_entries),
        )
        for mood_id, (count, label, tone) in ranked[:limit]
    ]


def weekly_evolution(
    entries: Sequence[MoodTimelineEntry],
    date_range: DateRange,
) -> List[WeeklyEvolutionPoint]:
    """
    Monday-aligned weekly buckets covering every week the range touches.

    The first and last buckets are clipped to the range bounds.
    """
    points = []
    cursor, _ = week_bounds(date_range.start)
    while cursor <= date_range.end:
        bounded_start = max(cursor, date_range.start)
        bounded_end = min(cursor + timedelta(days=6), date_range.end)
        metrics = summarize_timeline(filter_by_range(entries, bounded_start, bounded_end))
        points.append(
            WeeklyEvolutionPoint(
                week_start=format_date(bounded_start),
                week_end=format_date(bounded_end),
                average_wellbeing=metrics.average_wellbeing,
                average_risk=metrics.average_risk,
                average_valence=metrics.average_valence,
                entries_count=metrics.total_entries,
            )
        )
        cursor += timedelta(days=7)
    return points


def monthly_evolution(
    entries: Sequence[MoodTimelineEntry],
    date_range: DateRange,
) -> List[MonthlyEvolutionPoint]:
    """Calendar-month buckets; entries match by their ``YYYY-MM`` prefix."""
    points = []
    for month_start in iter_month_starts(date_range.start, date_range.end):
        label = format_month(month_start)
        metrics = summarize_timeline([e for e in entries if e.date.startswith(label)])
        points.append(
            MonthlyEvolutionPoint(
                month=label,
                average_wellbeing=metrics.average_wellbeing,
                average_risk=metrics.average_risk,
                average_valence=metrics.average_valence,
                entries_count=metrics.total_entries,
            )
        )
    return points


def daily_points(entries: Sequence[MoodTimelineEntry]) -> List[EvolutionTimelinePoint]:
    """
    Per-day wellbeing and risk.

    Each day is normalised by its own mood count, not by the period total.
    """
    points = []
    for day in entries:
        wellbeing = 0.0
        risk = 0.0
        for mood in day.moods:
            profile = get_mood_profile(mood.mood_id)
            wellbeing += profile.wellbeing_weight
            risk += profile.risk_weight
        count = len(day.moods)
        points.append(
            EvolutionTimelinePoint(
                date=day.date,
                day_score=day.day_score,
                wellbeing=round(wellbeing / count * 100, 2) if count else 0,
                risk=round(risk / count * 100, 2) if count else 0,
                moods_count=count,
            )
        )
    return points


def classify_trend(
    current_wellbeing: float,
    previous_wellbeing: float,
    threshold: float = TREND_DELTA_THRESHOLD,
) -> Trend:
    delta = current_wellbeing - previous_wellbeing
    if delta > threshold:
        return "improving"
    if delta < -threshold:
        return "declining"
    return "stable"


def population_averages(summaries: Sequence[PatientSummary]) -> Dict[str, float]:
    """
    Mean of per-patient averages (not re-derived from raw totals).

    Divides by ``len(summaries) or 1`` so an empty population yields zeros.
    """
    denominator = len(summaries) or 1
    wellbeing = np.array([s.average_wellbeing for s in summaries], dtype=float)
    risk = np.array([s.average_risk for s in summaries], dtype=float)
    valence = np.array([s.average_valence for s in summaries], dtype=float)
    return {
        "average_wellbeing": round(float(wellbeing.sum()) / denominator, 2),
        "average_risk": round(float(risk.sum()) / denominator, 2),
        "average_valence": round(float(valence.sum()) / denominator, 2),
    }


def percentile_value(values: Sequence[float], percentile: float) -> float:
    """Value at index ``floor(n * percentile)`` of the ascending values."""
    ordered = np.sort(np.asarray(values, dtype=float))
    index = int(np.floor(len(ordered) * percentile))
    return float(ordered[min(index, len(ordered) - 1)])


def grouping_thresholds(
    summaries: Sequence[PatientSummary],
    best_percentile: float = BEST_PERCENTILE,
    worst_percentile: float = WORST_PERCENTILE,
) -> GroupingThresholds:
    """
    Dynamic cutoffs from the population's own distribution.

    Falls back to the fixed defaults when there is nobody to compare.
    """
    if not summaries:
        return DEFAULT_THRESHOLDS

    wellbeing = [s.average_wellbeing for s in summaries]
    risk = [s.average_risk for s in summaries]
    return GroupingThresholds(
        best=BestThreshold(
            min_wellbeing=percentile_value(wellbeing, best_percentile),
            max_risk=percentile_value(risk, worst_percentile),
        ),
        worst=WorstThreshold(
            max_wellbeing=percentile_value(wellbeing, worst_percentile),
            min_risk=percentile_value(risk, best_percentile),
        ),
    )


def classify_patients(
    summaries: Sequence[PatientSummary],
    thresholds: GroupingThresholds,
) -> PatientGroups:
    """
    Split patients into best / average / worst.

    Best is checked first, so a patient matching both is best. Best and
    average are ordered by wellbeing desc then risk asc; worst by wellbeing
    asc then risk desc (most at-risk first).
    """
    best, average, worst = [], [], []
    for summary in summaries:
        is_best = (
            summary.average_wellbeing >= thresholds.best.min_wellbeing
            and summary.average_risk <= thresholds.best.max_risk
        )
        is_worst = (
            summary.average_wellbeing <= thresholds.worst.max_wellbeing
            and summary.average_risk >= thresholds.worst.min_risk
        )
        if is_best:
            best.append(summary)
        elif is_worst:
            worst.append(summary)
        else:
            average.append(summary)

    best.sort(key=lambda s: (-s.average_wellbeing, s.average_risk))
    average.sort(key=lambda s: (-s.average_wellbeing, s.average_risk))
    worst.sort(key=lambda s: (s.average_wellbeing, -s.average_risk))
    return PatientGroups(best=best, average=average, worst=worst)


def rounded_thresholds(thresholds: GroupingThresholds) -> GroupingThresholds:
    return GroupingThresholds(
        best=BestThreshold(
            min_wellbeing=round(thresholds.best.min_wellbeing, 2),
            max_risk=round(thresholds.best.max_risk, 2),
        ),
        worst=WorstThreshold(
            max_wellbeing=round(thresholds.worst.max_wellbeing, 2),
            min_risk=round(thresholds.worst.min_risk, 2),
        ),
    )
