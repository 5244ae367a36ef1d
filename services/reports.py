# services/reports.py
"""
Report service: weekly snapshots, patient evolution and patient grouping.

Orchestrates the user directory, the timeline builder and the report store;
all numeric work is delegated to ``analysis.aggregation``.
"""
import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional

from analysis.aggregation import (
    classify_patients,
    classify_trend,
    daily_points,
    grouping_thresholds,
    monthly_evolution,
    population_averages,
    rounded_thresholds,
    sentiment_breakdown,
    summarize_timeline,
    top_moods,
    weekly_evolution,
)
from analysis.periods import format_date, iso_week, parse_date_only, resolve_date_range, week_bounds
from analysis.timeline import filter_by_range
from api.schemas.reports import (
    EvolutionPeriod,
    EvolutionSummary,
    GroupingPeriod,
    GroupingStatistics,
    PatientEvolution,
    PatientEvolutionReport,
    PatientGrouping,
    PatientSummary,
    ReportFilters,
    WeeklyReport,
    WeeklyReportSummary,
    WeeklyTrends,
)
from api.schemas.users import UserProfile, UserStatus
from api.utils import hash_user_id_for_logging
from services.errors import InvalidInputError
from services.report_store import DEFAULT_LIST_LIMIT, WeeklyReportStore
from services.timeline import TimelineBuilder
from services.user_directory import DEFAULT_LIST_LIMIT as PATIENT_LIST_LIMIT
from services.user_directory import UserDirectory

logger = logging.getLogger("mood-api.reports")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ReportService:
    """
    Builds the three report types.

    ``clock`` returns the current UTC datetime; tests inject a fixed one.
    """

    def __init__(
        self,
        timeline_builder: TimelineBuilder,
        user_directory: UserDirectory,
        report_store: WeeklyReportStore,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._timelines = timeline_builder
        self._users = user_directory
        self._reports = report_store
        self._clock = clock

    def _today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    async def generate_patient_summary(
        self,
        user: UserProfile,
        filters: ReportFilters,
    ) -> Optional[PatientSummary]:
        """Summary of one patient over the filter window; None without entries."""
        date_range = resolve_date_range(
            filters.start_date, filters.end_date, filters.months, self._today()
        )
        timeline = await self._timelines.build_timeline(
            user.id, date_range.focus_month, date_range.months_range
        )
        entries = filter_by_range(timeline.entries, date_range.start, date_range.end)
        if not entries:
            return None

        metrics = summarize_timeline(entries)
        return PatientSummary(
            user_id=user.id,
            name=user.name,
            email=user.email,
            photo_url=user.photo_url,
            average_wellbeing=metrics.average_wellbeing,
            average_risk=metrics.average_risk,
            average_valence=metrics.average_valence,
            total_entries=metrics.total_entries,
            days_tracked=metrics.days_tracked,
            last_entry_at=metrics.last_entry_at,
            sentiment_distribution=metrics.sentiment_distribution,
        )

    async def _summaries(
        self, patients: List[UserProfile], filters: ReportFilters
    ) -> List[Optional[PatientSummary]]:
        return list(
            await asyncio.gather(
                *(self.generate_patient_summary(patient, filters) for patient in patients)
            )
        )

    # ------------------------------------------------------------------
    # Weekly report
    # ------------------------------------------------------------------

    async def generate_weekly_report(self, target_date: Optional[str] = None) -> WeeklyReport:
        """
        Build and persist the snapshot of the Monday..Sunday week of ``target_date``.

        The id ``week-<isoYear>-<isoWeek>`` makes regeneration idempotent.
        """
        if target_date:
            target = parse_date_only(target_date)
            if target is None:
                raise InvalidInputError(f"Invalid date: {target_date}")
        else:
            target = self._today()

        week_start, week_end = week_bounds(target)
        iso_year, week_number = iso_week(week_start)
        report_id = f"week-{iso_year}-{week_number}"

        patients = await self._users.list(status=UserStatus.ACTIVE, limit=PATIENT_LIST_LIMIT)
        logger.info(
            f"Generating {report_id} ({format_date(week_start)}..{format_date(week_end)}) "
            f"for {len(patients)} active patient(s)"
        )

        current = await self._summaries(
            patients,
            ReportFilters(start_date=format_date(week_start), end_date=format_date(week_end)),
        )
        with_data = [
            (patient, summary)
            for patient, summary in zip(patients, current)
            if summary is not None
        ]
        summaries = [summary for _, summary in with_data]

        previous = await self._summaries(
            [patient for patient, _ in with_data],
            ReportFilters(
                start_date=format_date(week_start - timedelta(days=7)),
                end_date=format_date(week_end - timedelta(days=7)),
            ),
        )

        counts = {"improving": 0, "stable": 0, "declining": 0}
        for summary, previous_summary in zip(summaries, previous):
            if previous_summary is None:
                counts["stable"] += 1
            else:
                counts[classify_trend(summary.average_wellbeing, previous_summary.average_wellbeing)] += 1
        trends = WeeklyTrends(**counts)

        averages = population_averages(summaries)
        report = WeeklyReport(
            report_id=report_id,
            week_start=format_date(week_start),
            week_end=format_date(week_end),
            week_number=week_number,
            year=iso_year,
            generated_at=_iso(self._clock()),
            summary=WeeklyReportSummary(
                total_patients=len(patients),
                active_patients=len(summaries),
                total_entries=sum(s.total_entries for s in summaries),
                **averages,
            ),
            patients=summaries,
            trends=trends,
        )

        await self._reports.upsert(report)
        logger.info(
            f"Weekly report {report_id} ready: {len(summaries)}/{len(patients)} patient(s) with data, "
            f"trends={trends.model_dump()}"
        )
        return report

    async def get_weekly_report(self, report_id: str) -> Optional[WeeklyReport]:
        return await self._reports.get(report_id)

    async def list_weekly_reports(self, limit: int = DEFAULT_LIST_LIMIT) -> List[WeeklyReport]:
        return await self._reports.list(limit)

    # ------------------------------------------------------------------
    # Patient evolution
    # ------------------------------------------------------------------

    async def generate_patient_evolution_report(
        self,
        user_id: str,
        filters: Optional[ReportFilters] = None,
    ) -> PatientEvolutionReport:
        """
        Weekly, monthly and daily evolution of one patient.

        Raises:
            NotFoundError: the user does not exist
        """
        filters = filters or ReportFilters()
        user = await self._users.get_by_id(user_id)
        date_range = resolve_date_range(
            filters.start_date, filters.end_date, filters.months, self._today()
        )

        analytics = await self._timelines.get_mood_analytics(
            user_id, date_range.focus_month, date_range.months_range
        )
        entries = filter_by_range(analytics.timeline, date_range.start, date_range.end)
        metrics = summarize_timeline(entries)

        logger.debug(
            f"Evolution for user {hash_user_id_for_logging(user_id)}: "
            f"{format_date(date_range.start)}..{format_date(date_range.end)}, "
            f"{metrics.total_entries} entries"
        )

        return PatientEvolutionReport(
            user_id=user.id,
            patient_name=user.name,
            email=user.email,
            photo_url=user.photo_url,
            period=EvolutionPeriod(
                from_=format_date(date_range.start),
                to=format_date(date_range.end),
                months=analytics.period.months,
            ),
            summary=EvolutionSummary(
                total_entries=metrics.total_entries,
                days_tracked=metrics.days_tracked,
                current_streak=analytics.summary.current_streak,
                longest_streak=analytics.summary.longest_streak,
                average_wellbeing=metrics.average_wellbeing,
                average_risk=metrics.average_risk,
                average_valence=metrics.average_valence,
            ),
            evolution=PatientEvolution(
                weekly=weekly_evolution(entries, date_range),
                monthly=monthly_evolution(entries, date_range),
            ),
            top_moods=top_moods(entries, metrics.total_entries),
            sentiment=sentiment_breakdown(entries, metrics),
            timeline=daily_points(entries),
        )

    # ------------------------------------------------------------------
    # Grouping
    # ------------------------------------------------------------------

    async def group_patients_by_emotional_state(
        self,
        filters: Optional[ReportFilters] = None,
    ) -> PatientGrouping:
        """Split patients into best / average / worst using population percentiles."""
        filters = filters or ReportFilters()
        date_range = resolve_date_range(
            filters.start_date, filters.end_date, filters.months, self._today()
        )

        status = None if filters.include_inactive else UserStatus.ACTIVE
        patients = await self._users.list(status=status, limit=PATIENT_LIST_LIMIT)
        summaries = [s for s in await self._summaries(patients, filters) if s is not None]

        thresholds = grouping_thresholds(summaries)
        groups = classify_patients(summaries, thresholds)

        logger.info(
            f"Grouped {len(summaries)}/{len(patients)} patient(s): "
            f"best={len(groups.best)} average={len(groups.average)} worst={len(groups.worst)}"
        )

        return PatientGrouping(
            generated_at=_iso(self._clock()),
            period=GroupingPeriod(
                from_=format_date(date_range.start),
                to=format_date(date_range.end),
            ),
            groups=groups,
            thresholds=rounded_thresholds(thresholds),
            statistics=GroupingStatistics(
                total_patients=len(patients),
                best_count=len(groups.best),
                average_count=len(groups.average),
                worst_count=len(groups.worst),
            ),
        )
