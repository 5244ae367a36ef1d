# api/reports.py
"""
Report endpoints: weekly snapshots, patient evolution and patient grouping.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.dependencies import get_report_service, require_permission, require_scoped_permission
from api.middleware import add_request_metrics
from api.permissions import REPORTS_GENERATE, REPORTS_VIEW_ANY
from api.rate_limiter import DATA_ACCESS_RATE_LIMIT, REPORTS_RATE_LIMIT, limiter
from api.schemas.reports import PatientEvolutionReport, PatientGrouping, ReportFilters, WeeklyReport
from api.schemas.users import AuthContext
from api.utils import (
    hash_user_id_for_logging,
    validate_date_or_400,
    validate_months_or_400,
    validate_user_id_or_400,
)
from services.reports import ReportService

logger = logging.getLogger("mood-api.reports.api")

router = APIRouter(prefix="/reports", tags=["Reports"])


def _filters(
    start_date: Optional[str],
    end_date: Optional[str],
    months: Optional[int],
    include_inactive: bool = False,
) -> ReportFilters:
    return ReportFilters(
        start_date=validate_date_or_400(start_date, "startDate"),
        end_date=validate_date_or_400(end_date, "endDate"),
        months=validate_months_or_400(months),
        include_inactive=include_inactive,
    )


@router.get("/weekly", response_model=List[WeeklyReport])
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def list_weekly_reports(
    request: Request,
    limit: int = Query(50, ge=1, le=200),
    context: AuthContext = Depends(require_permission(REPORTS_VIEW_ANY)),
    service: ReportService = Depends(get_report_service),
):
    """Stored weekly reports, most recently generated first."""
    reports = await service.list_weekly_reports(limit)
    add_request_metrics(request, reports=len(reports))
    return reports


@router.get("/weekly/generate", response_model=WeeklyReport)
@limiter.limit(REPORTS_RATE_LIMIT)
async def generate_weekly_report(
    request: Request,
    date: Optional[str] = Query(None, description="Any day of the target week (YYYY-MM-DD)"),
    context: AuthContext = Depends(require_permission(REPORTS_GENERATE)),
    service: ReportService = Depends(get_report_service),
):
    """
    Generate (or regenerate) the weekly report containing ``date``.

    Defaults to the current week. The stored snapshot is overwritten.
    """
    validate_date_or_400(date, "date")
    logger.info(
        f"Manual weekly report generation by {hash_user_id_for_logging(context.uid)} (date={date})"
    )
    report = await service.generate_weekly_report(date)
    add_request_metrics(
        request,
        report_id=report.report_id,
        patients=report.summary.active_patients,
    )
    return report


@router.get("/weekly/{report_id}", response_model=WeeklyReport)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_weekly_report(
    request: Request,
    report_id: str,
    context: AuthContext = Depends(require_permission(REPORTS_VIEW_ANY)),
    service: ReportService = Depends(get_report_service),
):
    report = await service.get_weekly_report(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.get("/patients/grouping", response_model=PatientGrouping)
@limiter.limit(REPORTS_RATE_LIMIT)
async def group_patients(
    request: Request,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    months: Optional[int] = Query(None),
    include_inactive: bool = Query(False, alias="includeInactive"),
    context: AuthContext = Depends(require_permission(REPORTS_VIEW_ANY)),
    service: ReportService = Depends(get_report_service),
):
    """Best / average / worst patients over the window, with the thresholds used."""
    filters = _filters(start_date, end_date, months, include_inactive)
    grouping = await service.group_patients_by_emotional_state(filters)
    add_request_metrics(request, patients=grouping.statistics.total_patients)
    return grouping


@router.get("/patients/{user_id}/evolution", response_model=PatientEvolutionReport)
@limiter.limit(REPORTS_RATE_LIMIT)
async def patient_evolution(
    request: Request,
    user_id: str,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    months: Optional[int] = Query(None),
    context: AuthContext = Depends(require_scoped_permission("reports:view")),
    service: ReportService = Depends(get_report_service),
):
    validate_user_id_or_400(user_id)
    filters = _filters(start_date, end_date, months)
    return await service.generate_patient_evolution_report(user_id, filters)
