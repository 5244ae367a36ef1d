# services/report_store.py
"""
Persistence of weekly report snapshots in the ``weekly_reports`` table.

The report id ``week-<isoYear>-<isoWeek>`` is the primary key, so
regenerating a week overwrites the previous snapshot.
"""
import logging
from typing import List, Optional

from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import AsyncClient

from api.schemas.reports import WeeklyReport
from services.errors import UpstreamFailureError

logger = logging.getLogger("mood-api.reports.store")

WEEKLY_REPORTS_TABLE = "weekly_reports"
DEFAULT_LIST_LIMIT = 50


class WeeklyReportStore:
    def __init__(self, client: AsyncClient):
        self._client = client

    async def upsert(self, report: WeeklyReport) -> None:
        row = {
            "id": report.report_id,
            "generated_at": report.generated_at,
            "week_start": report.week_start,
            "week_end": report.week_end,
            "year": report.year,
            "week_number": report.week_number,
            "payload": report.model_dump(mode="json", by_alias=True),
        }
        try:
            await self._client.table(WEEKLY_REPORTS_TABLE).upsert(row, on_conflict="id").execute()
        except APIError as e:
            logger.error(f"Failed to store weekly report {report.report_id}: {e}")
            raise UpstreamFailureError("Failed to store weekly report") from e
        logger.info(f"Stored weekly report {report.report_id}")

    async def get(self, report_id: str) -> Optional[WeeklyReport]:
        try:
            response = await (
                self._client.table(WEEKLY_REPORTS_TABLE)
                .select("payload")
                .eq("id", report_id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            logger.error(f"Failed to read weekly report {report_id}: {e}")
            raise UpstreamFailureError("Failed to read weekly report") from e

        if not response.data:
            return None
        return self._validate(response.data[0])

    async def list(self, limit: int = DEFAULT_LIST_LIMIT) -> List[WeeklyReport]:
        """Most recently generated first."""
        try:
            response = await (
                self._client.table(WEEKLY_REPORTS_TABLE)
                .select("payload")
                .order("generated_at", desc=True)
                .limit(limit)
                .execute()
            )
        except APIError as e:
            logger.error(f"Failed to list weekly reports: {e}")
            raise UpstreamFailureError("Failed to list weekly reports") from e

        return [self._validate(row) for row in response.data or []]

    @staticmethod
    def _validate(row: dict) -> WeeklyReport:
        try:
            return WeeklyReport.model_validate(row.get("payload") or {})
        except ValidationError as e:
            logger.error(f"Malformed weekly report row: {e}")
            raise UpstreamFailureError("Stored weekly report is malformed") from e
