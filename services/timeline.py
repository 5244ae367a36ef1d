# services/timeline.py
"""
Timeline builder: turns a user's month documents into a daily timeline and
the mood analytics view served by ``/users/{user_id}/moods/analytics``.
"""
import logging
from typing import Optional

from analysis.aggregation import sentiment_breakdown, summarize_timeline, top_moods
from analysis.periods import clamp_months, last_day_of_month, month_sequence, sanitize_month
from analysis.timeline import build_timeline_entries, compute_streaks
from api.schemas.moods import (
    AnalyticsPeriod,
    AnalyticsSummary,
    MoodAnalytics,
    MoodTimeline,
)
from api.utils import hash_user_id_for_logging
from services.mood_store import MoodStore

logger = logging.getLogger("mood-api.timeline")


class TimelineBuilder:
    def __init__(self, mood_store: MoodStore):
        self._store = mood_store

    async def build_timeline(
        self,
        user_id: str,
        focus_month: Optional[str] = None,
        months_back: Optional[int] = None,
    ) -> MoodTimeline:
        """
        Daily timeline over the contiguous months ending at ``focus_month``.

        An invalid focus month falls back to the current UTC month and the
        lookback is clamped to 1..12 (default 3). Users without records get an
        empty timeline.
        """
        focus = sanitize_month(focus_month)
        months = month_sequence(focus, clamp_months(months_back))

        documents = await self._store.fetch_documents(user_id, months)
        entries = build_timeline_entries(months, documents)

        logger.debug(
            f"Built timeline for user {hash_user_id_for_logging(user_id)}: "
            f"{len(entries)} day(s) over {months[0]}..{months[-1]}"
        )
        return MoodTimeline(months=months, entries=entries)

    async def get_mood_analytics(
        self,
        user_id: str,
        month: Optional[str] = None,
        months_range: Optional[int] = None,
    ) -> MoodAnalytics:
        focus = sanitize_month(month)
        timeline = await self.build_timeline(user_id, focus, months_range)
        entries = timeline.entries

        metrics = summarize_timeline(entries)
        current_streak, longest_streak = compute_streaks(e.date for e in entries)
        unique_moods = {mood.mood_id for entry in entries for mood in entry.moods}
        stamps = [mood.at for entry in entries for mood in entry.moods if mood.at]

        first_month, last_month = timeline.months[0], timeline.months[-1]
        last_year, last_month_number = (int(part) for part in last_month.split("-"))

        return MoodAnalytics(
            period=AnalyticsPeriod(
                focus_month=focus,
                months=timeline.months,
                from_=f"{first_month}-01",
                to=f"{last_month}-{last_day_of_month(last_year, last_month_number):02d}",
            ),
            summary=AnalyticsSummary(
                total_entries=metrics.total_entries,
                days_tracked=len(entries),
                unique_moods=len(unique_moods),
                current_streak=current_streak,
                longest_streak=longest_streak,
                last_entry_at=max(stamps) if stamps else None,
            ),
            sentiment=sentiment_breakdown(entries, metrics),
            top_moods=top_moods(entries, metrics.total_entries),
            timeline=entries,
        )
