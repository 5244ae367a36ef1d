"""
Pure helpers that turn stored month documents into a daily mood timeline.
"""
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from analysis.mood_catalog import get_mood_profile, get_mood_tone
from analysis.periods import parse_entry_date
from api.schemas.moods import MonthDocument, MoodTimelineEntry, TimelineMood

MAX_NOTE_LENGTH = 2000


def _pad_day(day: str) -> str:
    return str(day).strip().zfill(2)


def build_timeline_entries(
    months: Sequence[str],
    documents: Sequence[Optional[MonthDocument]],
) -> List[MoodTimelineEntry]:
    """
    Flatten month documents into one entry per tracked day, oldest first.

    ``documents[i]`` is the document for ``months[i]`` or None when the
    month was never written. Days without moods are skipped, not zero-filled.
    """
    buckets: Dict[str, Tuple[List[TimelineMood], float]] = {}

    for month_id, document in zip(months, documents):
        if document is None:
            continue
        for day_key, stored_day in document.days.items():
            if not stored_day.moods:
                continue
            day_date = f"{month_id}-{_pad_day(day_key)}"
            moods, score = buckets.get(day_date, ([], 0.0))

            for stored in stored_day.moods:
                profile = get_mood_profile(stored.mood_id)
                note = None if stored.note is None else str(stored.note)[:MAX_NOTE_LENGTH]
                moods.append(
                    TimelineMood(
                        mood_id=stored.mood_id,
                        tone=get_mood_tone(profile.valence),
                        at=stored.at,
                        note=note,
                    )
                )
                score += profile.valence

            buckets[day_date] = (moods, score)

    entries = [
        MoodTimelineEntry(
            date=day_date,
            day_score=round(score / len(moods), 2) if moods else 0.0,
            moods=moods,
        )
        for day_date, (moods, score) in buckets.items()
    ]
    entries.sort(key=lambda entry: entry.date)
    return entries


def filter_by_range(
    entries: Iterable[MoodTimelineEntry],
    start: date,
    end: date,
) -> List[MoodTimelineEntry]:
    """
    Keep entries whose calendar day falls in ``start..end`` inclusive.

    ``start`` stands for 00:00:00.000 UTC and ``end`` for 23:59:59.999 UTC of
    their days, so comparing whole UTC dates is exact.
    """
    selected = []
    for entry in entries:
        entry_date = parse_entry_date(entry.date)
        if entry_date is not None and start <= entry_date <= end:
            selected.append(entry)
    return selected


def compute_streaks(dates: Iterable[str]) -> Tuple[int, int]:
    """
    (current, longest) runs of consecutive tracked days.

    ``current`` is the run that ends on the most recent tracked day.
    """
    parsed = sorted({d for d in (parse_entry_date(value) for value in dates) if d})
    if not parsed:
        return 0, 0

    one_day = timedelta(days=1)
    longest = 1
    streak = 1
    for previous, current in zip(parsed, parsed[1:]):
        if current - previous == one_day:
            streak += 1
            longest = max(longest, streak)
        else:
            streak = 1

    current_streak = 1
    for index in range(len(parsed) - 1, 0, -1):
        if parsed[index] - parsed[index - 1] == one_day:
            current_streak += 1
        else:
            break

    return current_streak, longest
