# api/moods.py
"""
Mood record endpoints (per user, per month document) and mood analytics.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from analysis.mood_catalog import get_mood_tone, list_mood_profiles
from api.dependencies import get_mood_store, get_timeline_builder, require_scoped_permission
from api.rate_limiter import DATA_ACCESS_RATE_LIMIT, limiter
from api.schemas.moods import (
    DayMoods,
    DeleteDayResult,
    MonthMoods,
    MoodAnalytics,
    MoodProfileOut,
    UpsertDayMoodRequest,
    UpsertDayResult,
    YearMoods,
)
from api.schemas.users import AuthContext
from api.utils import (
    validate_day_or_400,
    validate_month_or_400,
    validate_months_or_400,
    validate_mood_id_or_400,
    validate_user_id_or_400,
    validate_year_or_400,
)
from services.mood_store import MoodStore
from services.timeline import TimelineBuilder

logger = logging.getLogger("mood-api.moods.api")

router = APIRouter(tags=["Moods"])

MOODS_READ = "moods:read"
MOODS_WRITE = "moods:write"


@router.get("/moods/catalog", response_model=List[MoodProfileOut])
def mood_catalog():
    """Every known mood with its weights and tone."""
    return [
        MoodProfileOut(
            mood_id=profile.mood_id,
            label=profile.label,
            valence=profile.valence,
            activation=profile.activation,
            dominance=profile.dominance,
            risk_weight=profile.risk_weight,
            wellbeing_weight=profile.wellbeing_weight,
            tone=get_mood_tone(profile.valence),
        )
        for profile in list_mood_profiles()
    ]


@router.get("/users/{user_id}/moods/analytics", response_model=MoodAnalytics)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def mood_analytics(
    request: Request,
    user_id: str,
    month: Optional[str] = Query(None, description="Focus month YYYY-MM (defaults to current)"),
    range_: Optional[int] = Query(None, alias="range", description="Months to look back (1-12)"),
    context: AuthContext = Depends(require_scoped_permission(MOODS_READ)),
    timelines: TimelineBuilder = Depends(get_timeline_builder),
):
    validate_user_id_or_400(user_id)
    if month is not None:
        validate_month_or_400(month)
    validate_months_or_400(range_, "range")
    return await timelines.get_mood_analytics(user_id, month, range_)


@router.get("/users/{user_id}/moods/year/{year}", response_model=YearMoods)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_year(
    request: Request,
    user_id: str,
    year: str,
    context: AuthContext = Depends(require_scoped_permission(MOODS_READ)),
    store: MoodStore = Depends(get_mood_store),
):
    validate_user_id_or_400(user_id)
    return await store.list_year(user_id, validate_year_or_400(year))


@router.get("/users/{user_id}/moods/month/{month_id}", response_model=MonthMoods)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_month(
    request: Request,
    user_id: str,
    month_id: str,
    context: AuthContext = Depends(require_scoped_permission(MOODS_READ)),
    store: MoodStore = Depends(get_mood_store),
):
    validate_user_id_or_400(user_id)
    return await store.get_month(user_id, validate_month_or_400(month_id, "month_id"))


@router.get("/users/{user_id}/moods/month/{month_id}/days/{day}", response_model=DayMoods)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def get_day(
    request: Request,
    user_id: str,
    month_id: str,
    day: str,
    context: AuthContext = Depends(require_scoped_permission(MOODS_READ)),
    store: MoodStore = Depends(get_mood_store),
):
    validate_user_id_or_400(user_id)
    validate_month_or_400(month_id, "month_id")
    return await store.get_day(user_id, month_id, validate_day_or_400(month_id, day))


async def _upsert(
    store: MoodStore,
    user_id: str,
    month_id: str,
    day: str,
    payload: UpsertDayMoodRequest,
    merge: bool,
) -> UpsertDayResult:
    validate_user_id_or_400(user_id)
    validate_month_or_400(month_id, "month_id")
    day_key = validate_day_or_400(month_id, day)
    moods = [
        mood.model_copy(update={"mood_id": validate_mood_id_or_400(mood.mood_id)})
        for mood in payload.moods
    ]
    return await store.upsert_day(user_id, month_id, day_key, moods, merge=merge)


@router.put("/users/{user_id}/moods/month/{month_id}/days/{day}", response_model=UpsertDayResult)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def replace_day(
    request: Request,
    user_id: str,
    month_id: str,
    day: str,
    payload: UpsertDayMoodRequest,
    context: AuthContext = Depends(require_scoped_permission(MOODS_WRITE)),
    store: MoodStore = Depends(get_mood_store),
):
    """Replace the moods of a day (max 3)."""
    return await _upsert(store, user_id, month_id, day, payload, merge=False)


@router.patch("/users/{user_id}/moods/month/{month_id}/days/{day}", response_model=UpsertDayResult)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def append_to_day(
    request: Request,
    user_id: str,
    month_id: str,
    day: str,
    payload: UpsertDayMoodRequest,
    context: AuthContext = Depends(require_scoped_permission(MOODS_WRITE)),
    store: MoodStore = Depends(get_mood_store),
):
    """Append moods to a day; the total stays capped at 3."""
    return await _upsert(store, user_id, month_id, day, payload, merge=True)


@router.delete("/users/{user_id}/moods/month/{month_id}/days/{day}", response_model=DeleteDayResult)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def delete_day(
    request: Request,
    user_id: str,
    month_id: str,
    day: str,
    context: AuthContext = Depends(require_scoped_permission(MOODS_WRITE)),
    store: MoodStore = Depends(get_mood_store),
):
    validate_user_id_or_400(user_id)
    validate_month_or_400(month_id, "month_id")
    return await store.delete_day(user_id, month_id, validate_day_or_400(month_id, day))


@router.delete(
    "/users/{user_id}/moods/month/{month_id}/days/{day}/moods/{mood_id}",
    response_model=DeleteDayResult,
)
@limiter.limit(DATA_ACCESS_RATE_LIMIT)
async def delete_day_mood(
    request: Request,
    user_id: str,
    month_id: str,
    day: str,
    mood_id: str,
    context: AuthContext = Depends(require_scoped_permission(MOODS_WRITE)),
    store: MoodStore = Depends(get_mood_store),
):
    validate_user_id_or_400(user_id)
    validate_month_or_400(month_id, "month_id")
    day_key = validate_day_or_400(month_id, day)
    return await store.delete_day_mood(
        user_id, month_id, day_key, validate_mood_id_or_400(mood_id)
    )
