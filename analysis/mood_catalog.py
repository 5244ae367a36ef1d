"""
Static catalog of the moods a patient can log.

Every mood maps to psychological-dimension weights used by the report
engine. Lookups never fail: unknown ids get a neutral fallback profile.
"""
from dataclasses import dataclass, replace
from typing import Dict, List, Literal

MoodTone = Literal["positive", "neutral", "negative"]

POSITIVE_TONE_THRESHOLD = 0.4
NEGATIVE_TONE_THRESHOLD = -0.4


@dataclass(frozen=True)
class MoodProfile:
    """Weights for a single mood."""
    mood_id: str
    label: str
    valence: float          # -1..1
    activation: float       # 0..1
    dominance: float        # 0..1
    risk_weight: float      # 0..1
    wellbeing_weight: float  # 0..1


_RAW_PROFILES: List[MoodProfile] = [
    MoodProfile("euforia", "Eufórico", 0.95, 0.95, 0.85, 0.1, 0.9),
    MoodProfile("entusiasmo", "Entusiasmado", 0.8, 0.8, 0.8, 0.15, 0.8),
    MoodProfile("tranquilidad", "Tranquilo", 0.7, 0.3, 0.85, 0.05, 0.75),
    MoodProfile("gratitud", "Agradecido", 0.85, 0.45, 0.75, 0.05, 0.7),
    MoodProfile("satisfaccion", "Satisfecho", 0.8, 0.4, 0.8, 0.05, 0.78),
    MoodProfile("ansiedad", "Ansioso", -0.85, 0.85, 0.3, 0.92, 0.0),
    MoodProfile("estres", "Estresado", -0.75, 0.85, 0.4, 0.86, 0.0),
    MoodProfile("miedo", "Asustado", -0.95, 0.95, 0.2, 0.95, 0.0),
    MoodProfile("ira", "Bravo", -0.8, 0.8, 0.7, 0.7, 0.0),
    MoodProfile("culpa", "Culpable", -0.8, 0.6, 0.25, 0.78, 0.0),
    MoodProfile("verguenza", "Avergonzado", -0.8, 0.65, 0.2, 0.72, 0.0),
    MoodProfile("tristeza", "Triste", -0.85, 0.35, 0.25, 0.9, 0.0),
    MoodProfile("apatia", "Apático", -0.75, 0.2, 0.3, 0.85, 0.0),
    MoodProfile("cansancio", "Cansado", -0.4, 0.2, 0.5, 0.5, 0.0),
    MoodProfile("soledad", "Solo", -0.8, 0.35, 0.3, 0.88, 0.0),
    MoodProfile("desesperanza", "Desesperado", -0.95, 0.4, 0.1, 0.98, 0.0),
]

_PROFILE_MAP: Dict[str, MoodProfile] = {p.mood_id: p for p in _RAW_PROFILES}

FALLBACK_PROFILE = MoodProfile(
    mood_id="desconocido",
    label="Emoción no clasificada",
    valence=0.0,
    activation=0.3,
    dominance=0.5,
    risk_weight=0.2,
    wellbeing_weight=0.2,
)


def get_mood_profile(mood_id: str) -> MoodProfile:
    """Return the profile for a mood id, or the fallback stamped with that id."""
    profile = _PROFILE_MAP.get(mood_id)
    if profile is None:
        return replace(FALLBACK_PROFILE, mood_id=mood_id, label=mood_id)
    return profile


def get_mood_tone(valence: float) -> MoodTone:
    if valence >= POSITIVE_TONE_THRESHOLD:
        return "positive"
    if valence <= NEGATIVE_TONE_THRESHOLD:
        return "negative"
    return "neutral"


def list_mood_profiles() -> List[MoodProfile]:
    return list(_RAW_PROFILES)


__all__ = [
    "MoodTone",
    "MoodProfile",
    "FALLBACK_PROFILE",
    "get_mood_profile",
    "get_mood_tone",
    "list_mood_profiles",
]
