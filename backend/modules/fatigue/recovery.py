"""
modules/fatigue/recovery.py
-----------------------------
Passive rest recovery and fatigue bands.

Separate from the per-sample update loop: this models what a rest stop
between active windows does to the score.

Recovery efficiency by rest length (fraction of current fatigue):
    0-30 min    linear up to 0.25
    30-60 min   +0.15 more (0.40 at 60 min)
    60+ min     +0.20 spread over the next 120 min, capped at 0.60
The base reduction is capped at 50 % of current fatigue, then scaled by the
venue (spa 1.3, hotel 1.2, cafe 1.0, park 0.9) and capped at 60 %.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from schemas.fatigue import ActivityLevel, RestVenue, UserProfile
from modules.fatigue.engine import estimate_ree_kcal_day

VENUE_MULTIPLIER: dict[RestVenue, float] = {
    RestVenue.SPA:   1.3,
    RestVenue.HOTEL: 1.2,
    RestVenue.CAFE:  1.0,
    RestVenue.PARK:  0.9,
}

ACTIVITY_MULTIPLIER: dict[ActivityLevel, float] = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT:     1.55,
    ActivityLevel.MODERATE:  1.75,
    ActivityLevel.VIGOROUS:  2.0,
}

BASE_REDUCTION_CAP = 0.5
MAX_REDUCTION_SHARE = 0.6


@dataclass(frozen=True)
class RestRecovery:
    fatigue_reduction: float      # score points removed
    energy_saved_kcal: float
    new_fatigue: float
    recovery_efficiency: float


def recovery_efficiency(rest_minutes: float) -> float:
    m = max(0.0, rest_minutes)
    if m <= 30:
        return 0.25 * (m / 30.0)
    if m <= 60:
        return 0.25 + 0.15 * ((m - 30.0) / 30.0)
    return min(0.60, 0.40 + 0.20 * min(1.0, (m - 60.0) / 120.0))


def rest_recovery(
    current_fatigue: float,
    rest_minutes: float,
    venue: RestVenue = RestVenue.CAFE,
    activity_before: ActivityLevel = ActivityLevel.MODERATE,
    profile: UserProfile | None = None,
) -> RestRecovery:
    """Fatigue after resting ``rest_minutes`` at ``venue``."""
    current = max(0.0, min(100.0, current_fatigue))
    efficiency = recovery_efficiency(rest_minutes)
    base = min(current * efficiency, current * BASE_REDUCTION_CAP)
    multiplier = VENUE_MULTIPLIER[venue]
    reduction = min(base * multiplier, current * MAX_REDUCTION_SHARE)

    energy_saved = 0.0
    if profile is not None:
        hourly_ree = estimate_ree_kcal_day(profile) / 24.0
        saved_per_hour = hourly_ree * (ACTIVITY_MULTIPLIER[activity_before] - ACTIVITY_MULTIPLIER[ActivityLevel.SEDENTARY])
        energy_saved = max(0.0, saved_per_hour * max(0.0, rest_minutes) / 60.0)

    return RestRecovery(
        fatigue_reduction=round(reduction, 1),
        energy_saved_kcal=round(energy_saved),
        new_fatigue=round(max(0.0, current - reduction), 1),
        recovery_efficiency=round(efficiency * multiplier, 2),
    )


# ── Fatigue bands ─────────────────────────────────────────────────────────────

class FatigueLevel(str, Enum):
    RESTED    = "rested"
    LIGHT     = "light"
    MODERATE  = "moderate"
    HIGH      = "high"
    EXHAUSTED = "exhausted"


_BANDS: tuple[tuple[float, FatigueLevel], ...] = (
    (30.0, FatigueLevel.RESTED),
    (50.0, FatigueLevel.LIGHT),
    (70.0, FatigueLevel.MODERATE),
    (90.0, FatigueLevel.HIGH),
)

_ADVICE: dict[FatigueLevel, tuple[str, str]] = {
    FatigueLevel.RESTED: (
        "You're feeling great and energized!",
        "Perfect time for exploring and activities.",
    ),
    FatigueLevel.LIGHT: (
        "Energy levels are good.",
        "Continue at this pace, stay hydrated.",
    ),
    FatigueLevel.MODERATE: (
        "Moderate fatigue detected.",
        "Consider taking a short break soon. Find a cafe or park to rest.",
    ),
    FatigueLevel.HIGH: (
        "High fatigue - you're working hard!",
        "Time for a significant rest. Sit down somewhere comfortable for 30+ minutes.",
    ),
    FatigueLevel.EXHAUSTED: (
        "You're exhausted! Rest is needed now.",
        "Stop current activities. Return to the hotel or rest somewhere quiet for at least an hour.",
    ),
}


def fatigue_level(score: float) -> FatigueLevel:
    for upper, level in _BANDS:
        if score < upper:
            return level
    return FatigueLevel.EXHAUSTED


def fatigue_advice(score: float) -> dict:
    level = fatigue_level(score)
    message, recommendation = _ADVICE[level]
    return {
        "level": level.value,
        "score": round(score, 1),
        "message": message,
        "recommendation": recommendation,
    }
