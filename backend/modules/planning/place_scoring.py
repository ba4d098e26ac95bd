"""
modules/planning/place_scoring.py
-----------------------------------
Place ranking used by the place providers and the multi-day planner.

Base score (computed once per fetch, neutral preference weight):

    bayes  = v/(v+m)·R + m/(v+m)·μ          (μ = 4.2, m = 200)
    score  = bayes · log1p(v) · icon · prox · (1 + 0.8·w)

      icon = 1.06 for landmark-like names, else 1.0
      prox = 1 / (1 + 0.03·km from home)
      w    = max(0.05, preference_weight / 10)

Personalisation (``prioritize``) rescales the neutral-weight score by the
user's weight for the place's category, applies per-category duration
overrides and drops avoided places. Scores are only comparable within
one fetch.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from schemas.place import Place, PlaceCategory
from schemas.preferences import CategoryPreference, UserPreferences
from modules.tool_usage.distance_tool import haversine_km

logger = logging.getLogger(__name__)

_PRIOR_MEAN = 4.2
_PRIOR_VOTES = 200
_ICON_BONUS = 1.06
_PROXIMITY_DECAY_PER_KM = 0.03
_PREF_GAIN = 0.8
_NEUTRAL_WEIGHT = 5.0

_ICONIC_NAME_RE = re.compile(
    r"mosque|palace|qasr|fort|louvre|heritage|corniche|observation", re.IGNORECASE,
)


def bayesian_rating(rating: Optional[float], votes: int) -> float:
    """Shrink a star rating toward the prior mean by vote count (0..5)."""
    v = max(0, int(votes or 0))
    r = max(0.0, min(5.0, rating or 0.0))
    return (v / (v + _PRIOR_VOTES)) * r + (_PRIOR_VOTES / (v + _PRIOR_VOTES)) * _PRIOR_MEAN


def proximity_boost(distance_km: float) -> float:
    return 1.0 / (1.0 + _PROXIMITY_DECAY_PER_KM * max(0.0, distance_km))


def preference_factor(weight: float) -> float:
    return 1.0 + _PREF_GAIN * max(0.05, weight / 10.0)


def score_place(
    name: str,
    rating: Optional[float],
    votes: int,
    distance_km: Optional[float] = None,
    weight: float = _NEUTRAL_WEIGHT,
) -> float:
    bayes = bayesian_rating(rating, votes)
    volume = math.log1p(max(0, int(votes or 0)))
    icon = _ICON_BONUS if _ICONIC_NAME_RE.search(name or "") else 1.0
    prox = proximity_boost(distance_km) if distance_km is not None else 1.0
    return bayes * volume * icon * prox * preference_factor(weight)


def distance_from(place: Place, home: tuple[float, float] | None) -> Optional[float]:
    if home is None or not place.has_coordinates:
        return None
    return haversine_km(home[0], home[1], place.location_lat, place.location_lon)  # type: ignore[arg-type]


# ── Personalisation ───────────────────────────────────────────────────────────

def is_avoided(place: Place, avoid: Iterable[str]) -> bool:
    """Avoid entries match a place id exactly or a name case-insensitively by substring."""
    name = place.name.lower()
    for item in avoid:
        token = (item or "").strip()
        if not token:
            continue
        if place.place_id == token or token.lower() in name:
            return True
    return False


def filter_avoided(places: Sequence[Place], avoid: Iterable[str]) -> list[Place]:
    avoid = [a for a in avoid if a and a.strip()]
    if not avoid:
        return list(places)
    kept = [p for p in places if not is_avoided(p, avoid)]
    if len(kept) != len(places):
        logger.info(
            "[place_scoring] avoid list removed %d of %d places", len(places) - len(kept), len(places),
        )
    return kept


def _category_pref(prefs: UserPreferences, category: PlaceCategory) -> Optional[CategoryPreference]:
    return prefs.preferences.get(category.value)


def prioritize(places: Sequence[Place], prefs: UserPreferences | None) -> list[Place]:
    """
    Apply the user's avoid list, category weights and duration overrides.

    Returns new Place records sorted by score (descending, stable).
    """
    if prefs is None:
        return sorted(places, key=lambda p: p.score, reverse=True)

    neutral = preference_factor(_NEUTRAL_WEIGHT)
    out: list[Place] = []
    for place in filter_avoided(places, prefs.avoid_places):
        pref = _category_pref(prefs, place.category)
        if pref is None:
            out.append(place)
            continue
        updates: dict = {"score": place.score * preference_factor(pref.weight) / neutral}
        if pref.duration:
            updates["preferred_duration_minutes"] = pref.duration
        out.append(replace(place, **updates))

    return sorted(out, key=lambda p: p.score, reverse=True)
