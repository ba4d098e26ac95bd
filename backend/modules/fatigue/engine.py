"""
modules/fatigue/engine.py
---------------------------
Sample-driven fatigue estimation.

Per sensor window:
  1. estimate_energy  — kcal for the window, best available tier:
        hr        Keytel regression (needs heart rate + age + weight)
        distance  weight·km + weight·elevation·0.01
        steps     steps → km via stride length, then as distance
        met       MET table by place category / transit
  2. apply_modifiers  — additive context adjustments, total clamped to
                        [-0.40, +0.60], applied as kcal·(1 + total)
  3. update_fatigue   — score += kcal·K (minus seated recovery), EWMA blend
                        with the previous score, clamped to [0, 100]

All functions are pure given their inputs; FatigueState is the only
persisted unit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import config
from schemas.fatigue import (
    ContextWindow,
    EnergySource,
    FatigueState,
    SensorWindow,
    TraceRow,
    TransitType,
    UserProfile,
)
from schemas.place import PlaceCategory

logger = logging.getLogger(__name__)

# Keytel et al. (2005) regressions give kJ/min
_KJ_PER_KCAL = 4.184

# kcal per kg per km walked, and per kg per metre climbed
_WALK_KCAL_PER_KG_KM = 1.0
_CLIMB_KCAL_PER_KG_M = 0.01

# stride ≈ 0.415 × height
_STRIDE_HEIGHT_RATIO = 0.415

MET_TABLE: dict[PlaceCategory, float] = {
    PlaceCategory.MUSEUM:             2.5,
    PlaceCategory.ART_GALLERY:        2.5,
    PlaceCategory.RELIGIOUS_SITE:     2.5,
    PlaceCategory.LANDMARK:           3.0,
    PlaceCategory.PARK:               3.5,
    PlaceCategory.BEACH:              3.5,
    PlaceCategory.AQUARIUM:           2.3,
    PlaceCategory.ZOO:                3.0,
    PlaceCategory.AMUSEMENT_PARK:     4.0,
    PlaceCategory.SPORTS:             4.5,
    PlaceCategory.MARKET:             3.0,
    PlaceCategory.CAFE:               1.8,
    PlaceCategory.TOURIST_ATTRACTION: 3.0,
    PlaceCategory.INDOOR:             2.3,
    PlaceCategory.OUTDOOR:            3.2,
}
_DEFAULT_MET = MET_TABLE[PlaceCategory.TOURIST_ATTRACTION]
_WALK_MET = 3.0
_SEATED_MET = 1.5

# Modifier magnitudes (fractions of kcal)
HEAT_SEVERE_C, HEAT_SEVERE = 38.0, 0.35
HEAT_WARM_C, HEAT_WARM = 32.0, 0.20
RAIN_MODIFIERS = {"light": 0.05, "moderate": 0.10, "heavy": 0.15}
TIME_PRESSURE_MIN, TIME_PRESSURE = 20.0, 0.15
SEATED_MODIFIER = -0.15
MODIFIER_FLOOR, MODIFIER_CEILING = -0.40, 0.60


@dataclass(frozen=True)
class EnergyEstimate:
    kcal: float
    source: EnergySource


@dataclass(frozen=True)
class ModifierResult:
    kcal_adjusted: float
    modifiers: dict[str, float] = field(default_factory=dict)
    total: float = 0.0

    @property
    def multiplier(self) -> float:
        return 1.0 + self.total


# ── Energy ────────────────────────────────────────────────────────────────────

def estimate_ree_kcal_day(profile: UserProfile) -> float:
    """Resting energy expenditure (Harris-Benedict). Unspecified sex uses the male formula."""
    if profile.sex == "female":
        return 655.1 + 9.563 * profile.weight_kg + 1.850 * profile.height_cm - 4.676 * profile.age
    return 66.5 + 13.75 * profile.weight_kg + 5.003 * profile.height_cm - 6.775 * profile.age


def keytel_kcal_per_min(heart_rate: float, profile: UserProfile) -> float:
    if profile.sex == "female":
        kj = -20.4022 + 0.4472 * heart_rate - 0.1263 * profile.weight_kg + 0.074 * profile.age
    else:
        kj = -55.0969 + 0.6309 * heart_rate + 0.1988 * profile.weight_kg + 0.2017 * profile.age
    return max(0.0, kj) / _KJ_PER_KCAL


def _met_for(context: ContextWindow) -> float:
    if context.poi_type is None:
        return _DEFAULT_MET
    met = MET_TABLE.get(context.poi_type)
    if met is not None:
        return met
    return _WALK_MET if context.transit == TransitType.WALK else _SEATED_MET


def estimate_energy(profile: UserProfile, sensors: SensorWindow, context: ContextWindow) -> EnergyEstimate:
    """kcal spent in the window, from the best data tier available."""
    minutes = max(0.0, sensors.minutes)

    if sensors.heart_rate and profile.age and profile.weight_kg:
        return EnergyEstimate(keytel_kcal_per_min(sensors.heart_rate, profile) * minutes, EnergySource.HR)

    elevation = sensors.elevation_gain_m or 0.0
    if (sensors.distance_km or 0.0) > 0:
        kcal = profile.weight_kg * (_WALK_KCAL_PER_KG_KM * sensors.distance_km + _CLIMB_KCAL_PER_KG_M * elevation)
        return EnergyEstimate(max(0.0, kcal), EnergySource.DISTANCE)

    if (sensors.steps or 0) > 0:
        km = sensors.steps * profile.height_cm * _STRIDE_HEIGHT_RATIO / 100_000.0
        kcal = profile.weight_kg * (_WALK_KCAL_PER_KG_KM * km + _CLIMB_KCAL_PER_KG_M * elevation)
        return EnergyEstimate(max(0.0, kcal), EnergySource.STEPS)

    kcal = _met_for(context) * 3.5 * profile.weight_kg * minutes / 200.0
    return EnergyEstimate(kcal, EnergySource.MET)


# ── Modifiers ─────────────────────────────────────────────────────────────────

def apply_modifiers(kcal: float, sensors: SensorWindow, context: ContextWindow) -> ModifierResult:
    """Sum active context modifiers, clamp the total, scale kcal by (1 + total)."""
    mods: dict[str, float] = {}

    heat = context.heat_index_c if context.heat_index_c is not None else context.temp_c
    if heat is not None:
        if heat >= HEAT_SEVERE_C:
            mods["heat"] = HEAT_SEVERE
        elif heat >= HEAT_WARM_C:
            mods["heat"] = HEAT_WARM

    rain = RAIN_MODIFIERS.get(context.rain.value)
    if rain:
        mods["rain"] = rain

    if (context.time_pressure_minutes or 0.0) >= TIME_PRESSURE_MIN:
        mods["time"] = TIME_PRESSURE

    if context.transit is not None and context.transit.is_seated:
        mods["seated"] = SEATED_MODIFIER

    total = max(MODIFIER_FLOOR, min(MODIFIER_CEILING, sum(mods.values())))
    return ModifierResult(kcal_adjusted=kcal * (1.0 + total), modifiers=mods, total=total)


# ── State update ──────────────────────────────────────────────────────────────

def initial_state(now: datetime | None = None) -> FatigueState:
    return FatigueState(
        score=config.FATIGUE_INITIAL_SCORE,
        kcal_today=0.0,
        last_update=now or datetime.now(timezone.utc),
    )


def update_fatigue(
    prev: Optional[FatigueState],
    profile: UserProfile,
    sensors: SensorWindow,
    context: ContextWindow,
    kcal_adjusted: float,
    source: EnergySource,
    now: datetime | None = None,
    kcal_raw: float | None = None,
    modifiers: dict[str, float] | None = None,
) -> FatigueState:
    """Return the next FatigueState. ``prev`` is never modified."""
    now = now or datetime.now(timezone.utc)
    prev_score = prev.score if prev is not None else config.FATIGUE_INITIAL_SCORE
    prev_kcal = prev.kcal_today if prev is not None else 0.0
    if prev is not None and prev.last_update.date() != now.date():
        prev_kcal = 0.0

    raw_delta = kcal_adjusted * config.FATIGUE_K_PER_KCAL
    if context.transit is not None and context.transit.is_seated and sensors.minutes:
        raw_delta -= config.FATIGUE_RECOVERY_PER_SEATED_MIN * sensors.minutes

    raw_next = min(100.0, max(0.0, prev_score + raw_delta))
    alpha = config.FATIGUE_SMOOTHING
    score = min(100.0, max(0.0, alpha * raw_next + (1 - alpha) * prev_score))

    row = TraceRow(
        timestamp=now,
        kcal=max(0.0, kcal_raw if kcal_raw is not None else kcal_adjusted),
        kcal_adjusted=kcal_adjusted,
        source=source,
        modifiers=dict(modifiers or {}),
        score_after=score,
    )
    trace = [row] + list(prev.trace if prev is not None else [])
    return FatigueState(
        score=score,
        kcal_today=prev_kcal + max(0.0, kcal_adjusted),
        last_update=now,
        source=source,
        trace=trace[: config.FATIGUE_TRACE_CAP],
    )


def process_sample(
    prev: Optional[FatigueState],
    profile: UserProfile,
    sensors: SensorWindow,
    context: ContextWindow,
    now: datetime | None = None,
) -> FatigueState:
    """estimate_energy → apply_modifiers → update_fatigue in one call."""
    energy = estimate_energy(profile, sensors, context)
    adjusted = apply_modifiers(energy.kcal, sensors, context)
    state = update_fatigue(
        prev, profile, sensors, context,
        adjusted.kcal_adjusted, energy.source,
        now=now, kcal_raw=energy.kcal,
        modifiers={**adjusted.modifiers, "_total": adjusted.total},
    )
    logger.debug(
        "[fatigue] %.1f kcal (%s, x%.2f) -> score %.1f",
        energy.kcal, energy.source.value, adjusted.multiplier, state.score,
    )
    return state
