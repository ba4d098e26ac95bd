from datetime import datetime, timedelta, timezone

import pytest

from schemas.fatigue import (
    ContextWindow,
    EnergySource,
    RainLevel,
    RestVenue,
    SensorWindow,
    TransitType,
    UserProfile,
)
from schemas.place import PlaceCategory
from modules.fatigue.engine import (
    apply_modifiers,
    estimate_energy,
    estimate_ree_kcal_day,
    initial_state,
    process_sample,
    update_fatigue,
)
from modules.fatigue.recovery import (
    FatigueLevel,
    fatigue_advice,
    fatigue_level,
    recovery_efficiency,
    rest_recovery,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
MALE = UserProfile(age=40, weight_kg=80, height_cm=180, sex="male")
QUIET = ContextWindow()


# ── Energy ────────────────────────────────────────────────────────────────────

def test_heart_rate_beats_met_estimate():
    window = SensorWindow(minutes=10, heart_rate=140)
    hr = estimate_energy(MALE, window, QUIET)
    met = estimate_energy(MALE, SensorWindow(minutes=10), QUIET)

    assert hr.source == EnergySource.HR
    assert met.source == EnergySource.MET
    assert hr.kcal == pytest.approx(136.7, abs=0.1)
    assert met.kcal == pytest.approx(42.0)
    assert hr.kcal > met.kcal


def test_female_regression_and_floor():
    female = UserProfile(age=30, weight_kg=60, sex="female")
    assert estimate_energy(female, SensorWindow(minutes=10, heart_rate=150), QUIET).kcal > 0
    assert estimate_energy(female, SensorWindow(minutes=10, heart_rate=20), QUIET).kcal == 0.0


def test_distance_and_steps_tiers():
    dist = estimate_energy(MALE, SensorWindow(minutes=30, distance_km=2, elevation_gain_m=50), QUIET)
    assert dist.source == EnergySource.DISTANCE
    assert dist.kcal == pytest.approx(200.0)

    steps = estimate_energy(UserProfile(age=40, weight_kg=80, height_cm=170),
                            SensorWindow(minutes=20, steps=2000), QUIET)
    assert steps.source == EnergySource.STEPS
    assert steps.kcal == pytest.approx(80 * 2000 * 170 * 0.415 / 100_000)


@pytest.mark.parametrize("poi, transit, met", [
    (PlaceCategory.MUSEUM, None, 2.5),
    (PlaceCategory.SPORTS, None, 4.5),
    (PlaceCategory.RESTAURANT, TransitType.WALK, 3.0),
    (PlaceCategory.RESTAURANT, TransitType.BUS, 1.5),
    (None, None, 3.0),
])
def test_met_table(poi, transit, met):
    ctx = ContextWindow(poi_type=poi, transit=transit)
    kcal = estimate_energy(MALE, SensorWindow(minutes=60), ctx).kcal
    assert kcal == pytest.approx(met * 3.5 * 80 * 60 / 200)


# ── Modifiers ─────────────────────────────────────────────────────────────────

def test_modifiers_are_capped():
    ctx = ContextWindow(heat_index_c=40, rain=RainLevel.HEAVY, time_pressure_minutes=30)
    result = apply_modifiers(100.0, SensorWindow(minutes=10), ctx)
    assert result.modifiers == {"heat": 0.35, "rain": 0.15, "time": 0.15}
    assert result.total == pytest.approx(0.6)
    assert result.kcal_adjusted == pytest.approx(160.0)


def test_heat_index_preferred_over_temperature():
    result = apply_modifiers(100.0, SensorWindow(minutes=10), ContextWindow(temp_c=40, heat_index_c=30))
    assert "heat" not in result.modifiers
    warm = apply_modifiers(100.0, SensorWindow(minutes=10), ContextWindow(temp_c=33))
    assert warm.modifiers["heat"] == 0.20


def test_seated_transit_reduces():
    result = apply_modifiers(50.0, SensorWindow(minutes=10), ContextWindow(transit=TransitType.CAR))
    assert result.total == pytest.approx(-0.15)
    assert -0.4 <= result.total <= 0.6


# ── Update ────────────────────────────────────────────────────────────────────

def test_first_update_blends_with_initial_score():
    state = update_fatigue(None, MALE, SensorWindow(minutes=10), QUIET, 100.0, EnergySource.MET, now=T0)
    assert state.score == pytest.approx(0.3 * 18 + 0.7 * 12)
    assert state.kcal_today == pytest.approx(100.0)
    assert state.trace[0].score_after == state.score


def test_seated_minutes_recover():
    ctx = ContextWindow(transit=TransitType.CAR)
    state = update_fatigue(None, MALE, SensorWindow(minutes=20), ctx, 10.0, EnergySource.MET, now=T0)
    assert state.score < 12.0


def test_score_stays_in_bounds():
    state = initial_state(T0)
    hot = ContextWindow(heat_index_c=45, rain=RainLevel.HEAVY, time_pressure_minutes=60)
    for i in range(40):
        state = process_sample(state, MALE, SensorWindow(minutes=60, heart_rate=180), hot,
                               now=T0 + timedelta(minutes=i))
        assert 0.0 <= state.score <= 100.0
    assert state.score > 90

    bus = ContextWindow(transit=TransitType.BUS)
    for i in range(40):
        state = update_fatigue(state, MALE, SensorWindow(minutes=120), bus, 0.0, EnergySource.MET,
                               now=T0 + timedelta(hours=1, minutes=i))
        assert 0.0 <= state.score <= 100.0
    assert state.score < 1


def test_trace_is_capped_and_newest_first():
    state = None
    for i in range(60):
        state = process_sample(state, MALE, SensorWindow(minutes=5), QUIET, now=T0 + timedelta(minutes=i))
    assert len(state.trace) == 50
    assert state.trace[0].timestamp == T0 + timedelta(minutes=59)
    assert state.trace[0].modifiers["_total"] == 0.0


def test_previous_state_is_not_modified():
    first = process_sample(None, MALE, SensorWindow(minutes=10), QUIET, now=T0)
    process_sample(first, MALE, SensorWindow(minutes=10), QUIET, now=T0 + timedelta(minutes=10))
    assert len(first.trace) == 1


def test_kcal_today_rolls_over_at_midnight():
    first = process_sample(None, MALE, SensorWindow(minutes=10), QUIET, now=T0)
    next_day = process_sample(first, MALE, SensorWindow(minutes=10), QUIET, now=T0 + timedelta(days=1))
    same_day = process_sample(first, MALE, SensorWindow(minutes=10), QUIET, now=T0 + timedelta(hours=1))
    assert next_day.kcal_today == pytest.approx(first.kcal_today)
    assert same_day.kcal_today == pytest.approx(2 * first.kcal_today)


def test_resting_energy():
    assert estimate_ree_kcal_day(MALE) == pytest.approx(66.5 + 13.75 * 80 + 5.003 * 180 - 6.775 * 40)
    female = UserProfile(age=30, weight_kg=60, height_cm=165, sex="female")
    assert estimate_ree_kcal_day(female) == pytest.approx(655.1 + 9.563 * 60 + 1.850 * 165 - 4.676 * 30)


# ── Recovery ──────────────────────────────────────────────────────────────────

def test_recovery_curve_breakpoints():
    assert recovery_efficiency(0) == 0.0
    assert recovery_efficiency(30) == pytest.approx(0.25)
    assert recovery_efficiency(60) == pytest.approx(0.40)
    assert recovery_efficiency(120) == pytest.approx(0.50)
    assert recovery_efficiency(600) == pytest.approx(0.60)


def test_cafe_hour_rest():
    r = rest_recovery(80, 60, RestVenue.CAFE)
    assert r.fatigue_reduction == pytest.approx(32.0)
    assert r.new_fatigue == pytest.approx(48.0)
    assert r.recovery_efficiency == pytest.approx(0.40)
    assert r.energy_saved_kcal == 0


def test_spa_rest_is_capped_at_sixty_percent():
    r = rest_recovery(80, 180, RestVenue.SPA, profile=MALE)
    assert r.fatigue_reduction == pytest.approx(48.0)
    assert r.new_fatigue == pytest.approx(32.0)
    assert r.recovery_efficiency == pytest.approx(0.78)
    assert r.energy_saved_kcal == round(estimate_ree_kcal_day(MALE) / 24 * 0.55 * 3)


@pytest.mark.parametrize("score, level", [
    (0, FatigueLevel.RESTED), (29.9, FatigueLevel.RESTED), (30, FatigueLevel.LIGHT),
    (55, FatigueLevel.MODERATE), (70, FatigueLevel.HIGH), (90, FatigueLevel.EXHAUSTED),
    (100, FatigueLevel.EXHAUSTED),
])
def test_fatigue_bands(score, level):
    assert fatigue_level(score) == level


def test_advice_text():
    advice = fatigue_advice(75)
    assert advice["level"] == "high"
    assert "rest" in advice["recommendation"].lower()
