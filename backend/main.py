"""
main.py
--------
Command-line entry point.

Modes:
  python main.py                          plan a 3-day demo trip and print it
  python main.py --days 2 --start 2026-03-01 --home 24.4539,54.3773
  python main.py --json                   also dump the plan as JSON
  python main.py --fatigue-demo           run a short sample sequence through
                                          the fatigue engine and a rest stop
  python main.py --replay <session_id>    replay a recorded planning log

Providers follow config.USE_STUB_* (stubs by default), so the demo runs
without any API keys.
"""

from __future__ import annotations

import calendar
import json
import logging
import sys
from datetime import date, datetime, timedelta, timezone

import config
from schemas.fatigue import (
    ContextWindow,
    RainLevel,
    RestVenue,
    SensorWindow,
    TransitType,
    UserProfile,
)
from schemas.itinerary import ProgressUpdate, TripPlan, trip_plan_to_dict
from schemas.place import PlaceCategory
from schemas.preferences import TripContext, UserPreferences
from modules.fatigue.engine import process_sample
from modules.fatigue.recovery import fatigue_advice, rest_recovery
from modules.planning.errors import TripSetupError
from modules.planning.multiday_planner import MultiDayPlanner

DEMO_HOME = (24.4539, 54.3773)   # Abu Dhabi


# ── Planning ───────────────────────────────────────────────────────────────────

def _print_progress(update: ProgressUpdate) -> None:
    pct = f"{update.progress * 100:3.0f}%" if update.progress is not None else "  --"
    print(f"  [{pct}] {update.message}")


def _print_plan(plan: TripPlan) -> None:
    """Print a human-readable day-by-day schedule with visit times."""
    width = 60
    print()
    print("═" * width)
    print(f"  YOUR ITINERARY  ({len(plan.days)} day(s), {plan.total_stops} stops)")
    print("═" * width)

    for n, day in enumerate(plan.days, start=1):
        day_name = calendar.day_name[day.date.weekday()]
        status = "  [degraded]" if day.degraded else ""
        print(f"\n  Day {n}  —  {day_name}, {day.date.strftime('%d %b %Y')}{status}")
        print("  " + "─" * (width - 2))

        if not day.stops:
            print(f"    (no stops scheduled{': ' + day.failure_reason if day.failure_reason else ''})")
            continue

        for s in day.stops:
            arr = s.start_time.strftime("%H:%M") if s.start_time else "--:--"
            dep = s.end_time.strftime("%H:%M") if s.end_time else "--:--"
            travel = f"+{s.travel_time_from_previous_minutes}m " if s.travel_time_from_previous_minutes else ""
            print(f"    {arr} – {dep}   {s.name[:30].ljust(30)}  ({s.estimated_duration_minutes} min) {travel}")
            if s.is_meal and s.reason:
                print(f"                    {s.reason.splitlines()[0]}")

        if day.pool:
            print(f"    swap-in pool: {', '.join(p.name for p in day.pool)}")
    print()


def run_plan(start: date, days: int, home: tuple[float, float], as_json: bool = False) -> TripPlan:
    ctx = TripContext(
        start_date=start,
        end_date=start + timedelta(days=days - 1),
        home_lat=home[0],
        home_lon=home[1],
        itinerary_start_time=config.DAY_START,
    )
    prefs = UserPreferences()
    print(f"\nPlanning {days} day(s) from {start.isoformat()} near {home[0]:.4f}, {home[1]:.4f}")
    if config.USE_STUB_LLM or config.USE_STUB_PLACES:
        print("  (stub providers: set USE_STUB_*=false and API keys for live data)")

    plan = MultiDayPlanner().plan(ctx, prefs, observer=_print_progress)
    _print_plan(plan)
    if as_json:
        print(json.dumps(trip_plan_to_dict(plan), indent=2))
    return plan


# ── Fatigue demo ───────────────────────────────────────────────────────────────

def run_fatigue_demo() -> None:
    profile = UserProfile(age=34, weight_kg=72, height_cm=175, sex="female")
    now = datetime.now(timezone.utc)
    samples = [
        ("Walk to museum",  SensorWindow(minutes=15, distance_km=1.2, elevation_gain_m=8),
         ContextWindow(temp_c=33, transit=TransitType.WALK)),
        ("Museum visit",    SensorWindow(minutes=60),
         ContextWindow(temp_c=24, poi_type=PlaceCategory.MUSEUM)),
        ("Taxi to souk",    SensorWindow(minutes=20),
         ContextWindow(temp_c=36, transit=TransitType.CAR)),
        ("Souk, behind schedule", SensorWindow(minutes=30, heart_rate=118),
         ContextWindow(heat_index_c=39, rain=RainLevel.NONE, poi_type=PlaceCategory.MARKET,
                       time_pressure_minutes=25)),
    ]

    print("\nFATIGUE DEMO")
    print("─" * 60)
    state = None
    for i, (label, sensors, context) in enumerate(samples):
        state = process_sample(state, profile, sensors, context, now=now + timedelta(minutes=30 * i))
        row = state.trace[0]
        print(f"  {label:<24} {row.kcal:6.1f} kcal ({row.source.value:<8}) "
              f"-> {row.kcal_adjusted:6.1f} adj  score {state.score:5.1f}")

    advice = fatigue_advice(state.score)
    print(f"\n  Level: {advice['level']} — {advice['message']}")
    print(f"  {advice['recommendation']}")

    rest = rest_recovery(state.score, 45, RestVenue.CAFE, profile=profile)
    print(f"\n  45 min at a cafe: -{rest.fatigue_reduction} → {rest.new_fatigue} "
          f"(efficiency {rest.recovery_efficiency}, ~{rest.energy_saved_kcal:.0f} kcal saved)")
    print(f"  kcal today: {state.kcal_today:.0f}\n")


# ── CLI ────────────────────────────────────────────────────────────────────────

def _arg(flag: str, default: str | None = None) -> str | None:
    if flag in sys.argv:
        idx = sys.argv.index(flag)
        if idx + 1 < len(sys.argv):
            return sys.argv[idx + 1]
    return default


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if "--replay" in sys.argv:
        from modules.observability.replay import replay_session
        _sid = _arg("--replay")
        if not _sid:
            print("Usage: python main.py --replay <session_id>")
            sys.exit(1)
        replay_session(_sid)
        sys.exit(0)

    if "--fatigue-demo" in sys.argv:
        run_fatigue_demo()
        sys.exit(0)

    _start = date.fromisoformat(_arg("--start") or (date.today() + timedelta(days=1)).isoformat())
    _days = int(_arg("--days", "3"))
    _home_txt = _arg("--home")
    _home = tuple(float(x) for x in _home_txt.split(",")) if _home_txt else DEMO_HOME

    try:
        run_plan(_start, _days, _home, as_json="--json" in sys.argv)  # type: ignore[arg-type]
    except TripSetupError as exc:
        print(f"Cannot plan trip: {exc}")
        sys.exit(2)
