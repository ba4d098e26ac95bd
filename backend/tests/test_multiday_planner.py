from datetime import date

import pytest

import config

from schemas.itinerary import DayStatus
from schemas.preferences import TripContext, UserPreferences
from modules.observability.logger import StructuredLogger
from modules.planning.errors import TripSetupError
from modules.planning.multiday_planner import MultiDayPlanner
from modules.tool_usage.day_generator import StubDayGenerator

from factories import HOME, FixedTravel, ListPlaces, make_place

START = date(2026, 3, 2)


def _places(n=12, **kw):
    return [
        make_place(f"p{i}", score=float(100 - i), lat=HOME[0] + 0.001 * (i + 1), lon=HOME[1], **kw)
        for i in range(n)
    ]


def _ctx(days=3):
    return TripContext(
        start_date=START, end_date=date(2026, 3, 1 + days), home_lat=HOME[0], home_lon=HOME[1],
        itinerary_start_time="09:00",
    )


def _planner(places=None, generator=None, **kw):
    kw.setdefault("min_viable_stops", 3)
    return MultiDayPlanner(
        place_provider=ListPlaces(places if places is not None else _places()),
        travel_provider=FixedTravel(600),
        day_generator=generator or StubDayGenerator(stops_per_day=4, lunch_after=2),
        graph_call_delay_s=0,
        **kw,
    )


def _visit_ids(day):
    return [s.place_id for s in day.stops if s.place_id]


def test_no_place_is_repeated_across_days():
    plan = _planner().plan(_ctx())

    assert [d.date for d in plan.days] == [START, date(2026, 3, 3), date(2026, 3, 4)]
    assert plan.duplicate_place_ids() == []
    all_ids = [pid for d in plan.days for pid in _visit_ids(d)]
    assert len(all_ids) == len(set(all_ids)) == 12
    for day in plan.days:
        assert day.status == DayStatus.FINALIZED
        assert not day.degraded
        assert day.anchor_ids[0] in _visit_ids(day)


def test_days_carry_lunch_and_timed_stops():
    plan = _planner().plan(_ctx(days=1))
    day = plan.days[0]
    meals = [s for s in day.stops if s.is_meal]
    assert len(meals) == 1
    assert [s.order for s in day.stops] == list(range(1, len(day.stops) + 1))
    assert all(s.start_time and s.end_time for s in day.stops)
    assert day.stops[0].start_time.hour == 9


def test_leftover_pool_holds_only_unused_places():
    plan = _planner().plan(_ctx(days=1))
    day = plan.days[0]
    pool_ids = {p.place_id for p in day.pool}
    assert pool_ids
    assert not pool_ids & set(_visit_ids(day))
    assert [p.score for p in day.pool] == sorted((p.score for p in day.pool), reverse=True)


def test_must_see_is_anchored_once():
    prefs = UserPreferences(must_see=["p11"])
    plan = _planner().plan(_ctx(), prefs)
    assert plan.days[0].anchor_ids == ["p11"]
    assert sum(_visit_ids(d).count("p11") for d in plan.days) == 1


def test_avoided_places_never_scheduled():
    plan = _planner().plan(_ctx(), UserPreferences(avoid_places=["p0", "P3"]))
    scheduled = {pid for d in plan.days for pid in _visit_ids(d)}
    assert not scheduled & {"p0", "p3"}


def test_thin_generator_output_is_backfilled():
    class OneItem:
        def generate(self, candidates, origin, hints):
            c = candidates[-1]
            return [{"place_id": c.place_id, "name": c.name}]

    plan = _planner(generator=OneItem()).plan(_ctx(days=1))
    day = plan.days[0]
    assert len(_visit_ids(day)) == 3
    assert any(s.reason.startswith("Added to round out the day") for s in day.stops)


def test_unmatched_items_dropped_and_missing_anchor_prepended():
    class Hallucinating:
        def generate(self, candidates, origin, hints):
            return [{"name": "Imaginary Tower"}] + [
                {"place_id": c.place_id, "name": c.name} for c in candidates[1:4]
            ]

    plan = _planner(generator=Hallucinating()).plan(_ctx(days=1))
    day = plan.days[0]
    assert "Imaginary Tower" not in [s.name for s in day.stops]
    assert day.anchor_ids[0] in _visit_ids(day)


def test_empty_generator_output_degrades_the_day():
    class Silent:
        def generate(self, candidates, origin, hints):
            return []

    plan = _planner(generator=Silent()).plan(_ctx(days=2))
    for day in plan.days:
        assert day.degraded
        assert day.stops == []
        assert day.failure_reason == "day generator returned no items"
        assert day.status == DayStatus.FINALIZED


def test_one_failing_day_does_not_sink_the_trip():
    stub = StubDayGenerator(stops_per_day=4)

    class FailsOnDayTwo:
        def generate(self, candidates, origin, hints):
            if hints.day == date(2026, 3, 3):
                raise RuntimeError("model overloaded")
            return stub.generate(candidates, origin, hints)

    plan = _planner(generator=FailsOnDayTwo()).plan(_ctx())
    assert plan.days[1].degraded and plan.days[1].failure_reason == "model overloaded"
    assert _visit_ids(plan.days[0]) and _visit_ids(plan.days[2])
    assert plan.duplicate_place_ids() == []


def test_places_without_coordinates_fail_per_day():
    places = _places(n=6)
    blind = [make_place(p.place_id, score=p.score, lat=None, lon=None) for p in places]
    plan = _planner(places=blind).plan(_ctx(days=1))
    assert plan.days[0].degraded
    assert plan.days[0].failure_reason.startswith("ERROR_NO_COORDINATES")


def test_unreachable_minimum_marks_day_degraded():
    plan = _planner(min_viable_stops=20).plan(_ctx(days=2))
    assert all(d.degraded for d in plan.days)
    assert plan.duplicate_place_ids() == []


@pytest.mark.parametrize("ctx, code", [
    (None, "ERROR_MISSING_TRIP_DATES"),
    (TripContext(start_date=START, end_date=START), "ERROR_MISSING_HOME_COORDINATES"),
])
def test_invalid_setup_is_fatal(ctx, code):
    with pytest.raises(TripSetupError, match=code):
        _planner().plan(ctx)


def test_no_places_is_fatal():
    with pytest.raises(TripSetupError, match="ERROR_NO_PLACES"):
        _planner(places=[]).plan(_ctx())

    class Broken:
        def fetch(self, lat, lon):
            raise ConnectionError("down")

    planner = _planner()
    planner.place_provider = Broken()
    with pytest.raises(TripSetupError, match="ERROR_NO_PLACES"):
        planner.plan(_ctx())


def test_cancellation_between_days():
    checks = []

    def should_cancel():
        checks.append(1)
        return len(checks) > 1

    updates = []
    plan = _planner().plan(_ctx(), observer=updates.append, should_cancel=should_cancel)
    assert len(plan.days) == 3
    assert _visit_ids(plan.days[0])
    for day in plan.days[1:]:
        assert day.stops == [] and day.failure_reason == "cancelled"

    cancelled = [u for u in updates if u.stage == "cancelled"]
    assert len(cancelled) == 1
    day_one_done = next(u for u in updates if u.stage == "day-1-complete")
    assert cancelled[0].progress == day_one_done.progress
    assert 0.0 <= cancelled[0].progress <= 1.0


def test_progress_updates_and_event_log(tmp_path):
    updates = []
    events = StructuredLogger(tmp_path)
    plan = _planner(events=events).plan(_ctx(days=2), observer=updates.append)

    stages = [u.stage for u in updates]
    assert stages[0] == "init" and stages[-1] == "complete"
    assert "day-1" in stages and "day-2-complete" in stages
    progress = [u.progress for u in updates if u.progress is not None]
    assert progress == sorted(progress)

    assert len(list(events.read(plan.session_id, "DAY_RESULT"))) == 2
    assert list(events.read(plan.session_id, "DUPLICATES")) == []


def test_broken_observer_is_ignored():
    def explode(update):
        raise ValueError("ui went away")

    plan = _planner().plan(_ctx(days=1), observer=explode)
    assert _visit_ids(plan.days[0])


def test_repeated_explicit_days_are_planned_once():
    d1, d2 = date(2026, 3, 2), date(2026, 3, 3)
    ctx = TripContext(days=[d2, d1, d1, d2], home_lat=HOME[0], home_lon=HOME[1])

    plan = _planner().plan(ctx)
    assert [d.date for d in plan.days] == [d1, d2]
    assert plan.duplicate_place_ids() == []
    all_ids = [pid for d in plan.days for pid in _visit_ids(d)]
    assert len(all_ids) == len(set(all_ids))


def test_late_listed_anchor_survives_the_routing_cap(monkeypatch):
    monkeypatch.setattr(config, "GRAPH_MAX_PLACES", 8)

    class AnchorLast:
        def generate(self, candidates, origin, hints):
            ordered = candidates[1:10] + candidates[:1]
            return [{"place_id": c.place_id, "name": c.name} for c in ordered]

    plan = _planner(generator=AnchorLast()).plan(_ctx(days=1))
    day = plan.days[0]
    visits = _visit_ids(day)
    pool = [p.place_id for p in day.pool]

    assert day.anchor_ids == ["p0"]
    assert visits[0] == "p0"
    assert len(visits) <= 8
    # places cut by the cap go back to the pool instead of staying reserved
    assert {"p8", "p9"} <= set(pool)
    assert not set(visits) & set(pool)


def test_anchor_moved_forward_keeps_lunch_after_the_same_visits():
    class LunchThenAnchor:
        def generate(self, candidates, origin, hints):
            return [
                {"place_id": "p1", "name": "P1"},
                {"name": "Lunch", "category": "meal", "estimated_duration": "45 min"},
                {"place_id": "p2", "name": "P2"},
                {"place_id": "p0", "name": "P0"},
            ]

    plan = _planner(generator=LunchThenAnchor()).plan(_ctx(days=1))
    names = [s.name for s in plan.days[0].stops]
    assert names.index("Lunch") == 2
    assert _visit_ids(plan.days[0])[0] == "p0"
