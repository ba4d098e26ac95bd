import json
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import config
from db.state_store import InMemoryStateStore, RedisStateStore, get_state_store, set_state_store
from schemas.fatigue import UserProfile, SensorWindow, ContextWindow
from schemas.itinerary import DayPlan, TripPlan
from schemas.preferences import CategoryPreference, TripContext, UserPreferences
from modules.fatigue.engine import process_sample

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _plan():
    return TripPlan(start_date=date(2026, 3, 2), end_date=date(2026, 3, 2), home_lat=24.4, home_lon=54.3,
                    days=[DayPlan(date=date(2026, 3, 2))], session_id="plan_x")


def test_in_memory_round_trip_per_user():
    s = InMemoryStateStore()
    ctx = TripContext(start_date=date(2026, 3, 2), end_date=date(2026, 3, 4), home_lat=24.4, home_lon=54.3)
    prefs = UserPreferences(must_see=["a"], preferences={"museum": CategoryPreference(weight=9)})

    s.save_trip_context(ctx, "u1")
    s.save_preferences(prefs, "u1")

    assert s.get_trip_context("u1") == ctx
    assert s.get_preferences("u1") == prefs
    assert s.get_trip_context("u2") is None
    assert s.get_preferences("u2") == UserPreferences()


def test_fatigue_state_save_and_reset():
    s = InMemoryStateStore()
    state = process_sample(None, UserProfile(age=30, weight_kg=70), SensorWindow(minutes=10), ContextWindow(), now=T0)
    s.save_fatigue_state(state)

    loaded = s.get_fatigue_state()
    assert loaded == state
    assert loaded.trace[0].source == state.trace[0].source

    s.reset_fatigue_state()
    assert s.get_fatigue_state() is None


def test_trip_plan_is_stored_as_json():
    s = InMemoryStateStore()
    data = s.save_trip_plan(_plan())
    assert data["session_id"] == "plan_x"
    assert s.get_trip_plan() == data
    assert data["days"][0]["status"] == "idle"


def test_redis_store_uses_namespaced_keys_and_plan_ttl():
    client = MagicMock()
    s = RedisStateStore(client)

    s.save_trip_plan(_plan(), "u9")
    key, ttl, payload = client.setex.call_args.args
    assert key == "nextstep:u9:trip_plan"
    assert ttl == config.TRIP_PLAN_TTL
    assert json.loads(payload)["start_date"] == "2026-03-02"

    s.save_preferences(UserPreferences(), "u9")
    client.set.assert_called_once()
    assert client.set.call_args.args[0] == "nextstep:u9:preferences"

    client.get.return_value = None
    assert s.get_fatigue_state("u9") is None
    s.reset_fatigue_state("u9")
    client.delete.assert_called_once_with("nextstep:u9:fatigue")


def test_factory_defaults_to_memory():
    set_state_store(None)
    try:
        assert isinstance(get_state_store(), InMemoryStateStore)
        assert get_state_store() is get_state_store()
    finally:
        set_state_store(None)
