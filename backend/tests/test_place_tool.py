from datetime import date, time
from unittest.mock import MagicMock

import pytest
import requests

from schemas.place import OpeningSpan, PlaceCategory
from modules.tool_usage.place_tool import (
    GooglePlacesTool,
    StubPlaceTool,
    get_place_provider,
    opening_spans_for,
    parse_google_place,
    spans_from_description,
    spans_from_periods,
)

from factories import HOME

MONDAY = date(2026, 3, 2)   # Google weekday 1


def _period(open_day, oh, om, close_day=None, ch=None, cm=0):
    p = {"open": {"day": open_day, "hour": oh, "minute": om}}
    if close_day is not None:
        p["close"] = {"day": close_day, "hour": ch, "minute": cm}
    return p


def test_periods_pick_today_only():
    periods = [_period(1, 9, 0, 1, 17), _period(2, 8, 0, 2, 20)]
    assert spans_from_periods(periods, MONDAY) == (OpeningSpan(time(9, 0), time(17, 0)),)


def test_period_without_close_is_all_day():
    assert spans_from_periods([_period(1, 0, 0)], MONDAY) == (OpeningSpan(time(0, 0), time(23, 59)),)


def test_period_closing_after_midnight_is_cut():
    spans = spans_from_periods([_period(1, 18, 0, 2, 2)], MONDAY)
    assert spans == (OpeningSpan(time(18, 0), time(23, 59)),)


def test_description_with_split_hours():
    spans = spans_from_description("Friday: 9:00 AM – 12:00 PM, 2:00 – 9:00 PM")
    assert spans == (
        OpeningSpan(time(9, 0), time(12, 0)),
        OpeningSpan(time(14, 0), time(21, 0)),
    )


def test_description_special_cases():
    assert spans_from_description("Monday: Open 24 hours") == (OpeningSpan(time(0, 0), time(23, 59)),)
    assert spans_from_description("Monday: Closed") == ()


def test_descriptions_used_when_no_periods():
    week = [f"Day{i}: 10:00 AM – 6:00 PM" for i in range(7)]
    assert opening_spans_for({"weekdayDescriptions": week}, MONDAY)[0].opens == time(10, 0)
    assert opening_spans_for({}, MONDAY) == ()


def _raw(**over):
    raw = {
        "id": "ChIJ123",
        "displayName": {"text": "National Museum"},
        "location": {"latitude": HOME[0] + 0.01, "longitude": HOME[1]},
        "types": ["museum", "tourist_attraction"],
        "rating": 4.6,
        "userRatingCount": 1000,
        "regularOpeningHours": {"periods": [_period(1, 10, 0, 1, 18)]},
    }
    raw.update(over)
    return raw


def test_parse_google_place():
    place = parse_google_place(_raw(), HOME, MONDAY)
    assert place.place_id == "ChIJ123"
    assert place.category == PlaceCategory.MUSEUM
    assert place.preferred_duration_minutes == 120
    assert place.opens_at == time(10, 0) and place.closes_at == time(18, 0)
    assert place.user_ratings_total == 1000
    assert place.score > 0


def test_parse_google_place_requires_name():
    assert parse_google_place(_raw(displayName={"text": "  "}), HOME, MONDAY) is None


def test_google_tool_requires_key():
    with pytest.raises(EnvironmentError):
        GooglePlacesTool(api_key="").fetch(*HOME)


def test_google_tool_posts_nearby_search():
    session = MagicMock()
    session.post.return_value.json.return_value = {"places": [_raw(), {"id": "broken"}]}
    tool = GooglePlacesTool(api_key="k", session=session)

    places = tool.fetch(HOME[0], HOME[1], day=MONDAY)

    assert [p.place_id for p in places] == ["ChIJ123"]
    _, kwargs = session.post.call_args
    assert kwargs["headers"]["X-Goog-Api-Key"] == "k"
    assert "places.userRatingCount" in kwargs["headers"]["X-Goog-FieldMask"]
    assert kwargs["json"]["locationRestriction"]["circle"]["center"]["latitude"] == HOME[0]


def test_google_tool_failure_returns_empty():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("offline")
    assert GooglePlacesTool(api_key="k", session=session).fetch(*HOME) == []
    assert session.post.call_count == 2


def test_stub_places_are_stable_and_located():
    places = StubPlaceTool().fetch(*HOME)
    assert len(places) == len({p.place_id for p in places}) == 16
    assert all(p.has_coordinates for p in places)
    corniche = next(p for p in places if p.place_id == "stub_corniche")
    assert corniche.opening_spans == ()
    assert [p.place_id for p in StubPlaceTool().fetch(*HOME)] == [p.place_id for p in places]


def test_provider_factory_follows_config():
    assert isinstance(get_place_provider(), StubPlaceTool)
