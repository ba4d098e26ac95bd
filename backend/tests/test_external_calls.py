from unittest.mock import MagicMock

import requests

from modules.tool_usage.directions_tool import DirectionsTool, get_travel_time_provider, parse_directions
from modules.tool_usage.distance_tool import DistanceTool, haversine_km
from modules.tool_usage.retry import call_with_retry


def _payload(seconds=1260, steps=None, status="OK"):
    return {
        "status": status,
        "routes": [{"legs": [{
            "duration": {"value": seconds, "text": "21 mins"},
            "steps": steps or [],
        }]}],
    }


def test_retry_returns_first_success():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 2:
            raise ConnectionError("blip")
        return "ok"

    slept = []
    assert call_with_retry(flaky, "flaky", max_attempts=3, initial_delay_s=0.5, sleep=slept.append) == "ok"
    assert slept == [0.5]


def test_retry_gives_up_with_none():
    slept = []

    def boom():
        raise ValueError("no")

    assert call_with_retry(boom, "boom", max_attempts=3, initial_delay_s=1, sleep=slept.append) is None
    assert slept == [1, 2]


def test_parse_transit_directions():
    steps = [
        {"travel_mode": "WALKING", "html_instructions": "Walk to <b>Stop A</b>"},
        {"travel_mode": "TRANSIT", "transit_details": {
            "line": {"short_name": "54", "vehicle": {"type": "BUS"}},
            "departure_stop": {"name": "Stop A"}, "arrival_stop": {"name": "Stop B"},
        }},
    ]
    leg = parse_directions(_payload(steps=steps), "transit")
    assert leg.duration_seconds == 1260
    assert leg.instructions == "Walk to Stop A -> BUS 54 from Stop A -> Stop B"


def test_parse_driving_summary_and_bad_status():
    steps = [{"html_instructions": f"Turn {i}"} for i in range(4)]
    assert parse_directions(_payload(steps=steps), "driving").instructions == "Drive 21 mins via Turn 0 -> Turn 1..."
    assert parse_directions(_payload(status="ZERO_RESULTS"), "driving") is None
    assert parse_directions({"status": "OK", "routes": []}, "driving") is None


def test_transit_falls_back_to_driving():
    session = MagicMock()
    session.get.return_value.json.side_effect = [{"status": "ZERO_RESULTS"}, _payload(seconds=600)]
    leg = DirectionsTool(api_key="k", session=session).travel_time((1.0, 2.0), (1.1, 2.1), "transit")

    assert leg.duration_seconds == 600
    modes = [c.kwargs["params"]["mode"] for c in session.get.call_args_list]
    assert modes == ["transit", "driving"]


def test_http_failure_returns_none():
    session = MagicMock()
    session.get.side_effect = requests.Timeout("slow")
    assert DirectionsTool(api_key="k", session=session).travel_time((1.0, 2.0), (1.1, 2.1), "driving") is None


def test_distance_tool_estimates():
    km = haversine_km(24.45, 54.38, 24.46, 54.38)
    assert 1.0 < km < 1.2
    leg = DistanceTool(speed_kmh=6).travel_time((24.45, 54.38), (24.46, 54.38))
    assert leg.duration_seconds == round(km / 6 * 3600)
    assert DistanceTool().travel_time_minutes(1.0, 1.0, 1.0, 1.0) == 0.0
    assert isinstance(get_travel_time_provider(), DistanceTool)
