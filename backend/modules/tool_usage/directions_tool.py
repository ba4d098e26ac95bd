"""
modules/tool_usage/directions_tool.py
---------------------------------------
Travel-time provider backed by the Google Directions API.

Endpoint:
    GET https://maps.googleapis.com/maps/api/directions/json
        ?origin={lat},{lng}&destination={lat},{lng}&mode={mode}&key={key}

Response fields used:
    status                          → "OK" | "ZERO_RESULTS" | ...
    routes[0].legs[0].duration      → {"value": seconds, "text": "21 mins"}
    routes[0].legs[0].steps[]       → html_instructions / transit_details

A failed transit lookup is retried once in driving mode. Any other failure
(HTTP error, non-OK status, no legs) returns None; the graph builder turns
that into its fixed fallback edge.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import requests

import config
from schemas.itinerary import TravelLeg
from modules.tool_usage.distance_tool import DistanceTool
from modules.tool_usage.retry import call_with_retry

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

_TAG_RE = re.compile(r"<[^>]+>")


def _strip_html(text: str) -> str:
    return _TAG_RE.sub("", text or "").strip()


def _step_text(step: dict) -> str:
    """One human-readable line per Directions step."""
    if step.get("travel_mode") == "TRANSIT" and step.get("transit_details"):
        td = step["transit_details"]
        line = td.get("line", {})
        vehicle = line.get("vehicle", {}).get("type", "TRANSIT")
        short = line.get("short_name") or line.get("name", "")
        dep = td.get("departure_stop", {}).get("name", "?")
        arr = td.get("arrival_stop", {}).get("name", "?")
        return f"{vehicle} {short} from {dep} -> {arr}"
    return _strip_html(step.get("html_instructions", ""))


def parse_directions(payload: dict, mode: str) -> Optional[TravelLeg]:
    """Parse a Directions JSON payload into a TravelLeg, or None when unusable."""
    if payload.get("status") != "OK":
        return None
    routes = payload.get("routes") or []
    legs = routes[0].get("legs") if routes else None
    if not legs:
        return None
    leg = legs[0]
    duration = leg.get("duration", {})
    if "value" not in duration:
        return None

    steps = [_step_text(s) for s in leg.get("steps", [])]
    steps = [s for s in steps if s]
    text = duration.get("text", "")
    if mode == "driving":
        via = " -> ".join(steps[:2])
        more = "..." if len(steps) > 2 else ""
        instructions = f"Drive {text} via {via}{more}" if via else f"Drive {text}"
    else:
        instructions = " -> ".join(steps)

    return TravelLeg(
        duration_seconds=int(duration["value"]),
        instructions=instructions,
        duration_text=text,
    )


class DirectionsTool:
    """Google Directions travel-time lookups with capped retry."""

    def __init__(self, api_key: str | None = None, session: requests.Session | None = None) -> None:
        self.api_key = api_key if api_key is not None else config.GOOGLE_MAPS_API_KEY
        self.session = session or requests.Session()

    def travel_time(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
        mode: Optional[str] = None,
    ) -> Optional[TravelLeg]:
        mode = mode or config.DIRECTIONS_MODE
        leg = self._query(origin, destination, mode)
        if leg is None and mode == "transit":
            logger.info("[DirectionsTool] transit lookup failed, trying driving mode")
            leg = self._query(origin, destination, "driving")
        return leg

    def _query(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
        mode: str,
    ) -> Optional[TravelLeg]:
        params = {
            "origin":      f"{origin[0]},{origin[1]}",
            "destination": f"{destination[0]},{destination[1]}",
            "mode":        mode,
            "key":         self.api_key,
        }

        def _get() -> dict:
            res = self.session.get(DIRECTIONS_URL, params=params, timeout=config.GOOGLE_REQUEST_TIMEOUT)
            res.raise_for_status()
            return res.json()

        payload = call_with_retry(_get, label=f"directions {params['origin']} -> {params['destination']}")
        if payload is None:
            return None
        leg = parse_directions(payload, mode)
        if leg is None:
            logger.warning(
                "[DirectionsTool] no route %s -> %s (status=%s)",
                params["origin"], params["destination"], payload.get("status"),
            )
        return leg


def get_travel_time_provider():
    """Return the configured travel-time provider (stub Haversine or Google Directions)."""
    if config.USE_STUB_DIRECTIONS:
        return DistanceTool()
    return DirectionsTool()
