"""
modules/tool_usage/place_tool.py
----------------------------------
Place provider: scored attraction candidates around the traveller's home.

Real API:  POST https://places.googleapis.com/v1/places:searchNearby
Auth:      X-Goog-Api-Key header  (config.GOOGLE_MAPS_API_KEY)

Stub mode: USE_STUB_PLACES=true returns a fixed set of generic attractions
           laid out around the requested coordinate, for offline runs.

Every record is scored with place_scoring.score_place at neutral preference
weight. Opening spans are today's only. A failed search returns [] (the
planner decides whether an empty pool is fatal).
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time
from typing import Optional, Protocol

import requests

import config
from schemas.place import OpeningSpan, Place, PlaceCategory, default_duration
from modules.planning.place_scoring import score_place
from modules.tool_usage.distance_tool import haversine_km
from modules.tool_usage.retry import call_with_retry

logger = logging.getLogger(__name__)

NEARBY_URL = "https://places.googleapis.com/v1/places:searchNearby"

_INCLUDED_TYPES: list[str] = [
    "museum",
    "art_gallery",
    "tourist_attraction",
    "historical_landmark",
    "park",
    "amusement_park",
    "aquarium",
    "zoo",
    "beach",
    "place_of_worship",
    "market",
]

_FIELD_MASK = (
    "places.id,"
    "places.displayName,"
    "places.location,"
    "places.regularOpeningHours,"
    "places.rating,"
    "places.userRatingCount,"
    "places.types"
)

_END_OF_DAY = time(23, 59)


class PlaceProvider(Protocol):
    def fetch(self, lat: float, lon: float) -> list[Place]:
        ...


# ── Opening hours ─────────────────────────────────────────────────────────────

def _google_weekday(day: date) -> int:
    """Google counts days from Sunday = 0."""
    return (day.weekday() + 1) % 7


def spans_from_periods(periods: list[dict], day: date) -> tuple[OpeningSpan, ...]:
    """
    Today's spans from ``regularOpeningHours.periods``.

    A period without ``close`` means open 24 hours. A period closing on a
    later day is cut at 23:59.
    """
    today = _google_weekday(day)
    spans: list[OpeningSpan] = []
    for period in periods or []:
        opens = period.get("open") or {}
        if opens.get("day") != today:
            continue
        start = time(int(opens.get("hour", 0)), int(opens.get("minute", 0)))
        closes = period.get("close")
        if not closes:
            spans.append(OpeningSpan(time(0, 0), _END_OF_DAY))
            continue
        if closes.get("day") != today:
            end = _END_OF_DAY
        else:
            end = time(int(closes.get("hour", 0)), int(closes.get("minute", 0)))
        if end > start:
            spans.append(OpeningSpan(start, end))
    return tuple(sorted(spans, key=lambda s: s.opens))


_RANGE_RE = re.compile(
    r"(\d{1,2}:\d{2}\s*(?:AM|PM)?)\s*[–—\-]\s*(\d{1,2}:\d{2}\s*(?:AM|PM)?)",
    re.IGNORECASE,
)


def _clock(text: str, meridiem_hint: str = "") -> Optional[time]:
    raw = text.strip().upper()
    if not raw.endswith(("AM", "PM")) and meridiem_hint:
        raw = f"{raw} {meridiem_hint}"
    for fmt in ("%I:%M %p", "%I:%M%p", "%H:%M"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    return None


def spans_from_description(description: str) -> tuple[OpeningSpan, ...]:
    """
    Parse one ``weekdayDescriptions`` entry.

      "Monday: 9:00 AM – 6:00 PM"              → (09:00-18:00,)
      "Friday: 9:00 AM – 12:00 PM, 2:00 – 9:00 PM" → two spans
      "Monday: Open 24 hours"                  → (00:00-23:59,)
      "Monday: Closed"                         → ()
    """
    desc = description.split(": ", 1)[1] if ": " in description else description
    lower = desc.lower()
    if "open 24 hours" in lower:
        return (OpeningSpan(time(0, 0), _END_OF_DAY),)
    spans: list[OpeningSpan] = []
    for m in _RANGE_RE.finditer(desc.replace("\u202f", " ")):
        close_raw = m.group(2)
        hint = close_raw.strip().upper()[-2:] if close_raw.strip().upper().endswith(("AM", "PM")) else ""
        opens = _clock(m.group(1), hint)
        closes = _clock(close_raw)
        if opens and closes and closes > opens:
            spans.append(OpeningSpan(opens, closes))
    return tuple(spans)


def opening_spans_for(hours: dict, day: date) -> tuple[OpeningSpan, ...]:
    if not hours:
        return ()
    spans = spans_from_periods(hours.get("periods") or [], day)
    if spans:
        return spans
    descriptions = hours.get("weekdayDescriptions") or []
    if len(descriptions) == 7:
        # descriptions are listed Monday first
        return spans_from_description(descriptions[day.weekday()])
    return ()


# ── Parsing ───────────────────────────────────────────────────────────────────

def parse_google_place(raw: dict, home: tuple[float, float], day: date) -> Optional[Place]:
    """Convert one Places (New) result into a scored Place, or None when unusable."""
    place_id = raw.get("id")
    name = (raw.get("displayName") or {}).get("text", "").strip()
    if not place_id or not name:
        return None
    loc = raw.get("location") or {}
    lat, lon = loc.get("latitude"), loc.get("longitude")
    category = PlaceCategory.from_google_types(raw.get("types") or [], name)
    rating = raw.get("rating")
    votes = int(raw.get("userRatingCount") or 0)
    distance = haversine_km(home[0], home[1], lat, lon) if lat is not None and lon is not None else None
    return Place(
        place_id=place_id,
        name=name,
        location_lat=lat,
        location_lon=lon,
        category=category,
        score=score_place(name, rating, votes, distance),
        preferred_duration_minutes=default_duration(category),
        opening_spans=opening_spans_for(raw.get("regularOpeningHours") or {}, day),
        rating=rating,
        user_ratings_total=votes,
    )


class GooglePlacesTool:
    """Nearby search against Google Places (New) with capped retry."""

    def __init__(self, api_key: str | None = None, session: requests.Session | None = None) -> None:
        self.api_key = api_key if api_key is not None else config.GOOGLE_MAPS_API_KEY
        self.session = session or requests.Session()

    def fetch(self, lat: float, lon: float, day: date | None = None) -> list[Place]:
        if not self.api_key:
            raise EnvironmentError(
                "GOOGLE_MAPS_API_KEY is not set. "
                "Set USE_STUB_PLACES=true for offline runs."
            )
        body = {
            "includedTypes": _INCLUDED_TYPES,
            "maxResultCount": config.GOOGLE_PLACES_MAX_RESULTS,
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": lat, "longitude": lon},
                    "radius": float(config.GOOGLE_PLACES_SEARCH_RADIUS_M),
                }
            },
            "rankPreference": "POPULARITY",
        }
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": _FIELD_MASK,
        }

        def _post() -> dict:
            res = self.session.post(NEARBY_URL, json=body, headers=headers,
                                    timeout=config.GOOGLE_REQUEST_TIMEOUT)
            res.raise_for_status()
            return res.json()

        data = call_with_retry(_post, label=f"places nearby {lat},{lon}")
        if data is None:
            return []

        day = day or date.today()
        places = [parse_google_place(p, (lat, lon), day) for p in data.get("places", [])]
        out = [p for p in places if p is not None]
        logger.info("[GooglePlacesTool] %d places near (%.4f, %.4f)", len(out), lat, lon)
        return out


# ── Stub ──────────────────────────────────────────────────────────────────────

# (suffix, name, category, d_lat, d_lon, rating, votes, hours or None)
_STUB_ROWS: tuple = (
    ("grand_mosque",  "Grand Mosque",           PlaceCategory.RELIGIOUS_SITE, 0.012, -0.020, 4.8, 52000, ("09:00", "22:00")),
    ("nat_museum",    "National Museum",        PlaceCategory.MUSEUM,         0.006,  0.004, 4.7, 31000, ("10:00", "18:00")),
    ("art_gallery",   "Modern Art Gallery",     PlaceCategory.ART_GALLERY,    0.004,  0.010, 4.5,  6400, ("10:00", "20:00")),
    ("old_fort",      "Old Fort",               PlaceCategory.LANDMARK,      -0.005,  0.006, 4.6, 18000, ("09:00", "19:00")),
    ("palace",        "Heritage Palace",        PlaceCategory.LANDMARK,       0.015,  0.012, 4.7, 24000, ("10:00", "19:00")),
    ("corniche",      "Waterfront Corniche",    PlaceCategory.OUTDOOR,       -0.010, -0.004, 4.6, 15000, None),
    ("central_park",  "Central Park",           PlaceCategory.PARK,          -0.003, -0.012, 4.4,  9000, ("07:00", "23:00")),
    ("souk",          "Central Souk",           PlaceCategory.MARKET,         0.002, -0.006, 4.3, 11000, ("10:00", "22:00")),
    ("aquarium",      "City Aquarium",          PlaceCategory.AQUARIUM,       0.020,  0.002, 4.5, 13000, ("10:00", "20:00")),
    ("zoo",           "Wildlife Zoo",           PlaceCategory.ZOO,           -0.025,  0.018, 4.4,  8000, ("09:00", "18:00")),
    ("beach",         "Public Beach",           PlaceCategory.BEACH,         -0.016, -0.022, 4.5, 12000, None),
    ("obs_deck",      "Observation Deck",       PlaceCategory.LANDMARK,       0.008, -0.014, 4.6,  7000, ("10:00", "22:00")),
    ("theme_park",    "Adventure Theme Park",   PlaceCategory.AMUSEMENT_PARK, 0.030, -0.030, 4.6, 20000, ("11:00", "20:00")),
    ("history_museum","History Museum",         PlaceCategory.MUSEUM,        -0.008,  0.014, 4.3,  3500, ("09:00", "17:00")),
    ("botanic",       "Botanical Garden",       PlaceCategory.PARK,           0.018, -0.008, 4.2,  2500, ("08:00", "18:00")),
    ("harbour_cafe",  "Harbour Cafe",           PlaceCategory.CAFE,          -0.002,  0.002, 4.4,  1800, ("08:00", "23:00")),
)


def _hhmm(value: str) -> time:
    h, m = value.split(":")
    return time(int(h), int(m))


class StubPlaceTool:
    """Deterministic offline place list around the requested coordinate."""

    def fetch(self, lat: float, lon: float, day: date | None = None) -> list[Place]:
        out: list[Place] = []
        for suffix, name, category, d_lat, d_lon, rating, votes, hours in _STUB_ROWS:
            p_lat, p_lon = round(lat + d_lat, 6), round(lon + d_lon, 6)
            spans = (OpeningSpan(_hhmm(hours[0]), _hhmm(hours[1])),) if hours else ()
            out.append(Place(
                place_id=f"stub_{suffix}",
                name=name,
                location_lat=p_lat,
                location_lon=p_lon,
                category=category,
                score=score_place(name, rating, votes, haversine_km(lat, lon, p_lat, p_lon)),
                preferred_duration_minutes=default_duration(category),
                opening_spans=spans,
                rating=rating,
                user_ratings_total=votes,
            ))
        logger.info("[StubPlaceTool] returning %d stub places", len(out))
        return out


def get_place_provider():
    """Return the configured place provider (stub or Google Places)."""
    if config.USE_STUB_PLACES:
        return StubPlaceTool()
    return GooglePlacesTool()
