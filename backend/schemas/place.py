"""
schemas/place.py
----------------
Place records returned by the place provider.

Places are immutable once fetched: every planning step receives the same
frozen records and never edits them in place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Iterable, Optional


class PlaceCategory(str, Enum):
    """Closed set of place categories. Anything unrecognised maps to UNKNOWN."""
    MUSEUM             = "museum"
    ART_GALLERY        = "art_gallery"
    RELIGIOUS_SITE     = "religious_site"
    LANDMARK           = "landmark"
    TOURIST_ATTRACTION = "tourist_attraction"
    PARK               = "park"
    BEACH              = "beach"
    AQUARIUM           = "aquarium"
    ZOO                = "zoo"
    AMUSEMENT_PARK     = "amusement_park"
    SPORTS             = "sports"
    MARKET             = "market"
    CAFE               = "cafe"
    RESTAURANT         = "restaurant"
    MEAL               = "meal"
    INDOOR             = "indoor"
    OUTDOOR            = "outdoor"
    UNKNOWN            = "unknown"

    @classmethod
    def parse(cls, value: object) -> "PlaceCategory":
        """
        Map free text (or an existing member) onto the enum.

        Accepts the enum values plus the Google Places type names and
        common synonyms ("place_of_worship", "souk", "bazaar", "stadium").
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNKNOWN
        key = re.sub(r"[^a-z_]", "_", str(value).strip().lower()).strip("_")
        key = _CATEGORY_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_google_types(cls, types: Iterable[str], name: str = "") -> "PlaceCategory":
        """Normalise a Google Places ``types`` list (plus the place name)."""
        t = {str(x).lower() for x in types}
        for google_type, category in _GOOGLE_TYPE_ORDER:
            if google_type in t:
                return category
        if _MARKET_NAME_RE.search(name):
            return cls.MARKET
        if t & {"palace", "fort"} or _LANDMARK_NAME_RE.search(name):
            return cls.LANDMARK
        if t & {"tourist_attraction", "point_of_interest"}:
            return cls.TOURIST_ATTRACTION
        return cls.UNKNOWN

    @property
    def is_meal(self) -> bool:
        return self in (PlaceCategory.MEAL, PlaceCategory.RESTAURANT)


_CATEGORY_ALIASES: dict[str, str] = {
    "religious_sites":  "religious_site",
    "place_of_worship": "religious_site",
    "mosque":           "religious_site",
    "temple":           "religious_site",
    "church":           "religious_site",
    "souk":             "market",
    "bazaar":           "market",
    "stadium":          "sports",
    "gallery":          "art_gallery",
    "attraction":       "tourist_attraction",
    "palace":           "landmark",
    "fort":             "landmark",
    "food":             "restaurant",
    "lunch":            "meal",
    "dinner":           "meal",
    "breakfast":        "meal",
    "coffee":           "cafe",
}

_GOOGLE_TYPE_ORDER: tuple[tuple[str, PlaceCategory], ...] = (
    ("museum",           PlaceCategory.MUSEUM),
    ("art_gallery",      PlaceCategory.ART_GALLERY),
    ("place_of_worship", PlaceCategory.RELIGIOUS_SITE),
    ("aquarium",         PlaceCategory.AQUARIUM),
    ("zoo",              PlaceCategory.ZOO),
    ("amusement_park",   PlaceCategory.AMUSEMENT_PARK),
    ("stadium",          PlaceCategory.SPORTS),
    ("park",             PlaceCategory.PARK),
    ("beach",            PlaceCategory.BEACH),
    ("market",           PlaceCategory.MARKET),
    ("cafe",             PlaceCategory.CAFE),
    ("restaurant",       PlaceCategory.RESTAURANT),
)

_MARKET_NAME_RE = re.compile(r"souk|bazaar|market", re.IGNORECASE)
_LANDMARK_NAME_RE = re.compile(
    r"mosque|palace|qasr|fort|citadel|heritage|louvre|observation|corniche|national",
    re.IGNORECASE,
)

# Default visit length per category [minutes]
DEFAULT_DURATION_MINUTES: dict[PlaceCategory, int] = {
    PlaceCategory.MUSEUM:             120,
    PlaceCategory.ART_GALLERY:        90,
    PlaceCategory.RELIGIOUS_SITE:     75,
    PlaceCategory.LANDMARK:           90,
    PlaceCategory.TOURIST_ATTRACTION: 90,
    PlaceCategory.PARK:               120,
    PlaceCategory.BEACH:              150,
    PlaceCategory.AQUARIUM:           120,
    PlaceCategory.ZOO:                150,
    PlaceCategory.AMUSEMENT_PARK:     210,
    PlaceCategory.SPORTS:             90,
    PlaceCategory.MARKET:             75,
    PlaceCategory.CAFE:               45,
    PlaceCategory.RESTAURANT:         60,
    PlaceCategory.MEAL:               60,
}
FALLBACK_DURATION_MINUTES = 90


def default_duration(category: PlaceCategory) -> int:
    return DEFAULT_DURATION_MINUTES.get(category, FALLBACK_DURATION_MINUTES)


@dataclass(frozen=True)
class OpeningSpan:
    """One opening interval for today (local time)."""
    opens: time
    closes: time

    def contains(self, start: time, end: time) -> bool:
        return self.opens <= start and end <= self.closes


@dataclass(frozen=True)
class Place:
    """A scored candidate place. ``score`` is comparable only within one fetch."""
    place_id: str
    name: str
    location_lat: Optional[float] = None
    location_lon: Optional[float] = None
    category: PlaceCategory = PlaceCategory.UNKNOWN
    score: float = 0.0
    preferred_duration_minutes: int = 60
    opening_spans: tuple[OpeningSpan, ...] = field(default_factory=tuple)
    rating: Optional[float] = None
    user_ratings_total: int = 0

    @property
    def has_coordinates(self) -> bool:
        """True when both coordinates are present and not the (0, 0) sentinel."""
        if self.location_lat is None or self.location_lon is None:
            return False
        return not (self.location_lat == 0.0 and self.location_lon == 0.0)

    @property
    def coords(self) -> tuple[float, float] | None:
        if not self.has_coordinates:
            return None
        return (self.location_lat, self.location_lon)  # type: ignore[return-value]

    @property
    def opens_at(self) -> Optional[time]:
        """Earliest opening time today, or None when hours are unknown."""
        return min((s.opens for s in self.opening_spans), default=None)

    @property
    def closes_at(self) -> Optional[time]:
        """Latest closing time today, or None when hours are unknown."""
        return max((s.closes for s in self.opening_spans), default=None)
