"""
modules/tool_usage/distance_tool.py
-------------------------------------
Offline travel-time estimates using the Haversine formula with a configurable
speed. No external HTTP calls are made.

Used three ways:
  - as the stub travel-time provider (USE_STUB_DIRECTIONS=true),
  - as the "unknown travel time" estimate inside the time reconstructor,
  - for proximity ordering of the leftover candidate pool.

Config knob (config.py):
  FALLBACK_SPEED_KMH -- speed used for distance → minutes (default: 4.5)
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import config
from schemas.itinerary import TravelLeg

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pure maths
# ---------------------------------------------------------------------------

_EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (Haversine formula) in km."""
    r = _EARTH_RADIUS_KM
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return 2 * r * math.asin(math.sqrt(a))


def _km_to_minutes(km: float, speed_kmh: float) -> float:
    """Straight-line km to minutes at a given speed."""
    return (km / speed_kmh) * 60.0


# ---------------------------------------------------------------------------
# DistanceTool
# ---------------------------------------------------------------------------


class DistanceTool:
    """
    Computes travel times between lat/lon points using the Haversine formula
    plus a configurable speed (config.FALLBACK_SPEED_KMH).

    Implements the travel-time provider interface, so it can stand in for
    the Directions API when running offline.
    """

    def __init__(self, speed_kmh: float | None = None) -> None:
        self.speed_kmh: float = speed_kmh or config.FALLBACK_SPEED_KMH

    def travel_time_minutes(
        self,
        lat1: float,
        lon1: float,
        lat2: float,
        lon2: float,
    ) -> float:
        """Return travel time in minutes between two points using Haversine."""
        if lat1 == lat2 and lon1 == lon2:
            return 0.0
        km = haversine_km(lat1, lon1, lat2, lon2)
        return _km_to_minutes(km, self.speed_kmh)

    def travel_time(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
        mode: Optional[str] = None,
    ) -> TravelLeg:
        """Provider-shaped estimate. ``mode`` is accepted and ignored."""
        minutes = self.travel_time_minutes(origin[0], origin[1], destination[0], destination[1])
        km = haversine_km(origin[0], origin[1], destination[0], destination[1])
        return TravelLeg(
            duration_seconds=int(round(minutes * 60)),
            instructions=f"Walk ~{int(round(minutes))} min ({km:.1f} km)",
            duration_text=f"{int(round(minutes))} mins",
        )
