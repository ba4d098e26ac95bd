"""
schemas/itinerary.py
--------------------
Dataclass definitions for the travel graph and the output itinerary structures.

Time unit: minutes, except TravelEdge.duration_seconds (provider native unit).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Optional

from schemas.place import Place, PlaceCategory


# ── Travel graph ───────────────────────────────────────────────────────────────

ORIGIN_NODE_ID = "__origin__"


@dataclass(frozen=True)
class TravelLeg:
    """Raw answer from a travel-time provider for one origin → destination query."""
    duration_seconds: int
    instructions: str = ""
    duration_text: str = ""


@dataclass(frozen=True)
class TravelEdge:
    """Directed travel leg between two graph nodes. Asymmetric pairs allowed."""
    from_node: str
    to_node: str
    duration_seconds: int
    instructions: str = ""
    is_fallback: bool = False

    @property
    def minutes(self) -> int:
        # half-up, so 30 s reads as 1 min
        return int(math.floor(self.duration_seconds / 60.0 + 0.5))


@dataclass
class TravelGraph:
    """
    Complete directed graph over the origin node plus a capped place list.

    Built per request and discarded afterwards — never persisted.
    """
    origin_id: str = ORIGIN_NODE_ID
    node_ids: list[str] = field(default_factory=list)
    edges: dict[tuple[str, str], TravelEdge] = field(default_factory=dict)

    def get(self, from_node: str, to_node: str) -> Optional[TravelEdge]:
        return self.edges.get((from_node, to_node))

    def add(self, edge: TravelEdge) -> None:
        self.edges[(edge.from_node, edge.to_node)] = edge

    def is_complete(self) -> bool:
        """True when every ordered pair of distinct nodes has an edge."""
        return all(
            (a, b) in self.edges
            for a in self.node_ids for b in self.node_ids if a != b
        )


# ── Itinerary ──────────────────────────────────────────────────────────────────

@dataclass
class ItineraryStop:
    """
    A single stop in a day's itinerary.

    ``place`` is None for meal annotations and for free-text generator items
    that could not be matched to a known place.
    """
    order: int = 0
    place: Optional[Place] = None
    name: str = ""
    category: PlaceCategory = PlaceCategory.UNKNOWN
    location_lat: Optional[float] = None
    location_lon: Optional[float] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    estimated_duration_minutes: int = 60
    travel_time_from_previous_minutes: Optional[int] = None
    travel_instructions: str = ""
    reason: str = ""

    @classmethod
    def from_place(cls, place: Place, reason: str = "") -> "ItineraryStop":
        return cls(
            place=place,
            name=place.name,
            category=place.category,
            location_lat=place.location_lat,
            location_lon=place.location_lon,
            estimated_duration_minutes=place.preferred_duration_minutes,
            reason=reason,
        )

    @property
    def place_id(self) -> Optional[str]:
        return self.place.place_id if self.place else None

    @property
    def is_meal(self) -> bool:
        return self.category.is_meal and self.place is None

    @property
    def has_coordinates(self) -> bool:
        if self.location_lat is None or self.location_lon is None:
            return False
        return not (self.location_lat == 0.0 and self.location_lon == 0.0)


class DayStatus(str, Enum):
    """Per-day planning state machine."""
    IDLE                   = "idle"
    ANCHORS_ASSIGNED       = "anchors_assigned"
    CANDIDATES_SHORTLISTED = "candidates_shortlisted"
    DAY_GENERATED          = "day_generated"
    OPTIMIZED              = "optimized"
    FINALIZED              = "finalized"


@dataclass
class DayPlan:
    """One day's scheduled stops plus a leftover pool for manual swap-in."""
    date: date
    anchor_ids: list[str] = field(default_factory=list)
    stops: list[ItineraryStop] = field(default_factory=list)
    pool: list[Place] = field(default_factory=list)
    status: DayStatus = DayStatus.IDLE
    degraded: bool = False
    failure_reason: str = ""

    def place_ids(self) -> list[str]:
        return [s.place_id for s in self.stops if s.place_id]


@dataclass
class TripPlan:
    """
    Top-level output of the multi-day planner.

    Invariant: a place id appears in at most one DayPlan's stops.
    """
    start_date: date
    end_date: date
    home_lat: float
    home_lon: float
    days: list[DayPlan] = field(default_factory=list)
    generated_at: str = ""  # ISO-8601 timestamp
    session_id: str = ""    # key of the JSONL event log

    def duplicate_place_ids(self) -> list[str]:
        """Return every place id that appears more than once across days."""
        seen: set[str] = set()
        dupes: list[str] = []
        for day in self.days:
            for pid in day.place_ids():
                if pid in seen and pid not in dupes:
                    dupes.append(pid)
                seen.add(pid)
        return dupes

    @property
    def total_stops(self) -> int:
        return sum(len(d.stops) for d in self.days)


@dataclass(frozen=True)
class ProgressUpdate:
    """Observational progress event. Never affects control flow."""
    stage: str
    message: str
    progress: Optional[float] = None     # 0..1
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "message": self.message,
            "progress": self.progress,
            "detail": self.detail,
        }


# ── Serialisers ────────────────────────────────────────────────────────────────

def _ser_time(t: Optional[time]) -> Optional[str]:
    return t.strftime("%H:%M") if t else None


def place_to_dict(p: Place) -> dict:
    return {
        "place_id": p.place_id,
        "name": p.name,
        "location_lat": p.location_lat,
        "location_lon": p.location_lon,
        "category": p.category.value,
        "score": round(p.score, 4),
        "preferred_duration_minutes": p.preferred_duration_minutes,
        "opening_hours": [
            {"opens": _ser_time(s.opens), "closes": _ser_time(s.closes)}
            for s in p.opening_spans
        ],
        "rating": p.rating,
        "user_ratings_total": p.user_ratings_total,
    }


def stop_to_dict(s: ItineraryStop) -> dict:
    return {
        "order": s.order,
        "place_id": s.place_id,
        "name": s.name,
        "category": s.category.value,
        "location_lat": s.location_lat,
        "location_lon": s.location_lon,
        "start_time": _ser_time(s.start_time),
        "end_time": _ser_time(s.end_time),
        "estimated_duration_minutes": s.estimated_duration_minutes,
        "travel_time_from_previous_minutes": s.travel_time_from_previous_minutes,
        "travel_instructions": s.travel_instructions,
        "reason": s.reason,
        "is_meal": s.is_meal,
    }


def day_plan_to_dict(d: DayPlan) -> dict:
    return {
        "date": d.date.isoformat(),
        "status": d.status.value,
        "degraded": d.degraded,
        "failure_reason": d.failure_reason,
        "anchor_ids": list(d.anchor_ids),
        "stops": [stop_to_dict(s) for s in d.stops],
        "pool": [place_to_dict(p) for p in d.pool],
    }


def trip_plan_to_dict(plan: TripPlan) -> dict:
    return {
        "start_date": plan.start_date.isoformat(),
        "end_date": plan.end_date.isoformat(),
        "home": {"lat": plan.home_lat, "lon": plan.home_lon},
        "generated_at": plan.generated_at,
        "session_id": plan.session_id,
        "total_stops": plan.total_stops,
        "days": [day_plan_to_dict(d) for d in plan.days],
    }
