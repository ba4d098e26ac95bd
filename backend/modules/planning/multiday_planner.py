"""
modules/planning/multiday_planner.py
--------------------------------------
Multi-day trip orchestration.

Run order:
  1. Validate trip setup (dates, home)             → TripSetupError on failure
  2. Fetch places once, validate, apply preferences → TripSetupError if empty
  3. Assign anchors for every day; seed ``used`` with all of them
  4. For each day, strictly in order:
        IDLE → ANCHORS_ASSIGNED → CANDIDATES_SHORTLISTED → DAY_GENERATED
             → OPTIMIZED → FINALIZED
     Any day-level failure finalizes that day empty (degraded) and the
     loop moves on.
  5. Scan the finished plan for repeated place ids (logged, never raised)

No-repeat: the PlanningSession owns the single ``used`` set. A place is
accepted into a day only if it is unused or one of that day's anchors,
and it is reserved before the next day starts.

Progress updates go to the optional observer and to the JSONL event log;
they never change control flow. Cancellation is checked between days.
"""

from __future__ import annotations

import logging
import time as _time_mod
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

import config
from schemas.itinerary import DayPlan, DayStatus, ItineraryStop, ProgressUpdate, TripPlan
from schemas.place import Place, PlaceCategory
from schemas.preferences import TripContext, UserPreferences
from modules.observability.logger import StructuredLogger
from modules.planning.anchor_assigner import AnchorAssignment, assign_anchors
from modules.planning.clock import parse_duration_minutes, parse_hhmm
from modules.planning.errors import TripSetupError
from modules.planning.place_scoring import distance_from, prioritize
from modules.planning.route_sequencer import sequence_route
from modules.planning.time_reconstructor import ItineraryTimeReconstructor
from modules.planning.travel_graph import TravelTimeProvider, build_travel_graph
from modules.tool_usage.day_generator import DayContentGenerator, DayHints, get_day_generator
from modules.tool_usage.directions_tool import get_travel_time_provider
from modules.tool_usage.place_tool import PlaceProvider, get_place_provider
from modules.validation import dedupe_places, filter_valid, require_trip_setup, validate_place

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[ProgressUpdate], None]


class DayPlanningError(Exception):
    """Recoverable failure of a single day. Never escapes the planner."""


@dataclass
class PlanningSession:
    """
    State threaded through one planning run.

    ``used`` only grows. It is seeded with every anchor before day 1 and
    extended with each day's places before the next day starts.
    """
    session_id: str
    home: tuple[float, float]
    places: list[Place]
    anchors: AnchorAssignment
    used: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.by_id: dict[str, Place] = {p.place_id: p for p in self.places}
        self.used.update(self.anchors.used)

    def available_for(self, day: date) -> list[Place]:
        anchor_ids = set(self.anchors.anchors_for(day))
        return [p for p in self.places if p.place_id in anchor_ids or p.place_id not in self.used]

    def reserve(self, place_ids: Iterable[str]) -> None:
        self.used.update(place_ids)

    def names(self, place_ids: Iterable[str]) -> list[str]:
        return [self.by_id[pid].name if pid in self.by_id else pid for pid in place_ids]

    def leftover_pool(self, size: int) -> list[Place]:
        """Unused places, best score first, nearer to home on ties."""
        unused = [p for p in self.places if p.place_id not in self.used]
        unused.sort(key=lambda p: (-p.score, distance_from(p, self.home) or float("inf")))
        return unused[:size]


class MultiDayPlanner:
    """Plans every day of a trip with a global no-repeat guarantee."""

    def __init__(
        self,
        place_provider: PlaceProvider | None = None,
        travel_provider: TravelTimeProvider | None = None,
        day_generator: DayContentGenerator | None = None,
        events: StructuredLogger | None = None,
        max_day_candidates: int | None = None,
        min_viable_stops: int | None = None,
        leftover_pool_size: int | None = None,
        graph_call_delay_s: float | None = None,
    ) -> None:
        self.place_provider = place_provider or get_place_provider()
        self.travel_provider = travel_provider or get_travel_time_provider()
        self.day_generator = day_generator or get_day_generator()
        self.events = events or StructuredLogger()
        self.max_day_candidates = max_day_candidates or config.MAX_DAY_CANDIDATES
        self.min_viable_stops = config.MIN_VIABLE_STOPS if min_viable_stops is None else min_viable_stops
        self.leftover_pool_size = leftover_pool_size or config.LEFTOVER_POOL_SIZE
        self.graph_call_delay_s = graph_call_delay_s

    # ── public API ────────────────────────────────────────────────────────

    def plan(
        self,
        trip_context: TripContext | None,
        preferences: UserPreferences | None = None,
        observer: ProgressObserver | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> TripPlan:
        """
        Build a TripPlan. Raises TripSetupError only for missing/invalid
        dates, home coordinates, or an empty place pool.
        """
        _t0 = _time_mod.perf_counter()
        session_id = f"plan_{uuid.uuid4().hex[:8]}"
        emit = self._emitter(session_id, observer)
        prefs = preferences or UserPreferences()

        emit("init", "Reading trip setup...", 0.02)
        days, home = require_trip_setup(trip_context)
        emit("context", f"Planning {len(days)} day{'s' if len(days) != 1 else ''}", 0.12,
             f"{days[0].isoformat()} to {days[-1].isoformat()}")

        emit("places", "Finding top attractions near your stay...", 0.28)
        places = self._fetch_places(home)
        emit("places", f"Fetched {len(places)} places", 0.34)
        if not places:
            raise TripSetupError(
                f"ERROR_NO_PLACES: no places found near ({home[0]:.5f}, {home[1]:.5f})"
            )

        emit("prioritize", "Applying your preferences and avoid list...", 0.45)
        places = prioritize(places, prefs)
        emit("prioritize", f"Top {len(places)} places prioritized", 0.52)

        emit("anchors", "Assigning must-see anchors for each day...", 0.56)
        anchors = assign_anchors(days, places, prefs.must_see, config.ANCHORS_PER_DAY)
        session = PlanningSession(session_id=session_id, home=home, places=places, anchors=anchors)
        emit("anchors", f"Anchors ready for {len(days)} day{'s' if len(days) != 1 else ''}", 0.6)

        reconstructor = ItineraryTimeReconstructor(
            day_start=parse_hhmm(trip_context.itinerary_start_time, config.DAY_START)  # type: ignore[union-attr]
        )

        out_days: list[DayPlan] = []
        reached = 0.6
        for i, day in enumerate(days):
            if should_cancel is not None and should_cancel():
                logger.info("[MultiDayPlanner] cancelled before day %d/%d", i + 1, len(days))
                emit("cancelled", f"Planning cancelled before day {i + 1}", reached)
                out_days.extend(self._failed_day(session, d, "cancelled") for d in days[i:])
                break

            emit(f"day-{i + 1}", f"Planning Day {i + 1} ({day.isoformat()})",
                 min(0.6 + (i / len(days)) * 0.3, 0.9), f"{len(session.used)} places already reserved")
            try:
                plan = self._plan_day(session, day, reconstructor)
            except Exception as exc:  # noqa: BLE001
                logger.warning("[MultiDayPlanner] day %s failed: %s", day.isoformat(), exc)
                plan = self._failed_day(session, day, str(exc) or type(exc).__name__)
            out_days.append(plan)

            self.events.log(session_id, "DAY_RESULT", {
                "date": day.isoformat(),
                "stops": len(plan.stops),
                "anchors": plan.anchor_ids,
                "degraded": plan.degraded,
                "failure_reason": plan.failure_reason,
            })
            reached = min(0.6 + ((i + 1) / len(days)) * 0.3, 0.92)
            emit(f"day-{i + 1}-complete", f"Day {i + 1} planned ({len(plan.stops)} activities)", reached)

        trip = TripPlan(
            start_date=days[0],
            end_date=days[-1],
            home_lat=home[0],
            home_lon=home[1],
            days=out_days,
            generated_at=datetime.now(timezone.utc).isoformat(),
            session_id=session_id,
        )

        emit("finalize", "Finalizing trip plan...", 0.96)
        dupes = trip.duplicate_place_ids()
        if dupes:
            logger.error("[MultiDayPlanner] repeated place ids across days: %s", dupes)
            self.events.log(session_id, "DUPLICATES", {"place_ids": dupes})

        logger.info(
            "[MultiDayPlanner] %d days, %d stops, %d unique places reserved",
            len(trip.days), trip.total_stops, len(session.used),
        )
        self.events.log("default", "PERFORMANCE", {
            "component": "MultiDayPlanner",
            "days": len(trip.days),
            "stops": trip.total_stops,
            "duration_ms": round((_time_mod.perf_counter() - _t0) * 1000, 2),
        })
        emit("complete", "Multi-day itinerary ready!", 1.0)
        return trip

    # ── per-day pipeline ──────────────────────────────────────────────────

    def _plan_day(
        self,
        session: PlanningSession,
        day: date,
        reconstructor: ItineraryTimeReconstructor,
    ) -> DayPlan:
        anchor_ids = session.anchors.anchors_for(day)
        plan = DayPlan(date=day, anchor_ids=anchor_ids, status=DayStatus.ANCHORS_ASSIGNED)

        shortlist = self._shortlist(session, day)
        plan.status = DayStatus.CANDIDATES_SHORTLISTED
        if not shortlist:
            raise DayPlanningError("no candidate places left")

        hints = DayHints(
            day=day,
            available_names=[p.name for p in shortlist],
            used_names=session.names(pid for pid in session.used if pid not in anchor_ids),
            anchor_names=session.names(anchor_ids),
            start_time=reconstructor.day_start.strftime("%H:%M"),
        )
        items = self.day_generator.generate(shortlist, session.home, hints)
        if not items:
            raise DayPlanningError("day generator returned no items")
        plan.status = DayStatus.DAY_GENERATED

        visits, meals, reasons = self._resolve_items(items, shortlist, anchor_ids)
        self._backfill(visits, reasons, shortlist)
        if not visits:
            raise DayPlanningError("no generated item matched an available place")
        if len(visits) > config.GRAPH_MAX_PLACES:
            logger.info("[MultiDayPlanner] %s: keeping %d of %d visits for routing",
                        day.isoformat(), config.GRAPH_MAX_PLACES, len(visits))
            del visits[config.GRAPH_MAX_PLACES:]

        session.reserve(p.place_id for p in visits)

        graph = build_travel_graph(
            session.home, visits, self.travel_provider,
            call_delay_s=self.graph_call_delay_s,
        )
        route = sequence_route(visits, graph, reconstructor.day_start)
        for stop in route:
            stop.reason = reasons.get(stop.place_id or "", stop.reason)
        stops = _merge_meals(route, meals)
        plan.status = DayStatus.OPTIMIZED

        plan.stops = reconstructor.reconstruct(stops, origin=session.home)
        plan.pool = session.leftover_pool(self.leftover_pool_size)
        plan.degraded = sum(1 for s in plan.stops if not s.is_meal) < self.min_viable_stops
        plan.status = DayStatus.FINALIZED
        logger.info(
            "[MultiDayPlanner] %s: %d stops (%d anchors), pool %d",
            day.isoformat(), len(plan.stops), len(anchor_ids), len(plan.pool),
        )
        return plan

    def _shortlist(self, session: PlanningSession, day: date) -> list[Place]:
        """Today's anchors plus the best unused places, score-sorted and capped."""
        available = session.available_for(day)
        anchor_ids = set(session.anchors.anchors_for(day))
        anchors = [p for p in available if p.place_id in anchor_ids]
        others = sorted((p for p in available if p.place_id not in anchor_ids),
                        key=lambda p: p.score, reverse=True)
        room = max(0, self.max_day_candidates - len(anchors))
        return sorted(anchors + others[:room], key=lambda p: p.score, reverse=True)

    def _resolve_items(
        self,
        items: Sequence[dict],
        shortlist: Sequence[Place],
        anchor_ids: Sequence[str],
    ) -> tuple[list[Place], list[tuple[int, ItineraryStop]], dict[str, str]]:
        """
        Map generator items onto shortlist places, by id then by name.

        Returns (visits, meals, reasons). Each meal carries the number of
        visits that preceded it in the generator's order. Items that match
        nothing available today are dropped. Today's anchors always come
        first, whether or not the generator listed them.
        """
        by_id = {p.place_id: p for p in shortlist}
        by_name = {p.name.strip().lower(): p for p in shortlist}
        visits: list[Place] = []
        meals: list[tuple[int, ItineraryStop]] = []
        reasons: dict[str, str] = {}
        seen: set[str] = set()

        for item in items:
            name = str(item.get("name") or "").strip()
            place = by_id.get(str(item.get("place_id") or "")) or by_name.get(name.lower())
            category = PlaceCategory.parse(item.get("category"))

            if place is None and category.is_meal:
                meals.append((len(visits), ItineraryStop(
                    name=name or "Meal",
                    category=PlaceCategory.MEAL,
                    estimated_duration_minutes=parse_duration_minutes(item.get("estimated_duration")),
                    travel_instructions=str(item.get("travel_instructions") or ""),
                    reason=str(item.get("reason") or ""),
                )))
                continue
            if place is None:
                logger.info("[MultiDayPlanner] dropping unmatched item %r", name)
                continue
            if place.place_id in seen:
                continue
            seen.add(place.place_id)
            visits.append(place)
            if item.get("reason"):
                reasons[place.place_id] = str(item["reason"])

        anchors = [by_id[a] for a in anchor_ids if a in by_id]
        for anchor in anchors:
            if anchor.place_id not in seen:
                reasons.setdefault(anchor.place_id, "Anchor for the day")
        anchor_set = {a.place_id for a in anchors}
        position = {p.place_id: i for i, p in enumerate(visits)}
        # a meal stays after the same visits, plus every anchor moved ahead of it
        meals = [
            (pos + sum(1 for a in anchors if position.get(a.place_id, len(visits)) >= pos), stop)
            for pos, stop in meals
        ]
        return anchors + [p for p in visits if p.place_id not in anchor_set], meals, reasons

    def _backfill(self, visits: list[Place], reasons: dict[str, str], shortlist: Sequence[Place]) -> None:
        """Top up to the minimum viable stop count from the shortlist, best score first."""
        if len(visits) >= self.min_viable_stops:
            return
        chosen = {p.place_id for p in visits}
        for place in shortlist:
            if len(visits) >= self.min_viable_stops:
                break
            if place.place_id in chosen:
                continue
            visits.append(place)
            chosen.add(place.place_id)
            reasons[place.place_id] = "Added to round out the day"
        logger.info("[MultiDayPlanner] backfilled day to %d stops", len(visits))

    # ── helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def _failed_day(session: PlanningSession, day: date, reason: str) -> DayPlan:
        return DayPlan(
            date=day,
            anchor_ids=session.anchors.anchors_for(day),
            status=DayStatus.FINALIZED,
            degraded=True,
            failure_reason=reason,
        )

    def _fetch_places(self, home: tuple[float, float]) -> list[Place]:
        try:
            raw = self.place_provider.fetch(home[0], home[1])
        except Exception as exc:  # noqa: BLE001
            logger.warning("[MultiDayPlanner] place provider failed: %s", exc)
            return []
        return dedupe_places(filter_valid(list(raw or []), validate_place))

    def _emitter(self, session_id: str, observer: Optional[ProgressObserver]):
        def emit(stage: str, message: str, progress: Optional[float], detail: Optional[str] = None) -> None:
            update = ProgressUpdate(stage=stage, message=message, progress=progress, detail=detail)
            self.events.log(session_id, "PROGRESS", update.to_dict())
            if observer is None:
                return
            try:
                observer(update)
            except Exception as exc:  # noqa: BLE001
                logger.warning("[MultiDayPlanner] progress observer raised: %s", exc)
        return emit


def _merge_meals(route: list[ItineraryStop], meals: list[tuple[int, ItineraryStop]]) -> list[ItineraryStop]:
    """Insert meal stops after the same number of visits they followed in the generator output."""
    if not meals:
        return list(route)
    out: list[ItineraryStop] = []
    pending = sorted(meals, key=lambda m: m[0])
    for idx, stop in enumerate(route):
        while pending and pending[0][0] <= idx:
            out.append(pending.pop(0)[1])
        out.append(stop)
    out.extend(m[1] for m in pending)
    return out
