"""
modules/planning/time_reconstructor.py
----------------------------------------
Timing pass over an already-ordered stop list.

For each stop, in order:
  1. arrival = clock + travel from the previous stop
     (known leg → Haversine estimate → UNKNOWN_TRAVEL_MINUTES);
  2. if the place opens later than arrival, wait for opening;
  3. end = start + duration;
  4. if end passes closing, shrink to max(45 min, 50 %) when that still fits
     before closing − buffer, otherwise drop the stop.

Order is never changed: this is not a re-sequencing pass. Surviving stops
are renumbered 1..n. Stops whose window overlaps lunch or dinner get a
meal suggestion appended to ``reason`` unless an explicit meal stop already
covers that window. Suggestions never consume schedule time.

Explicit meal stops (no place, meal category) skip opening-hour checks.
"""

from __future__ import annotations

import logging
import math
import time as _time_mod
from dataclasses import dataclass, replace
from datetime import time
from typing import Optional, Sequence

import config
from schemas.itinerary import ItineraryStop
from schemas.place import OpeningSpan
from modules.observability.logger import StructuredLogger
from modules.planning.clock import fmt, m2t, parse_hhmm, t2m
from modules.planning.errors import ItineraryInputError
from modules.tool_usage.distance_tool import DistanceTool

logger = logging.getLogger(__name__)
_perf_logger = StructuredLogger()

# A stop starting within this many minutes of closing is never squeezed in.
_LATE_START_GUARD_MINUTES = 30


@dataclass(frozen=True)
class MealWindow:
    label: str
    start: int          # minutes from midnight
    end: int
    suggested_at: int

    def overlaps(self, start: int, end: int) -> bool:
        return (
            self.start <= start <= self.end
            or self.start <= end <= self.end
            or (start < self.start and end > self.end)
        )


LUNCH = MealWindow("lunch", 12 * 60, 14 * 60, 12 * 60 + 30)
DINNER = MealWindow("dinner", 18 * 60, 20 * 60, 18 * 60 + 30)
MEAL_WINDOWS: tuple[MealWindow, ...] = (LUNCH, DINNER)


def meal_suggestion(window: MealWindow, stop_name: str) -> str:
    return (
        f"{window.label.capitalize()} suggestion: consider dining at {stop_name} "
        f"around {fmt(m2t(window.suggested_at))} or at a nearby restaurant during this visit."
    )


def _active_span(spans: Sequence[OpeningSpan], start: int) -> Optional[OpeningSpan]:
    """First span (by opening time) that is still open at or after ``start``."""
    for span in sorted(spans, key=lambda s: s.opens):
        if t2m(span.closes) > start:
            return span
    return None


class ItineraryTimeReconstructor:
    """Recomputes concrete start/end times for a sequenced day."""

    def __init__(
        self,
        day_start: time | str | None = None,
        min_shrink_minutes: int | None = None,
        shrink_ratio: float | None = None,
        closing_buffer_minutes: int | None = None,
        unknown_travel_minutes: int | None = None,
        estimator: DistanceTool | None = None,
    ) -> None:
        if isinstance(day_start, time):
            self.day_start = day_start
        else:
            self.day_start = parse_hhmm(day_start or config.DAY_START)
        self.min_shrink_minutes = (
            config.SHRINK_MIN_MINUTES if min_shrink_minutes is None else min_shrink_minutes
        )
        self.shrink_ratio = config.SHRINK_RATIO if shrink_ratio is None else shrink_ratio
        self.closing_buffer_minutes = (
            config.CLOSING_BUFFER_MINUTES if closing_buffer_minutes is None else closing_buffer_minutes
        )
        self.unknown_travel_minutes = (
            config.UNKNOWN_TRAVEL_MINUTES if unknown_travel_minutes is None else unknown_travel_minutes
        )
        self.estimator = estimator or DistanceTool()

    # ── public API ────────────────────────────────────────────────────────

    def reconstruct(
        self,
        stops: Sequence[ItineraryStop],
        origin: tuple[float, float] | None = None,
    ) -> list[ItineraryStop]:
        """
        Return new, timed copies of ``stops``; the inputs are not modified.

        Raises ItineraryInputError when there are non-meal stops but none of
        them has usable coordinates.
        """
        if not stops:
            return []
        _t0 = _time_mod.perf_counter()

        visits = [s for s in stops if not s.is_meal]
        if visits and not any(s.has_coordinates for s in visits):
            raise ItineraryInputError(
                f"ERROR_NO_COORDINATES: none of the {len(visits)} stops has usable coordinates"
            )

        clock = t2m(self.day_start)
        prev_coords = origin
        timed: list[ItineraryStop] = []
        dropped = 0

        for stop in stops:
            travel = self._travel_minutes(stop, prev_coords)
            arrival = clock + travel
            clock = arrival
            if stop.has_coordinates:
                prev_coords = (stop.location_lat, stop.location_lon)

            window = self._fit(stop, arrival)
            if window is None:
                dropped += 1
                continue

            start, end = window
            timed.append(replace(
                stop,
                start_time=m2t(start),
                end_time=m2t(end),
                estimated_duration_minutes=end - start,
                travel_time_from_previous_minutes=travel,
            ))
            clock = end

        for i, stop in enumerate(timed, start=1):
            stop.order = i
        self._annotate_meals(timed)

        logger.info(
            "[time_reconstructor] %d stops timed, %d dropped (day start %s)",
            len(timed), dropped, fmt(self.day_start),
        )
        _perf_logger.log("default", "PERFORMANCE", {
            "component": "ItineraryTimeReconstructor",
            "stops_in": len(stops),
            "stops_out": len(timed),
            "duration_ms": round((_time_mod.perf_counter() - _t0) * 1000, 2),
        })
        return timed

    # ── internals ─────────────────────────────────────────────────────────

    def _travel_minutes(self, stop: ItineraryStop, prev: tuple[float, float] | None) -> int:
        if stop.travel_time_from_previous_minutes is not None:
            return max(0, int(stop.travel_time_from_previous_minutes))
        if prev is not None and stop.has_coordinates:
            est = self.estimator.travel_time_minutes(
                prev[0], prev[1], stop.location_lat, stop.location_lon,  # type: ignore[arg-type]
            )
            return max(0, int(math.floor(est + 0.5)))
        return self.unknown_travel_minutes

    def _fit(self, stop: ItineraryStop, arrival: int) -> tuple[int, int] | None:
        """Return (start, end) minutes honouring opening hours, or None to drop."""
        duration = max(1, int(stop.estimated_duration_minutes or 60))
        spans = stop.place.opening_spans if stop.place is not None else ()
        if stop.is_meal or not spans:
            return arrival, arrival + duration

        span = _active_span(spans, arrival)
        if span is None:
            logger.info("[time_reconstructor] dropping %r: closed for the rest of the day", stop.name)
            return None

        start = max(arrival, t2m(span.opens))
        end = start + duration
        close = t2m(span.closes)
        if end <= close:
            return start, end

        available = close - start - self.closing_buffer_minutes
        minimum = max(self.min_shrink_minutes, math.ceil(duration * self.shrink_ratio))
        if available >= minimum and start < close - _LATE_START_GUARD_MINUTES:
            shortened = max(minimum, min(available, duration))
            logger.info(
                "[time_reconstructor] shrinking %r from %d to %d min to close by %s",
                stop.name, duration, shortened, fmt(span.closes),
            )
            return start, start + shortened

        logger.info(
            "[time_reconstructor] dropping %r: %d min available before %s, need %d",
            stop.name, available, fmt(span.closes), minimum,
        )
        return None

    @staticmethod
    def _annotate_meals(timed: list[ItineraryStop]) -> None:
        covered: set[str] = set()
        for stop in timed:
            if not stop.category.is_meal:
                continue
            s, e = t2m(stop.start_time), t2m(stop.end_time)  # type: ignore[arg-type]
            covered.update(w.label for w in MEAL_WINDOWS if w.overlaps(s, e))

        for stop in timed:
            if stop.category.is_meal:
                continue
            s, e = t2m(stop.start_time), t2m(stop.end_time)  # type: ignore[arg-type]
            for window in MEAL_WINDOWS:
                if window.label in covered or not window.overlaps(s, e):
                    continue
                if window.label in stop.reason.lower():
                    continue
                note = meal_suggestion(window, stop.name)
                stop.reason = f"{stop.reason}\n\n{note}" if stop.reason else note
