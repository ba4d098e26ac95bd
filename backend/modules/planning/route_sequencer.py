"""
modules/planning/route_sequencer.py
-------------------------------------
Greedy nearest-neighbour ordering over a TravelGraph.

Starting at the graph origin, repeatedly move to the unvisited place with
the smallest travel time from the current node. A running clock
(travel minutes + preferred visit duration) gives each stop a provisional
start/end; the time reconstructor refines those afterwards.

Rules:
  - Comparison is strictly "<", so the first-encountered minimum wins and
    the result is deterministic for a given input order.
  - A candidate with no edge from the current node is skipped and not
    offered again.
  - The loop ends when no reachable candidate is left; some places may
    stay unplaced.

O(n²) in the number of places, which the graph builder caps.
"""

from __future__ import annotations

import logging
from datetime import time
from typing import Sequence

from schemas.itinerary import ItineraryStop, TravelEdge, TravelGraph
from schemas.place import Place
from modules.planning.clock import m2t, t2m

logger = logging.getLogger(__name__)

DEFAULT_START = time(9, 0)


def sequence_route(
    places: Sequence[Place],
    graph: TravelGraph,
    start_time: time = DEFAULT_START,
    origin_id: str | None = None,
) -> list[ItineraryStop]:
    """Return the places as timed stops in nearest-neighbour order."""
    current = origin_id or graph.origin_id
    clock = t2m(start_time)
    remaining: list[Place] = list(places)
    route: list[ItineraryStop] = []

    while remaining:
        best: Place | None = None
        best_edge: TravelEdge | None = None
        unreachable: list[Place] = []

        for cand in remaining:
            edge = graph.get(current, cand.place_id)
            if edge is None:
                unreachable.append(cand)
                continue
            if best_edge is None or edge.duration_seconds < best_edge.duration_seconds:
                best, best_edge = cand, edge

        for cand in unreachable:
            logger.debug("[route_sequencer] no edge %s -> %s, skipping", current, cand.place_id)
            remaining.remove(cand)

        if best is None or best_edge is None:
            break

        travel = best_edge.minutes
        duration = best.preferred_duration_minutes or 60
        start = clock + travel
        end = start + duration

        stop = ItineraryStop.from_place(best)
        stop.order = len(route) + 1
        stop.start_time = m2t(start)
        stop.end_time = m2t(end)
        stop.estimated_duration_minutes = duration
        stop.travel_time_from_previous_minutes = travel
        stop.travel_instructions = best_edge.instructions
        route.append(stop)

        clock = end
        current = best.place_id
        remaining.remove(best)

    if len(route) < len(places):
        logger.info(
            "[route_sequencer] placed %d of %d candidates", len(route), len(places),
        )
    return route
