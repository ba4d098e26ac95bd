"""
modules/planning/travel_graph.py
----------------------------------
Builds a complete directed travel-time graph over the day's origin plus a
capped list of candidate places.

  - Node 0 is the origin (hotel / home); nodes 1..N are places, N ≤ max_places.
  - Every ordered pair (a, b), a ≠ b, is queried once, sequentially, with a
    small sleep between calls to respect provider rate limits.
  - Any failed pair gets the fixed fallback edge (900 s, "Estimated travel
    time"), so the graph is always structurally complete. Never raises.
"""

from __future__ import annotations

import logging
import time as _time_mod
from typing import Callable, Optional, Protocol, Sequence

import config
from schemas.itinerary import ORIGIN_NODE_ID, TravelEdge, TravelGraph, TravelLeg
from schemas.place import Place
from modules.observability.logger import StructuredLogger

logger = logging.getLogger(__name__)
_perf_logger = StructuredLogger()


class TravelTimeProvider(Protocol):
    def travel_time(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
        mode: Optional[str] = None,
    ) -> Optional[TravelLeg]:
        ...


def fallback_edge(from_node: str, to_node: str, why: str = "") -> TravelEdge:
    text = config.FALLBACK_EDGE_INSTRUCTIONS
    return TravelEdge(
        from_node=from_node,
        to_node=to_node,
        duration_seconds=config.FALLBACK_EDGE_SECONDS,
        instructions=f"{text} ({why})" if why else text,
        is_fallback=True,
    )


def build_travel_graph(
    origin: tuple[float, float],
    places: Sequence[Place],
    provider: TravelTimeProvider,
    mode: Optional[str] = None,
    max_places: int | None = None,
    call_delay_s: float | None = None,
    sleep: Callable[[float], None] = _time_mod.sleep,
) -> TravelGraph:
    """
    Query ``provider`` for every ordered pair among origin + places[:max_places].

    Returns a TravelGraph whose node ids are ORIGIN_NODE_ID followed by the
    place ids in input order.
    """
    _t0 = _time_mod.perf_counter()
    cap = config.GRAPH_MAX_PLACES if max_places is None else max_places
    delay = config.GRAPH_CALL_DELAY_S if call_delay_s is None else call_delay_s

    if len(places) > cap:
        logger.warning(
            "[travel_graph] limiting graph to %d of %d places to bound provider calls",
            cap, len(places),
        )
    limited = list(places[:cap])

    coords: dict[str, tuple[float, float] | None] = {ORIGIN_NODE_ID: origin}
    for p in limited:
        coords[p.place_id] = p.coords

    graph = TravelGraph(origin_id=ORIGIN_NODE_ID, node_ids=[ORIGIN_NODE_ID] + [p.place_id for p in limited])
    calls = 0
    fallbacks = 0

    for a in graph.node_ids:
        for b in graph.node_ids:
            if a == b:
                continue
            ca, cb = coords[a], coords[b]
            if ca is None or cb is None:
                graph.add(fallback_edge(a, b, "invalid coordinates"))
                fallbacks += 1
                continue

            if calls > 0 and delay > 0:
                sleep(delay)
            calls += 1
            try:
                leg = provider.travel_time(ca, cb, mode)
            except Exception as exc:  # noqa: BLE001
                logger.warning("[travel_graph] provider error %s -> %s: %s", a, b, exc)
                leg = None

            if leg is None or leg.duration_seconds < 0:
                graph.add(fallback_edge(a, b))
                fallbacks += 1
            else:
                graph.add(TravelEdge(
                    from_node=a,
                    to_node=b,
                    duration_seconds=int(leg.duration_seconds),
                    instructions=leg.instructions,
                ))

    logger.info(
        "[travel_graph] built %d nodes, %d edges (%d provider calls, %d fallbacks)",
        len(graph.node_ids), len(graph.edges), calls, fallbacks,
    )
    _perf_logger.log("default", "PERFORMANCE", {
        "component": "build_travel_graph",
        "nodes": len(graph.node_ids),
        "fallbacks": fallbacks,
        "duration_ms": round((_time_mod.perf_counter() - _t0) * 1000, 2),
    })
    return graph
