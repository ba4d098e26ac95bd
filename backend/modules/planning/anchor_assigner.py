"""
modules/planning/anchor_assigner.py
-------------------------------------
Reserves each trip day's guaranteed highlight(s) before any day is generated.

Pass 1: must-see places, best score first, dealt round-robin over the days
        until either the must-sees or the per-day capacity run out.
Pass 2: remaining capacity filled with the highest-scored non-must-see places.

A place id assigned anywhere is added to ``used`` and never assigned again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Sequence

import config
from schemas.place import Place

logger = logging.getLogger(__name__)


@dataclass
class AnchorAssignment:
    by_day: dict[date, list[str]] = field(default_factory=dict)
    used: set[str] = field(default_factory=set)

    def anchors_for(self, day: date) -> list[str]:
        return list(self.by_day.get(day, []))

    def all_ids(self) -> list[str]:
        return [pid for ids in self.by_day.values() for pid in ids]


def _deal(
    days: Sequence[date],
    queue: list[Place],
    assignment: AnchorAssignment,
    capacity: int,
    label: str,
) -> None:
    """Round-robin ``queue`` onto days with spare capacity, skipping used ids."""
    idx = 0
    while idx < len(queue):
        placed_this_round = False
        for day in days:
            if len(assignment.by_day[day]) >= capacity:
                continue
            while idx < len(queue) and queue[idx].place_id in assignment.used:
                idx += 1
            if idx >= len(queue):
                return
            place = queue[idx]
            assignment.by_day[day].append(place.place_id)
            assignment.used.add(place.place_id)
            logger.info("[anchor_assigner] %s %r -> %s", label, place.name, day.isoformat())
            idx += 1
            placed_this_round = True
        if not placed_this_round:
            return


def assign_anchors(
    dates: Sequence[date],
    places: Sequence[Place],
    must_see_ids: Iterable[str] = (),
    capacity: int | None = None,
) -> AnchorAssignment:
    """Return date → anchor place ids, plus the set of ids now reserved."""
    cap = config.ANCHORS_PER_DAY if capacity is None else capacity
    must = set(must_see_ids)
    # stable sort: equal scores keep input order
    by_score = sorted(places, key=lambda p: p.score, reverse=True)

    assignment = AnchorAssignment(by_day={d: [] for d in dates})
    if cap <= 0 or not dates:
        return assignment

    _deal(dates, [p for p in by_score if p.place_id in must], assignment, cap, "must-see")
    _deal(dates, [p for p in by_score if p.place_id not in must], assignment, cap, "top place")

    missing = must - assignment.used
    if missing:
        logger.warning(
            "[anchor_assigner] %d must-see place(s) not anchored (unknown id or no capacity): %s",
            len(missing), sorted(missing),
        )
    logger.info(
        "[anchor_assigner] %d days, %d with anchors, %d anchors total",
        len(dates),
        sum(1 for ids in assignment.by_day.values() if ids),
        len(assignment.used),
    )
    return assignment
