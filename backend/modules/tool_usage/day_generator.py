"""
modules/tool_usage/day_generator.py
-------------------------------------
Day-content generator: proposes one day's ordered stops from a shortlist.

Real:  Gemini via google-genai (config.LLM_MODEL_NAME, GEMINI_API_KEY).
Stub:  USE_STUB_LLM=true picks anchors first, then the best-scored
       candidates, with a lunch block after the second stop.

Output contract (both): a list of dicts

    {"name", "place_id", "category", "estimated_duration",
     "travel_instructions", "reason"}

An empty, failed or malformed generation returns []; the planner treats
that as a recoverable day-level failure.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Protocol, Sequence

from google import genai as genai_sdk
from google.genai import types as genai_types

import config
from schemas.place import Place
from modules.tool_usage.retry import call_with_retry

logger = logging.getLogger(__name__)


@dataclass
class DayHints:
    """Per-day context handed to the generator alongside the candidates."""
    day: date
    available_names: list[str] = field(default_factory=list)
    used_names: list[str] = field(default_factory=list)
    anchor_names: list[str] = field(default_factory=list)
    start_time: str = "09:00"


class DayContentGenerator(Protocol):
    def generate(
        self,
        candidates: Sequence[Place],
        origin: tuple[float, float],
        hints: DayHints,
    ) -> list[dict]:
        ...


# ── Prompt & parsing ──────────────────────────────────────────────────────────

def compact_places(candidates: Sequence[Place]) -> list[dict]:
    return [
        {
            "place_id": p.place_id,
            "name": p.name,
            "category": p.category.value,
            "lat": p.location_lat,
            "lng": p.location_lon,
            "rating": p.rating,
            "preferred_duration_min": p.preferred_duration_minutes,
        }
        for p in candidates
    ]


def build_prompt(candidates: Sequence[Place], origin: tuple[float, float], hints: DayHints) -> str:
    return f"""You are an experienced local travel planner. Build a 1-day itinerary for {hints.day.isoformat()}.

Traveller starts at latitude {origin[0]}, longitude {origin[1]} at {hints.start_time}.

Candidate places (ONLY choose from these):
{json.dumps(compact_places(candidates), indent=2)}

Must include these anchor places: {json.dumps(hints.anchor_names)}
Already used on other days, never include: {json.dumps(hints.used_names)}

Instructions:
- Choose 5-6 places from the candidate list, anchors first priority.
- Add one lunch block (category "meal") around midday; do not name a restaurant.
- Use realistic visit durations; larger museums and parks need more time.
- Copy place_id exactly from the candidate list.
- Output valid JSON only, in this format:

{{
  "itinerary": [
    {{
      "place_id": "...",
      "name": "Place Name",
      "category": "museum",
      "estimated_duration": "1.5 hrs",
      "travel_instructions": "short directions from the previous stop",
      "reason": "why this was chosen"
    }}
  ]
}}"""


def parse_itinerary_json(raw: Optional[str]) -> list[dict]:
    """Extract the ``itinerary`` list from a model reply; [] when malformed."""
    if not raw:
        return []
    text = re.sub(r"```(?:json)?", "", raw).strip().rstrip("`").strip()
    data: Any = None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if match:
            try:
                data = json.loads(match.group())
            except json.JSONDecodeError:
                data = None
    if isinstance(data, dict):
        data = data.get("itinerary")
    if not isinstance(data, list):
        logger.warning("[day_generator] model output is not a JSON itinerary (%d chars)", len(raw))
        return []
    return [item for item in data if isinstance(item, dict) and item.get("name")]


# ── Gemini ────────────────────────────────────────────────────────────────────

class GeminiDayGenerator:
    def __init__(self, model: str | None = None, client: Any = None) -> None:
        self._model = model or config.LLM_MODEL_NAME
        self._client = client or genai_sdk.Client(
            api_key=config.GEMINI_API_KEY,
            http_options=genai_types.HttpOptions(timeout=config.LLM_TIMEOUT_SECONDS * 1000),
        )

    def generate(
        self,
        candidates: Sequence[Place],
        origin: tuple[float, float],
        hints: DayHints,
    ) -> list[dict]:
        prompt = build_prompt(candidates, origin, hints)

        def _call() -> str:
            response = self._client.models.generate_content(
                model=self._model,
                contents=prompt,
            )
            return response.text or ""

        raw = call_with_retry(_call, label=f"day generation {hints.day.isoformat()}")
        items = parse_itinerary_json(raw)
        logger.info("[GeminiDayGenerator] %s: %d items", hints.day.isoformat(), len(items))
        return items


# ── Stub ──────────────────────────────────────────────────────────────────────

class StubDayGenerator:
    """Deterministic generator for offline runs and tests."""

    def __init__(self, stops_per_day: int = 5, lunch_after: int = 2) -> None:
        self.stops_per_day = stops_per_day
        self.lunch_after = lunch_after

    def generate(
        self,
        candidates: Sequence[Place],
        origin: tuple[float, float],
        hints: DayHints,
    ) -> list[dict]:
        anchors = set(hints.anchor_names)
        ordered = [p for p in candidates if p.name in anchors]
        ordered += sorted(
            (p for p in candidates if p.name not in anchors),
            key=lambda p: p.score, reverse=True,
        )

        items: list[dict] = []
        for place in ordered[: self.stops_per_day]:
            items.append({
                "place_id": place.place_id,
                "name": place.name,
                "category": place.category.value,
                "estimated_duration": place.preferred_duration_minutes,
                "travel_instructions": "",
                "reason": "Anchor for the day" if place.name in anchors else "Highly rated nearby",
            })
            if len(items) == self.lunch_after:
                items.append({
                    "place_id": None,
                    "name": "Lunch break",
                    "category": "meal",
                    "estimated_duration": 60,
                    "travel_instructions": "",
                    "reason": "Time for lunch",
                })
        return items


def get_day_generator():
    """Return the configured day-content generator (stub or Gemini)."""
    if config.USE_STUB_LLM:
        return StubDayGenerator()
    return GeminiDayGenerator()
