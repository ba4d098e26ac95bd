"""
modules/validation/ingestion_validator.py
------------------------------------------
Data-quality guards applied to provider output and trip setup before planning.

  Place (from the place provider):
    ✓ Non-empty place_id and name
    ✓ Latitude in [-90, 90], longitude in [-180, 180] when present
      (missing coordinates are allowed: the graph uses fallback edges)
    ✓ Rating in [1, 5] if present (0.0 treated as absent)
    ✓ preferred_duration_minutes > 0

  Trip context:
    ✓ start_date and end_date present (or an explicit day list)
    ✓ end_date >= start_date
    ✓ home coordinates present, in range, not the (0, 0) sentinel

Usage:
    from modules.validation import validate_place, filter_valid, require_trip_setup

    clean = filter_valid(places, validate_place)
    days, home = require_trip_setup(trip_context)      # raises TripSetupError
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import date
from typing import Any, Callable, TypeVar

from schemas.place import Place
from schemas.preferences import TripContext
from modules.planning.errors import TripSetupError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Result dataclass ───────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    """
    Outcome of a single validation run.

    Attributes:
        valid:  True iff there are zero errors.
        errors: Human-readable list of failure reasons.
        record: The input record dict (for logging purposes).
    """
    valid: bool
    errors: list[str] = field(default_factory=list)
    record: dict = field(default_factory=dict, repr=False)

    def __bool__(self) -> bool:
        return self.valid


def _coordinate_errors(lat: Any, lon: Any, label: str) -> list[str]:
    errors: list[str] = []
    try:
        lat = float(lat)
        lon = float(lon)
    except (TypeError, ValueError):
        return [f"{label} coordinates must be numeric (got lat={lat!r}, lon={lon!r})"]
    if not (-90.0 <= lat <= 90.0):
        errors.append(f"{label} latitude={lat} is outside valid range [-90, 90]")
    if not (-180.0 <= lon <= 180.0):
        errors.append(f"{label} longitude={lon} is outside valid range [-180, 180]")
    return errors


# ── Place validation ───────────────────────────────────────────────────────────

def validate_place(record: dict[str, Any]) -> ValidationResult:
    """Validate one place record (as a dict) before it enters planning."""
    errors: list[str] = []

    if not str(record.get("place_id") or "").strip():
        errors.append("place_id must not be empty")

    name = record.get("name", "")
    if not name or not str(name).strip():
        errors.append("name must not be empty or NULL")

    lat = record.get("location_lat")
    lon = record.get("location_lon")
    if lat is not None and lon is not None:
        errors.extend(_coordinate_errors(lat, lon, "place"))

    rating = record.get("rating")
    if rating is not None:
        try:
            r = float(rating)
            # 0.0 is the sentinel for "absent"
            if r != 0.0 and not (1.0 <= r <= 5.0):
                errors.append(f"rating={r} is outside valid range [1, 5]")
        except (TypeError, ValueError):
            errors.append(f"rating={rating!r} must be numeric")

    duration = record.get("preferred_duration_minutes")
    if duration is not None and (not isinstance(duration, (int, float)) or duration <= 0):
        errors.append(f"preferred_duration_minutes={duration!r} must be > 0")

    return ValidationResult(valid=len(errors) == 0, errors=errors, record=record)


def dedupe_places(places: list[Place]) -> list[Place]:
    """Keep the first record per place_id."""
    seen: set[str] = set()
    out: list[Place] = []
    for p in places:
        if p.place_id in seen:
            continue
        seen.add(p.place_id)
        out.append(p)
    if len(out) != len(places):
        logger.info("[Validator] dropped %d duplicate place id(s)", len(places) - len(out))
    return out


# ── Trip validation ────────────────────────────────────────────────────────────

def validate_trip_context(record: dict[str, Any]) -> ValidationResult:
    """
    Validate a TripContext record (as a dict).

    Each error string starts with the ERROR_* code raised by require_trip_setup.
    """
    errors: list[str] = []

    start = record.get("start_date")
    end = record.get("end_date")
    days = record.get("days") or []
    if not days and (start is None or end is None):
        errors.append("ERROR_MISSING_TRIP_DATES: start_date and end_date must be set")
    elif start is not None and end is not None:
        try:
            start_d = start if isinstance(start, date) else date.fromisoformat(str(start))
            end_d = end if isinstance(end, date) else date.fromisoformat(str(end))
            if end_d < start_d:
                errors.append(f"ERROR_INVALID_TRIP_DATES: end_date={end_d} is before start_date={start_d}")
        except ValueError:
            errors.append(
                f"ERROR_INVALID_TRIP_DATES: start_date={start!r} or end_date={end!r} "
                "is not a valid ISO-8601 date"
            )

    lat = record.get("home_lat")
    lon = record.get("home_lon")
    if lat is None or lon is None:
        errors.append("ERROR_MISSING_HOME_COORDINATES: home_lat and home_lon must be set")
    else:
        coord_errors = _coordinate_errors(lat, lon, "home")
        if coord_errors:
            errors.extend(f"ERROR_MISSING_HOME_COORDINATES: {e}" for e in coord_errors)
        elif float(lat) == 0.0 and float(lon) == 0.0:
            errors.append(
                "ERROR_MISSING_HOME_COORDINATES: (0, 0) is the unset sentinel, not a home location"
            )

    return ValidationResult(valid=len(errors) == 0, errors=errors, record=record)


def require_trip_setup(ctx: TripContext | None) -> tuple[list[date], tuple[float, float]]:
    """
    Return (trip days, home coordinate) or raise TripSetupError.

    This is the only fatal gate in planning: everything downstream degrades.
    """
    if ctx is None:
        raise TripSetupError("ERROR_MISSING_TRIP_DATES: trip setup has not been completed")
    result = validate_trip_context(ctx.model_dump())
    if not result.valid:
        raise TripSetupError("; ".join(result.errors))
    days = ctx.trip_days()
    if not days:
        raise TripSetupError("ERROR_MISSING_TRIP_DATES: trip has no days")
    return days, (float(ctx.home_lat), float(ctx.home_lon))  # type: ignore[arg-type]


# ── Batch filter helper ────────────────────────────────────────────────────────

def _as_dict(item: Any) -> dict:
    if isinstance(item, dict):
        return item
    if is_dataclass(item):
        return asdict(item)
    return item.__dict__


def filter_valid(
    items: list[T],
    validator: Callable[[dict], ValidationResult],
    to_dict: Callable[[T], dict] | None = None,
    log: bool = True,
) -> list[T]:
    """
    Apply a validator to every item in a list, return only the valid ones.

    Args:
        items:     List of items (dataclass instances or dicts).
        validator: validate_place / validate_trip_context.
        to_dict:   Optional callable to convert each item to a dict.
        log:       If True, log a warning for every rejected record.
    """
    valid_items: list[T] = []
    rejected = 0

    for item in items:
        record_dict = to_dict(item) if to_dict is not None else _as_dict(item)
        result = validator(record_dict)
        if result.valid:
            valid_items.append(item)
        else:
            rejected += 1
            if log:
                name = record_dict.get("name", record_dict.get("place_id", "?"))
                logger.warning("[Validator] REJECTED %r: %s", name, "; ".join(result.errors))

    if log and rejected:
        logger.warning(
            "[Validator] %d/%d records rejected; %d passed.",
            rejected, len(items), len(valid_items),
        )

    return valid_items
