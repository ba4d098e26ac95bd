"""
modules/validation package — data quality guards before planning.
"""
from modules.validation.ingestion_validator import (
    ValidationResult,
    validate_place,
    validate_trip_context,
    require_trip_setup,
    dedupe_places,
    filter_valid,
)

__all__ = [
    "ValidationResult",
    "validate_place",
    "validate_trip_context",
    "require_trip_setup",
    "dedupe_places",
    "filter_valid",
]
