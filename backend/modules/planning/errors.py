"""
modules/planning/errors.py
----------------------------
Planner error types.

Messages carry an ERROR_* prefix so callers and logs can match on the code.
"""


class TripSetupError(RuntimeError):
    """Essential trip parameters are missing or invalid. Aborts the whole plan."""


class ItineraryInputError(ValueError):
    """A day's stop list cannot be timed at all (no stop has usable coordinates)."""
