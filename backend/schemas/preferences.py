"""
schemas/preferences.py
----------------------
Persisted trip setup records (TripContext, UserPreferences).

Shapes only — storage is handled by db.state_store.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CategoryPreference(BaseModel):
    weight: float = Field(5.0, ge=0, le=10)   # how important this category is
    duration: Optional[int] = Field(None, gt=0)   # preferred minutes on site


class UserPreferences(BaseModel):
    preferences: Dict[str, CategoryPreference] = Field(default_factory=dict)
    must_see: List[str] = Field(default_factory=list)     # place ids
    avoid_places: List[str] = Field(default_factory=list) # ids or name fragments
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None


class TripContext(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days: List[date] = Field(default_factory=list)    # explicit override
    home_lat: Optional[float] = None
    home_lon: Optional[float] = None
    itinerary_start_time: Optional[str] = None        # "HH:MM"

    def trip_days(self) -> List[date]:
        """Explicit day list (sorted, repeats removed) if set, else every date from start to end inclusive."""
        if self.days:
            return sorted(set(self.days))
        if self.start_date is None or self.end_date is None:
            return []
        out: List[date] = []
        d = self.start_date
        while d <= self.end_date:
            out.append(d)
            d += timedelta(days=1)
        return out
