"""
schemas/fatigue.py
------------------
Pydantic models for the fatigue engine.

FatigueState is the only persisted unit; everything else is a per-sample input.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.place import PlaceCategory


class EnergySource(str, Enum):
    HR       = "hr"
    DISTANCE = "distance"
    MET      = "met"
    STEPS    = "steps"
    UNKNOWN  = "unknown"


class TransitType(str, Enum):
    WALK = "walk"
    BUS  = "bus"
    CAR  = "car"

    @property
    def is_seated(self) -> bool:
        return self in (TransitType.BUS, TransitType.CAR)


class RainLevel(str, Enum):
    NONE     = "none"
    LIGHT    = "light"
    MODERATE = "moderate"
    HEAVY    = "heavy"


class RestVenue(str, Enum):
    SPA   = "spa"
    HOTEL = "hotel"
    CAFE  = "cafe"
    PARK  = "park"


class ActivityLevel(str, Enum):
    SEDENTARY = "sedentary"
    LIGHT     = "light"
    MODERATE  = "moderate"
    VIGOROUS  = "vigorous"


class UserProfile(BaseModel):
    age: float = Field(..., gt=0)
    weight_kg: float = Field(..., gt=0)
    height_cm: float = Field(170.0, gt=0)
    sex: Literal["male", "female", "unspecified"] = "unspecified"


class SensorWindow(BaseModel):
    """One sampling window from the wearable / phone."""
    minutes: float = Field(..., ge=0)
    steps: Optional[int] = None
    distance_km: Optional[float] = None
    elevation_gain_m: Optional[float] = None
    heart_rate: Optional[float] = None       # average bpm over the window


class ContextWindow(BaseModel):
    """Environment and activity context for one sampling window."""
    temp_c: Optional[float] = None
    heat_index_c: Optional[float] = None
    rain: RainLevel = RainLevel.NONE
    uv_index: Optional[float] = None
    transit: Optional[TransitType] = None
    poi_type: Optional[PlaceCategory] = None
    time_pressure_minutes: Optional[float] = None   # positive = behind schedule


class TraceRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    kcal: float                      # raw estimate for the window
    kcal_adjusted: float             # after modifiers
    source: EnergySource
    modifiers: Dict[str, float] = Field(default_factory=dict)
    score_after: float


class FatigueState(BaseModel):
    """Persisted fatigue state. Trace is most-recent-first and bounded."""
    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0, le=100)
    kcal_today: float = 0.0
    last_update: datetime
    source: EnergySource = EnergySource.UNKNOWN
    trace: List[TraceRow] = Field(default_factory=list)
