"""
api/routes/fatigue.py
----------------------
Fatigue tracking endpoints.

  POST   /v1/fatigue/sample  → one sensor window in, updated state out
  POST   /v1/fatigue/rest    → passive recovery for a rest stop
  GET    /v1/fatigue/state   → current state + band advice
  DELETE /v1/fatigue/state   → back to the initial state

State is read from and written back to the StateStore on every call; the
engine itself is pure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from db.state_store import DEFAULT_USER, StateStore, get_state_store
from schemas.fatigue import (
    ActivityLevel,
    ContextWindow,
    FatigueState,
    RestVenue,
    SensorWindow,
    UserProfile,
)
from modules.fatigue.engine import initial_state, process_sample
from modules.fatigue.recovery import fatigue_advice, rest_recovery

router = APIRouter()


# ── Request schemas ────────────────────────────────────────────────────────────

class SampleRequest(BaseModel):
    user_id: str = DEFAULT_USER
    profile: UserProfile
    sensors: SensorWindow
    context: ContextWindow = Field(default_factory=ContextWindow)
    timestamp: Optional[datetime] = None


class RestRequest(BaseModel):
    user_id: str = DEFAULT_USER
    rest_minutes: float = Field(..., ge=0)
    venue: RestVenue = RestVenue.CAFE
    activity_before: ActivityLevel = ActivityLevel.MODERATE
    profile: Optional[UserProfile] = None
    apply: bool = True                       # write the recovered score back


def _ser_state(state: FatigueState) -> dict:
    return {
        "state": state.model_dump(mode="json"),
        "advice": fatigue_advice(state.score),
    }


# ── Endpoints ──────────────────────────────────────────────────────────────────

@router.post("/sample", summary="Ingest one sensor window")
def post_sample(req: SampleRequest, store: StateStore = Depends(get_state_store)) -> dict:
    prev = store.get_fatigue_state(req.user_id)
    state = process_sample(prev, req.profile, req.sensors, req.context, now=req.timestamp)
    store.save_fatigue_state(state, req.user_id)
    return {"user_id": req.user_id, **_ser_state(state)}


@router.post("/rest", summary="Apply a rest stop")
def post_rest(req: RestRequest, store: StateStore = Depends(get_state_store)) -> dict:
    state = store.get_fatigue_state(req.user_id) or initial_state()
    recovery = rest_recovery(
        state.score, req.rest_minutes, req.venue, req.activity_before, req.profile,
    )
    if req.apply:
        state = state.model_copy(update={"score": recovery.new_fatigue})
        store.save_fatigue_state(state, req.user_id)
    return {
        "user_id": req.user_id,
        "recovery": {
            "fatigue_reduction": recovery.fatigue_reduction,
            "energy_saved_kcal": recovery.energy_saved_kcal,
            "new_fatigue": recovery.new_fatigue,
            "recovery_efficiency": recovery.recovery_efficiency,
        },
        **_ser_state(state),
    }


@router.get("/state", summary="Current fatigue state")
def get_state(user_id: str = DEFAULT_USER, store: StateStore = Depends(get_state_store)) -> dict:
    state = store.get_fatigue_state(user_id) or initial_state()
    return {"user_id": user_id, **_ser_state(state)}


@router.delete("/state", summary="Reset fatigue state")
def reset_state(user_id: str = DEFAULT_USER, store: StateStore = Depends(get_state_store)) -> dict:
    store.reset_fatigue_state(user_id)
    return {"user_id": user_id, **_ser_state(initial_state())}
