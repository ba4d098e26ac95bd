"""
api/routes/trips.py
--------------------
Trip setup and multi-day planning.

Flow:
  1. PUT  /v1/trips/context      → dates + home coordinates
  2. PUT  /v1/trips/preferences  → category weights, must-see, avoid list
  3. POST /v1/trips/plan         → runs MultiDayPlanner, stores and returns
                                   the plan plus the progress updates emitted
  4. GET  /v1/trips/plan         → last stored plan

A request body for /plan may carry its own context / preferences; otherwise
the stored ones for ``user_id`` are used.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from db.state_store import DEFAULT_USER, StateStore, get_state_store
from schemas.itinerary import ProgressUpdate
from schemas.preferences import TripContext, UserPreferences
from modules.planning.multiday_planner import MultiDayPlanner

router = APIRouter()

_planner: MultiDayPlanner | None = None


def get_planner() -> MultiDayPlanner:
    """Lazily built so providers are resolved after config is loaded."""
    global _planner
    if _planner is None:
        _planner = MultiDayPlanner()
    return _planner


# ── Request schemas ────────────────────────────────────────────────────────────

class PlanRequest(BaseModel):
    user_id: str = Field(DEFAULT_USER, description="Owner of the stored setup")
    trip_context: Optional[TripContext] = None
    preferences: Optional[UserPreferences] = None


# ── Setup ──────────────────────────────────────────────────────────────────────

@router.put("/context", summary="Save trip dates and home location")
def put_context(
    ctx: TripContext,
    user_id: str = DEFAULT_USER,
    store: StateStore = Depends(get_state_store),
) -> dict:
    store.save_trip_context(ctx, user_id)
    return {"user_id": user_id, "trip_context": ctx.model_dump(mode="json")}


@router.get("/context", summary="Stored trip setup")
def get_context(user_id: str = DEFAULT_USER, store: StateStore = Depends(get_state_store)) -> dict:
    ctx = store.get_trip_context(user_id)
    if ctx is None:
        raise HTTPException(status_code=404, detail=f"No trip setup for user '{user_id}'")
    return {"user_id": user_id, "trip_context": ctx.model_dump(mode="json")}


@router.put("/preferences", summary="Save planning preferences")
def put_preferences(
    prefs: UserPreferences,
    user_id: str = DEFAULT_USER,
    store: StateStore = Depends(get_state_store),
) -> dict:
    store.save_preferences(prefs, user_id)
    return {"user_id": user_id, "preferences": prefs.model_dump(mode="json")}


@router.get("/preferences", summary="Stored planning preferences")
def get_preferences(user_id: str = DEFAULT_USER, store: StateStore = Depends(get_state_store)) -> dict:
    return {"user_id": user_id, "preferences": store.get_preferences(user_id).model_dump(mode="json")}


# ── Planning ───────────────────────────────────────────────────────────────────

@router.post("/plan", summary="Plan every day of the trip")
def plan_trip(
    req: PlanRequest,
    store: StateStore = Depends(get_state_store),
    planner: MultiDayPlanner = Depends(get_planner),
) -> dict:
    """
    Runs the multi-day planner synchronously.

    TripSetupError (missing dates / home / places) maps to 422 in api.server.
    Per-day failures come back as degraded days with a failure_reason.
    """
    ctx = req.trip_context or store.get_trip_context(req.user_id)
    prefs = req.preferences or store.get_preferences(req.user_id)

    progress: list[ProgressUpdate] = []
    plan = planner.plan(ctx, prefs, observer=progress.append)

    if req.trip_context is not None:
        store.save_trip_context(req.trip_context, req.user_id)
    data = store.save_trip_plan(plan, req.user_id)
    return {
        "user_id": req.user_id,
        "plan": data,
        "progress": [p.to_dict() for p in progress],
    }


@router.get("/plan", summary="Last generated plan")
def get_plan(user_id: str = DEFAULT_USER, store: StateStore = Depends(get_state_store)) -> dict:
    data = store.get_trip_plan(user_id)
    if data is None:
        raise HTTPException(status_code=404, detail=f"No plan generated for user '{user_id}'")
    return {"user_id": user_id, "plan": data}
