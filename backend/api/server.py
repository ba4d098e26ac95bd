"""
api/server.py
-------------
FastAPI application entry point.

Run dev server:
    cd backend
    uvicorn api.server:app --reload --port 8000

Endpoints:
    GET    /v1/health
    GET    /v1/trips/context          PUT /v1/trips/context
    GET    /v1/trips/preferences      PUT /v1/trips/preferences
    POST   /v1/trips/plan
    GET    /v1/trips/plan
    POST   /v1/fatigue/sample
    POST   /v1/fatigue/rest
    GET    /v1/fatigue/state
    DELETE /v1/fatigue/state
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from api.routes import fatigue, health, trips
from modules.planning.errors import ItineraryInputError, TripSetupError

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="NextStep Trip Planner API",
    version="1.0.0",
    description=(
        "Multi-day itinerary planner with no-repeat place assignment, "
        "opening-hours aware scheduling and a traveller fatigue tracker."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# Allow the frontend (any origin during development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TripSetupError)
async def _trip_setup_error(request: Request, exc: TripSetupError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ItineraryInputError)
async def _itinerary_input_error(request: Request, exc: ItineraryInputError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


app.include_router(health.router,  prefix="/v1",         tags=["Health"])
app.include_router(trips.router,   prefix="/v1/trips",   tags=["Trips"])
app.include_router(fatigue.router, prefix="/v1/fatigue", tags=["Fatigue"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=True)
