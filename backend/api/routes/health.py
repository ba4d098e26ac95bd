"""
api/routes/health.py
--------------------
Health-check endpoint — used by load balancers, Docker health probes, etc.
"""
from __future__ import annotations

from fastapi import APIRouter

import config

router = APIRouter()


@router.get("/health", summary="Health check")
def health() -> dict:
    """Returns 200 OK when the service is running, plus which providers are stubbed."""
    return {
        "status": "ok",
        "service": "nextstep-backend",
        "memory_backend": config.MEMORY_BACKEND,
        "stubs": {
            "llm": config.USE_STUB_LLM,
            "places": config.USE_STUB_PLACES,
            "directions": config.USE_STUB_DIRECTIONS,
        },
    }
