"""
config.py
---------
Central configuration for the trip planner backend.
All secrets loaded from environment variables — never hard-coded.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the backend directory (if it exists) so env vars in that file
# are picked up by os.getenv() below.
_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path, override=False)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# ── LLM (day-content generator) ──────────────────────────────────────────────
LLM_MODEL_NAME: str = os.getenv("LLM_MODEL_NAME", "gemini-1.5-flash")
GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
LLM_TIMEOUT_SECONDS: int = int(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

# Stub flags, one per external tool.
# By default every tool runs in stub mode (no external API keys needed).
USE_STUB_LLM:        bool = _flag("USE_STUB_LLM",        "true")
USE_STUB_PLACES:     bool = _flag("USE_STUB_PLACES",     "true")
USE_STUB_DIRECTIONS: bool = _flag("USE_STUB_DIRECTIONS", "true")

# ── Google Maps (required when USE_STUB_PLACES / USE_STUB_DIRECTIONS=false) ──
# Enable: Places API + Directions API
GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
GOOGLE_PLACES_SEARCH_RADIUS_M: int = int(os.getenv("GOOGLE_PLACES_SEARCH_RADIUS_M", "12000"))
GOOGLE_PLACES_MAX_RESULTS: int = int(os.getenv("GOOGLE_PLACES_MAX_RESULTS", "20"))
GOOGLE_REQUEST_TIMEOUT: int = int(os.getenv("GOOGLE_REQUEST_TIMEOUT", "15"))
DIRECTIONS_MODE: str = os.getenv("DIRECTIONS_MODE", "transit")    # transit | driving | walking

# Capped retry for every external call (Directions, Places, LLM)
EXTERNAL_CALL_MAX_ATTEMPTS: int     = int(os.getenv("EXTERNAL_CALL_MAX_ATTEMPTS", "2"))
EXTERNAL_CALL_RETRY_DELAY_S: float  = float(os.getenv("EXTERNAL_CALL_RETRY_DELAY_S", "0.5"))

# Haversine speed used by the offline travel-time estimate (km/h)
FALLBACK_SPEED_KMH: float = float(os.getenv("FALLBACK_SPEED_KMH", "4.5"))

# ── Travel graph ─────────────────────────────────────────────────────────────
GRAPH_MAX_PLACES: int          = int(os.getenv("GRAPH_MAX_PLACES", "8"))
GRAPH_CALL_DELAY_S: float      = float(os.getenv("GRAPH_CALL_DELAY_S", "0.1"))
FALLBACK_EDGE_SECONDS: int     = 900
FALLBACK_EDGE_INSTRUCTIONS: str = "Estimated travel time"

# ── Time reconstruction ──────────────────────────────────────────────────────
DAY_START: str                 = os.getenv("DAY_START", "09:00")
UNKNOWN_TRAVEL_MINUTES: int    = 10
# Overflowing-closing-time heuristic. Tunable, not a hard requirement.
SHRINK_MIN_MINUTES: int        = int(os.getenv("SHRINK_MIN_MINUTES", "45"))
SHRINK_RATIO: float            = float(os.getenv("SHRINK_RATIO", "0.5"))
CLOSING_BUFFER_MINUTES: int    = int(os.getenv("CLOSING_BUFFER_MINUTES", "5"))

# ── Multi-day orchestration ──────────────────────────────────────────────────
ANCHORS_PER_DAY: int           = int(os.getenv("ANCHORS_PER_DAY", "1"))
MAX_DAY_CANDIDATES: int        = int(os.getenv("MAX_DAY_CANDIDATES", "16"))
MIN_VIABLE_STOPS: int          = int(os.getenv("MIN_VIABLE_STOPS", "4"))
LEFTOVER_POOL_SIZE: int        = int(os.getenv("LEFTOVER_POOL_SIZE", "30"))

# ── Fatigue engine (tunables) ────────────────────────────────────────────────
FATIGUE_K_PER_KCAL: float        = 0.06   # score points per adjusted kcal
FATIGUE_RECOVERY_PER_SEATED_MIN: float = 0.15
FATIGUE_SMOOTHING: float         = 0.3    # EWMA weight on the new value
FATIGUE_INITIAL_SCORE: float     = 12.0
FATIGUE_TRACE_CAP: int           = 50

# ── Memory backend ───────────────────────────────────────────────────────────
MEMORY_BACKEND: str = os.getenv("MEMORY_BACKEND", "in_memory")    # "redis" | "in_memory"

# ── Redis ────────────────────────────────────────────────────────────────────
REDIS_HOST: str        = os.getenv("REDIS_HOST",     "localhost")
REDIS_PORT: int        = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB: int          = int(os.getenv("REDIS_DB",   "0"))
REDIS_PASSWORD: str    = os.getenv("REDIS_PASSWORD", "")
# TTLs (seconds). FatigueState has no TTL: it is only reset explicitly.
TRIP_PLAN_TTL: int     = int(os.getenv("TRIP_PLAN_TTL", "2592000"))   # 30 days

# ── Observability ────────────────────────────────────────────────────────────
LOGS_DIR: str = os.getenv("LOGS_DIR", "")   # empty → <backend>/logs
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
