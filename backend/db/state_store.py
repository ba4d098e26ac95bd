"""
db/state_store.py
------------------
Per-user persisted state: trip setup, preferences, fatigue state and the
last generated trip plan.

Two backends, chosen by config.MEMORY_BACKEND:
  "in_memory"  process-local dicts (default; tests and the CLI demo)
  "redis"      JSON strings under the keys listed in db.redis_client

Records are validated with pydantic on read, so a corrupt entry surfaces as
a pydantic ValidationError instead of a half-built object.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

import redis

import config
from db.redis_client import get_redis, user_key
from schemas.fatigue import FatigueState
from schemas.itinerary import TripPlan, trip_plan_to_dict
from schemas.preferences import TripContext, UserPreferences

logger = logging.getLogger(__name__)

DEFAULT_USER = "default"


class StateStore(ABC):
    """Storage contract shared by both backends."""

    # ── raw record access ─────────────────────────────────────────────────────

    @abstractmethod
    def _get(self, user_id: str, record: str) -> Optional[str]: ...

    @abstractmethod
    def _set(self, user_id: str, record: str, payload: str, ttl: int | None = None) -> None: ...

    @abstractmethod
    def _delete(self, user_id: str, record: str) -> None: ...

    # ── trip setup ────────────────────────────────────────────────────────────

    def get_trip_context(self, user_id: str = DEFAULT_USER) -> Optional[TripContext]:
        raw = self._get(user_id, "trip_context")
        return TripContext.model_validate_json(raw) if raw else None

    def save_trip_context(self, ctx: TripContext, user_id: str = DEFAULT_USER) -> None:
        self._set(user_id, "trip_context", ctx.model_dump_json())

    def get_preferences(self, user_id: str = DEFAULT_USER) -> UserPreferences:
        raw = self._get(user_id, "preferences")
        return UserPreferences.model_validate_json(raw) if raw else UserPreferences()

    def save_preferences(self, prefs: UserPreferences, user_id: str = DEFAULT_USER) -> None:
        self._set(user_id, "preferences", prefs.model_dump_json())

    # ── fatigue ───────────────────────────────────────────────────────────────

    def get_fatigue_state(self, user_id: str = DEFAULT_USER) -> Optional[FatigueState]:
        raw = self._get(user_id, "fatigue")
        return FatigueState.model_validate_json(raw) if raw else None

    def save_fatigue_state(self, state: FatigueState, user_id: str = DEFAULT_USER) -> None:
        self._set(user_id, "fatigue", state.model_dump_json())

    def reset_fatigue_state(self, user_id: str = DEFAULT_USER) -> None:
        self._delete(user_id, "fatigue")
        logger.info("[StateStore] fatigue state reset for user=%s", user_id)

    # ── trip plan ─────────────────────────────────────────────────────────────

    def get_trip_plan(self, user_id: str = DEFAULT_USER) -> Optional[dict]:
        """Last saved plan as its JSON dict; plans are not rehydrated."""
        raw = self._get(user_id, "trip_plan")
        return json.loads(raw) if raw else None

    def save_trip_plan(self, plan: TripPlan, user_id: str = DEFAULT_USER) -> dict:
        data = trip_plan_to_dict(plan)
        self._set(user_id, "trip_plan", json.dumps(data), ttl=config.TRIP_PLAN_TTL)
        return data


class InMemoryStateStore(StateStore):
    def __init__(self) -> None:
        self._data: dict[tuple[str, str], str] = {}

    def _get(self, user_id: str, record: str) -> Optional[str]:
        return self._data.get((user_id, record))

    def _set(self, user_id: str, record: str, payload: str, ttl: int | None = None) -> None:
        self._data[(user_id, record)] = payload

    def _delete(self, user_id: str, record: str) -> None:
        self._data.pop((user_id, record), None)


class RedisStateStore(StateStore):
    def __init__(self, client: redis.Redis | None = None) -> None:
        self._r = client if client is not None else get_redis()

    def _get(self, user_id: str, record: str) -> Optional[str]:
        return self._r.get(user_key(user_id, record))

    def _set(self, user_id: str, record: str, payload: str, ttl: int | None = None) -> None:
        key = user_key(user_id, record)
        if ttl:
            self._r.setex(key, ttl, payload)
        else:
            self._r.set(key, payload)

    def _delete(self, user_id: str, record: str) -> None:
        self._r.delete(user_key(user_id, record))


_store: StateStore | None = None


def get_state_store() -> StateStore:
    """Return the process-wide store for config.MEMORY_BACKEND."""
    global _store
    if _store is None:
        if config.MEMORY_BACKEND == "redis":
            _store = RedisStateStore()
            logger.info("[StateStore] using Redis at %s:%s", config.REDIS_HOST, config.REDIS_PORT)
        else:
            _store = InMemoryStateStore()
    return _store


def set_state_store(store: StateStore | None) -> None:
    """Swap the process-wide store (tests)."""
    global _store
    _store = store
