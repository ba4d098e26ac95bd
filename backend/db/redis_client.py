"""
db/redis_client.py
-------------------
redis-py client singleton.

Key schema used by db.state_store.RedisStateStore:

    nextstep:{user_id}:trip_context      String (JSON)   no TTL
    nextstep:{user_id}:preferences       String (JSON)   no TTL
    nextstep:{user_id}:fatigue           String (JSON)   no TTL
    nextstep:{user_id}:trip_plan         String (JSON)   TTL = TRIP_PLAN_TTL

Environment variables (set in config.py):
    REDIS_HOST        default: localhost
    REDIS_PORT        default: 6379
    REDIS_DB          default: 0
    REDIS_PASSWORD    default: ""  (empty = no auth)
    TRIP_PLAN_TTL     default: 2592000
"""

from __future__ import annotations

from typing import Any

import redis

import config

KEY_PREFIX = "nextstep"

# Module-level singleton; initialised lazily on first call to get_redis()
_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Return the singleton Redis client, creating it on first call."""
    global _client
    if _client is None:
        kwargs: dict[str, Any] = {
            "host":             config.REDIS_HOST,
            "port":             config.REDIS_PORT,
            "db":               config.REDIS_DB,
            "decode_responses": True,   # return str, not bytes
        }
        if config.REDIS_PASSWORD:
            kwargs["password"] = config.REDIS_PASSWORD
        _client = redis.Redis(**kwargs)
    return _client


def user_key(user_id: str, record: str) -> str:
    return f"{KEY_PREFIX}:{user_id}:{record}"
