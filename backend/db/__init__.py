"""
db/
----
Persistence layer.

  Redis (redis-py) — optional backing store for per-user state
    keys:  nextstep:{user_id}:{trip_context|preferences|fatigue|trip_plan}
  In-memory dicts — default backend (MEMORY_BACKEND=in_memory)

Public exports:
    from db import get_state_store, get_redis
"""

from db.redis_client import get_redis
from db.state_store import (
    InMemoryStateStore,
    RedisStateStore,
    StateStore,
    get_state_store,
    set_state_store,
)

__all__ = [
    "get_redis",
    "StateStore",
    "InMemoryStateStore",
    "RedisStateStore",
    "get_state_store",
    "set_state_store",
]
