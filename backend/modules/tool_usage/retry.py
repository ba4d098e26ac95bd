"""
modules/tool_usage/retry.py
-----------------------------
Capped retry policy shared by every external-call adapter
(Directions, Places, day-content LLM).

Planning code never retries on its own: an adapter either returns data
or returns its "no data" value after the last attempt.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

import config

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    fn: Callable[[], T],
    label: str,
    max_attempts: int | None = None,
    initial_delay_s: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[T]:
    """
    Call ``fn`` up to ``max_attempts`` times with exponential backoff.

    Returns the first result, or None when every attempt raised.
    A result of None from ``fn`` is returned as-is (it means "no data",
    not a transient error).
    """
    attempts = max(1, max_attempts if max_attempts is not None else config.EXTERNAL_CALL_MAX_ATTEMPTS)
    delay = initial_delay_s if initial_delay_s is not None else config.EXTERNAL_CALL_RETRY_DELAY_S

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as exc:  # noqa: BLE001
            if attempt < attempts:
                logger.info("[retry] %s failed (%s), attempt %d/%d", label, exc, attempt, attempts)
                sleep(delay)
                delay *= 2
            else:
                logger.warning("[retry] %s failed after %d attempt(s): %s", label, attempts, exc)
    return None
