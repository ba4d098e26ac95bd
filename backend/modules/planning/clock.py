"""
modules/planning/clock.py
---------------------------
Minute-of-day helpers shared by the sequencer and the time reconstructor.
All planning arithmetic is done in integer minutes from midnight.
"""

from __future__ import annotations

import re
from datetime import time
from typing import Optional, Union

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def t2m(t: time) -> int:
    """Convert a time object to integer minutes-from-midnight."""
    return t.hour * 60 + t.minute


def m2t(mins: int) -> time:
    """Convert minutes-from-midnight to a time object (clamped to [0, 1439])."""
    mins = max(0, min(int(mins), 23 * 60 + 59))
    return time(mins // 60, mins % 60)


def parse_hhmm(value: Optional[str], default: str = "09:00") -> time:
    """Parse a strict 24h "HH:MM" string; anything else yields ``default``."""
    raw = (value or "").strip()
    m = _HHMM_RE.match(raw) or _HHMM_RE.match(default)
    if m is None:
        return time(9, 0)
    return time(int(m.group(1)), int(m.group(2)))


def fmt(t: Optional[time]) -> Optional[str]:
    return t.strftime("%H:%M") if t else None


def parse_duration_minutes(value: Union[str, int, float, None], default: int = 60) -> int:
    """
    Parse loose duration text into whole minutes (minimum 1).

    Accepts numbers, "90", "90 min", "1.5 hr", "1 hr 20 mins", "2h", "2h15".
    """
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return max(1, int(value)) if value == value else default   # NaN guard

    raw = str(value).lower().strip()
    if re.fullmatch(r"\d+(\.\d+)?", raw):
        return max(1, int(float(raw)))

    compact = re.fullmatch(r"(\d+(?:\.\d+)?)\s*h(?:\s*(\d+))?", raw)
    if compact:
        extra = int(compact.group(2)) if compact.group(2) else 0
        return max(1, int(float(compact.group(1)) * 60 + extra))

    total = 0
    hr = re.search(r"(\d+(?:\.\d+)?)\s*h(?:r|rs|ours?)?\b", raw)
    mn = re.search(r"(\d+)\s*m(?:in(?:ute)?s?)?\b", raw)
    if hr:
        total += round(float(hr.group(1)) * 60)
    if mn:
        total += int(mn.group(1))
    if total > 0:
        return total

    num = re.search(r"(\d+(?:\.\d+)?)", raw)
    if num:
        return max(1, int(float(num.group(1))))
    return default
