"""
modules/observability/replay.py
---------------------------------
Replay of a recorded planning session from its JSONL log.

Usage:
    python main.py --replay <session_id>

Reads logs/<session_id>.jsonl and prints PROGRESS, DAY_RESULT and
DUPLICATES events in order. Raises RuntimeError("REPLAY_DUPLICATES") when
the session logged a repeated place id.

Nothing is re-planned — this is a pure log replay.
"""

from __future__ import annotations

from pathlib import Path

from modules.observability.logger import StructuredLogger

_REPLAY_EVENT_TYPES = frozenset({"PROGRESS", "DAY_RESULT", "DUPLICATES"})


def replay_session(session_id: str, *, logs_dir: Path | str | None = None) -> dict:
    """Print a recorded session; return a summary of what it contained."""
    events = StructuredLogger(logs_dir)
    path = events.logs_dir / f"{session_id}.jsonl"
    if not path.exists():
        raise FileNotFoundError(f"Log file not found: {path}")

    records = [r for r in events.read(session_id) if r.get("event_type") in _REPLAY_EVENT_TYPES]

    print(f"\n{'=' * 60}")
    print(f"  REPLAY — session {session_id}")
    print(f"  Log file: {path}")
    print(f"  Records: {len(records)}")
    print(f"{'=' * 60}\n")

    days: list[dict] = []
    duplicates: list[str] = []
    last_stage = ""

    for step, rec in enumerate(records, start=1):
        ts = rec.get("timestamp", "")
        payload = rec.get("payload", {})
        event_type = rec["event_type"]

        if event_type == "PROGRESS":
            last_stage = payload.get("stage", "")
            pct = payload.get("progress")
            pct_txt = f"{pct * 100:5.1f}%" if isinstance(pct, (int, float)) else "   --"
            print(f"  [{step:>4}] {ts}  PROGRESS    {pct_txt}  {last_stage}: {payload.get('message', '')}")

        elif event_type == "DAY_RESULT":
            days.append(payload)
            flag = "  DEGRADED" if payload.get("degraded") else ""
            reason = f"  ({payload['failure_reason']})" if payload.get("failure_reason") else ""
            print(f"  [{step:>4}] {ts}  DAY_RESULT  {payload.get('date')}  "
                  f"stops={payload.get('stops')}{flag}{reason}")

        elif event_type == "DUPLICATES":
            duplicates.extend(payload.get("place_ids", []))
            print(f"  [{step:>4}] {ts}  DUPLICATES  {payload.get('place_ids')}")

    print(f"\n  Replayed {len(records)} event(s); {len(days)} day(s), last stage '{last_stage}'.")
    if duplicates:
        raise RuntimeError(f"REPLAY_DUPLICATES: session repeated place ids {duplicates}")

    print(f"\n{'=' * 60}")
    print("  REPLAY COMPLETE")
    print(f"{'=' * 60}\n")
    return {"days": days, "last_stage": last_stage, "events": len(records)}
