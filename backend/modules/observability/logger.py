"""
Structured JSON event log — append-only, one object per line (.jsonl).

Usage:
    from modules.observability.logger import StructuredLogger

    events = StructuredLogger()
    events.log("plan_ab12cd", "PROGRESS", {"stage": "anchors", "progress": 0.6})

Records land in  <LOGS_DIR>/<session_id>.jsonl  (default: backend/logs/).
Planning sessions write PROGRESS / DAY_RESULT / DUPLICATES events; shared
components write PERFORMANCE events under the "default" session.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import config

# logs/ directory lives alongside backend/main.py
_DEFAULT_LOGS_DIR: Path = Path(__file__).resolve().parents[2] / "logs"


def _logs_dir() -> Path:
    return Path(config.LOGS_DIR) if config.LOGS_DIR else _DEFAULT_LOGS_DIR


class StructuredLogger:
    """Thread-safe, append-only JSONL event log."""

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self._logs_dir = Path(logs_dir) if logs_dir else None
        self._lock = threading.Lock()

    @property
    def logs_dir(self) -> Path:
        return self._logs_dir or _logs_dir()

    # ── public API ────────────────────────────────────────────────────────

    def log(self, session_id: str, event_type: str, payload: dict) -> None:
        """Append one structured JSON record to ``<session_id>.jsonl``."""
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "event_type": event_type,
            "payload": payload,
        }
        line = json.dumps(record, default=str, ensure_ascii=False) + "\n"

        with self._lock:
            os.makedirs(self.logs_dir, exist_ok=True)
            with open(self._path(session_id), "a", encoding="utf-8") as fh:
                fh.write(line)

    def read(self, session_id: str, event_type: str | None = None) -> Iterator[dict]:
        """Yield the records of one session in write order, optionally filtered."""
        path = self._path(session_id)
        if not path.exists():
            return
        with open(path, "r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                rec = json.loads(line)
                if event_type is None or rec.get("event_type") == event_type:
                    yield rec

    # ── internals ─────────────────────────────────────────────────────────

    def _path(self, session_id: str) -> Path:
        return self.logs_dir / f"{session_id}.jsonl"
