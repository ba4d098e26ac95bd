"""
Shared fixtures: offline config and a throwaway log dir for every test.
"""

from __future__ import annotations

import pytest

import config
from db.state_store import InMemoryStateStore, set_state_store


@pytest.fixture(autouse=True)
def _offline_config(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(config, "USE_STUB_LLM", True)
    monkeypatch.setattr(config, "USE_STUB_PLACES", True)
    monkeypatch.setattr(config, "USE_STUB_DIRECTIONS", True)
    monkeypatch.setattr(config, "MEMORY_BACKEND", "in_memory")
    monkeypatch.setattr(config, "EXTERNAL_CALL_RETRY_DELAY_S", 0.0)
    monkeypatch.setattr(config, "GRAPH_CALL_DELAY_S", 0.0)


@pytest.fixture
def store():
    s = InMemoryStateStore()
    set_state_store(s)
    yield s
    set_state_store(None)
