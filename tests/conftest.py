"""Shared test fixtures and configuration.

Sets environment variables before any src import so src.config loads a
deterministic configuration, and provides stores, storage back-ends and a
fixed clock.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TIMEZONE", "America/New_York")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ["LLM_API_KEY"] = ""
os.environ.setdefault("LLM_PROVIDER", "gemini")

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

NY = ZoneInfo("America/New_York")


class FailingStorage:
    """StoragePort whose writes always fail, for persistence-error tests."""

    name = "failing"

    def __init__(self, obligations=None):
        self._items = list(obligations or [])
        self.attempts = 0

    def load_all(self):
        return [o.copy() for o in self._items]

    def save_all(self, obligations):
        from src.ports.storage_port import PersistenceError

        self.attempts += 1
        raise PersistenceError("disk full")


@pytest.fixture
def tz():
    return NY


@pytest.fixture
def now():
    """Thursday 2026-01-15 10:00 in New York (EST, UTC-5)."""
    return datetime(2026, 1, 15, 10, 0, tzinfo=NY)


@pytest.fixture
def memory_storage():
    from src.adapters.memory_storage import InMemoryStorage
    return InMemoryStorage()


@pytest.fixture
def store(memory_storage, now):
    """ObligationStore over in-memory storage with the clock pinned to `now`."""
    from src.core.obligation_store import ObligationStore
    return ObligationStore(memory_storage, clock=lambda: now)


@pytest.fixture
def json_storage(tmp_path):
    from src.adapters.json_file_storage import JsonFileStorage
    return JsonFileStorage(path=str(tmp_path / "data" / "obligations.json"), default_tz=NY)


@pytest.fixture
def sqlite_storage(tmp_path):
    from src.adapters.sqlite_storage import SQLiteStorage
    return SQLiteStorage(db_path=str(tmp_path / "test_obligations.db"), default_tz=NY)


@pytest.fixture
def failing_storage():
    return FailingStorage()
