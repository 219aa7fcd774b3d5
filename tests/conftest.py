"""
Shared test configuration.
Every test gets a fresh store, so nothing leaks between test cases.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# main reads its settings at import time
os.environ["DATABASE_URL"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SEED_DEMO_DATA", "false")

from fastapi.testclient import TestClient  # noqa: E402

from sql_store import SqlStore  # noqa: E402
from store import MemoryStore  # noqa: E402


class FakeClock:
    """Clock that moves forward one second on every reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def sql_store(clock: FakeClock, tmp_path: Path) -> SqlStore:
    return SqlStore.from_url(f"sqlite:///{tmp_path / 'blog.db'}", clock=clock)


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest, clock: FakeClock, tmp_path: Path) -> MemoryStore | SqlStore:
    if request.param == "memory":
        return MemoryStore(clock=clock)
    return SqlStore.from_url(f"sqlite:///{tmp_path / 'blog.db'}", clock=clock)


@pytest.fixture
def client(memory_store: MemoryStore) -> Iterator[TestClient]:
    from main import app, get_store

    app.dependency_overrides[get_store] = lambda: memory_store
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
