from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from stratbook.catalog.persistence import MemoryStore
from stratbook.catalog.query import SelectionEngine
from stratbook.catalog.repository import StrategyRepository
from stratbook.catalog.undo import UndoBuffer


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self) -> None:
        self.ms = 0

    def __call__(self) -> float:
        return self.ms / 1000.0

    def advance_ms(self, ms: int) -> None:
        self.ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ticks() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repo(store: MemoryStore, clock: FakeClock, ticks: FakeMonotonic) -> StrategyRepository:
    return StrategyRepository(store, undo=UndoBuffer(6000, clock=ticks), clock=clock)


@pytest.fixture
def selection(repo: StrategyRepository) -> SelectionEngine:
    return SelectionEngine(repo, date_format="%Y-%m-%d")
