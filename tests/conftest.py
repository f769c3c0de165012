"""Shared fixtures for the chance-journal test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from chance_journal.core.clock import SimClock
from chance_journal.core.errors import PersistenceError
from chance_journal.journal.presets import FilterPresetStore
from chance_journal.journal.store import RecordStore
from chance_journal.storage.kv import InMemoryKeyValueStore


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose reads or writes can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False
        self.fail_reads = False
        self.writes = 0

    def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise PersistenceError(key, "storage disabled")
        return super().get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceError(key, "quota exceeded")
        self.writes += 1
        super().set(key, value)


# ---------------------------------------------------------------------------
# Clock / storage
# ---------------------------------------------------------------------------

@pytest.fixture
def sim_clock() -> SimClock:
    """Simulated clock starting at 2024-06-01 00:00 UTC."""
    return SimClock(start=datetime(2024, 6, 1, tzinfo=timezone.utc))


@pytest.fixture
def kv() -> FlakyKeyValueStore:
    return FlakyKeyValueStore()


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest.fixture
def record_store(kv, sim_clock) -> RecordStore:
    return RecordStore(kv, clock=sim_clock)


@pytest.fixture
def preset_store(kv, sim_clock) -> FilterPresetStore:
    return FilterPresetStore(kv, clock=sim_clock)


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------

def record_input(**overrides: Any) -> dict[str, Any]:
    """A valid add() payload, with optional field overrides."""
    data: dict[str, Any] = {
        "currency_pair": "USD/JPY",
        "timeframe": "1H",
        "pattern": "Double Top",
        "direction": "Short",
        "confidence": 4,
        "memo": "Rejected at 150.00",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_input() -> Callable[..., dict[str, Any]]:
    return record_input


@pytest.fixture
def add_record(record_store, sim_clock) -> Callable[..., Any]:
    """Add a record, then advance the clock one minute so timestamps differ."""

    def _add(**overrides: Any):
        record = record_store.add(record_input(**overrides))
        sim_clock.advance(minutes=1)
        return record

    return _add
