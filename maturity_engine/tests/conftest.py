"""
Shared test fixtures: a controllable clock, a recording data source and a
MaturityService wired to both.
"""

from __future__ import annotations

from collections import Counter

import pytest
import pytest_asyncio

from maturity_engine.cache.store import CacheStore
from maturity_engine.persistence.demo_data import DEMO_PROGRAM_ID, demo_tables
from maturity_engine.persistence.memory_data_source import InMemoryDataSource
from maturity_engine.services.maturity_service import MaturityService


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDataSource(InMemoryDataSource):
    """In-memory source that counts every call and fails the ones listed in ``fail``."""

    def __init__(self, tables=None, latency: float = 0.0):
        super().__init__(tables if tables is not None else demo_tables(), latency=latency)
        self.calls: Counter = Counter()
        self.fail: set[str] = set()

    async def _record(self, name: str) -> None:
        await self._pause()
        self.calls[name] += 1
        if name in self.fail:
            raise ConnectionError(f"{name} unavailable")

    async def fetch_diagnostics(self):
        await self._record("fetch_diagnostics")
        return await super().fetch_diagnostics()

    async def fetch_program_controls(self, program_id):
        await self._record("fetch_program_controls")
        return await super().fetch_program_controls(program_id)

    async def fetch_program_measures(self, program_id):
        await self._record("fetch_program_measures")
        return await super().fetch_program_measures(program_id)

    async def fetch_measures_by_control(self, control_id, program_id):
        await self._record("fetch_measures_by_control")
        return await super().fetch_measures_by_control(control_id, program_id)

    async def fetch_measure(self, measure_id):
        await self._record("fetch_measure")
        return await super().fetch_measure(measure_id)

    async def write_response_field(self, measure_id, control_id, program_id, field, value):
        await self._record("write_response_field")
        await super().write_response_field(measure_id, control_id, program_id, field, value)

    async def write_capability_level(self, control_id, program_id, level):
        await self._record("write_capability_level")
        await super().write_capability_level(control_id, program_id, level)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheStore(ttl_seconds=300, sweep_interval_seconds=120, clock=clock)


@pytest.fixture
def make_source():
    """Factory for sources with custom tables or latency."""
    return RecordingDataSource


@pytest.fixture
def data_source():
    return RecordingDataSource()


@pytest.fixture
def service(data_source, cache):
    return MaturityService(data_source=data_source, cache=cache)


@pytest_asyncio.fixture
async def loaded_service(service):
    outcome = await service.load_essential(DEMO_PROGRAM_ID)
    assert outcome.ok, outcome.error
    return service
