"""
Detailed Loader — a control's full measure list, fetched lazily.

Overlapping calls for the same (control, program) share one in-flight
fetch.  A failed fetch resolves to an empty list and leaves the cache
untouched so the next call retries.  A fetch voided by an invalidation
(a response changed while it was running) still answers its own callers
but is not cached, and later callers start a fresh fetch.
"""

from __future__ import annotations

import asyncio
import logging

from maturity_engine.cache.store import MISS, CacheStore, detailed_key
from maturity_engine.config import get_settings
from maturity_engine.models.schemas import DetailedMeasure
from maturity_engine.persistence.data_source import ProgramDataSource

logger = logging.getLogger(__name__)


class DetailedLoader:
    """Loads and caches detailed measure lists, one per (control, program)."""

    def __init__(
        self,
        data_source: ProgramDataSource,
        cache: CacheStore,
        timeout_seconds: float | None = None,
    ):
        self.data_source = data_source
        self.cache = cache
        self.timeout = (
            get_settings().fetch_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._inflight: dict[tuple[int, int], tuple[asyncio.Task, int]] = {}

    def is_loading(self, control_id: int, program_id: int) -> bool:
        return (control_id, program_id) in self._inflight

    @property
    def loading(self) -> set[tuple[int, int]]:
        """(control_id, program_id) pairs with a fetch in flight."""
        return set(self._inflight)

    async def load(self, control_id: int, program_id: int) -> list[DetailedMeasure]:
        key = detailed_key(control_id, program_id)
        cached = self.cache.get(key)
        if cached is not MISS:
            logger.debug(f"Detailed measures for control {control_id} served from cache")
            return cached

        flight = (control_id, program_id)
        pending = self._inflight.get(flight)
        if pending is not None and self.cache.is_pending(key, pending[1]):
            task = pending[0]
            logger.debug(f"Joining in-flight detailed load for control {control_id}")
        else:
            token = self.cache.begin(key)
            task = asyncio.ensure_future(self._fetch(control_id, program_id, token))
            self._inflight[flight] = (task, token)
            task.add_done_callback(lambda done: self._release(flight, done))
        return await asyncio.shield(task)

    def _release(self, flight: tuple[int, int], task: asyncio.Task) -> None:
        current = self._inflight.get(flight)
        if current is not None and current[0] is task:
            del self._inflight[flight]

    async def _fetch(self, control_id: int, program_id: int, token: int) -> list[DetailedMeasure]:
        key = detailed_key(control_id, program_id)
        logger.info(f"Loading detailed measures for control {control_id} (program {program_id})")
        try:
            measures = await asyncio.wait_for(
                self.data_source.fetch_measures_by_control(control_id, program_id),
                timeout=self.timeout,
            )
        except Exception as exc:
            self.cache.abandon(key, token)
            logger.error(f"Detailed load for control {control_id} failed: {type(exc).__name__}: {exc}")
            return []

        if self.cache.put_if_current(key, measures, token):
            logger.info(f"Detailed measures loaded for control {control_id}: {len(measures)} items")
        return measures
