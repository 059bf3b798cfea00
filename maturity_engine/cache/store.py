"""
Cache Store — keyed, time-bounded, in-process.

Keys are tuples whose first element is a CacheNamespace:

    (ESSENTIAL, program_id)
    (DETAILED, control_id, program_id)
    (SCORE, ScoreKind, id, program_id)
    (DIAGNOSTICS,)

``get`` enforces the TTL on every read; the periodic sweep only bounds memory
for long sessions.  An entry may also carry a generation: reading it with a
different generation is a miss, so values computed from a replaced input
are never served even before their TTL runs out.

Loaders register a fetch with ``begin`` and store its result with
``put_if_current``.  An invalidation matching the key while the fetch is in
flight voids the registration, so rows read before a mutation are never
stored after it.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Callable, Hashable

from pydantic import BaseModel

from maturity_engine.config import get_settings
from maturity_engine.models.enums import CacheNamespace, ScoreKind

logger = logging.getLogger(__name__)

CacheKey = tuple[Hashable, ...]


class _Miss:
    """Sentinel returned by ``CacheStore.get`` on a miss."""

    _instance: "_Miss | None" = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()

# Entries stored with this TTL never expire (reference data).
NEVER_EXPIRES = float("inf")


class CacheEntry:
    __slots__ = ("value", "inserted_at", "ttl", "generation")

    def __init__(self, value: Any, inserted_at: float, ttl: float, generation: int | None):
        self.value = value
        self.inserted_at = inserted_at
        self.ttl = ttl
        self.generation = generation

    def expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl


class CacheStats(BaseModel):
    size: int
    hits: int
    misses: int
    hit_rate: float  # percentage


# ── Key builders ─────────────────────────────────────────

def essential_key(program_id: int) -> CacheKey:
    return (CacheNamespace.ESSENTIAL, program_id)


def detailed_key(control_id: int, program_id: int) -> CacheKey:
    # Keyed by program as well as control: the list carries that program's
    # responses, so a control-only key would serve one program's answers to another.
    return (CacheNamespace.DETAILED, control_id, program_id)


def score_key(kind: ScoreKind, entity_id: int, program_id: int) -> CacheKey:
    return (CacheNamespace.SCORE, kind, entity_id, program_id)


def diagnostics_key() -> CacheKey:
    return (CacheNamespace.DIAGNOSTICS,)


# ── Store ────────────────────────────────────────────────

class CacheStore:
    """
    One store shared by the loaders and the facade.
    Inject it; do not create module-level instances.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        sweep_interval_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings()
        self.ttl = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.sweep_interval = (
            settings.cache_sweep_interval_seconds
            if sweep_interval_seconds is None
            else sweep_interval_seconds
        )
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._pending: dict[CacheKey, int] = {}
        self._tokens = itertools.count(1)
        self._hits = 0
        self._misses = 0
        self._sweep_task: asyncio.Task | None = None

    # ── Core contract ────────────────────────────────────

    def get(self, key: CacheKey, generation: int | None = None) -> Any:
        """Return the cached value, or MISS if absent, expired or of another generation."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return MISS
        if entry.expired(self._clock()):
            del self._entries[key]
            self._misses += 1
            logger.debug(f"Cache expired: {_fmt(key)}")
            return MISS
        if generation is not None and entry.generation != generation:
            del self._entries[key]
            self._misses += 1
            logger.debug(f"Cache generation mismatch: {_fmt(key)}")
            return MISS
        self._hits += 1
        logger.debug(f"Cache hit: {_fmt(key)}")
        return entry.value

    def put(
        self,
        key: CacheKey,
        value: Any,
        ttl: float | None = None,
        generation: int | None = None,
    ) -> None:
        self._entries[key] = CacheEntry(
            value=value,
            inserted_at=self._clock(),
            ttl=self.ttl if ttl is None else ttl,
            generation=generation,
        )

    def invalidate(self, predicate: Callable[[CacheKey], bool]) -> int:
        """
        Remove every entry whose key matches and void matching in-flight
        fetches; return how many entries were removed.
        """
        doomed = [key for key in self._entries if predicate(key)]
        for key in doomed:
            del self._entries[key]
        voided = [key for key in self._pending if predicate(key)]
        for key in voided:
            del self._pending[key]
        if doomed or voided:
            logger.debug(f"Invalidated {len(doomed)} cache entries, {len(voided)} pending fetches")
        return len(doomed)

    def invalidate_namespace(self, namespace: CacheNamespace) -> int:
        return self.invalidate(lambda key: key[0] == namespace)

    def clear(self) -> None:
        self._entries.clear()
        self._pending.clear()

    def sweep(self) -> int:
        """Purge expired entries proactively."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    # ── In-flight fetches ────────────────────────────────

    def begin(self, key: CacheKey) -> int:
        """Register a fetch for ``key``; returns the token ``put_if_current`` needs."""
        token = next(self._tokens)
        self._pending[key] = token
        return token

    def is_pending(self, key: CacheKey, token: int) -> bool:
        """True while the fetch holding ``token`` is still the live one for ``key``."""
        return self._pending.get(key) == token

    def put_if_current(
        self,
        key: CacheKey,
        value: Any,
        token: int,
        ttl: float | None = None,
        generation: int | None = None,
    ) -> bool:
        """Store a fetched value unless the key was invalidated since ``begin``."""
        if not self.is_pending(key, token):
            logger.info(f"Discarded fetch result for {_fmt(key)}: invalidated while in flight")
            return False
        del self._pending[key]
        self.put(key, value, ttl=ttl, generation=generation)
        return True

    def abandon(self, key: CacheKey, token: int) -> None:
        """Drop a fetch registration without storing anything."""
        if self.is_pending(key, token):
            del self._pending[key]

    def keys(self, namespace: CacheNamespace | None = None) -> list[CacheKey]:
        return [k for k in self._entries if namespace is None or k[0] == namespace]

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> CacheStats:
        lookups = self._hits + self._misses
        return CacheStats(
            size=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            hit_rate=(self._hits / lookups) * 100 if lookups else 0.0,
        )

    # ── Periodic sweep ───────────────────────────────────

    async def start(self) -> None:
        """Start the background sweep task on the running loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Cache sweeper started (every {self.sweep_interval:.0f}s)")

    async def stop(self) -> None:
        """Stop the sweep task and drop every entry."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        self.clear()
        logger.info("Cache sweeper stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()


def _fmt(key: CacheKey) -> str:
    return ":".join(str(getattr(part, "value", part)) for part in key)
