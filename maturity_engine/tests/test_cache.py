"""
Tests: CacheStore TTL, generations, sweeping and statistics.

Run with:
    pytest maturity_engine/tests/test_cache.py -v
"""

import asyncio

import pytest

from maturity_engine.cache.store import (
    MISS,
    NEVER_EXPIRES,
    CacheStore,
    detailed_key,
    diagnostics_key,
    essential_key,
    score_key,
)
from maturity_engine.models.enums import CacheNamespace, ScoreKind


class TestCacheStore:
    def test_put_then_get(self, cache):
        cache.put(essential_key(1), "bundle")
        assert cache.get(essential_key(1)) == "bundle"

    def test_miss_is_falsy_sentinel(self, cache):
        value = cache.get(essential_key(1))
        assert value is MISS
        assert not value

    def test_cached_none_is_a_hit(self, cache):
        key = score_key(ScoreKind.CONTROL, 4, 1)
        cache.put(key, None)
        assert cache.get(key) is None

    def test_entry_lives_for_exactly_its_ttl(self, cache, clock):
        cache.put(essential_key(1), "bundle")
        clock.advance(300)
        assert cache.get(essential_key(1)) == "bundle"
        clock.advance(0.001)
        assert cache.get(essential_key(1)) is MISS
        assert len(cache) == 0

    def test_per_entry_ttl(self, cache, clock):
        cache.put(diagnostics_key(), ["d"], ttl=NEVER_EXPIRES)
        cache.put(essential_key(1), "bundle", ttl=10)
        clock.advance(1_000_000)
        assert cache.get(diagnostics_key()) == ["d"]
        assert cache.get(essential_key(1)) is MISS

    def test_generation_mismatch_is_a_miss(self, cache):
        key = score_key(ScoreKind.CONTROL, 1, 1)
        cache.put(key, 0.5, generation=3)
        assert cache.get(key, generation=3) == 0.5
        assert cache.get(key, generation=4) is MISS
        # the stale entry is dropped
        assert cache.get(key, generation=3) is MISS

    def test_get_without_generation_ignores_tag(self, cache):
        cache.put(essential_key(1), "bundle", generation=7)
        assert cache.get(essential_key(1)) == "bundle"

    def test_detailed_keys_include_program(self):
        assert detailed_key(2, 1) != detailed_key(2, 3)
        assert detailed_key(1, 2) != detailed_key(2, 1)

    def test_invalidate_by_predicate(self, cache):
        cache.put(score_key(ScoreKind.CONTROL, 1, 1), 0.1)
        cache.put(score_key(ScoreKind.CONTROL, 2, 1), 0.2)
        cache.put(essential_key(1), "bundle")
        removed = cache.invalidate(lambda key: key[0] == CacheNamespace.SCORE and key[2] == 1)
        assert removed == 1
        assert len(cache) == 2

    def test_invalidate_namespace(self, cache):
        cache.put(score_key(ScoreKind.CONTROL, 1, 1), 0.1)
        cache.put(score_key(ScoreKind.DIAGNOSTIC, 1, 1), 0.1)
        cache.put(essential_key(1), "bundle")
        assert cache.invalidate_namespace(CacheNamespace.SCORE) == 2
        assert cache.keys() == [essential_key(1)]

    def test_sweep_removes_only_expired(self, cache, clock):
        cache.put(essential_key(1), "old")
        clock.advance(200)
        cache.put(essential_key(2), "new")
        clock.advance(150)
        assert cache.sweep() == 1
        assert cache.keys(CacheNamespace.ESSENTIAL) == [essential_key(2)]

    def test_fetch_result_stored_when_current(self, cache):
        key = detailed_key(3, 1)
        token = cache.begin(key)
        assert cache.is_pending(key, token)
        assert cache.put_if_current(key, ["fresh"], token) is True
        assert cache.get(key) == ["fresh"]
        assert not cache.is_pending(key, token)

    def test_invalidation_voids_fetch_in_flight(self, cache):
        key = detailed_key(3, 1)
        token = cache.begin(key)
        assert cache.invalidate(lambda k: k == key) == 0
        assert cache.put_if_current(key, ["stale"], token) is False
        assert cache.get(key) is MISS

    def test_newer_fetch_supersedes_older(self, cache):
        key = essential_key(1)
        old = cache.begin(key)
        new = cache.begin(key)
        assert cache.put_if_current(key, "old", old) is False
        assert cache.put_if_current(key, "new", new) is True
        assert cache.get(key) == "new"

    def test_abandon_and_clear_drop_registrations(self, cache):
        key = essential_key(1)
        token = cache.begin(key)
        cache.abandon(key, token)
        assert not cache.is_pending(key, token)
        token = cache.begin(key)
        cache.clear()
        assert cache.put_if_current(key, "late", token) is False

    def test_stats(self, cache):
        cache.put(essential_key(1), "bundle")
        cache.get(essential_key(1))
        cache.get(essential_key(1))
        cache.get(essential_key(2))
        cache.get(essential_key(3))
        stats = cache.stats()
        assert stats.size == 1
        assert stats.hits == 2
        assert stats.misses == 2
        assert stats.hit_rate == pytest.approx(50.0)

    def test_stats_empty(self, cache):
        assert cache.stats().hit_rate == 0.0

    def test_defaults_from_settings(self):
        store = CacheStore()
        assert store.ttl == 300.0
        assert store.sweep_interval == 120.0


class TestSweeper:
    @pytest.mark.asyncio
    async def test_background_sweep(self, clock):
        store = CacheStore(ttl_seconds=5, sweep_interval_seconds=0.01, clock=clock)
        store.put(essential_key(1), "bundle")
        clock.advance(10)
        await store.start()
        await asyncio.sleep(0.05)
        assert len(store) == 0
        await store.stop()

    @pytest.mark.asyncio
    async def test_stop_clears_entries(self, cache):
        await cache.start()
        cache.put(essential_key(1), "bundle")
        await cache.stop()
        assert len(cache) == 0
        # stopping twice is harmless
        await cache.stop()
