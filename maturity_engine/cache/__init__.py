"""Cache — CacheStore and the declarative invalidation rules."""

from maturity_engine.cache.store import MISS, CacheStats, CacheStore
from maturity_engine.cache.invalidation import MutationContext, apply_invalidation

__all__ = ["MISS", "CacheStats", "CacheStore", "MutationContext", "apply_invalidation"]
