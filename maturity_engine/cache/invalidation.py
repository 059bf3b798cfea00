"""
Invalidation rules — which cache entries each mutation makes stale.

Each mutation kind maps to a list of key patterns.  A pattern is the key's
namespace followed by one matcher per key part: a literal (e.g. a
ScoreKind), a Slot bound from the mutation context, or Slot.ANY.
New mutations only add a row to INVALIDATION_RULES.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Hashable, Optional

from pydantic import BaseModel

from maturity_engine.cache.store import CacheKey, CacheStore
from maturity_engine.models.enums import CacheNamespace, MutationKind, ScoreKind

logger = logging.getLogger(__name__)


class Slot(str, Enum):
    PROGRAM = "program_id"
    CONTROL = "control_id"
    DIAGNOSTIC = "diagnostic_id"
    ANY = "*"


class MutationContext(BaseModel):
    program_id: int
    control_id: Optional[int] = None
    diagnostic_id: Optional[int] = None


class KeyPattern(BaseModel):
    namespace: CacheNamespace
    parts: tuple[Any, ...] = ()

    def bind(self, context: MutationContext) -> tuple[Hashable, ...]:
        bound: list[Hashable] = [self.namespace]
        for part in self.parts:
            if isinstance(part, Slot) and part != Slot.ANY:
                value = getattr(context, part.value)
                if value is None:
                    raise ValueError(f"{part.value} is required to invalidate {self.namespace.value}")
                bound.append(value)
            else:
                bound.append(part)
        return tuple(bound)


def _matches(pattern: tuple[Hashable, ...], key: CacheKey) -> bool:
    if len(pattern) != len(key):
        return False
    return all(p == Slot.ANY or p == k for p, k in zip(pattern, key))


INVALIDATION_RULES: dict[MutationKind, tuple[KeyPattern, ...]] = {
    MutationKind.RESPONSE_UPDATED: (
        KeyPattern(namespace=CacheNamespace.SCORE,
                   parts=(ScoreKind.CONTROL, Slot.CONTROL, Slot.PROGRAM)),
        KeyPattern(namespace=CacheNamespace.SCORE,
                   parts=(ScoreKind.DIAGNOSTIC, Slot.DIAGNOSTIC, Slot.PROGRAM)),
        KeyPattern(namespace=CacheNamespace.DETAILED,
                   parts=(Slot.CONTROL, Slot.PROGRAM)),
    ),
    MutationKind.CAPABILITY_LEVEL_UPDATED: (
        KeyPattern(namespace=CacheNamespace.SCORE,
                   parts=(ScoreKind.CONTROL, Slot.CONTROL, Slot.PROGRAM)),
        KeyPattern(namespace=CacheNamespace.SCORE,
                   parts=(ScoreKind.DIAGNOSTIC, Slot.DIAGNOSTIC, Slot.PROGRAM)),
    ),
    MutationKind.PROGRAM_REFRESHED: (
        KeyPattern(namespace=CacheNamespace.ESSENTIAL, parts=(Slot.PROGRAM,)),
        KeyPattern(namespace=CacheNamespace.DETAILED, parts=(Slot.ANY, Slot.PROGRAM)),
        KeyPattern(namespace=CacheNamespace.SCORE, parts=(Slot.ANY, Slot.ANY, Slot.PROGRAM)),
    ),
}


def predicate_for(mutation: MutationKind, context: MutationContext) -> Callable[[CacheKey], bool]:
    """Build a key predicate covering every pattern of the mutation's rule."""
    patterns = [p.bind(context) for p in INVALIDATION_RULES[mutation]]
    return lambda key: any(_matches(p, key) for p in patterns)


def apply_invalidation(cache: CacheStore, mutation: MutationKind, context: MutationContext) -> int:
    """Drop the entries a mutation makes stale; synchronous, returns the count."""
    removed = cache.invalidate(predicate_for(mutation, context))
    logger.info(
        f"[{mutation.value}] invalidated {removed} entries "
        f"(program={context.program_id}, control={context.control_id}, "
        f"diagnostic={context.diagnostic_id})"
    )
    return removed
