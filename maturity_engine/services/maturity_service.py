"""
Maturity Service — the facade the presentation layer talks to.

Reads (score lookups, tree) are synchronous and served from the cache.
Loads are async and delegate to the two loaders.  Once a mutation has
resolved its target, it updates local state and invalidates the affected
cache entries *before* awaiting the write, so a score read right after the
call (or interleaved with the pending write) already reflects the change.
A failed write rolls the local change back and raises WriteError.

While a write is pending, an essential load that completes does not replace
the program's bundle: its rows may predate the write.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional

from maturity_engine.cache.invalidation import MutationContext, apply_invalidation
from maturity_engine.cache.store import (
    MISS,
    CacheStats,
    CacheStore,
    detailed_key,
    essential_key,
    score_key,
)
from maturity_engine.config import Settings, get_settings
from maturity_engine.exceptions import LoadError, ProgramNotLoadedError, WriteError
from maturity_engine.models.enums import MutationKind, ResponseKind, ScoreKind
from maturity_engine.models.schemas import (
    RESPONSE_FIELDS,
    ControlEntry,
    DetailedMeasure,
    EssentialBundle,
    LoadOutcome,
    MaturityResult,
    ResponseEntry,
    TreeNode,
    response_key,
)
from maturity_engine.persistence.data_source import ProgramDataSource
from maturity_engine.persistence.memory_data_source import InMemoryDataSource
from maturity_engine.persistence.mongo_data_source import MongoDataSource
from maturity_engine.scoring.calculator import mean_score, score_control, score_diagnostic
from maturity_engine.scoring.weight_tables import (
    WEIGHT_TABLES,
    table_kind_for,
    validate_incc_level,
)
from maturity_engine.services.detailed_loader import DetailedLoader
from maturity_engine.services.essential_loader import EssentialLoader
from maturity_engine.services.navigation import build_tree

logger = logging.getLogger(__name__)


def create_data_source(settings: Settings) -> ProgramDataSource:
    """In-memory demo data in mock mode, MongoDB otherwise."""
    if settings.mock_mode:
        logger.info("[MOCK] Using in-memory demo data source")
        return InMemoryDataSource.with_demo_data()
    return MongoDataSource()


class MaturityService:
    """Score lookups, lazy loads and mutation hooks for one process."""

    def __init__(
        self,
        data_source: ProgramDataSource | None = None,
        cache: CacheStore | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.data_source = data_source or create_data_source(self.settings)
        self.cache = cache or CacheStore(
            ttl_seconds=self.settings.cache_ttl_seconds,
            sweep_interval_seconds=self.settings.cache_sweep_interval_seconds,
        )
        self.essential = EssentialLoader(
            self.data_source, self.cache, self.settings.fetch_timeout_seconds
        )
        self.detailed = DetailedLoader(
            self.data_source, self.cache, self.settings.fetch_timeout_seconds
        )
        self._bundles: dict[int, EssentialBundle] = {}
        self._write_epochs: Counter = Counter()
        self._writes_pending: Counter = Counter()

    # ── Lifecycle ────────────────────────────────────────

    async def start(self) -> None:
        await self.cache.start()

    async def close(self) -> None:
        await self.cache.stop()
        self._bundles.clear()

    # ── Loading ──────────────────────────────────────────

    async def load_essential(self, program_id: int) -> LoadOutcome:
        """Load (or reuse) a program's essential data.  Failures come back as a value."""
        epoch = self._write_epochs[program_id]
        try:
            bundle = await self.essential.load(program_id)
        except LoadError as exc:
            return LoadOutcome(ok=False, program_id=program_id, error=str(exc))

        current = self._bundles.get(program_id)
        if current is not None and current is not bundle and (
            self._write_epochs[program_id] != epoch or self._writes_pending[program_id]
        ):
            # Rows were read before (or during) a write; keep the bundle that has it.
            self.cache.invalidate(lambda key: key == essential_key(program_id))
            logger.info(
                f"Discarded essential data for program {program_id}: a write overlapped the load"
            )
            return LoadOutcome(ok=True, program_id=program_id, bundle=current)
        self._bundles[program_id] = bundle
        return LoadOutcome(ok=True, program_id=program_id, bundle=bundle)

    async def load_detailed(self, control_id: int, program_id: int) -> list[DetailedMeasure]:
        """Measures of an expanded control; empty on failure."""
        return await self.detailed.load(control_id, program_id)

    def is_loading_detailed(self, control_id: int, program_id: int) -> bool:
        return self.detailed.is_loading(control_id, program_id)

    def is_loaded(self, program_id: int) -> bool:
        return program_id in self._bundles

    def bundle(self, program_id: int) -> EssentialBundle:
        bundle = self._bundles.get(program_id)
        if bundle is None:
            raise ProgramNotLoadedError(program_id)
        return bundle

    def _control(self, bundle: EssentialBundle, control_id: int) -> ControlEntry:
        control = bundle.find_control(control_id)
        if control is None:
            raise KeyError(f"Control {control_id} is not part of program {bundle.program_id}")
        return control

    # ── Scores ───────────────────────────────────────────

    def get_control_maturity(
        self, program_id: int, control: ControlEntry | int
    ) -> Optional[MaturityResult]:
        """A control's maturity, or None when it has no applicable measure."""
        bundle = self.bundle(program_id)
        control_id = control.id if isinstance(control, ControlEntry) else control
        entry = self._control(bundle, control_id)

        key = score_key(ScoreKind.CONTROL, control_id, program_id)
        cached = self.cache.get(key, generation=bundle.generation)
        if cached is not MISS:
            return cached

        table = table_kind_for(entry.diagnostic_id, self.settings.basic_structuring_diagnostic_id)
        result = score_control(bundle.responses_for(control_id), entry.incc_level, table)
        self.cache.put(key, result, generation=bundle.generation)
        return result

    def get_diagnostic_maturity(self, program_id: int, diagnostic_id: int) -> Optional[MaturityResult]:
        """Mean of the diagnostic's controls with data, or None."""
        bundle = self.bundle(program_id)
        key = score_key(ScoreKind.DIAGNOSTIC, diagnostic_id, program_id)
        cached = self.cache.get(key, generation=bundle.generation)
        if cached is not MISS:
            return cached

        result = score_diagnostic(
            self.get_control_maturity(program_id, control)
            for control in bundle.controls_by_diagnostic.get(diagnostic_id, [])
        )
        self.cache.put(key, result, generation=bundle.generation)
        return result

    def get_program_maturity(self, program_id: int) -> Optional[MaturityResult]:
        """Mean of the program's diagnostics with data, or None."""
        bundle = self.bundle(program_id)
        return mean_score(
            self.get_diagnostic_maturity(program_id, d.id) for d in bundle.diagnostics
        )

    def build_tree(self, program_id: int) -> TreeNode:
        bundle = self.bundle(program_id)
        return build_tree(
            bundle,
            control_maturity=lambda control: self.get_control_maturity(program_id, control),
            diagnostic_maturity=lambda diagnostic_id: self.get_diagnostic_maturity(
                program_id, diagnostic_id
            ),
            program_maturity=self.get_program_maturity(program_id),
        )

    # ── Mutations ────────────────────────────────────────

    def _invalidate(self, mutation: MutationKind, control: ControlEntry, program_id: int) -> None:
        apply_invalidation(
            self.cache,
            mutation,
            MutationContext(
                program_id=program_id,
                control_id=control.id,
                diagnostic_id=control.diagnostic_id,
            ),
        )

    def _begin_write(self, program_id: int) -> None:
        self._write_epochs[program_id] += 1
        self._writes_pending[program_id] += 1

    def _end_write(self, program_id: int) -> None:
        self._writes_pending[program_id] -= 1
        self._write_epochs[program_id] += 1

    async def _owning_control(self, bundle: EssentialBundle, measure_id: int) -> int:
        """Control a measure belongs to; measures without a program row are looked up."""
        owner = bundle.control_for_measure(measure_id)
        if owner is not None:
            return owner
        try:
            measure = await self.data_source.fetch_measure(measure_id)
        except Exception as exc:
            raise WriteError(
                f"Could not look up measure {measure_id}",
                mutation=MutationKind.RESPONSE_UPDATED.value,
                cause=exc,
            ) from exc
        if measure is None:
            raise KeyError(f"Measure {measure_id} does not exist")
        return measure.control_id

    def _check_choice(self, entry: ResponseEntry, control: ControlEntry) -> None:
        response = entry.response
        if response.kind != ResponseKind.ANSWERED:
            return
        table = table_kind_for(control.diagnostic_id, self.settings.basic_structuring_diagnostic_id)
        if response.choice_id not in WEIGHT_TABLES[table]:
            raise ValueError(
                f"Response {response.choice_id} is not a valid {table.value} choice "
                f"for control {control.id}"
            )

    async def update_response(
        self,
        program_id: int,
        measure_id: int,
        control_id: int,
        field: str,
        value: Any,
    ) -> ResponseEntry:
        """
        Change one field of a measure's program response.

        Local state and cache are updated synchronously; the write is then
        awaited.  On write failure the change is undone and WriteError raised.
        A measure that belongs to another control raises ValueError; one
        that does not exist raises KeyError.  Neither touches any state.
        """
        if field not in RESPONSE_FIELDS:
            raise ValueError(f"Unknown response field: {field}")
        owner = await self._owning_control(self.bundle(program_id), measure_id)
        if owner != control_id:
            raise ValueError(
                f"Measure {measure_id} belongs to control {owner}, not control {control_id}"
            )
        bundle = self.bundle(program_id)
        control = self._control(bundle, control_id)

        key = response_key(measure_id, control_id, program_id)
        previous = bundle.responses_by_key.get(key)
        base = previous or ResponseEntry(
            measure_id=measure_id, control_id=control_id, program_id=program_id
        )
        updated = base.with_field(field, value)
        if field == "response":
            self._check_choice(updated, control)

        bundle.responses_by_key[key] = updated
        measure_ids = bundle.measure_ids_by_control.setdefault(control_id, [])
        if previous is None:
            measure_ids.append(measure_id)
        self._invalidate(MutationKind.RESPONSE_UPDATED, control, program_id)

        self._begin_write(program_id)
        try:
            await self.data_source.write_response_field(
                measure_id, control_id, program_id, field, getattr(updated, field)
            )
        except Exception as exc:
            # Only undo if no later update replaced ours in the meantime.
            if bundle.responses_by_key.get(key) is updated:
                if previous is None:
                    bundle.responses_by_key.pop(key, None)
                    if measure_id in measure_ids:
                        measure_ids.remove(measure_id)
                else:
                    bundle.responses_by_key[key] = previous
                self._invalidate(MutationKind.RESPONSE_UPDATED, control, program_id)
            logger.error(f"Write of {field} for measure {measure_id} failed: {exc}")
            raise WriteError(
                f"Could not save {field} for measure {measure_id}",
                mutation=MutationKind.RESPONSE_UPDATED.value,
                cause=exc,
            ) from exc
        finally:
            self._end_write(program_id)

        # A detailed fetch started while the write was pending may have read the old row.
        self.cache.invalidate(lambda k: k == detailed_key(control_id, program_id))
        logger.info(f"Measure {measure_id} (control {control_id}) updated: {field}")
        return updated

    async def update_capability_level(
        self, program_id: int, control_id: int, level: int
    ) -> ControlEntry:
        """Change a control's INCC level; same discipline as update_response."""
        validate_incc_level(level)
        bundle = self.bundle(program_id)
        control = self._control(bundle, control_id)

        previous_level = control.incc_level
        control.incc_level = level
        self._invalidate(MutationKind.CAPABILITY_LEVEL_UPDATED, control, program_id)

        self._begin_write(program_id)
        try:
            await self.data_source.write_capability_level(control_id, program_id, level)
        except Exception as exc:
            if control.incc_level == level:
                control.incc_level = previous_level
                self._invalidate(MutationKind.CAPABILITY_LEVEL_UPDATED, control, program_id)
            logger.error(f"Write of INCC level for control {control_id} failed: {exc}")
            raise WriteError(
                f"Could not save INCC level for control {control_id}",
                mutation=MutationKind.CAPABILITY_LEVEL_UPDATED.value,
                cause=exc,
            ) from exc
        finally:
            self._end_write(program_id)

        logger.info(f"Control {control_id} INCC level: {previous_level} → {level}")
        return control

    def invalidate_all(self, program_id: int) -> int:
        """Drop everything cached for a program; the next load refetches."""
        self._bundles.pop(program_id, None)
        return apply_invalidation(
            self.cache,
            MutationKind.PROGRAM_REFRESHED,
            MutationContext(program_id=program_id),
        )

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()
