"""
Essential Loader — the minimal per-program dataset, loaded in one round.

On a miss it runs three bulk fetches concurrently (diagnostics reference
data, program-controls, program-measures), assembles the bundle and caches
it.  Population is all-or-nothing: if any fetch fails or the round times
out, a single LoadError is raised and nothing is written to the cache.
A bundle whose fetch was voided by a program refresh is returned to its
callers but not cached.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import defaultdict

from maturity_engine.cache.store import (
    MISS,
    NEVER_EXPIRES,
    CacheStore,
    diagnostics_key,
    essential_key,
)
from maturity_engine.config import get_settings
from maturity_engine.exceptions import LoadError
from maturity_engine.models.schemas import (
    ControlEntry,
    Diagnostic,
    EssentialBundle,
    ProgramControl,
    ProgramMeasure,
    ResponseEntry,
)
from maturity_engine.persistence.data_source import ProgramDataSource

logger = logging.getLogger(__name__)

# Bundle generations are unique per process; score entries are tagged with
# the generation of the bundle they were computed from.
_generations = itertools.count(1)


def assemble_bundle(
    program_id: int,
    diagnostics: list[Diagnostic],
    program_controls: list[ProgramControl],
    program_measures: list[ProgramMeasure],
) -> EssentialBundle:
    """Group controls under their diagnostic and index responses by composite key."""
    controls_by_diagnostic: dict[int, list[ControlEntry]] = defaultdict(list)
    for pc in program_controls:
        control = pc.control
        controls_by_diagnostic[control.diagnostic_id].append(
            ControlEntry(
                id=control.id,
                number=control.number,
                name=control.name,
                text=control.text,
                diagnostic_id=control.diagnostic_id,
                incc_level=pc.incc_level,
                program_control_id=pc.id,
            )
        )
    for controls in controls_by_diagnostic.values():
        controls.sort(key=lambda c: (c.number, c.id))

    responses_by_key: dict[str, ResponseEntry] = {}
    measure_ids_by_control: dict[int, list[int]] = defaultdict(list)
    for pm in program_measures:
        control_id = pm.measure.control_id
        entry = ResponseEntry(
            measure_id=pm.measure_id,
            control_id=control_id,
            program_id=program_id,
            program_measure_id=pm.id,
            **pm.model_dump(include=set(ResponseEntry.model_fields) - {
                "measure_id", "control_id", "program_id", "program_measure_id",
            }),
        )
        if entry.key not in responses_by_key:
            measure_ids_by_control[control_id].append(pm.measure_id)
        responses_by_key[entry.key] = entry

    return EssentialBundle(
        program_id=program_id,
        generation=next(_generations),
        diagnostics=diagnostics,
        controls_by_diagnostic=dict(controls_by_diagnostic),
        responses_by_key=responses_by_key,
        measure_ids_by_control=dict(measure_ids_by_control),
    )


class EssentialLoader:
    """Loads and caches EssentialBundles, one per program."""

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
        self._inflight: dict[int, tuple[asyncio.Task, int]] = {}

    async def load(self, program_id: int) -> EssentialBundle:
        key = essential_key(program_id)
        cached = self.cache.get(key)
        if cached is not MISS:
            logger.debug(f"Essential data for program {program_id} served from cache")
            return cached

        pending = self._inflight.get(program_id)
        if pending is not None and self.cache.is_pending(key, pending[1]):
            task = pending[0]
        else:
            token = self.cache.begin(key)
            task = asyncio.ensure_future(self._fetch(program_id, token))
            self._inflight[program_id] = (task, token)
            task.add_done_callback(lambda done: self._release(program_id, done))
        return await asyncio.shield(task)

    def _release(self, program_id: int, task: asyncio.Task) -> None:
        current = self._inflight.get(program_id)
        if current is not None and current[0] is task:
            del self._inflight[program_id]

    async def _diagnostics(self) -> tuple[list[Diagnostic], bool]:
        """Diagnostics are reference data, fetched once per process."""
        cached = self.cache.get(diagnostics_key())
        if cached is not MISS:
            return cached, False
        return await self.data_source.fetch_diagnostics(), True

    async def _fetch(self, program_id: int, token: int) -> EssentialBundle:
        key = essential_key(program_id)
        logger.info(f"Loading essential data for program {program_id}")
        try:
            results = await asyncio.wait_for(
                asyncio.gather(
                    self._diagnostics(),
                    self.data_source.fetch_program_controls(program_id),
                    self.data_source.fetch_program_measures(program_id),
                    return_exceptions=True,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            self.cache.abandon(key, token)
            logger.error(f"Essential load for program {program_id} timed out after {self.timeout}s")
            raise LoadError(
                f"Essential load for program {program_id} timed out",
                program_id=program_id,
                errors=[exc],
            ) from exc

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            self.cache.abandon(key, token)
            logger.error(f"Essential load for program {program_id} failed: {errors}")
            raise LoadError(
                f"Essential load for program {program_id} failed",
                program_id=program_id,
                errors=errors,
            ) from errors[0]

        (diagnostics, fresh_diagnostics), program_controls, program_measures = results
        bundle = assemble_bundle(program_id, diagnostics, program_controls, program_measures)

        if fresh_diagnostics:
            self.cache.put(diagnostics_key(), diagnostics, ttl=NEVER_EXPIRES)
        if not self.cache.put_if_current(key, bundle, token):
            return bundle

        logger.info(
            f"Essential data loaded for program {program_id}: "
            f"{len(bundle.diagnostics)} diagnostics, "
            f"{sum(len(c) for c in bundle.controls_by_diagnostic.values())} controls, "
            f"{len(bundle.responses_by_key)} responses"
        )
        return bundle
