"""
In-memory data source — the collaborator used in mock mode and in tests.
Holds the same tables the MongoDB source reads, as plain row dicts.
"""

from __future__ import annotations

import asyncio
import logging
from copy import deepcopy
from typing import Any, Optional

from maturity_engine.models.schemas import (
    DetailedMeasure,
    Diagnostic,
    Measure,
    ProgramControl,
    ProgramMeasure,
)
from maturity_engine.persistence.data_source import (
    RESPONSE_FIELD_COLUMNS,
    ProgramDataSource,
    to_column_value,
)
from maturity_engine.persistence.demo_data import demo_tables
from maturity_engine.persistence.rows import (
    detailed_measure_from_rows,
    diagnostic_from_row,
    measure_from_row,
    measure_sort_key,
    program_control_from_row,
    program_measure_from_row,
)

logger = logging.getLogger(__name__)

TABLES = ("diagnostico", "controle", "medida", "programa_controle", "programa_medida")


class InMemoryDataSource(ProgramDataSource):
    """
    Dict-backed tables.  Reads return deep copies so callers never alias
    stored rows.  ``latency`` adds an await point to every call.
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None, latency: float = 0.0):
        source = tables if tables is not None else {}
        self._tables: dict[str, list[dict[str, Any]]] = {
            name: deepcopy(source.get(name, [])) for name in TABLES
        }
        self.latency = latency

    @classmethod
    def with_demo_data(cls, latency: float = 0.0) -> "InMemoryDataSource":
        return cls(demo_tables(), latency=latency)

    async def _pause(self) -> None:
        await asyncio.sleep(self.latency)

    def _by_id(self, table: str) -> dict[int, dict[str, Any]]:
        return {row["id"]: row for row in self._tables[table]}

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Copy of a table's rows (inspection helper)."""
        return deepcopy(self._tables[table])

    # ── Reads ────────────────────────────────────────────

    async def fetch_diagnostics(self) -> list[Diagnostic]:
        await self._pause()
        rows = sorted(self._tables["diagnostico"], key=lambda r: r["id"])
        return [diagnostic_from_row(r) for r in rows]

    async def fetch_program_controls(self, program_id: int) -> list[ProgramControl]:
        await self._pause()
        controls = self._by_id("controle")
        result = []
        for pc in self._tables["programa_controle"]:
            if pc["programa"] != program_id or pc["controle"] not in controls:
                continue
            result.append(program_control_from_row(deepcopy(pc), deepcopy(controls[pc["controle"]])))
        return result

    async def fetch_program_measures(self, program_id: int) -> list[ProgramMeasure]:
        await self._pause()
        measures = self._by_id("medida")
        result = []
        for pm in self._tables["programa_medida"]:
            if pm["programa"] != program_id or pm["medida"] not in measures:
                continue
            result.append(program_measure_from_row(deepcopy(pm), deepcopy(measures[pm["medida"]])))
        return result

    async def fetch_measures_by_control(
        self, control_id: int, program_id: int
    ) -> list[DetailedMeasure]:
        await self._pause()
        responses = {
            pm["medida"]: pm
            for pm in self._tables["programa_medida"]
            if pm["programa"] == program_id
        }
        rows = sorted(
            (m for m in self._tables["medida"] if m["id_controle"] == control_id),
            key=measure_sort_key,
        )
        return [
            detailed_measure_from_rows(deepcopy(m), deepcopy(responses.get(m["id"])))
            for m in rows
        ]

    async def fetch_measure(self, measure_id: int) -> Optional[Measure]:
        await self._pause()
        row = self._by_id("medida").get(measure_id)
        return measure_from_row(deepcopy(row)) if row is not None else None

    # ── Writes ───────────────────────────────────────────

    async def write_response_field(
        self,
        measure_id: int,
        control_id: int,
        program_id: int,
        field: str,
        value: Any,
    ) -> None:
        await self._pause()
        column = RESPONSE_FIELD_COLUMNS.get(field)
        if column is None:
            raise KeyError(f"Unknown program-measure field: {field}")
        measure = self._by_id("medida").get(measure_id)
        if measure is None or measure["id_controle"] != control_id:
            raise KeyError(f"Measure {measure_id} not found under control {control_id}")

        row = next(
            (pm for pm in self._tables["programa_medida"]
             if pm["programa"] == program_id and pm["medida"] == measure_id),
            None,
        )
        if row is None:
            next_id = max((pm["id"] for pm in self._tables["programa_medida"]), default=0) + 1
            row = {"id": next_id, "programa": program_id, "medida": measure_id, "resposta": None}
            self._tables["programa_medida"].append(row)
        row[column] = to_column_value(field, value)
        logger.debug(f"Wrote {column}={row[column]!r} for measure {measure_id} (program {program_id})")

    async def write_capability_level(self, control_id: int, program_id: int, level: int) -> None:
        await self._pause()
        row = next(
            (pc for pc in self._tables["programa_controle"]
             if pc["programa"] == program_id and pc["controle"] == control_id),
            None,
        )
        if row is None:
            raise KeyError(f"Control {control_id} is not part of program {program_id}")
        row["nivel"] = level
        logger.debug(f"Wrote nivel={level} for control {control_id} (program {program_id})")
