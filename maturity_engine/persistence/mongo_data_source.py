"""
MongoDB data source — the collaborator used outside mock mode.

pymongo is blocking, so every call runs in a worker thread via
``asyncio.to_thread``; the event loop never blocks on the database.
Joins are done here with one ``$in`` query per side, so a program load
costs a fixed number of round trips regardless of its size.
"""

from __future__ import annotations

import asyncio
import logging
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
from maturity_engine.persistence.mongo_client import MongoClient
from maturity_engine.persistence.rows import (
    detailed_measure_from_rows,
    diagnostic_from_row,
    measure_from_row,
    measure_sort_key,
    program_control_from_row,
    program_measure_from_row,
)

logger = logging.getLogger(__name__)

_NO_OBJECT_ID = {"_id": 0}


class MongoDataSource(ProgramDataSource):
    """Reads the collaborator's collections with pymongo."""

    def __init__(self, client: MongoClient | None = None, db: Any = None):
        self._client = client or MongoClient()
        self._db = db

    def _collection(self, name: str) -> Any:
        if self._db is not None:
            return self._db[name]
        return self._client.collection(name)

    # ── Blocking helpers (run in a thread) ───────────────

    def _find(self, collection: str, query: dict[str, Any]) -> list[dict[str, Any]]:
        return list(self._collection(collection).find(query, _NO_OBJECT_ID))

    def _find_by_ids(self, collection: str, ids: set[int]) -> dict[int, dict[str, Any]]:
        if not ids:
            return {}
        rows = self._find(collection, {"id": {"$in": sorted(ids)}})
        return {row["id"]: row for row in rows}

    def _load_program_controls(self, program_id: int) -> list[ProgramControl]:
        pcs = self._find("programa_controle", {"programa": program_id})
        controls = self._find_by_ids("controle", {pc["controle"] for pc in pcs})
        return [
            program_control_from_row(pc, controls[pc["controle"]])
            for pc in pcs
            if pc["controle"] in controls
        ]

    def _load_program_measures(self, program_id: int) -> list[ProgramMeasure]:
        pms = self._find("programa_medida", {"programa": program_id})
        measures = self._find_by_ids("medida", {pm["medida"] for pm in pms})
        return [
            program_measure_from_row(pm, measures[pm["medida"]])
            for pm in pms
            if pm["medida"] in measures
        ]

    def _load_measures_by_control(self, control_id: int, program_id: int) -> list[DetailedMeasure]:
        measures = sorted(self._find("medida", {"id_controle": control_id}), key=measure_sort_key)
        pms = self._find(
            "programa_medida",
            {"programa": program_id, "medida": {"$in": [m["id"] for m in measures]}},
        )
        by_measure = {pm["medida"]: pm for pm in pms}
        return [detailed_measure_from_rows(m, by_measure.get(m["id"])) for m in measures]

    def _load_measure(self, measure_id: int) -> Optional[Measure]:
        rows = self._find("medida", {"id": measure_id})
        return measure_from_row(rows[0]) if rows else None

    def _update_response_field(
        self, measure_id: int, control_id: int, program_id: int, field: str, value: Any
    ) -> None:
        column = RESPONSE_FIELD_COLUMNS.get(field)
        if column is None:
            raise KeyError(f"Unknown program-measure field: {field}")
        measure = self._load_measure(measure_id)
        if measure is None or measure.control_id != control_id:
            raise KeyError(f"Measure {measure_id} not found under control {control_id}")
        result = self._collection("programa_medida").update_one(
            {"programa": program_id, "medida": measure_id},
            {"$set": {column: to_column_value(field, value)}},
            upsert=True,
        )
        if not result.acknowledged:
            raise RuntimeError(f"Write of {column} for measure {measure_id} was not acknowledged")

    def _update_capability_level(self, control_id: int, program_id: int, level: int) -> None:
        result = self._collection("programa_controle").update_one(
            {"programa": program_id, "controle": control_id},
            {"$set": {"nivel": level}},
        )
        if result.matched_count == 0:
            raise KeyError(f"Control {control_id} is not part of program {program_id}")

    # ── ProgramDataSource ────────────────────────────────

    async def fetch_diagnostics(self) -> list[Diagnostic]:
        rows = await asyncio.to_thread(self._find, "diagnostico", {})
        return [diagnostic_from_row(r) for r in sorted(rows, key=lambda r: r["id"])]

    async def fetch_program_controls(self, program_id: int) -> list[ProgramControl]:
        return await asyncio.to_thread(self._load_program_controls, program_id)

    async def fetch_program_measures(self, program_id: int) -> list[ProgramMeasure]:
        return await asyncio.to_thread(self._load_program_measures, program_id)

    async def fetch_measures_by_control(
        self, control_id: int, program_id: int
    ) -> list[DetailedMeasure]:
        return await asyncio.to_thread(self._load_measures_by_control, control_id, program_id)

    async def fetch_measure(self, measure_id: int) -> Optional[Measure]:
        return await asyncio.to_thread(self._load_measure, measure_id)

    async def write_response_field(
        self,
        measure_id: int,
        control_id: int,
        program_id: int,
        field: str,
        value: Any,
    ) -> None:
        await asyncio.to_thread(
            self._update_response_field, measure_id, control_id, program_id, field, value
        )
        logger.debug(f"Persisted {field} for measure {measure_id} (control {control_id})")

    async def write_capability_level(self, control_id: int, program_id: int, level: int) -> None:
        await asyncio.to_thread(self._update_capability_level, control_id, program_id, level)
        logger.debug(f"Persisted INCC level {level} for control {control_id}")
