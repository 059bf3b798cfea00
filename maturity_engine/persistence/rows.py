"""
Row mapping — collaborator table rows to schema models.

Tables (and their columns) belong to the collaborator:
  diagnostico(id, descricao)
  controle(id, numero, nome, texto, diagnostico)
  medida(id, id_medida, texto, id_controle)
  programa_controle(id, programa, controle, nivel)
  programa_medida(id, programa, medida, resposta, <narrative columns>)
"""

from __future__ import annotations

from typing import Any

from maturity_engine.models.schemas import (
    Control,
    DetailedMeasure,
    Diagnostic,
    Measure,
    ProgramControl,
    ProgramMeasure,
)
from maturity_engine.persistence.data_source import RESPONSE_FIELD_COLUMNS


def diagnostic_from_row(row: dict[str, Any]) -> Diagnostic:
    return Diagnostic(id=row["id"], description=row.get("descricao") or "")


def control_from_row(row: dict[str, Any]) -> Control:
    return Control(
        id=row["id"],
        number=row.get("numero") or 0,
        name=row.get("nome") or "",
        text=row.get("texto") or "",
        diagnostic_id=row["diagnostico"],
    )


def measure_from_row(row: dict[str, Any]) -> Measure:
    return Measure(
        id=row["id"],
        code=str(row.get("id_medida") or ""),
        text=row.get("texto") or "",
        control_id=row["id_controle"],
    )


def _response_fields(pm_row: dict[str, Any] | None) -> dict[str, Any]:
    if not pm_row:
        return {}
    return {field: pm_row.get(column) for field, column in RESPONSE_FIELD_COLUMNS.items()}


def program_control_from_row(pc_row: dict[str, Any], control_row: dict[str, Any]) -> ProgramControl:
    return ProgramControl(
        id=pc_row.get("id"),
        program_id=pc_row["programa"],
        control_id=pc_row["controle"],
        incc_level=pc_row.get("nivel") or 0,
        control=control_from_row(control_row),
    )


def program_measure_from_row(pm_row: dict[str, Any], measure_row: dict[str, Any]) -> ProgramMeasure:
    return ProgramMeasure(
        id=pm_row.get("id"),
        program_id=pm_row["programa"],
        measure_id=pm_row["medida"],
        measure=measure_from_row(measure_row),
        **_response_fields(pm_row),
    )


def detailed_measure_from_rows(
    measure_row: dict[str, Any], pm_row: dict[str, Any] | None
) -> DetailedMeasure:
    measure = measure_from_row(measure_row)
    return DetailedMeasure(
        id=measure.id,
        code=measure.code,
        text=measure.text,
        control_id=measure.control_id,
        program_measure_id=pm_row.get("id") if pm_row else None,
        **_response_fields(pm_row),
    )


def measure_sort_key(row: dict[str, Any]) -> tuple:
    """Order measures by their external code ("1.2" before "1.10")."""
    code = str(row.get("id_medida") or "")
    parts = []
    for chunk in code.split("."):
        parts.append((0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk))
    return tuple(parts)
