"""
Program Data Source — the persistence collaborator's boundary.

Every bulk fetch returns a list, never "a list or a single object": joins are
resolved here so the scoring code never branches on cardinality.  Raw
response ids are converted to tagged Response values at this boundary.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from maturity_engine.models.schemas import (
    DetailedMeasure,
    Diagnostic,
    Measure,
    ProgramControl,
    ProgramMeasure,
)

# Model field → column name in the collaborator's program-measure table.
RESPONSE_FIELD_COLUMNS: dict[str, str] = {
    "response": "resposta",
    "justification": "justificativa",
    "agency_observation": "observacao_orgao",
    "responsible_id": "responsavel",
    "planned_start": "previsao_inicio",
    "planned_end": "previsao_fim",
    "new_response": "nova_resposta",
    "internal_referral": "encaminhamento_interno",
    "measure_status": "status_medida",
    "action_plan_status": "status_plano_acao",
}


class ProgramDataSource(ABC):
    """Async read/write operations the scoring subsystem consumes."""

    @abstractmethod
    async def fetch_diagnostics(self) -> list[Diagnostic]:
        ...

    @abstractmethod
    async def fetch_program_controls(self, program_id: int) -> list[ProgramControl]:
        """All program-controls of a program, joined to control reference data."""

    @abstractmethod
    async def fetch_program_measures(self, program_id: int) -> list[ProgramMeasure]:
        """All program-measures of a program, joined to measure reference data."""

    @abstractmethod
    async def fetch_measures_by_control(
        self, control_id: int, program_id: int
    ) -> list[DetailedMeasure]:
        """A control's measures, ordered by code, with the program's responses joined in."""

    @abstractmethod
    async def fetch_measure(self, measure_id: int) -> Optional[Measure]:
        """One measure's reference row, or None when it does not exist."""

    @abstractmethod
    async def write_response_field(
        self,
        measure_id: int,
        control_id: int,
        program_id: int,
        field: str,
        value: Any,
    ) -> None:
        """Persist one program-measure field.  Raises on failure."""

    @abstractmethod
    async def write_capability_level(self, control_id: int, program_id: int, level: int) -> None:
        """Persist a program-control's INCC level.  Raises on failure."""


def to_column_value(field: str, value: Any) -> Any:
    """Serialize a model value for the collaborator's column."""
    if field == "response" and hasattr(value, "to_raw"):
        return value.to_raw()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value
