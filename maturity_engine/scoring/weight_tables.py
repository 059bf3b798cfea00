"""
Weight Tables — static catalogues the scoring formula reads.

  * response choice → weight (binary Sim/Não table, or the graduated table)
  * INCC capability level → multiplier ``1 + level/5``
  * score → maturity band (label, level key, colour)

Also holds the display catalogues for measure and action-plan status.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from maturity_engine.models.enums import MaturityLevel, ResponseKind, WeightTableKind
from maturity_engine.models.schemas import (
    MAX_INCC_LEVEL,
    MIN_INCC_LEVEL,
    RAW_NOT_APPLICABLE,
    Response,
)


class ResponseChoice(BaseModel):
    id: int
    weight: Optional[float]  # None = "Não se aplica", excluded from aggregation
    label: str


class InccLevel(BaseModel):
    level: int
    index: int  # 0-100, as printed in the framework
    label: str


class MaturityBand(BaseModel):
    """Half-open score band ``[lower, upper)``; the last band is closed."""
    lower: float
    upper: float
    level: MaturityLevel
    label: str
    color: str

    def contains(self, score: float, last: bool = False) -> bool:
        if last:
            return self.lower <= score <= self.upper
        return self.lower <= score < self.upper


class StatusOption(BaseModel):
    id: int
    label: str
    color: str = ""


# ── Response choices ─────────────────────────────────────

GRADUATED_CHOICES: tuple[ResponseChoice, ...] = (
    ResponseChoice(id=1, weight=1.0, label="Adota em maior parte ou totalmente"),
    ResponseChoice(id=2, weight=0.75, label="Adota em menor parte"),
    ResponseChoice(id=3, weight=0.5, label="Adota parcialmente"),
    ResponseChoice(id=4, weight=0.25, label="Há decisão formal ou plano aprovado para implementar"),
    ResponseChoice(id=5, weight=0.0, label="A organização não adota essa medida"),
    ResponseChoice(id=RAW_NOT_APPLICABLE, weight=None, label="Não se aplica"),
)

BINARY_CHOICES: tuple[ResponseChoice, ...] = (
    ResponseChoice(id=1, weight=1.0, label="Sim"),
    ResponseChoice(id=2, weight=0.0, label="Não"),
)

WEIGHT_TABLES: dict[WeightTableKind, dict[int, Optional[float]]] = {
    WeightTableKind.GRADUATED: {c.id: c.weight for c in GRADUATED_CHOICES},
    WeightTableKind.BINARY: {c.id: c.weight for c in BINARY_CHOICES},
}


def table_kind_for(diagnostic_id: int, basic_structuring_id: int) -> WeightTableKind:
    """The basic-structuring diagnostic is answered Sim/Não; every other one is graduated."""
    if diagnostic_id == basic_structuring_id:
        return WeightTableKind.BINARY
    return WeightTableKind.GRADUATED


def choices_for(kind: WeightTableKind) -> tuple[ResponseChoice, ...]:
    return BINARY_CHOICES if kind == WeightTableKind.BINARY else GRADUATED_CHOICES


def response_weight(response: Response, kind: WeightTableKind) -> Optional[float]:
    """
    Weight of one response, or None when it must be excluded.

    Unanswered weighs 0 (it still counts in the denominator).  An answered
    id unknown to the table also weighs 0.
    """
    if response.kind == ResponseKind.NOT_APPLICABLE:
        return None
    if response.kind == ResponseKind.UNANSWERED:
        return 0.0
    table = WEIGHT_TABLES[kind]
    if response.choice_id in table and table[response.choice_id] is None:
        return None
    return table.get(response.choice_id) or 0.0


# ── INCC capability levels ───────────────────────────────

INCC_LEVELS: tuple[InccLevel, ...] = (
    InccLevel(level=0, index=0, label=(
        "Ausência de capacidade para a implementação das medidas do controle, "
        "ou desconhecimento sobre o atendimento das medidas."
    )),
    InccLevel(level=1, index=20, label=(
        "O controle atinge mais ou menos seu objetivo, por meio da aplicação de um "
        "conjunto incompleto de atividades que podem ser caracterizadas como "
        "iniciais ou intuitivas (pouco organizadas)."
    )),
    InccLevel(level=2, index=40, label=(
        "O controle atinge seu objetivo por meio da aplicação de um conjunto básico, "
        "porém completo, de atividades que podem ser caracterizadas como realizadas."
    )),
    InccLevel(level=3, index=60, label=(
        "O controle atinge seu objetivo de forma muito mais organizada utilizando os "
        "recursos organizacionais. Além disso, o controle é formalizado por meio de "
        "uma política institucional, específica ou como parte de outra maior."
    )),
    InccLevel(level=4, index=80, label=(
        "O controle atinge seu objetivo, é bem definido e suas medidas são "
        "implementadas continuamente por meio de um processo decorrente da "
        "política formalizada."
    )),
    InccLevel(level=5, index=100, label=(
        "O controle atinge seu objetivo, é bem definido, suas medidas são "
        "implementadas continuamente por meio de um processo e seu desempenho é "
        "mensurado quantitativamente por meio de indicadores."
    )),
)


def validate_incc_level(level: int) -> int:
    if isinstance(level, bool) or not isinstance(level, int):
        raise ValueError(f"INCC level must be an integer, got {level!r}")
    if not MIN_INCC_LEVEL <= level <= MAX_INCC_LEVEL:
        raise ValueError(
            f"INCC level must be between {MIN_INCC_LEVEL} and {MAX_INCC_LEVEL}, got {level}"
        )
    return level


def capability_multiplier(level: int) -> float:
    """1.0 at level 0 up to 2.0 at level 5."""
    return 1 + validate_incc_level(level) / 5


# ── Maturity bands ───────────────────────────────────────

MATURITY_BANDS: tuple[MaturityBand, ...] = (
    MaturityBand(lower=0.0, upper=0.3, level=MaturityLevel.INICIAL,
                 label="Inicial", color="#FF5252"),
    MaturityBand(lower=0.3, upper=0.5, level=MaturityLevel.BASICO,
                 label="Básico", color="#FF9800"),
    MaturityBand(lower=0.5, upper=0.7, level=MaturityLevel.INTERMEDIARIO,
                 label="Intermediário", color="#FFC107"),
    MaturityBand(lower=0.7, upper=0.9, level=MaturityLevel.APRIMORAMENTO,
                 label="Em Aprimoramento", color="#4CAF50"),
    MaturityBand(lower=0.9, upper=1.0, level=MaturityLevel.APRIMORADO,
                 label="Aprimorado", color="#2E7D32"),
)

NO_DATA_LABEL = "Sem dados"
NO_DATA_COLOR = "#9E9E9E"


def maturity_band(score: float) -> MaturityBand:
    """Map a score in [0, 1] to its band."""
    last = len(MATURITY_BANDS) - 1
    for i, band in enumerate(MATURITY_BANDS):
        if band.contains(score, last=(i == last)):
            return band
    raise ValueError(f"Score {score} is outside [0, 1]")


# ── Status catalogues (display only) ─────────────────────

MEASURE_STATUSES: tuple[StatusOption, ...] = (
    StatusOption(id=1, label="Finalizado"),
    StatusOption(id=2, label="Não Finalizado"),
)

ACTION_PLAN_STATUSES: tuple[StatusOption, ...] = (
    StatusOption(id=1, label="Datas inválidas", color="#8ecae6"),
    StatusOption(id=2, label="Concluído", color="#95d5b2"),
    StatusOption(id=3, label="Não iniciado", color="#e9ecef"),
    StatusOption(id=4, label="Em andamento", color="#ffdd94"),
    StatusOption(id=5, label="Atrasado", color="#ffadad"),
)
