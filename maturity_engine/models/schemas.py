"""
Data schemas for the scoring subsystem.

Reference rows (Diagnostic, Control, Measure) come from the persistence
collaborator and are never mutated here.  Join rows (ProgramControl,
ProgramMeasure) carry the per-program state the scores are computed from.
Everything below EssentialBundle is derived and never persisted.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from .enums import MaturityLevel, NodeType, ResponseKind

# Raw response id the collaborator stores for "Não se aplica".
RAW_NOT_APPLICABLE = 6

MIN_INCC_LEVEL = 0
MAX_INCC_LEVEL = 5


# ── Responses ────────────────────────────────────────────


class Response(BaseModel):
    """Tagged response value: Answered(choice_id) | Unanswered | NotApplicable."""

    model_config = {"frozen": True}

    kind: ResponseKind = ResponseKind.UNANSWERED
    choice_id: Optional[int] = None

    @model_validator(mode="after")
    def check_choice(self) -> "Response":
        if self.kind == ResponseKind.ANSWERED and self.choice_id is None:
            raise ValueError("an answered response needs a choice_id")
        if self.kind != ResponseKind.ANSWERED and self.choice_id is not None:
            raise ValueError(f"a {self.kind.value} response carries no choice_id")
        return self

    @classmethod
    def answered(cls, choice_id: int) -> "Response":
        return cls(kind=ResponseKind.ANSWERED, choice_id=choice_id)

    @classmethod
    def unanswered(cls) -> "Response":
        return cls(kind=ResponseKind.UNANSWERED)

    @classmethod
    def not_applicable(cls) -> "Response":
        return cls(kind=ResponseKind.NOT_APPLICABLE)

    @classmethod
    def from_raw(cls, raw: Any) -> "Response":
        """
        Convert a persisted response id (int, numeric string or null)
        into a tagged value.  Id 6 is "Não se aplica" for every diagnostic.
        """
        if isinstance(raw, Response):
            return raw
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return cls.unanswered()
        choice_id = int(raw)
        if choice_id == RAW_NOT_APPLICABLE:
            return cls.not_applicable()
        return cls.answered(choice_id)

    @property
    def is_applicable(self) -> bool:
        return self.kind != ResponseKind.NOT_APPLICABLE

    def to_raw(self) -> Optional[int]:
        """Inverse of from_raw, used when writing back to the collaborator."""
        if self.kind == ResponseKind.NOT_APPLICABLE:
            return RAW_NOT_APPLICABLE
        return self.choice_id


# ── Reference data ───────────────────────────────────────


class Diagnostic(BaseModel):
    """Top-level questionnaire category."""
    id: int
    description: str


class Control(BaseModel):
    """A named requirement within a diagnostic."""
    id: int
    number: int
    name: str
    text: str = ""
    diagnostic_id: int


class Measure(BaseModel):
    """An individual checklist item under a control."""
    id: int
    code: str = ""
    text: str = ""
    control_id: int


# ── Program joins (collaborator boundary shapes) ─────────


class ProgramControl(BaseModel):
    """Control joined to a program; carries the INCC capability level."""
    id: Optional[int] = None
    program_id: int
    control_id: int
    incc_level: int = Field(default=0, ge=MIN_INCC_LEVEL, le=MAX_INCC_LEVEL)
    control: Control


class ResponseFields(BaseModel):
    """Narrative fields recorded alongside a measure's response."""
    justification: Optional[str] = None
    agency_observation: Optional[str] = None
    responsible_id: Optional[int] = None
    planned_start: Optional[date] = None
    planned_end: Optional[date] = None
    new_response: Optional[str] = None
    internal_referral: Optional[str] = None
    measure_status: Optional[int] = None
    action_plan_status: Optional[int] = None


class RespondedFields(ResponseFields):
    """Narrative fields plus the tagged response; accepts raw response ids."""
    response: Response = Field(default_factory=Response.unanswered)

    @field_validator("response", mode="before")
    @classmethod
    def coerce_response(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value
        return Response.from_raw(value)


# Fields update_response() is allowed to touch.
RESPONSE_FIELDS: tuple[str, ...] = ("response",) + tuple(ResponseFields.model_fields)


class ProgramMeasure(RespondedFields):
    """Measure joined to a program; carries the user's response."""
    id: Optional[int] = None
    program_id: int
    measure_id: int
    measure: Measure


class DetailedMeasure(RespondedFields):
    """Full measure with narrative text and its current program response."""
    id: int
    code: str = ""
    text: str = ""
    control_id: int
    program_measure_id: Optional[int] = None


# ── Essential bundle ─────────────────────────────────────


def response_key(measure_id: int, control_id: int, program_id: int) -> str:
    """Composite key used to index responses during scoring."""
    return f"{measure_id}-{control_id}-{program_id}"


class ControlEntry(BaseModel):
    """A control as seen by navigation: reference data plus its INCC level."""
    id: int
    number: int
    name: str
    text: str = ""
    diagnostic_id: int
    incc_level: int = Field(default=0, ge=MIN_INCC_LEVEL, le=MAX_INCC_LEVEL)
    program_control_id: Optional[int] = None


class ResponseEntry(RespondedFields):
    """One program-measure row held in memory for O(1) score lookups."""
    measure_id: int
    control_id: int
    program_id: int
    program_measure_id: Optional[int] = None

    @property
    def key(self) -> str:
        return response_key(self.measure_id, self.control_id, self.program_id)

    def with_field(self, field: str, value: Any) -> "ResponseEntry":
        """Return a validated copy with one field replaced."""
        data = self.model_dump()
        data[field] = value
        return ResponseEntry.model_validate(data)


class EssentialBundle(BaseModel):
    """Minimal per-program dataset for navigation and aggregate scores."""
    program_id: int
    generation: int = 0
    diagnostics: list[Diagnostic] = []
    controls_by_diagnostic: dict[int, list[ControlEntry]] = {}
    responses_by_key: dict[str, ResponseEntry] = {}
    measure_ids_by_control: dict[int, list[int]] = {}
    loaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def find_control(self, control_id: int) -> Optional[ControlEntry]:
        for controls in self.controls_by_diagnostic.values():
            for control in controls:
                if control.id == control_id:
                    return control
        return None

    def control_for_measure(self, measure_id: int) -> Optional[int]:
        """Owning control of a measure that has a program row, else None."""
        for control_id, measure_ids in self.measure_ids_by_control.items():
            if measure_id in measure_ids:
                return control_id
        return None

    def responses_for(self, control_id: int) -> list[Response]:
        """Responses of every measure under a control; missing rows are unanswered."""
        responses = []
        for measure_id in self.measure_ids_by_control.get(control_id, []):
            entry = self.responses_by_key.get(
                response_key(measure_id, control_id, self.program_id)
            )
            responses.append(entry.response if entry else Response.unanswered())
        return responses


class LoadOutcome(BaseModel):
    """Result of an essential load as seen by the presentation layer."""
    ok: bool
    program_id: int
    bundle: Optional[EssentialBundle] = None
    error: str = ""


# ── Derived results ──────────────────────────────────────


class CalculationBreakdown(BaseModel):
    """Intermediate values of a control score, for explanatory display."""

    model_config = {"frozen": True}

    total_measures: int
    answered: int
    not_applicable: int
    weighted_sum: float
    incc_level: int
    multiplier: float
    base_index: float
    final_score: float
    formula: str = "iMC = (ΣPMC / (QMC - QMNAC)) / 2 × (1 + iNCC/5)"


class MaturityResult(BaseModel):
    """A score in [0, 1] with its maturity band."""

    model_config = {"frozen": True}

    score: float = Field(ge=0.0, le=1.0)
    label: str
    color: str
    level: MaturityLevel
    breakdown: Optional[CalculationBreakdown] = None


class TreeNode(BaseModel):
    """Display tree node: dashboard → diagnostics → controls."""
    id: str
    type: NodeType
    label: str
    description: str = ""
    data: dict[str, Any] = {}
    children: list["TreeNode"] = []
    has_data: bool = False
    score: float = 0.0
    maturity_label: str = ""
    color: str = ""
