"""
Score Calculator — pure functions, no I/O and no caching.

Control:
    base       = Σ weight(response) / applicable measures   (unanswered = 0)
    multiplier = 1 + incc_level / 5
    score      = (base / 2) * multiplier

Diagnostic / program: unweighted mean of the child scores that have data.

Every function returns None for "no data" (zero applicable measures, or no
child with data).  None is never folded into an average as zero.
"""

from __future__ import annotations

from typing import Iterable, Optional

from maturity_engine.models.enums import ResponseKind, WeightTableKind
from maturity_engine.models.schemas import CalculationBreakdown, MaturityResult, Response
from maturity_engine.scoring.weight_tables import (
    capability_multiplier,
    maturity_band,
    response_weight,
)


def to_result(score: float, breakdown: CalculationBreakdown | None = None) -> MaturityResult:
    """Wrap a score with its band label and colour."""
    score = min(1.0, max(0.0, score))
    band = maturity_band(score)
    return MaturityResult(
        score=score,
        label=band.label,
        color=band.color,
        level=band.level,
        breakdown=breakdown,
    )


def score_control(
    responses: Iterable[Response],
    incc_level: int,
    table: WeightTableKind,
) -> Optional[MaturityResult]:
    """Maturity of one control, or None when no measure is applicable."""
    multiplier = capability_multiplier(incc_level)

    weighted_sum = 0.0
    total = 0
    answered = 0
    not_applicable = 0
    for response in responses:
        weight = response_weight(response, table)
        if weight is None:
            not_applicable += 1
            continue
        total += 1
        if response.kind == ResponseKind.ANSWERED:
            answered += 1
        weighted_sum += weight

    if total == 0:
        return None

    base_index = weighted_sum / total
    final_score = (base_index / 2) * multiplier

    return to_result(
        final_score,
        CalculationBreakdown(
            total_measures=total,
            answered=answered,
            not_applicable=not_applicable,
            weighted_sum=weighted_sum,
            incc_level=incc_level,
            multiplier=multiplier,
            base_index=base_index,
            final_score=final_score,
        ),
    )


def mean_score(results: Iterable[Optional[MaturityResult]]) -> Optional[MaturityResult]:
    """Unweighted mean of the results with data; None if there are none."""
    scores = [r.score for r in results if r is not None]
    if not scores:
        return None
    return to_result(sum(scores) / len(scores))


def score_diagnostic(control_results: Iterable[Optional[MaturityResult]]) -> Optional[MaturityResult]:
    """Maturity of a diagnostic from its controls' results."""
    return mean_score(control_results)
