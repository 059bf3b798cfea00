"""
Tests: control, diagnostic and program score arithmetic.

Run with:
    pytest maturity_engine/tests/test_calculator.py -v
"""

import pytest

from maturity_engine.models.enums import WeightTableKind
from maturity_engine.models.schemas import Response
from maturity_engine.scoring.calculator import mean_score, score_control, score_diagnostic, to_result

A = Response.answered
NA = Response.not_applicable
U = Response.unanswered


class TestScoreControl:
    def test_sim_and_nao_at_level_two(self):
        # Sim + Não at INCC 2: base 0.5 → 0.25 × 1.4
        result = score_control([A(1), A(2)], 2, WeightTableKind.BINARY)
        assert result.score == pytest.approx(0.35)
        assert result.label == "Básico"
        assert result.color == "#FF9800"

    def test_top_score(self):
        result = score_control([A(1), A(1), A(1)], 5, WeightTableKind.GRADUATED)
        assert result.score == pytest.approx(1.0)
        assert result.label == "Aprimorado"

    def test_unanswered_counts_in_denominator(self):
        result = score_control([A(1), U()], 0, WeightTableKind.GRADUATED)
        assert result.breakdown.base_index == pytest.approx(0.5)
        assert result.score == pytest.approx(0.25)

    def test_not_applicable_leaves_denominator(self):
        result = score_control([A(1), NA()], 0, WeightTableKind.GRADUATED)
        assert result.score == pytest.approx(0.5)
        assert result.breakdown.total_measures == 1
        assert result.breakdown.not_applicable == 1

    def test_all_not_applicable_has_no_data(self):
        assert score_control([NA(), NA()], 3, WeightTableKind.GRADUATED) is None

    def test_no_measures_has_no_data(self):
        assert score_control([], 3, WeightTableKind.GRADUATED) is None

    def test_breakdown(self):
        result = score_control([A(2), A(3), U(), NA()], 3, WeightTableKind.GRADUATED)
        b = result.breakdown
        assert b.total_measures == 3
        assert b.answered == 2
        assert b.not_applicable == 1
        assert b.weighted_sum == pytest.approx(1.25)
        assert b.multiplier == pytest.approx(1.6)
        assert b.base_index == pytest.approx(1.25 / 3)
        assert b.final_score == pytest.approx(result.score)
        assert b.incc_level == 3

    @pytest.mark.parametrize("level", range(6))
    @pytest.mark.parametrize("choice", [1, 2, 3, 4, 5])
    def test_score_within_bounds(self, level, choice):
        result = score_control([A(choice), A(1)], level, WeightTableKind.GRADUATED)
        assert 0.0 <= result.score <= 1.0

    def test_invalid_level_raises(self):
        with pytest.raises(ValueError):
            score_control([A(1)], 6, WeightTableKind.GRADUATED)


class TestAggregation:
    def test_mean_excludes_no_data(self):
        result = mean_score([to_result(0.2), None, to_result(0.4)])
        assert result.score == pytest.approx(0.3)
        assert result.breakdown is None

    def test_mean_of_nothing_is_none(self):
        assert mean_score([None, None]) is None
        assert mean_score([]) is None

    def test_diagnostic_is_plain_mean(self):
        controls = [
            score_control([A(1), A(2)], 2, WeightTableKind.BINARY),
            score_control([NA()], 2, WeightTableKind.BINARY),
            to_result(0.75),
        ]
        result = score_diagnostic(controls)
        assert result.score == pytest.approx((0.35 + 0.75) / 2)
        assert result.label == "Intermediário"

    def test_to_result_clamps(self):
        assert to_result(-0.1).score == 0.0
        assert to_result(1.5).score == 1.0
