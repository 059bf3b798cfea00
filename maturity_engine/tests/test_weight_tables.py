"""
Tests: response/INCC/band catalogues and the tagged Response value.

Run with:
    pytest maturity_engine/tests/test_weight_tables.py -v
"""

import pytest
from pydantic import ValidationError

from maturity_engine.models.enums import MaturityLevel, ResponseKind, WeightTableKind
from maturity_engine.models.schemas import Response
from maturity_engine.scoring.weight_tables import (
    INCC_LEVELS,
    capability_multiplier,
    choices_for,
    maturity_band,
    response_weight,
    table_kind_for,
    validate_incc_level,
)


class TestResponse:
    def test_from_raw_null_is_unanswered(self):
        assert Response.from_raw(None).kind == ResponseKind.UNANSWERED
        assert Response.from_raw("  ").kind == ResponseKind.UNANSWERED

    def test_from_raw_six_is_not_applicable(self):
        response = Response.from_raw(6)
        assert response.kind == ResponseKind.NOT_APPLICABLE
        assert response.choice_id is None
        assert not response.is_applicable

    def test_from_raw_numeric_string(self):
        response = Response.from_raw("3")
        assert response == Response.answered(3)

    def test_to_raw_inverts_from_raw(self):
        assert Response.not_applicable().to_raw() == 6
        assert Response.unanswered().to_raw() is None
        assert Response.answered(2).to_raw() == 2

    def test_answered_needs_choice(self):
        with pytest.raises(ValidationError):
            Response(kind=ResponseKind.ANSWERED)

    def test_unanswered_carries_no_choice(self):
        with pytest.raises(ValidationError):
            Response(kind=ResponseKind.UNANSWERED, choice_id=1)


class TestResponseWeights:
    @pytest.mark.parametrize(
        "choice_id, weight",
        [(1, 1.0), (2, 0.75), (3, 0.5), (4, 0.25), (5, 0.0)],
    )
    def test_graduated_table(self, choice_id, weight):
        assert response_weight(Response.answered(choice_id), WeightTableKind.GRADUATED) == weight

    def test_binary_table(self):
        assert response_weight(Response.answered(1), WeightTableKind.BINARY) == 1.0
        assert response_weight(Response.answered(2), WeightTableKind.BINARY) == 0.0

    def test_not_applicable_is_excluded(self):
        for kind in WeightTableKind:
            assert response_weight(Response.not_applicable(), kind) is None

    def test_unanswered_weighs_zero(self):
        assert response_weight(Response.unanswered(), WeightTableKind.GRADUATED) == 0.0

    def test_unknown_choice_weighs_zero(self):
        assert response_weight(Response.answered(9), WeightTableKind.GRADUATED) == 0.0
        assert response_weight(Response.answered(3), WeightTableKind.BINARY) == 0.0

    def test_table_selection(self):
        assert table_kind_for(1, basic_structuring_id=1) == WeightTableKind.BINARY
        assert table_kind_for(2, basic_structuring_id=1) == WeightTableKind.GRADUATED
        assert [c.label for c in choices_for(WeightTableKind.BINARY)] == ["Sim", "Não"]
        assert choices_for(WeightTableKind.GRADUATED)[-1].label == "Não se aplica"


class TestInccLevels:
    def test_multiplier_range(self):
        assert capability_multiplier(0) == 1.0
        assert capability_multiplier(5) == 2.0
        assert capability_multiplier(2) == pytest.approx(1.4)

    @pytest.mark.parametrize("level", [-1, 6, 2.5, True, "3"])
    def test_invalid_levels(self, level):
        with pytest.raises(ValueError):
            validate_incc_level(level)

    def test_catalogue_covers_every_level(self):
        assert [lvl.level for lvl in INCC_LEVELS] == [0, 1, 2, 3, 4, 5]
        assert [lvl.index for lvl in INCC_LEVELS] == [0, 20, 40, 60, 80, 100]


class TestMaturityBands:
    @pytest.mark.parametrize(
        "score, level, label",
        [
            (0.0, MaturityLevel.INICIAL, "Inicial"),
            (0.299, MaturityLevel.INICIAL, "Inicial"),
            (0.3, MaturityLevel.BASICO, "Básico"),
            (0.5, MaturityLevel.INTERMEDIARIO, "Intermediário"),
            (0.7, MaturityLevel.APRIMORAMENTO, "Em Aprimoramento"),
            (0.9, MaturityLevel.APRIMORADO, "Aprimorado"),
            (1.0, MaturityLevel.APRIMORADO, "Aprimorado"),
        ],
    )
    def test_band_boundaries(self, score, level, label):
        band = maturity_band(score)
        assert band.level == level
        assert band.label == label

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            maturity_band(1.01)
