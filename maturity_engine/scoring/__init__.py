"""Scoring — weight tables and the pure score calculator."""

from maturity_engine.scoring.calculator import mean_score, score_control, score_diagnostic, to_result

__all__ = ["mean_score", "score_control", "score_diagnostic", "to_result"]
