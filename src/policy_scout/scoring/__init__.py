"""Pure scoring utilities."""

from policy_scout.scoring.confidence import calculate_confidence, confidence_level_for
from policy_scout.scoring.risk_score import (
    CATEGORY_MULTIPLIERS,
    SEVERITY_WEIGHTS,
    aggregate_by_category,
    calculate_financial_impact,
    calculate_risk_score,
    calculate_risk_trend,
    factor_weight,
    priority_matrix,
    risk_level_for,
)

__all__ = [
    "CATEGORY_MULTIPLIERS",
    "SEVERITY_WEIGHTS",
    "aggregate_by_category",
    "calculate_confidence",
    "calculate_financial_impact",
    "calculate_risk_score",
    "calculate_risk_trend",
    "confidence_level_for",
    "factor_weight",
    "priority_matrix",
    "risk_level_for",
]
