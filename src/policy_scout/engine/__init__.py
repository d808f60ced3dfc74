"""Risk aggregation engine."""

from policy_scout.engine.risk_engine import (
    RiskEngine,
    assess_compliance,
    generate_recommendations,
    identify_critical_issues,
)

__all__ = [
    "RiskEngine",
    "assess_compliance",
    "generate_recommendations",
    "identify_critical_issues",
]
