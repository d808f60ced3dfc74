"""policy-scout: staged risk analysis for insurance policies."""

from policy_scout.models import (
    AggregatedRiskProfile,
    ClassificationResult,
    ComprehensiveResult,
    PipelineResponse,
    PolicyType,
    RiskCategory,
    RiskFactor,
    Severity,
)

__all__ = [
    "AggregatedRiskProfile",
    "ClassificationResult",
    "ComprehensiveResult",
    "PipelineResponse",
    "PolicyType",
    "RiskCategory",
    "RiskFactor",
    "Severity",
]
