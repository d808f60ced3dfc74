"""Deterministic substitutes for pipeline stages that failed.

Each fallback is a well-formed, low-confidence result so downstream stages
never see a missing input.
"""

from __future__ import annotations

from collections.abc import Mapping

from policy_scout.models import (
    AggregatedRiskProfile,
    ClassificationResult,
    ComplianceStatus,
    EnrichmentFinding,
    EnrichmentResult,
    EnrichmentSummary,
    PolicyType,
    Priority,
    Recommendation,
    RiskCategory,
    RiskFactor,
    RiskLevel,
    Severity,
    TypeCandidate,
)

FALLBACK_CLASSIFICATION_CONFIDENCE = 0.3
FALLBACK_RISK_SCORE = 50
FALLBACK_AI_CONFIDENCE = 25


def declared_policy_type(manual_fields: Mapping[str, str]) -> PolicyType | None:
    """The policy type the user stated, if any."""
    return PolicyType.parse(manual_fields.get("policyType")) or PolicyType.parse(manual_fields.get("coverageType"))


def fallback_classification(
    manual_fields: Mapping[str, str],
    error: str,
    *,
    threshold: float = 0.6,
) -> ClassificationResult:
    primary = declared_policy_type(manual_fields) or PolicyType.AUTO
    return ClassificationResult(
        primary_type=primary,
        confidence=FALLBACK_CLASSIFICATION_CONFIDENCE,
        candidates=[
            TypeCandidate(
                policy_type=primary,
                label=primary.value.title(),
                confidence=FALLBACK_CLASSIFICATION_CONFIDENCE,
            )
        ],
        method="error-fallback",
        threshold=threshold,
        success=False,
        error=error,
    )


def fallback_risk_profile(policy_type: PolicyType, error: str) -> AggregatedRiskProfile:
    incomplete = RiskFactor(
        id="analysis-incomplete",
        category=RiskCategory.POLICY_TERMS,
        severity=Severity.MEDIUM,
        title="Analysis Incomplete",
        description="Risk analysis could not be completed with available data",
        recommendation="Provide additional policy details for comprehensive analysis",
        source="fallback",
    )
    review = Recommendation(
        id="rec-complete-policy-review",
        title="Complete Policy Review",
        description="Schedule a comprehensive policy review with your insurance agent",
        priority=Priority.MEDIUM,
        impact="Better understanding of coverage",
        source="fallback",
    )
    return AggregatedRiskProfile(
        success=False,
        policy_type=policy_type,
        overall_score=FALLBACK_RISK_SCORE,
        risk_level=RiskLevel.MEDIUM,
        risk_factors=[incomplete],
        compliance_status=ComplianceStatus.REVIEW_NEEDED,
        recommendations=[review],
        summary="Risk analysis is incomplete. A manual policy review is recommended.",
        is_fallback=True,
        error=error,
    )


def fallback_enrichment(risk_profile: AggregatedRiskProfile, error: str) -> EnrichmentResult:
    return EnrichmentResult(
        success=False,
        is_ai=False,
        method="fallback",
        summary=EnrichmentSummary(
            overall_rating="B",
            coverage_score=75,
            risk_level=risk_profile.risk_level.value,
        ),
        key_findings=[
            EnrichmentFinding(
                title="AI Analysis Unavailable",
                description="AI analysis could not be completed but basic assessment is available",
                severity=Severity.MEDIUM,
                finding_type="general",
                recommendation="Consider manual review with insurance professional",
            )
        ],
        recommendations=[
            Recommendation(
                id="rec-professional-review",
                title="Professional Review",
                description="Consult with an insurance professional for detailed analysis",
                priority=Priority.MEDIUM,
                impact="Comprehensive coverage assessment",
                source="fallback",
            )
        ],
        next_steps=[
            "Review available analysis results",
            "Contact insurance agent for detailed review",
            "Consider policy comparison shopping",
        ],
        ai_confidence=FALLBACK_AI_CONFIDENCE,
        error=error,
    )
