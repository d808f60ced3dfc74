"""Result compilation: headline scores, insights and the action plan."""

from __future__ import annotations

from policy_scout.models import (
    ActionItem,
    AggregatedRiskProfile,
    ClassificationResult,
    ComprehensiveResult,
    DocumentQuality,
    DocumentResult,
    EnrichmentResult,
    KeyInsight,
    Priority,
    Recommendation,
    RiskLevel,
    Severity,
    UserProfile,
)
from policy_scout.parsing import clamp, round_half_up
from policy_scout.scoring import calculate_confidence

BASE_SCORE = 75

RISK_LEVEL_ADJUSTMENTS: dict[RiskLevel, int] = {
    RiskLevel.MINIMAL: 10,
    RiskLevel.LOW: 5,
    RiskLevel.MEDIUM: 0,
    RiskLevel.HIGH: -10,
    RiskLevel.CRITICAL: -20,
}

RATING_BANDS: tuple[tuple[int, str], ...] = (
    (90, "A+"),
    (85, "A"),
    (80, "B+"),
    (75, "B"),
    (70, "C+"),
    (65, "C"),
    (60, "D+"),
    (55, "D"),
)

MAX_PLAN_RECOMMENDATIONS = 3


def overall_score(risk: AggregatedRiskProfile, enrichment: EnrichmentResult) -> int:
    score = float(BASE_SCORE)
    if risk.success:
        score += RISK_LEVEL_ADJUSTMENTS[risk.risk_level]
    if enrichment.success and enrichment.ai_confidence:
        score += (enrichment.ai_confidence - 50) / 10
    return int(clamp(round_half_up(score)))


def rating_for(score: int) -> str:
    for floor, rating in RATING_BANDS:
        if score >= floor:
            return rating
    return "F"


def completeness(
    document: DocumentResult,
    classification: ClassificationResult,
    risk: AggregatedRiskProfile,
    enrichment: EnrichmentResult,
) -> int:
    """25 points per stage that produced a real result."""
    stages = (
        document.success,
        classification.success and classification.is_confident,
        risk.success,
        enrichment.success,
    )
    return 25 * sum(stages)


def reliability(
    document: DocumentResult,
    classification: ClassificationResult,
    risk: AggregatedRiskProfile,
) -> int:
    value = 100
    if not document.success:
        value -= 30
    if not classification.is_confident:
        value -= 20
    if not risk.success:
        value -= 25
    return max(0, value)


def document_quality(document: DocumentResult) -> DocumentQuality:
    if not document.provided:
        return DocumentQuality.NONE
    return DocumentQuality.GOOD if document.success else DocumentQuality.POOR


def components_used(
    document: DocumentResult,
    classification: ClassificationResult,
    risk: AggregatedRiskProfile,
    enrichment: EnrichmentResult,
) -> list[str]:
    """Pipeline components that contributed a real (non-fallback) result."""
    outcomes = {
        "document": document.success,
        "classification": classification.success,
        "risk": risk.success,
        "enrichment": enrichment.success,
    }
    return [name for name, ok in outcomes.items() if ok]


def key_insights(risk: AggregatedRiskProfile, enrichment: EnrichmentResult) -> list[KeyInsight]:
    insights: list[KeyInsight] = []
    if risk.critical_issues:
        insights.append(
            KeyInsight(
                insight_type="critical",
                title="Critical Issues Identified",
                description=f"{len(risk.critical_issues)} critical issues require immediate attention",
                priority=Priority.HIGH,
            )
        )
    if risk.opportunities:
        insights.append(
            KeyInsight(
                insight_type="opportunity",
                title="Optimization Opportunities",
                description=(
                    f"{len(risk.opportunities)} opportunities identified for cost savings "
                    "or improved coverage"
                ),
                priority=Priority.MEDIUM,
            )
        )
    flagged = [f for f in enrichment.key_findings if f.severity == Severity.CRITICAL]
    if flagged:
        insights.append(
            KeyInsight(
                insight_type="ai-insight",
                title="AI-Identified Concerns",
                description=f"AI analysis identified {len(flagged)} critical concerns",
                priority=Priority.HIGH,
            )
        )
    return insights


def prioritize_recommendations(
    risk: AggregatedRiskProfile,
    enrichment: EnrichmentResult,
) -> list[Recommendation]:
    """Risk and enrichment recommendations, deduplicated by id, most pressing first.

    The sort is stable, so risk-analysis recommendations stay ahead of
    enrichment ones at equal priority.
    """
    merged: dict[str, Recommendation] = {}
    for rec in [*risk.recommendations, *enrichment.recommendations]:
        merged.setdefault(rec.id, rec)
    return sorted(merged.values(), key=lambda r: r.priority.rank)


def action_plan(risk: AggregatedRiskProfile, recommendations: list[Recommendation]) -> list[ActionItem]:
    actions = [
        ActionItem(
            id=f"action-{issue.id}",
            title=f"Address {issue.title}",
            description=issue.description,
            priority=Priority.HIGH,
            timeframe="immediate",
            category="risk-mitigation",
        )
        for issue in risk.critical_issues
    ]
    pressing = [r for r in recommendations if r.priority in (Priority.CRITICAL, Priority.HIGH)]
    actions.extend(
        ActionItem(
            id=f"action-{rec.id}",
            title=rec.title,
            description=rec.description,
            priority=Priority.MEDIUM,
            timeframe="short-term",
            category="improvement",
        )
        for rec in pressing[:MAX_PLAN_RECOMMENDATIONS]
    )
    return actions


def compile_result(
    *,
    analysis_id: str,
    document: DocumentResult,
    classification: ClassificationResult,
    risk: AggregatedRiskProfile,
    enrichment: EnrichmentResult,
    profile: UserProfile,
    structured_field_count: int,
) -> ComprehensiveResult:
    """Assemble the final result from the (possibly fallback) stage outputs."""
    score = overall_score(risk, enrichment)
    recommendations = prioritize_recommendations(risk, enrichment)
    confidence = calculate_confidence(
        profile_field_count=profile.populated_field_count,
        structured_field_count=structured_field_count,
        enrichment_failed=not enrichment.success,
        document_quality=document_quality(document),
        analyzers_used=components_used(document, classification, risk, enrichment),
    )
    return ComprehensiveResult(
        analysis_id=analysis_id,
        document=document,
        classification=classification,
        risk_profile=risk,
        enrichment=enrichment,
        overall_score=score,
        overall_rating=rating_for(score),
        completeness=completeness(document, classification, risk, enrichment),
        reliability=reliability(document, classification, risk),
        key_insights=key_insights(risk, enrichment),
        prioritized_recommendations=recommendations,
        action_plan=action_plan(risk, recommendations),
        confidence=confidence,
    )
