"""Factor-penalty confidence model for a completed analysis."""

from __future__ import annotations

from collections.abc import Collection

from policy_scout.models import ConfidenceAssessment, ConfidenceLevel, DocumentQuality
from policy_scout.parsing import clamp, round_half_up

_LEVEL_DESCRIPTIONS = {
    ConfidenceLevel.HIGH: "High confidence: analysis is based on comprehensive data",
    ConfidenceLevel.MEDIUM: "Medium confidence: some data limitations may affect accuracy",
    ConfidenceLevel.LOW: "Low confidence: limited data available, professional review recommended",
}


def confidence_level_for(score: float) -> ConfidenceLevel:
    if score >= 80:
        return ConfidenceLevel.HIGH
    if score >= 60:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def calculate_confidence(
    *,
    profile_field_count: int,
    structured_field_count: int,
    enrichment_failed: bool,
    document_quality: DocumentQuality,
    analyzers_used: Collection[str],
) -> ConfidenceAssessment:
    """Start at 100 and apply a fixed penalty or bonus per data limitation."""
    score = 100.0
    factors: list[str] = []

    if profile_field_count < 3:
        score -= 20
        factors.append("Limited user profile data")
    if structured_field_count < 5:
        score -= 15
        factors.append("Limited policy data extraction")
    if enrichment_failed:
        score -= 25
        factors.append("AI analysis unavailable")
    if document_quality == DocumentQuality.POOR:
        score -= 30
        factors.append("Poor document quality")
    if len(analyzers_used) >= 3:
        score += 10
        factors.append("Multiple analyzers used")

    final = int(clamp(round_half_up(score)))
    level = confidence_level_for(final)
    return ConfidenceAssessment(
        score=final,
        level=level,
        factors=factors,
        description=_LEVEL_DESCRIPTIONS[level],
    )
