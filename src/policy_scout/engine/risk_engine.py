"""Risk engine: runs the analyzer set concurrently and folds their findings
into one scored, prioritized risk profile."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from policy_scout.analyzers import IRiskAnalyzer, default_analyzers
from policy_scout.models import (
    AggregatedRiskProfile,
    AnalyzerResult,
    ClassificationResult,
    ComplianceStatus,
    PolicyDocument,
    Priority,
    Recommendation,
    RiskCategory,
    RiskFactor,
    RiskLevel,
    Severity,
    Urgency,
    UserProfile,
)
from policy_scout.rules import PolicyRulebook
from policy_scout.scoring import (
    aggregate_by_category,
    calculate_financial_impact,
    calculate_risk_score,
    priority_matrix,
    risk_level_for,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CategoryAdvice:
    priority: Priority
    title: str
    description: str
    action: str
    impact: str
    timeframe: str


CATEGORY_ADVICE: dict[RiskCategory, _CategoryAdvice] = {
    RiskCategory.COVERAGE_GAPS: _CategoryAdvice(
        Priority.HIGH,
        "Address Coverage Gaps",
        "Critical coverage gaps identified that could leave you financially exposed.",
        "Review and increase coverage limits or add missing coverages",
        "Reduces financial exposure to major losses",
        "Immediate",
    ),
    RiskCategory.LIABILITY_LIMITS: _CategoryAdvice(
        Priority.HIGH,
        "Increase Liability Limits",
        "Current liability limits may be insufficient for your risk profile.",
        "Consider increasing liability coverage to recommended levels",
        "Better protection against lawsuits and major claims",
        "Next renewal",
    ),
    RiskCategory.DEDUCTIBLE_RISKS: _CategoryAdvice(
        Priority.MEDIUM,
        "Optimize Deductible Levels",
        "Current deductible may not align with your financial capacity.",
        "Review deductible amounts and adjust based on your emergency fund",
        "Better balance between premium costs and out-of-pocket expenses",
        "Next renewal",
    ),
    RiskCategory.POLICY_TERMS: _CategoryAdvice(
        Priority.MEDIUM,
        "Review Policy Terms",
        "Policy terms contain conditions that may limit your protection.",
        "Review exclusions and conditions with your agent",
        "Fewer surprises at claim time",
        "Next renewal",
    ),
    RiskCategory.COMPLIANCE: _CategoryAdvice(
        Priority.CRITICAL,
        "Resolve Compliance Issues",
        "Coverage falls below legally required minimums.",
        "Raise the affected limits to at least the statutory minimum",
        "Keeps the policy lawful and avoids penalties",
        "Immediate",
    ),
    RiskCategory.FINANCIAL_RISK: _CategoryAdvice(
        Priority.HIGH,
        "Reduce Financial Exposure",
        "Out-of-pocket exposure is high relative to your finances.",
        "Rebalance limits and deductibles against your savings",
        "Lower risk of financial strain after a loss",
        "Within 30 days",
    ),
    RiskCategory.OPTIMIZATION: _CategoryAdvice(
        Priority.LOW,
        "Capture Savings Opportunities",
        "Adjustments could lower premiums without weakening protection.",
        "Request quotes for the suggested changes",
        "Lower annual premium",
        "Next renewal",
    ),
}

RISK_LEVEL_SUMMARIES: dict[RiskLevel, str] = {
    RiskLevel.CRITICAL: "Your policy has critical risks that need immediate attention. {critical} critical issues identified.",
    RiskLevel.HIGH: "Your policy has significant risks that should be addressed soon. {critical} critical issues found.",
    RiskLevel.MEDIUM: "Your policy has moderate risks with room for improvement. Review recommended actions.",
    RiskLevel.LOW: "Your policy has minor risks with good overall coverage. Consider optimization opportunities.",
    RiskLevel.MINIMAL: "Your policy shows minimal risks with excellent coverage. Well protected.",
}

_SEVERE = (Severity.HIGH, Severity.CRITICAL)


class RiskEngine:
    """Runs every analyzer and aggregates their factors.

    Analyzers share no state and run concurrently in worker threads. A failed
    analyzer is recorded as degraded and contributes nothing; it never aborts
    the aggregation.
    """

    def __init__(
        self,
        analyzers: Sequence[IRiskAnalyzer] | None = None,
        *,
        rulebook: PolicyRulebook | None = None,
    ) -> None:
        self._analyzers = list(analyzers) if analyzers is not None else default_analyzers(rulebook)

    @property
    def analyzer_names(self) -> list[str]:
        return [a.name for a in self._analyzers]

    async def analyze_risks(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> AggregatedRiskProfile:
        outcomes = await asyncio.gather(
            *(self._run_one(a, policy, classification, profile) for a in self._analyzers),
        )
        return self.aggregate(outcomes, classification)

    async def _run_one(
        self,
        analyzer: IRiskAnalyzer,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> AnalyzerResult:
        # Each analyzer reads a private copy of the inputs
        try:
            result = await asyncio.to_thread(
                analyzer.analyze,
                policy.model_copy(deep=True),
                classification.model_copy(deep=True),
                profile.model_copy(deep=True),
            )
        except Exception as exc:
            log.exception("Analyzer %s raised", analyzer.name)
            return AnalyzerResult(analyzer=analyzer.name, success=False, error=str(exc))

        if not result.success:
            log.warning("Analyzer %s degraded: %s", analyzer.name, result.error or "no detail")
            return result.model_copy(update={"risks": []})
        return result

    def aggregate(
        self,
        outcomes: Sequence[AnalyzerResult],
        classification: ClassificationResult,
    ) -> AggregatedRiskProfile:
        """Fold analyzer outcomes into a profile.

        Factors are ordered by analyzer registration order, not completion
        order, so the output does not depend on scheduling.
        """
        order = {name: i for i, name in enumerate(self.analyzer_names)}
        ordered = sorted(outcomes, key=lambda o: (order.get(o.analyzer, len(order)), o.analyzer))

        factors: list[RiskFactor] = []
        degraded: list[str] = []
        for outcome in ordered:
            if outcome.success:
                factors.extend(f.with_source(outcome.analyzer) for f in outcome.risks)
            else:
                degraded.append(outcome.analyzer)

        if ordered and len(degraded) == len(ordered):
            log.error("All risk analyzers failed: %s", ", ".join(degraded))
            return AggregatedRiskProfile(
                success=False,
                policy_type=classification.primary_type,
                analyzer_results={o.analyzer: o for o in ordered},
                degraded_analyzers=degraded,
                error="All risk analyzers failed",
            )

        score = calculate_risk_score(factors)
        level = risk_level_for(score)
        critical_issues = identify_critical_issues(factors)
        profile = AggregatedRiskProfile(
            success=True,
            policy_type=classification.primary_type,
            overall_score=score,
            risk_level=level,
            risk_factors=factors,
            critical_issues=critical_issues,
            opportunities=[f for f in factors if f.is_opportunity],
            compliance_status=assess_compliance(factors),
            recommendations=generate_recommendations(factors),
            analyzer_results={o.analyzer: o for o in ordered},
            degraded_analyzers=degraded,
            category_breakdown=aggregate_by_category(factors),
            priority_matrix=priority_matrix(factors),
            financial_impact=calculate_financial_impact(factors),
            summary=RISK_LEVEL_SUMMARIES[level].format(critical=len(critical_issues)),
        )
        log.info(
            "Risk analysis complete: score=%d level=%s factors=%d degraded=%s",
            score,
            level.value,
            len(factors),
            degraded or "none",
        )
        return profile


def identify_critical_issues(factors: Sequence[RiskFactor]) -> list[RiskFactor]:
    return [f for f in factors if f.severity == Severity.CRITICAL or f.urgency == Urgency.IMMEDIATE]


def assess_compliance(factors: Sequence[RiskFactor]) -> ComplianceStatus:
    compliance = [f for f in factors if f.category == RiskCategory.COMPLIANCE]
    if not compliance:
        return ComplianceStatus.COMPLIANT
    if any(f.severity in _SEVERE for f in compliance):
        return ComplianceStatus.NON_COMPLIANT
    return ComplianceStatus.REVIEW_NEEDED


def generate_recommendations(factors: Sequence[RiskFactor]) -> list[Recommendation]:
    """One recommendation per category with a high or critical factor, most pressing first."""
    severe_by_category: dict[RiskCategory, list[str]] = {}
    for factor in factors:
        if factor.severity in _SEVERE:
            severe_by_category.setdefault(factor.category, []).append(factor.id)

    recommendations = []
    for category, factor_ids in severe_by_category.items():
        advice = CATEGORY_ADVICE[category]
        recommendations.append(
            Recommendation(
                id=f"rec-{category.value}",
                title=advice.title,
                description=advice.description,
                priority=advice.priority,
                category=category,
                timeframe=advice.timeframe,
                actions=[advice.action],
                impact=advice.impact,
                source="risk-analysis",
                related_factors=factor_ids,
            )
        )
    recommendations.sort(key=lambda r: r.priority.rank)
    return recommendations
