"""Severity-weighted risk scoring and factor aggregation.

All functions are pure: the same factor list always yields the same result.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from policy_scout.models import (
    CategorySummary,
    FinancialImpact,
    PriorityMatrix,
    RiskCategory,
    RiskFactor,
    RiskLevel,
    RiskTrend,
    Severity,
    Urgency,
)
from policy_scout.parsing import clamp, format_money, parse_money, round_half_up

SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 20,
    Severity.MEDIUM: 15,
    Severity.LOW: 10,
    Severity.MINIMAL: 5,
}

CATEGORY_MULTIPLIERS: dict[RiskCategory, float] = {
    RiskCategory.COVERAGE_GAPS: 1.2,
    RiskCategory.LIABILITY_LIMITS: 1.1,
    RiskCategory.DEDUCTIBLE_RISKS: 0.9,
    RiskCategory.POLICY_TERMS: 0.8,
    RiskCategory.COMPLIANCE: 1.3,
    RiskCategory.FINANCIAL_RISK: 1.1,
    RiskCategory.OPTIMIZATION: 0.5,
}

OPPORTUNITY_MULTIPLIER = 0.5

# Worst case per factor: a critical compliance finding.
MAX_FACTOR_WEIGHT = SEVERITY_WEIGHTS[Severity.CRITICAL] * max(CATEGORY_MULTIPLIERS.values())

# (lower bound, level), checked top down.
RISK_LEVEL_BANDS: tuple[tuple[int, RiskLevel], ...] = (
    (80, RiskLevel.CRITICAL),
    (60, RiskLevel.HIGH),
    (40, RiskLevel.MEDIUM),
    (20, RiskLevel.LOW),
)

_DOLLAR_AMOUNT = re.compile(r"\$([\d,]+(?:\.\d+)?)")


def factor_weight(factor: RiskFactor) -> float:
    """Severity weight times category multiplier.

    Opportunities count at the optimization multiplier whatever their category.
    """
    multiplier = OPPORTUNITY_MULTIPLIER if factor.is_opportunity else CATEGORY_MULTIPLIERS[factor.category]
    return SEVERITY_WEIGHTS[factor.severity] * multiplier


def calculate_risk_score(factors: Sequence[RiskFactor]) -> int:
    """Overall 0-100 risk score for a factor list. Empty list scores 0."""
    if not factors:
        return 0
    total = sum(factor_weight(f) for f in factors)
    max_possible = len(factors) * MAX_FACTOR_WEIGHT
    return int(clamp(round_half_up(total / max_possible * 100)))


def risk_level_for(score: float) -> RiskLevel:
    for lower, level in RISK_LEVEL_BANDS:
        if score >= lower:
            return level
    return RiskLevel.MINIMAL


def highest_severity(factors: Iterable[RiskFactor]) -> Severity | None:
    severities = [f.severity for f in factors]
    return max(severities, key=lambda s: s.rank) if severities else None


def aggregate_by_category(factors: Sequence[RiskFactor]) -> dict[str, CategorySummary]:
    """Group factors by category with a per-category score and worst severity."""
    grouped: dict[RiskCategory, list[RiskFactor]] = {}
    for factor in factors:
        grouped.setdefault(factor.category, []).append(factor)

    return {
        category.value: CategorySummary(
            category=category,
            risks=members,
            total_score=sum(factor_weight(f) for f in members),
            highest_severity=highest_severity(members),
            count=len(members),
        )
        for category, members in grouped.items()
    }


def calculate_risk_trend(current_score: float, previous_score: float) -> RiskTrend:
    """Compare two risk scores. Differences within 5 points count as stable."""
    change = current_score - previous_score
    percentage = (change / previous_score * 100) if previous_score > 0 else 0.0

    if change > 10:
        direction = "increasing"
    elif change < -10:
        direction = "decreasing"
    elif abs(change) > 5:
        direction = "slightly_increasing" if change > 0 else "slightly_decreasing"
    else:
        direction = "stable"

    return RiskTrend(direction=direction, change=change, percentage_change=round(percentage, 2))


def priority_matrix(factors: Sequence[RiskFactor]) -> PriorityMatrix:
    matrix = PriorityMatrix()
    for factor in factors:
        if factor.severity == Severity.CRITICAL and factor.urgency == Urgency.IMMEDIATE:
            matrix.immediate.append(factor)
        elif factor.severity == Severity.CRITICAL or (
            factor.severity == Severity.HIGH and factor.urgency == Urgency.HIGH
        ):
            matrix.high.append(factor)
        elif factor.severity in (Severity.HIGH, Severity.MEDIUM):
            matrix.medium.append(factor)
        else:
            matrix.low.append(factor)
    return matrix


def calculate_financial_impact(factors: Sequence[RiskFactor]) -> FinancialImpact:
    """Sum exposure, savings and annual cost across factors."""
    potential_loss = 0.0
    potential_savings = 0.0
    annual_cost = 0.0

    for factor in factors:
        match = _DOLLAR_AMOUNT.search(factor.potential_impact)
        if match:
            potential_loss += parse_money(match.group(1))
        if factor.potential_savings:
            potential_savings += factor.potential_savings
        if factor.estimated_cost:
            annual_cost += factor.estimated_cost

    net_impact = potential_savings - annual_cost
    return FinancialImpact(
        potential_loss=potential_loss,
        potential_savings=potential_savings,
        annual_cost=annual_cost,
        net_impact=net_impact,
        summary=_financial_summary(potential_loss, net_impact),
    )


def _financial_summary(potential_loss: float, net_impact: float) -> str:
    if potential_loss > 50_000:
        return f"High financial exposure: up to {format_money(potential_loss)} in potential uncovered losses"
    if net_impact > 500:
        return f"Potential net savings of {format_money(net_impact)} per year from recommended changes"
    if potential_loss > 10_000:
        return f"Moderate financial exposure: {format_money(potential_loss)} in potential uncovered losses"
    return "Financial exposure appears manageable with current coverage"
