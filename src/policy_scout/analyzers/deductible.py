"""Deductible analyzer: affordability, tier optimization, complexity and claim fit."""

from __future__ import annotations

import re
from datetime import date
from typing import ClassVar

from policy_scout.analyzers.base import BaseAnalyzer
from policy_scout.models import (
    ClassificationResult,
    PolicyDocument,
    RiskCategory,
    RiskFactor,
    RiskTolerance,
    RiskType,
    Severity,
    Urgency,
    UserProfile,
)
from policy_scout.parsing import format_money, parse_money, round_half_up

DEDUCTIBLE_TIERS = (250, 500, 1000, 2500, 5000)
# Annual premium change per $1,000 of deductible change
PREMIUM_RATE_PER_THOUSAND = 0.15
DEFAULT_DEDUCTIBLE = 500.0
MIN_AFFORDABLE_CEILING = 500.0
CLAIM_LOOKBACK_YEARS = 5

_COVERAGE_LINES = ("collision", "comprehensive", "dwelling", "hurricane")


def _line_patterns(line: str) -> tuple[re.Pattern[str], ...]:
    return (
        re.compile(rf"{line}\b[^$\d]{{0,40}}?deductible\s*:?\s*(?:of\s*)?\$?\s*([\d,]*\d)"),
        re.compile(rf"{line}\b[^$\d]{{0,40}}?\$\s*([\d,]*\d)\s*deductible"),
    )


_LINE_PATTERNS = {line: _line_patterns(line) for line in _COVERAGE_LINES}


class DeductibleAnalyzer(BaseAnalyzer):
    """Weighs each deductible against the holder's savings, income and claims."""

    name: ClassVar[str] = "deductible"
    severity_weights: ClassVar[dict[Severity, int]] = {
        Severity.CRITICAL: 25,
        Severity.HIGH: 20,
        Severity.MEDIUM: 15,
        Severity.LOW: 5,
        Severity.MINIMAL: 5,
    }

    def __init__(self, *, today: date | None = None) -> None:
        self._today = today

    def _check(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> list[RiskFactor]:
        deductibles = extract_deductibles(policy)

        risks: list[RiskFactor] = []
        risks.extend(self._check_affordability(deductibles, profile))
        risks.extend(self._check_optimization(deductibles, profile))
        risks.extend(self._check_complexity(deductibles))
        risks.extend(self._check_claim_history(deductibles, profile))
        return risks

    # ── Checks ──────────────────────────────────────────────────────

    @staticmethod
    def _check_affordability(deductibles: dict[str, float], profile: UserProfile) -> list[RiskFactor]:
        risks: list[RiskFactor] = []
        fund = profile.emergency_fund
        monthly_income = profile.monthly_income

        for line, amount in deductibles.items():
            if amount <= 0:
                continue
            label = line.capitalize()
            if fund > 0 and amount > fund:
                suggested = min(amount / 2, fund)
                risks.append(
                    RiskFactor(
                        id=f"unaffordable-deductible-{line}",
                        category=RiskCategory.DEDUCTIBLE_RISKS,
                        risk_type=RiskType.RISK,
                        severity=Severity.HIGH,
                        urgency=Urgency.MEDIUM,
                        title=f"{label} Deductible Too High",
                        description=(
                            f"{format_money(amount)} deductible exceeds your emergency fund of {format_money(fund)}"
                        ),
                        recommendation=(
                            f"Consider lowering the deductible to {format_money(suggested)} "
                            "or building your emergency fund"
                        ),
                        potential_impact="May need to borrow money or delay repairs after a claim",
                        current_value=amount,
                        recommended_value=suggested,
                        tags=("affordability",),
                        details={"coverage_line": line, "emergency_fund": fund},
                    )
                )
            if monthly_income > 0 and amount > monthly_income:
                share = round_half_up(amount / monthly_income * 100)
                risks.append(
                    RiskFactor(
                        id=f"high-deductible-vs-income-{line}",
                        category=RiskCategory.DEDUCTIBLE_RISKS,
                        risk_type=RiskType.RISK,
                        severity=Severity.MEDIUM,
                        urgency=Urgency.LOW,
                        title=f"{label} Deductible vs Income",
                        description=f"{format_money(amount)} deductible represents {share}% of monthly income",
                        recommendation="Consider whether this deductible level fits your financial capacity",
                        potential_impact="Significant financial strain if a claim occurs",
                        current_value=amount,
                        tags=("affordability",),
                        details={"coverage_line": line, "percent_of_monthly_income": share},
                    )
                )
        return risks

    @staticmethod
    def _check_optimization(deductibles: dict[str, float], profile: UserProfile) -> list[RiskFactor]:
        risks: list[RiskFactor] = []
        for line, amount in deductibles.items():
            if amount <= 0:
                continue
            suggestion = suggest_deductible(amount, profile)
            if suggestion is None:
                continue
            suggested, savings = suggestion
            increase = suggested > amount
            risks.append(
                RiskFactor(
                    id=f"deductible-optimization-{line}",
                    category=RiskCategory.DEDUCTIBLE_RISKS,
                    risk_type=RiskType.OPPORTUNITY,
                    severity=Severity.MEDIUM if abs(savings) > 200 else Severity.LOW,
                    urgency=Urgency.LOW,
                    title=f"{line.capitalize()} Deductible Optimization",
                    description=(
                        "A higher deductible could reduce premiums while staying within your financial capacity"
                        if increase
                        else "A lower deductible provides better financial protection for claims"
                    ),
                    recommendation=(
                        f"Consider {'increasing' if increase else 'decreasing'} the deductible to "
                        f"{format_money(suggested)}"
                    ),
                    potential_impact=(
                        f"Potential annual savings of {abs(savings):,.0f} dollars"
                        if increase
                        else f"Better financial protection for an additional {abs(savings):,.0f} dollars annually"
                    ),
                    potential_savings=savings if increase else None,
                    estimated_cost=None if increase else abs(savings),
                    current_value=amount,
                    recommended_value=suggested,
                    details={"coverage_line": line, "direction": "increase" if increase else "decrease"},
                )
            )
        return risks

    @staticmethod
    def _check_complexity(deductibles: dict[str, float]) -> list[RiskFactor]:
        values = [v for v in deductibles.values() if v > 0]
        distinct = sorted(set(values))
        if len(values) <= 2 or len(distinct) <= 2:
            return []
        return [
            RiskFactor(
                id="multiple-deductible-complexity",
                category=RiskCategory.POLICY_TERMS,
                risk_type=RiskType.AWARENESS,
                severity=Severity.LOW,
                urgency=Urgency.LOW,
                title="Multiple Different Deductibles",
                description=(
                    f"Your policy has {len(distinct)} different deductible amounts: "
                    + ", ".join(format_money(v) for v in distinct)
                ),
                recommendation="Consider standardizing deductibles for simplicity",
                potential_impact="May cause confusion when filing claims",
                details={"deductibles": distinct},
            )
        ]

    def _check_claim_history(self, deductibles: dict[str, float], profile: UserProfile) -> list[RiskFactor]:
        if not profile.claim_history or not deductibles:
            return []

        today = self._today or date.today()
        cutoff = _years_before(today, CLAIM_LOOKBACK_YEARS)
        recent = [c for c in profile.claim_history if (d := c.occurred_on) is not None and d > cutoff]
        average = sum(deductibles.values()) / len(deductibles)

        if len(recent) >= 2 and average > 1000:
            return [
                RiskFactor(
                    id="high-deductible-frequent-claims",
                    category=RiskCategory.DEDUCTIBLE_RISKS,
                    risk_type=RiskType.RISK,
                    severity=Severity.MEDIUM,
                    urgency=Urgency.MEDIUM,
                    title="High Deductible with Frequent Claims",
                    description=(
                        f"You've had {len(recent)} claims in {CLAIM_LOOKBACK_YEARS} years "
                        f"with an average deductible of {format_money(average)}"
                    ),
                    recommendation="Consider lowering deductibles if you tend to file claims frequently",
                    potential_impact="High out-of-pocket costs due to frequent deductible payments",
                    current_value=average,
                    details={"claim_count": len(recent)},
                )
            ]
        if not recent and average < 1000:
            return [
                RiskFactor(
                    id="low-deductible-no-claims",
                    category=RiskCategory.DEDUCTIBLE_RISKS,
                    risk_type=RiskType.OPPORTUNITY,
                    severity=Severity.LOW,
                    urgency=Urgency.LOW,
                    title="Low Deductible with No Recent Claims",
                    description=(
                        f"No claims in {CLAIM_LOOKBACK_YEARS} years suggests you might benefit from higher deductibles"
                    ),
                    recommendation="Consider increasing deductibles to reduce premiums",
                    potential_impact="Potential premium savings of 200-500 dollars annually",
                    current_value=average,
                    details={"claim_count": 0},
                )
            ]
        return []

    def summarize(self, risks: list[RiskFactor], score: int) -> str:
        if not risks:
            return "Deductible levels appear well matched to your financial situation."
        high = sum(1 for r in risks if r.severity in (Severity.HIGH, Severity.CRITICAL))
        opportunities = sum(1 for r in risks if r.risk_type == RiskType.OPPORTUNITY)
        if high:
            return f"{high} deductible affordability concerns found. Review deductibles against your savings."
        if opportunities:
            return f"{opportunities} deductible optimization opportunities identified."
        return f"{len(risks)} deductible considerations identified."


def extract_deductibles(policy: PolicyDocument) -> dict[str, float]:
    """Deductible per coverage line; ``general`` defaults to 500 when none are found."""
    deductibles: dict[str, float] = {}
    if policy.has_field("deductible"):
        deductibles["general"] = policy.money("deductible")

    text = policy.text
    for line, patterns in _LINE_PATTERNS.items():
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                deductibles[line] = parse_money(match.group(1))
                break

    if not deductibles:
        deductibles["general"] = DEFAULT_DEDUCTIBLE
    return deductibles


def suggest_deductible(current: float, profile: UserProfile) -> tuple[float, float] | None:
    """Next standard tier for the holder's risk tolerance, with the annual premium delta.

    Returns ``None`` when the current deductible should stay.
    """
    ceiling = max(MIN_AFFORDABLE_CEILING, profile.emergency_fund * 0.5)

    if profile.risk_tolerance == RiskTolerance.HIGH and current < ceiling:
        higher = next((t for t in DEDUCTIBLE_TIERS if current < t <= ceiling), None)
        if higher is not None:
            return float(higher), float(round_half_up((higher - current) / 1000 * PREMIUM_RATE_PER_THOUSAND * 1000))
    elif profile.risk_tolerance == RiskTolerance.LOW and current > 1000:
        lower = next((t for t in reversed(DEDUCTIBLE_TIERS) if 500 <= t < current), None)
        if lower is not None:
            return float(lower), -float(round_half_up((current - lower) / 1000 * PREMIUM_RATE_PER_THOUSAND * 1000))
    return None


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return day.replace(year=day.year - years, day=28)
