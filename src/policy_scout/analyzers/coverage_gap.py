"""Coverage-gap analyzer: expected coverages vs. what the policy carries."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import ClassVar

from policy_scout.analyzers.base import BaseAnalyzer
from policy_scout.models import (
    ClassificationResult,
    PolicyDocument,
    RiskCategory,
    RiskFactor,
    RiskType,
    Severity,
    Urgency,
    UserProfile,
)
from policy_scout.parsing import format_money, normalize_name, parse_money, slugify
from policy_scout.rules import ExpectedCoverage, PolicyRulebook, load_rulebook

BASE_LIABILITY = 100_000
LIABILITY_ROUNDING = 50_000
DEFAULT_CURRENT_LIABILITY = 50_000

# Structured field -> coverage line it evidences
_STRUCTURED_COVERAGES = {
    "liabilityLimits": "Bodily Injury Liability",
    "propertyDamage": "Property Damage Liability",
}

# Short text cues for lines usually written without their full name
_TEXT_CUES = {
    "Collision Coverage": "collision",
    "Comprehensive Coverage": "comprehensive",
    "Uninsured Motorist": "uninsured",
}


@dataclass(frozen=True)
class CoverageLine:
    name: str
    limit: float | None = None


class CoverageGapAnalyzer(BaseAnalyzer):
    """Flags inadequate limits, missing coverages and asset-based liability shortfalls."""

    name: ClassVar[str] = "coverage_gap"
    severity_weights: ClassVar[dict[Severity, int]] = {
        Severity.CRITICAL: 25,
        Severity.HIGH: 15,
        Severity.MEDIUM: 10,
        Severity.LOW: 5,
        Severity.MINIMAL: 5,
    }

    def __init__(self, rulebook: PolicyRulebook | None = None) -> None:
        self._rulebook = rulebook or load_rulebook()

    def _check(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> list[RiskFactor]:
        expected = self._rulebook.expected_coverages(classification.primary_type)
        current = extract_current_coverages(policy, expected)

        risks: list[RiskFactor] = []
        risks.extend(self._check_adequacy(expected, current))
        risks.extend(self._check_missing(expected, current))
        risks.extend(self._check_asset_based_liability(policy, profile))
        return risks

    # ── Checks ──────────────────────────────────────────────────────

    @staticmethod
    def _check_adequacy(expected: list[ExpectedCoverage], current: list[CoverageLine]) -> list[RiskFactor]:
        risks: list[RiskFactor] = []
        for coverage in expected:
            line = _find(current, coverage.name)
            if line is None or line.limit is None or not coverage.min_limit:
                continue
            if line.limit >= coverage.min_limit:
                continue
            risks.append(
                RiskFactor(
                    id=f"inadequate-{slugify(coverage.name)}",
                    category=RiskCategory.COVERAGE_GAPS,
                    risk_type=RiskType.GAP,
                    severity=Severity.HIGH if coverage.required else Severity.MEDIUM,
                    urgency=Urgency.HIGH if coverage.required else Urgency.MEDIUM,
                    title=f"Inadequate {coverage.name}",
                    description=(
                        f"Current {coverage.name} limit of {format_money(line.limit)} is below "
                        f"the recommended minimum of {format_money(coverage.min_limit)}"
                    ),
                    recommendation=f"Increase {coverage.name} to at least {format_money(coverage.min_limit)}",
                    potential_impact=f"Financial exposure up to {format_money(coverage.min_limit - line.limit)}",
                    current_value=line.limit,
                    recommended_value=coverage.min_limit,
                    details={"coverage_name": coverage.name},
                )
            )
        return risks

    @staticmethod
    def _check_missing(expected: list[ExpectedCoverage], current: list[CoverageLine]) -> list[RiskFactor]:
        risks: list[RiskFactor] = []
        for coverage in expected:
            if _find(current, coverage.name) is not None:
                continue
            if coverage.required:
                severity = Severity.CRITICAL
            elif coverage.recommended:
                severity = Severity.HIGH
            else:
                severity = Severity.MEDIUM
            risks.append(
                RiskFactor(
                    id=f"missing-{slugify(coverage.name)}",
                    category=RiskCategory.COVERAGE_GAPS,
                    risk_type=RiskType.GAP,
                    severity=severity,
                    urgency=Urgency.IMMEDIATE if coverage.required else Urgency.MEDIUM,
                    title=f"Missing {coverage.name}",
                    description=f"{coverage.name} is not included in your policy",
                    recommendation=f"Add {coverage.name} to your policy",
                    potential_impact=(
                        "Critical financial exposure; may violate legal requirements"
                        if coverage.required
                        else "Potential financial exposure in specific scenarios"
                    ),
                    details={
                        "coverage_name": coverage.name,
                        "is_required": coverage.required,
                        "is_recommended": coverage.recommended,
                    },
                )
            )
        return risks

    @staticmethod
    def _check_asset_based_liability(policy: PolicyDocument, profile: UserProfile) -> list[RiskFactor]:
        if not (profile.assets or profile.income):
            return []

        recommended = recommended_liability(profile)
        current = (
            policy.limits("liabilityLimits").per_person
            if policy.has_field("liabilityLimits")
            else float(DEFAULT_CURRENT_LIABILITY)
        )
        if current <= 0 or current >= recommended:
            return []

        return [
            RiskFactor(
                id="insufficient-liability",
                category=RiskCategory.COVERAGE_GAPS,
                risk_type=RiskType.GAP,
                severity=Severity.HIGH,
                urgency=Urgency.HIGH,
                title="Insufficient Liability Coverage",
                description="Based on your assets and income, liability coverage should be higher",
                recommendation=f"Increase liability coverage to {format_money(recommended)}",
                potential_impact="Personal assets at risk in a major lawsuit",
                current_value=current,
                recommended_value=recommended,
                tags=("asset-protection",),
            )
        ]

    def summarize(self, risks: list[RiskFactor], score: int) -> str:
        if not risks:
            return "No significant coverage gaps identified. Your policy appears to have adequate coverage."
        critical = sum(1 for r in risks if r.severity == Severity.CRITICAL)
        high = sum(1 for r in risks if r.severity == Severity.HIGH)
        if critical:
            return f"{critical} critical coverage gaps require immediate attention. Total gaps: {len(risks)}"
        if high:
            return f"{high} high-priority coverage gaps identified. Consider addressing these soon. Total gaps: {len(risks)}"
        return f"{len(risks)} coverage gaps identified with opportunities for improvement."


def recommended_liability(profile: UserProfile) -> float:
    """max(base, assets x 1.5, income x 3), rounded up to the next 50,000."""
    recommended = max(float(BASE_LIABILITY), profile.assets * 1.5, profile.income * 3)
    return float(math.ceil(recommended / LIABILITY_ROUNDING) * LIABILITY_ROUNDING)


def matches_coverage_name(current: str, expected: str) -> bool:
    """Case and punctuation-insensitive substring match in either direction."""
    a, b = normalize_name(current), normalize_name(expected)
    if not a or not b:
        return False
    return a in b or b in a


def extract_current_coverages(policy: PolicyDocument, expected: list[ExpectedCoverage]) -> list[CoverageLine]:
    """Coverage lines evidenced by structured fields or by the policy text."""
    lines: list[CoverageLine] = []
    for field_name, coverage_name in _STRUCTURED_COVERAGES.items():
        if policy.has_field(field_name):
            lines.append(CoverageLine(coverage_name, policy.money(field_name)))

    text = policy.text
    if not text:
        return lines

    for coverage in expected:
        if _find(lines, coverage.name) is not None:
            continue
        cue = _TEXT_CUES.get(coverage.name) or re.sub(r"\s+coverage$", "", coverage.name.lower())
        found, limit = _find_in_text(text, cue)
        if found:
            lines.append(CoverageLine(coverage.name, limit))
    return lines


def _find_in_text(text: str, phrase: str) -> tuple[bool, float | None]:
    words = r"\s+".join(re.escape(w) for w in phrase.split())
    match = re.search(rf"{words}(?:[^$\d.]{{0,40}}\$?\s*([\d,]*\d))?", text)
    if not match:
        return False, None
    amount = match.group(1)
    return True, (parse_money(amount) if amount else None)


def _find(lines: list[CoverageLine], name: str) -> CoverageLine | None:
    return next((line for line in lines if matches_coverage_name(line.name, name)), None)
