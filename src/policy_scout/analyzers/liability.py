"""Liability analyzer: limit adequacy, asset protection, umbrella need, exclusions
and statutory minimums."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from policy_scout.analyzers.base import BaseAnalyzer
from policy_scout.models import (
    ClassificationResult,
    PolicyDocument,
    PolicyType,
    RiskCategory,
    RiskFactor,
    RiskType,
    Severity,
    Urgency,
    UserProfile,
)
from policy_scout.parsing import format_money, round_half_up
from policy_scout.rules import PolicyRulebook, load_rulebook

DEFAULT_BODILY_INJURY = 50_000
DEFAULT_PROPERTY_DAMAGE = 25_000

BODILY_INJURY_GAP_THRESHOLD = 100_000
PROPERTY_DAMAGE_GAP_THRESHOLD = 50_000
EXPOSED_ASSETS_CRITICAL = 100_000
INCOME_MULTIPLE = 3

# Annual premium per $1,000 of added limit
COST_PER_THOUSAND = {"bodily-injury": 0.50, "property-damage": 0.30}

UMBRELLA_ESTIMATED_COST = 300.0


@dataclass(frozen=True)
class LiabilityPosition:
    """Current limits, and whether each one was stated or defaulted."""

    bodily_injury: float
    property_damage: float
    bodily_injury_stated: bool = False
    property_damage_stated: bool = False

    @property
    def total(self) -> float:
        return self.bodily_injury + self.property_damage


class LiabilityAnalyzer(BaseAnalyzer):
    """Checks liability limits against the policy type and the holder's finances."""

    name: ClassVar[str] = "liability"
    severity_weights: ClassVar[dict[Severity, int]] = {
        Severity.CRITICAL: 30,
        Severity.HIGH: 20,
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
        policy_type = classification.primary_type
        position = extract_liability_position(policy)

        risks: list[RiskFactor] = []
        risks.extend(self._check_limits(position, policy_type, profile))
        risks.extend(self._check_asset_protection(position, profile))
        risks.extend(self._check_umbrella_need(position, profile))
        risks.extend(self._check_exclusions(policy_type))
        risks.extend(self._check_statutory_minimums(position, policy_type, policy.field("state")))
        return risks

    def recommended_limits(self, policy_type: PolicyType, profile: UserProfile) -> tuple[float, float]:
        """(bodily injury, property damage) limits suited to the type and profile."""
        base = self._rulebook.liability_base_limits(policy_type)
        bodily_injury, property_damage = base.bodily_injury, base.property_damage
        if profile.assets > 250_000:
            bodily_injury = max(bodily_injury, 250_000)
            property_damage = max(property_damage, 100_000)
        if profile.income > 75_000:
            bodily_injury = max(bodily_injury, profile.income * 2)
        return bodily_injury, property_damage

    # ── Checks ──────────────────────────────────────────────────────

    def _check_limits(
        self,
        position: LiabilityPosition,
        policy_type: PolicyType,
        profile: UserProfile,
    ) -> list[RiskFactor]:
        risks: list[RiskFactor] = []
        rec_bi, rec_pd = self.recommended_limits(policy_type, profile)

        if position.bodily_injury < rec_bi:
            gap = rec_bi - position.bodily_injury
            risks.append(
                RiskFactor(
                    id="insufficient-bodily-injury-liability",
                    category=RiskCategory.LIABILITY_LIMITS,
                    risk_type=RiskType.RISK,
                    severity=Severity.HIGH if gap > BODILY_INJURY_GAP_THRESHOLD else Severity.MEDIUM,
                    urgency=Urgency.HIGH,
                    title="Insufficient Bodily Injury Liability",
                    description=(
                        f"Current bodily injury liability of {format_money(position.bodily_injury)} "
                        "may be inadequate"
                    ),
                    recommendation=f"Increase to {format_money(rec_bi)} per person",
                    potential_impact=(
                        f"Personal assets at risk for claims exceeding {format_money(position.bodily_injury)}"
                    ),
                    estimated_cost=estimate_cost_impact(gap, "bodily-injury"),
                    current_value=position.bodily_injury,
                    recommended_value=rec_bi,
                )
            )

        if position.property_damage < rec_pd:
            gap = rec_pd - position.property_damage
            risks.append(
                RiskFactor(
                    id="insufficient-property-damage-liability",
                    category=RiskCategory.LIABILITY_LIMITS,
                    risk_type=RiskType.RISK,
                    severity=Severity.HIGH if gap > PROPERTY_DAMAGE_GAP_THRESHOLD else Severity.MEDIUM,
                    urgency=Urgency.MEDIUM,
                    title="Insufficient Property Damage Liability",
                    description=(
                        f"Current property damage liability of {format_money(position.property_damage)} "
                        "may be inadequate"
                    ),
                    recommendation=f"Increase to {format_money(rec_pd)}",
                    potential_impact="Risk of personal liability for expensive vehicle or property damage",
                    estimated_cost=estimate_cost_impact(gap, "property-damage"),
                    current_value=position.property_damage,
                    recommended_value=rec_pd,
                )
            )
        return risks

    @staticmethod
    def _check_asset_protection(position: LiabilityPosition, profile: UserProfile) -> list[RiskFactor]:
        if not profile.assets and not profile.income:
            return []

        risks: list[RiskFactor] = []
        total_assets = profile.assets + profile.home_value
        total_liability = position.total

        if total_assets > total_liability:
            exposed = total_assets - total_liability
            risks.append(
                RiskFactor(
                    id="inadequate-asset-protection",
                    category=RiskCategory.LIABILITY_LIMITS,
                    risk_type=RiskType.RISK,
                    severity=Severity.CRITICAL if exposed > EXPOSED_ASSETS_CRITICAL else Severity.HIGH,
                    urgency=Urgency.HIGH,
                    title="Inadequate Asset Protection",
                    description=(
                        f"Your liability coverage may not fully protect your assets worth {format_money(total_assets)}"
                    ),
                    recommendation="Consider increasing liability limits or adding umbrella coverage",
                    potential_impact=f"Up to {format_money(exposed)} in assets could be at risk",
                    current_value=total_liability,
                    recommended_value=total_assets,
                    details={"exposed_assets": exposed, "total_assets": total_assets},
                )
            )

        income_based = profile.income * INCOME_MULTIPLE
        if profile.income > 0 and total_liability < income_based:
            risks.append(
                RiskFactor(
                    id="insufficient-income-protection",
                    category=RiskCategory.LIABILITY_LIMITS,
                    risk_type=RiskType.RISK,
                    severity=Severity.MEDIUM,
                    urgency=Urgency.MEDIUM,
                    title="Insufficient Income-Based Protection",
                    description=f"Liability coverage should be at least {INCOME_MULTIPLE}x your annual income",
                    recommendation=f"Consider coverage of at least {format_money(income_based)}",
                    potential_impact="Future earnings could be garnished in a major lawsuit",
                    current_value=total_liability,
                    recommended_value=income_based,
                )
            )
        return risks

    @staticmethod
    def _check_umbrella_need(position: LiabilityPosition, profile: UserProfile) -> list[RiskFactor]:
        indicators = [
            (profile.assets >= 500_000, "High net worth"),
            (profile.income > 100_000, "High income"),
            (profile.has_pool, "Swimming pool liability"),
            (profile.has_rental_property, "Rental property exposure"),
            (profile.has_teen_drivers, "Teen driver risk"),
            (position.total < 500_000, "Low underlying liability limits"),
        ]
        reasons = [reason for condition, reason in indicators if condition]
        if len(reasons) < 2:
            return []

        return [
            RiskFactor(
                id="umbrella-policy-recommended",
                category=RiskCategory.LIABILITY_LIMITS,
                risk_type=RiskType.OPPORTUNITY,
                severity=Severity.MEDIUM,
                urgency=Urgency.LOW,
                title="Umbrella Policy Recommended",
                description="Multiple factors suggest you could benefit from umbrella liability coverage",
                recommendation="Consider adding a personal umbrella policy for additional liability protection",
                potential_impact="Enhanced protection against major liability claims",
                estimated_cost=UMBRELLA_ESTIMATED_COST,
                details={"reasons": reasons, "estimate": "$200-400 annually for $1M coverage"},
            )
        ]

    def _check_exclusions(self, policy_type: PolicyType) -> list[RiskFactor]:
        exclusions = self._rulebook.standard_exclusions(policy_type)
        if not exclusions:
            return []
        return [
            RiskFactor(
                id="liability-exclusions-present",
                category=RiskCategory.POLICY_TERMS,
                risk_type=RiskType.AWARENESS,
                severity=Severity.LOW,
                urgency=Urgency.LOW,
                title="Liability Exclusions Present",
                description="Your policy contains standard exclusions that limit liability coverage",
                recommendation="Review exclusions and consider additional coverage if needed",
                potential_impact="No coverage for excluded activities or situations",
                details={"exclusions": exclusions},
            )
        ]

    def _check_statutory_minimums(
        self,
        position: LiabilityPosition,
        policy_type: PolicyType,
        state: str,
    ) -> list[RiskFactor]:
        """Only limits stated on the policy are compared; defaults never are."""
        minimum = self._rulebook.statutory_minimum(policy_type, state)
        if minimum is None:
            return []

        where = state.strip().upper() or "the default"
        lines = (
            ("bodily-injury", "Bodily Injury", position.bodily_injury_stated, position.bodily_injury, minimum.bodily_injury),
            ("property-damage", "Property Damage", position.property_damage_stated, position.property_damage, minimum.property_damage),
        )
        risks: list[RiskFactor] = []
        for slug, label, stated, current, required in lines:
            if not stated or not required or current >= required:
                continue
            risks.append(
                RiskFactor(
                    id=f"below-statutory-minimum-{slug}",
                    category=RiskCategory.COMPLIANCE,
                    risk_type=RiskType.COMPLIANCE,
                    severity=Severity.CRITICAL,
                    urgency=Urgency.IMMEDIATE,
                    title=f"{label} Liability Below Statutory Minimum",
                    description=(
                        f"{label} liability of {format_money(current)} is below the {format_money(required)} "
                        f"minimum for {where} requirements"
                    ),
                    recommendation=f"Raise {label.lower()} liability to at least {format_money(required)} immediately",
                    potential_impact=f"Driving may be unlawful; uncovered exposure of at least {format_money(required - current)}",
                    current_value=current,
                    recommended_value=required,
                    details={"state": state.strip().upper()},
                )
            )
        return risks

    def summarize(self, risks: list[RiskFactor], score: int) -> str:
        if not risks:
            return "Liability coverage appears adequate for your risk profile."
        critical = sum(1 for r in risks if r.severity == Severity.CRITICAL)
        high = sum(1 for r in risks if r.severity == Severity.HIGH)
        if critical:
            return f"{critical} critical liability risks identified. Your assets may be significantly exposed."
        if high:
            return f"{high} high-priority liability concerns found. Consider increasing coverage limits."
        return f"{len(risks)} liability considerations identified with opportunities for optimization."


def extract_liability_position(policy: PolicyDocument) -> LiabilityPosition:
    """Per-person bodily injury and property damage, from split limits where given."""
    split = policy.limits("liabilityLimits")
    property_damage = policy.money("propertyDamage") or split.property_damage
    bi_stated = split.per_person > 0
    pd_stated = property_damage > 0
    return LiabilityPosition(
        bodily_injury=split.per_person if bi_stated else float(DEFAULT_BODILY_INJURY),
        property_damage=property_damage if pd_stated else float(DEFAULT_PROPERTY_DAMAGE),
        bodily_injury_stated=bi_stated,
        property_damage_stated=pd_stated,
    )


def estimate_cost_impact(increase: float, coverage: str) -> float:
    """Rounded annual premium increase for raising a limit by ``increase``."""
    rate = COST_PER_THOUSAND.get(coverage, 0.40)
    return float(round_half_up(increase / 1000 * rate))
