"""Tests for the coverage-gap analyzer."""

from __future__ import annotations

import pytest

from policy_scout.analyzers import CoverageGapAnalyzer
from policy_scout.analyzers.coverage_gap import (
    extract_current_coverages,
    matches_coverage_name,
    recommended_liability,
)
from policy_scout.models import (
    ClassificationResult,
    PolicyDocument,
    PolicyType,
    RiskCategory,
    Severity,
    Urgency,
    UserProfile,
)


def _by_id(result):
    return {r.id: r for r in result.risks}


class _BrokenRulebook:
    def expected_coverages(self, policy_type):
        raise RuntimeError("rule table unavailable")


class TestCoverageGapAnalyzer:
    def test_auto_gaps(self, rulebook, auto_policy, auto_classification):
        result = CoverageGapAnalyzer(rulebook).analyze(auto_policy, auto_classification, UserProfile())
        risks = _by_id(result)

        assert result.success
        assert set(risks) == {
            "inadequate-bodily-injury-liability",
            "missing-property-damage-liability",
            "missing-collision-coverage",
            "missing-comprehensive-coverage",
            "missing-uninsured-motorist",
            "missing-personal-injury-protection",
        }
        inadequate = risks["inadequate-bodily-injury-liability"]
        assert inadequate.severity is Severity.HIGH
        assert inadequate.current_value == 25_000
        assert inadequate.recommended_value == 50_000

        missing_pd = risks["missing-property-damage-liability"]
        assert missing_pd.severity is Severity.CRITICAL
        assert missing_pd.urgency is Urgency.IMMEDIATE
        assert risks["missing-collision-coverage"].severity is Severity.HIGH
        assert risks["missing-personal-injury-protection"].severity is Severity.MEDIUM
        assert all(r.category is RiskCategory.COVERAGE_GAPS for r in result.risks)

    def test_score_is_capped_weight_sum(self, rulebook, auto_policy, auto_classification):
        result = CoverageGapAnalyzer(rulebook).analyze(auto_policy, auto_classification, UserProfile())
        # critical 25 + high 15 x 4 + medium 10
        assert result.score == 95
        assert result.summary.startswith("1 critical coverage gaps")

    def test_text_evidence_counts_as_present(self, rulebook, auto_classification):
        policy = PolicyDocument(
            extracted_text=(
                "Bodily Injury Liability $100,000. Property Damage Liability $50,000. "
                "Collision deductible $500. Comprehensive included. Uninsured motorist $100,000. "
                "Personal injury protection $10,000."
            )
        )
        result = CoverageGapAnalyzer(rulebook).analyze(policy, auto_classification, UserProfile())
        assert result.risks == []
        assert "No significant coverage gaps" in result.summary

    def test_asset_based_liability(self, rulebook, auto_policy, auto_classification, wealthy_profile):
        result = CoverageGapAnalyzer(rulebook).analyze(auto_policy, auto_classification, wealthy_profile)
        factor = _by_id(result)["insufficient-liability"]
        assert factor.severity is Severity.HIGH
        assert factor.recommended_value == 750_000
        assert "asset-protection" in factor.tags

    def test_unknown_type_has_no_expectations(self, rulebook):
        result = CoverageGapAnalyzer(rulebook).analyze(
            PolicyDocument(), ClassificationResult(), UserProfile()
        )
        assert result.success
        assert result.risks == []
        assert result.score == 0

    def test_failure_is_isolated(self, auto_policy, auto_classification):
        result = CoverageGapAnalyzer(_BrokenRulebook()).analyze(auto_policy, auto_classification, UserProfile())
        assert not result.success
        assert result.risks == []
        assert result.error == "rule table unavailable"


class TestHelpers:
    @pytest.mark.parametrize(
        ("assets", "income", "expected"),
        [(0, 0, 100_000), (70_000, 0, 150_000), (0, 120_000, 400_000), (500_000, 0, 750_000)],
    )
    def test_recommended_liability(self, assets, income, expected):
        assert recommended_liability(UserProfile(assets=assets, income=income)) == expected

    def test_name_matching_is_tolerant(self):
        assert matches_coverage_name("Uninsured/Underinsured Motorist", "uninsured motorist") is False
        assert matches_coverage_name("Uninsured Motorist Coverage", "uninsured motorist")
        assert matches_coverage_name("Bodily-Injury Liability", "bodily injury liability")
        assert not matches_coverage_name("", "collision")

    def test_structured_fields_take_precedence(self, rulebook):
        policy = PolicyDocument(
            extracted_text="Bodily injury liability $10,000",
            structured_fields={"liabilityLimits": "250,000/500,000"},
        )
        lines = extract_current_coverages(policy, rulebook.expected_coverages(PolicyType.AUTO))
        bodily = [line for line in lines if line.name == "Bodily Injury Liability"]
        assert len(bodily) == 1
        assert bodily[0].limit == 250_000
