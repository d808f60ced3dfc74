"""End-to-end pipeline run over a plain-text auto policy with the packaged rulebook."""

from __future__ import annotations

import pytest

from policy_scout.core.config import AppSettings, EnrichmentConfig
from policy_scout.models import (
    ComplianceStatus,
    ConfidenceLevel,
    DocumentInput,
    PolicyType,
    RiskLevel,
    Severity,
)
from policy_scout.pipeline import AnalysisPipeline
from tests.fakes.fake_enricher import FakeEnricher

pytestmark = pytest.mark.integration

_POLICY_TEXT = (
    "Auto insurance policy for a private passenger car. Motor vehicle: automobile. "
    "Bodily injury liability $25,000. Deductible: $2,500."
)
_MANUAL = {"policyType": "auto", "coverageType": "auto"}
_PROFILE = {"assets": 500000, "income": 120000, "emergencyFund": 500}


def _document() -> DocumentInput:
    return DocumentInput(content=_POLICY_TEXT.encode(), mime_type="text/plain", file_name="auto.txt")


@pytest.fixture
def pipeline() -> AnalysisPipeline:
    return AnalysisPipeline.from_settings(AppSettings(enrichment=EnrichmentConfig(enabled=False)))


class TestAutoPolicyWithoutEnrichment:
    @pytest.mark.asyncio
    async def test_full_run(self, pipeline):
        response = await pipeline.run(_document(), _MANUAL, _PROFILE)

        assert response.success
        result = response.result

        assert result.document.structured_fields == {"liabilityLimits": "25,000", "deductible": "2,500"}
        assert result.classification.primary_type is PolicyType.AUTO
        assert result.classification.confidence == pytest.approx(0.7545, abs=1e-4)

        risk = result.risk_profile
        assert len(risk.risk_factors) == 14
        by_source = {}
        for factor in risk.risk_factors:
            by_source.setdefault(factor.source, []).append(factor.id)
        assert len(by_source["coverage_gap"]) == 7
        assert len(by_source["liability"]) == 6
        assert by_source["deductible"] == ["unaffordable-deductible-general"]

        assert risk.overall_score == 64
        assert risk.risk_level is RiskLevel.HIGH
        assert {f.id for f in risk.critical_issues} == {
            "missing-property-damage-liability",
            "inadequate-asset-protection",
        }
        assert risk.compliance_status is ComplianceStatus.COMPLIANT
        assert [f.id for f in risk.opportunities] == ["umbrella-policy-recommended"]

        assert result.overall_score == 65
        assert result.overall_rating == "C"
        assert result.completeness == 75
        assert result.reliability == 100
        assert result.confidence.score == 70
        assert result.confidence.level is ConfidenceLevel.MEDIUM

        assert [r.id for r in result.prioritized_recommendations] == [
            "rec-coverage_gaps",
            "rec-liability_limits",
            "rec-deductible_risks",
            "rec-professional-review",
        ]
        assert len(result.action_plan) == 4
        assert {i.insight_type for i in result.key_insights} == {"critical", "opportunity"}

        assert "File is very small and may not contain sufficient data" in response.warnings
        assert "Policy number is required" in response.warnings
        assert "Insurance provider is required" in response.warnings

    @pytest.mark.asyncio
    async def test_run_is_reproducible(self, pipeline):
        first = await pipeline.run(_document(), _MANUAL, _PROFILE)
        second = await pipeline.run(_document(), _MANUAL, _PROFILE)

        assert first.analysis_id != second.analysis_id
        assert first.result.risk_profile.risk_factors == second.result.risk_profile.risk_factors
        assert first.result.overall_score == second.result.overall_score


class TestAutoPolicyWithEnrichment:
    @pytest.mark.asyncio
    async def test_enrichment_lifts_score_and_confidence(self):
        enricher = FakeEnricher()
        pipeline = AnalysisPipeline(enricher=enricher)

        response = await pipeline.run(_document(), _MANUAL, _PROFILE)

        result = response.result
        # 75 - 10 + (80 - 50) / 10
        assert result.overall_score == 68
        assert result.completeness == 100
        assert result.confidence.score == 95
        assert result.prioritized_recommendations[0].id == "ai-1-add-umbrella"
        assert any(f.severity is Severity.CRITICAL for f in result.enrichment.key_findings)
        assert enricher.requests[0].risk_profile.overall_score == 64
