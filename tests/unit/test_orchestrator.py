"""Tests for the staged AnalysisPipeline."""

from __future__ import annotations

import asyncio

import pytest

from policy_scout.engine import RiskEngine
from policy_scout.hooks import CircuitBreaker
from policy_scout.intake import IntakeResult
from policy_scout.models import DocumentInput, EnrichmentResult, PipelineStage, PolicyType, ProgressEvent
from policy_scout.pipeline import STAGES, AnalysisPipeline
from tests.fakes.fake_analyzers import ExplodingAnalyzer
from tests.fakes.fake_enricher import FailingEnricher, FakeEnricher, SlowEnricher
from tests.fakes.fake_intake import ExplodingIntake, FakeIntake

_POLICY_TEXT = (
    "Auto insurance policy for a private passenger car. Motor vehicle: automobile. "
    "Bodily injury liability $25,000. Deductible: $2,500."
)
_MANUAL = {"policyNumber": "P-100", "insuranceProvider": "Acme Mutual", "policyType": "auto"}


def _make_document() -> DocumentInput:
    return DocumentInput(content=_POLICY_TEXT.encode(), mime_type="text/plain", file_name="policy.txt")


def _make_intake() -> FakeIntake:
    return FakeIntake(
        IntakeResult(
            extracted_text=_POLICY_TEXT,
            structured_fields={"liabilityLimits": "25,000", "deductible": "2,500", "policyType": "home"},
        )
    )


@pytest.fixture
def make_pipeline(classifier, rulebook):
    def _make(**kwargs) -> AnalysisPipeline:
        kwargs.setdefault("intake", _make_intake())
        return AnalysisPipeline(classifier, RiskEngine(rulebook=rulebook), **kwargs)

    return _make


class _ExplodingClassifier:
    threshold = 0.6

    def classify(self, text, fields):
        raise RuntimeError("classifier offline")


class TestValidationStage:
    @pytest.mark.asyncio
    async def test_no_input_fails_at_validation(self, make_pipeline):
        response = await make_pipeline().run()

        assert not response.success
        assert response.failed_stage is PipelineStage.VALIDATION
        assert response.result is None
        assert response.errors == ["Either a policy document or manual policy data must be provided"]
        assert response.stages[0].stage == "validation"
        assert response.stages[0].status == "failed"

    @pytest.mark.asyncio
    async def test_unsupported_document_fails(self, make_pipeline):
        document = DocumentInput(content=b"PK\x03\x04", mime_type="application/zip", file_name="a.zip")
        response = await make_pipeline().run(document, _MANUAL)

        assert not response.success
        assert response.failed_stage is PipelineStage.VALIDATION
        assert "not supported" in response.error

    @pytest.mark.asyncio
    async def test_invalid_profile_is_a_warning(self, make_pipeline):
        response = await make_pipeline().run(manual_fields=_MANUAL, profile={"claimHistory": "many"})

        assert response.success
        assert any(w.startswith("User profile ignored") for w in response.warnings)


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_runs_every_stage(self, make_pipeline):
        enricher = FakeEnricher()
        response = await make_pipeline(enricher=enricher).run(_make_document(), _MANUAL, {"income": 80_000})

        assert response.success
        assert response.analysis_id.startswith("analysis-")
        assert [s.stage for s in response.stages] == [s.value for s in STAGES]
        assert all(s.status == "ok" for s in response.stages)

        result = response.result
        assert result.analysis_id == response.analysis_id
        assert result.document.success
        assert result.classification.primary_type is PolicyType.AUTO
        assert result.risk_profile.success
        assert result.enrichment.is_ai
        assert result.prioritized_recommendations[0].id == "ai-1-add-umbrella"

    @pytest.mark.asyncio
    async def test_manual_fields_override_document_fields(self, make_pipeline):
        enricher = FakeEnricher()
        await make_pipeline(enricher=enricher).run(_make_document(), {**_MANUAL, "premium": 1200, "agent": None})

        fields = enricher.requests[0].policy.structured_fields
        assert fields["policyType"] == "auto"
        assert fields["premium"] == "1200"
        assert fields["deductible"] == "2,500"
        assert "agent" not in fields

    @pytest.mark.asyncio
    async def test_manual_only(self, make_pipeline):
        response = await make_pipeline().run(manual_fields=_MANUAL)

        assert response.success
        assert not response.result.document.provided
        assert response.result.confidence.factors.count("Poor document quality") == 0

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_isolated(self, make_pipeline):
        pipeline = make_pipeline()
        first, second = await asyncio.gather(
            pipeline.run(manual_fields=_MANUAL),
            pipeline.run(manual_fields={**_MANUAL, "policyType": "home"}),
        )

        assert first.analysis_id != second.analysis_id
        assert len(first.stages) == len(second.stages) == len(STAGES)


class TestDegradedStages:
    @pytest.mark.asyncio
    async def test_intake_failure_degrades(self, make_pipeline):
        response = await make_pipeline(intake=ExplodingIntake()).run(_make_document(), _MANUAL)

        assert response.success
        assert not response.result.document.success
        assert response.result.document.error == "OCR backend unreachable"
        assert "Document processing failed: OCR backend unreachable" in response.warnings

    @pytest.mark.asyncio
    async def test_intake_unsuccessful_result(self, make_pipeline):
        intake = FakeIntake(IntakeResult(success=False, error="unreadable scan"))
        response = await make_pipeline(intake=intake).run(_make_document(), _MANUAL)

        assert response.success
        assert "Document processing warning: unreadable scan" in response.warnings

    @pytest.mark.asyncio
    async def test_classification_failure_uses_declared_type(self, rulebook):
        pipeline = AnalysisPipeline(_ExplodingClassifier(), RiskEngine(rulebook=rulebook), _make_intake())
        response = await pipeline.run(manual_fields={**_MANUAL, "policyType": "home"})

        classification = response.result.classification
        assert classification.primary_type is PolicyType.HOME
        assert classification.method == "error-fallback"
        assert "Policy classification failed: classifier offline" in response.warnings

    @pytest.mark.asyncio
    async def test_all_analyzers_failing_uses_fallback_profile(self, classifier):
        pipeline = AnalysisPipeline(classifier, RiskEngine([ExplodingAnalyzer()]), _make_intake())
        response = await pipeline.run(_make_document(), _MANUAL)

        risk = response.result.risk_profile
        assert response.success
        assert risk.is_fallback
        assert risk.overall_score == 50
        assert "Risk analysis warning: All risk analyzers failed" in response.warnings

    @pytest.mark.asyncio
    async def test_unconfigured_enrichment(self, make_pipeline):
        response = await make_pipeline().run(manual_fields=_MANUAL)

        enrichment = response.result.enrichment
        assert not enrichment.success
        assert enrichment.method == "fallback"
        assert enrichment.error == "Enrichment is not configured"

    @pytest.mark.asyncio
    async def test_enrichment_failure(self, make_pipeline):
        response = await make_pipeline(enricher=FailingEnricher()).run(manual_fields=_MANUAL)

        assert response.success
        assert not response.result.enrichment.is_ai
        assert "AI analysis failed: model unavailable" in response.warnings

    @pytest.mark.asyncio
    async def test_unsuccessful_enrichment_result_replaced_by_fallback(self, make_pipeline):
        enricher = FakeEnricher(EnrichmentResult(success=False, error="quota exhausted"))
        response = await make_pipeline(enricher=enricher).run(manual_fields=_MANUAL)

        enrichment = response.result.enrichment
        assert response.success
        assert enrichment.is_ai is False
        assert enrichment.method == "fallback"
        assert enrichment.error == "quota exhausted"
        assert enrichment.key_findings[0].title == "AI Analysis Unavailable"
        assert "AI analysis warning: quota exhausted" in response.warnings

    @pytest.mark.asyncio
    async def test_unsuccessful_enrichment_without_error_text(self, make_pipeline):
        enricher = FakeEnricher(EnrichmentResult(success=False))
        response = await make_pipeline(enricher=enricher).run(manual_fields=_MANUAL)

        assert response.result.enrichment.error == "Enrichment failed"

    @pytest.mark.asyncio
    async def test_enrichment_timeout(self, make_pipeline):
        pipeline = make_pipeline(enricher=SlowEnricher(delay=1.0), enrichment_timeout=0.01)
        response = await pipeline.run(manual_fields=_MANUAL)

        assert response.success
        assert "timed out" in response.result.enrichment.error

    @pytest.mark.asyncio
    async def test_open_breaker_skips_enricher(self, make_pipeline):
        enricher = FailingEnricher()
        pipeline = make_pipeline(enricher=enricher, breaker=CircuitBreaker(failure_threshold=1))

        await pipeline.run(manual_fields=_MANUAL)
        response = await pipeline.run(manual_fields=_MANUAL)

        assert enricher.calls == 1
        assert response.success
        assert "Circuit breaker OPEN" in response.result.enrichment.error


class TestProgress:
    @pytest.mark.asyncio
    async def test_events_reach_completion(self, make_pipeline):
        events: list[ProgressEvent] = []
        await make_pipeline().run(manual_fields=_MANUAL, on_progress=events.append)

        assert len(events) == 2 * len(STAGES)
        assert events[0].overall_percent == 0
        assert events[1].overall_percent == 17
        assert events[-1].stage is PipelineStage.COMPILATION
        assert events[-1].overall_percent == 100
        overall = [e.overall_percent for e in events]
        assert overall == sorted(overall)

    @pytest.mark.asyncio
    async def test_async_observer_is_scheduled(self, make_pipeline):
        seen: list[str] = []

        async def observer(event: ProgressEvent) -> None:
            seen.append(event.message)

        await make_pipeline().run(manual_fields=_MANUAL, on_progress=observer)
        await asyncio.sleep(0.01)

        assert seen[-1] == "Analysis completed successfully"

    @pytest.mark.asyncio
    async def test_raising_observer_does_not_break_run(self, make_pipeline):
        def observer(event: ProgressEvent) -> None:
            raise ValueError("ui went away")

        response = await make_pipeline().run(manual_fields=_MANUAL, on_progress=observer)

        assert response.success

    @pytest.mark.asyncio
    async def test_failed_run_stops_emitting(self, make_pipeline):
        events: list[ProgressEvent] = []
        await make_pipeline().run(on_progress=events.append)

        assert [e.stage for e in events] == [PipelineStage.VALIDATION]
