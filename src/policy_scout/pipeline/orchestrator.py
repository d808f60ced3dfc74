"""Staged analysis pipeline.

``Validation -> DocumentProcessing -> Classification -> RiskAnalysis ->
Enrichment -> Compilation``. Only validation can fail a run; every later
stage failure is logged, recorded as a warning and replaced by a fallback.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from policy_scout.classification import PolicyClassifier
from policy_scout.core.config import AppSettings, PipelineConfig
from policy_scout.engine import RiskEngine
from policy_scout.enrichment import EnrichmentRequest, IEnrichmentProvider, LLMEnrichmentProvider
from policy_scout.exceptions import DocumentValidationError, EnrichmentTimeoutError
from policy_scout.hooks import CircuitBreaker, end_run, start_run, track_stage
from policy_scout.intake import IDocumentIntake, PlainTextIntake
from policy_scout.models import (
    AggregatedRiskProfile,
    ClassificationResult,
    DocumentInput,
    DocumentResult,
    EnrichmentResult,
    PipelineResponse,
    PipelineRun,
    PipelineStage,
    PolicyDocument,
    ProgressEvent,
    UserProfile,
)
from policy_scout.parsing import round_half_up
from policy_scout.pipeline.compiler import compile_result
from policy_scout.pipeline.fallbacks import (
    fallback_classification,
    fallback_enrichment,
    fallback_risk_profile,
)
from policy_scout.pipeline.validation import validate_inputs
from policy_scout.rules import load_rulebook

log = logging.getLogger(__name__)

STAGES: tuple[PipelineStage, ...] = tuple(PipelineStage)

ProgressObserver = Callable[[ProgressEvent], Any]

# Strong references to pending async observer callbacks
_observer_tasks: set[asyncio.Task[Any]] = set()


class _Progress:
    """Per-run progress emitter. Observers are notified, never awaited."""

    def __init__(self, run: PipelineRun, observer: ProgressObserver | None) -> None:
        self._run = run
        self._observer = observer
        self._completed: set[PipelineStage] = set()

    def emit(self, stage: PipelineStage, percent: int, message: str) -> None:
        if percent >= 100:
            self._completed.add(stage)
        event = ProgressEvent(
            stage=stage,
            percent=percent,
            message=message,
            overall_percent=round_half_up(len(self._completed) / len(STAGES) * 100),
        )
        self._run.progress.append(event)
        if self._observer is not None:
            _notify(self._observer, event)


def _notify(observer: ProgressObserver, event: ProgressEvent) -> None:
    try:
        outcome = observer(event)
    except Exception:
        log.warning("Progress observer raised on %s; ignoring", event.stage.value, exc_info=True)
        return
    if inspect.isawaitable(outcome):
        task = asyncio.ensure_future(outcome)
        _observer_tasks.add(task)
        task.add_done_callback(_observer_done)


def _observer_done(task: asyncio.Task[Any]) -> None:
    _observer_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        log.warning("Async progress observer failed: %s", task.exception())


class AnalysisPipeline:
    """Sequences intake, classification, risk analysis and enrichment.

    Holds only collaborators; every ``run`` builds its own ``PipelineRun``,
    so concurrent runs share no mutable state.
    """

    def __init__(
        self,
        classifier: PolicyClassifier | None = None,
        engine: RiskEngine | None = None,
        intake: IDocumentIntake | None = None,
        enricher: IEnrichmentProvider | None = None,
        *,
        breaker: CircuitBreaker | None = None,
        config: PipelineConfig | None = None,
        enrichment_timeout: float = 30.0,
    ) -> None:
        self._classifier = classifier or PolicyClassifier()
        self._engine = engine or RiskEngine()
        self._intake: IDocumentIntake = intake or PlainTextIntake()
        self._enricher = enricher
        self._breaker = breaker
        self._config = config or PipelineConfig()
        self._enrichment_timeout = enrichment_timeout

    @classmethod
    def from_settings(cls, settings: AppSettings) -> AnalysisPipeline:
        rulebook = load_rulebook(settings.rules.path)
        enricher = LLMEnrichmentProvider(settings.enrichment) if settings.enrichment.enabled else None
        return cls(
            classifier=PolicyClassifier(rulebook, threshold=settings.classifier.confidence_threshold),
            engine=RiskEngine(rulebook=rulebook),
            intake=PlainTextIntake(),
            enricher=enricher,
            breaker=CircuitBreaker.from_config(
                settings.resilience,
                model=enricher.model if enricher is not None else settings.enrichment.model,
            ),
            config=settings.pipeline,
            enrichment_timeout=settings.enrichment.timeout,
        )

    @property
    def classifier(self) -> PolicyClassifier:
        return self._classifier

    @property
    def breaker(self) -> CircuitBreaker | None:
        return self._breaker

    @property
    def enrichment_enabled(self) -> bool:
        return self._enricher is not None

    async def run(
        self,
        document: DocumentInput | None = None,
        manual_fields: Mapping[str, Any] | None = None,
        profile: UserProfile | Mapping[str, Any] | None = None,
        on_progress: ProgressObserver | None = None,
    ) -> PipelineResponse:
        """Execute one analysis. Never raises; failures come back in the response."""
        run = start_run()
        progress = _Progress(run, on_progress)
        fields = _string_fields(manual_fields)
        stage = PipelineStage.VALIDATION

        try:
            progress.emit(stage, 0, "Starting analysis validation...")
            try:
                with track_stage(stage.value):
                    run.warnings.extend(validate_inputs(document, fields, self._config))
            except DocumentValidationError as exc:
                run.errors.extend(exc.errors)
                log.warning("%s", exc)
                return self._failure(run, stage, str(exc))
            user = self._load_profile(profile, run)
            progress.emit(stage, 100, "Validation completed")

            stage = PipelineStage.DOCUMENT_PROCESSING
            progress.emit(stage, 0, "Processing document...")
            with track_stage(stage.value):
                doc = await self._process_document(document, run)
            progress.emit(stage, 100, "Document processing completed")

            policy = PolicyDocument(
                extracted_text=doc.extracted_text,
                structured_fields={**doc.structured_fields, **fields},
                file_name=doc.file_name,
                mime_type=doc.mime_type,
            )

            stage = PipelineStage.CLASSIFICATION
            progress.emit(stage, 0, "Classifying policy type...")
            with track_stage(stage.value):
                classification = self._classify(policy, fields, run)
            progress.emit(stage, 100, "Policy classification completed")

            stage = PipelineStage.RISK_ANALYSIS
            progress.emit(stage, 0, "Analyzing risks...")
            with track_stage(stage.value):
                risk = await self._analyze_risks(policy, classification, user, run)
            progress.emit(stage, 100, "Risk analysis completed")

            stage = PipelineStage.ENRICHMENT
            progress.emit(stage, 0, "Generating AI insights...")
            with track_stage(stage.value):
                enrichment = await self._enrich(
                    EnrichmentRequest(policy=policy, classification=classification, risk_profile=risk, profile=user),
                    run,
                )
            progress.emit(stage, 100, "AI analysis completed")

            stage = PipelineStage.COMPILATION
            progress.emit(stage, 0, "Compiling final results...")
            with track_stage(stage.value):
                result = compile_result(
                    analysis_id=run.analysis_id,
                    document=doc,
                    classification=classification,
                    risk=risk,
                    enrichment=enrichment,
                    profile=user,
                    structured_field_count=len(policy.structured_fields),
                )
            progress.emit(stage, 100, "Analysis completed successfully")
        except Exception as exc:
            log.exception("Analysis pipeline failed at %s", stage.value)
            run.errors.append(str(exc))
            return self._failure(run, stage, str(exc))

        finished = end_run() or run
        log.info(
            "Analysis %s completed in %.0fms (score=%d, rating=%s, warnings=%d)",
            finished.analysis_id,
            finished.total_duration_ms,
            result.overall_score,
            result.overall_rating,
            len(finished.warnings),
        )
        return PipelineResponse(
            success=True,
            analysis_id=finished.analysis_id,
            result=result,
            warnings=finished.warnings,
            stages=finished.stages,
            processing_time_ms=finished.total_duration_ms,
        )

    # ── Stages ──────────────────────────────────────────────────────

    async def _process_document(self, document: DocumentInput | None, run: PipelineRun) -> DocumentResult:
        if document is None:
            return DocumentResult(provided=False, success=False, error="No document provided")

        base = DocumentResult(provided=True, success=False, file_name=document.file_name, mime_type=document.mime_type)
        try:
            extracted = await self._intake.extract(document.content, document.mime_type, document.file_name)
        except Exception as exc:
            log.warning("Document intake raised: %s", exc, exc_info=True)
            run.warnings.append(f"Document processing failed: {exc}")
            return base.model_copy(update={"error": str(exc)})

        if not extracted.success:
            run.warnings.append(f"Document processing warning: {extracted.error}")
            return base.model_copy(update={"error": extracted.error})

        return base.model_copy(
            update={
                "success": True,
                "extracted_text": extracted.extracted_text,
                "structured_fields": dict(extracted.structured_fields),
            }
        )

    def _classify(self, policy: PolicyDocument, fields: Mapping[str, str], run: PipelineRun) -> ClassificationResult:
        try:
            result = self._classifier.classify(policy.extracted_text, policy.structured_fields)
        except Exception as exc:
            log.warning("Policy classification raised: %s", exc, exc_info=True)
            run.warnings.append(f"Policy classification failed: {exc}")
            return fallback_classification(fields, str(exc), threshold=self._classifier.threshold)

        if not result.success:
            run.warnings.append(f"Policy classification warning: {result.error}")
            return fallback_classification(fields, result.error, threshold=self._classifier.threshold)
        return result

    async def _analyze_risks(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        user: UserProfile,
        run: PipelineRun,
    ) -> AggregatedRiskProfile:
        try:
            profile = await self._engine.analyze_risks(policy, classification, user)
        except Exception as exc:
            log.warning("Risk analysis raised: %s", exc, exc_info=True)
            run.warnings.append(f"Risk analysis failed: {exc}")
            return fallback_risk_profile(classification.primary_type, str(exc))

        if not profile.success:
            run.warnings.append(f"Risk analysis warning: {profile.error}")
            return fallback_risk_profile(classification.primary_type, profile.error)
        for name in profile.degraded_analyzers:
            run.warnings.append(f"Risk analyzer {name} failed; its findings are missing")
        return profile

    async def _enrich(self, request: EnrichmentRequest, run: PipelineRun) -> EnrichmentResult:
        enricher = self._enricher
        if enricher is None:
            log.info("Enrichment not configured; using fallback")
            return fallback_enrichment(request.risk_profile, "Enrichment is not configured")

        try:
            if self._breaker is not None:
                result = await self._breaker.call(lambda: self._enrich_with_timeout(enricher, request))
            else:
                result = await self._enrich_with_timeout(enricher, request)
        except Exception as exc:
            log.warning("Enrichment failed: %s", exc)
            run.warnings.append(f"AI analysis failed: {exc}")
            return fallback_enrichment(request.risk_profile, str(exc))

        if not result.success:
            run.warnings.append(f"AI analysis warning: {result.error}")
            return fallback_enrichment(request.risk_profile, result.error or "Enrichment failed")
        return result

    async def _enrich_with_timeout(
        self,
        enricher: IEnrichmentProvider,
        request: EnrichmentRequest,
    ) -> EnrichmentResult:
        try:
            return await asyncio.wait_for(enricher.enrich(request), timeout=self._enrichment_timeout)
        except asyncio.TimeoutError as exc:
            raise EnrichmentTimeoutError(f"Enrichment timed out after {self._enrichment_timeout}s") from exc

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _load_profile(profile: UserProfile | Mapping[str, Any] | None, run: PipelineRun) -> UserProfile:
        if isinstance(profile, UserProfile):
            return profile
        try:
            return UserProfile.model_validate(dict(profile or {}))
        except ValidationError as exc:
            log.warning("User profile rejected: %s", exc)
            run.warnings.append(f"User profile ignored: {exc.error_count()} invalid fields")
            return UserProfile()

    @staticmethod
    def _failure(run: PipelineRun, stage: PipelineStage, error: str) -> PipelineResponse:
        run.status = "failed"
        finished = end_run() or run
        return PipelineResponse(
            success=False,
            analysis_id=finished.analysis_id,
            error=error,
            failed_stage=stage,
            warnings=finished.warnings,
            errors=finished.errors,
            stages=finished.stages,
            processing_time_ms=finished.total_duration_ms,
        )


def _string_fields(fields: Mapping[str, Any] | None) -> dict[str, str]:
    """Manual fields as the string-valued map the analyzers expect."""
    if not fields:
        return {}
    return {str(k): str(v) for k, v in fields.items() if v is not None and str(v).strip()}
