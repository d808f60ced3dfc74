"""Tests for the HTTP API: analyze, classify, health and error mapping."""

from __future__ import annotations

import base64
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.testclient import TestClient

from policy_scout.api.middleware.error_handler import register_error_handlers
from policy_scout.api.routes import analyze, health
from policy_scout.classification import PolicyClassifier
from policy_scout.core.config import AppSettings
from policy_scout.engine import RiskEngine
from policy_scout.exceptions import DocumentValidationError, EnrichmentError, RulebookError
from policy_scout.hooks import CircuitBreaker
from policy_scout.models import PipelineResponse, PipelineStage
from policy_scout.pipeline import AnalysisPipeline
from tests.fakes.fake_enricher import FailingEnricher, FakeEnricher

_POLICY_TEXT = (
    "Auto insurance policy for a private passenger car. Motor vehicle: automobile. "
    "Policy Number: AUTO-1. Insurance Company: Acme Mutual\n"
    "Bodily injury liability $25,000. Deductible: $2,500."
)


def _build_app(pipeline: object | None = None) -> FastAPI:
    """Minimal app with the real routers and a pipeline using a fake enricher."""
    settings = AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        app.state.settings = settings
        app.state.pipeline = pipeline or AnalysisPipeline(PolicyClassifier(), RiskEngine(), enricher=FakeEnricher())
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(health.router)
    app.include_router(analyze.router, prefix="/api")
    return app


def _document_payload(text: str = _POLICY_TEXT) -> dict[str, str]:
    return {
        "content_base64": base64.b64encode(text.encode()).decode(),
        "mime_type": "text/plain",
        "file_name": "policy.txt",
    }


class TestHealth:
    def test_health(self) -> None:
        with TestClient(_build_app()) as client:
            resp = client.get("/health")
            assert resp.status_code == 200
            assert resp.json() == {"status": "ok"}

    def test_enrichment_health_without_breaker(self) -> None:
        with TestClient(_build_app()) as client:
            resp = client.get("/health/enrichment")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "enabled": True, "breaker": None}

    def test_enrichment_health_reports_open_breaker(self) -> None:
        pipeline = AnalysisPipeline(
            PolicyClassifier(),
            RiskEngine(),
            enricher=FailingEnricher(),
            breaker=CircuitBreaker(failure_threshold=1, breaker_key="enrichment:test-model"),
        )
        with TestClient(_build_app(pipeline)) as client:
            assert client.post("/api/analyze", json={"manual_fields": {"policyType": "auto"}}).status_code == 200
            resp = client.get("/health/enrichment")

        body = resp.json()
        assert body["status"] == "degraded"
        assert body["breaker"] == {
            "key": "enrichment:test-model",
            "state": "open",
            "failures": 1,
            "last_error": "model unavailable",
        }


class _AbortingPipeline:
    """Pipeline whose run aborts after validation."""

    async def run(self, document, manual_fields, profile) -> PipelineResponse:
        return PipelineResponse(
            success=False,
            analysis_id="analysis-aborted",
            error="compilation exploded",
            failed_stage=PipelineStage.COMPILATION,
        )


class TestAnalyzeEndpoint:
    def test_full_analysis(self) -> None:
        with TestClient(_build_app()) as client:
            resp = client.post(
                "/api/analyze",
                json={
                    "document": _document_payload(),
                    "manual_fields": {"policyType": "auto"},
                    "profile": {"assets": 500000, "income": 120000, "emergencyFund": 500},
                },
            )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["analysis_id"].startswith("analysis-")
        result = body["result"]
        assert result["classification"]["primary_type"] == "auto"
        assert result["classification"]["is_confident"] is True
        assert result["enrichment"]["is_ai"] is True
        assert 0 <= result["overall_score"] <= 100
        assert result["document"]["structured_fields"]["policyNumber"] == "AUTO-1"

    def test_manual_only(self) -> None:
        with TestClient(_build_app()) as client:
            resp = client.post("/api/analyze", json={"manual_fields": {"policyType": "home", "premium": 900}})
        assert resp.status_code == 200
        assert resp.json()["result"]["document"]["provided"] is False

    def test_no_input_is_422(self) -> None:
        with TestClient(_build_app()) as client:
            resp = client.post("/api/analyze", json={})
        assert resp.status_code == 422
        body = resp.json()
        assert body["success"] is False
        assert body["failed_stage"] == "validation"
        assert body["result"] is None

    def test_unsupported_document_is_422(self) -> None:
        payload = {**_document_payload(), "mime_type": "application/zip", "file_name": "a.zip"}
        with TestClient(_build_app()) as client:
            resp = client.post("/api/analyze", json={"document": payload})
        assert resp.status_code == 422
        assert "not supported" in resp.json()["error"]

    def test_failure_after_validation_is_500(self) -> None:
        with TestClient(_build_app(_AbortingPipeline())) as client:
            resp = client.post("/api/analyze", json={"manual_fields": {"policyType": "auto"}})
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["failed_stage"] == "result_compilation"
        assert body["error"] == "compilation exploded"

    def test_bad_base64_is_400(self) -> None:
        with TestClient(_build_app()) as client:
            resp = client.post("/api/analyze", json={"document": {"content_base64": "***not base64***"}})
        assert resp.status_code == 400


class TestClassifyEndpoint:
    def test_classify(self) -> None:
        with TestClient(_build_app()) as client:
            resp = client.post(
                "/api/classify",
                json={"text": _POLICY_TEXT, "structured_fields": {"policyType": "auto", "coverageType": "auto"}},
            )
        assert resp.status_code == 200
        body = resp.json()
        assert body["classification"]["primary_type"] == "auto"
        assert body["explanation"][-1].startswith("Classified as Auto Insurance")

    def test_classify_empty_text(self) -> None:
        with TestClient(_build_app()) as client:
            resp = client.post("/api/classify", json={})
        assert resp.status_code == 200
        assert resp.json()["classification"]["primary_type"] == "unknown"


class TestErrorHandlers:
    def _app_raising(self, exc: Exception) -> FastAPI:
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/boom")
        async def boom() -> None:
            raise exc

        return app

    def test_validation_error_maps_to_422(self) -> None:
        client = TestClient(self._app_raising(DocumentValidationError("Validation failed: x", ["x"])))
        resp = client.get("/boom")
        assert resp.status_code == 422
        assert resp.json()["errors"] == ["x"]

    def test_rulebook_error_maps_to_500(self) -> None:
        client = TestClient(self._app_raising(RulebookError("bad rules")))
        resp = client.get("/boom")
        assert resp.status_code == 500
        assert resp.json()["type"] == "rulebook_error"

    def test_enrichment_error_maps_to_502(self) -> None:
        client = TestClient(self._app_raising(EnrichmentError("upstream down")))
        assert client.get("/boom").status_code == 502
