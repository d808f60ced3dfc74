"""Policy analysis and classification endpoints."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field

from policy_scout.models import ClassificationResult, DocumentInput, PipelineResponse, PipelineStage

log = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


class DocumentPayload(BaseModel):
    """A policy document sent inline as base64."""

    content_base64: str
    mime_type: str = "text/plain"
    file_name: str = ""


class AnalyzeRequest(BaseModel):
    """Request to run the full analysis pipeline."""

    document: DocumentPayload | None = None
    manual_fields: dict[str, Any] = Field(default_factory=dict)
    profile: dict[str, Any] = Field(default_factory=dict)


class ClassifyRequest(BaseModel):
    """Request to classify policy text without running the risk analysis."""

    text: str = ""
    structured_fields: dict[str, Any] = Field(default_factory=dict)


class ClassifyResponse(BaseModel):
    classification: ClassificationResult
    explanation: list[str] = Field(default_factory=list)


@router.post("/analyze", response_model=PipelineResponse)
async def analyze(request: AnalyzeRequest, req: Request, http_response: Response) -> PipelineResponse:
    """Run the analysis pipeline.

    Validation failures come back with ``success=false``, ``failed_stage``
    set and status 422. Later stages degrade instead of failing; an unexpected
    error that still aborts the run is a 500 with the same body.
    """
    document = None
    if request.document is not None:
        try:
            content = base64.b64decode(request.document.content_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Document content is not valid base64: {exc}") from exc
        document = DocumentInput(
            content=content,
            mime_type=request.document.mime_type,
            file_name=request.document.file_name,
        )

    pipeline = req.app.state.pipeline
    result: PipelineResponse = await pipeline.run(document, request.manual_fields, request.profile)
    if not result.success:
        if result.failed_stage == PipelineStage.VALIDATION:
            log.info("Analysis %s rejected at validation", result.analysis_id)
            http_response.status_code = 422
        else:
            log.error("Analysis %s failed at %s: %s", result.analysis_id, result.failed_stage, result.error)
            http_response.status_code = 500
    return result


@router.post("/classify", response_model=ClassifyResponse)
async def classify(request: ClassifyRequest, req: Request) -> ClassifyResponse:
    """Classify policy text and explain the winning type."""
    classifier = req.app.state.pipeline.classifier
    result = classifier.classify(request.text, request.structured_fields)
    return ClassifyResponse(classification=result, explanation=classifier.explain(result, request.text))
