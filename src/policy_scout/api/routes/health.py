"""Health check endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check: always returns 200 if the process is up."""
    return {"status": "ok"}


@router.get("/health/enrichment")
async def enrichment_health(req: Request) -> dict[str, Any]:
    """Whether AI enrichment is configured, and its circuit breaker state.

    ``status`` is ``degraded`` while the breaker is not CLOSED; analyses still
    succeed then, with fallback enrichment.
    """
    pipeline = req.app.state.pipeline
    breaker = pipeline.breaker
    snapshot = breaker.snapshot() if breaker is not None else None
    degraded = snapshot is not None and snapshot["state"] != "closed"
    return {
        "status": "degraded" if degraded else "ok",
        "enabled": pipeline.enrichment_enabled,
        "breaker": snapshot,
    }
