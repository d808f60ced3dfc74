"""Global exception handlers mapping domain exceptions to HTTP responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from policy_scout.exceptions import (
    DocumentValidationError,
    EnrichmentError,
    PolicyScoutError,
    RulebookError,
)


def register_error_handlers(app: FastAPI) -> None:
    """Register exception-to-HTTP-status mappings."""

    @app.exception_handler(DocumentValidationError)
    async def handle_validation_error(request: Request, exc: DocumentValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": str(exc), "type": "validation_error", "errors": exc.errors},
        )

    @app.exception_handler(RulebookError)
    async def handle_rulebook_error(request: Request, exc: RulebookError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": str(exc), "type": "rulebook_error"})

    @app.exception_handler(EnrichmentError)
    async def handle_enrichment_error(request: Request, exc: EnrichmentError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"error": str(exc), "type": "enrichment_error"})

    @app.exception_handler(PolicyScoutError)
    async def handle_generic_error(request: Request, exc: PolicyScoutError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": str(exc), "type": "policy_scout_error"})
