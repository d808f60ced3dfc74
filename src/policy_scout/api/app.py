"""FastAPI application with lifespan management."""

from __future__ import annotations

import importlib.metadata
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from policy_scout.api.middleware.error_handler import register_error_handlers
from policy_scout.api.routes import analyze, health
from policy_scout.core.config import APIConfig, AppSettings
from policy_scout.core.startup_checks import validate_settings
from policy_scout.hooks import setup_logging
from policy_scout.pipeline import AnalysisPipeline


def _get_version() -> str:
    """Read package version from installed metadata, with dev fallback."""
    try:
        return importlib.metadata.version("policy-scout")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0-dev"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup/shutdown lifecycle."""
    settings = AppSettings()
    validate_settings(settings)
    setup_logging(settings.observability)

    app.state.settings = settings
    app.state.pipeline = AnalysisPipeline.from_settings(settings)
    yield


_api_config = APIConfig()

app = FastAPI(
    title=_api_config.title,
    description=_api_config.description,
    version=_get_version(),
    lifespan=lifespan,
)

register_error_handlers(app)
app.include_router(health.router)
app.include_router(analyze.router, prefix="/api")
