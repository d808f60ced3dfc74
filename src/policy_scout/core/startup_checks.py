"""Startup validation: fail-fast on critical misconfigurations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from policy_scout.core.config import AppSettings

log = logging.getLogger(__name__)

# Providers that use IAM/local auth and do not require an API key
_NO_KEY_PROVIDERS = frozenset({"bedrock", "ollama"})


def validate_settings(settings: AppSettings) -> None:
    """Validate application settings at startup. Raises ValueError on fatal misconfig."""
    _check_threshold(settings)
    _check_rules_path(settings)
    _check_enrichment(settings)
    _check_pipeline_limits(settings)


def _check_threshold(settings: AppSettings) -> None:
    threshold = settings.classifier.confidence_threshold
    if not 0.0 < threshold <= 1.0:
        raise ValueError(
            f"PSCOUT_CLASSIFIER_CONFIDENCE_THRESHOLD must be in (0, 1], got {threshold}."
        )


def _check_rules_path(settings: AppSettings) -> None:
    path = settings.rules.path
    if path is not None and not path.exists():
        raise ValueError(f"PSCOUT_RULES_PATH points to a missing file: {path}")


def _check_enrichment(settings: AppSettings) -> None:
    """Reject placeholder API keys when enrichment is on for a provider that needs one."""
    enrichment = settings.enrichment
    if not enrichment.enabled:
        return
    if enrichment.provider not in _NO_KEY_PROVIDERS and enrichment.api_key in ("no-key", ""):
        raise ValueError(
            f"PSCOUT_ENRICHMENT_API_KEY is required for provider '{enrichment.provider}'. "
            f"Set it via environment variable or disable enrichment."
        )
    if enrichment.timeout <= 0:
        raise ValueError("PSCOUT_ENRICHMENT_TIMEOUT must be positive.")


def _check_pipeline_limits(settings: AppSettings) -> None:
    if settings.pipeline.max_document_bytes <= 0:
        raise ValueError("PSCOUT_PIPELINE_MAX_DOCUMENT_BYTES must be positive.")
    if not settings.pipeline.supported_formats:
        log.warning("PSCOUT_PIPELINE_SUPPORTED_FORMATS is empty; every document upload will be rejected.")
