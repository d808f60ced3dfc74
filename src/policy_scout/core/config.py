"""Nested pydantic-settings configuration for the application.

Each group reads its own ``PSCOUT_<GROUP>_*`` environment variables::

    export PSCOUT_ENRICHMENT_ENABLED=true
    export PSCOUT_ENRICHMENT_MODEL=openai/gpt-4o-mini
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class ClassifierConfig(BaseSettings):
    """Policy type classification.

    Env vars use ``PSCOUT_CLASSIFIER_`` prefix.
    """

    model_config = {"env_prefix": "PSCOUT_CLASSIFIER_"}

    confidence_threshold: float = 0.6


class RulesConfig(BaseSettings):
    """Rulebook location. ``None`` uses the packaged ``policy_rules.json``.

    Env vars use ``PSCOUT_RULES_`` prefix.
    """

    model_config = {"env_prefix": "PSCOUT_RULES_"}

    path: Path | None = None


class PipelineConfig(BaseSettings):
    """Input limits for the validation stage.

    Env vars use ``PSCOUT_PIPELINE_`` prefix.
    """

    model_config = {"env_prefix": "PSCOUT_PIPELINE_"}

    max_document_bytes: int = 10 * 1024 * 1024
    supported_formats: list[str] = Field(
        default_factory=lambda: ["pdf", "txt", "doc", "docx", "jpg", "png"]
    )


class EnrichmentConfig(BaseSettings):
    """LLM enrichment pass.

    Env vars use ``PSCOUT_ENRICHMENT_`` prefix.
    """

    model_config = {"env_prefix": "PSCOUT_ENRICHMENT_"}

    enabled: bool = False
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    api_key: str = "no-key"
    base_url: str | None = None
    temperature: float = 0.3
    max_tokens: int = 2000
    timeout: float = 30.0
    json_mode: bool = True


class ResilienceConfig(BaseSettings):
    """Circuit breaker around the enrichment call.

    Env vars use ``PSCOUT_RESILIENCE_`` prefix.
    """

    model_config = {"env_prefix": "PSCOUT_RESILIENCE_"}

    circuit_breaker_failure_threshold: int = 3
    circuit_breaker_recovery_timeout: float = 60.0


class ObservabilityConfig(BaseSettings):
    """Observability configuration.

    Env vars use ``PSCOUT_OBSERVABILITY_`` prefix.
    """

    model_config = {"env_prefix": "PSCOUT_OBSERVABILITY_"}

    service_name: str = "policy-scout"
    log_level: str = "INFO"


class APIConfig(BaseSettings):
    """HTTP API metadata.

    Env vars use ``PSCOUT_API_`` prefix.
    """

    model_config = {"env_prefix": "PSCOUT_API_"}

    title: str = "Policy Scout API"
    description: str = "Insurance policy classification and risk analysis"
    host: str = "0.0.0.0"
    port: int = 8080


class AppSettings(BaseSettings):
    """Top-level application settings aggregating all sub-configs.

    Each sub-config reads its own ``PSCOUT_<GROUP>_*`` env vars.
    """

    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    api: APIConfig = Field(default_factory=APIConfig)
