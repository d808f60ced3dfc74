"""Enrichment adapter protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from policy_scout.models import (
    AggregatedRiskProfile,
    ClassificationResult,
    EnrichmentResult,
    PolicyDocument,
    UserProfile,
)


@dataclass(frozen=True)
class EnrichmentRequest:
    """Everything an enrichment provider may draw on."""

    policy: PolicyDocument
    classification: ClassificationResult
    risk_profile: AggregatedRiskProfile
    profile: UserProfile


@runtime_checkable
class IEnrichmentProvider(Protocol):
    """Optional generative-text pass over a finished risk analysis.

    May be slow, may fail, may time out. The pipeline guards every call.
    """

    async def enrich(self, request: EnrichmentRequest) -> EnrichmentResult: ...
