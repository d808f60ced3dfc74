"""Optional generative enrichment of a finished risk analysis."""

from policy_scout.enrichment.llm_provider import LLMEnrichmentProvider, build_messages
from policy_scout.enrichment.parser import extract_json, parse_enrichment_response, parsing_confidence
from policy_scout.enrichment.protocols import EnrichmentRequest, IEnrichmentProvider

__all__ = [
    "EnrichmentRequest",
    "IEnrichmentProvider",
    "LLMEnrichmentProvider",
    "build_messages",
    "extract_json",
    "parse_enrichment_response",
    "parsing_confidence",
]
