"""LLM enrichment provider: wraps ``litellm.acompletion()``."""

from __future__ import annotations

import logging
from typing import Any

from policy_scout.core.config import EnrichmentConfig
from policy_scout.enrichment.parser import parse_enrichment_response
from policy_scout.enrichment.prompts import ENRICHMENT_PROMPT, ENRICHMENT_SYSTEM_PROMPT, FOCUS_AREAS
from policy_scout.enrichment.protocols import EnrichmentRequest
from policy_scout.exceptions import EnrichmentError
from policy_scout.models import EnrichmentResult, PolicyType
from policy_scout.parsing import format_money

log = logging.getLogger(__name__)

MAX_POLICY_TEXT_CHARS = 4000
TOP_FINDINGS = 5


class LLMEnrichmentProvider:
    """Sends the finished risk analysis to a chat model and parses its assessment.

    Timeouts and circuit breaking belong to the caller; this class only
    makes the call and raises :class:`EnrichmentError` when it goes wrong.
    """

    def __init__(self, config: EnrichmentConfig) -> None:
        self._config = config

    @property
    def model(self) -> str:
        if "/" in self._config.model or not self._config.provider:
            return self._config.model
        return f"{self._config.provider}/{self._config.model}"

    async def enrich(self, request: EnrichmentRequest) -> EnrichmentResult:
        from litellm import acompletion

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": build_messages(request),
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
            "api_key": self._config.api_key,
        }
        if self._config.base_url:
            kwargs["api_base"] = self._config.base_url
        if self._config.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await acompletion(**kwargs)
        except Exception as exc:
            raise EnrichmentError(f"LLM call failed: {exc}") from exc

        content = response.choices[0].message.content or ""
        if not content.strip():
            raise EnrichmentError("LLM returned an empty response")

        result = parse_enrichment_response(content)
        log.info(
            "Enrichment parsed via %s (rating=%s, confidence=%d)",
            result.method,
            result.summary.overall_rating,
            result.ai_confidence,
        )
        return result


def build_messages(request: EnrichmentRequest) -> list[dict[str, str]]:
    policy_type = request.classification.primary_type
    profile = request.risk_profile

    fields = "\n".join(f"- {k}: {v}" for k, v in sorted(request.policy.structured_fields.items()) if v)
    text = request.policy.extracted_text[:MAX_POLICY_TEXT_CHARS]
    policy_context = "\n".join(part for part in (fields, f"Document excerpt:\n{text}" if text else "") if part)

    top = sorted(profile.risk_factors, key=lambda f: f.severity.rank, reverse=True)[:TOP_FINDINGS]
    top_findings = "\n".join(f"  * [{f.severity.value}] {f.title}: {f.description}" for f in top) or "  * none"

    user = request.profile
    profile_lines = [
        f"- Annual income: {format_money(user.income)}" if user.income else "",
        f"- Assets: {format_money(user.assets)}" if user.assets else "",
        f"- Emergency fund: {format_money(user.emergency_fund)}" if user.emergency_fund else "",
        f"- Risk tolerance: {user.risk_tolerance.value}",
        f"- Family status: {user.family_status}",
        f"- Prior claims: {len(user.claim_history)}",
    ]

    prompt = ENRICHMENT_PROMPT.format(
        policy_label="insurance policy" if policy_type == PolicyType.UNKNOWN else f"{policy_type.value} insurance policy",
        policy_context=policy_context or "- no policy details extracted",
        risk_score=profile.overall_score,
        risk_level=profile.risk_level.value,
        critical_count=len(profile.critical_issues),
        top_findings=top_findings,
        profile_context="\n".join(line for line in profile_lines if line),
        focus_areas="\n".join(f"- {area}" for area in FOCUS_AREAS[policy_type]),
    )
    return [
        {"role": "system", "content": ENRICHMENT_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
