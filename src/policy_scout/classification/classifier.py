"""Keyword and structured-pattern policy type classification.

Pure computation over the rulebook tables; no LLM calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from policy_scout.models import ClassificationResult, PolicyType, TypeCandidate
from policy_scout.parsing import clamp
from policy_scout.rules import PolicyRulebook, PolicyTypeRules, load_rulebook

log = logging.getLogger(__name__)

REQUIRED_WEIGHT = 0.4
OPTIONAL_WEIGHT = 0.3
STRUCTURED_WEIGHT = 0.3
EXCLUSION_PENALTY = 0.2

METHOD = "keyword-pattern-matching"


class PolicyClassifier:
    """Scores every configured policy type and picks the best above threshold."""

    def __init__(
        self,
        rulebook: PolicyRulebook | None = None,
        *,
        threshold: float | None = None,
    ) -> None:
        self._rulebook = rulebook or load_rulebook()
        self._threshold = threshold if threshold is not None else self._rulebook.classification_threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    def classify(
        self,
        text: str | None,
        structured_fields: Mapping[str, Any] | None = None,
    ) -> ClassificationResult:
        """Rank policy types for the given text and fields. Never raises."""
        try:
            candidates = self._score_all(text, structured_fields)
        except Exception as exc:
            log.exception("Policy classification failed")
            return ClassificationResult(
                primary_type=PolicyType.UNKNOWN,
                confidence=0.0,
                method=METHOD,
                threshold=self._threshold,
                success=False,
                error=str(exc),
            )

        # Stable sort keeps rulebook order among ties
        candidates.sort(key=lambda c: c.confidence, reverse=True)
        top = candidates[0] if candidates else None
        confidence = top.confidence if top else 0.0
        primary = top.policy_type if top and confidence >= self._threshold else PolicyType.UNKNOWN

        log.debug("Classified policy as %s (confidence %.2f)", primary.value, confidence)
        return ClassificationResult(
            primary_type=primary,
            confidence=confidence,
            candidates=candidates,
            method=METHOD,
            threshold=self._threshold,
        )

    def explain(self, result: ClassificationResult, text: str | None) -> list[str]:
        """Human-readable reasons for the primary type."""
        rules = self._rulebook.rules_for(result.primary_type)
        if rules is None:
            return [
                f"No policy type reached the {self._threshold:.0%} confidence threshold "
                f"(best score {result.confidence:.0%})"
            ]

        lowered = (text or "").lower()
        reasons: list[str] = []
        found_required = [kw for kw in rules.required_keywords if kw in lowered]
        if found_required:
            reasons.append(f"Found key terms: {', '.join(found_required)}")
        found_optional = [kw for kw in rules.optional_keywords if kw in lowered]
        if found_optional:
            reasons.append(f"Found related terms: {', '.join(found_optional[:5])}")
        found_excluded = [kw for kw in rules.exclusion_keywords if kw in lowered]
        if found_excluded:
            reasons.append(f"Conflicting terms lowered the score: {', '.join(found_excluded)}")
        reasons.append(f"Classified as {rules.label} with {result.confidence:.0%} confidence")
        return reasons

    # ── Scoring ─────────────────────────────────────────────────────

    def _score_all(
        self,
        text: str | None,
        structured_fields: Mapping[str, Any] | None,
    ) -> list[TypeCandidate]:
        lowered = text.lower() if isinstance(text, str) else ""
        fields = dict(structured_fields) if isinstance(structured_fields, Mapping) else {}

        return [
            TypeCandidate(
                policy_type=policy_type,
                label=rules.label,
                category=rules.category,
                confidence=self.score_type(rules, lowered, fields),
            )
            for policy_type, rules in self._rulebook.policy_types.items()
        ]

    @staticmethod
    def score_type(rules: PolicyTypeRules, text: str, fields: Mapping[str, Any]) -> float:
        """Weighted score in [0, 1] for one type against lowercased text."""
        score = 0.0
        total_weight = 0.0

        if rules.required_keywords:
            found = sum(1 for kw in rules.required_keywords if kw in text)
            score += found / len(rules.required_keywords) * REQUIRED_WEIGHT
            total_weight += REQUIRED_WEIGHT

        if rules.optional_keywords:
            found = sum(1 for kw in rules.optional_keywords if kw in text)
            score += min(found / len(rules.optional_keywords), 1.0) * OPTIONAL_WEIGHT
            total_weight += OPTIONAL_WEIGHT

        if rules.exclusion_keywords and any(kw in text for kw in rules.exclusion_keywords):
            score -= EXCLUSION_PENALTY

        if rules.structured_patterns:
            matched = sum(
                1
                for field_name, patterns in rules.structured_patterns.items()
                if _field_matches(fields.get(field_name), patterns)
            )
            score += matched / len(rules.structured_patterns) * STRUCTURED_WEIGHT
            total_weight += STRUCTURED_WEIGHT

        if total_weight == 0:
            return 0.0
        return clamp(score / total_weight, 0.0, 1.0)


def _field_matches(value: Any, patterns: list[str]) -> bool:
    if value is None:
        return False
    lowered = str(value).lower()
    return any(pattern.lower() in lowered for pattern in patterns)
