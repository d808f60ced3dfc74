"""Turns an LLM reply into an :class:`EnrichmentResult`.

Replies are asked for as JSON. When the model ignores that, heuristic text
extraction recovers a rating, findings, recommendations and next steps at a
lower confidence.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from policy_scout.models import (
    EnrichmentFinding,
    EnrichmentResult,
    EnrichmentSummary,
    Priority,
    Recommendation,
    Severity,
)
from policy_scout.parsing import clamp, slugify

log = logging.getLogger(__name__)

MAX_FINDINGS = 5
MAX_RECOMMENDATIONS = 6
MAX_NEXT_STEPS = 6

DEFAULT_NEXT_STEPS = [
    "Review analysis results with your insurance agent",
    "Compare current coverage with recommendations",
    "Get quotes for suggested coverage changes",
    "Schedule an annual policy review",
]

_RATING = re.compile(r"(?:rating|grade)\W{0,5}([A-F][+-]?)(?![a-z])", re.I)
_SCORE = re.compile(r"(?:coverage|score)[^\n%]{0,40}?(\d{1,3})\s*%", re.I)
_RISK = re.compile(r"(?:risk level|overall risk|risk)[^\n]{0,40}?\b(low|medium|high|critical)\b", re.I)
_LIST_ITEM = re.compile(r"^\s*(?:\d+[.)]|[*•-])\s+(.+)$", re.M)
_RECOMMEND = re.compile(r"\b(?:recommend|suggest|advise|should|consider)\b", re.I)
_FINDING = re.compile(r"\b(?:gap|risk|issue|concern|missing|insufficient|inadequate|exposure)\b", re.I)


def extract_json(content: str) -> Any:
    """Parse JSON from an LLM reply, tolerating code fences and trailing commas."""
    text = content.strip()
    start = text.find("```json")
    if start != -1:
        end = text.rfind("```")
        text = text[start + 7 : end if end > start + 7 else None].strip()
    else:
        first, last = text.find("{"), text.rfind("}")
        if first != -1 and last > first:
            text = text[first : last + 1]

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(re.sub(r",\s*([\]}])", r"\1", text))
    except json.JSONDecodeError:
        log.debug("Enrichment reply is not JSON; falling back to text heuristics")
        return None


def parse_enrichment_response(content: str) -> EnrichmentResult:
    data = extract_json(content)
    if isinstance(data, dict) and data:
        return _from_json(data, content)
    return _from_text(content)


# ── JSON replies ────────────────────────────────────────────────────


def _from_json(data: dict[str, Any], raw: str) -> EnrichmentResult:
    findings = [
        EnrichmentFinding(
            title=str(item.get("title") or "Finding"),
            description=str(item.get("description") or ""),
            severity=_severity(item.get("severity")),
            finding_type=str(item.get("type") or "general"),
            recommendation=str(item.get("recommendation") or ""),
        )
        for item in _dicts(data.get("key_findings"))
    ][:MAX_FINDINGS]

    recommendations = [
        _recommendation(
            i,
            str(item.get("title") or "Recommendation"),
            str(item.get("description") or ""),
            _priority(item.get("priority")),
            str(item.get("impact") or ""),
        )
        for i, item in enumerate(_dicts(data.get("recommendations")))
    ][:MAX_RECOMMENDATIONS]

    steps = [str(s) for s in data.get("next_steps") or [] if str(s).strip()][:MAX_NEXT_STEPS]

    return EnrichmentResult(
        success=True,
        is_ai=True,
        method="llm-json",
        summary=EnrichmentSummary(
            overall_rating=str(data.get("overall_rating") or "B"),
            coverage_score=_int_0_100(data.get("coverage_score"), 75),
            risk_level=str(data.get("risk_level") or "medium").lower(),
        ),
        key_findings=findings,
        recommendations=recommendations,
        next_steps=steps or list(DEFAULT_NEXT_STEPS),
        ai_confidence=_int_0_100(data.get("confidence"), 70),
        raw_text=raw,
    )


# ── Free-text replies ───────────────────────────────────────────────


def _from_text(content: str) -> EnrichmentResult:
    summary = EnrichmentSummary()
    if match := _RATING.search(content):
        summary.overall_rating = match.group(1).upper()
    if match := _SCORE.search(content):
        summary.coverage_score = _int_0_100(match.group(1), 75)
    if match := _RISK.search(content):
        summary.risk_level = match.group(1).lower()

    items = [m.group(1).strip() for m in _LIST_ITEM.finditer(content)]

    findings: list[EnrichmentFinding] = []
    recommendations: list[Recommendation] = []
    steps: list[str] = []
    for item in items:
        if len(item) <= 15:
            continue
        if _RECOMMEND.search(item) and len(recommendations) < MAX_RECOMMENDATIONS:
            recommendations.append(
                _recommendation(len(recommendations), _title(item), item, _priority_from_text(item), "")
            )
        elif _FINDING.search(item) and len(findings) < MAX_FINDINGS:
            findings.append(
                EnrichmentFinding(
                    title=_title(item),
                    description=item,
                    severity=_severity_from_text(item),
                    finding_type=_finding_type(item),
                    recommendation="Review with an insurance professional",
                )
            )
        elif len(steps) < MAX_NEXT_STEPS:
            steps.append(item)

    if not findings:
        findings.append(
            EnrichmentFinding(
                title="Coverage Review Needed",
                description="Policy requires detailed review to identify potential gaps.",
                severity=Severity.MEDIUM,
                finding_type="gap",
                recommendation="Conduct a comprehensive coverage analysis.",
            )
        )
    if not recommendations:
        recommendations.append(
            _recommendation(
                0,
                "Policy Review",
                "Review policy terms and coverage details with your agent.",
                Priority.MEDIUM,
                "Improved coverage understanding",
            )
        )

    return EnrichmentResult(
        success=True,
        is_ai=True,
        method="llm-text",
        summary=summary,
        key_findings=findings,
        recommendations=recommendations,
        next_steps=steps or list(DEFAULT_NEXT_STEPS),
        ai_confidence=parsing_confidence(content),
        raw_text=content,
    )


def parsing_confidence(content: str) -> int:
    """How much structure the free-text reply had, 50-100."""
    confidence = 50
    if "1." in content or "•" in content:
        confidence += 20
    if "recommend" in content.lower():
        confidence += 15
    if "$" in content:
        confidence += 10
    if len(content) > 1000:
        confidence += 15
    return min(100, confidence)


# ── Helpers ─────────────────────────────────────────────────────────


def _dicts(value: Any) -> list[dict[str, Any]]:
    return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []


def _recommendation(index: int, title: str, description: str, priority: Priority, impact: str) -> Recommendation:
    return Recommendation(
        id=f"ai-{index + 1}-{slugify(title)[:40]}",
        title=title,
        description=description,
        priority=priority,
        impact=impact,
        source="ai-analysis",
    )


def _severity(value: Any) -> Severity:
    try:
        return Severity(str(value).lower())
    except ValueError:
        return Severity.MEDIUM


def _priority(value: Any) -> Priority:
    try:
        return Priority(str(value).lower())
    except ValueError:
        return Priority.MEDIUM


def _int_0_100(value: Any, default: int) -> int:
    try:
        return int(clamp(float(value)))
    except (TypeError, ValueError):
        return default


def _title(text: str) -> str:
    title = re.split(r"[.!?]", text, maxsplit=1)[0].strip().rstrip(":")
    return title if len(title) <= 50 else title[:47] + "..."


def _severity_from_text(text: str) -> Severity:
    lowered = text.lower()
    if "critical" in lowered or "urgent" in lowered:
        return Severity.CRITICAL
    if "high" in lowered or "important" in lowered:
        return Severity.HIGH
    if "medium" in lowered or "moderate" in lowered:
        return Severity.MEDIUM
    return Severity.LOW


def _priority_from_text(text: str) -> Priority:
    lowered = text.lower()
    if "immediate" in lowered or "urgent" in lowered:
        return Priority.HIGH
    if "soon" in lowered or "important" in lowered:
        return Priority.MEDIUM
    return Priority.LOW


def _finding_type(text: str) -> str:
    lowered = text.lower()
    for kind in ("gap", "risk", "opportunity"):
        if kind in lowered:
            return kind
    return "general"
