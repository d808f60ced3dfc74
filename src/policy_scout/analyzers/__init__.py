"""Independent risk analyzers run by the risk engine."""

from __future__ import annotations

from policy_scout.analyzers.base import BaseAnalyzer, IRiskAnalyzer
from policy_scout.analyzers.coverage_gap import CoverageGapAnalyzer
from policy_scout.analyzers.deductible import DeductibleAnalyzer
from policy_scout.analyzers.liability import LiabilityAnalyzer
from policy_scout.rules import PolicyRulebook


def default_analyzers(rulebook: PolicyRulebook | None = None) -> list[IRiskAnalyzer]:
    """The standard analyzer set, in reporting order."""
    return [
        CoverageGapAnalyzer(rulebook),
        LiabilityAnalyzer(rulebook),
        DeductibleAnalyzer(),
    ]


__all__ = [
    "BaseAnalyzer",
    "CoverageGapAnalyzer",
    "DeductibleAnalyzer",
    "IRiskAnalyzer",
    "LiabilityAnalyzer",
    "default_analyzers",
]
