"""Fake risk analyzers for engine tests."""

from __future__ import annotations

import time

from policy_scout.models import AnalyzerResult, ClassificationResult, PolicyDocument, RiskFactor, UserProfile


class StaticAnalyzer:
    """Returns fixed factors, optionally after a delay to reorder completion."""

    def __init__(self, name: str, risks: list[RiskFactor], *, delay: float = 0.0) -> None:
        self.name = name
        self._risks = risks
        self._delay = delay

    def analyze(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> AnalyzerResult:
        if self._delay:
            time.sleep(self._delay)
        return AnalyzerResult(analyzer=self.name, success=True, risks=list(self._risks), score=10)


class ExplodingAnalyzer:
    """Raises from ``analyze``."""

    def __init__(self, name: str = "exploding") -> None:
        self.name = name

    def analyze(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> AnalyzerResult:
        raise RuntimeError(f"{self.name} blew up")


class DegradedAnalyzer:
    """Reports failure but still (wrongly) returns factors; the engine must drop them."""

    def __init__(self, name: str, risks: list[RiskFactor]) -> None:
        self.name = name
        self._risks = risks

    def analyze(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> AnalyzerResult:
        return AnalyzerResult(analyzer=self.name, success=False, risks=list(self._risks), error="partial data")
