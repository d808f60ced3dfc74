"""Analyzer protocol and the shared failure-isolating base class."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import ClassVar, Protocol, runtime_checkable

from policy_scout.models import (
    AnalyzerResult,
    ClassificationResult,
    PolicyDocument,
    RiskFactor,
    Severity,
    UserProfile,
)

log = logging.getLogger(__name__)


@runtime_checkable
class IRiskAnalyzer(Protocol):
    """Anything the risk engine can run against a policy."""

    name: str

    def analyze(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> AnalyzerResult: ...


class BaseAnalyzer(ABC):
    """Runs :meth:`_check` and turns its factors into an :class:`AnalyzerResult`.

    Subclasses set ``name`` and ``severity_weights``. An exception inside a
    check yields ``success=False`` with no factors rather than a partial list.
    """

    name: ClassVar[str] = "analyzer"
    severity_weights: ClassVar[dict[Severity, int]] = {}

    def analyze(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> AnalyzerResult:
        started = time.perf_counter()
        try:
            risks = self._check(policy, classification, profile)
        except Exception as exc:
            log.exception("Analyzer %s failed", self.name)
            return AnalyzerResult(
                analyzer=self.name,
                success=False,
                summary=f"{self.name} analysis failed",
                error=str(exc),
                metadata={"duration_ms": (time.perf_counter() - started) * 1000},
            )

        score = self.score(risks)
        return AnalyzerResult(
            analyzer=self.name,
            success=True,
            risks=risks,
            score=score,
            summary=self.summarize(risks, score),
            metadata={
                "risk_count": len(risks),
                "policy_type": classification.primary_type.value,
                "duration_ms": (time.perf_counter() - started) * 1000,
            },
        )

    def score(self, risks: list[RiskFactor]) -> int:
        """min(100, sum of severity weights)."""
        return min(100, sum(self.severity_weights[r.severity] for r in risks))

    @abstractmethod
    def _check(
        self,
        policy: PolicyDocument,
        classification: ClassificationResult,
        profile: UserProfile,
    ) -> list[RiskFactor]:
        """Run every check and return the factors found."""

    @abstractmethod
    def summarize(self, risks: list[RiskFactor], score: int) -> str: ...
