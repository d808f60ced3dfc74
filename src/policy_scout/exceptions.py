"""Exception hierarchy for policy-scout."""


class PolicyScoutError(Exception):
    """Base exception for all policy-scout errors."""


class RulebookError(PolicyScoutError):
    """Raised when the policy rulebook is missing, malformed or incomplete."""


class DocumentValidationError(PolicyScoutError):
    """Raised when pipeline input fails validation. The only fatal pipeline error."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class IntakeError(PolicyScoutError):
    """Raised when document text/field extraction fails."""


class ClassificationError(PolicyScoutError):
    """Raised when policy type classification cannot produce a result."""


class AnalyzerError(PolicyScoutError):
    """Raised by a risk analyzer that cannot complete its checks."""

    def __init__(self, analyzer: str, message: str) -> None:
        super().__init__(f"{analyzer}: {message}")
        self.analyzer = analyzer


class EnrichmentError(PolicyScoutError):
    """Raised when the generative enrichment call fails."""


class EnrichmentTimeoutError(EnrichmentError):
    """Enrichment did not finish within its timeout."""


class CircuitOpenError(EnrichmentError):
    """Enrichment short-circuited because the breaker is OPEN."""

    def __init__(self, message: str, failure_count: int = 0) -> None:
        super().__init__(message)
        self.failure_count = failure_count
