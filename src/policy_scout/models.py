"""Core data models for the risk analysis pipeline."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from policy_scout.parsing import SplitLimits, parse_date, parse_limits, parse_money

# ── Closed vocabularies ─────────────────────────────────────────────


class Severity(str, Enum):
    """Impact weight of a risk factor, ordered least to most severe."""

    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = list(Severity)


class Urgency(str, Enum):
    """Time sensitivity, independent of severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    IMMEDIATE = "immediate"


class RiskCategory(str, Enum):
    COVERAGE_GAPS = "coverage_gaps"
    LIABILITY_LIMITS = "liability_limits"
    DEDUCTIBLE_RISKS = "deductible_risks"
    POLICY_TERMS = "policy_terms"
    COMPLIANCE = "compliance"
    FINANCIAL_RISK = "financial_risk"
    OPTIMIZATION = "optimization"


class RiskType(str, Enum):
    RISK = "risk"
    GAP = "gap"
    OPPORTUNITY = "opportunity"
    COMPLIANCE = "compliance"
    AWARENESS = "awareness"


class RiskLevel(str, Enum):
    """Overall risk band derived from the aggregated score."""

    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """0 for the most pressing priority."""
        return _PRIORITY_ORDER.index(self)


_PRIORITY_ORDER = list(Priority)


class PolicyType(str, Enum):
    AUTO = "auto"
    HOME = "home"
    RENTERS = "renters"
    LIFE = "life"
    HEALTH = "health"
    DISABILITY = "disability"
    UMBRELLA = "umbrella"
    BUSINESS = "business"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> PolicyType | None:
        """Lenient lookup for user-declared types such as ``"Auto"`` or ``"renters insurance"``."""
        if value is None:
            return None
        text = str(value).strip().lower()
        if not text:
            return None
        try:
            return cls(text)
        except ValueError:
            pass
        for member in cls:
            if member is not cls.UNKNOWN and member.value in text:
                return member
        return None


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non-compliant"
    REVIEW_NEEDED = "review-needed"


class RiskTolerance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DocumentQuality(str, Enum):
    GOOD = "good"
    POOR = "poor"
    NONE = "none"


class PipelineStage(str, Enum):
    """Ordered pipeline stages."""

    VALIDATION = "validation"
    DOCUMENT_PROCESSING = "document_processing"
    CLASSIFICATION = "policy_classification"
    RISK_ANALYSIS = "risk_analysis"
    ENRICHMENT = "enrichment"
    COMPILATION = "result_compilation"


# ── Risk factors ────────────────────────────────────────────────────


class RiskFactor(BaseModel):
    """One identified issue, gap or opportunity. Immutable once emitted."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: RiskCategory
    severity: Severity
    urgency: Urgency = Urgency.MEDIUM
    risk_type: RiskType = RiskType.RISK
    title: str
    description: str = ""
    recommendation: str = ""
    potential_impact: str = ""
    estimated_cost: float | None = None
    potential_savings: float | None = None
    current_value: float | None = None
    recommended_value: float | None = None
    source: str = ""
    tags: tuple[str, ...] = ()
    details: dict[str, Any] = Field(default_factory=dict)

    def with_source(self, source: str) -> RiskFactor:
        """Return a copy tagged with the originating analyzer."""
        return self.model_copy(update={"source": source})

    @property
    def is_opportunity(self) -> bool:
        return self.risk_type == RiskType.OPPORTUNITY or self.category == RiskCategory.OPTIMIZATION


class AnalyzerResult(BaseModel):
    """Output of one analyzer for one run."""

    model_config = ConfigDict(frozen=True)

    analyzer: str
    success: bool
    risks: list[RiskFactor] = Field(default_factory=list)
    score: int = Field(default=0, ge=0, le=100)
    summary: str = ""
    error: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class Recommendation(BaseModel):
    id: str
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    category: RiskCategory | None = None
    timeframe: str = ""
    actions: list[str] = Field(default_factory=list)
    impact: str = ""
    source: str = "risk-analysis"
    related_factors: list[str] = Field(default_factory=list)


class CategorySummary(BaseModel):
    category: RiskCategory
    risks: list[RiskFactor] = Field(default_factory=list)
    total_score: float = 0.0
    highest_severity: Severity | None = None
    count: int = 0


class PriorityMatrix(BaseModel):
    immediate: list[RiskFactor] = Field(default_factory=list)
    high: list[RiskFactor] = Field(default_factory=list)
    medium: list[RiskFactor] = Field(default_factory=list)
    low: list[RiskFactor] = Field(default_factory=list)


class FinancialImpact(BaseModel):
    potential_loss: float = 0.0
    potential_savings: float = 0.0
    annual_cost: float = 0.0
    net_impact: float = 0.0
    summary: str = ""


class RiskTrend(BaseModel):
    direction: str
    change: float
    percentage_change: float


class AggregatedRiskProfile(BaseModel):
    """Union of all analyzer findings with the derived score and verdicts."""

    success: bool = True
    policy_type: PolicyType = PolicyType.UNKNOWN
    overall_score: int = Field(default=0, ge=0, le=100)
    risk_level: RiskLevel = RiskLevel.MINIMAL
    risk_factors: list[RiskFactor] = Field(default_factory=list)
    critical_issues: list[RiskFactor] = Field(default_factory=list)
    opportunities: list[RiskFactor] = Field(default_factory=list)
    compliance_status: ComplianceStatus = ComplianceStatus.COMPLIANT
    recommendations: list[Recommendation] = Field(default_factory=list)
    analyzer_results: dict[str, AnalyzerResult] = Field(default_factory=dict)
    degraded_analyzers: list[str] = Field(default_factory=list)
    category_breakdown: dict[str, CategorySummary] = Field(default_factory=dict)
    priority_matrix: PriorityMatrix = Field(default_factory=PriorityMatrix)
    financial_impact: FinancialImpact = Field(default_factory=FinancialImpact)
    summary: str = ""
    is_fallback: bool = False
    error: str = ""


# ── Classification ──────────────────────────────────────────────────


class TypeCandidate(BaseModel):
    policy_type: PolicyType
    label: str = ""
    category: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ClassificationResult(BaseModel):
    """Outcome of policy type classification.

    ``primary_type`` is ``unknown`` whenever the top candidate scores below
    ``threshold``; the ranked ``candidates`` are kept either way.
    """

    primary_type: PolicyType = PolicyType.UNKNOWN
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    candidates: list[TypeCandidate] = Field(default_factory=list)
    method: str = "keyword-pattern-matching"
    threshold: float = 0.6
    success: bool = True
    error: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_confident(self) -> bool:
        return self.confidence >= self.threshold

    @computed_field  # type: ignore[prop-decorator]
    @property
    def suggested_types(self) -> list[PolicyType]:
        return [c.policy_type for c in self.candidates if c.confidence > 0][:3]


# ── Pipeline inputs ─────────────────────────────────────────────────


class PolicyDocument(BaseModel):
    """Text and string-valued fields the analyzers read."""

    extracted_text: str = ""
    structured_fields: dict[str, str] = Field(default_factory=dict)
    file_name: str = ""
    mime_type: str = ""

    @property
    def text(self) -> str:
        return self.extracted_text.lower()

    def field(self, name: str) -> str:
        return self.structured_fields.get(name, "") or ""

    def money(self, name: str, default: float = 0.0) -> float:
        return parse_money(self.structured_fields.get(name), default)

    def limits(self, name: str) -> SplitLimits:
        return parse_limits(self.structured_fields.get(name))

    def has_field(self, name: str) -> bool:
        return bool(self.field(name).strip())


class DocumentInput(BaseModel):
    """Raw document bytes handed to the pipeline by the caller."""

    content: bytes
    mime_type: str = "application/octet-stream"
    file_name: str = ""

    @property
    def size(self) -> int:
        return len(self.content)


class ClaimRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    date: str = ""
    amount: float = 0.0
    description: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> float:
        return parse_money(value)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def occurred_on(self) -> date | None:
        return parse_date(self.date)


_MONEY_FIELDS = ("income", "assets", "home_value", "emergency_fund")


class UserProfile(BaseModel):
    """Optional financial profile of the policyholder.

    Accepts camelCase keys (``emergencyFund``) as well as snake_case. Money
    values may be strings; unparseable values become ``0``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    income: float = 0.0
    assets: float = 0.0
    home_value: float = 0.0
    emergency_fund: float = 0.0
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM
    family_status: str = "unspecified"
    claim_history: list[ClaimRecord] = Field(default_factory=list)
    has_pool: bool = False
    has_rental_property: bool = False
    has_teen_drivers: bool = False

    @field_validator(*_MONEY_FIELDS, mode="before")
    @classmethod
    def _parse_money_fields(cls, value: Any) -> float:
        return parse_money(value)

    @field_validator("risk_tolerance", mode="before")
    @classmethod
    def _parse_tolerance(cls, value: Any) -> RiskTolerance:
        try:
            return RiskTolerance(str(value).strip().lower())
        except ValueError:
            return RiskTolerance.MEDIUM

    @field_validator("family_status", mode="before")
    @classmethod
    def _parse_family_status(cls, value: Any) -> str:
        return str(value).strip() if value else "unspecified"

    @property
    def monthly_income(self) -> float:
        return self.income / 12

    @property
    def populated_field_count(self) -> int:
        return len(self.model_fields_set)


# ── Enrichment ──────────────────────────────────────────────────────


class EnrichmentFinding(BaseModel):
    title: str
    description: str = ""
    severity: Severity = Severity.MEDIUM
    finding_type: str = "general"
    recommendation: str = ""


class EnrichmentSummary(BaseModel):
    overall_rating: str = "B"
    coverage_score: int = Field(default=75, ge=0, le=100)
    risk_level: str = "medium"


class EnrichmentResult(BaseModel):
    """Generative-text pass output; ``is_ai`` is ``False`` for fallbacks."""

    success: bool = True
    is_ai: bool = True
    method: str = "llm"
    summary: EnrichmentSummary = Field(default_factory=EnrichmentSummary)
    key_findings: list[EnrichmentFinding] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    ai_confidence: int = Field(default=0, ge=0, le=100)
    raw_text: str = ""
    error: str = ""


# ── Pipeline run and result ─────────────────────────────────────────


class DocumentResult(BaseModel):
    provided: bool = False
    success: bool = False
    extracted_text: str = ""
    structured_fields: dict[str, str] = Field(default_factory=dict)
    file_name: str = ""
    mime_type: str = ""
    error: str = ""


class ProgressEvent(BaseModel):
    stage: PipelineStage
    percent: int = Field(ge=0, le=100)
    message: str = ""
    overall_percent: int = Field(ge=0, le=100)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StageMetrics(BaseModel):
    """Timing and outcome of one pipeline stage."""

    stage: str
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_ms: float = 0.0
    status: str = "ok"
    error: str = ""


class PipelineRun(BaseModel):
    """One execution of the pipeline. Discarded after the caller reads the result."""

    analysis_id: str
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: datetime | None = None
    status: str = "running"
    total_duration_ms: float = 0.0
    stages: list[StageMetrics] = Field(default_factory=list)
    progress: list[ProgressEvent] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    def finalize(self) -> None:
        self.ended_at = datetime.now(timezone.utc)
        self.total_duration_ms = (self.ended_at - self.started_at).total_seconds() * 1000
        if self.status == "running":
            self.status = "failed" if self.errors else "completed"


class KeyInsight(BaseModel):
    insight_type: str
    title: str
    description: str
    priority: Priority = Priority.MEDIUM


class ActionItem(BaseModel):
    id: str
    title: str
    description: str = ""
    priority: Priority = Priority.HIGH
    timeframe: str = ""
    category: str = ""


class ConfidenceAssessment(BaseModel):
    score: int = Field(ge=0, le=100)
    level: ConfidenceLevel
    factors: list[str] = Field(default_factory=list)
    description: str = ""


class ComprehensiveResult(BaseModel):
    """Final artifact, assembled once at the compilation stage."""

    analysis_id: str
    document: DocumentResult
    classification: ClassificationResult
    risk_profile: AggregatedRiskProfile
    enrichment: EnrichmentResult
    overall_score: int = Field(ge=0, le=100)
    overall_rating: str
    completeness: int = Field(ge=0, le=100)
    reliability: int = Field(ge=0, le=100)
    key_insights: list[KeyInsight] = Field(default_factory=list)
    prioritized_recommendations: list[Recommendation] = Field(default_factory=list)
    action_plan: list[ActionItem] = Field(default_factory=list)
    confidence: ConfidenceAssessment
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PipelineResponse(BaseModel):
    """What ``AnalysisPipeline.run`` hands back to its caller."""

    success: bool
    analysis_id: str
    result: ComprehensiveResult | None = None
    error: str = ""
    failed_stage: PipelineStage | None = None
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    stages: list[StageMetrics] = Field(default_factory=list)
    processing_time_ms: float = 0.0
