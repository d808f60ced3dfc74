"""Loads and validates the policy rulebook from JSON or YAML on disk."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from policy_scout.exceptions import RulebookError
from policy_scout.models import PolicyType

log = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent / "policy_rules.json"


class ExpectedCoverage(BaseModel):
    name: str
    required: bool = False
    recommended: bool = False
    min_limit: float | None = None


class LiabilityLimits(BaseModel):
    bodily_injury: float = 0.0
    property_damage: float = 0.0


class StatutoryMinimums(BaseModel):
    default: LiabilityLimits
    states: dict[str, LiabilityLimits] = Field(default_factory=dict)


class PolicyTypeRules(BaseModel):
    """Classification signals and coverage benchmarks for one policy type."""

    label: str
    category: str
    required_keywords: list[str] = Field(default_factory=list)
    optional_keywords: list[str] = Field(default_factory=list)
    exclusion_keywords: list[str] = Field(default_factory=list)
    structured_patterns: dict[str, list[str]] = Field(default_factory=dict)
    common_coverages: list[str] = Field(default_factory=list)
    expected_coverages: list[ExpectedCoverage] = Field(default_factory=list)
    liability_base_limits: LiabilityLimits | None = None
    standard_exclusions: list[str] = Field(default_factory=list)
    statutory_minimums: StatutoryMinimums | None = None


class PolicyRulebook(BaseModel):
    """Per-type rule tables keyed by :class:`PolicyType`.

    Every concrete policy type must have an entry; ``unknown`` never does.
    """

    version: int = 1
    classification_threshold: float = Field(default=0.6, gt=0.0, le=1.0)
    policy_types: dict[PolicyType, PolicyTypeRules]

    @model_validator(mode="after")
    def _require_every_type(self) -> PolicyRulebook:
        if PolicyType.UNKNOWN in self.policy_types:
            raise ValueError("'unknown' is not a configurable policy type")
        missing = [t.value for t in PolicyType if t is not PolicyType.UNKNOWN and t not in self.policy_types]
        if missing:
            raise ValueError(f"rulebook has no entry for policy types: {', '.join(missing)}")
        return self

    def rules_for(self, policy_type: PolicyType) -> PolicyTypeRules | None:
        return self.policy_types.get(policy_type)

    def expected_coverages(self, policy_type: PolicyType) -> list[ExpectedCoverage]:
        rules = self.rules_for(policy_type)
        return list(rules.expected_coverages) if rules else []

    def liability_base_limits(self, policy_type: PolicyType) -> LiabilityLimits:
        """Base recommended limits for the type, falling back to auto's."""
        rules = self.rules_for(policy_type)
        if rules and rules.liability_base_limits:
            return rules.liability_base_limits
        auto = self.policy_types[PolicyType.AUTO].liability_base_limits
        return auto or LiabilityLimits()

    def standard_exclusions(self, policy_type: PolicyType) -> list[str]:
        rules = self.rules_for(policy_type)
        return list(rules.standard_exclusions) if rules else []

    def statutory_minimum(self, policy_type: PolicyType, state: str = "") -> LiabilityLimits | None:
        rules = self.rules_for(policy_type)
        if rules is None or rules.statutory_minimums is None:
            return None
        minimums = rules.statutory_minimums
        return minimums.states.get(state.strip().upper(), minimums.default)


def load_rulebook(path: Path | str | None = None) -> PolicyRulebook:
    """Load a rulebook. ``None`` returns the cached packaged default."""
    if path is None:
        return _default_rulebook()
    return _load(Path(path))


@functools.lru_cache(maxsize=1)
def _default_rulebook() -> PolicyRulebook:
    return _load(DEFAULT_RULES_PATH)


def _load(path: Path) -> PolicyRulebook:
    if not path.exists():
        raise RulebookError(f"Rules file not found: {path}")

    raw_text = path.read_text(encoding="utf-8")
    data = _decode(path, raw_text)

    try:
        rulebook = PolicyRulebook.model_validate(data)
    except ValidationError as exc:
        raise RulebookError(f"Invalid rulebook {path}: {exc}") from exc

    log.info(
        "Loaded rulebook %s (version %d, %d policy types)",
        path,
        rulebook.version,
        len(rulebook.policy_types),
    )
    return rulebook


def _decode(path: Path, raw_text: str) -> dict[str, Any]:
    if path.suffix in (".yaml", ".yml"):
        try:
            import yaml
        except ImportError as exc:
            raise ImportError(
                "PyYAML is required for YAML rules files. "
                "Install with: pip install policy-scout[rules]"
            ) from exc
        data = yaml.safe_load(raw_text)
    else:
        try:
            data = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise RulebookError(f"Rules file {path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise RulebookError(f"Rules file {path} must contain a mapping at the top level")
    return data
