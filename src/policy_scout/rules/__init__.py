"""Policy rulebook: per-type keyword tables and coverage benchmarks."""

from policy_scout.rules.loader import (
    DEFAULT_RULES_PATH,
    ExpectedCoverage,
    LiabilityLimits,
    PolicyRulebook,
    PolicyTypeRules,
    load_rulebook,
)

__all__ = [
    "DEFAULT_RULES_PATH",
    "ExpectedCoverage",
    "LiabilityLimits",
    "PolicyRulebook",
    "PolicyTypeRules",
    "load_rulebook",
]
