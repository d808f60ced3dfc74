"""Cross-cutting hooks: logging, run tracking and the enrichment circuit breaker."""

from __future__ import annotations

from policy_scout.hooks.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    FailureRecord,
    IBreakerStore,
    MemoryBreakerStore,
    breaker_key_for,
)
from policy_scout.hooks.logging_config import setup_logging
from policy_scout.hooks.run_tracker import end_run, get_current_run, new_analysis_id, start_run, track_stage

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "FailureRecord",
    "IBreakerStore",
    "MemoryBreakerStore",
    "breaker_key_for",
    "end_run",
    "get_current_run",
    "new_analysis_id",
    "setup_logging",
    "start_run",
    "track_stage",
]
