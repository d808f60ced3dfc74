"""Circuit breaker guarding the enrichment call.

CLOSED -> OPEN after ``failure_threshold`` consecutive failures; OPEN ->
HALF_OPEN once ``recovery_timeout_seconds`` have passed; one success in
HALF_OPEN closes it again, one failure re-opens it.

Breakers are keyed per enrichment model (``enrichment:<model>``), so
pipelines that share a store also share the health of the model they call.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, TypeVar, runtime_checkable

from policy_scout.exceptions import CircuitOpenError

log = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ERROR_CHARS = 200


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class FailureRecord:
    """Consecutive failures of one enrichment model."""

    failures: int = 0
    last_failure_at: float = 0.0
    last_error: str = ""


@runtime_checkable
class IBreakerStore(Protocol):
    """Where failure records live; one record per breaker key."""

    def get(self, key: str) -> FailureRecord: ...

    def record_failure(self, key: str, error: str) -> FailureRecord: ...

    def reset(self, key: str) -> None: ...


class MemoryBreakerStore:
    """Process-local records, stamped with ``time.monotonic()``."""

    def __init__(self) -> None:
        self._records: dict[str, FailureRecord] = {}

    def get(self, key: str) -> FailureRecord:
        return self._records.get(key, FailureRecord())

    def record_failure(self, key: str, error: str) -> FailureRecord:
        record = FailureRecord(
            failures=self.get(key).failures + 1,
            last_failure_at=time.monotonic(),
            last_error=error[:MAX_ERROR_CHARS],
        )
        self._records[key] = record
        return record

    def reset(self, key: str) -> None:
        self._records.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._records)


def breaker_key_for(model: str) -> str:
    return f"enrichment:{model}" if model else "enrichment"


class CircuitBreaker:
    """Short-circuits enrichment calls to a model that keeps failing."""

    def __init__(
        self,
        failure_threshold: int = 3,
        recovery_timeout_seconds: float = 60.0,
        store: IBreakerStore | None = None,
        breaker_key: str = "enrichment",
    ) -> None:
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout_seconds
        self._store: IBreakerStore = store if store is not None else MemoryBreakerStore()
        self._breaker_key = breaker_key
        self._state = CircuitState.CLOSED

    @classmethod
    def from_config(
        cls,
        config: object,
        store: IBreakerStore | None = None,
        *,
        model: str = "",
    ) -> CircuitBreaker:
        """Build from a ``ResilienceConfig`` for the given enrichment model."""
        return cls(
            failure_threshold=config.circuit_breaker_failure_threshold,  # type: ignore[attr-defined]
            recovery_timeout_seconds=config.circuit_breaker_recovery_timeout,  # type: ignore[attr-defined]
            store=store,
            breaker_key=breaker_key_for(model),
        )

    @property
    def key(self) -> str:
        return self._breaker_key

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            record = self._store.get(self._breaker_key)
            if time.monotonic() - record.last_failure_at >= self._recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                log.info("Circuit breaker %s -> HALF_OPEN (recovery timeout elapsed)", self._breaker_key)
        return self._state

    def before_call(self) -> None:
        """Raise :class:`CircuitOpenError` if calls are currently blocked."""
        if self.state == CircuitState.OPEN:
            record = self._store.get(self._breaker_key)
            raise CircuitOpenError(
                f"Circuit breaker OPEN for {self._breaker_key} after {record.failures} consecutive failures "
                f"(last: {record.last_error or 'unknown'}). Retry after {self._recovery_timeout}s.",
                failure_count=record.failures,
            )

    def record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            log.info("Circuit breaker %s -> CLOSED (successful call in half-open)", self._breaker_key)
        self._store.reset(self._breaker_key)
        self._state = CircuitState.CLOSED

    def record_failure(self, error: str = "") -> None:
        record = self._store.record_failure(self._breaker_key, error)
        if self._state == CircuitState.HALF_OPEN or record.failures >= self._failure_threshold:
            self._state = CircuitState.OPEN
            log.warning("Circuit breaker %s -> OPEN after %d failures: %s", self._breaker_key, record.failures, error)

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """Await ``func()`` under the breaker."""
        self.before_call()
        try:
            result = await func()
        except Exception as exc:
            self.record_failure(str(exc) or type(exc).__name__)
            raise
        self.record_success()
        return result

    def snapshot(self) -> dict[str, Any]:
        """State and failure record, as reported by the enrichment health route."""
        record = self._store.get(self._breaker_key)
        return {
            "key": self._breaker_key,
            "state": self.state.value,
            "failures": record.failures,
            "last_error": record.last_error,
        }

    def reset(self) -> None:
        """Manually reset the circuit breaker to CLOSED."""
        self._store.reset(self._breaker_key)
        self._state = CircuitState.CLOSED
