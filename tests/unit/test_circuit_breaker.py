"""Tests for the enrichment circuit breaker and its per-model failure store."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from policy_scout.core.config import ResilienceConfig
from policy_scout.exceptions import CircuitOpenError
from policy_scout.hooks.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    FailureRecord,
    IBreakerStore,
    MemoryBreakerStore,
    breaker_key_for,
)

# ---------------------------------------------------------------------------
# MemoryBreakerStore unit tests
# ---------------------------------------------------------------------------


class TestMemoryBreakerStore:
    def test_records_failures_with_last_error(self) -> None:
        store = MemoryBreakerStore()
        assert store.record_failure("enrichment:gpt", "rate limited").failures == 1
        record = store.record_failure("enrichment:gpt", "timed out")

        assert record.failures == 2
        assert record.last_error == "timed out"
        assert store.get("enrichment:gpt") == record

    def test_unknown_key_is_empty_record(self) -> None:
        assert MemoryBreakerStore().get("enrichment:none") == FailureRecord()

    def test_long_errors_truncated(self) -> None:
        record = MemoryBreakerStore().record_failure("k", "x" * 500)
        assert len(record.last_error) == 200

    def test_reset_is_per_model(self) -> None:
        store = MemoryBreakerStore()
        store.record_failure("enrichment:a", "boom")
        store.record_failure("enrichment:b", "boom")

        store.reset("enrichment:a")

        assert store.get("enrichment:a").failures == 0
        assert store.get("enrichment:b").failures == 1
        assert store.keys() == ["enrichment:b"]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MemoryBreakerStore(), IBreakerStore)

    def test_breaker_key_for_model(self) -> None:
        assert breaker_key_for("openai/gpt-4o-mini") == "enrichment:openai/gpt-4o-mini"
        assert breaker_key_for("") == "enrichment"


# ---------------------------------------------------------------------------
# CircuitBreaker state machine
# ---------------------------------------------------------------------------


async def _ok() -> str:
    return "ok"


async def _boom() -> str:
    raise RuntimeError("boom")


async def _trip(breaker: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        with pytest.raises(RuntimeError):
            await breaker.call(_boom)


class TestCircuitBreaker:
    def test_from_config(self) -> None:
        config = ResilienceConfig(circuit_breaker_failure_threshold=5, circuit_breaker_recovery_timeout=1.5)
        breaker = CircuitBreaker.from_config(config)
        assert breaker._failure_threshold == 5
        assert breaker._recovery_timeout == 1.5
        assert isinstance(breaker._store, MemoryBreakerStore)
        assert breaker.key == "enrichment"

    def test_from_config_keys_by_model(self) -> None:
        breaker = CircuitBreaker.from_config(ResilienceConfig(), model="openai/gpt-4o-mini")
        assert breaker.key == "enrichment:openai/gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_models_sharing_a_store_trip_independently(self) -> None:
        store = MemoryBreakerStore()
        flaky = CircuitBreaker(failure_threshold=1, store=store, breaker_key=breaker_key_for("flaky"))
        healthy = CircuitBreaker(failure_threshold=1, store=store, breaker_key=breaker_key_for("healthy"))

        await _trip(flaky, 1)

        assert flaky.state == CircuitState.OPEN
        assert await healthy.call(_ok) == "ok"

    @pytest.mark.asyncio
    async def test_open_error_names_model_and_last_error(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1, breaker_key=breaker_key_for("gpt"))
        await _trip(breaker, 1)

        with pytest.raises(CircuitOpenError, match=r"enrichment:gpt after 1 consecutive failures \(last: boom\)"):
            await breaker.call(_ok)

    @pytest.mark.asyncio
    async def test_snapshot(self) -> None:
        breaker = CircuitBreaker(failure_threshold=2, breaker_key="enrichment:gpt")
        assert breaker.snapshot() == {"key": "enrichment:gpt", "state": "closed", "failures": 0, "last_error": ""}

        await _trip(breaker, 2)

        snapshot = breaker.snapshot()
        assert snapshot["state"] == "open"
        assert snapshot["failures"] == 2
        assert snapshot["last_error"] == "boom"

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self) -> None:
        store = MemoryBreakerStore()
        breaker = CircuitBreaker(failure_threshold=3, store=store, breaker_key="svc-a")

        await _trip(breaker, 2)
        assert breaker.state == CircuitState.CLOSED
        await _trip(breaker, 1)

        assert breaker.state == CircuitState.OPEN
        assert store.get("svc-a").failures == 3

    @pytest.mark.asyncio
    async def test_open_breaker_short_circuits(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1)
        await _trip(breaker, 1)
        calls = 0

        async def counted() -> str:
            nonlocal calls
            calls += 1
            return "ok"

        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.call(counted)
        assert calls == 0
        assert exc_info.value.failure_count == 1

    @pytest.mark.asyncio
    async def test_success_resets_count(self) -> None:
        store = MemoryBreakerStore()
        breaker = CircuitBreaker(failure_threshold=3, store=store, breaker_key="svc-b")
        await _trip(breaker, 2)

        assert await breaker.call(_ok) == "ok"
        assert store.get("svc-b").failures == 0
        await _trip(breaker, 2)
        assert breaker.state == CircuitState.CLOSED

    def test_half_open_after_recovery_timeout(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout_seconds=30.0)
        with patch("policy_scout.hooks.circuit_breaker.time.monotonic", return_value=1000.0):
            breaker.record_failure()

        with patch("policy_scout.hooks.circuit_breaker.time.monotonic", return_value=1029.0):
            assert breaker.state == CircuitState.OPEN
        with patch("policy_scout.hooks.circuit_breaker.time.monotonic", return_value=1031.0):
            assert breaker.state == CircuitState.HALF_OPEN
        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self) -> None:
        breaker = CircuitBreaker(failure_threshold=5, recovery_timeout_seconds=30.0)
        breaker._state = CircuitState.HALF_OPEN

        await _trip(breaker, 1)

        assert breaker._state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_reset_clears_store(self) -> None:
        store = MemoryBreakerStore()
        breaker = CircuitBreaker(failure_threshold=1, store=store, breaker_key="svc-c")
        await _trip(breaker, 1)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert store.get("svc-c").failures == 0
