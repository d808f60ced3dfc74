"""Per-run tracker using ContextVars.

Each pipeline run is tracked in its own context, so concurrent runs (one per
request) never see each other's state. The analysis id and current stage are
bound into structlog's context for every log line emitted meanwhile.

Usage::

    run = start_run(analysis_id="analysis-1f2e")
    with track_stage("risk_analysis") as stage:
        ...
    run = end_run()
    print(run.total_duration_ms)
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Generator

import structlog

from policy_scout.models import PipelineRun, StageMetrics

_current_run: ContextVar[PipelineRun | None] = ContextVar("policy_scout_current_run", default=None)


def new_analysis_id() -> str:
    return f"analysis-{uuid.uuid4().hex[:12]}"


def get_current_run() -> PipelineRun | None:
    """Get the active PipelineRun, or None if no run is active."""
    return _current_run.get()


def start_run(analysis_id: str | None = None) -> PipelineRun:
    """Create and activate a new PipelineRun for the current context."""
    run = PipelineRun(analysis_id=analysis_id or new_analysis_id())
    _current_run.set(run)
    structlog.contextvars.bind_contextvars(analysis_id=run.analysis_id)
    return run


def end_run() -> PipelineRun | None:
    """Finalize the current run and return it. Returns None if no run is active."""
    run = _current_run.get()
    if run is None:
        return None

    run.finalize()
    _current_run.set(None)
    structlog.contextvars.unbind_contextvars("analysis_id")
    return run


@contextmanager
def track_stage(name: str) -> Generator[StageMetrics, None, None]:
    """Record a StageMetrics entry on the current run.

    An exception escaping the block marks the stage failed and propagates.
    No-op bookkeeping if no run is active.
    """
    run = _current_run.get()
    stage = StageMetrics(stage=name, started_at=datetime.now(timezone.utc))
    structlog.contextvars.bind_contextvars(stage=name)

    try:
        yield stage
    except Exception as exc:
        stage.status = "failed"
        stage.error = str(exc)
        raise
    finally:
        stage.ended_at = datetime.now(timezone.utc)
        if stage.started_at:
            stage.duration_ms = (stage.ended_at - stage.started_at).total_seconds() * 1000
        if run is not None:
            run.stages.append(stage)
        structlog.contextvars.unbind_contextvars("stage")
