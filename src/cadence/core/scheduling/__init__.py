"""Scheduling package for cadence.

Manifesto:
    A dynamically configured recurring job needs more than ``sleep()`` in a
    loop. It needs a single owner for the job slot (so two polls never race
    to replace it), a typed view of "the old job was not there" (so the
    first run is not an error), and a record of every tick (so executions
    can be proven after the fact). This package provides all three on top
    of a pluggable timer backend.

┌──────────────────────────────────────────────────────────────────────────────┐
│  PACKAGE MAP                                                                  │
│                                                                               │
│   protocol.py              TimerBackend, UnscheduleResult, UnscheduleOutcome  │
│   apscheduler_backend.py   APSchedulerBackend (AsyncIOScheduler)              │
│   asyncio_backend.py       AsyncioTimerBackend (no dependencies)              │
│   runner.py                TaskRunner, TaskOutcome                            │
│   orchestrator.py          DynamicJobOrchestrator, DynamicJob, stats/health   │
└──────────────────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ Calling ``check_and_reschedule`` from several tasks and relying on the
       timer to serialize them
    ✅ The orchestrator's own lock serializes every check
    ❌ Catching exceptions to detect "job not found"
    ✅ Branch on ``UnscheduleResult.outcome``
    ❌ Wiring the components by hand
    ✅ ``create_orchestrator(source, store)`` factory function

Tags:
    cadence, scheduling, dynamic-job, apscheduler, asyncio, pluggable-backends

Doc-Types:
    package-overview, architecture-map, module-index
"""

from __future__ import annotations

# Protocol
from .protocol import JobCallback, TimerBackend, UnscheduleOutcome, UnscheduleResult

# Backends
from .apscheduler_backend import APSchedulerBackend
from .asyncio_backend import AsyncioTimerBackend

# Runner
from .runner import TaskOutcome, TaskRunner

# Orchestrator
from .orchestrator import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DYNAMIC_JOB_IDENTITY,
    POLL_JOB_IDENTITY,
    DynamicJob,
    DynamicJobOrchestrator,
    OrchestratorHealth,
    OrchestratorStats,
    RescheduleOutcome,
)

__all__ = [
    # Protocol
    "TimerBackend",
    "JobCallback",
    "UnscheduleOutcome",
    "UnscheduleResult",
    # Backends
    "APSchedulerBackend",
    "AsyncioTimerBackend",
    "create_timer_backend",
    # Runner
    "TaskRunner",
    "TaskOutcome",
    # Orchestrator
    "DynamicJobOrchestrator",
    "DynamicJob",
    "RescheduleOutcome",
    "OrchestratorStats",
    "OrchestratorHealth",
    "DYNAMIC_JOB_IDENTITY",
    "POLL_JOB_IDENTITY",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "create_orchestrator",
]


def create_timer_backend(name: str = "apscheduler", *, max_instances: int | None = None) -> TimerBackend:
    """Build a timer backend by name (``apscheduler`` or ``asyncio``)."""
    if name == "apscheduler":
        return APSchedulerBackend(default_max_instances=max_instances or 10)
    if name == "asyncio":
        return AsyncioTimerBackend(default_max_instances=max_instances)
    raise ValueError(f"Unknown timer backend: {name}")


def create_orchestrator(
    source,
    store,
    backend: TimerBackend | None = None,
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    **kwargs,
) -> DynamicJobOrchestrator:
    """Factory function to create a fully wired orchestrator.

    Args:
        source: ParameterSource polled on every check
        store: AuditStore written by every dynamic-job tick
        backend: Timer backend (default: APSchedulerBackend)
        poll_interval_seconds: Outer cadence (default: 30s)
        **kwargs: Forwarded to ``DynamicJobOrchestrator``

    Example:
        >>> orchestrator = create_orchestrator(MockParameterSource(), store)
        >>> orchestrator.backend.start()
        >>> await orchestrator.start()
    """
    return DynamicJobOrchestrator(
        source=source,
        backend=backend or APSchedulerBackend(),
        runner=TaskRunner(store),
        poll_interval_seconds=poll_interval_seconds,
        **kwargs,
    )
