"""Timer backend protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TIMER BACKEND PROTOCOL                                                       │
│                                                                               │
│  Design Philosophy:                                                           │
│  Backends own WHEN callbacks fire. They know nothing about parameters or     │
│  audit records: they keep a table of named recurring jobs and invoke each   │
│  job's async callback once per period.                                        │
│                                                                               │
│  ┌─────────────────────────────────────────────────────────────────────┐     │
│  │                                                                     │     │
│  │   Orchestrator ── schedule_recurring("dynamic-job", 10s, cb) ──►    │     │
│  │                ── unschedule("dynamic-job") ──► UnscheduleResult    │     │
│  │                                                                     │     │
│  │   ┌─────────────────┐      ┌─────────────────┐                      │     │
│  │   │  APScheduler    │      │  Asyncio        │                      │     │
│  │   │  Backend        │      │  Backend        │                      │     │
│  │   │  (default)      │      │  (no deps)      │                      │     │
│  │   └────────┬────────┘      └────────┬────────┘                      │     │
│  │            └────── await cb() per tick ──────► DynamicJob / poll    │     │
│  └─────────────────────────────────────────────────────────────────────┘     │
│                                                                               │
│  Contract:                                                                    │
│  - Identities are unique; scheduling a taken identity raises ScheduleError   │
│  - unschedule() never raises; it returns REMOVED / NOT_FOUND / ERROR         │
│  - Ticks of one job are independent (no serialization unless max_instances)  │
│  - Cancelling a job stops future ticks; in-flight ticks run to completion    │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Protocol, runtime_checkable

JobCallback = Callable[[], Awaitable[Any]]


class UnscheduleOutcome(str, Enum):
    """Tag of an ``unschedule`` call."""

    REMOVED = "REMOVED"
    NOT_FOUND = "NOT_FOUND"
    ERROR = "ERROR"


@dataclass(frozen=True)
class UnscheduleResult:
    """Typed result of ``TimerBackend.unschedule``.

    ``error`` is set only when ``outcome`` is ``ERROR``.
    """

    outcome: UnscheduleOutcome
    identity: str
    error: BaseException | None = None

    @classmethod
    def removed(cls, identity: str) -> UnscheduleResult:
        return cls(UnscheduleOutcome.REMOVED, identity)

    @classmethod
    def not_found(cls, identity: str) -> UnscheduleResult:
        return cls(UnscheduleOutcome.NOT_FOUND, identity)

    @classmethod
    def failed(cls, identity: str, error: BaseException) -> UnscheduleResult:
        return cls(UnscheduleOutcome.ERROR, identity, error)


@runtime_checkable
class TimerBackend(Protocol):
    """Protocol for named recurring-job timers.

    Implementations:
        - APSchedulerBackend: APScheduler ``AsyncIOScheduler`` (default)
        - AsyncioTimerBackend: zero-dependency asyncio tasks
    """

    name: str

    def start(self) -> None:
        """Start firing registered jobs. Must be called from a running event loop."""
        ...

    async def shutdown(self) -> None:
        """Stop all jobs and release resources."""
        ...

    def schedule_recurring(
        self,
        identity: str,
        period: timedelta,
        callback: JobCallback,
        *,
        max_instances: int | None = None,
    ) -> None:
        """Register *callback* to fire every *period* under *identity*.

        Args:
            identity: Unique job name
            period: Strictly positive firing period
            callback: Async callable invoked once per tick
            max_instances: Cap on concurrently running ticks of this job
                (None = backend default)

        Raises:
            ScheduleError: If *identity* is taken or the timer rejects the job.
        """
        ...

    def unschedule(self, identity: str) -> UnscheduleResult:
        """Remove the job registered under *identity*."""
        ...

    def has_job(self, identity: str) -> bool:
        ...

    def job_ids(self) -> list[str]:
        ...

    def health(self) -> dict[str, Any]:
        """Return backend health status.

        Returns:
            dict with at least:
                - healthy: bool, whether backend is running
                - backend: str, backend name
                - jobs: list[str], registered identities
        """
        ...


def period_seconds(period: timedelta) -> float:
    """Validate *period* and return it in seconds."""
    seconds = period.total_seconds()
    if seconds <= 0:
        raise ValueError(f"period must be strictly positive, got {period!r}")
    return seconds
