"""Dynamic job orchestrator: the control loop.

Manifesto:
    One fixed-cadence poll keeps one dynamic job in line with externally
    owned parameters. The orchestrator owns the single dynamic-job slot and
    the ``last_interval`` it was registered with; nothing else mutates
    either. Every failure path ends in "try again on the next poll", so the
    loop heals itself without ever crashing the timer that drives it.

┌──────────────────────────────────────────────────────────────────────────────┐
│  DYNAMIC JOB ORCHESTRATOR                                                     │
│                                                                               │
│   poll job ("orchestrator-poll", every 30s, max_instances=1)                  │
│        │                                                                      │
│        ▼                                                                      │
│   check_and_reschedule()            (serialized by asyncio.Lock)              │
│        │                                                                      │
│        ├── 1. await source.fetch_parameters()   ── fail ──► FETCH_FAILED      │
│        ├── 2. interval token == last_interval?  ── yes ───► UNCHANGED         │
│        ├── 3. backend.unschedule("dynamic-job")                               │
│        │        REMOVED / NOT_FOUND ──► continue                              │
│        │        ERROR ──► continue (strict mode: UNSCHEDULE_FAILED)           │
│        ├── 4. job_source_name = "dynamic-job-<actionId>"                      │
│        ├── 5. backend.schedule_recurring("dynamic-job", period, DynamicJob)   │
│        │        fail ──► REGISTRATION_FAILED (last_interval not advanced)     │
│        └── 6. last_interval = interval token   ─────────► RESCHEDULED         │
│                                                                               │
│   Slot state machine:                                                         │
│     UNREGISTERED ──► REGISTERED(I) ──► UNREGISTERED ──► REGISTERED(I')        │
└──────────────────────────────────────────────────────────────────────────────┘

The interval comparison is on the raw token: ``"PT60S"`` and ``"PT1M"``
are different tokens and trigger a reschedule.

Tags:
    cadence, scheduling, orchestrator, control-loop, single-flight

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from cadence.core.errors import (
    CadenceError,
    ParameterFetchError,
    ParameterTimeoutError,
    is_retryable,
)
from cadence.core.logging import get_logger
from cadence.core.timestamps import to_iso8601, utc_now
from cadence.domain.parameters import JobParameters
from cadence.sources.protocol import ParameterSource

from .protocol import TimerBackend, UnscheduleOutcome
from .runner import TaskOutcome, TaskRunner

logger = get_logger(__name__)

DYNAMIC_JOB_IDENTITY = "dynamic-job"
POLL_JOB_IDENTITY = "orchestrator-poll"
DEFAULT_POLL_INTERVAL_SECONDS = 30.0


class RescheduleOutcome(str, Enum):
    """Path taken by one ``check_and_reschedule`` call."""

    UNCHANGED = "UNCHANGED"
    RESCHEDULED = "RESCHEDULED"
    FETCH_FAILED = "FETCH_FAILED"
    UNSCHEDULE_FAILED = "UNSCHEDULE_FAILED"
    REGISTRATION_FAILED = "REGISTRATION_FAILED"


@dataclass(frozen=True)
class DynamicJob:
    """Callback registered with the timer for one dynamic-job registration.

    ``job_source_name`` is fixed when the job is registered; later polls that
    return a different action id with the same interval do not change it.
    """

    identity: str
    interval: str
    job_source_name: str
    runner: TaskRunner = field(repr=False, compare=False)

    async def __call__(self) -> TaskOutcome:
        outcome = await self.runner.execute_business_task(self.job_source_name)
        if outcome.success:
            logger.debug("dynamic_job_tick_completed", job_name=self.job_source_name)
        else:
            logger.error("dynamic_job_tick_failed", job_name=self.job_source_name, error=str(outcome.error))
        return outcome


@dataclass
class OrchestratorStats:
    """Counters for the control loop."""

    polls: int = 0
    reschedules: int = 0
    unchanged: int = 0
    fetch_failures: int = 0
    unschedule_failures: int = 0
    registration_failures: int = 0
    last_poll: datetime | None = None
    last_reschedule: datetime | None = None
    last_error: str | None = None


@dataclass
class OrchestratorHealth:
    """Health status of the orchestrator."""

    healthy: bool
    running: bool
    backend: dict[str, Any]
    last_interval: str | None
    job_source_name: str | None
    stats: OrchestratorStats

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "healthy": self.healthy,
            "running": self.running,
            "backend": self.backend,
            "last_interval": self.last_interval,
            "job_source_name": self.job_source_name,
            "stats": {
                "polls": self.stats.polls,
                "reschedules": self.stats.reschedules,
                "unchanged": self.stats.unchanged,
                "fetch_failures": self.stats.fetch_failures,
                "unschedule_failures": self.stats.unschedule_failures,
                "registration_failures": self.stats.registration_failures,
                "last_poll": to_iso8601(self.stats.last_poll),
                "last_reschedule": to_iso8601(self.stats.last_reschedule),
                "last_error": self.stats.last_error,
            },
        }


class DynamicJobOrchestrator:
    """Keeps the single dynamic job in line with the polled parameters.

    Example:
        >>> orchestrator = DynamicJobOrchestrator(
        ...     source=MockParameterSource(),
        ...     backend=APSchedulerBackend(),
        ...     runner=TaskRunner(store),
        ... )
        >>> backend.start()
        >>> await orchestrator.start()      # poll job + immediate first check
        >>> orchestrator.last_interval
        'PT17S'
    """

    def __init__(
        self,
        source: ParameterSource,
        backend: TimerBackend,
        runner: TaskRunner,
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        fetch_timeout_seconds: float | None = None,
        strict_unschedule: bool = False,
        dynamic_job_max_instances: int | None = None,
        poll_on_start: bool = True,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            source: Parameter source polled on every check
            backend: Timer backend hosting the poll job and the dynamic job
            runner: Task runner invoked by every dynamic-job tick
            poll_interval_seconds: Outer cadence (default: 30s)
            fetch_timeout_seconds: Bound on one fetch; a timeout counts as a fetch failure
            strict_unschedule: Skip registration when unschedule fails unexpectedly
            dynamic_job_max_instances: Overlap allowance for dynamic-job ticks
            poll_on_start: Run one check immediately in ``start()``
        """
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")

        self.source = source
        self.backend = backend
        self.runner = runner
        self.poll_interval = poll_interval_seconds
        self.fetch_timeout = fetch_timeout_seconds
        self.strict_unschedule = strict_unschedule
        self.dynamic_job_max_instances = dynamic_job_max_instances
        self.poll_on_start = poll_on_start

        self._last_interval: str | None = None
        self._current_job: DynamicJob | None = None
        self._lock = asyncio.Lock()
        self._stats = OrchestratorStats()
        self._running = False

    # === State (read-only from outside) ===

    @property
    def last_interval(self) -> str | None:
        """Interval token of the registered dynamic job, ``None`` before the first schedule."""
        return self._last_interval

    @property
    def current_job(self) -> DynamicJob | None:
        """The registered ``DynamicJob`` context, if any."""
        return self._current_job

    @property
    def is_running(self) -> bool:
        return self._running

    # === Lifecycle ===

    async def start(self) -> None:
        """Register the fixed-cadence poll job and optionally check once immediately."""
        if self._running:
            logger.warning("orchestrator_already_running")
            return

        self.backend.schedule_recurring(
            POLL_JOB_IDENTITY,
            timedelta(seconds=self.poll_interval),
            self.check_and_reschedule,
            max_instances=1,
        )
        self._running = True
        logger.info(
            "orchestrator_started",
            backend=self.backend.name,
            poll_interval_seconds=self.poll_interval,
        )
        if self.poll_on_start:
            await self.check_and_reschedule()

    async def stop(self) -> None:
        """Stop polling. The dynamic job is left to the backend's shutdown."""
        if not self._running:
            return
        self.backend.unschedule(POLL_JOB_IDENTITY)
        self._running = False
        logger.info("orchestrator_stopped")

    # === Control loop ===

    async def check_and_reschedule(self) -> RescheduleOutcome:
        """Poll the parameter source and reschedule the dynamic job if the interval changed.

        Never raises for fetch, unschedule, or registration failures; the
        outcome says which path was taken.
        """
        async with self._lock:
            self._stats.polls += 1
            self._stats.last_poll = utc_now()
            logger.info("orchestrator_poll_started", last_interval=self._last_interval)

            try:
                params = await self._fetch()
            except Exception as exc:
                self._stats.fetch_failures += 1
                self._stats.last_error = str(exc)
                logger.error(
                    "parameter_fetch_failed",
                    error=exc.to_dict() if isinstance(exc, CadenceError) else str(exc),
                    retryable=is_retryable(exc),
                    exc_info=True,
                )
                return RescheduleOutcome.FETCH_FAILED

            logger.info("parameters_fetched", interval=params.interval, action_id=params.action_id)

            if params.interval == self._last_interval:
                self._stats.unchanged += 1
                logger.debug("interval_unchanged", interval=params.interval)
                return RescheduleOutcome.UNCHANGED

            return self._reschedule(params)

    async def _fetch(self) -> JobParameters:
        try:
            if self.fetch_timeout is None:
                params = await self.source.fetch_parameters()
            else:
                params = await asyncio.wait_for(self.source.fetch_parameters(), timeout=self.fetch_timeout)
        except TimeoutError as exc:
            raise ParameterTimeoutError(self.fetch_timeout or 0.0, cause=exc) from exc

        if not isinstance(params, JobParameters):
            raise ParameterFetchError(
                f"parameter source {self.source.name!r} returned {type(params).__name__}"
            )
        return params

    def _reschedule(self, params: JobParameters) -> RescheduleOutcome:
        logger.info("dynamic_job_rescheduling", interval=params.interval, previous=self._last_interval)

        removal = self.backend.unschedule(DYNAMIC_JOB_IDENTITY)
        if removal.outcome is UnscheduleOutcome.REMOVED:
            logger.debug("dynamic_job_unscheduled", identity=DYNAMIC_JOB_IDENTITY)
            self._current_job = None
        elif removal.outcome is UnscheduleOutcome.NOT_FOUND:
            logger.debug("dynamic_job_not_found", identity=DYNAMIC_JOB_IDENTITY)
        else:
            self._stats.unschedule_failures += 1
            self._stats.last_error = str(removal.error)
            if self.strict_unschedule:
                logger.error(
                    "dynamic_job_unschedule_failed",
                    identity=DYNAMIC_JOB_IDENTITY,
                    error=str(removal.error),
                    action="abort",
                )
                return RescheduleOutcome.UNSCHEDULE_FAILED
            logger.warning(
                "dynamic_job_unschedule_failed",
                identity=DYNAMIC_JOB_IDENTITY,
                error=str(removal.error),
                action="continue",
            )

        job = DynamicJob(
            identity=DYNAMIC_JOB_IDENTITY,
            interval=params.interval,
            job_source_name=f"{DYNAMIC_JOB_IDENTITY}-{params.action_id}",
            runner=self.runner,
        )

        try:
            self.backend.schedule_recurring(
                DYNAMIC_JOB_IDENTITY,
                params.period,
                job,
                max_instances=self.dynamic_job_max_instances,
            )
        except Exception as exc:
            self._stats.registration_failures += 1
            self._stats.last_error = str(exc)
            if removal.outcome is UnscheduleOutcome.REMOVED:
                # The slot is empty now; an unset interval forces the retry
                self._last_interval = None
            logger.error(
                "dynamic_job_registration_failed",
                interval=params.interval,
                job_name=job.job_source_name,
                error=exc.to_dict() if isinstance(exc, CadenceError) else str(exc),
                retryable=is_retryable(exc),
                exc_info=True,
            )
            return RescheduleOutcome.REGISTRATION_FAILED

        self._last_interval = params.interval
        self._current_job = job
        self._stats.reschedules += 1
        self._stats.last_reschedule = utc_now()
        logger.info(
            "dynamic_job_rescheduled",
            identity=DYNAMIC_JOB_IDENTITY,
            interval=params.interval,
            job_name=job.job_source_name,
        )
        return RescheduleOutcome.RESCHEDULED

    # === Health & Stats ===

    def health(self) -> OrchestratorHealth:
        backend_health = self.backend.health()
        return OrchestratorHealth(
            healthy=self._running and bool(backend_health.get("healthy", False)),
            running=self._running,
            backend=backend_health,
            last_interval=self._last_interval,
            job_source_name=self._current_job.job_source_name if self._current_job else None,
            stats=self._stats,
        )

    def get_stats(self) -> OrchestratorStats:
        return self._stats

    def reset_stats(self) -> None:
        """Reset orchestrator statistics."""
        self._stats = OrchestratorStats()
