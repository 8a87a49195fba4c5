"""Zero-dependency asyncio timer backend.

Each registered job gets a driver task that sleeps for the period and then
spawns the callback as an independent task, so a slow tick never delays or
blocks the next one. Cancelling a job cancels only its driver; ticks already
in flight run to completion.

┌──────────────────────────────────────────────────────────────────────────────┐
│  driver("dynamic-job")                                                        │
│     │ sleep(period) ──► spawn tick#1 ──────────────► persist ─► done          │
│     │ sleep(period) ──► spawn tick#2 ──► persist ─► done                      │
│     │ unschedule()  ──► driver cancelled (tick#1 still completes)             │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from cadence.core.errors import ScheduleError
from cadence.core.logging import get_logger

from .protocol import JobCallback, UnscheduleResult, period_seconds

logger = get_logger(__name__)


@dataclass
class _JobEntry:
    identity: str
    seconds: float
    callback: JobCallback
    max_instances: int | None
    driver: asyncio.Task | None = None
    running: int = 0
    fired: int = 0
    skipped: int = 0
    in_flight: set[asyncio.Task] = field(default_factory=set)


class AsyncioTimerBackend:
    """Zero-dependency timer backend built on asyncio tasks.

    Example:
        >>> backend = AsyncioTimerBackend()
        >>> backend.start()
        >>> backend.schedule_recurring("dynamic-job", timedelta(seconds=10), tick)
        >>> # ... later ...
        >>> await backend.shutdown()
    """

    name = "asyncio"

    def __init__(self, *, default_max_instances: int | None = None, drain_timeout: float = 5.0) -> None:
        self.default_max_instances = default_max_instances
        self.drain_timeout = drain_timeout
        self._jobs: dict[str, _JobEntry] = {}
        self._orphans: set[asyncio.Task] = set()
        self._started = False

    # === Lifecycle ===

    def start(self) -> None:
        if self._started:
            logger.warning("timer_backend_already_started", backend=self.name)
            return
        self._started = True
        for entry in self._jobs.values():
            self._launch(entry)
        logger.info("timer_backend_started", backend=self.name)

    async def shutdown(self) -> None:
        if not self._started:
            return
        self._started = False

        pending: set[asyncio.Task] = set(self._orphans)
        drivers: list[asyncio.Task] = []
        for entry in self._jobs.values():
            if entry.driver is not None:
                entry.driver.cancel()
                drivers.append(entry.driver)
            pending |= entry.in_flight
        self._jobs.clear()
        await asyncio.gather(*drivers, return_exceptions=True)

        if pending:
            _, still_running = await asyncio.wait(pending, timeout=self.drain_timeout)
            for task in still_running:
                task.cancel()
        logger.info("timer_backend_stopped", backend=self.name)

    @property
    def running(self) -> bool:
        return self._started

    # === TimerBackend protocol ===

    def schedule_recurring(
        self,
        identity: str,
        period: timedelta,
        callback: JobCallback,
        *,
        max_instances: int | None = None,
    ) -> None:
        if identity in self._jobs:
            raise ScheduleError(f"Job already registered: {identity}").with_context(identity=identity)
        try:
            seconds = period_seconds(period)
        except ValueError as exc:
            raise ScheduleError(str(exc), cause=exc).with_context(identity=identity) from exc

        entry = _JobEntry(
            identity=identity,
            seconds=seconds,
            callback=callback,
            max_instances=max_instances or self.default_max_instances,
        )
        self._jobs[identity] = entry
        if self._started:
            self._launch(entry)
        logger.debug("timer_job_scheduled", backend=self.name, identity=identity, period_seconds=seconds)

    def unschedule(self, identity: str) -> UnscheduleResult:
        entry = self._jobs.pop(identity, None)
        if entry is None:
            return UnscheduleResult.not_found(identity)
        try:
            if entry.driver is not None:
                entry.driver.cancel()
        except Exception as exc:  # pragma: no cover - Task.cancel does not raise in practice
            return UnscheduleResult.failed(identity, exc)
        # In-flight ticks finish on their own; keep references until then
        self._orphans |= entry.in_flight
        for task in entry.in_flight:
            task.add_done_callback(self._orphans.discard)
        return UnscheduleResult.removed(identity)

    def has_job(self, identity: str) -> bool:
        return identity in self._jobs

    def job_ids(self) -> list[str]:
        return list(self._jobs)

    def health(self) -> dict[str, Any]:
        return {
            "healthy": self._started,
            "backend": self.name,
            "jobs": self.job_ids(),
            "ticks": {identity: entry.fired for identity, entry in self._jobs.items()},
            "skipped": {identity: entry.skipped for identity, entry in self._jobs.items()},
        }

    # === Internals ===

    def _launch(self, entry: _JobEntry) -> None:
        entry.driver = asyncio.get_running_loop().create_task(
            self._drive(entry), name=f"cadence-timer:{entry.identity}"
        )

    async def _drive(self, entry: _JobEntry) -> None:
        while True:
            await asyncio.sleep(entry.seconds)
            if entry.max_instances is not None and entry.running >= entry.max_instances:
                entry.skipped += 1
                logger.warning(
                    "timer_tick_skipped",
                    identity=entry.identity,
                    running=entry.running,
                    max_instances=entry.max_instances,
                )
                continue
            entry.fired += 1
            entry.running += 1
            task = asyncio.get_running_loop().create_task(self._run_tick(entry))
            entry.in_flight.add(task)
            task.add_done_callback(entry.in_flight.discard)

    async def _run_tick(self, entry: _JobEntry) -> None:
        try:
            await entry.callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("timer_tick_failed", identity=entry.identity)
        finally:
            entry.running -= 1
