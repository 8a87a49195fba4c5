"""APScheduler-based timer backend.

Wraps APScheduler 3.x ``AsyncIOScheduler`` to provide the ``TimerBackend``
protocol. Jobs run as coroutines on the application's event loop, so a tick
that awaits I/O (parameter fetch, audit persist) never blocks other ticks.

Identity handling:
    - ``schedule_recurring`` on a taken id raises ``ScheduleError``
      (APScheduler's ``ConflictingIdError``, checked up front because
      APScheduler defers the check for pending jobs until ``start()``)
    - ``unschedule`` maps ``JobLookupError`` to ``NOT_FOUND``
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any

from apscheduler.jobstores.base import ConflictingIdError, JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from cadence.core.errors import ScheduleError
from cadence.core.logging import get_logger

from .protocol import JobCallback, UnscheduleResult, period_seconds

logger = get_logger(__name__)


class APSchedulerBackend:
    """APScheduler-based timer backend.

    Example::

        >>> backend = APSchedulerBackend()
        >>> backend.start()                      # inside a running loop
        >>> backend.schedule_recurring("dynamic-job", timedelta(seconds=10), tick)
        >>> backend.unschedule("dynamic-job").outcome
        <UnscheduleOutcome.REMOVED: 'REMOVED'>
    """

    name: str = "apscheduler"

    def __init__(
        self,
        *,
        default_max_instances: int = 10,
        misfire_grace_seconds: int | None = 30,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._scheduler = scheduler or AsyncIOScheduler()
        self.default_max_instances = default_max_instances
        self.misfire_grace_seconds = misfire_grace_seconds

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._scheduler.running:
            logger.warning("timer_backend_already_started", backend=self.name)
            return
        self._scheduler.start()
        logger.info("timer_backend_started", backend=self.name)

    async def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            # APScheduler 3.11 queues the stop on the event loop
            while self._scheduler.running:
                await asyncio.sleep(0)
            logger.info("timer_backend_stopped", backend=self.name)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    # ------------------------------------------------------------------
    # TimerBackend protocol
    # ------------------------------------------------------------------

    def schedule_recurring(
        self,
        identity: str,
        period: timedelta,
        callback: JobCallback,
        *,
        max_instances: int | None = None,
    ) -> None:
        try:
            seconds = period_seconds(period)
        except ValueError as exc:
            raise ScheduleError(str(exc), cause=exc).with_context(identity=identity) from exc

        if self._scheduler.get_job(identity) is not None:
            raise ScheduleError(f"Job already registered: {identity}").with_context(identity=identity)

        async def _fire() -> None:
            await callback()

        try:
            self._scheduler.add_job(
                _fire,
                "interval",
                seconds=seconds,
                id=identity,
                name=identity,
                max_instances=max_instances or self.default_max_instances,
                coalesce=False,
                misfire_grace_time=self.misfire_grace_seconds,
                replace_existing=False,
            )
        except ConflictingIdError as exc:
            raise ScheduleError(f"Job already registered: {identity}", cause=exc).with_context(
                identity=identity
            ) from exc
        except Exception as exc:
            raise ScheduleError(f"APScheduler rejected job {identity}: {exc}", cause=exc).with_context(
                identity=identity
            ) from exc

        logger.debug("timer_job_scheduled", backend=self.name, identity=identity, period_seconds=seconds)

    def unschedule(self, identity: str) -> UnscheduleResult:
        try:
            self._scheduler.remove_job(identity)
        except JobLookupError:
            return UnscheduleResult.not_found(identity)
        except Exception as exc:
            return UnscheduleResult.failed(identity, exc)
        return UnscheduleResult.removed(identity)

    def has_job(self, identity: str) -> bool:
        return self._scheduler.get_job(identity) is not None

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def health(self) -> dict[str, Any]:
        running = self._scheduler.running
        return {
            "healthy": running,
            "backend": self.name,
            "jobs": self.job_ids(),
        }
