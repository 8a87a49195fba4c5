"""Task runner: one unit of business work per dynamic-job tick.

Manifesto:
    The proof that a tick happened is the audit record. The runner builds
    that record at the moment it runs and hands it to the store as one
    atomic write. A failed write is reported and forgotten: the next tick
    is an independent attempt, and the orchestrator's bookkeeping is never
    touched from here.

Tags:
    cadence, scheduling, task-runner, audit, business-task

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from cadence.audit.models import AuditRecord
from cadence.audit.store import AuditStore
from cadence.core.errors import categorize_error
from cadence.core.logging import LogContext, get_logger
from cadence.core.timestamps import utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class TaskOutcome:
    """Result of one ``execute_business_task`` call."""

    source_name: str
    success: bool
    record: AuditRecord | None = None
    error: BaseException | None = None


class TaskRunner:
    """Executes the business task and records it in the audit store.

    Example:
        >>> runner = TaskRunner(store)
        >>> outcome = await runner.execute_business_task("dynamic-job-ACTION_7")
        >>> outcome.record.job_name
        'dynamic-job-ACTION_7'
    """

    def __init__(self, store: AuditStore, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self._clock = clock

    async def execute_business_task(self, source_name: str) -> TaskOutcome:
        """Record one execution of *source_name*.

        Persistence failures are logged and returned in the outcome; they are
        never retried here and never raised to the timer.

        Raises:
            ValueError: If *source_name* is empty.
        """
        if not source_name:
            raise ValueError("source_name must be a non-empty string")

        async with LogContext(job_name=source_name):
            logger.info("business_task_started")
            record = AuditRecord(job_name=source_name, executed_at=self._clock())
            try:
                saved = await self.store.persist(record)
            except Exception as exc:
                logger.error(
                    "audit_persist_failed",
                    error=str(exc),
                    category=categorize_error(exc).value,
                    exc_info=True,
                )
                return TaskOutcome(source_name=source_name, success=False, error=exc)

            logger.debug("audit_persisted", record_id=saved.id)
            return TaskOutcome(source_name=source_name, success=True, record=saved)
