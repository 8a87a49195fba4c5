"""
Shared pytest fixtures and configuration for cadence tests.

This module provides:
- Settings cache cleanup for test isolation
- A file-backed SQLite audit store per test
- Test doubles for the timer backend and the audit store

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    def test_something(audit_store, timer):
        ...
"""

import sys
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Generator

import pytest

# Ensure cadence package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cadence.audit import AuditRecord, SQLAlchemyAuditStore, create_audit_store
from cadence.core.errors import PersistenceError, ScheduleError
from cadence.core.scheduling import JobCallback, TaskRunner, UnscheduleResult
from cadence.core.settings import clear_settings_cache


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def audit_db_url(tmp_path: Path) -> str:
    """SQLite URL of a fresh audit database under ``tmp_path``."""
    return f"sqlite:///{tmp_path / 'audit.db'}"


@pytest.fixture
def audit_store(audit_db_url: str) -> Generator[SQLAlchemyAuditStore, None, None]:
    """Initialized audit store, disposed after the test."""
    store = create_audit_store(audit_db_url)
    yield store
    store.dispose()


@pytest.fixture
def runner(audit_store: SQLAlchemyAuditStore) -> TaskRunner:
    return TaskRunner(audit_store)


class FlakyAuditStore:
    """Audit store wrapper that fails the next ``fail_next`` persists."""

    def __init__(self, inner: SQLAlchemyAuditStore, fail_next: int = 0) -> None:
        self.inner = inner
        self.fail_next = fail_next
        self.attempts = 0

    async def persist(self, record: AuditRecord) -> AuditRecord:
        self.attempts += 1
        if self.fail_next > 0:
            self.fail_next -= 1
            raise PersistenceError("disk full").with_context(job_name=record.job_name)
        return await self.inner.persist(record)

    async def count(self) -> int:
        return await self.inner.count()

    async def list(self, limit: int | None = None):
        return await self.inner.list(limit)


@pytest.fixture
def flaky_store(audit_store: SQLAlchemyAuditStore) -> FlakyAuditStore:
    return FlakyAuditStore(audit_store)


# =============================================================================
# Timer Fixtures
# =============================================================================


@dataclass
class RegisteredJob:
    period: timedelta
    callback: JobCallback
    max_instances: int | None


class RecordingTimerBackend:
    """In-memory timer backend that records calls and fires jobs on demand.

    Set ``fail_schedule`` to make the next ``schedule_recurring`` calls raise,
    or ``unschedule_error`` to make ``unschedule`` report ``ERROR``.
    """

    name = "recording"

    def __init__(self) -> None:
        self.jobs: dict[str, RegisteredJob] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_schedule: Exception | None = None
        self.unschedule_error: Exception | None = None
        self.started = False

    def start(self) -> None:
        self.started = True

    async def shutdown(self) -> None:
        self.started = False
        self.jobs.clear()

    def schedule_recurring(
        self,
        identity: str,
        period: timedelta,
        callback: JobCallback,
        *,
        max_instances: int | None = None,
    ) -> None:
        self.calls.append(("schedule", identity))
        if self.fail_schedule is not None:
            raise self.fail_schedule
        if identity in self.jobs:
            raise ScheduleError(f"Job already registered: {identity}")
        self.jobs[identity] = RegisteredJob(period, callback, max_instances)

    def unschedule(self, identity: str) -> UnscheduleResult:
        self.calls.append(("unschedule", identity))
        if self.unschedule_error is not None:
            return UnscheduleResult.failed(identity, self.unschedule_error)
        if self.jobs.pop(identity, None) is None:
            return UnscheduleResult.not_found(identity)
        return UnscheduleResult.removed(identity)

    def has_job(self, identity: str) -> bool:
        return identity in self.jobs

    def job_ids(self) -> list[str]:
        return list(self.jobs)

    def health(self) -> dict[str, Any]:
        return {"healthy": self.started, "backend": self.name, "jobs": self.job_ids()}

    async def fire(self, identity: str) -> Any:
        """Invoke the callback registered under *identity* once."""
        return await self.jobs[identity].callback()

    def calls_for(self, identity: str) -> list[str]:
        return [action for action, ident in self.calls if ident == identity]


@pytest.fixture
def timer() -> RecordingTimerBackend:
    return RecordingTimerBackend()
