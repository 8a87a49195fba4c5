"""End-to-end tests: real timers, real SQLite audit store.

Each test runs the wired application for a few seconds and watches the audit
log fill up. Dynamic-job periods are whole seconds, so these are marked slow.
"""

from __future__ import annotations

import asyncio

import pytest

from cadence.app import build_app
from cadence.core.scheduling import DYNAMIC_JOB_IDENTITY, POLL_JOB_IDENTITY
from cadence.core.settings import CadenceSettings
from cadence.sources import SequenceParameterSource


async def _wait_until(predicate, timeout: float) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not await predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.1)


def _settings(audit_db_url: str, **overrides) -> CadenceSettings:
    values = {
        "database_url": audit_db_url,
        "timer_backend": "asyncio",
        "parameter_source": "static",
        "static_interval": "PT1S",
        "static_action_id": "ACTION_42",
        "poll_interval_seconds": 0.2,
        "fetch_timeout_seconds": 1.0,
    }
    values.update(overrides)
    return CadenceSettings(**values)


@pytest.mark.slow
class TestDynamicJobFlow:
    """The control loop driving real timer backends."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("backend", ["asyncio", "apscheduler"])
    async def test_ticks_are_audited(self, audit_db_url, backend):
        """The registered job fires and every tick lands in the audit log."""
        app = build_app(_settings(audit_db_url, timer_backend=backend))
        stop = asyncio.Event()
        task = asyncio.create_task(app.run(stop))
        try:
            async def two_records():
                return await app.store.count() >= 2

            await _wait_until(two_records, timeout=8.0)

            records = await app.store.list()
            assert {r.job_name for r in records} == {"dynamic-job-ACTION_42"}
            assert app.backend.has_job(DYNAMIC_JOB_IDENTITY)
            assert app.backend.has_job(POLL_JOB_IDENTITY)
            assert app.orchestrator.last_interval == "PT1S"
            assert app.orchestrator.get_stats().reschedules == 1
        finally:
            stop.set()
            await asyncio.wait_for(task, timeout=10.0)

        assert not app.orchestrator.is_running
        assert app.backend.health()["healthy"] is False

    @pytest.mark.asyncio
    async def test_interval_change_switches_job_name(self, audit_db_url):
        """After the interval changes, new ticks carry the new action id."""
        source = SequenceParameterSource(
            [("PT1S", "ACTION_A"), ("PT1S", "ACTION_A"), ("PT2S", "ACTION_B")]
        )
        app = build_app(_settings(audit_db_url), source=source)
        stop = asyncio.Event()
        task = asyncio.create_task(app.run(stop))
        try:
            async def saw_action_b():
                return any(r.job_name == "dynamic-job-ACTION_B" for r in await app.store.list())

            await _wait_until(saw_action_b, timeout=10.0)

            assert app.orchestrator.last_interval == "PT2S"
            assert app.orchestrator.current_job.job_source_name == "dynamic-job-ACTION_B"
            assert app.backend.job_ids().count(DYNAMIC_JOB_IDENTITY) == 1
        finally:
            stop.set()
            await asyncio.wait_for(task, timeout=10.0)

    @pytest.mark.asyncio
    async def test_source_outage_keeps_job_running(self, audit_db_url):
        """A failing source does not stop the already registered job."""
        source = SequenceParameterSource([("PT1S", "ACTION_A"), ConnectionError("source down")])
        app = build_app(_settings(audit_db_url), source=source)
        stop = asyncio.Event()
        task = asyncio.create_task(app.run(stop))
        try:
            async def two_records():
                return await app.store.count() >= 2

            await _wait_until(two_records, timeout=8.0)

            stats = app.orchestrator.get_stats()
            assert stats.fetch_failures >= 1
            assert app.orchestrator.last_interval == "PT1S"
        finally:
            stop.set()
            await asyncio.wait_for(task, timeout=10.0)
