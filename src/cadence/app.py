"""Application wiring: settings → store, timer, source, runner, orchestrator.

``build_app`` assembles the components; ``CadenceApp.run`` drives them until
a stop event is set; ``run_app`` is the process entry point used by the CLI
(it installs SIGINT/SIGTERM handlers and configures logging).
"""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass

from cadence.audit import SQLAlchemyAuditStore, create_audit_store
from cadence.core.logging import configure_logging, get_logger
from cadence.core.scheduling import (
    DynamicJobOrchestrator,
    TaskRunner,
    TimerBackend,
    create_timer_backend,
)
from cadence.core.settings import CadenceSettings, get_settings
from cadence.sources import ParameterSource, create_parameter_source

logger = get_logger(__name__)


@dataclass
class CadenceApp:
    """Fully wired control loop."""

    settings: CadenceSettings
    store: SQLAlchemyAuditStore
    backend: TimerBackend
    source: ParameterSource
    runner: TaskRunner
    orchestrator: DynamicJobOrchestrator

    async def run(self, stop_event: asyncio.Event) -> None:
        """Start the timer and orchestrator, wait for *stop_event*, then shut down."""
        self.backend.start()
        try:
            await self.orchestrator.start()
            await stop_event.wait()
        finally:
            await self.orchestrator.stop()
            await self.backend.shutdown()
            self.store.dispose()
            logger.info("cadence_stopped", health=self.orchestrator.health().to_dict())


def build_app(
    settings: CadenceSettings | None = None,
    *,
    source: ParameterSource | None = None,
    backend: TimerBackend | None = None,
) -> CadenceApp:
    """Assemble a ``CadenceApp`` from settings.

    ``source`` and ``backend`` override the configured ones (tests, embedding).
    """
    settings = settings or get_settings()

    store = create_audit_store(settings.resolved_database_url)
    backend = backend or create_timer_backend(
        settings.timer_backend, max_instances=settings.dynamic_job_max_instances
    )
    source = source or create_parameter_source(settings)
    runner = TaskRunner(store)
    orchestrator = DynamicJobOrchestrator(
        source=source,
        backend=backend,
        runner=runner,
        poll_interval_seconds=settings.poll_interval_seconds,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
        strict_unschedule=settings.strict_unschedule,
        dynamic_job_max_instances=settings.dynamic_job_max_instances,
        poll_on_start=settings.poll_on_start,
    )
    return CadenceApp(
        settings=settings,
        store=store,
        backend=backend,
        source=source,
        runner=runner,
        orchestrator=orchestrator,
    )


async def _serve(app: CadenceApp) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows event loops
            pass
    await app.run(stop_event)


def run_app(settings: CadenceSettings | None = None) -> None:
    """Configure logging and run the control loop until SIGINT/SIGTERM."""
    settings = settings or get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        service=settings.service_name,
    )
    app = build_app(settings)
    logger.info(
        "cadence_starting",
        backend=app.backend.name,
        source=app.source.name,
        database=settings.resolved_database_url,
        poll_interval_seconds=settings.poll_interval_seconds,
    )
    asyncio.run(_serve(app))
