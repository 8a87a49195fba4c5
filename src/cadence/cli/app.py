"""
Root Typer application for the cadence CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="cadence",
    help="cadence: dynamic job scheduler driven by polled parameters.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from cadence import __version__

        typer.echo(f"cadence {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """cadence CLI: run the control loop and inspect the audit log."""


@app.command("run")
def run(
    poll_interval: float | None = typer.Option(
        None, "--poll-interval", min=0.1, help="Seconds between parameter polls (default: 30)"
    ),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Timer backend: apscheduler, asyncio"),
    source: str | None = typer.Option(None, "--source", "-s", help="Parameter source: mock, static"),
    database: str | None = typer.Option(None, "--database", "-d", help="Audit store URL"),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Run the orchestrator until interrupted."""
    from cadence.app import run_app
    from cadence.cli.utils import load_settings

    settings = load_settings(
        poll_interval_seconds=poll_interval,
        timer_backend=backend,
        parameter_source=source,
        database_url=database,
        log_level=log_level,
    )
    run_app(settings)


# ── Sub-command registration ─────────────────────────────────────────────

from cadence.cli.audit import app as audit_app  # noqa: E402
from cadence.cli.config import app as config_app  # noqa: E402

app.add_typer(audit_app, name="audit", help="Audit log inspection.")
app.add_typer(config_app, name="config", help="Configuration inspection.")
