"""
cadence: a control loop that keeps one dynamically configured recurring job
in line with externally polled parameters and records every execution.

Manifesto:
    Scheduling parameters change at runtime; the job that depends on them
    should follow without a restart, without churn when nothing changed, and
    without ever losing track of which executions actually happened.

Quick start:
    >>> from cadence.app import build_app
    >>> app = build_app()
    >>> await app.run(stop_event)

Tags:
    cadence, scheduling, orchestrator, apscheduler, audit

Doc-Types:
    package-overview
"""

__version__ = "0.1.0"
