"""Pytest fixtures for scheduling tests."""

import pytest

from cadence.core.scheduling import DynamicJobOrchestrator
from cadence.sources import SequenceParameterSource


@pytest.fixture
def make_orchestrator(timer, runner):
    """Build an orchestrator over a scripted source and the recording timer.

    Usage:
        orchestrator, source = make_orchestrator([("PT10S", "ACTION_1")])
    """

    def _make(script, *, delay_seconds: float = 0.0, **kwargs):
        source = SequenceParameterSource(script, delay_seconds=delay_seconds)
        kwargs.setdefault("runner", runner)
        orchestrator = DynamicJobOrchestrator(source=source, backend=timer, **kwargs)
        return orchestrator, source

    return _make
