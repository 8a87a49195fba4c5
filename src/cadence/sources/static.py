"""Deterministic parameter sources.

``StaticParameterSource`` serves a fixed pair from configuration, which is
what a deployment without an external parameter store uses.
``SequenceParameterSource`` replays a scripted list of pairs or exceptions;
tests and demos use it to walk the orchestrator through specific transitions.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from cadence.core.errors import ConfigError
from cadence.domain.parameters import JobParameters

ScriptEntry = JobParameters | tuple[str, str] | BaseException


class StaticParameterSource:
    """Always returns the same parameters."""

    name = "static"

    def __init__(self, interval: str, action_id: str) -> None:
        self._params = JobParameters(interval=interval, action_id=action_id)

    async def fetch_parameters(self) -> JobParameters:
        return self._params


class SequenceParameterSource:
    """Replays a script of parameters and failures, one entry per fetch.

    Entries may be ``JobParameters``, ``(interval, action_id)`` tuples, or
    exception instances (raised when reached). Once the script is exhausted
    the last entry repeats.

    Example:
        >>> source = SequenceParameterSource([
        ...     ("PT10S", "ACTION_1"),
        ...     ConnectionError("source down"),
        ...     ("PT20S", "ACTION_2"),
        ... ])
    """

    name = "sequence"

    def __init__(self, script: Iterable[ScriptEntry], *, delay_seconds: float = 0.0) -> None:
        self._script = list(script)
        if not self._script:
            raise ConfigError("SequenceParameterSource needs at least one entry")
        self._position = 0
        self.delay_seconds = delay_seconds
        self.calls = 0

    async def fetch_parameters(self) -> JobParameters:
        self.calls += 1
        entry = self._script[min(self._position, len(self._script) - 1)]
        self._position += 1

        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, JobParameters):
            return entry
        interval, action_id = entry
        return JobParameters(interval=interval, action_id=action_id)
