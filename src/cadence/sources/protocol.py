"""Parameter source protocol.

A parameter source answers one question per poll: which interval and action
id should the dynamic job run with right now? How it answers (database, HTTP
API, random mock) is irrelevant to the orchestrator, which only relies on the
coroutine either returning ``JobParameters`` or raising.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cadence.domain.parameters import JobParameters


@runtime_checkable
class ParameterSource(Protocol):
    """Async provider of ``JobParameters``.

    Implementations:
        - MockParameterSource: random interval/action id with simulated latency
        - StaticParameterSource: fixed pair from configuration
        - SequenceParameterSource: scripted replay for tests and demos
    """

    name: str

    async def fetch_parameters(self) -> JobParameters:
        """Fetch the current parameters.

        Raises:
            Exception: Any failure; the orchestrator absorbs it and retries
                on the next outer tick.
        """
        ...
