"""Mock parameter source simulating an external database or API.

Each fetch waits ``latency_seconds`` and returns a random interval between
``min_seconds`` and ``max_seconds`` (``PT{n}S``) and a random
``ACTION_{0..999}`` identifier, so a running loop reschedules on most polls.
"""

from __future__ import annotations

import asyncio
import random

from cadence.core.errors import ConfigError
from cadence.core.logging import get_logger
from cadence.domain.parameters import JobParameters

logger = get_logger(__name__)


class MockParameterSource:
    """Random parameter source with simulated I/O latency.

    Example:
        >>> source = MockParameterSource(min_seconds=10, max_seconds=30)
        >>> params = await source.fetch_parameters()
        >>> params.interval
        'PT17S'
    """

    name = "mock"

    def __init__(
        self,
        *,
        min_seconds: int = 10,
        max_seconds: int = 30,
        latency_seconds: float = 0.1,
        rng: random.Random | None = None,
    ) -> None:
        if min_seconds < 1 or min_seconds > max_seconds:
            raise ConfigError(
                f"invalid mock interval range [{min_seconds}, {max_seconds}]"
            )
        self.min_seconds = min_seconds
        self.max_seconds = max_seconds
        self.latency_seconds = latency_seconds
        self._rng = rng or random.Random()

    async def fetch_parameters(self) -> JobParameters:
        logger.info("parameter_source_query", source=self.name)
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        seconds = self._rng.randint(self.min_seconds, self.max_seconds)
        action_id = f"ACTION_{self._rng.randrange(1000)}"
        return JobParameters(interval=f"PT{seconds}S", action_id=action_id)
