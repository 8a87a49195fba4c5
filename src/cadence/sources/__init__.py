"""Parameter sources feeding the orchestrator.

Tags:
    cadence, parameters, sources, mock, adapters

Doc-Types:
    package-overview
"""

from __future__ import annotations

from .mock import MockParameterSource
from .protocol import ParameterSource
from .static import SequenceParameterSource, StaticParameterSource

__all__ = [
    "ParameterSource",
    "MockParameterSource",
    "StaticParameterSource",
    "SequenceParameterSource",
    "create_parameter_source",
]


def create_parameter_source(settings) -> ParameterSource:
    """Build the parameter source named by ``settings.parameter_source``."""
    if settings.parameter_source == "static":
        return StaticParameterSource(settings.static_interval, settings.static_action_id)
    return MockParameterSource(
        min_seconds=settings.mock_min_seconds,
        max_seconds=settings.mock_max_seconds,
        latency_seconds=settings.mock_latency_seconds,
    )
