"""Domain value types for cadence."""

from cadence.domain.parameters import JobParameters, parse_interval

__all__ = ["JobParameters", "parse_interval"]
