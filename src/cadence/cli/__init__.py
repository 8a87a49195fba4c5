"""Command-line interface for cadence (``cadence`` console script)."""

from cadence.cli.app import app

__all__ = ["app"]
