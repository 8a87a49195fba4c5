"""
Centralized settings for cadence.

Manifesto:
    The only business-relevant knob of the control loop is the outer poll
    period. Everything else (where the audit log lives, which timer backend
    drives the jobs, how logs are rendered) is deployment configuration and
    belongs in one validated, environment-driven object.

    - **Pydantic validation:** type-checked at startup, not on the first tick
    - **Environment-driven:** ``CADENCE_*`` env vars and ``.env`` files
    - **Sensible defaults:** works out of the box for development

Examples:
    >>> from cadence.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.poll_interval_seconds
    30.0

Tags:
    settings, configuration, pydantic, environment, cadence

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cadence.core.errors import ConfigError

TimerBackendName = Literal["apscheduler", "asyncio"]
ParameterSourceName = Literal["mock", "static"]


class CadenceSettings(BaseSettings):
    """Cadence configuration.

    All fields can be set through ``CADENCE_*`` environment variables (e.g.
    ``CADENCE_POLL_INTERVAL_SECONDS=10``) or a ``.env`` file.

    Fields
    ──────
    poll_interval_seconds : Outer cadence of ``check_and_reschedule``
    poll_on_start         : Run one check immediately when the loop starts
    fetch_timeout_seconds : Upper bound on one parameter fetch (None = no bound)
    strict_unschedule     : Skip registration when unschedule fails unexpectedly
    timer_backend         : ``apscheduler`` or ``asyncio``
    database_url          : SQLAlchemy URL of the audit store
    """

    model_config = SettingsConfigDict(
        env_prefix="CADENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Orchestration ────────────────────────────────────────────
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    poll_on_start: bool = True
    fetch_timeout_seconds: float | None = Field(default=5.0, gt=0)
    strict_unschedule: bool = False

    # ── Timer ────────────────────────────────────────────────────
    timer_backend: TimerBackendName = "apscheduler"
    dynamic_job_max_instances: int = Field(default=10, ge=1)

    # ── Parameter source ─────────────────────────────────────────
    parameter_source: ParameterSourceName = "mock"
    static_interval: str = "PT30S"
    static_action_id: str = "ACTION_STATIC"
    mock_min_seconds: int = Field(default=10, ge=1)
    mock_max_seconds: int = Field(default=30, ge=1)
    mock_latency_seconds: float = Field(default=0.1, ge=0)

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".cadence",
        description="Persistent data directory",
    )
    database_url: str | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    service_name: str = "cadence"

    @model_validator(mode="after")
    def _validate_ranges(self) -> CadenceSettings:
        if self.mock_min_seconds > self.mock_max_seconds:
            raise ConfigError(
                f"mock_min_seconds ({self.mock_min_seconds}) must not exceed "
                f"mock_max_seconds ({self.mock_max_seconds})"
            )
        return self

    @property
    def resolved_database_url(self) -> str:
        """Database URL, defaulting to a SQLite file under ``data_dir``."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'cadence.db'}"


_settings_cache: dict[str, CadenceSettings] = {}


def get_settings(*, _force_reload: bool = False, **overrides) -> CadenceSettings:
    """Return the process-wide settings, loading them on first use.

    Keyword overrides bypass the cache and return a fresh instance.

    Raises:
        ConfigError: If environment or overrides fail validation.
    """
    if not overrides and not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    try:
        settings = CadenceSettings(**overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid cadence configuration: {exc}", cause=exc) from exc

    if not overrides:
        _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
