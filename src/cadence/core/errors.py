"""
Structured error types for cadence.

Every failure the control loop can hit has a typed exception carrying its
category, a retry hint, and the scheduling context it happened in (job name,
slot identity, action id, interval token). Callers that absorb errors, like
the orchestrator, log ``error.to_dict()`` so the context survives into the
structured log line.

Manifesto:
    - **Typed hierarchy:** one subclass per failure path of the loop
    - **Explicit retry semantics:** every error knows if the next tick heals it
    - **Rich context:** errors carry metadata for logging
    - **Error chaining:** the original exception is preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        CadenceError                          │
        │        (category, retryable, context, cause)                 │
        ├──────────────────────────────────────────────────────────────┤
        │                                                              │
        │  TransientError          ValidationError     ConfigError     │
        │  (retryable=True)        (VALIDATION)        (CONFIG)        │
        │       │                        │                             │
        │  ParameterFetchError     InvalidParametersError              │
        │  ParameterTimeoutError                                       │
        │                                                              │
        │  OrchestrationError      StorageError                        │
        │  (ORCHESTRATION)         (STORAGE)                           │
        │       │                        │                             │
        │  ScheduleError           PersistenceError                    │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ParameterFetchError("source unavailable")
    >>> error.retryable
    True
    >>> error.with_context(action_id="ACTION_7").context.action_id
    'ACTION_7'

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context, cadence

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories for classification and log routing."""

    SOURCE = "SOURCE"              # Parameter source failures
    VALIDATION = "VALIDATION"      # Invalid parameters or inputs
    CONFIG = "CONFIG"              # Missing/invalid settings
    ORCHESTRATION = "ORCHESTRATION"  # Timer / registration failures
    STORAGE = "STORAGE"            # Audit store failures
    INTERNAL = "INTERNAL"          # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a cadence error.

    Only non-None fields are emitted by ``to_dict()`` so log lines stay short.

    Attributes:
        job_name: Audit job source name (``dynamic-job-ACTION_7``)
        identity: Timer slot identity (``dynamic-job``)
        action_id: Action identifier from the parameter source
        interval: Raw interval token (``PT10S``)
        metadata: Additional key-value pairs
    """

    job_name: str | None = None
    identity: str | None = None
    action_id: str | None = None
    interval: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("job_name", "identity", "action_id", "interval"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CadenceError(Exception):
    """
    Base exception for all cadence errors.

    Subclasses set ``default_category`` and ``default_retryable`` so raising
    sites only pass what differs from the defaults.

    Args:
        message: Human-readable description
        category: Override of ``default_category``
        retryable: Override of ``default_retryable``
        context: Structured metadata
        cause: Underlying exception, also set as ``__cause__``
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CadenceError:
        """Attach context fields, returning ``self`` for chaining."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context = self.context.to_dict()
        if context:
            result["context"] = context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# Transient errors (healed by the next outer tick)
# =============================================================================


class TransientError(CadenceError):
    """Temporary failure, expected to clear on its own."""

    default_category = ErrorCategory.SOURCE
    default_retryable = True


class ParameterFetchError(TransientError):
    """The parameter source failed to produce parameters."""


class ParameterTimeoutError(ParameterFetchError):
    """The parameter source did not answer within the fetch timeout."""

    def __init__(self, timeout_seconds: float, **kwargs: Any) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Parameter fetch timed out after {timeout_seconds}s", **kwargs)


# =============================================================================
# Validation / configuration errors (never retryable as-is)
# =============================================================================


class ValidationError(CadenceError):
    """Input failed validation."""

    default_category = ErrorCategory.VALIDATION


class InvalidParametersError(ValidationError):
    """Fetched parameters violate the JobParameters invariants."""


class ConfigError(CadenceError):
    """Missing or invalid configuration."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# Orchestration / storage errors
# =============================================================================


class OrchestrationError(CadenceError):
    """Timer or orchestrator failure."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = True


class ScheduleError(OrchestrationError):
    """Registering a recurring job with the timer backend failed."""


class StorageError(CadenceError):
    """Audit storage failure."""

    default_category = ErrorCategory.STORAGE
    default_retryable = True


class PersistenceError(StorageError):
    """An audit record could not be persisted."""


# =============================================================================
# Helpers
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Return whether *error* is expected to clear on a later tick."""
    if isinstance(error, CadenceError):
        return error.retryable
    return isinstance(error, (TimeoutError, ConnectionError, OSError))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Best-effort category for any exception."""
    if isinstance(error, CadenceError):
        return error.category
    if isinstance(error, (TimeoutError, ConnectionError)):
        return ErrorCategory.SOURCE
    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CadenceError",
    "TransientError",
    "ParameterFetchError",
    "ParameterTimeoutError",
    "ValidationError",
    "InvalidParametersError",
    "ConfigError",
    "OrchestrationError",
    "ScheduleError",
    "StorageError",
    "PersistenceError",
    "is_retryable",
    "categorize_error",
]
