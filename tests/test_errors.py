"""Tests for the cadence error hierarchy."""

from __future__ import annotations

import pytest

from cadence.core.errors import (
    CadenceError,
    ConfigError,
    ErrorCategory,
    InvalidParametersError,
    ParameterFetchError,
    ParameterTimeoutError,
    PersistenceError,
    ScheduleError,
    categorize_error,
    is_retryable,
)


class TestDefaults:
    """Category and retry defaults per subclass."""

    @pytest.mark.parametrize(
        ("error_cls", "category", "retryable"),
        [
            (ParameterFetchError, ErrorCategory.SOURCE, True),
            (InvalidParametersError, ErrorCategory.VALIDATION, False),
            (ConfigError, ErrorCategory.CONFIG, False),
            (ScheduleError, ErrorCategory.ORCHESTRATION, True),
            (PersistenceError, ErrorCategory.STORAGE, True),
            (CadenceError, ErrorCategory.INTERNAL, False),
        ],
    )
    def test_defaults(self, error_cls, category, retryable):
        error = error_cls("boom")
        assert error.category is category
        assert error.retryable is retryable

    def test_override(self):
        error = ScheduleError("boom", retryable=False)
        assert error.retryable is False

    def test_timeout_message(self):
        error = ParameterTimeoutError(2.5)
        assert error.timeout_seconds == 2.5
        assert "timed out after 2.5s" in str(error)
        assert isinstance(error, ParameterFetchError)


class TestContext:
    def test_with_context_known_and_extra_fields(self):
        error = PersistenceError("disk full").with_context(job_name="dynamic-job-ACTION_1", attempt=1)

        assert error.context.job_name == "dynamic-job-ACTION_1"
        assert error.context.metadata == {"attempt": 1}

    def test_to_dict(self):
        cause = OSError("no space left")
        error = PersistenceError("disk full", cause=cause).with_context(job_name="dynamic-job-ACTION_1")

        data = error.to_dict()

        assert data["error_type"] == "PersistenceError"
        assert data["message"] == "disk full"
        assert data["category"] == "STORAGE"
        assert data["retryable"] is True
        assert data["context"]["job_name"] == "dynamic-job-ACTION_1"
        assert data["cause"] == "OSError: no space left"
        assert error.__cause__ is cause


class TestHelpers:
    def test_is_retryable(self):
        assert is_retryable(ParameterFetchError("x"))
        assert not is_retryable(ConfigError("x"))
        assert is_retryable(ConnectionError("x"))
        assert not is_retryable(KeyError("x"))

    def test_categorize_error(self):
        assert categorize_error(ScheduleError("x")) is ErrorCategory.ORCHESTRATION
        assert categorize_error(TimeoutError()) is ErrorCategory.SOURCE
        assert categorize_error(ValueError()) is ErrorCategory.VALIDATION
        assert categorize_error(KeyError()) is ErrorCategory.UNKNOWN
