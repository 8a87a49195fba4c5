"""Job parameters fetched from the parameter source on each poll.

Manifesto:
    Parameters arrive as raw tokens (``"PT17S"``, ``"ACTION_482"``). The
    orchestrator compares the *raw* interval token to decide whether to
    reschedule, and only parses it into a ``timedelta`` when registering the
    timer job. Validation happens once, at construction, so an invalid pair
    can never reach the scheduling step.

Tags:
    cadence, domain, parameters, iso-8601, value-object

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from cadence.core.errors import InvalidParametersError

_DURATION = TypeAdapter(timedelta)


def parse_interval(token: str) -> timedelta:
    """Parse an ISO-8601 duration token into a strictly positive ``timedelta``.

    Raises:
        InvalidParametersError: If the token is empty, malformed, or not positive.

    Example:
        >>> parse_interval("PT17S")
        datetime.timedelta(seconds=17)
    """
    if not isinstance(token, str) or not token.strip():
        raise InvalidParametersError("interval must be a non-empty string").with_context(
            interval=repr(token)
        )
    # timedelta validation also takes "1 day", "17" and "00:00:17"
    if not token.lstrip("+-").upper().startswith("P"):
        raise InvalidParametersError(
            f"interval {token!r} is not an ISO-8601 duration"
        ).with_context(interval=token)
    try:
        period = _DURATION.validate_python(token)
    except PydanticValidationError as exc:
        raise InvalidParametersError(
            f"interval {token!r} is not an ISO-8601 duration", cause=exc
        ).with_context(interval=token) from exc
    if period <= timedelta(0):
        raise InvalidParametersError(
            f"interval {token!r} must be strictly positive"
        ).with_context(interval=token)
    return period


@dataclass(frozen=True)
class JobParameters:
    """Immutable ``(interval, action_id)`` pair from one poll."""

    interval: str
    action_id: str
    period: timedelta = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.action_id, str) or not self.action_id:
            raise InvalidParametersError("action_id must be a non-empty string").with_context(
                interval=self.interval
            )
        object.__setattr__(self, "period", parse_interval(self.interval))
