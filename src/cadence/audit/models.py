"""Audit record model (``audit_log``).

Manifesto:
    One row per execution of the dynamic job. Rows are append-only: created by
    the task runner, never updated, never deleted by cadence.

Tags:
    cadence, audit, models, dataclasses, append-only

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from cadence.core.timestamps import to_iso8601


@dataclass(frozen=True)
class AuditRecord:
    """Audit log row.

    ``id`` is ``None`` until the store assigns it on persist.
    """

    job_name: str
    executed_at: datetime
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "job_name": self.job_name,
            "executed_at": to_iso8601(self.executed_at),
        }
