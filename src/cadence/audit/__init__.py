"""Audit log of dynamic-job executions.

Tags:
    cadence, audit, storage, append-only

Doc-Types:
    package-overview
"""

from __future__ import annotations

from .models import AuditRecord
from .orm import AuditBase, AuditLogTable, create_audit_engine
from .store import AuditStore, SQLAlchemyAuditStore

__all__ = [
    "AuditRecord",
    "AuditStore",
    "SQLAlchemyAuditStore",
    "AuditBase",
    "AuditLogTable",
    "create_audit_engine",
    "create_audit_store",
]


def create_audit_store(url: str) -> SQLAlchemyAuditStore:
    """Create and initialize a SQLAlchemy audit store for *url*."""
    store = SQLAlchemyAuditStore.from_url(url)
    store.initialize()
    return store
