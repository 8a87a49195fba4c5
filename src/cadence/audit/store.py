"""Audit store: durable, append-only log of dynamic-job executions.

Manifesto:
    The task runner must be able to say "this tick happened" without
    blocking the event loop and without leaving half-written rows behind.
    The store therefore exposes coroutine methods and runs each one as a
    single SQLAlchemy transaction in a worker thread.

┌──────────────────────────────────────────────────────────────────────────────┐
│  AUDIT STORE                                                                  │
│                                                                               │
│   TaskRunner ── await persist(record) ──► asyncio.to_thread                   │
│                                              │                                │
│                                              ▼                                │
│                                   with session.begin():                       │
│                                       INSERT INTO audit_log                   │
│                                   (commit or full rollback)                   │
│                                                                               │
│   Reads:  count() ─► SELECT COUNT(*)    list() ─► ORDER BY id (insertion)     │
└──────────────────────────────────────────────────────────────────────────────┘

Concurrent appends are safe: every call opens its own session, rows are
never updated in place, and ordering is the autoincrement id.

Tags:
    cadence, audit, storage, sqlalchemy, append-only, async

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Sequence
from contextlib import nullcontext
from typing import Protocol, runtime_checkable

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from cadence.core.errors import PersistenceError, StorageError
from cadence.core.logging import get_logger
from cadence.core.timestamps import ensure_utc

from .models import AuditRecord
from .orm import AuditBase, AuditLogTable, audit_session_factory, create_audit_engine

logger = get_logger(__name__)


@runtime_checkable
class AuditStore(Protocol):
    """Append-only audit log contract."""

    async def persist(self, record: AuditRecord) -> AuditRecord:
        """Persist *record* atomically and return it with its assigned id.

        Raises:
            PersistenceError: If the record could not be stored. No partial
                row is left behind.
        """
        ...

    async def count(self) -> int:
        """Number of records stored."""
        ...

    async def list(self, limit: int | None = None) -> Sequence[AuditRecord]:
        """Records in insertion order (the last *limit* when given)."""
        ...


class SQLAlchemyAuditStore:
    """``AuditStore`` backed by a SQLAlchemy engine.

    Example:
        >>> store = SQLAlchemyAuditStore.from_url("sqlite:///cadence.db")
        >>> store.initialize()
        >>> saved = await store.persist(AuditRecord("dynamic-job-ACTION_7", utc_now()))
        >>> saved.id
        1
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = audit_session_factory(engine)
        # in-memory SQLite shares one connection across worker threads
        self._lock = threading.Lock() if isinstance(engine.pool, StaticPool) else nullcontext()

    @classmethod
    def from_url(cls, url: str, **engine_kwargs) -> SQLAlchemyAuditStore:
        return cls(create_audit_engine(url, **engine_kwargs))

    def initialize(self) -> None:
        """Create the ``audit_log`` table if missing."""
        AuditBase.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # === Writes ===

    async def persist(self, record: AuditRecord) -> AuditRecord:
        return await asyncio.to_thread(self._persist_sync, record)

    def _persist_sync(self, record: AuditRecord) -> AuditRecord:
        row = AuditLogTable(job_name=record.job_name, executed_at=record.executed_at)
        try:
            with self._lock, self._sessions.begin() as session:
                session.add(row)
                session.flush()
                record_id = row.id
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to persist audit record: {exc}", cause=exc
            ).with_context(job_name=record.job_name) from exc

        logger.debug("audit_record_persisted", job_name=record.job_name, record_id=record_id)
        return AuditRecord(job_name=record.job_name, executed_at=record.executed_at, id=record_id)

    # === Reads ===

    async def count(self) -> int:
        return await asyncio.to_thread(self._count_sync)

    def _count_sync(self) -> int:
        try:
            with self._lock, self._sessions() as session:
                return int(session.scalar(select(func.count()).select_from(AuditLogTable)) or 0)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to count audit records: {exc}", cause=exc) from exc

    async def list(self, limit: int | None = None) -> Sequence[AuditRecord]:
        return await asyncio.to_thread(self._list_sync, limit)

    def _list_sync(self, limit: int | None) -> list[AuditRecord]:
        stmt = select(AuditLogTable).order_by(AuditLogTable.id.desc() if limit else AuditLogTable.id)
        if limit:
            stmt = stmt.limit(limit)
        try:
            with self._lock, self._sessions() as session:
                rows = session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to list audit records: {exc}", cause=exc) from exc

        records = [
            AuditRecord(job_name=r.job_name, executed_at=ensure_utc(r.executed_at), id=r.id)
            for r in rows
        ]
        if limit:
            records.reverse()
        return records

    async def latest(self) -> AuditRecord | None:
        """Most recently inserted record, or ``None`` when empty."""
        records = await self.list(limit=1)
        return records[-1] if records else None
