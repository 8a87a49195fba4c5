"""SQLAlchemy table, engine factory and session factory for the audit log.

Uses SQLAlchemy 2.0 ``DeclarativeBase``. SQLite is the default database;
any SQLAlchemy URL works.

Tags:
    cadence, orm, sqlalchemy, audit, engine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Any

from sqlalchemy import DateTime, Integer, String, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool


class AuditBase(DeclarativeBase):
    """Declarative base for cadence tables."""


class AuditLogTable(AuditBase):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(String(255), nullable=False)
    executed_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def create_audit_engine(url: str = "sqlite:///cadence.db", *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    SQLite connections are shared with worker threads (persist runs through
    ``asyncio.to_thread``), so ``check_same_thread`` is disabled. In-memory
    databases use ``StaticPool`` so every session sees the same database.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, **kwargs)

    kwargs.setdefault("connect_args", {"check_same_thread": False})
    if _is_memory_sqlite(url):
        kwargs.setdefault("poolclass", StaticPool)

    engine = create_engine(url, echo=echo, **kwargs)

    database = engine.url.database
    if database and not _is_memory_sqlite(url):
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
        cursor = dbapi_connection.cursor()
        if not _is_memory_sqlite(url):
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    return engine


def audit_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a ``sessionmaker`` bound to *engine* with ``expire_on_commit=False``."""
    return sessionmaker(bind=engine, expire_on_commit=False)
