"""
CLI utility helpers: settings resolution, store access and output formatting.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from cadence.audit import SQLAlchemyAuditStore, create_audit_store
from cadence.core.errors import CadenceError
from cadence.core.settings import CadenceSettings, get_settings

console = Console()
err_console = Console(stderr=True)


# ── Settings / store helpers ─────────────────────────────────────────────


def load_settings(**overrides: Any) -> CadenceSettings:
    """Resolve settings, applying only the CLI options that were given."""
    given = {k: v for k, v in overrides.items() if v is not None}
    try:
        return get_settings(**given)
    except CadenceError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=2) from exc


def open_store(database: str | None) -> SQLAlchemyAuditStore:
    """Open the audit store named by ``--database`` or the configured URL."""
    settings = load_settings(database_url=database)
    return create_audit_store(settings.resolved_database_url)


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
