"""
CLI: ``cadence audit``: inspect the audit log.
"""

from __future__ import annotations

import asyncio

import typer

from cadence.cli.utils import console, open_store, print_json, print_table

app = typer.Typer(no_args_is_help=True)


@app.command("count")
def count_records(
    database: str | None = typer.Option(None, "--database", "-d", help="Audit store URL"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Count audit records."""
    store = open_store(database)
    try:
        total = asyncio.run(store.count())
    finally:
        store.dispose()

    if json_out:
        print_json({"count": total})
    else:
        console.print(f"[bold]{total}[/bold] audit record(s)")


@app.command("list")
def list_records(
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Show the most recent N records"),
    database: str | None = typer.Option(None, "--database", "-d", help="Audit store URL"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List the most recent audit records, oldest first."""
    store = open_store(database)
    try:
        records = asyncio.run(store.list(limit=limit))
    finally:
        store.dispose()

    rows = [record.to_dict() for record in records]
    if json_out:
        print_json(rows)
    else:
        print_table(rows, title="Audit Log")
