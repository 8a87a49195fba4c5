"""
CLI: ``cadence config``: configuration inspection.
"""

from __future__ import annotations

import typer

from cadence.cli.utils import console, load_settings, print_dict

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show current configuration."""
    settings = load_settings()

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"CADENCE_{key.upper()}={'' if value is None else value}")
        return

    data = settings.model_dump()
    data["database_url"] = settings.resolved_database_url
    print_dict(data, title="Cadence Configuration")
