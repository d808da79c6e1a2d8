"""
CLI: ``ezcache config`` — show the effective configuration.
"""

from __future__ import annotations

import json

import typer
from rich.table import Table

from ezcache.cli.utils import console, get_state


def config_command(
    ctx: typer.Context,
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show current configuration, including command-line overrides."""
    state = get_state(ctx)
    values = state.settings.model_dump(mode="json")
    if state.directory is not None:
        values["cache_dir"] = str(state.directory)
    if state.namespace is not None:
        values["namespace"] = state.namespace
    if state.ttl is not None:
        values["default_ttl"] = state.ttl

    if format == "json":
        console.print_json(json.dumps(values))
        return

    if format == "env":
        for key, value in sorted(values.items()):
            typer.echo(f"EZCACHE_{key.upper()}={'' if value is None else value}")
        return

    table = Table(title="ezcache settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in sorted(values.items()):
        table.add_row(key, "" if value is None else str(value))
    console.print(table)
