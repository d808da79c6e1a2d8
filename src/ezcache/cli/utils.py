"""
CLI utility helpers — store construction and output formatting.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ezcache.backends.file import FileCacheStore
from ezcache.config.settings import CacheSettings
from ezcache.errors import LastError
from ezcache.record import CacheRecord, format_timestamp

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


# ── Store helper ─────────────────────────────────────────────────────────


@dataclass
class CliState:
    """Global options shared by every command."""

    settings: CacheSettings
    directory: Path | None = None
    namespace: str | None = None
    ttl: int | None = None
    _store: FileCacheStore | None = field(default=None, repr=False)

    @property
    def store(self) -> FileCacheStore:
        """The file cache the command operates on, built on first use."""
        if self._store is None:
            store = FileCacheStore(
                self.directory or self.settings.cache_dir,
                self.settings.default_ttl if self.ttl is None else self.ttl,
                prune_empty_dirs=self.settings.prune_empty_dirs,
            )
            namespace = self.namespace if self.namespace is not None else self.settings.namespace
            if store.cache_directory is None or (namespace is not None and not store.set_namespace(namespace)):
                fail(store.get_last_error())
            self._store = store
        return self._store


def get_state(ctx: typer.Context) -> CliState:
    state = ctx.find_object(CliState)
    if state is None:
        raise typer.BadParameter("global options were not initialised", ctx=ctx)
    return state


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: LastError | None, *, show_trace: bool = False) -> None:
    """Print *error* and exit with status 1."""
    code = error.code if error else "ERROR"
    message = error.message if error else "Unknown error"
    err_console.print(f"[bold red]Error[/bold red] ({code}): {escape(message)}")
    if error and show_trace:
        err_console.print(error.trace, markup=False, highlight=False)
    raise typer.Exit(code=1)


def print_value(value: Any, *, raw: bool = False) -> None:
    """Print a cached value: strings as-is with *raw*, JSON otherwise."""
    if raw and isinstance(value, str):
        typer.echo(value)
    else:
        typer.echo(json.dumps(value, ensure_ascii=False, indent=2 if isinstance(value, dict | list) else None))


def print_record(key: str, path: Path, record: CacheRecord, *, expired: bool) -> None:
    table = Table(title=f"Cache record {escape(key)}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("path", escape(str(path)))
    table.add_row("created_at", format_timestamp(record.created_at))
    table.add_row("expires_at", format_timestamp(record.expires_at))
    table.add_row("status", "[red]expired[/red]" if expired else "[green]live[/green]")
    table.add_row("value", escape(json.dumps(record.value, ensure_ascii=False)))
    console.print(table)
