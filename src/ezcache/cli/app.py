"""
Root Typer application for the ezcache CLI.

Inspects and manipulates a file cache directory. Global options override
``CacheSettings`` (``EZCACHE_*`` environment / ``.env``)::

    ezcache --dir /var/cache/app --namespace users set alice '{"age": 36}' --ttl 60
    ezcache --dir /var/cache/app --namespace users get alice
    ezcache --dir /var/cache/app clear
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.markup import escape

from ezcache.cli.config import config_command
from ezcache.cli.utils import CliState, console, err_console, fail, get_state, print_record, print_value
from ezcache.config.settings import get_settings
from ezcache.errors import LastError
from ezcache.logging import bind_context, clear_context, configure_logging

app = typer.Typer(
    name="ezcache",
    help="ezcache — key-value cache with file, Memcached and Redis backends.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from ezcache import __version__

        typer.echo(f"ezcache {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    directory: Path | None = typer.Option(  # noqa: UP007
        None, "--dir", "-d", help="Cache directory (default: EZCACHE_CACHE_DIR)."
    ),
    namespace: str | None = typer.Option(  # noqa: UP007
        None, "--namespace", "-n", help="Namespace subdirectory."
    ),
    ttl: int | None = typer.Option(  # noqa: UP007
        None, "--ttl", min=0, help="Default TTL in seconds; 0 never expires."
    ),
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """ezcache CLI — get, set, renew and clear cached values."""
    try:
        settings = get_settings()
    except ValidationError as e:
        err_console.print(f"[red]Configuration Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    clear_context()
    bind_context(command=ctx.invoked_subcommand)
    ctx.obj = CliState(settings=settings, directory=directory, namespace=namespace, ttl=ttl)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("get")
def get_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
    raw: bool = typer.Option(False, "--raw", "-r", help="Print string values without JSON quoting"),
) -> None:
    """Print the value stored under KEY."""
    store = get_state(ctx).store
    result = store.try_get(key)
    if result.is_err():
        fail(LastError.from_exception(result.error))
    print_value(result.unwrap(), raw=raw)


@app.command("set")
def set_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
    value: str = typer.Argument(..., help="JSON value (a plain string with --raw)"),
    ttl: int | None = typer.Option(None, "--ttl", "-t", min=0, help="TTL in seconds; 0 never expires"),  # noqa: UP007
    raw: bool = typer.Option(False, "--raw", "-r", help="Store VALUE as a string instead of parsing JSON"),
) -> None:
    """Store VALUE under KEY."""
    if raw:
        payload = value
    else:
        try:
            payload = json.loads(value)
        except ValueError as e:
            raise typer.BadParameter(f"not valid JSON ({e}); use --raw to store text", param_hint="VALUE") from e

    store = get_state(ctx).store
    if not store.set(key, payload, ttl):
        fail(store.get_last_error())
    console.print(f"[green]✓[/green] Stored {escape(repr(key))}", markup=True, highlight=False)


@app.command("exists")
def exists_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
    strict: bool = typer.Option(False, "--strict", "-s", help="Also require the record to be unexpired"),
) -> None:
    """Exit 0 if KEY has a record, 1 otherwise."""
    store = get_state(ctx).store
    found = store.exists(key, strict=strict)
    typer.echo("yes" if found else "no")
    if not found:
        raise typer.Exit(code=1)


@app.command("renew")
def renew_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
    ttl: int | None = typer.Option(None, "--ttl", "-t", min=0, help="TTL in seconds; 0 never expires"),  # noqa: UP007
) -> None:
    """Push the expiration of KEY to now + TTL."""
    store = get_state(ctx).store
    result = store.try_renew(key, ttl)
    if result.is_err():
        fail(store.get_last_error())
    console.print(f"[green]✓[/green] Renewed {escape(repr(key))}", highlight=False)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
) -> None:
    """Remove the record of KEY."""
    store = get_state(ctx).store
    if not store.delete(key):
        fail(store.get_last_error())
    console.print(f"[green]✓[/green] Deleted {escape(repr(key))}", highlight=False)


@app.command("clear")
def clear_command(
    ctx: typer.Context,
    namespace: str | None = typer.Argument(None, help="Namespace to clear (default: current)"),  # noqa: UP007
) -> None:
    """Remove every record of a namespace."""
    store = get_state(ctx).store
    result = store.try_clear(namespace)
    if result.is_err():
        fail(store.get_last_error())
    console.print(f"[green]✓[/green] Removed {result.unwrap()} record(s)", highlight=False)


@app.command("info")
def info_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
) -> None:
    """Show the stored record of KEY, expired or not."""
    store = get_state(ctx).store
    record = store.read_record(key)
    if record is None:
        error = store.get_last_error()
        if error is None:
            err_console.print(f"[yellow]No cache record for {escape(repr(key))}[/yellow]", highlight=False)
            raise typer.Exit(code=1)
        fail(error)
    print_record(key, store.record_path(key), record, expired=not store.exists(key, strict=True))


app.command("config")(config_command)
