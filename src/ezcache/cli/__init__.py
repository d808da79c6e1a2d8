"""
CLI layer for ezcache.

A Typer application over :class:`~ezcache.backends.file.FileCacheStore`.
All cache logic lives in the backend; this package handles only terminal
transport: argument parsing, coloured output, and table formatting.

Entry point::

    ezcache --help
"""

from ezcache.cli.app import app

__all__ = ["app"]
