"""
Filesystem-backed cache store.

Each key is one JSON record file under the cache directory, optionally inside
a namespace subdirectory::

    <cache_dir>/[<namespace>/]<key>.cache.json

Manifesto:
    The file store is the reference backend: it owns the record format, the
    expiration arithmetic and the namespace-to-directory mapping, and it is
    the only backend with recovery logic of its own.

    - **Never raise across the contract:** Every public operation returns a
      bool (or the value/default) and leaves the reason in ``get_last_error()``
    - **Atomic writes:** ``set`` and ``renew`` write a temp file and rename it
      into place, so a concurrent ``get`` never reads half a record
    - **No silent data loss:** Expired and corrupt records are misses, but
      only ``delete``/``clear`` remove files
    - **Records only:** ``clear`` removes ``*.cache.json`` files and nothing else

Architecture:
    ::

        FileCacheStore
        ├── record_path(key)   root / [namespace /] key + ".cache.json"
        ├── try_set / set      CacheRecord.create → encode → write_text_atomic
        ├── try_get / get      read → decode → expiry check
        ├── try_exists/exists  read → decode → (strict) expiry check
        ├── try_renew / renew  read → decode → renewed(expires_at) → write
        ├── try_delete/delete  remove one record
        ├── try_clear / clear  list → remove *.cache.json → partition results
        └── set_cache_directory / set_namespace   mkdir -p + writable check

Examples:
    >>> store = FileCacheStore("/tmp/ezcache", ttl=60, namespace="sessions")
    >>> store.set("user-1", {"name": "Ada"})
    True
    >>> store.get("user-1")
    {'name': 'Ada'}
    >>> store.exists("user-1", strict=True)
    True
    >>> store.clear()
    True

Guardrails:
    ❌ DON'T: Rely on ``get`` returning ``None`` to detect a miss when ``None``
       is a legitimate cached value
    ✅ DO: Pass a sentinel ``default`` or use ``try_get``

    ❌ DON'T: Share one directory between writers that need coordination
    ✅ DO: Treat concurrent writes to one key as last-writer-wins

Tags:
    cache, filesystem, ttl, namespace, atomic-write, ezcache

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

import errno
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from ezcache.backends.base import LastErrorMixin
from ezcache.errors import (
    CacheConfigError,
    CacheDecodeError,
    CacheKeyNotFoundError,
    CacheMissError,
    CacheStorageError,
    CacheValidationError,
    InvalidConfigError,
    InvalidKeyError,
    InvalidNamespaceError,
)
from ezcache.filesystem import Filesystem, LocalFilesystem
from ezcache.logging import get_logger
from ezcache.record import RECORD_EXTENSION, CacheRecord, decode_record, encode_record, format_timestamp
from ezcache.result import Result, partition_results, try_result_with

logger = get_logger(__name__)

_NAMESPACE_STRIP = " \t\r\n/\\"
_FORBIDDEN_KEY_CHARS = ("/", "\\", "\0")


def normalize_namespace(namespace: str) -> str:
    """Trim separators/whitespace and reject segments that leave the cache directory.

    Returns ``""`` for a namespace that trims to nothing (the root).

    Examples:
        >>> normalize_namespace("  /users/eu/ ")
        'users/eu'
    """
    trimmed = namespace.strip(_NAMESPACE_STRIP).replace("\\", "/")
    segments = [segment for segment in trimmed.split("/") if segment]
    for segment in segments:
        if segment in (".", ".."):
            raise InvalidNamespaceError(namespace, f"segment {segment!r} is not allowed")
        if "\0" in segment:
            raise InvalidNamespaceError(namespace, "contains a NUL byte")
    return "/".join(segments)


def validate_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(str(key), "must be a non-empty string")
    if key in (".", ".."):
        raise InvalidKeyError(key, "is a relative directory reference")
    for char in _FORBIDDEN_KEY_CHARS:
        if char in key:
            raise InvalidKeyError(key, f"contains forbidden character {char!r}")
    return key


class FileCacheStore(LastErrorMixin):
    """
    Cache backend storing one JSON record file per key.

    Attributes:
        cache_directory: Root directory, or ``None`` when the last
            ``set_cache_directory`` failed
        namespace: Current namespace (``None`` for the root)
        default_ttl: TTL in seconds used when an operation gets ``ttl=None``
        base_path: Directory the current namespace maps to
    """

    backend_name = "file"

    def __init__(
        self,
        directory: str | os.PathLike[str],
        ttl: int = 0,
        namespace: str | None = None,
        *,
        filesystem: Filesystem | None = None,
        clock: Callable[[], datetime] | None = None,
        prune_empty_dirs: bool = False,
    ):
        """Initialize the store.

        A directory that cannot be used does not raise: the store is left
        without a directory and every operation fails with a configuration
        error recorded in ``get_last_error()``.

        Args:
            directory: Cache root, created with parents if missing.
            ttl: Default TTL in seconds (``0`` = never expires).
            namespace: Optional namespace subdirectory.
            filesystem: Filesystem implementation (default: local disk).
            clock: Returns "now" as a naive local datetime (default: ``datetime.now``).
            prune_empty_dirs: Remove a namespace directory left empty by ``clear``.

        Raises:
            InvalidConfigError: If ``ttl`` is negative.
        """
        if ttl < 0:
            raise InvalidConfigError("ttl", ttl, "Default TTL must be zero or positive.")

        self._fs: Filesystem = filesystem or LocalFilesystem()
        self._clock = clock or datetime.now
        self._default_ttl = ttl
        self._prune_empty_dirs = prune_empty_dirs
        self._directory: Path | None = None
        self._namespace: str | None = None
        self._last_error = None

        self.set_cache_directory(directory)
        if namespace is not None and self._directory is not None:
            self.set_namespace(namespace)

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def cache_directory(self) -> Path | None:
        return self._directory

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @property
    def prune_empty_dirs(self) -> bool:
        return self._prune_empty_dirs

    @property
    def base_path(self) -> Path:
        return self._resolve_base(self._namespace)

    def set_cache_directory(self, directory: str | os.PathLike[str]) -> bool:
        """Use *directory* as the cache root, creating it if needed.

        On failure the store is left without a directory, so later operations
        fail instead of writing to an unintended location.
        """
        self._directory = None
        target = Path(directory).expanduser()

        try:
            self._fs.make_dirs(target)
            writable = self._fs.is_writable(target)
        except (OSError, ValueError) as exc:
            error = CacheStorageError(f"Failed to use {directory} as cache directory.", cause=exc)
            return self._fail(error.with_context(path=str(target)), operation="set_cache_directory")

        if not writable:
            error = CacheStorageError(f"Failed to use {directory} as cache directory.")
            return self._fail(error.with_context(path=str(target)), operation="set_cache_directory")

        self._directory = target
        logger.info("cache_directory_set", path=str(target))
        return True

    def set_namespace(self, namespace: str) -> bool:
        """Switch to *namespace*, creating its directory.

        The previous namespace stays in effect if the new one is invalid or
        its directory cannot be created or written to.
        """
        return self._attempt("set_namespace", lambda: self._set_namespace(namespace)).is_ok()

    def _set_namespace(self, namespace: str) -> str | None:
        normalized = normalize_namespace(namespace)
        base = self._resolve_base(normalized)

        try:
            self._fs.make_dirs(base)
            writable = self._fs.is_writable(base)
        except OSError as exc:
            raise CacheStorageError(
                f"The directory {base} is not writable or it was not possible to create the directory.",
                cause=exc,
            ) from exc

        if not writable:
            raise CacheStorageError(
                f"The directory {base} is not writable or it was not possible to create the directory."
            )

        self._namespace = normalized or None
        logger.info("cache_namespace_set", namespace=self._namespace, path=str(base))
        return self._namespace

    def _resolve_base(self, namespace: str | None) -> Path:
        if self._directory is None:
            raise CacheConfigError("Cache directory is not set; call set_cache_directory() first.")
        if not namespace:
            return self._directory
        return self._directory / normalize_namespace(namespace)

    def _effective_ttl(self, ttl: int | None) -> int:
        effective = self._default_ttl if ttl is None else ttl
        if effective < 0:
            raise CacheValidationError(f"TTL must be zero or positive, got {effective}.")
        return effective

    # ------------------------------------------------------------------ #
    # Paths and record I/O
    # ------------------------------------------------------------------ #

    def record_path(self, key: str) -> Path:
        """Path of the record file for *key* in the current namespace.

        Pure path composition; nothing is read or created.

        Raises:
            InvalidKeyError: Key is empty or contains a path separator.
            CacheConfigError: No cache directory is set.
        """
        return self.base_path / f"{validate_key(key)}{RECORD_EXTENSION}"

    def _load(self, key: str) -> CacheRecord | None:
        path = self.record_path(key)
        try:
            text = self._fs.read_text(path)
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            logger.warning("cache_record_corrupt", key=key, path=str(path))
            raise CacheDecodeError(
                f"Failed to decode the cache record at {path}: not valid UTF-8.", cause=exc
            ) from exc
        except OSError as exc:
            raise CacheStorageError(f"Failed to read the cache record at {path}.", cause=exc) from exc

        if not text.strip():
            return None

        try:
            return decode_record(text, source=str(path))
        except CacheDecodeError:
            logger.warning("cache_record_corrupt", key=key, path=str(path))
            raise

    def _write(self, path: Path, text: str) -> None:
        try:
            try:
                self._fs.write_text_atomic(path, text)
            except FileNotFoundError:
                # namespace directory removed since it was validated
                self._fs.make_dirs(path.parent)
                self._fs.write_text_atomic(path, text)
        except OSError as exc:
            raise CacheStorageError(f"Failed to open the file {path} for writing.", cause=exc) from exc

    def read_record(self, key: str) -> CacheRecord | None:
        """Decoded record for *key*, expired or not; ``None`` if absent or unreadable."""
        return self._attempt("read_record", lambda: self._load(key), key=key).unwrap_or(None)

    # ------------------------------------------------------------------ #
    # Typed-result operations
    # ------------------------------------------------------------------ #

    def try_set(self, key: str, value: Any, ttl: int | None = None) -> Result[CacheRecord]:
        def run() -> CacheRecord:
            record = CacheRecord.create(value, self._effective_ttl(ttl), self._clock())
            path = self.record_path(key)
            self._write(path, encode_record(record))
            logger.debug(
                "cache_set", key=key, path=str(path), expires_at=format_timestamp(record.expires_at)
            )
            return record

        return self._attempt("set", run, key=key)

    def try_get(self, key: str) -> Result[Any]:
        def run() -> Any:
            record = self._load(key)
            if record is None:
                raise CacheMissError(key)
            if record.is_expired(self._clock()):
                raise CacheMissError(key, expired=True)
            return record.value

        result = self._attempt("get", run, key=key)
        if result.is_err():
            logger.debug("cache_miss", key=key, reason=type(result.error).__name__)
        return result

    def try_exists(self, key: str, strict: bool = False) -> Result[bool]:
        def run() -> bool:
            record = self._load(key)
            if record is None:
                return False
            return not (strict and record.is_expired(self._clock()))

        return self._attempt("exists", run, key=key)

    def try_renew(self, key: str, ttl: int | None = None) -> Result[CacheRecord]:
        def run() -> CacheRecord:
            effective = self._effective_ttl(ttl)
            record = self._load(key)
            if record is None:
                raise CacheKeyNotFoundError(key, f"Cannot renew {key!r}: no cache record found.")
            renewed = record.renewed(effective, self._clock())
            self._write(self.record_path(key), encode_record(renewed))
            logger.debug("cache_renewed", key=key, expires_at=format_timestamp(renewed.expires_at))
            return renewed

        return self._attempt("renew", run, key=key)

    def try_delete(self, key: str) -> Result[Path]:
        def run() -> Path:
            path = self.record_path(key)
            try:
                self._fs.remove(path)
            except FileNotFoundError as exc:
                raise CacheKeyNotFoundError(key, f"Cannot delete {key!r}: no cache record found.", cause=exc) from exc
            except OSError as exc:
                raise CacheStorageError(f"Failed to delete the cache record at {path}.", cause=exc) from exc
            logger.debug("cache_deleted", key=key, path=str(path))
            return path

        return self._attempt("delete", run, key=key)

    def try_clear(self, namespace: str | None = None) -> Result[int]:
        """Remove every record directly under the namespace directory.

        Returns the number of records removed. Failure to remove any record
        makes the whole call an ``Err``; records already removed stay removed.
        """
        return self._attempt("clear", lambda: self._clear(namespace))

    def _clear(self, namespace: str | None) -> int:
        base = self.base_path if namespace is None else self._resolve_base(namespace)

        try:
            names = self._fs.list_files(base)
        except FileNotFoundError:
            logger.debug("cache_clear_skipped", path=str(base), reason="directory does not exist")
            return 0
        except OSError as exc:
            raise CacheStorageError(f"Failed to list cache records under {base}.", cause=exc) from exc

        records = [base / name for name in names if name.endswith(RECORD_EXTENSION)]
        removed, errors = partition_results([self._remove_record(path) for path in records])

        if errors:
            raise CacheStorageError(
                f"Failed to clear {len(errors)} of {len(records)} cache records under {base}.",
                cause=errors[0],
            ).with_context(path=str(base), removed=len(removed))

        if self._prune_empty_dirs and base != self._directory:
            self._prune(base)

        logger.info("cache_cleared", path=str(base), removed=len(removed))
        return len(removed)

    def _remove_record(self, path: Path) -> Result[Path]:
        def remove() -> Path:
            try:
                self._fs.remove(path)
            except FileNotFoundError:
                pass  # removed concurrently
            return path

        return try_result_with(
            remove, lambda exc: CacheStorageError(f"Failed to delete {path}: {exc}", cause=exc)
        )

    def _prune(self, base: Path) -> None:
        try:
            if self._fs.list_files(base):
                return
            self._fs.remove_dir(base)
        except OSError as exc:
            if exc.errno not in (errno.ENOTEMPTY, errno.EEXIST):
                raise CacheStorageError(f"Failed to remove empty namespace directory {base}.", cause=exc) from exc
            logger.debug("cache_prune_skipped", path=str(base), reason="directory not empty")
            return
        logger.info("cache_namespace_pruned", path=str(base))

    # ------------------------------------------------------------------ #
    # CacheBackend contract
    # ------------------------------------------------------------------ #

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store *value* under *key*; ``ttl=None`` uses the default, ``0`` never expires."""
        return self.try_set(key, value, ttl).is_ok()

    def get(self, key: str, default: Any = None) -> Any:
        """Unexpired value for *key*, or *default* on a miss."""
        return self.try_get(key).unwrap_or(default)

    def exists(self, key: str, strict: bool = False) -> bool:
        """True if a decodable record exists; with *strict* it must also be unexpired."""
        return self.try_exists(key, strict).unwrap_or(False)

    def renew(self, key: str, ttl: int | None = None) -> bool:
        """Set the expiration of an existing record to ``now + ttl``."""
        return self.try_renew(key, ttl).is_ok()

    def delete(self, key: str) -> bool:
        return self.try_delete(key).is_ok()

    def clear(self, namespace: str | None = None) -> bool:
        """Remove all records of *namespace* (default: the current namespace)."""
        return self.try_clear(namespace).is_ok()

    def __repr__(self) -> str:
        return (
            f"FileCacheStore(directory={str(self._directory) if self._directory else None!r}, "
            f"namespace={self._namespace!r}, ttl={self._default_ttl})"
        )


__all__ = ["FileCacheStore", "normalize_namespace", "validate_key"]
