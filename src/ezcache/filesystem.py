"""
Filesystem capability used by the file cache backend.

The file backend never touches ``os`` or ``pathlib`` I/O directly; it goes
through a :class:`Filesystem` so the path and namespace logic can be tested
against :class:`MemoryFilesystem` without a real disk, and so writes can be
made atomic in one place.

Architecture:
    ::

        Filesystem (Protocol)
        ├── LocalFilesystem   — real disk, temp-file + os.replace writes
        └── MemoryFilesystem  — dict-backed, for tests and dry runs

        read_text | write_text_atomic | remove | list_files
        make_dirs | is_dir | is_writable | remove_dir

Guardrails:
    ❌ DON'T: Write records in place (readers may see half a file)
    ✅ DO: Use write_text_atomic, which renames a finished temp file over the target

    Implementations raise the builtin ``OSError`` family
    (``FileNotFoundError``, ``PermissionError``, ...) and leave mapping them
    to cache errors to the caller.

Tags:
    filesystem, storage, atomic-write, protocol, ezcache
"""

from __future__ import annotations

import errno
import os
import tempfile
from pathlib import Path, PurePath
from typing import Protocol, runtime_checkable

TEMP_SUFFIX = ".tmp"


@runtime_checkable
class Filesystem(Protocol):
    """Minimal filesystem operations needed by the file cache."""

    def read_text(self, path: PurePath) -> str:
        """Return the whole file as text. Raises FileNotFoundError if absent."""
        ...

    def write_text_atomic(self, path: PurePath, text: str) -> None:
        """Replace *path* with *text* so readers see the old or new file, never a mix."""
        ...

    def remove(self, path: PurePath) -> None:
        """Remove a file. Raises FileNotFoundError if absent."""
        ...

    def list_files(self, directory: PurePath) -> list[str]:
        """Names of the regular files directly inside *directory*."""
        ...

    def make_dirs(self, path: PurePath) -> None:
        """Create *path* and its parents; an existing directory is not an error."""
        ...

    def is_dir(self, path: PurePath) -> bool: ...

    def is_writable(self, path: PurePath) -> bool: ...

    def remove_dir(self, path: PurePath) -> None:
        """Remove an empty directory."""
        ...


class LocalFilesystem:
    """
    Local disk implementation.

    Writes go to a temp file created next to the target (same directory, so
    same filesystem) and are moved into place with :func:`os.replace`. Temp
    names start with ``.`` and end with ``.tmp`` so they never look like a
    cache record.
    """

    def __init__(self, *, fsync: bool = True):
        self._fsync = fsync

    def read_text(self, path: PurePath) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write_text_atomic(self, path: PurePath, text: str) -> None:
        target = Path(path)
        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=f".{target.name}.", suffix=TEMP_SUFFIX
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                if self._fsync:
                    os.fsync(handle.fileno())
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def remove(self, path: PurePath) -> None:
        Path(path).unlink()

    def list_files(self, directory: PurePath) -> list[str]:
        return sorted(entry.name for entry in os.scandir(directory) if entry.is_file())

    def make_dirs(self, path: PurePath) -> None:
        Path(path).mkdir(mode=0o755, parents=True, exist_ok=True)

    def is_dir(self, path: PurePath) -> bool:
        return Path(path).is_dir()

    def is_writable(self, path: PurePath) -> bool:
        return Path(path).is_dir() and os.access(path, os.W_OK | os.X_OK)

    def remove_dir(self, path: PurePath) -> None:
        Path(path).rmdir()


class MemoryFilesystem:
    """
    In-memory implementation for tests.

    Directories are tracked explicitly; writing into a missing directory
    fails like it would on disk. Directories passed to :meth:`mark_read_only`
    reject writes, removals and new subdirectories with ``PermissionError``.

    Example:
        fs = MemoryFilesystem()
        store = FileCacheStore("/cache", filesystem=fs)
        store.set("k", 1)
        assert fs.files[PurePath("/cache/k.cache.json")]
    """

    def __init__(self) -> None:
        self.files: dict[PurePath, str] = {}
        self.dirs: set[PurePath] = set()
        self.read_only: set[PurePath] = set()

    def mark_read_only(self, path: PurePath | str) -> None:
        self.read_only.add(PurePath(path))

    def _check_writable(self, directory: PurePath) -> None:
        if directory not in self.dirs:
            raise FileNotFoundError(errno.ENOENT, "No such directory", str(directory))
        if directory in self.read_only:
            raise PermissionError(errno.EACCES, "Permission denied", str(directory))

    def read_text(self, path: PurePath) -> str:
        try:
            return self.files[PurePath(path)]
        except KeyError:
            raise FileNotFoundError(errno.ENOENT, "No such file", str(path)) from None

    def write_text_atomic(self, path: PurePath, text: str) -> None:
        path = PurePath(path)
        self._check_writable(path.parent)
        if path in self.dirs:
            raise IsADirectoryError(errno.EISDIR, "Is a directory", str(path))
        self.files[path] = text

    def remove(self, path: PurePath) -> None:
        path = PurePath(path)
        if path not in self.files:
            raise FileNotFoundError(errno.ENOENT, "No such file", str(path))
        self._check_writable(path.parent)
        del self.files[path]

    def list_files(self, directory: PurePath) -> list[str]:
        directory = PurePath(directory)
        if directory not in self.dirs:
            raise FileNotFoundError(errno.ENOENT, "No such directory", str(directory))
        return sorted(path.name for path in self.files if path.parent == directory)

    def make_dirs(self, path: PurePath) -> None:
        path = PurePath(path)
        if path in self.files:
            raise FileExistsError(errno.EEXIST, "File exists", str(path))
        missing = [p for p in [path, *path.parents] if p not in self.dirs]
        for directory in reversed(missing):
            if directory.parent != directory and directory.parent in self.read_only:
                raise PermissionError(errno.EACCES, "Permission denied", str(directory.parent))
            self.dirs.add(directory)

    def is_dir(self, path: PurePath) -> bool:
        return PurePath(path) in self.dirs

    def is_writable(self, path: PurePath) -> bool:
        path = PurePath(path)
        return path in self.dirs and path not in self.read_only

    def remove_dir(self, path: PurePath) -> None:
        path = PurePath(path)
        if path not in self.dirs:
            raise FileNotFoundError(errno.ENOENT, "No such directory", str(path))
        if any(p.parent == path for p in self.files) or any(d.parent == path and d != path for d in self.dirs):
            raise OSError(errno.ENOTEMPTY, "Directory not empty", str(path))
        self._check_writable(path.parent)
        self.dirs.discard(path)


__all__ = [
    "Filesystem",
    "LocalFilesystem",
    "MemoryFilesystem",
    "TEMP_SUFFIX",
]
