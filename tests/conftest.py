"""
Shared pytest fixtures for ezcache tests.

This module provides:
- A controllable clock for deterministic expiry tests
- File stores on a real temporary directory and on MemoryFilesystem
- Settings cache / environment isolation

Usage:
    Fixtures are auto-discovered by pytest; request them as test arguments.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from ezcache.backends.file import FileCacheStore
from ezcache.config.settings import clear_settings_cache
from ezcache.filesystem import MemoryFilesystem

START = datetime(2026, 1, 1, 12, 0, 0)


class FrozenClock:
    """Callable returning a fixed "now" that tests move forward explicitly."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


# =============================================================================
# Clock / filesystem fixtures
# =============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def memory_fs() -> MemoryFilesystem:
    return MemoryFilesystem()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def store(cache_dir: Path, clock: FrozenClock) -> FileCacheStore:
    """File store on a real directory with a frozen clock and no namespace."""
    return FileCacheStore(cache_dir, clock=clock)


@pytest.fixture
def memory_store(memory_fs: MemoryFilesystem, clock: FrozenClock) -> FileCacheStore:
    """File store rooted at ``/cache`` on an in-memory filesystem."""
    return FileCacheStore("/cache", filesystem=memory_fs, clock=clock)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Drop EZCACHE_* variables and cached settings around every test."""
    for name in list(os.environ):
        if name.startswith("EZCACHE_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()
