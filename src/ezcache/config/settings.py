"""
Centralized settings for ezcache.

Manifesto:
    One validated, cached settings object backs the factory and the CLI,
    so ``EZCACHE_CACHE_DIR`` means the same thing everywhere.

All fields can be set through ``EZCACHE_*`` environment variables (e.g.
``EZCACHE_CACHE_TYPE=redis``) or a ``.env`` file in the working directory.

Tags:
    ezcache, configuration, settings, pydantic, caching, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .components import CacheType

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("console", "json")


class CacheSettings(BaseSettings):
    """ezcache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EZCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Backend ──────────────────────────────────────────────────
    cache_type: CacheType = Field(default=CacheType.FILE)
    default_ttl: int = Field(default=0, ge=0, description="Seconds; 0 never expires")
    namespace: str | None = Field(default=None)

    # ── File backend ─────────────────────────────────────────────
    cache_dir: Path = Field(default=Path(".cache/ezcache"))
    prune_empty_dirs: bool = Field(
        default=False, description="Remove a namespace directory left empty by clear()"
    )

    # ── Networked backends ───────────────────────────────────────
    redis_url: str = Field(default="redis://localhost:6379/0")
    memcached_server: str = Field(default="localhost:11211", description="host:port")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="WARNING")
    log_format: str = Field(default="console")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        fmt = value.lower()
        if fmt not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(_LOG_FORMATS)}")
        return fmt

    @field_validator("memcached_server")
    @classmethod
    def _check_memcached_server(cls, value: str) -> str:
        host, _, port = value.removeprefix("memcached://").partition(":")
        if not host or (port and not port.isdigit()):
            raise ValueError("memcached_server must look like host:port")
        return f"{host}:{port or 11211}"

    # ── Derived properties ───────────────────────────────────────

    @property
    def memcached_address(self) -> tuple[str, int]:
        host, _, port = self.memcached_server.partition(":")
        return host, int(port)

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, CacheSettings] = {}


def get_settings(*, env_file: Path | str | None = None, _force_reload: bool = False) -> CacheSettings:
    """Load, validate, and cache a :class:`CacheSettings` instance.

    Parameters
    ----------
    env_file:
        Read this file instead of ``.env``.
    _force_reload:
        Bypass the cache.
    """
    cache_key = str(env_file or "")

    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    if env_file is None:
        settings = CacheSettings()
    else:
        settings = CacheSettings(_env_file=env_file)  # type: ignore[call-arg]

    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["CacheSettings", "get_settings", "clear_settings_cache"]
