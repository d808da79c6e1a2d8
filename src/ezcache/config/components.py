"""
Cache backend enumeration.

Example::

    from ezcache.config.components import CacheType

    CacheType("redis")          # CacheType.REDIS
    CacheType.FILE.requires     # None
    CacheType.REDIS.requires    # "redis"
"""

from __future__ import annotations

from enum import Enum


class CacheType(str, Enum):
    """Supported cache backends."""

    FILE = "file"
    MEMCACHED = "memcached"
    REDIS = "redis"

    @property
    def requires(self) -> str | None:
        """Distribution needed to build a client for this backend."""
        return _REQUIRED_PACKAGES.get(self)


_REQUIRED_PACKAGES: dict[CacheType, str] = {
    CacheType.MEMCACHED: "pymemcache",
    CacheType.REDIS: "redis",
}


__all__ = ["CacheType"]
