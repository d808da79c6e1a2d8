"""
Cache backend capability contract.

Every backend (file, Memcached, Redis) implements the same contract so they
are interchangeable behind :func:`ezcache.config.create_cache`.

Manifesto:
    - **Protocol-based:** ``CacheBackend`` defines the contract, backends
      need not inherit from anything
    - **No exceptions across the seam:** Contract methods return booleans or
      a default value; the reason for a failure is in ``get_last_error()``
    - **TTL 0 means forever:** on every backend

Architecture:
    ::

        CacheBackend (Protocol)
        ├── FileCacheStore  — one JSON record file per key (the core)
        ├── MemcachedCache  — pymemcache client, native TTL
        └── RedisCache      — redis-py client, native TTL

        API: get(key, default=None) → value | default
             set(key, value, ttl=None) → bool
             delete(key) → bool
             exists(key, strict=False) → bool
             renew(key, ttl=None) → bool
             clear(namespace=None) → bool
             set_namespace(name) → bool
             get_last_error() → LastError | None

Tags:
    cache, protocol, contract, ttl, ezcache

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ezcache.errors import LastError


@runtime_checkable
class CacheBackend(Protocol):
    """Protocol for cache backend implementations.

    Keys are strings, values are JSON-serializable.

    Implementations:
        - :class:`ezcache.backends.file.FileCacheStore`
        - :class:`ezcache.backends.memcached.MemcachedCache`
        - :class:`ezcache.backends.redis.RedisCache`
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Return the unexpired value for *key*, or *default* on a miss."""
        ...

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store a value. ``ttl=None`` uses the backend default, ``0`` never expires."""
        ...

    def delete(self, key: str) -> bool:
        """Remove a key. False if it did not exist or could not be removed."""
        ...

    def exists(self, key: str, strict: bool = False) -> bool:
        """Check for a key; with ``strict`` it must also be unexpired."""
        ...

    def renew(self, key: str, ttl: int | None = None) -> bool:
        """Push the expiration of an existing key to ``now + ttl``."""
        ...

    def clear(self, namespace: str | None = None) -> bool:
        """Remove every key of *namespace* (default: the current one)."""
        ...

    def set_namespace(self, namespace: str) -> bool:
        """Switch the namespace used by subsequent operations."""
        ...

    def get_last_error(self) -> LastError | None:
        """Most recent failure recorded by this instance."""
        ...


__all__ = ["CacheBackend"]
