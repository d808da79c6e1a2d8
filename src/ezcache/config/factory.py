"""
Factory functions that create cache backends.

Manifesto:
    The client libraries for networked backends are imported lazily, only
    when the corresponding backend is selected. ``import ezcache`` never
    pulls in ``redis`` or ``pymemcache``.

Features:
    - ``create_cache()`` — backend from a type tag and a ready handle
    - ``create_cache_from_settings()`` — backend plus client from ``CacheSettings``
    - ``create_cache_client()`` — just the redis / pymemcache client

Tags:
    ezcache, configuration, factory-pattern, lazy-imports, redis, memcached

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from ezcache.backends.file import FileCacheStore
from ezcache.backends.memcached import MemcachedCache
from ezcache.backends.redis import RedisCache
from ezcache.errors import InvalidConfigError
from ezcache.logging import get_logger
from ezcache.protocol import CacheBackend

from .components import CacheType

if TYPE_CHECKING:
    from .settings import CacheSettings

logger = get_logger(__name__)


def _coerce_type(cache_type: CacheType | str) -> CacheType:
    try:
        return CacheType(cache_type.lower() if isinstance(cache_type, str) else cache_type)
    except ValueError:
        choices = ", ".join(t.value for t in CacheType)
        raise InvalidConfigError(
            "cache_type", cache_type, f"Unknown cache type {cache_type!r}; expected one of: {choices}."
        ) from None


def create_cache(
    cache_type: CacheType | str = CacheType.FILE,
    handle: str | os.PathLike[str] | Any = None,
    *,
    ttl: int = 0,
    namespace: str | None = None,
    **options: Any,
) -> CacheBackend:
    """Create a cache backend.

    Args:
        cache_type: ``file`` (default), ``memcached`` or ``redis``.
        handle: Cache directory for ``file``; a connected client otherwise.
        ttl: Default TTL in seconds (``0`` never expires).
        namespace: Initial namespace.
        **options: Extra keyword arguments for the backend constructor
            (``filesystem``, ``clock``, ``prune_empty_dirs`` for ``file``).

    Raises:
        InvalidConfigError: Unknown type tag, missing handle, or negative TTL.
    """
    kind = _coerce_type(cache_type)
    if handle is None:
        what = "cache directory" if kind is CacheType.FILE else f"{kind.value} client"
        raise InvalidConfigError("handle", handle, f"A {what} is required to create a {kind.value} cache.")

    logger.debug("cache_backend_created", cache_type=kind.value, namespace=namespace, ttl=ttl)

    match kind:
        case CacheType.FILE:
            return FileCacheStore(handle, ttl, namespace, **options)
        case CacheType.MEMCACHED:
            return MemcachedCache(handle, ttl, namespace, **options)
        case CacheType.REDIS:
            return RedisCache(handle, ttl, namespace, **options)


def create_cache_client(settings: CacheSettings) -> Any:
    """Create the client handle for *settings.cache_type*.

    Returns the cache directory for the file backend.
    """
    match settings.cache_type:
        case CacheType.FILE:
            return settings.cache_dir
        case CacheType.REDIS:
            try:
                import redis
            except ImportError as exc:
                raise ImportError(
                    "Redis cache requires the 'redis' package. Install with: pip install ezcache[redis]"
                ) from exc
            return redis.from_url(settings.redis_url)
        case CacheType.MEMCACHED:
            try:
                from pymemcache.client.base import Client
            except ImportError as exc:
                raise ImportError(
                    "Memcached cache requires 'pymemcache'. Install with: pip install ezcache[memcached]"
                ) from exc
            return Client(settings.memcached_address)


def create_cache_from_settings(settings: CacheSettings | None = None, **options: Any) -> CacheBackend:
    """Create the backend described by *settings* (default: :func:`get_settings`)."""
    if settings is None:
        from .settings import get_settings

        settings = get_settings()

    if settings.cache_type is CacheType.FILE:
        options.setdefault("prune_empty_dirs", settings.prune_empty_dirs)

    return create_cache(
        settings.cache_type,
        create_cache_client(settings),
        ttl=settings.default_ttl,
        namespace=settings.namespace,
        **options,
    )


__all__ = ["create_cache", "create_cache_client", "create_cache_from_settings"]
