"""
Redis cache backend.

Thin adapter over a pre-configured ``redis-py`` client. Values are stored as
JSON under ``<namespace>:<key>``; Redis owns expiration.

Example:
    import redis

    cache = RedisCache(redis.from_url("redis://localhost:6379/0"), ttl=600, namespace="product")
    cache.set("123", {"name": "Widget", "price": 9.99})
    cache.get("123")

Warning:
    ``clear()`` with no namespace runs FLUSHDB and empties the whole database.
"""

from __future__ import annotations

import json
from typing import Any

from ezcache.backends.base import LastErrorMixin
from ezcache.errors import (
    CacheBackendError,
    CacheDecodeError,
    CacheEncodeError,
    CacheError,
    CacheKeyNotFoundError,
    CacheMissError,
    CacheValidationError,
    InvalidConfigError,
    InvalidKeyError,
    InvalidNamespaceError,
)
from ezcache.logging import get_logger
from ezcache.record import dump_json
from ezcache.result import Result

logger = get_logger(__name__)

SCAN_BATCH_SIZE = 500


class RedisCache(LastErrorMixin):
    """Cache backend delegating to a redis-py client.

    Attributes:
        client: The wrapped ``redis.Redis`` instance
        namespace: Key prefix without the trailing ``:``
        default_ttl: TTL used when an operation gets ``ttl=None``
    """

    backend_name = "redis"

    def __init__(self, client: Any, ttl: int = 0, namespace: str | None = None):
        if ttl < 0:
            raise InvalidConfigError("ttl", ttl, "Default TTL must be zero or positive.")

        self._client = client
        self._default_ttl = ttl
        self._namespace: str | None = None
        self._last_error = None

        if namespace is not None:
            self.set_namespace(namespace)

    @property
    def client(self) -> Any:
        return self._client

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    def _wrap_exception(self, exc: Exception) -> CacheError:
        if isinstance(exc, CacheError):
            return exc
        return CacheBackendError(f"Redis {type(exc).__name__}: {exc}", cause=exc)

    def _full_key(self, key: str) -> str:
        if not isinstance(key, str) or not key:
            raise InvalidKeyError(str(key), "must be a non-empty string")
        return f"{self._namespace}:{key}" if self._namespace else key

    def _ttl(self, ttl: int | None) -> int:
        effective = self._default_ttl if ttl is None else ttl
        if effective < 0:
            raise CacheValidationError(f"TTL must be zero or positive, got {effective}.")
        return effective

    # ------------------------------------------------------------------ #
    # Typed-result operations
    # ------------------------------------------------------------------ #

    def try_set(self, key: str, value: Any, ttl: int | None = None) -> Result[str]:
        def run() -> str:
            full = self._full_key(key)
            effective = self._ttl(ttl)
            try:
                serialized = dump_json(value)
            except (TypeError, ValueError) as exc:
                raise CacheEncodeError(
                    f"Failed to encode value of type {type(value).__name__}: {exc}", cause=exc
                ) from exc

            if effective:
                self._client.setex(full, effective, serialized)
            else:
                self._client.set(full, serialized)
            logger.debug("cache_set", backend=self.backend_name, key=full, ttl=effective)
            return full

        return self._attempt("set", run, key=key)

    def try_get(self, key: str) -> Result[Any]:
        def run() -> Any:
            raw = self._client.get(self._full_key(key))
            if raw is None:
                raise CacheMissError(key)
            try:
                return json.loads(raw)
            except (TypeError, ValueError) as exc:
                raise CacheDecodeError(
                    f"Failed to decode the cached value for {key!r}: {exc}", cause=exc
                ) from exc

        return self._attempt("get", run, key=key)

    def try_exists(self, key: str, strict: bool = False) -> Result[bool]:
        return self._attempt("exists", lambda: bool(self._client.exists(self._full_key(key))), key=key)

    def try_renew(self, key: str, ttl: int | None = None) -> Result[str]:
        def run() -> str:
            full = self._full_key(key)
            effective = self._ttl(ttl)
            if effective:
                renewed = bool(self._client.expire(full, effective))
            else:
                # PERSIST answers 0 for a key without expiry as well as for a missing key
                renewed = bool(self._client.exists(full))
                if renewed:
                    self._client.persist(full)
            if not renewed:
                raise CacheKeyNotFoundError(key, f"Cannot renew {key!r}: key not found.")
            return full

        return self._attempt("renew", run, key=key)

    def try_delete(self, key: str) -> Result[str]:
        def run() -> str:
            full = self._full_key(key)
            if not self._client.delete(full):
                raise CacheKeyNotFoundError(key, f"Cannot delete {key!r}: key not found.")
            return full

        return self._attempt("delete", run, key=key)

    def try_clear(self, namespace: str | None = None) -> Result[int | None]:
        """Delete every ``<namespace>:*`` key, or FLUSHDB when no namespace applies.

        Returns the number of deleted keys, or ``None`` after FLUSHDB.
        """

        def run() -> int | None:
            target = self._normalize(namespace) if namespace is not None else self._namespace
            if not target:
                self._client.flushdb()
                logger.info("cache_cleared", backend=self.backend_name, scope="database")
                return None

            removed = 0
            batch: list[Any] = []
            for full in self._client.scan_iter(match=f"{target}:*", count=SCAN_BATCH_SIZE):
                batch.append(full)
                if len(batch) >= SCAN_BATCH_SIZE:
                    removed += self._client.delete(*batch)
                    batch.clear()
            if batch:
                removed += self._client.delete(*batch)

            logger.info("cache_cleared", backend=self.backend_name, namespace=target, removed=removed)
            return removed

        return self._attempt("clear", run)

    # ------------------------------------------------------------------ #
    # CacheBackend contract
    # ------------------------------------------------------------------ #

    @staticmethod
    def _normalize(namespace: str) -> str:
        normalized = namespace.strip().strip(":")
        if any(char in normalized for char in "*?[]"):
            raise InvalidNamespaceError(namespace, "contains glob characters")
        return normalized

    def set_namespace(self, namespace: str) -> bool:
        def run() -> str | None:
            self._namespace = self._normalize(namespace) or None
            return self._namespace

        return self._attempt("set_namespace", run).is_ok()

    def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        return self.try_set(key, value, ttl).is_ok()

    def get(self, key: str, default: Any = None) -> Any:
        return self.try_get(key).unwrap_or(default)

    def exists(self, key: str, strict: bool = False) -> bool:
        return self.try_exists(key, strict).unwrap_or(False)

    def renew(self, key: str, ttl: int | None = None) -> bool:
        return self.try_renew(key, ttl).is_ok()

    def delete(self, key: str) -> bool:
        return self.try_delete(key).is_ok()

    def clear(self, namespace: str | None = None) -> bool:
        return self.try_clear(namespace).is_ok()

    def __repr__(self) -> str:
        return f"RedisCache(namespace={self._namespace!r}, ttl={self._default_ttl})"


__all__ = ["RedisCache"]
