"""
Memcached cache backend.

Thin adapter over a pre-configured ``pymemcache`` client. Memcached owns
expiration, so nothing here computes timestamps; values are stored as JSON.

Memcached cannot list keys, so a namespace is cleared by bumping a
per-namespace generation counter rather than deleting keys::

    <namespace>:__generation__     → "3"
    <namespace>:3:<key>            → live entries
    <namespace>:2:<key>            → orphaned by clear(), evicted by TTL/LRU

Without a namespace keys are stored as-is and ``clear()`` flushes the server.

Example:
    from pymemcache.client.base import Client

    cache = MemcachedCache(Client(("localhost", 11211)), ttl=300, namespace="pages")
    cache.set("home", "<html>...</html>")
    cache.renew("home", 600)
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable

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

GENERATION_KEY = "__generation__"
MAX_KEY_LENGTH = 250
# Memcached reads expirations above 30 days as absolute unix timestamps.
RELATIVE_TTL_LIMIT = 60 * 60 * 24 * 30


def _check_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(str(key), "must be a non-empty string")
    if any(char.isspace() or ord(char) < 32 or ord(char) == 127 for char in key):
        raise InvalidKeyError(key, "contains whitespace or control characters")
    return key


class MemcachedCache(LastErrorMixin):
    """
    Cache backend delegating to a pymemcache ``Client``.

    ``exists(strict=...)`` ignores ``strict``: Memcached never returns an
    expired item.
    """

    backend_name = "memcached"

    def __init__(
        self,
        client: Any,
        ttl: int = 0,
        namespace: str | None = None,
        *,
        clock: Callable[[], float] | None = None,
    ):
        if ttl < 0:
            raise InvalidConfigError("ttl", ttl, "Default TTL must be zero or positive.")

        self._client = client
        self._default_ttl = ttl
        self._clock = clock or time.time
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
        return CacheBackendError(f"Memcached {type(exc).__name__}: {exc}", cause=exc)

    # ------------------------------------------------------------------ #
    # Keys, TTLs and values
    # ------------------------------------------------------------------ #

    def _generation_key(self, namespace: str) -> str:
        return f"{namespace}:{GENERATION_KEY}"

    def _generation(self, namespace: str) -> int:
        key = self._generation_key(namespace)
        raw = self._client.get(key)
        if raw is None:
            # add() loses to a concurrent writer; read back whatever won
            self._client.add(key, b"1", expire=0, noreply=False)
            raw = self._client.get(key)
        try:
            return int(raw) if raw is not None else 1
        except (TypeError, ValueError) as exc:
            raise CacheDecodeError(f"Invalid generation counter {raw!r} under {key}.", cause=exc) from exc

    def _full_key(self, key: str) -> str:
        _check_key(key)
        if not self._namespace:
            full = key
        else:
            full = f"{self._namespace}:{self._generation(self._namespace)}:{key}"
        if len(full.encode("utf-8")) > MAX_KEY_LENGTH:
            raise InvalidKeyError(key, f"exceeds {MAX_KEY_LENGTH} bytes once namespaced")
        return full

    def _expire(self, ttl: int | None) -> int:
        effective = self._default_ttl if ttl is None else ttl
        if effective < 0:
            raise CacheValidationError(f"TTL must be zero or positive, got {effective}.")
        if effective > RELATIVE_TTL_LIMIT:
            return int(self._clock()) + effective
        return effective

    @staticmethod
    def _encode(value: Any) -> bytes:
        try:
            return dump_json(value).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise CacheEncodeError(
                f"Failed to encode value of type {type(value).__name__}: {exc}", cause=exc
            ) from exc

    @staticmethod
    def _decode(raw: bytes | str, key: str) -> Any:
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise CacheDecodeError(f"Failed to decode the cached value for {key!r}: {exc}", cause=exc) from exc

    # ------------------------------------------------------------------ #
    # Typed-result operations
    # ------------------------------------------------------------------ #

    def try_set(self, key: str, value: Any, ttl: int | None = None) -> Result[str]:
        def run() -> str:
            full = self._full_key(key)
            if not self._client.set(full, self._encode(value), expire=self._expire(ttl), noreply=False):
                raise CacheBackendError(f"Memcached refused to store {full}.")
            logger.debug("cache_set", backend=self.backend_name, key=full)
            return full

        return self._attempt("set", run, key=key)

    def try_get(self, key: str) -> Result[Any]:
        def run() -> Any:
            raw = self._client.get(self._full_key(key))
            if raw is None:
                raise CacheMissError(key)
            return self._decode(raw, key)

        return self._attempt("get", run, key=key)

    def try_exists(self, key: str, strict: bool = False) -> Result[bool]:
        return self._attempt("exists", lambda: self._client.get(self._full_key(key)) is not None, key=key)

    def try_renew(self, key: str, ttl: int | None = None) -> Result[str]:
        def run() -> str:
            full = self._full_key(key)
            if not self._client.touch(full, expire=self._expire(ttl), noreply=False):
                raise CacheKeyNotFoundError(key, f"Cannot renew {key!r}: key not found.")
            return full

        return self._attempt("renew", run, key=key)

    def try_delete(self, key: str) -> Result[str]:
        def run() -> str:
            full = self._full_key(key)
            if not self._client.delete(full, noreply=False):
                raise CacheKeyNotFoundError(key, f"Cannot delete {key!r}: key not found.")
            return full

        return self._attempt("delete", run, key=key)

    def try_clear(self, namespace: str | None = None) -> Result[int | None]:
        """Invalidate a namespace, or flush the server when no namespace applies.

        Returns the new generation number, or ``None`` after a flush.
        """

        def run() -> int | None:
            target = self._normalize(namespace) if namespace is not None else self._namespace
            if not target:
                self._client.flush_all(noreply=False)
                logger.info("cache_cleared", backend=self.backend_name, scope="server")
                return None

            key = self._generation_key(target)
            generation = self._client.incr(key, 1, noreply=False)
            if generation is None:
                # counter evicted or never created; start past the implicit generation 1
                self._client.set(key, b"2", expire=0, noreply=False)
                generation = 2
            logger.info(
                "cache_cleared", backend=self.backend_name, namespace=target, generation=int(generation)
            )
            return int(generation)

        return self._attempt("clear", run)

    # ------------------------------------------------------------------ #
    # CacheBackend contract
    # ------------------------------------------------------------------ #

    @staticmethod
    def _normalize(namespace: str) -> str:
        normalized = namespace.strip().strip(":")
        if any(char.isspace() or ord(char) < 32 for char in normalized):
            raise InvalidNamespaceError(namespace, "contains whitespace or control characters")
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
        return f"MemcachedCache(namespace={self._namespace!r}, ttl={self._default_ttl})"


__all__ = ["MemcachedCache", "GENERATION_KEY"]
