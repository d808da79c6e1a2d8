"""
ezcache — key-value cache with interchangeable file, Memcached and Redis backends.

Manifesto:
    One small contract (get / set / exists / renew / delete / clear) over
    backends that can be swapped by configuration. The file backend is the
    reference implementation; the networked ones delegate to their clients.

Quick start::

    from ezcache import create_cache

    cache = create_cache("file", "/var/cache/myapp", ttl=300, namespace="users")
    cache.set("alice", {"age": 36})
    cache.get("alice")                  # {'age': 36}
    cache.get("bob", default=MISSING)   # MISSING
    cache.get_last_error()              # None, or LastError(code, message, trace)

Architecture::

    errors.py        CacheError hierarchy + LastError
    result.py        Ok / Err
    logging.py       structlog configuration
    protocol.py      CacheBackend Protocol
    record.py        CacheRecord + JSON codec + expiry arithmetic
    filesystem.py    Filesystem Protocol, LocalFilesystem, MemoryFilesystem
    backends/        FileCacheStore, MemcachedCache, RedisCache
    config/          CacheType, CacheSettings, factory
    cli/             ``ezcache`` command

Tags:
    ezcache, cache, ttl, filesystem, redis, memcached

Doc-Types:
    package-overview
"""

from ezcache.backends import FileCacheStore, MemcachedCache, RedisCache
from ezcache.config import CacheSettings, CacheType, create_cache, create_cache_from_settings, get_settings
from ezcache.errors import (
    CacheBackendError,
    CacheConfigError,
    CacheDecodeError,
    CacheEncodeError,
    CacheError,
    CacheKeyNotFoundError,
    CacheMissError,
    CacheStorageError,
    CacheValidationError,
    ErrorCategory,
    InvalidConfigError,
    InvalidKeyError,
    InvalidNamespaceError,
    LastError,
)
from ezcache.protocol import CacheBackend
from ezcache.record import CacheRecord
from ezcache.result import Err, Ok, Result

__version__ = "1.0.0"

__all__ = [
    "__version__",
    # Contract
    "CacheBackend",
    "CacheRecord",
    # Backends
    "FileCacheStore",
    "MemcachedCache",
    "RedisCache",
    # Configuration
    "CacheSettings",
    "CacheType",
    "create_cache",
    "create_cache_from_settings",
    "get_settings",
    # Errors
    "ErrorCategory",
    "CacheError",
    "CacheStorageError",
    "CacheEncodeError",
    "CacheDecodeError",
    "CacheKeyNotFoundError",
    "CacheMissError",
    "CacheValidationError",
    "InvalidKeyError",
    "InvalidNamespaceError",
    "CacheConfigError",
    "InvalidConfigError",
    "CacheBackendError",
    "LastError",
    # Results
    "Ok",
    "Err",
    "Result",
]
