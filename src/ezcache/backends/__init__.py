"""Cache backend implementations.

The networked backends only need their client library at the call site that
builds the client, so importing this package never imports redis or pymemcache.
"""

from ezcache.backends.base import LastErrorMixin
from ezcache.backends.file import FileCacheStore
from ezcache.backends.memcached import MemcachedCache
from ezcache.backends.redis import RedisCache

__all__ = [
    "LastErrorMixin",
    "FileCacheStore",
    "MemcachedCache",
    "RedisCache",
]
