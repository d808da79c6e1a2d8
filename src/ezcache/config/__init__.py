"""Configuration: backend enum, settings, and factory functions.

Quick start::

    from ezcache.config import create_cache, create_cache_from_settings

    cache = create_cache("file", "/var/cache/myapp", ttl=300)
    cache = create_cache_from_settings()   # EZCACHE_* environment

Architecture::

    components.py     CacheType enum
    settings.py       CacheSettings (Pydantic) + get_settings() cache
    factory.py        create_cache / create_cache_client / create_cache_from_settings

Guardrails:
    ❌ Parsing ``EZCACHE_*`` env vars ad-hoc
    ✅ ``get_settings().cache_dir`` from the cached singleton
    ❌ Importing redis / pymemcache at module import time
    ✅ ``create_cache_client(settings)`` imports them on demand

Tags:
    ezcache, configuration, settings, factory-pattern, pydantic

Doc-Types:
    package-overview
"""

from .components import CacheType
from .factory import create_cache, create_cache_client, create_cache_from_settings
from .settings import CacheSettings, clear_settings_cache, get_settings

__all__ = [
    "CacheType",
    "CacheSettings",
    "get_settings",
    "clear_settings_cache",
    "create_cache",
    "create_cache_client",
    "create_cache_from_settings",
]
