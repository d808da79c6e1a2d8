"""
Structured error types and last-error diagnostics for ezcache backends.

Every failure inside a cache backend is expressed as a :class:`CacheError`
subclass carrying a category, a retry hint, structured context, and the
underlying cause. Backends never let these escape their contract methods:
they are turned into a boolean/optional return value plus a
:class:`LastError` snapshot the caller can inspect on demand.

Manifesto:
    - **Typed failures:** I/O, encoding, decoding and not-found failures are
      distinct classes, so callers and tests can tell them apart
    - **Advisory diagnostics:** ``LastError`` is state, not control flow
    - **Error chaining:** The original ``OSError`` / ``JSONDecodeError`` is
      kept as ``cause`` for root cause analysis

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │                        CacheError                           │
        │     (category, retryable, context, cause, to_dict)          │
        ├────────────────────────────────────────────────────────────┤
        │  CacheStorageError    CacheEncodeError   CacheDecodeError   │
        │  (STORAGE)            (SERIALIZATION)    (PARSE)            │
        │                                                             │
        │  CacheKeyNotFoundError   CacheMissError                     │
        │  (NOT_FOUND)             (NOT_FOUND)                        │
        │                                                             │
        │  CacheValidationError    CacheConfigError   CacheBackendError│
        │  ├─ InvalidKeyError      └─ InvalidConfig   (NETWORK,        │
        │  └─ InvalidNamespace        Error            retryable)     │
        └────────────────────────────────────────────────────────────┘

        LastError.from_exception(exc) ──> (code, message, trace)

Examples:
    >>> error = CacheDecodeError("Failed to decode the cache record at /tmp/x.cache.json.")
    >>> error.category
    <ErrorCategory.PARSE: 'PARSE'>
    >>> LastError.from_exception(error).code
    'PARSE'

Tags:
    error-handling, exception-hierarchy, diagnostics, last-error, ezcache

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for cache failures.

    The category value doubles as the ``code`` of a :class:`LastError`, so
    it is kept short, upper-case and stable.

    Attributes:
        STORAGE: Directory or file missing, unwritable, or unremovable
        SERIALIZATION: Value could not be encoded
        PARSE: Stored record could not be decoded
        NOT_FOUND: Operation on a key with no record
        VALIDATION: Bad key, namespace, or TTL
        CONFIG: Store misconfigured (no directory, unknown backend)
        NETWORK: Memcached / Redis client failure
        INTERNAL: Bugs, unexpected state
    """

    STORAGE = "STORAGE"
    SERIALIZATION = "SERIALIZATION"
    PARSE = "PARSE"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    NETWORK = "NETWORK"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a cache error.

    Only non-``None`` fields end up in :meth:`to_dict`, which keeps log lines
    short for the common case where just the key is known.

    Attributes:
        backend: Backend name (``file``, ``memcached``, ``redis``)
        operation: Contract method that failed (``set``, ``renew``, ...)
        key: Logical cache key
        namespace: Active namespace, if any
        path: Filesystem path involved, if any
        metadata: Additional key-value pairs
    """

    backend: str | None = None
    operation: str | None = None
    key: str | None = None
    namespace: str | None = None
    path: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["backend", "operation", "key", "namespace", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CacheError(Exception):
    """
    Base exception for all ezcache errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    rarely pass them explicitly.

    Examples:
        >>> error = CacheError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(key="user:1").context.key
        'user:1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CacheError:
        """
        Add context to this error (fluent API).

        Usage:
            raise CacheStorageError("Failed").with_context(key="k", path="/tmp/k")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }

        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict

        if self.cause is not None:
            result["cause"] = str(self.cause)

        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STORAGE / CODEC ERRORS
# =============================================================================


class CacheStorageError(CacheError):
    """Filesystem error (directory or file missing, unwritable, unremovable)."""

    default_category = ErrorCategory.STORAGE


class CacheEncodeError(CacheError):
    """Value could not be encoded into a record."""

    default_category = ErrorCategory.SERIALIZATION


class CacheDecodeError(CacheError):
    """Stored record is corrupt or does not follow the record format."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# NOT-FOUND ERRORS
# =============================================================================


class CacheKeyNotFoundError(CacheError):
    """No record exists for the key (``delete`` / ``renew``)."""

    default_category = ErrorCategory.NOT_FOUND

    def __init__(self, key: str, message: str | None = None, **kwargs: Any):
        self.key = key
        super().__init__(message or f"No cache record found for key {key!r}.", **kwargs)


class CacheMissError(CacheKeyNotFoundError):
    """No usable record for the key: absent, expired, or corrupt."""

    def __init__(self, key: str, *, expired: bool = False, **kwargs: Any):
        self.expired = expired
        reason = "expired" if expired else "not cached"
        super().__init__(key, f"Cache miss for key {key!r} ({reason}).", **kwargs)


# =============================================================================
# VALIDATION / CONFIGURATION ERRORS
# =============================================================================


class CacheValidationError(CacheError):
    """Invalid argument. Never retryable."""

    default_category = ErrorCategory.VALIDATION


class InvalidKeyError(CacheValidationError):
    """Key is empty or would escape the cache directory."""

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Invalid cache key {key!r}: {reason}.")


class InvalidNamespaceError(CacheValidationError):
    """Namespace would escape the cache directory."""

    def __init__(self, namespace: str, reason: str):
        self.namespace = namespace
        super().__init__(f"Invalid cache namespace {namespace!r}: {reason}.")


class CacheConfigError(CacheError):
    """Store misconfiguration."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(CacheConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# NETWORKED BACKEND ERRORS
# =============================================================================


class CacheBackendError(CacheError):
    """Memcached or Redis client failure. Usually transient."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


# =============================================================================
# LAST ERROR DIAGNOSTIC
# =============================================================================


@dataclass(frozen=True, slots=True)
class LastError:
    """
    Snapshot of the most recent failure of a cache backend.

    Attributes:
        code: Error category value (``STORAGE``, ``PARSE``, ...)
        message: Human-readable message
        trace: Formatted traceback, or the error context when no traceback exists
    """

    code: str
    message: str
    trace: str

    @classmethod
    def from_exception(cls, error: Exception) -> LastError:
        if isinstance(error, CacheError):
            code = error.category.value
            message = error.message
        else:
            code = ErrorCategory.INTERNAL.value
            message = str(error)

        trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        if error.__traceback__ is None and isinstance(error, CacheError):
            context = error.context.to_dict()
            if context:
                trace += "".join(f"  {k}={v}\n" for k, v in context.items())

        return cls(code=code, message=message, trace=trace)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message, "trace": self.trace}


__all__ = [
    "ErrorCategory",
    "ErrorContext",
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
]
