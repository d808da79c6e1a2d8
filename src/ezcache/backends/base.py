"""Last-error bookkeeping shared by every cache backend."""

from __future__ import annotations

from typing import Callable, TypeVar

from ezcache.errors import CacheError, CacheMissError, CacheStorageError, LastError
from ezcache.logging import get_logger
from ezcache.result import Result, try_result_with

logger = get_logger(__name__)

T = TypeVar("T")


class LastErrorMixin:
    """
    Runs backend operations as ``Result`` and remembers the latest failure.

    Subclasses implement their operations as plain methods that raise
    :class:`CacheError`, then expose them through :meth:`_attempt`. A miss is
    not a failure and does not overwrite the last error.
    """

    backend_name: str = "cache"

    _last_error: LastError | None = None

    def get_last_error(self) -> LastError | None:
        """Most recent failure of this instance, or ``None`` if nothing failed yet."""
        return self._last_error

    @property
    def last_error(self) -> LastError | None:
        return self._last_error

    @property
    def namespace(self) -> str | None:
        return getattr(self, "_namespace", None)

    def _wrap_exception(self, exc: Exception) -> CacheError:
        if isinstance(exc, CacheError):
            return exc
        if isinstance(exc, OSError):
            return CacheStorageError(f"Filesystem error: {exc}", cause=exc)
        return CacheError(f"Unexpected {type(exc).__name__}: {exc}", cause=exc)

    def _record_error(self, error: Exception, *, operation: str, key: str | None = None) -> None:
        if isinstance(error, CacheError):
            error.with_context(
                backend=self.backend_name, operation=operation, key=key, namespace=self.namespace
            )
            logger.warning("cache_operation_failed", **error.to_dict())
        else:
            logger.warning(
                "cache_operation_failed", operation=operation, key=key, message=str(error)
            )
        self._last_error = LastError.from_exception(error)

    def _attempt(self, operation: str, fn: Callable[[], T], *, key: str | None = None) -> Result[T]:
        result = try_result_with(fn, self._wrap_exception)
        if result.is_err() and not isinstance(result.error, CacheMissError):
            self._record_error(result.error, operation=operation, key=key)
        return result

    def _fail(self, error: CacheError, *, operation: str, key: str | None = None) -> bool:
        self._record_error(error, operation=operation, key=key)
        return False
