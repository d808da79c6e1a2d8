"""
Result envelope for per-call success/failure reporting.

Cache operations report their outcome as ``Ok[T]`` or ``Err[T]`` through the
``try_*`` methods of each backend; the boolean contract methods are thin
wrappers around them. This keeps the "inspect the most recent failure"
ergonomics of ``get_last_error()`` while giving callers that want it a typed
result per call.

Manifesto:
    - **Explicit over Implicit:** A failed ``try_set`` hands back the error
      instead of hiding it behind ``False``
    - **Batch-friendly:** ``clear`` deletes many files and collects their
      outcomes with :func:`partition_results`

Architecture:
    ::

        ┌─────────────────┬─────────────────┬─────────────────────────┐
        │     Ok[T]       │     Err[T]      │     Utilities           │
        ├─────────────────┼─────────────────┼─────────────────────────┤
        │ • value: T      │ • error: Exc    │ • try_result_with()     │
        │ • unwrap()      │ • unwrap()      │ • partition_results()   │
        │ • unwrap_or()   │ • unwrap_or()   │                         │
        └─────────────────┴─────────────────┴─────────────────────────┘

Examples:
    >>> from ezcache.result import Ok, Err
    >>> Ok(10).unwrap()
    10
    >>> Err(ValueError("oops")).unwrap_or(0)
    0

Tags:
    result-pattern, error-handling, ezcache

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful result containing a value.

    Examples:
        >>> ok = Ok(42)
        >>> ok.is_ok()
        True
        >>> ok.unwrap()
        42
    """

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or default (always returns value for Ok)."""
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    ``unwrap`` raises the wrapped error.

    Examples:
        >>> err = Err(ValueError("something went wrong"))
        >>> err.is_err()
        True
        >>> err.unwrap_or("default")
        'default'
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Get default since this is Err."""
        return default

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Type alias for Result
Result = Ok[T] | Err[T]


def try_result_with(
    f: Callable[[], T],
    error_mapper: Callable[[Exception], Exception] | None = None,
) -> Result[T]:
    """
    Execute function and map exceptions to cache error types.

    Args:
        f: Zero-argument callable that may raise exceptions
        error_mapper: Optional function to transform exceptions

    Returns:
        Ok[T] if f() succeeds, Err with mapped exception if f() raises

    Examples:
        >>> from ezcache.errors import CacheStorageError
        >>> def write():
        ...     raise PermissionError("read-only")
        >>> result = try_result_with(write, lambda e: CacheStorageError(f"Write failed: {e}"))
        >>> result.error.message
        'Write failed: read-only'
    """
    try:
        return Ok(f())
    except Exception as e:
        if error_mapper:
            return Err(error_mapper(e))
        return Err(e)


def partition_results(results: list[Result[T]]) -> tuple[list[T], list[Exception]]:
    """
    Split results into successful values and errors.

    Unlike fail-fast collection, every result is inspected, which is what a
    best-effort bulk operation needs to report partial failure.

    Examples:
        >>> partition_results([Ok(1), Err(ValueError("x")), Ok(3)])
        ([1, 3], [ValueError('x')])
    """
    values = []
    errors = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err(error):
                errors.append(error)
    return values, errors


__all__ = [
    "Ok",
    "Err",
    "Result",
    "try_result_with",
    "partition_results",
]
