"""
Cache record model, timestamp format and JSON codec.

A record is the unit the file backend persists, one file per key::

    {"value": <any JSON value>, "created_at": "2026-10-18 09:30:00", "expires_at": "2026-10-18 09:31:00"}

Timestamps are local time at second precision in ``YYYY-MM-DD HH:MM:SS``, a
format whose lexicographic order is its chronological order. A TTL of ``0``
means "effectively permanent" and maps to a 100 calendar-year horizon.

Tags:
    record, codec, json, ttl, expiration, ezcache
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

from ezcache.errors import CacheDecodeError, CacheEncodeError, CacheValidationError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
RECORD_EXTENSION = ".cache.json"
FOREVER_YEARS = 100

_RECORD_FIELDS = frozenset({"value", "created_at", "expires_at"})


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    return datetime.strptime(text, TIMESTAMP_FORMAT)


def add_years(moment: datetime, years: int) -> datetime:
    """Shift by calendar years; Feb 29 lands on Feb 28 in a non-leap year."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def compute_expiry(start: datetime, ttl: int) -> datetime:
    """Return ``start + ttl`` seconds, or ``start + 100 years`` when ttl is 0."""
    if ttl < 0:
        raise CacheValidationError(f"TTL must be zero or a positive number of seconds, got {ttl}.")
    if ttl == 0:
        return add_years(start, FOREVER_YEARS)
    return start + timedelta(seconds=ttl)


@dataclass(frozen=True, slots=True)
class CacheRecord:
    """
    One cached value with its creation and expiration timestamps.

    Invariant: ``expires_at >= created_at``. Both are truncated to whole
    seconds, matching what the on-disk format can represent.
    """

    value: Any
    created_at: datetime
    expires_at: datetime

    @classmethod
    def create(cls, value: Any, ttl: int, now: datetime) -> CacheRecord:
        created_at = now.replace(microsecond=0)
        return cls(value=value, created_at=created_at, expires_at=compute_expiry(created_at, ttl))

    def renewed(self, ttl: int, now: datetime) -> CacheRecord:
        """Copy with ``expires_at`` recomputed from *now*; value and created_at kept."""
        return replace(self, expires_at=compute_expiry(now.replace(microsecond=0), ttl))

    def is_expired(self, now: datetime) -> bool:
        return now.replace(microsecond=0) > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "created_at": format_timestamp(self.created_at),
            "expires_at": format_timestamp(self.expires_at),
        }


def _check_keys(value: Any, parents: frozenset[int] = frozenset()) -> None:
    if not isinstance(value, (dict, list, tuple)):
        return
    if id(value) in parents:
        raise ValueError("Circular reference detected")
    parents = parents | {id(value)}
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"mapping keys must be strings, got {type(key).__name__} {key!r}")
            _check_keys(item, parents)
    else:
        for item in value:
            _check_keys(item, parents)


def dump_json(data: Any) -> str:
    """Serialize *data* to strict JSON, refusing input that JSON would alter.

    Raises:
        TypeError: Unserializable type or a mapping key that is not a string.
        ValueError: NaN or infinite floats.
    """
    _check_keys(data)
    return json.dumps(data, ensure_ascii=False, allow_nan=False)


def encode_record(record: CacheRecord) -> str:
    """Serialize a record to JSON text.

    Raises:
        CacheEncodeError: The value is not JSON-representable.
    """
    try:
        return dump_json(record.to_dict())
    except (TypeError, ValueError) as exc:
        raise CacheEncodeError(
            f"Failed to encode value of type {type(record.value).__name__}: {exc}",
            cause=exc,
        ) from exc


def decode_record(text: str, source: str = "<string>") -> CacheRecord:
    """Parse JSON text into a record.

    Args:
        text: Raw file content
        source: Where the text came from, used in the error message

    Raises:
        CacheDecodeError: Malformed JSON, wrong field set, or bad timestamps.
    """
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise CacheDecodeError(
            f"Failed to decode the cache record at {source}: {exc}", cause=exc
        ) from exc

    if not isinstance(data, dict) or set(data) != _RECORD_FIELDS:
        raise CacheDecodeError(
            f"Failed to decode the cache record at {source}: expected exactly the fields "
            f"{sorted(_RECORD_FIELDS)}."
        )

    try:
        created_at = parse_timestamp(data["created_at"])
        expires_at = parse_timestamp(data["expires_at"])
    except (TypeError, ValueError) as exc:
        raise CacheDecodeError(
            f"Failed to decode the cache record at {source}: invalid timestamp ({exc}).",
            cause=exc,
        ) from exc

    if expires_at < created_at:
        raise CacheDecodeError(
            f"Failed to decode the cache record at {source}: expires_at precedes created_at."
        )

    return CacheRecord(value=data["value"], created_at=created_at, expires_at=expires_at)


__all__ = [
    "TIMESTAMP_FORMAT",
    "RECORD_EXTENSION",
    "FOREVER_YEARS",
    "CacheRecord",
    "add_years",
    "compute_expiry",
    "decode_record",
    "dump_json",
    "encode_record",
    "format_timestamp",
    "parse_timestamp",
]
