"""
Tests for ezcache.backends.file.FileCacheStore.

Covers:
- Round-trip of every JSON value type, record layout on disk
- Expiration arithmetic: TTL seconds, TTL 0 as a 100-year horizon, renew
- exists strict / non-strict, delete, clear (records only), prune policy
- Corrupt and empty records as misses with diagnostics
- Directory / namespace validation failures and LastError reporting
"""

from __future__ import annotations

import json
import os
import time
from datetime import timedelta
from pathlib import Path, PurePath

import pytest

from ezcache.backends.file import FileCacheStore, normalize_namespace
from ezcache.errors import CacheMissError, InvalidConfigError, InvalidKeyError, InvalidNamespaceError
from ezcache.protocol import CacheBackend

MISSING = object()


class TestRoundTrip:
    """Values come back exactly as stored."""

    @pytest.mark.parametrize(
        "value",
        [
            "text",
            "héllo wörld ✓",
            42,
            -7,
            3.25,
            True,
            False,
            [1, "two", None, [3]],
            {"name": "Ada", "tags": ["x", "y"], "nested": {"n": 1}},
        ],
    )
    def test_set_then_get(self, store, value):
        assert store.set("key", value) is True
        assert store.get("key") == value

    def test_stored_none_is_distinguishable_from_miss(self, store):
        store.set("nothing", None)

        assert store.get("nothing", default=MISSING) is None
        assert store.get("absent", default=MISSING) is MISSING

    def test_overwrite_replaces_value(self, store):
        store.set("key", "first")
        store.set("key", "second")
        assert store.get("key") == "second"

    def test_implements_backend_protocol(self, store):
        assert isinstance(store, CacheBackend)


class TestRecordLayout:
    """On-disk format and path composition."""

    def test_record_file_location(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, namespace="users", clock=clock)
        store.set("alice", {"age": 36})

        assert (cache_dir / "users" / "alice.cache.json").is_file()
        assert store.record_path("alice") == cache_dir / "users" / "alice.cache.json"

    def test_record_has_exactly_three_fields(self, store, cache_dir):
        store.set("k", [1, 2], ttl=60)

        data = json.loads((cache_dir / "k.cache.json").read_text(encoding="utf-8"))
        assert data == {
            "value": [1, 2],
            "created_at": "2026-01-01 12:00:00",
            "expires_at": "2026-01-01 12:01:00",
        }

    def test_write_leaves_no_temp_files(self, store, cache_dir):
        for i in range(5):
            store.set("k", i)
        assert os.listdir(cache_dir) == ["k.cache.json"]

    def test_record_path_has_no_side_effects(self, memory_store, memory_fs):
        path = memory_store.record_path("k")

        assert path == PurePath("/cache/k.cache.json")
        assert memory_fs.files == {}

    @pytest.mark.parametrize("key", ["", "a/b", "a\\b", ".", "..", "nul\0byte"])
    def test_invalid_keys_rejected(self, store, key):
        with pytest.raises(InvalidKeyError):
            store.record_path(key)

        assert store.set(key, 1) is False
        assert store.get_last_error().code == "VALIDATION"


class TestExpiration:
    """TTL handling with a frozen clock."""

    def test_unexpired_until_boundary(self, store, clock):
        store.set("k", "v", ttl=1)
        assert store.exists("k", strict=True)

        clock.advance(1)
        assert store.exists("k", strict=True)
        assert store.get("k") == "v"

    def test_expired_after_ttl(self, store, clock, cache_dir):
        store.set("k", "v", ttl=1)
        clock.advance(2)

        assert store.exists("k", strict=True) is False
        assert store.exists("k") is True
        assert store.get("k", default=MISSING) is MISSING
        assert (cache_dir / "k.cache.json").exists(), "expired records are not deleted"

    def test_try_get_reports_expired_miss(self, store, clock):
        store.set("k", "v", ttl=1)
        clock.advance(5)

        result = store.try_get("k")
        assert result.is_err()
        assert isinstance(result.error, CacheMissError)
        assert result.error.expired is True

    def test_zero_ttl_is_a_hundred_years(self, store):
        store.set("forever", 1, ttl=0)
        record = store.read_record("forever")

        assert record.expires_at - record.created_at >= timedelta(seconds=3153600000)
        assert record.expires_at.year == record.created_at.year + 100

    def test_default_ttl_applies_when_none(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, ttl=90, clock=clock)
        store.set("k", 1)
        record = store.read_record("k")

        assert record.expires_at - record.created_at == timedelta(seconds=90)

    def test_explicit_ttl_overrides_default(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, ttl=90, clock=clock)
        store.set("k", 1, ttl=5)
        record = store.read_record("k")

        assert record.expires_at - record.created_at == timedelta(seconds=5)

    def test_negative_ttl_is_validation_failure(self, store):
        assert store.set("k", 1, ttl=-1) is False
        assert store.get_last_error().code == "VALIDATION"
        assert store.exists("k") is False

    def test_negative_default_ttl_raises(self, cache_dir):
        with pytest.raises(InvalidConfigError):
            FileCacheStore(cache_dir, ttl=-5)

    @pytest.mark.slow
    def test_wall_clock_expiry(self, cache_dir):
        store = FileCacheStore(cache_dir)
        store.set("k", "v", ttl=1)
        assert store.exists("k", strict=True)

        time.sleep(2.1)

        assert store.exists("k", strict=True) is False
        assert store.exists("k") is True
        assert store.get("k") is None


class TestRenew:
    """renew() moves expires_at only."""

    def test_renew_after_expiry_restores_hits(self, store, clock):
        store.set("k", "v", ttl=1)
        clock.advance(10)
        assert store.get("k") is None

        assert store.renew("k", 60) is True
        assert store.get("k") == "v"

    def test_renew_keeps_value_and_created_at(self, store, clock):
        store.set("k", {"a": 1}, ttl=10)
        before = store.read_record("k")
        now = clock.advance(5)

        store.renew("k", 30)
        after = store.read_record("k")

        assert after.value == {"a": 1}
        assert after.created_at == before.created_at
        assert after.expires_at == now + timedelta(seconds=30)

    def test_renew_with_default_ttl(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, ttl=120, clock=clock)
        store.set("k", 1, ttl=1)
        now = clock.advance(3)

        assert store.renew("k") is True
        assert store.read_record("k").expires_at == now + timedelta(seconds=120)

    def test_renew_zero_ttl_is_permanent(self, store):
        store.set("k", 1, ttl=1)
        store.renew("k", 0)
        record = store.read_record("k")

        assert record.expires_at.year == record.created_at.year + 100

    def test_renew_unknown_key_fails(self, store):
        assert store.renew("ghost", 10) is False
        assert store.get_last_error().code == "NOT_FOUND"

    def test_renew_corrupt_record_fails(self, store, cache_dir):
        (cache_dir / "bad.cache.json").write_text("{oops", encoding="utf-8")

        assert store.renew("bad", 10) is False
        assert store.get_last_error().code == "PARSE"


class TestDelete:
    def test_delete_then_get_misses(self, store):
        store.set("k", 1)

        assert store.delete("k") is True
        assert store.get("k", default=MISSING) is MISSING

    def test_second_delete_fails(self, store):
        store.set("k", 1)
        store.delete("k")

        assert store.delete("k") is False
        error = store.get_last_error()
        assert error.code == "NOT_FOUND"
        assert "k" in error.message

    def test_delete_in_read_only_directory(self, memory_store, memory_fs):
        memory_store.set("k", 1)
        memory_fs.mark_read_only("/cache")

        assert memory_store.delete("k") is False
        assert memory_store.get_last_error().code == "STORAGE"
        assert memory_store.get("k") == 1


class TestClear:
    """clear() removes records and nothing else."""

    def test_clear_leaves_unrelated_files(self, store, cache_dir):
        store.set("a", 1)
        store.set("b", 2)
        (cache_dir / "notes.txt").write_text("keep me")
        (cache_dir / "data.json").write_text("{}")
        (cache_dir / ".b.cache.json.x1y2.tmp").write_text("partial")
        (cache_dir / "sub").mkdir()
        (cache_dir / "sub" / "c.cache.json").write_text("{}")

        assert store.clear() is True

        assert sorted(os.listdir(cache_dir)) == [".b.cache.json.x1y2.tmp", "data.json", "notes.txt", "sub"]
        assert (cache_dir / "sub" / "c.cache.json").exists()

    def test_clear_reports_count(self, store):
        for key in "abc":
            store.set(key, key)

        assert store.try_clear().unwrap() == 3
        assert store.try_clear().unwrap() == 0

    def test_clear_other_namespace(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, namespace="one", clock=clock)
        store.set("k", 1)
        store.set_namespace("two")
        store.set("k", 2)

        assert store.clear("one") is True

        assert store.get("k") == 2
        store.set_namespace("one")
        assert store.get("k") is None

    def test_clear_missing_namespace_succeeds(self, store):
        assert store.try_clear("never-created").unwrap() == 0

    def test_clear_partial_failure(self, memory_store, memory_fs):
        memory_store.set("a", 1)
        memory_store.set("b", 2)
        memory_fs.mark_read_only("/cache")

        assert memory_store.clear() is False

        error = memory_store.get_last_error()
        assert error.code == "STORAGE"
        assert error.message.startswith("Failed to clear 2 of 2 cache records")

    def test_prune_removes_empty_namespace_dir(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, namespace="ns", clock=clock, prune_empty_dirs=True)
        store.set("k", 1)

        assert store.clear() is True
        assert not (cache_dir / "ns").exists()
        assert cache_dir.is_dir()

        assert store.set("k", 2) is True
        assert store.get("k") == 2

    def test_prune_keeps_dir_with_subdirectories(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, namespace="ns", clock=clock, prune_empty_dirs=True)
        store.set("k", 1)
        (cache_dir / "ns" / "child").mkdir()

        assert store.clear() is True
        assert (cache_dir / "ns" / "child").is_dir()

    def test_prune_never_removes_root(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, clock=clock, prune_empty_dirs=True)
        store.set("k", 1)

        assert store.clear() is True
        assert cache_dir.is_dir()

    def test_no_prune_by_default(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, namespace="ns", clock=clock)
        store.set("k", 1)
        store.clear()

        assert (cache_dir / "ns").is_dir()


class TestCorruptRecords:
    """Undecodable records are misses with a PARSE diagnostic; files are kept."""

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            '"just a string"',
            '{"value": 1, "created_at": "2026-01-01 12:00:00"}',
            '{"value": 1, "created_at": "2026-01-01 12:00:00", "expires_at": "2026-01-01 12:01:00", "x": 0}',
            '{"value": 1, "created_at": "yesterday", "expires_at": "2026-01-01 12:01:00"}',
            '{"value": 1, "created_at": "2026-01-01 12:00:00", "expires_at": "2025-01-01 12:00:00"}',
        ],
    )
    def test_corrupt_record_is_a_miss(self, store, cache_dir, content):
        path = cache_dir / "invalid.cache.json"
        path.write_text(content, encoding="utf-8")

        assert store.get("invalid", default=MISSING) is MISSING
        error = store.get_last_error()
        assert error.code == "PARSE"
        assert error.message.startswith("Failed to decode the")
        assert path.read_text(encoding="utf-8") == content

    def test_invalid_utf8_record_is_a_parse_miss(self, store, cache_dir):
        path = cache_dir / "bad.cache.json"
        content = b'{"value": "\xff\xfe", "created_at": "2026-01-01 12:00:00", "expires_at": "2026-01-01 12:01:00"}'
        path.write_bytes(content)

        assert store.get("bad", default=MISSING) is MISSING
        error = store.get_last_error()
        assert error.code == "PARSE"
        assert error.message.startswith("Failed to decode the cache record at")
        assert path.read_bytes() == content

    def test_corrupt_record_does_not_exist(self, store, cache_dir):
        (cache_dir / "invalid.cache.json").write_text("garbage", encoding="utf-8")
        assert store.exists("invalid") is False

    def test_empty_file_is_a_plain_miss(self, store, cache_dir):
        (cache_dir / "empty.cache.json").write_text("", encoding="utf-8")

        assert store.get("empty", default=MISSING) is MISSING
        assert store.get_last_error() is None

    def test_set_overwrites_corrupt_record(self, store, cache_dir):
        (cache_dir / "k.cache.json").write_text("garbage", encoding="utf-8")

        assert store.set("k", "fresh") is True
        assert store.get("k") == "fresh"


class TestCacheDirectory:
    def test_directory_created_with_parents(self, tmp_path, clock):
        target = tmp_path / "a" / "b" / "c"
        store = FileCacheStore(target, clock=clock)

        assert target.is_dir()
        assert store.cache_directory == target

    def test_uncreatable_directory(self, memory_fs, clock):
        memory_fs.make_dirs("/ro")
        memory_fs.mark_read_only("/ro")

        store = FileCacheStore("/ro/cache", filesystem=memory_fs, clock=clock)

        assert store.cache_directory is None
        assert store.get_last_error().message == "Failed to use /ro/cache as cache directory."

    def test_unwritable_directory(self, memory_fs, clock):
        memory_fs.make_dirs("/ro")
        memory_fs.mark_read_only("/ro")

        store = FileCacheStore("/ro", filesystem=memory_fs, clock=clock)

        assert store.cache_directory is None
        assert store.get_last_error().code == "STORAGE"

    def test_nul_byte_in_directory(self, tmp_path, clock):
        target = f"{tmp_path}/bad\0dir"
        store = FileCacheStore(target, clock=clock)

        assert store.cache_directory is None
        assert store.get_last_error().message == f"Failed to use {target} as cache directory."
        assert store.set_cache_directory(target) is False
        assert store.get_last_error().code == "STORAGE"

    def test_directory_failure_not_masked_by_namespace(self, memory_fs, clock):
        memory_fs.make_dirs("/ro")
        memory_fs.mark_read_only("/ro")

        store = FileCacheStore("/ro/cache", namespace="users", filesystem=memory_fs, clock=clock)

        assert store.get_last_error().message == "Failed to use /ro/cache as cache directory."
        assert store.namespace is None

    def test_operations_fail_without_directory(self, memory_fs, clock):
        memory_fs.make_dirs("/ro")
        memory_fs.mark_read_only("/ro")
        store = FileCacheStore("/ro/cache", filesystem=memory_fs, clock=clock)

        assert store.set("k", 1) is False
        assert store.get_last_error().code == "CONFIG"
        assert store.get("k", default=MISSING) is MISSING
        assert memory_fs.files == {}

    def test_failed_switch_unsets_previous_directory(self, memory_store, memory_fs):
        memory_fs.make_dirs("/ro")
        memory_fs.mark_read_only("/ro")

        assert memory_store.set_cache_directory("/ro/elsewhere") is False
        assert memory_store.cache_directory is None
        assert memory_store.set("k", 1) is False

    def test_switch_directory(self, memory_store, memory_fs):
        assert memory_store.set_cache_directory("/other") is True
        memory_store.set("k", 1)

        assert PurePath("/other/k.cache.json") in memory_fs.files


class TestNamespace:
    def test_namespace_trimmed(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, namespace="  /users/eu/ ", clock=clock)

        assert store.namespace == "users/eu"
        assert store.base_path == cache_dir / "users" / "eu"
        assert store.base_path.is_dir()

    def test_empty_namespace_is_root(self, store, cache_dir):
        assert store.set_namespace(" / ") is True
        assert store.namespace is None
        assert store.base_path == cache_dir

    def test_namespaces_are_isolated(self, store):
        store.set_namespace("a")
        store.set("k", "in a")
        store.set_namespace("b")

        assert store.get("k") is None
        store.set_namespace("a")
        assert store.get("k") == "in a"

    def test_traversal_rejected(self, store):
        store.set_namespace("safe")

        assert store.set_namespace("../escape") is False
        assert store.get_last_error().code == "VALIDATION"
        assert store.namespace == "safe"

    def test_unwritable_namespace_keeps_previous(self, memory_store, memory_fs):
        memory_store.set_namespace("a")
        memory_fs.mark_read_only("/cache")

        assert memory_store.set_namespace("b") is False

        assert memory_store.namespace == "a"
        assert memory_store.get_last_error().message == (
            "The directory /cache/b is not writable or it was not possible to create the directory."
        )

    def test_vanished_namespace_directory_recreated_on_set(self, cache_dir, clock):
        store = FileCacheStore(cache_dir, namespace="ns", clock=clock)
        (cache_dir / "ns").rmdir()

        assert store.set("k", 1) is True
        assert store.get("k") == 1

    def test_unwritable_record_directory(self, memory_store, memory_fs):
        memory_store.set_namespace("ns")
        memory_fs.mark_read_only("/cache/ns")

        assert memory_store.set("k", 1) is False
        assert memory_store.get_last_error().message == "Failed to open the file /cache/ns/k.cache.json for writing."

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("users", "users"), ("/a/b/", "a/b"), ("a//b", "a/b"), ("a\\b", "a/b"), ("  ", "")],
    )
    def test_normalize_namespace(self, raw, expected):
        assert normalize_namespace(raw) == expected

    @pytest.mark.parametrize("raw", ["..", "a/../b", "./a"])
    def test_normalize_namespace_rejects_relative_segments(self, raw):
        with pytest.raises(InvalidNamespaceError):
            normalize_namespace(raw)


class TestLastError:
    def test_none_until_first_failure(self, store):
        store.set("k", 1)
        store.get("k")
        assert store.get_last_error() is None

    def test_success_does_not_clear_error(self, store):
        store.delete("ghost")
        store.set("k", 1)

        assert store.get_last_error().code == "NOT_FOUND"

    def test_miss_does_not_overwrite_error(self, store):
        store.delete("ghost")
        store.get("also-ghost")

        assert "ghost" in store.get_last_error().message

    def test_unencodable_value(self, store, cache_dir):
        assert store.set("k", object()) is False

        error = store.get_last_error()
        assert error.code == "SERIALIZATION"
        assert error.trace
        assert not (cache_dir / "k.cache.json").exists()

    @pytest.mark.parametrize("value", [{1: "a", 2.5: "b"}, float("nan")])
    def test_value_not_preserved_by_json_is_rejected(self, store, cache_dir, value):
        assert store.set("k", value) is False

        assert store.get_last_error().code == "SERIALIZATION"
        assert not (cache_dir / "k.cache.json").exists()

    def test_instances_do_not_share_errors(self, cache_dir, clock):
        first = FileCacheStore(cache_dir, clock=clock)
        second = FileCacheStore(cache_dir, clock=clock)

        first.delete("ghost")

        assert first.get_last_error() is not None
        assert second.get_last_error() is None


class TestTypedResults:
    def test_try_set_returns_record(self, store):
        result = store.try_set("k", "v", ttl=10)

        assert result.is_ok()
        assert result.unwrap().value == "v"

    def test_try_delete_returns_path(self, store, cache_dir):
        store.set("k", 1)
        assert store.try_delete("k").unwrap() == cache_dir / "k.cache.json"

    def test_try_exists_on_corrupt_record_is_err(self, store, cache_dir):
        (cache_dir / "bad.cache.json").write_text("garbage", encoding="utf-8")

        result = store.try_exists("bad")
        assert result.is_err()

    def test_read_record_of_missing_key(self, store):
        assert store.read_record("nope") is None
        assert store.get_last_error() is None


def test_repr(store, cache_dir):
    assert repr(store) == f"FileCacheStore(directory={str(cache_dir)!r}, namespace=None, ttl=0)"
