"""Tests for the method-throws cache store."""

import json
import os
from pathlib import Path

import pytest

from phpthrows.cache.manager import CACHE_VERSION, CacheManager, file_fingerprint


@pytest.fixture
def source(tmp_path: Path) -> Path:
    path = tmp_path / "A.php"
    path.write_text("<?php\nclass A {}\n")
    return path


def _bump_mtime(path: Path) -> None:
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))


class TestFileFingerprint:
    """mtime/size fingerprints."""

    def test_stable(self, source: Path) -> None:
        assert file_fingerprint(source) == file_fingerprint(source)

    def test_changes_with_mtime(self, source: Path) -> None:
        before = file_fingerprint(source)
        _bump_mtime(source)

        assert file_fingerprint(source) != before

    def test_missing_file(self, tmp_path: Path) -> None:
        assert file_fingerprint(tmp_path / "gone.php") is None


class TestCacheManager:
    """Load, query and save."""

    def test_fresh_cache_is_empty_and_clean(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)

        assert cache.get_method_throws(source).found is False
        assert cache.get_global_method_throws() == {}
        assert cache.is_dirty is False

    def test_set_then_get(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.set_method_throws(source, {"A::m": ["E"]}, {"A": ["T"]})

        cached = cache.get_method_throws(source)

        assert cached.found
        assert cached.method_throws == {"A::m": ["E"]}
        assert cached.trait_uses == {"A": ["T"]}
        assert cache.is_dirty

    def test_persists_across_instances(self, tmp_path: Path, source: Path) -> None:
        first = CacheManager(tmp_path)
        first.set_method_throws(source, {"A::m": ["E"]})
        first.set_global_method_throws({"A::m": ["E"]})
        first.save()

        second = CacheManager(tmp_path)

        assert second.get_method_throws(source).method_throws == {"A::m": ["E"]}
        assert second.get_global_method_throws() == {"A::m": ["E"]}
        assert second.is_dirty is False

    def test_store_shape(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path, "custom-cache.json")
        cache.set_method_throws(source, {"A::m": []})
        cache.save()

        data = json.loads((tmp_path / "custom-cache.json").read_text())

        assert data["version"] == CACHE_VERSION
        assert data["globalMethodThrows"] == {}
        entry = data["files"][str(source)]
        assert entry["hash"] == file_fingerprint(source)
        assert entry["methodThrows"] == {"A::m": []}
        assert entry["traitUses"] == {}
        assert isinstance(entry["timestamp"], int)

    def test_modified_file_misses(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.set_method_throws(source, {"A::m": ["E"]})
        assert cache.is_file_modified(source) is False

        _bump_mtime(source)

        assert cache.is_file_modified(source)
        assert cache.get_method_throws(source).found is False

    def test_deleted_file_misses(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.set_method_throws(source, {"A::m": ["E"]})

        source.unlink()

        assert cache.get_method_throws(source).found is False

    def test_save_skips_when_clean(self, tmp_path: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.load()
        cache.save()

        assert not cache.cache_path.exists()

    def test_save_leaves_no_temp_files(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.set_method_throws(source, {})
        cache.save()

        assert cache.is_dirty is False
        assert sorted(p.name for p in tmp_path.iterdir()) == [".phpthrows-cache.json", "A.php"]

    def test_unchanged_global_table_stays_clean(self, tmp_path: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.set_global_method_throws({"A::m": ["E"]})
        cache.save()

        reloaded = CacheManager(tmp_path)
        reloaded.set_global_method_throws({"A::m": ["E"]})

        assert reloaded.is_dirty is False

    def test_invalidate_file(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.set_method_throws(source, {"A::m": ["E"]})
        cache.save()

        cache.invalidate_file(source)

        assert cache.is_dirty
        assert cache.get_method_throws(source).found is False

    def test_invalidate_unknown_file_stays_clean(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.invalidate_file(source)

        assert cache.is_dirty is False

    def test_clear(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.set_method_throws(source, {"A::m": ["E"]})
        cache.set_global_method_throws({"A::m": ["E"]})
        cache.save()

        cache.clear()
        cache.save()

        data = json.loads(cache.cache_path.read_text())
        assert data == {"version": CACHE_VERSION, "files": {}, "globalMethodThrows": {}}

    def test_stats(self, tmp_path: Path, source: Path) -> None:
        cache = CacheManager(tmp_path)
        cache.set_method_throws(source, {})
        assert cache.get_stats().cache_size_bytes == 0

        cache.save()
        stats = cache.get_stats()

        assert stats.total_files == 1
        assert stats.cache_size_bytes == cache.cache_path.stat().st_size


class TestCorruptCache:
    """Unreadable stores are discarded and rewritten."""

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            "[]",
            json.dumps({"version": 99, "files": {}, "globalMethodThrows": {}}),
            json.dumps({"version": CACHE_VERSION, "files": []}),
        ],
    )
    def test_discarded(self, tmp_path: Path, source: Path, content: str) -> None:
        cache_path = tmp_path / ".phpthrows-cache.json"
        cache_path.write_text(content)

        cache = CacheManager(tmp_path)

        assert cache.get_method_throws(source).found is False
        assert cache.is_dirty

        cache.save()
        data = json.loads(cache_path.read_text())
        assert data["version"] == CACHE_VERSION

    def test_missing_global_table_is_tolerated(self, tmp_path: Path) -> None:
        (tmp_path / ".phpthrows-cache.json").write_text(
            json.dumps({"version": CACHE_VERSION, "files": {}})
        )

        cache = CacheManager(tmp_path)

        assert cache.get_global_method_throws() == {}
        assert cache.is_dirty is False
