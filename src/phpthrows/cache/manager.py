"""Persistent per-project cache of method-throws tables.

The store is one JSON document in the project root::

    {
      "version": 1,
      "files": {
        "<path>": {"hash": ..., "methodThrows": {...}, "traitUses": {...}, "timestamp": ...}
      },
      "globalMethodThrows": {"<Type::method>": ["Exception", ...]}
    }

Entries are keyed by a fingerprint of the file's modification time and size,
not its content. A file rewritten with the same size within one mtime tick
keeps serving its old table.
"""

from __future__ import annotations

import hashlib
import json
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from phpthrows.analysis.models import CacheStats

log = structlog.get_logger(__name__)

CACHE_VERSION = 1
DEFAULT_CACHE_FILE = ".phpthrows-cache.json"


def _empty_store() -> dict[str, Any]:
    return {"version": CACHE_VERSION, "files": {}, "globalMethodThrows": {}}


def file_fingerprint(path: Path | str) -> str | None:
    """md5 over mtime and size; None when the file cannot be stat'ed."""
    try:
        st = os.stat(path)
    except OSError:
        return None
    return hashlib.md5(f"{st.st_mtime_ns}:{st.st_size}".encode()).hexdigest()


@dataclass
class CachedUnit:
    """Result of a cache lookup for one file."""

    found: bool
    method_throws: dict[str, list[str]] = field(default_factory=dict)
    trait_uses: dict[str, list[str]] = field(default_factory=dict)


class CacheManager:
    """Loads, queries and rewrites one project's cache store.

    The store is read lazily on first use and written by ``save`` only when
    something changed since it was loaded.
    """

    def __init__(self, project_root: Path | str, file_name: str = DEFAULT_CACHE_FILE) -> None:
        self.project_root = Path(project_root)
        self.cache_path = self.project_root / file_name
        self._store: dict[str, Any] = _empty_store()
        self._loaded = False
        self._dirty = False

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        if not self.cache_path.exists():
            self._store = _empty_store()
            return

        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            log.info("cache_corrupt", path=str(self.cache_path), reason=str(e))
            self._reset()
            return

        if (
            not isinstance(data, dict)
            or data.get("version") != CACHE_VERSION
            or not isinstance(data.get("files"), dict)
        ):
            log.info("cache_corrupt", path=str(self.cache_path), reason="unsupported cache format")
            self._reset()
            return

        if not isinstance(data.get("globalMethodThrows"), dict):
            data["globalMethodThrows"] = {}
        self._store = data
        log.debug("cache_loaded", path=str(self.cache_path), entries=len(data["files"]))

    def _reset(self) -> None:
        self._store = _empty_store()
        self._dirty = True

    def save(self) -> None:
        """Write the store if it changed; a temp file is swapped in atomically."""
        if not self._dirty:
            return

        tmp_path = self.cache_path.with_name(f"{self.cache_path.name}.{os.getpid()}.tmp")
        tmp_path.write_text(json.dumps(self._store, indent=4), encoding="utf-8")
        os.replace(tmp_path, self.cache_path)
        self._dirty = False
        log.debug("cache_saved", path=str(self.cache_path), entries=len(self._store["files"]))

    def get_method_throws(self, path: Path | str) -> CachedUnit:
        """Return the cached tables for ``path`` if its fingerprint still matches."""
        self.load()
        entry = self._store["files"].get(str(path))
        if not isinstance(entry, dict):
            return CachedUnit(found=False)

        current = file_fingerprint(path)
        if current is None or entry.get("hash") != current:
            return CachedUnit(found=False)

        method_throws = entry.get("methodThrows")
        trait_uses = entry.get("traitUses")
        return CachedUnit(
            found=True,
            method_throws=method_throws if isinstance(method_throws, dict) else {},
            trait_uses=trait_uses if isinstance(trait_uses, dict) else {},
        )

    def set_method_throws(
        self,
        path: Path | str,
        method_throws: dict[str, list[str]],
        trait_uses: dict[str, list[str]] | None = None,
    ) -> None:
        self.load()
        self._store["files"][str(path)] = {
            "hash": file_fingerprint(path) or "",
            "methodThrows": method_throws,
            "traitUses": trait_uses or {},
            "timestamp": int(time.time()),
        }
        self._dirty = True

    def get_global_method_throws(self) -> dict[str, list[str]]:
        self.load()
        table: dict[str, list[str]] = self._store["globalMethodThrows"]
        return table

    def set_global_method_throws(self, method_throws: dict[str, list[str]]) -> None:
        self.load()
        if self._store["globalMethodThrows"] == method_throws:
            return
        self._store["globalMethodThrows"] = dict(method_throws)
        self._dirty = True

    def invalidate_file(self, path: Path | str) -> None:
        self.load()
        if self._store["files"].pop(str(path), None) is not None:
            self._dirty = True

    def is_file_modified(self, path: Path | str) -> bool:
        self.load()
        entry = self._store["files"].get(str(path))
        if not isinstance(entry, dict):
            return True
        return entry.get("hash") != file_fingerprint(path)

    def clear(self) -> None:
        self._store = _empty_store()
        self._loaded = True
        self._dirty = True

    def get_stats(self) -> CacheStats:
        self.load()
        try:
            size = self.cache_path.stat().st_size
        except OSError:
            size = 0
        return CacheStats(total_files=len(self._store["files"]), cache_size_bytes=size)
