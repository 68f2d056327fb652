"""Source discovery: project root detection and PHP file collection.

A project is rooted at the nearest directory holding a composer.json. Its
source roots come from the manifest's autoload sections; when the manifest
declares none, or cannot be read, the whole project root is walked with
generated and dependency directories pruned.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from phpthrows.core.excludes import FALLBACK_PRUNED_DIRS, ExcludeFilter

log = structlog.get_logger(__name__)

MANIFEST_NAME = "composer.json"
PHP_SUFFIX = ".php"

# autoload sections whose values map a prefix to one path or a list of paths
_MAPPED_SECTIONS = (("autoload", "psr-4"), ("autoload", "psr-0"), ("autoload-dev", "psr-4"))
# autoload sections whose values are plain path lists
_LISTED_SECTIONS = (("autoload", "classmap"), ("autoload", "files"))


@dataclass
class SourceRoots:
    """Source locations declared by a composer manifest."""

    directories: list[Path] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.directories and not self.files


def find_project_root(start: Path, max_depth: int = 10) -> Path | None:
    """Search upward from ``start`` for a directory containing composer.json."""
    current = start if start.is_dir() else start.parent
    for _ in range(max_depth):
        if (current / MANIFEST_NAME).is_file():
            return current
        if current.parent == current:
            break
        current = current.parent
    return None


def _read_manifest(project_root: Path) -> dict[str, Any] | None:
    manifest = project_root / MANIFEST_NAME
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        log.warning("manifest_unreadable", path=str(manifest), reason=str(e))
        return None
    if not isinstance(data, dict):
        log.warning("manifest_unreadable", path=str(manifest), reason="not a JSON object")
        return None
    return data


def _as_path_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def detect_source_directories(project_root: Path) -> SourceRoots | None:
    """Read source roots from the project's composer.json.

    Returns:
        The declared roots that exist on disk, or None when the manifest is
        missing or cannot be parsed.
    """
    if not (project_root / MANIFEST_NAME).is_file():
        return None
    data = _read_manifest(project_root)
    if data is None:
        return None

    roots = SourceRoots()
    seen: set[Path] = set()

    def add(raw: str, allow_file: bool) -> None:
        candidate = project_root / raw.rstrip("/")
        if candidate.is_dir():
            if candidate not in seen:
                seen.add(candidate)
                roots.directories.append(candidate)
        elif allow_file and candidate.is_file() and candidate not in seen:
            seen.add(candidate)
            roots.files.append(candidate)

    for section, key in _MAPPED_SECTIONS:
        mapping = data.get(section, {})
        entries = mapping.get(key) if isinstance(mapping, dict) else None
        if not isinstance(entries, dict):
            continue
        for paths in entries.values():
            for raw in _as_path_list(paths):
                add(raw, allow_file=False)

    for section, key in _LISTED_SECTIONS:
        mapping = data.get(section, {})
        entries = mapping.get(key) if isinstance(mapping, dict) else None
        for raw in _as_path_list(entries):
            add(raw, allow_file=key == "files")

    return roots


def collect_files(
    directory: Path,
    exclude: ExcludeFilter,
    pruned_dirs: frozenset[str] = frozenset(),
) -> list[Path]:
    """Collect *.php files under ``directory``, sorted, with excludes applied."""
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        if pruned_dirs:
            dirnames[:] = [d for d in dirnames if d not in pruned_dirs]
        for filename in filenames:
            if not filename.endswith(PHP_SUFFIX):
                continue
            path = Path(dirpath) / filename
            if path.is_file() and not exclude.is_excluded(path):
                found.append(path)
    return sorted(found)


def collect_project_files(project_root: Path, exclude: ExcludeFilter) -> list[Path]:
    """Collect every PHP file that contributes to the project-wide method table."""
    roots = detect_source_directories(project_root)
    if roots is None or roots.is_empty():
        return collect_files(project_root, exclude, FALLBACK_PRUNED_DIRS)

    files: list[Path] = []
    for directory in roots.directories:
        files.extend(collect_files(directory, exclude))
    files.extend(
        path for path in roots.files if path.suffix == PHP_SUFFIX and not exclude.is_excluded(path)
    )
    return sorted(set(files))
