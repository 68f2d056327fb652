"""Tests for project root detection and PHP file collection."""

import json
from collections.abc import Callable
from pathlib import Path

from phpthrows.analysis.discovery import (
    collect_files,
    collect_project_files,
    detect_source_directories,
    find_project_root,
)
from phpthrows.core.excludes import ExcludeFilter

WriteFn = Callable[[str, str], Path]


def _manifest(root: Path, data: object) -> None:
    (root / "composer.json").write_text(json.dumps(data))


class TestFindProjectRoot:
    """Upward search for composer.json."""

    def test_finds_nearest_manifest(self, tmp_path: Path, write_php: WriteFn) -> None:
        _manifest(tmp_path, {})
        source = write_php("src/Deep/Nested/A.php", "<?php\n")

        assert find_project_root(source) == tmp_path
        assert find_project_root(source.parent) == tmp_path

    def test_depth_limit(self, tmp_path: Path, write_php: WriteFn) -> None:
        _manifest(tmp_path, {})
        source = write_php("a/b/c/A.php", "<?php\n")

        assert find_project_root(source, max_depth=2) is None
        assert find_project_root(source, max_depth=4) == tmp_path


class TestDetectSourceDirectories:
    """Autoload sections of composer.json."""

    def test_autoload_sections(self, tmp_path: Path) -> None:
        for directory in ("src", "lib", "tests", "legacy"):
            (tmp_path / directory).mkdir()
        (tmp_path / "helpers.php").write_text("<?php\n")
        _manifest(
            tmp_path,
            {
                "autoload": {
                    "psr-4": {"App\\": "src/", "Lib\\": ["lib/", "missing/"]},
                    "classmap": ["legacy/"],
                    "files": ["helpers.php"],
                },
                "autoload-dev": {"psr-4": {"Tests\\": "tests/"}},
            },
        )

        roots = detect_source_directories(tmp_path)

        assert roots is not None
        assert roots.directories == [
            tmp_path / "src",
            tmp_path / "lib",
            tmp_path / "tests",
            tmp_path / "legacy",
        ]
        assert roots.files == [tmp_path / "helpers.php"]

    def test_duplicate_roots_listed_once(self, tmp_path: Path) -> None:
        (tmp_path / "src").mkdir()
        _manifest(tmp_path, {"autoload": {"psr-4": {"A\\": "src", "B\\": "src/"}}})

        roots = detect_source_directories(tmp_path)

        assert roots is not None
        assert roots.directories == [tmp_path / "src"]

    def test_missing_manifest(self, tmp_path: Path) -> None:
        assert detect_source_directories(tmp_path) is None

    def test_invalid_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "composer.json").write_text("{not json")

        assert detect_source_directories(tmp_path) is None

    def test_manifest_without_autoload(self, tmp_path: Path) -> None:
        _manifest(tmp_path, {"name": "acme/app"})

        roots = detect_source_directories(tmp_path)

        assert roots is not None
        assert roots.is_empty()


class TestCollectFiles:
    """Recursive *.php collection."""

    def test_sorted_php_only(self, tmp_path: Path, write_php: WriteFn) -> None:
        write_php("b/B.php", "<?php\n")
        write_php("a/A.php", "<?php\n")
        write_php("a/readme.md", "# no\n")
        write_php("Z.php", "<?php\n")

        found = collect_files(tmp_path, ExcludeFilter())

        assert [p.relative_to(tmp_path).as_posix() for p in found] == [
            "Z.php",
            "a/A.php",
            "b/B.php",
        ]

    def test_default_excludes(self, tmp_path: Path, write_php: WriteFn) -> None:
        write_php("src/A.php", "<?php\n")
        write_php("vendor/lib/V.php", "<?php\n")

        found = collect_files(tmp_path, ExcludeFilter())

        assert [p.relative_to(tmp_path).as_posix() for p in found] == ["src/A.php"]

    def test_custom_excludes_replace_defaults(self, tmp_path: Path, write_php: WriteFn) -> None:
        write_php("src/A.php", "<?php\n")
        write_php("src/Generated/G.php", "<?php\n")
        write_php("vendor/lib/V.php", "<?php\n")

        found = collect_files(tmp_path, ExcludeFilter(["/Generated/"]))

        assert [p.relative_to(tmp_path).as_posix() for p in found] == [
            "src/A.php",
            "vendor/lib/V.php",
        ]


class TestCollectProjectFiles:
    """Project-wide collection for the method table."""

    def test_uses_autoload_roots(self, tmp_path: Path, write_php: WriteFn) -> None:
        _manifest(tmp_path, {"autoload": {"psr-4": {"App\\": "src/"}, "files": ["boot.php"]}})
        write_php("src/A.php", "<?php\n")
        write_php("boot.php", "<?php\n")
        write_php("scripts/Tool.php", "<?php\n")

        found = collect_project_files(tmp_path, ExcludeFilter())

        assert found == sorted([tmp_path / "boot.php", tmp_path / "src" / "A.php"])

    def test_fallback_walk_prunes_dirs(self, tmp_path: Path, write_php: WriteFn) -> None:
        """Without autoload roots the project root is walked."""
        _manifest(tmp_path, {"name": "acme/app"})
        write_php("app/A.php", "<?php\n")
        write_php("storage/cache/C.php", "<?php\n")
        write_php("var/V.php", "<?php\n")

        found = collect_project_files(tmp_path, ExcludeFilter(["/nothing/"]))

        assert [p.relative_to(tmp_path).as_posix() for p in found] == ["app/A.php"]
